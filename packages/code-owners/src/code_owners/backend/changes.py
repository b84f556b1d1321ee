from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..paths import normalize_absolute_path


class ChangeKind(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


class ChangedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    old_path: str | None = None
    new_path: str | None = None
    kind: ChangeKind

    @field_validator("old_path", "new_path")
    @classmethod
    def _absolute(cls, value: str | None) -> str | None:
        return normalize_absolute_path(value) if value is not None else None

    @model_validator(mode="after")
    def _paths_for_kind(self) -> "ChangedFile":
        if self.kind in (ChangeKind.DELETED, ChangeKind.RENAMED) and self.old_path is None:
            raise ValueError(f"old_path is required for {self.kind.value} files")
        if self.kind != ChangeKind.DELETED and self.new_path is None:
            raise ValueError(f"new_path is required for {self.kind.value} files")
        return self

    @property
    def requires_old_path_approval(self) -> bool:
        if self.kind in (ChangeKind.DELETED, ChangeKind.RENAMED):
            return True
        # A modification recorded under a new name touches both paths.
        return self.kind == ChangeKind.MODIFIED and self.old_path not in (None, self.new_path)

    def paths_requiring_approval(self) -> list[str]:
        """Touched paths: the new path if any, plus the old path where it is affected too."""
        out: list[str] = []
        if self.new_path is not None:
            out.append(self.new_path)
        if self.requires_old_path_approval and self.old_path is not None and self.old_path not in out:
            out.append(self.old_path)
        return out


class Approval(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: int
    label: str
    value: int


class Change(BaseModel):
    model_config = ConfigDict(frozen=True)

    project: str
    branch: str
    number: int
    owner: int
    uploader: int
    current_revision: str
    base_revision: str | None = None
    reviewers: frozenset[int] = Field(default_factory=frozenset)
    approvals: tuple[Approval, ...] = ()


class ChangedFilesProvider(Protocol):
    def changed_files(
        self, project: str, revision: str, base_revision: str | None = None
    ) -> list[ChangedFile]: ...


class StaticChangedFiles:
    def __init__(self, files_by_revision: Mapping[str, Sequence[ChangedFile]]) -> None:
        self._files = {rev: list(files) for rev, files in files_by_revision.items()}

    def changed_files(
        self, project: str, revision: str, base_revision: str | None = None
    ) -> list[ChangedFile]:
        return list(self._files.get(revision, []))


class ChangeDocument(BaseModel):
    """A change plus its touched files, as read by the CLI."""

    change: Change
    changed_files: list[ChangedFile] = Field(default_factory=list)

    def provider(self) -> StaticChangedFiles:
        return StaticChangedFiles({self.change.current_revision: self.changed_files})
