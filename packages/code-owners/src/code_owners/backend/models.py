from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from ..paths import glob_matches, normalize_absolute_path, normalize_folder_path, relative_path

ALL_USERS_WILDCARD = "*"


class OwnerAnnotation(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str | None = None

    def render(self) -> str:
        return self.key if self.value is None else f"{self.key}:{self.value}"


NEVER_SUGGEST = OwnerAnnotation(key="NEVER_SUGGEST")


class OwnerReference(BaseModel):
    """Raw owner declaration: an email address or the all-users wildcard.

    Two references are the same owner iff their raw strings are equal;
    annotations ride along but do not take part in identity.
    """

    model_config = ConfigDict(frozen=True)

    email: str
    annotations: tuple[OwnerAnnotation, ...] = ()

    @property
    def is_wildcard(self) -> bool:
        return self.email == ALL_USERS_WILDCARD

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OwnerReference):
            return NotImplemented
        return self.email == other.email

    def __hash__(self) -> int:
        return hash(self.email)


class OwnerSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    path_expressions: tuple[str, ...] = ()
    owners: tuple[OwnerReference, ...] = ()
    ignore_global_and_parent_owners: bool = False

    @property
    def is_global(self) -> bool:
        return not self.path_expressions

    @property
    def emails(self) -> tuple[str, ...]:
        return tuple(o.email for o in self.owners)

    def matches(self, relative: str) -> bool:
        if self.is_global:
            return True
        return any(glob_matches(expr, relative) for expr in self.path_expressions)

    @classmethod
    def of(cls, *emails: str, path_expressions: tuple[str, ...] = ()) -> "OwnerSet":
        return cls(
            path_expressions=path_expressions,
            owners=tuple(OwnerReference(email=e) for e in emails),
        )


class ImportMode(StrEnum):
    ALL = "ALL"
    GLOBAL_ONLY = "GLOBAL_ONLY"


class OwnerConfigImport(BaseModel):
    model_config = ConfigDict(frozen=True)

    project: str | None = None
    branch: str | None = None
    file_path: str
    mode: ImportMode = ImportMode.ALL

    @field_validator("file_path")
    @classmethod
    def _absolute_file_path(cls, value: str) -> str:
        return normalize_absolute_path(value)


class OwnerConfigKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    project: str
    branch: str
    folder_path: str = "/"
    file_name: str | None = None

    @field_validator("folder_path")
    @classmethod
    def _normalize_folder(cls, value: str) -> str:
        return normalize_folder_path(value)

    def file_path(self, default_file_name: str) -> str:
        name = self.file_name or default_file_name
        if self.folder_path == "/":
            return f"/{name}"
        return f"{self.folder_path}/{name}"


class OwnerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: OwnerConfigKey
    ignore_parent_owners: bool = False
    owner_sets: tuple[OwnerSet, ...] = ()
    imports: tuple[OwnerConfigImport, ...] = ()

    def owner_sets_for_path(self, path: str) -> list[OwnerSet]:
        rel = relative_path(path, self.key.folder_path)
        return [s for s in self.owner_sets if s.matches(rel)]

    def has_matching_override(self, path: str) -> bool:
        return any(s.ignore_global_and_parent_owners for s in self.owner_sets_for_path(path))
