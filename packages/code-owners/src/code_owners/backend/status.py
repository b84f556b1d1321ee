from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict

from .changes import ChangedFile


class OwnerStatus(IntEnum):
    """Ordered so that a walk can only ever raise the status."""

    INSUFFICIENT_REVIEWERS = 0
    PENDING = 1
    APPROVED = 2


class PathStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    status: OwnerStatus
    reason: str | None = None


class FileStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    changed_file: ChangedFile
    new_path_status: PathStatus | None = None
    old_path_status: PathStatus | None = None

    def path_statuses(self) -> list[PathStatus]:
        return [s for s in (self.new_path_status, self.old_path_status) if s is not None]

    @property
    def is_approved(self) -> bool:
        return all(s.status == OwnerStatus.APPROVED for s in self.path_statuses())
