"""Checkpoint records: manifests, per-repository snapshots and changes."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator


class FileRecord(BaseModel):
    """One file as it was at checkpoint time."""

    model_config = ConfigDict(frozen=True)

    content_hash: str = Field(..., min_length=40, max_length=64)

    @field_validator("content_hash")
    @classmethod
    def _lowercase_hex(cls, value: str) -> str:
        value = value.lower()
        int(value, 16)  # ValueError surfaces as a validation error
        return value


class RepoSnapshot(BaseModel):
    """Files recorded for one repository. Absent path == did not exist."""

    files: dict[str, FileRecord] = Field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return len(self.files)

    def hashes(self) -> dict[str, str]:
        return {path: record.content_hash for path, record in self.files.items()}


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Manifest(BaseModel):
    """A numbered checkpoint across every discovered repository."""

    id: PositiveInt
    created_at: datetime = Field(default_factory=_utc_now)
    root: str
    repositories: dict[str, RepoSnapshot] = Field(default_factory=dict)

    @property
    def total_files(self) -> int:
        return sum(snapshot.file_count for snapshot in self.repositories.values())

    def lookup(self, repository: str, path: str) -> FileRecord | None:
        snapshot = self.repositories.get(repository)
        if snapshot is None:
            return None
        return snapshot.files.get(path)


class ChangeStatus(str, Enum):
    """Status of a path between two points in time.

    Declaration order is the display order: modified, added, deleted.
    """

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def code(self) -> str:
        return self.value[0].upper()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ChangeStatus):
            return NotImplemented
        return self.rank < other.rank


_STATUS_RANK = {status: index for index, status in enumerate(ChangeStatus)}


@dataclass(frozen=True)
class Change:
    """A single path-level difference."""

    path: str
    repository: str
    status: ChangeStatus
    old_hash: str | None = None
    new_hash: str | None = None

    def __post_init__(self) -> None:
        needs_old = self.status in (ChangeStatus.MODIFIED, ChangeStatus.DELETED)
        needs_new = self.status in (ChangeStatus.MODIFIED, ChangeStatus.ADDED)
        if needs_old != (self.old_hash is not None):
            raise ValueError(
                f"{self.status.value} change for {self.path!r} "
                f"{'requires' if needs_old else 'must not have'} old_hash"
            )
        if needs_new != (self.new_hash is not None):
            raise ValueError(
                f"{self.status.value} change for {self.path!r} "
                f"{'requires' if needs_new else 'must not have'} new_hash"
            )

    @property
    def sort_key(self) -> tuple[int, str, str]:
        # Repository only breaks ties between identical paths in different repos
        return (self.status.rank, self.path, self.repository)

    @property
    def absolute_path(self) -> str:
        return f"{self.repository.rstrip('/')}/{self.path}"

    @property
    def printable_path(self) -> str:
        return printable_path(self.path)


def printable_path(path: str) -> str:
    """Render a path for text output; bytes that are not UTF-8 become \\xNN."""
    return os.fsencode(path).decode("utf-8", "backslashreplace")


def sort_changes(changes: list[Change]) -> list[Change]:
    """Order changes by status (modified, added, deleted), then path.

    Repositories complete in arbitrary order, so this is the only ordering
    callers may rely on.
    """
    return sorted(changes, key=lambda change: change.sort_key)
