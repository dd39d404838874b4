from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from iterview.services.models import Change, ChangeStatus, Manifest, printable_path


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "iterview"
    version: str | None = None
    workdir: str | None = None
    pid: int | None = None
    config_valid: bool | None = None
    config_errors: list[str] | None = None  # Offending keys if config is invalid


class CheckpointCreatedResponse(BaseModel):
    checkpoint_id: int
    total_files: int


class CheckpointSummary(BaseModel):
    """Checkpoint metadata without the per-file records."""

    id: int
    created_at: datetime
    root: str
    repository_count: int
    total_files: int

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> CheckpointSummary:
        return cls(
            id=manifest.id,
            created_at=manifest.created_at,
            root=manifest.root,
            repository_count=len(manifest.repositories),
            total_files=manifest.total_files,
        )


class CheckpointDetail(CheckpointSummary):
    repositories: dict[str, int] = Field(
        default_factory=dict, description="Repository root -> file count"
    )

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> CheckpointDetail:
        summary = CheckpointSummary.from_manifest(manifest)
        return cls(
            **summary.model_dump(),
            repositories={
                printable_path(repo): snapshot.file_count
                for repo, snapshot in manifest.repositories.items()
            },
        )


class CheckpointsListResponse(BaseModel):
    checkpoints: list[CheckpointSummary]


class ChangeResponse(BaseModel):
    path: str
    repository: str
    status: ChangeStatus
    code: str = Field(..., description="One-letter status: M, A or D")
    old_hash: str | None = None
    new_hash: str | None = None
    insertions: int | None = None
    deletions: int | None = None

    @classmethod
    def from_change(cls, change: Change) -> ChangeResponse:
        return cls(
            path=change.printable_path,
            repository=printable_path(change.repository),
            status=change.status,
            code=change.status.code,
            old_hash=change.old_hash,
            new_hash=change.new_hash,
        )


class ChangesResponse(BaseModel):
    from_checkpoint: int
    to_checkpoint: int | None = Field(
        None, description="None when compared against the working tree"
    )
    changes: list[ChangeResponse]


class ClearResponse(BaseModel):
    cleared: int
