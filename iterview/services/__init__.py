"""Checkpoint engine services."""

from .checkpoint_service import CheckpointService
from .checkpoints import CheckpointOutcome
from .diff_stats import DiffStats, compute_diff
from .models import Change, ChangeStatus, FileRecord, Manifest, RepoSnapshot

__all__ = [
    "CheckpointService",
    "CheckpointOutcome",
    "DiffStats",
    "compute_diff",
    "Change",
    "ChangeStatus",
    "FileRecord",
    "Manifest",
    "RepoSnapshot",
]
