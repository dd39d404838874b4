from __future__ import annotations

from iterview.config import settings
from iterview.core.workspace import Workspace, get_workspace
from iterview.services.checkpoint_service import CheckpointService

# Global checkpoint service instance
_checkpoint_service: CheckpointService | None = None


def get_current_workspace() -> Workspace:
    return get_workspace()


def get_checkpoint_service() -> CheckpointService:
    global _checkpoint_service
    if _checkpoint_service is None:
        _checkpoint_service = CheckpointService.from_settings(get_workspace(), settings)
    return _checkpoint_service


def set_checkpoint_service(service: CheckpointService | None) -> None:
    """Replace the shared service (None drops it so the next call rebuilds)."""
    global _checkpoint_service
    _checkpoint_service = service
