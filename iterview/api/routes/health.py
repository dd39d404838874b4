from __future__ import annotations

import os

from fastapi import APIRouter, Depends

from iterview import __version__
from iterview.api.deps import get_current_workspace
from iterview.api.schemas import HealthResponse
from iterview.config import settings
from iterview.core.workspace import Workspace

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(workspace: Workspace = Depends(get_current_workspace)):  # noqa: B008
    """Health check with workspace and configuration status."""
    config_valid, config_errors = settings.validation_status()
    return HealthResponse(
        status="ok",
        version=__version__,
        workdir=str(workspace.root),
        pid=os.getpid(),
        config_valid=config_valid,
        config_errors=config_errors or None,
    )
