"""Checkpoint API routes.

Provides endpoints to:
- Create, list and clear checkpoints
- Inspect a single checkpoint or the latest one
- List changes since a checkpoint or between two checkpoints
- Fetch a file's content as recorded in a checkpoint
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from iterview.api.deps import get_checkpoint_service
from iterview.api.schemas import (
    ChangeResponse,
    ChangesResponse,
    CheckpointCreatedResponse,
    CheckpointDetail,
    CheckpointsListResponse,
    CheckpointSummary,
    ClearResponse,
)
from iterview.services.checkpoint_service import CheckpointService
from iterview.services.checkpoints import NO_REPOSITORIES
from iterview.services.models import Change
from iterview.utils.logger import get_logger

logger = get_logger("api.checkpoints")

router = APIRouter(prefix="/api/checkpoints", tags=["checkpoints"])


def _not_found(checkpoint_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Checkpoint {checkpoint_id} not found")


def _change_responses(
    service: CheckpointService,
    changes: list[Change],
    checkpoint_id: int,
    to_checkpoint_id: int | None,
    include_stats: bool,
) -> list[ChangeResponse]:
    responses = []
    for change in changes:
        item = ChangeResponse.from_change(change)
        if include_stats:
            stats = service.change_stats(checkpoint_id, change, to_checkpoint_id)
            if stats is not None:
                item.insertions = stats.insertions
                item.deletions = stats.deletions
        responses.append(item)
    return responses


@router.post("", response_model=CheckpointCreatedResponse)
async def create_checkpoint(
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    """Snapshot every repository under the workspace."""
    outcome = await service.create_checkpoint()
    if not outcome.ok:
        status_code = 400 if outcome.error == NO_REPOSITORIES else 500
        raise HTTPException(status_code=status_code, detail=outcome.error)
    return CheckpointCreatedResponse(
        checkpoint_id=outcome.checkpoint_id, total_files=outcome.total_files
    )


@router.get("", response_model=CheckpointsListResponse)
def list_checkpoints(
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    """List checkpoints, newest first."""
    return CheckpointsListResponse(
        checkpoints=[
            CheckpointSummary.from_manifest(manifest)
            for manifest in service.list_checkpoints()
        ]
    )


@router.delete("", response_model=ClearResponse)
def clear_checkpoints(
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    """Delete every checkpoint and reset repository discovery."""
    cleared = service.clear_all()
    logger.info("Checkpoints cleared via API", cleared=cleared)
    return ClearResponse(cleared=cleared)


@router.get("/latest", response_model=CheckpointDetail)
def latest_checkpoint(
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    manifest = service.latest_checkpoint()
    if manifest is None:
        raise HTTPException(status_code=404, detail="No checkpoints yet")
    return CheckpointDetail.from_manifest(manifest)


@router.get("/{checkpoint_id}", response_model=CheckpointDetail)
def get_checkpoint(
    checkpoint_id: int,
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    manifest = service.get_checkpoint(checkpoint_id)
    if manifest is None:
        raise _not_found(checkpoint_id)
    return CheckpointDetail.from_manifest(manifest)


@router.get("/{checkpoint_id}/changes", response_model=ChangesResponse)
def changes_since(
    checkpoint_id: int,
    include_stats: bool = Query(False, description="Add +/- line counts"),
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    """Changes between a checkpoint and the current working trees."""
    changes = service.changes_since(checkpoint_id)
    if changes is None:
        raise _not_found(checkpoint_id)
    return ChangesResponse(
        from_checkpoint=checkpoint_id,
        changes=_change_responses(service, changes, checkpoint_id, None, include_stats),
    )


@router.get("/{from_id}/changes/{to_id}", response_model=ChangesResponse)
def changes_between(
    from_id: int,
    to_id: int,
    include_stats: bool = Query(False, description="Add +/- line counts"),
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    """Changes between two checkpoints."""
    changes = service.changes_between(from_id, to_id)
    if changes is None:
        missing = to_id if service.get_checkpoint(from_id) else from_id
        raise _not_found(missing)
    return ChangesResponse(
        from_checkpoint=from_id,
        to_checkpoint=to_id,
        changes=_change_responses(service, changes, from_id, to_id, include_stats),
    )


@router.get("/{checkpoint_id}/content")
def checkpoint_content(
    checkpoint_id: int,
    repository: str = Query(..., description="Repository root as listed in the checkpoint"),
    path: str = Query(..., description="Repository-relative file path"),
    service: CheckpointService = Depends(get_checkpoint_service),  # noqa: B008
):
    """Raw bytes of a file as recorded in a checkpoint."""
    content = service.content_at(checkpoint_id, repository, path)
    if content is None:
        raise HTTPException(
            status_code=404,
            detail=f"{path} not recorded in checkpoint {checkpoint_id}",
        )
    return Response(content=content, media_type="application/octet-stream")
