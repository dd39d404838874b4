"""Checkpoint service: the single entry point front ends talk to.

Wires discovery, content store, manifest store, builder and detector for one
workspace. Every method returns data; failures surface as outcome values or
None rather than exceptions.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from iterview.config.schema import IterviewConfig
from iterview.config.settings import Settings
from iterview.core.workspace import Workspace
from iterview.services.checkpoints import (
    CheckpointBuilder,
    CheckpointOutcome,
    CompletionCallback,
)
from iterview.services.changes import ChangeDetector, ManifestRef
from iterview.services.content_store import ContentStore
from iterview.services.diff_stats import DiffStats, change_stats
from iterview.services.discovery import RepositoryDiscovery
from iterview.services.manifests import ManifestStore
from iterview.services.models import Change, ChangeStatus, Manifest
from iterview.utils.logger import get_logger

logger = get_logger("checkpoint_service")


class CheckpointService:
    def __init__(
        self,
        workspace: Workspace,
        config: IterviewConfig | None = None,
        *,
        discovery: RepositoryDiscovery | None = None,
        content_store: ContentStore | None = None,
    ):
        self.workspace = workspace
        self.config = config or IterviewConfig(storage_dir=workspace.storage_dir_name)
        self.discovery = discovery or RepositoryDiscovery()
        self.content_store = content_store or ContentStore()
        self.store = ManifestStore(workspace.manifests_dir)
        self.builder = CheckpointBuilder(
            workspace, self.config, self.discovery, self.store, self.content_store
        )
        self.detector = ChangeDetector(
            workspace, self.config, self.discovery, self.store, self.content_store
        )
        # One checkpoint at a time; a second caller waits for the first
        self._create_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, workspace: Workspace, settings: Settings) -> CheckpointService:
        """Build a service using the validated checkpoint settings.

        Raises:
            ConfigValidationError: if the checkpoint settings are invalid
        """
        return cls(workspace, settings.checkpoint_config())

    def update_config(self, config: IterviewConfig) -> None:
        """Apply new settings; discovery reruns on next use.

        The storage directory is fixed for the lifetime of the service.
        """
        if config.storage_dir != self.workspace.storage_dir_name:
            logger.warning(
                "storage_dir change ignored until restart",
                current=self.workspace.storage_dir_name,
                requested=config.storage_dir,
            )
        self.config = config
        self.builder.config = config
        self.detector.config = config
        self.discovery.invalidate()

    async def create_checkpoint(
        self, on_complete: CompletionCallback | None = None
    ) -> CheckpointOutcome:
        async with self._create_lock:
            return await self.builder.acreate_checkpoint(
                self.workspace.root, on_complete
            )

    def create_checkpoint_sync(
        self, on_complete: CompletionCallback | None = None
    ) -> CheckpointOutcome:
        return asyncio.run(self.create_checkpoint(on_complete))

    def list_checkpoints(self) -> list[Manifest]:
        return self.store.list()

    def get_checkpoint(self, checkpoint_id: int) -> Manifest | None:
        return self.store.load(checkpoint_id)

    def latest_checkpoint(self) -> Manifest | None:
        return self.store.latest()

    def changes_since(self, checkpoint: ManifestRef) -> list[Change] | None:
        return self.detector.changes_since(checkpoint)

    def changes_between(
        self, from_checkpoint: ManifestRef, to_checkpoint: ManifestRef
    ) -> list[Change] | None:
        return self.detector.changes_between(from_checkpoint, to_checkpoint)

    def content_at(self, checkpoint_id: int, repository: str, path: str) -> bytes | None:
        return self.detector.content_at(checkpoint_id, repository, path)

    def _read_live(self, change: Change) -> bytes | None:
        try:
            return Path(os.path.join(change.repository, change.path)).read_bytes()
        except OSError:
            return None

    def change_stats(
        self,
        checkpoint_id: int,
        change: Change,
        to_checkpoint_id: int | None = None,
    ) -> DiffStats | None:
        """Diff one change.

        The before side comes from checkpoint_id; the after side comes from
        to_checkpoint_id when given, otherwise from the file on disk.
        Returns None when checkpoint_id is unknown.
        """
        if self.store.load(checkpoint_id) is None:
            return None

        old_content = None
        if change.status is not ChangeStatus.ADDED:
            old_content = self.content_at(checkpoint_id, change.repository, change.path)

        new_content = None
        if change.status is not ChangeStatus.DELETED:
            if to_checkpoint_id is not None:
                new_content = self.content_at(
                    to_checkpoint_id, change.repository, change.path
                )
            else:
                new_content = self._read_live(change)

        return change_stats(change, old_content, new_content)

    def clear_all(self) -> int:
        """Delete every checkpoint and forget discovered repositories."""
        removed = self.store.clear_all()
        self.discovery.invalidate()
        return removed

    def invalidate_repo_cache(self) -> None:
        self.discovery.invalidate()
