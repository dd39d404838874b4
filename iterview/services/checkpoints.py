"""Checkpoint creation across every repository under the workspace root.

Each repository is enumerated and hashed in its own worker thread. The
results are gathered on the event loop, and only after every repository has
finished is the manifest assembled and saved, followed by .gitignore upkeep,
pruning and the completion callback.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from iterview.config.schema import IterviewConfig
from iterview.core.errors import ContentStoreError, ManifestError
from iterview.core.workspace import Workspace
from iterview.services.content_store import ContentStore
from iterview.services.discovery import RepositoryDiscovery
from iterview.services.manifests import ManifestStore
from iterview.services.models import FileRecord, Manifest, RepoSnapshot
from iterview.services.repo_files import list_existing_files
from iterview.utils.logger import get_logger

logger = get_logger("checkpoints")

NO_REPOSITORIES = "no git repositories found"

CompletionCallback = Callable[[int, int], None]


@dataclass
class CheckpointOutcome:
    """Result of a checkpoint attempt.

    ``ok`` is True when a manifest was written; ``checkpoint_id`` and
    ``total_files`` are then set. Otherwise ``error`` says why nothing was
    written.
    """

    ok: bool
    checkpoint_id: int | None = None
    total_files: int = 0
    error: str | None = None

    @classmethod
    def success(cls, checkpoint_id: int, total_files: int) -> CheckpointOutcome:
        return cls(ok=True, checkpoint_id=checkpoint_id, total_files=total_files)

    @classmethod
    def failure(cls, error: str) -> CheckpointOutcome:
        return cls(ok=False, error=error)


class CheckpointBuilder:
    """Snapshots every discovered repository into a new manifest."""

    def __init__(
        self,
        workspace: Workspace,
        config: IterviewConfig,
        discovery: RepositoryDiscovery,
        store: ManifestStore,
        content_store: ContentStore,
    ):
        self.workspace = workspace
        self.config = config
        self.discovery = discovery
        self.store = store
        self.content_store = content_store

    def _discover(self, root: Path) -> list[str]:
        return self.discovery.discover(
            root, self.config.git_search_depth, self.config.exclude_dirs
        )

    async def _snapshot_repository(self, repo_root: str) -> RepoSnapshot:
        files = await asyncio.to_thread(list_existing_files, repo_root)
        files = self.workspace.filter_storage_paths(repo_root, files)
        try:
            hashes = await self.content_store.ahash_paths(repo_root, files, write=True)
        except ContentStoreError as e:
            logger.warning(
                "Failed to hash repository, recording it as empty",
                repo=repo_root,
                files=len(files),
                error=e.message,
            )
            return RepoSnapshot()
        return RepoSnapshot(
            files={
                path: FileRecord(content_hash=content_hash)
                for path, content_hash in zip(files, hashes)
            }
        )

    async def acreate_checkpoint(
        self,
        root: str | Path | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> CheckpointOutcome:
        """Create a checkpoint of every repository under root.

        Args:
            root: Directory to scan; defaults to the workspace root
            on_complete: Called with (checkpoint_id, total_files) once the
                manifest has been saved

        Returns:
            CheckpointOutcome describing the new checkpoint or the failure
        """
        root_path = Path(root).resolve() if root is not None else self.workspace.root
        repos = self._discover(root_path)
        if not repos:
            return CheckpointOutcome.failure(NO_REPOSITORIES)

        checkpoint_id = self.store.next_id()
        logger.debug(
            "Creating checkpoint", checkpoint_id=checkpoint_id, repos=len(repos)
        )

        results = await asyncio.gather(
            *(self._snapshot_repository(repo) for repo in repos),
            return_exceptions=True,
        )

        snapshots: dict[str, RepoSnapshot] = {}
        for repo, result in zip(repos, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(
                    "Repository snapshot failed, recording it as empty",
                    repo=repo,
                    error=str(result),
                )
                result = RepoSnapshot()
            snapshots[repo] = result

        manifest = Manifest(
            id=checkpoint_id, root=str(root_path), repositories=snapshots
        )
        try:
            self.store.save(manifest)
        except ManifestError as e:
            logger.error("Checkpoint not saved", checkpoint_id=checkpoint_id, error=str(e))
            return CheckpointOutcome.failure(str(e))

        if self.config.auto_gitignore:
            for repo in repos:
                self.workspace.ensure_gitignore_entry(repo)

        self.store.prune(self.config.max_checkpoints)

        total_files = manifest.total_files
        logger.info(
            "Checkpoint created",
            checkpoint_id=checkpoint_id,
            repos=len(repos),
            total_files=total_files,
        )
        if on_complete is not None:
            on_complete(checkpoint_id, total_files)
        return CheckpointOutcome.success(checkpoint_id, total_files)

    def create_checkpoint(
        self,
        root: str | Path | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> CheckpointOutcome:
        """Blocking variant of acreate_checkpoint.

        Must not be called from a running event loop.
        """
        return asyncio.run(self.acreate_checkpoint(root, on_complete))
