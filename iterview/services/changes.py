"""Change detection against checkpoints.

Two contracts:

* changes_since compares a checkpoint to the files on disk right now. Only
  paths recorded in the checkpoint that still exist, plus current paths the
  checkpoint never saw, are hashed, in one read-only batch per repository.
* changes_between compares two checkpoints and touches nothing on disk.

An unknown checkpoint id yields None; no differences yield an empty list.
"""

from __future__ import annotations

import os

from iterview.config.schema import IterviewConfig
from iterview.core.errors import ContentStoreError
from iterview.core.workspace import Workspace
from iterview.services.content_store import ContentStore
from iterview.services.discovery import RepositoryDiscovery
from iterview.services.manifests import ManifestStore
from iterview.services.models import (
    Change,
    ChangeStatus,
    Manifest,
    RepoSnapshot,
    sort_changes,
)
from iterview.services.repo_files import list_existing_files
from iterview.utils.logger import get_logger

logger = get_logger("changes")

ManifestRef = Manifest | int


def _compare(
    repository: str, old: dict[str, str], new: dict[str, str]
) -> list[Change]:
    """Classify path -> hash mappings into changes for one repository."""
    changes = []
    for path, old_hash in old.items():
        new_hash = new.get(path)
        if new_hash is None:
            changes.append(Change(path, repository, ChangeStatus.DELETED, old_hash=old_hash))
        elif new_hash != old_hash:
            changes.append(
                Change(path, repository, ChangeStatus.MODIFIED, old_hash, new_hash)
            )
    for path, new_hash in new.items():
        if path not in old:
            changes.append(Change(path, repository, ChangeStatus.ADDED, new_hash=new_hash))
    return changes


class ChangeDetector:
    """Computes change sets from stored manifests and the live filesystem."""

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

    def resolve(self, manifest_or_id: ManifestRef) -> Manifest | None:
        if isinstance(manifest_or_id, Manifest):
            return manifest_or_id
        return self.store.load(manifest_or_id)

    def _current_hashes(
        self, repo_root: str, recorded: dict[str, str]
    ) -> dict[str, str] | None:
        """Hash what is on disk now that is relevant to recorded.

        Returns None when the repository could not be hashed.
        """
        current = self.workspace.filter_storage_paths(
            repo_root, list_existing_files(repo_root)
        )
        still_present = [
            path for path in recorded if os.path.isfile(os.path.join(repo_root, path))
        ]
        recorded_set = set(recorded)
        to_hash = still_present + [path for path in current if path not in recorded_set]
        try:
            return self.content_store.hash_map(repo_root, to_hash)
        except ContentStoreError as e:
            logger.warning("Failed to hash repository", repo=repo_root, error=e.message)
            return None

    def _repository_changes(self, repo_root: str, snapshot: RepoSnapshot) -> list[Change]:
        recorded = snapshot.hashes()
        if not os.path.isdir(repo_root):
            logger.debug("Repository no longer exists", repo=repo_root)
            return _compare(repo_root, recorded, {})
        current = self._current_hashes(repo_root, recorded)
        if current is None:
            return []
        return _compare(repo_root, recorded, current)

    def changes_since(self, manifest_or_id: ManifestRef) -> list[Change] | None:
        """Changes from a checkpoint to the current working trees.

        Repositories discovered now but absent from the checkpoint report
        every file as added.
        """
        manifest = self.resolve(manifest_or_id)
        if manifest is None:
            return None

        changes: list[Change] = []
        for repo_root, snapshot in manifest.repositories.items():
            changes.extend(self._repository_changes(repo_root, snapshot))

        current_repos = self.discovery.discover(
            manifest.root, self.config.git_search_depth, self.config.exclude_dirs
        )
        for repo_root in current_repos:
            if repo_root not in manifest.repositories:
                changes.extend(self._repository_changes(repo_root, RepoSnapshot()))

        logger.debug(
            "Computed changes since checkpoint",
            checkpoint_id=manifest.id,
            changes=len(changes),
        )
        return sort_changes(changes)

    def changes_between(
        self, from_ref: ManifestRef, to_ref: ManifestRef
    ) -> list[Change] | None:
        """Changes from one checkpoint to another, from stored hashes only."""
        old = self.resolve(from_ref)
        new = self.resolve(to_ref)
        if old is None or new is None:
            return None

        changes: list[Change] = []
        for repo_root in sorted(set(old.repositories) | set(new.repositories)):
            old_snapshot = old.repositories.get(repo_root, RepoSnapshot())
            new_snapshot = new.repositories.get(repo_root, RepoSnapshot())
            changes.extend(
                _compare(repo_root, old_snapshot.hashes(), new_snapshot.hashes())
            )
        return sort_changes(changes)

    def content_at(self, checkpoint_id: int, repository: str, path: str) -> bytes | None:
        """Bytes of path as recorded in a checkpoint, if still retrievable."""
        manifest = self.store.load(checkpoint_id)
        if manifest is None:
            return None
        record = manifest.lookup(repository, path)
        if record is None:
            return None
        if not os.path.isdir(repository):
            return None
        return self.content_store.read(repository, record.content_hash)
