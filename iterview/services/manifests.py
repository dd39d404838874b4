"""Durable storage of checkpoint manifests.

One JSON file per checkpoint under ``<storage>/manifests``. Writes go to a
temporary file first and are renamed into place, so a reader never sees a
partial manifest. Ids only ever increase: the next id is one past the
highest id on disk, so pruning old manifests never causes reuse.
"""

from __future__ import annotations

import contextlib
import json
import re
from pathlib import Path

from pydantic import ValidationError

from iterview.config.constants import MANIFEST_PREFIX, MANIFEST_SUFFIX
from iterview.core.errors import ManifestError
from iterview.services.models import Manifest
from iterview.utils.logger import store_logger

_MANIFEST_RE = re.compile(
    rf"^{re.escape(MANIFEST_PREFIX)}(\d+){re.escape(MANIFEST_SUFFIX)}$"
)


class ManifestStore:
    """Reads, writes and prunes manifests in a single directory."""

    def __init__(self, manifests_dir: Path):
        self.manifests_dir = Path(manifests_dir)

    def _path_for(self, checkpoint_id: int) -> Path:
        return self.manifests_dir / f"{MANIFEST_PREFIX}{checkpoint_id}{MANIFEST_SUFFIX}"

    def ids(self) -> list[int]:
        """Return stored checkpoint ids in ascending order."""
        if not self.manifests_dir.is_dir():
            return []
        found = []
        for entry in self.manifests_dir.iterdir():
            match = _MANIFEST_RE.match(entry.name)
            if match and entry.is_file():
                found.append(int(match.group(1)))
        return sorted(found)

    def next_id(self) -> int:
        ids = self.ids()
        return (ids[-1] + 1) if ids else 1

    def save(self, manifest: Manifest) -> Path:
        """Atomically write a manifest.

        Raises:
            ManifestError: if the manifest could not be written
        """
        path = self._path_for(manifest.id)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self.manifests_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(manifest.model_dump(mode="json"), indent=2, sort_keys=True),
                encoding="utf-8",
            )
            tmp_path.replace(path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise ManifestError(f"Failed to write manifest {manifest.id}: {e}") from e

        store_logger.debug("Manifest saved", checkpoint_id=manifest.id, path=str(path))
        return path

    def load(self, checkpoint_id: int) -> Manifest | None:
        """Load a manifest by id. Missing or unreadable manifests yield None."""
        path = self._path_for(checkpoint_id)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Manifest.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            store_logger.debug(
                "Skipping unreadable manifest", checkpoint_id=checkpoint_id, error=str(e)
            )
            return None

    def list(self) -> list[Manifest]:
        """Return every readable manifest, newest first."""
        manifests = []
        for checkpoint_id in reversed(self.ids()):
            manifest = self.load(checkpoint_id)
            if manifest is not None:
                manifests.append(manifest)
        return manifests

    def latest(self) -> Manifest | None:
        for checkpoint_id in reversed(self.ids()):
            manifest = self.load(checkpoint_id)
            if manifest is not None:
                return manifest
        return None

    def _delete(self, checkpoint_id: int) -> bool:
        try:
            self._path_for(checkpoint_id).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            store_logger.warning(
                "Failed to delete manifest", checkpoint_id=checkpoint_id, error=str(e)
            )
            return False

    def prune(self, max_count: int) -> int:
        """Delete the oldest manifests beyond max_count. Returns how many went."""
        ids = self.ids()
        excess = len(ids) - max_count
        if excess <= 0:
            return 0
        removed = sum(1 for checkpoint_id in ids[:excess] if self._delete(checkpoint_id))
        if removed:
            store_logger.info("Pruned old checkpoints", removed=removed, kept=max_count)
        return removed

    def clear_all(self) -> int:
        """Delete every manifest. Returns how many were removed."""
        removed = sum(1 for checkpoint_id in self.ids() if self._delete(checkpoint_id))
        store_logger.info("Cleared checkpoints", removed=removed)
        return removed
