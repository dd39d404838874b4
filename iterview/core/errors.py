"""Exception types raised inside the checkpoint engine.

These never cross the service facade: CheckpointService converts them into
outcome values or None so front ends can present them uniformly.
"""

from __future__ import annotations


class IterviewError(Exception):
    """Base class for iterview errors."""


class ContentStoreError(IterviewError):
    """A batch hash or blob read against a repository object store failed."""

    def __init__(self, repo_root: str, message: str) -> None:
        super().__init__(f"{repo_root}: {message}")
        self.repo_root = repo_root
        self.message = message


class ManifestError(IterviewError):
    """A manifest could not be written to the storage directory."""
