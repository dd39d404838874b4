"""Workspace management.

A Workspace is the directory checkpoints are taken from. It owns the hidden
storage directory (manifests, config) and the .gitignore upkeep that keeps
that directory out of the repositories being checkpointed.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from iterview.config.constants import DEFAULT_STORAGE_DIR, MANIFESTS_SUBDIR
from iterview.utils.logger import get_logger

logger = get_logger("workspace")


@dataclass
class Workspace:
    """Represents the root directory checkpoints are taken from.

    Attributes:
        root: Absolute path of the scanned directory.
        storage_dir_name: Name of the hidden storage directory under root.
    """

    root: Path
    storage_dir_name: str = DEFAULT_STORAGE_DIR

    def __post_init__(self) -> None:
        self.root = Path(self.root).expanduser().resolve()

    @property
    def storage_dir(self) -> Path:
        return self.root / self.storage_dir_name

    @property
    def manifests_dir(self) -> Path:
        return self.storage_dir / MANIFESTS_SUBDIR

    def exists(self) -> bool:
        return self.root.exists() and self.root.is_dir()

    def ensure_storage_dir(self) -> None:
        """Ensure the storage and manifests directories exist."""
        self.manifests_dir.mkdir(parents=True, exist_ok=True)

    def storage_entry(self, repo_root: str | Path) -> str | None:
        """Storage dir relative to repo_root (POSIX), or None if outside it."""
        try:
            return self.storage_dir.relative_to(Path(repo_root).resolve()).as_posix()
        except ValueError:
            return None

    def filter_storage_paths(self, repo_root: str | Path, paths: list[str]) -> list[str]:
        """Drop repo-relative paths that live inside the storage directory."""
        entry = self.storage_entry(repo_root)
        if entry is None:
            return paths
        prefix = f"{entry}/"
        return [path for path in paths if path != entry and not path.startswith(prefix)]

    def ensure_gitignore_entry(self, repo_root: str | Path) -> bool:
        """Ensure the storage directory is listed in the repository's .gitignore.

        Only repositories that contain the storage directory are touched. An
        existing entry with or without a trailing slash counts as present.

        Returns:
            True if .gitignore was created or modified.
        """
        entry = self.storage_entry(repo_root)
        if entry is None:
            return False

        repo_path = Path(repo_root).resolve()
        gitignore_path = repo_path / ".gitignore"

        try:
            if gitignore_path.exists():
                content = gitignore_path.read_text(encoding="utf-8")
                accepted = {entry, f"{entry}/", f"/{entry}", f"/{entry}/"}
                if any(line.strip() in accepted for line in content.splitlines()):
                    return False

                if content and not content.endswith("\n"):
                    content += "\n"
                gitignore_path.write_text(f"{content}{entry}/\n", encoding="utf-8")
                logger.info(
                    "Added storage dir to existing .gitignore",
                    path=str(gitignore_path),
                    entry=f"{entry}/",
                )
            else:
                gitignore_path.write_text(f"{entry}/\n", encoding="utf-8")
                logger.info(
                    "Created .gitignore with storage dir entry",
                    path=str(gitignore_path),
                    entry=f"{entry}/",
                )
            return True
        except OSError as e:
            # Best-effort: the checkpoint that triggered this still stands
            logger.warning(
                "Failed to update .gitignore",
                error=str(e),
                path=str(gitignore_path),
            )
            return False


_workspace_singleton: Workspace | None = None


def set_workspace(root: Path, storage_dir_name: str = DEFAULT_STORAGE_DIR) -> Workspace:
    """Create and set the process-wide workspace, ensuring its storage dir."""
    global _workspace_singleton
    workspace = Workspace(root=root, storage_dir_name=storage_dir_name)
    if not workspace.exists():
        raise NotADirectoryError(f"Invalid workdir: {workspace.root}")
    workspace.ensure_storage_dir()
    _workspace_singleton = workspace
    return workspace


def get_workspace() -> Workspace:
    """Get the process-wide workspace.

    Requires set_workspace() to be called at startup.
    """
    if _workspace_singleton is None:
        raise RuntimeError(
            "Workspace is not initialized. Call set_workspace() at startup."
        )
    return _workspace_singleton
