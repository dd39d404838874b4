"""Repository discovery under a scan root.

A RepositoryDiscovery instance owns the discovery cache: the first call
walks the tree and later calls return the same list until invalidate().
Tests and separate workspaces get isolated caches by using separate
instances.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

import pathspec
from git import Repo
from git.exc import GitError

from iterview.utils.logger import get_logger

logger = get_logger("discovery")

GIT_MARKER = ".git"


def _build_exclude_spec(exclude_dirs: Iterable[str]) -> pathspec.PathSpec:
    """Build a PathSpec from excluded directory names.

    Entries are gitignore-style patterns, so plain names match at any depth
    and globs such as ``build-*`` work too. The git marker is never excluded.
    """
    patterns = [
        name.rstrip("/")
        for name in exclude_dirs
        if name and name.rstrip("/") != GIT_MARKER
    ]
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _walk_for_markers(
    root: Path, max_depth: int, exclude_spec: pathspec.PathSpec
) -> list[str]:
    """Find directories containing a .git marker at most max_depth levels down.

    A marker directly under root sits at depth 1. Excluded directories and
    marker directories themselves are not descended into.

    Raises:
        OSError: if root itself cannot be listed
    """

    def on_error(err: OSError) -> None:
        if Path(err.filename or "") == root:
            raise err
        logger.debug("Skipping unreadable directory", path=err.filename, error=str(err))

    repos: list[str] = []
    for dirpath, dirnames, _files in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        rel = current.relative_to(root)
        depth = 0 if rel == Path(".") else len(rel.parts)

        if GIT_MARKER in dirnames and depth + 1 <= max_depth:
            repos.append(str(current))

        # Children of this directory sit at depth + 1; their markers at depth + 2
        if depth + 2 > max_depth:
            dirnames[:] = []
            continue

        kept = []
        for name in dirnames:
            if name == GIT_MARKER:
                continue
            child_rel = (rel / name).as_posix() if depth else name
            if exclude_spec.match_file(child_rel):
                continue
            kept.append(name)
        dirnames[:] = sorted(kept)

    return repos


def _enclosing_repository(root: Path) -> str | None:
    """Return the top-level of the working tree containing root, if any."""
    try:
        with Repo(root, search_parent_directories=True) as repo:
            toplevel = repo.working_tree_dir
    except (GitError, OSError):
        return None
    return str(Path(toplevel).resolve()) if toplevel else None


class RepositoryDiscovery:
    """Discovers git working trees under a root, caching the result."""

    def __init__(self) -> None:
        self._cache: list[str] | None = None

    @property
    def cached(self) -> bool:
        return self._cache is not None

    def invalidate(self) -> None:
        """Drop the cached repository list so the next call rescans."""
        if self._cache is not None:
            logger.debug("Repository cache invalidated", repos=len(self._cache))
        self._cache = None

    def discover(
        self,
        root: str | Path,
        max_depth: int,
        exclude_dirs: Iterable[str] = (),
    ) -> list[str]:
        """Return repository roots under root, sorted.

        Never raises: an unusable root or an empty search falls back to the
        working tree enclosing root, and an empty result is logged.
        """
        if self._cache is not None:
            return list(self._cache)

        root_path = Path(root).expanduser().resolve()
        repos: list[str] = []
        try:
            repos = _walk_for_markers(
                root_path, max_depth, _build_exclude_spec(exclude_dirs)
            )
        except OSError as e:
            logger.warning(
                "Repository search failed, trying enclosing repository",
                root=str(root_path),
                error=str(e),
            )

        if not repos:
            enclosing = _enclosing_repository(root_path)
            if enclosing:
                repos = [enclosing]

        if not repos:
            logger.warning("No git repositories found", root=str(root_path))
        else:
            logger.debug("Repositories discovered", root=str(root_path), repos=len(repos))

        repos = sorted(repos)
        # An empty search is retried next time; repositories may appear later
        self._cache = repos or None
        return list(repos)
