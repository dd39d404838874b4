"""Enumerate the files git considers part of a working tree."""

from __future__ import annotations

import os

from git import Repo
from git.exc import GitError

from iterview.utils.logger import store_logger


def _ls_files(repo: Repo, *args: str) -> list[str]:
    # -z keeps unusual names unquoted
    output = repo.git.ls_files("-z", *args)
    return [entry for entry in output.split("\0") if entry]


def list_repo_files(repo_root: str) -> list[str]:
    """Return tracked files plus untracked files that are not ignored.

    Paths are repo-relative with forward slashes, deduplicated, tracked
    files first. Failure to list is logged and yields an empty list.
    """
    try:
        with Repo(repo_root) as repo:
            tracked = _ls_files(repo)
            untracked = _ls_files(repo, "--others", "--exclude-standard")
    except (GitError, OSError) as e:
        store_logger.warning("Failed to list repository files", repo=repo_root, error=str(e))
        return []

    files: list[str] = []
    seen: set[str] = set()
    for path in tracked + untracked:
        if path in seen:
            continue
        seen.add(path)
        files.append(path)
    return files


def existing_files(repo_root: str, paths: list[str]) -> list[str]:
    """Filter paths down to regular files currently present on disk.

    Nested repositories show up in the untracked listing as directories;
    they are dropped here along with anything deleted since it was tracked.
    """
    return [path for path in paths if os.path.isfile(os.path.join(repo_root, path))]


def list_existing_files(repo_root: str) -> list[str]:
    return existing_files(repo_root, list_repo_files(repo_root))
