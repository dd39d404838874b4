"""Unified diffs and +/- line counts between two versions of a file."""

from __future__ import annotations

import difflib
from dataclasses import dataclass

from iterview.config.constants import BINARY_SNIFF_BYTES
from iterview.services.models import Change

Content = bytes | str | None


@dataclass(frozen=True)
class DiffStats:
    diff: str
    insertions: int
    deletions: int
    binary: bool = False


def _is_binary(content: Content) -> bool:
    return isinstance(content, bytes) and b"\0" in content[:BINARY_SNIFF_BYTES]


def _as_text(content: Content) -> str:
    if not content:
        return ""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not content.endswith("\n"):
        content += "\n"
    return content


def compute_diff(old: Content, new: Content, path: str = "file") -> DiffStats:
    """Diff two versions of a file.

    None counts as an empty file. Binary content (a NUL byte near the start)
    produces an empty diff with zero counts.
    """
    if _is_binary(old) or _is_binary(new):
        return DiffStats(diff="", insertions=0, deletions=0, binary=True)

    lines = list(
        difflib.unified_diff(
            _as_text(old).splitlines(),
            _as_text(new).splitlines(),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
            lineterm="",
        )
    )

    insertions = deletions = 0
    # First two lines are the ---/+++ file headers
    for line in lines[2:]:
        if line.startswith("+"):
            insertions += 1
        elif line.startswith("-"):
            deletions += 1

    diff = "\n".join(lines) + "\n" if lines else ""
    return DiffStats(diff=diff, insertions=insertions, deletions=deletions)


def change_stats(change: Change, old_content: Content, new_content: Content) -> DiffStats:
    """Diff the two sides of a change; the missing side of an add/delete is empty."""
    return compute_diff(old_content, new_content, path=change.path)
