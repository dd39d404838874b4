"""Tests for unified diff and line count helpers."""

from __future__ import annotations

from pathlib import Path

from iterview.services.diff_stats import compute_diff
from iterview.services.models import ChangeStatus


def test_counts_exclude_file_headers():
    stats = compute_diff("one\ntwo\nthree\n", "one\n2\nthree\nfour\n", path="f.txt")

    assert stats.insertions == 2
    assert stats.deletions == 1
    assert stats.diff.startswith("--- a/f.txt\n+++ b/f.txt\n")


def test_identical_content_has_empty_diff():
    stats = compute_diff(b"same\n", b"same\n")
    assert stats.diff == ""
    assert (stats.insertions, stats.deletions) == (0, 0)


def test_missing_trailing_newline_is_not_a_change():
    stats = compute_diff("line", "line\n")
    assert stats.diff == ""


def test_none_is_an_empty_file():
    added = compute_diff(None, "a\nb\n")
    deleted = compute_diff(b"a\n", None)

    assert (added.insertions, added.deletions) == (2, 0)
    assert (deleted.insertions, deleted.deletions) == (0, 1)


def test_lines_that_look_like_headers_are_counted():
    stats = compute_diff("keep\n", "keep\n++ plus\n-- minus\n")
    assert stats.insertions == 2
    assert stats.deletions == 0


def test_binary_content_is_not_diffed():
    stats = compute_diff(b"\x00\x01\x02", b"\x00\x01\x03")

    assert stats.binary
    assert stats.diff == ""
    assert (stats.insertions, stats.deletions) == (0, 0)


def test_invalid_utf8_is_tolerated():
    stats = compute_diff(b"caf\xe9\n", b"cafe\n")
    assert (stats.insertions, stats.deletions) == (1, 1)


def test_service_change_stats_against_disk(service, app_repo: Path):
    service.create_checkpoint_sync()
    (app_repo / "a.txt").write_text("x\nmore\n", encoding="utf-8")
    (app_repo / "new.txt").write_text("1\n2\n3\n", encoding="utf-8")
    (app_repo / "b.txt").unlink()

    stats = {
        change.path: service.change_stats(1, change)
        for change in service.changes_since(1)
    }

    assert (stats["a.txt"].insertions, stats["a.txt"].deletions) == (1, 0)
    assert (stats["new.txt"].insertions, stats["new.txt"].deletions) == (3, 0)
    assert (stats["b.txt"].insertions, stats["b.txt"].deletions) == (0, 1)


def test_service_change_stats_between_checkpoints(service, app_repo: Path):
    service.create_checkpoint_sync()
    (app_repo / "a.txt").write_text("z\n", encoding="utf-8")
    service.create_checkpoint_sync()
    (app_repo / "a.txt").write_text("on disk now\n", encoding="utf-8")

    [change] = service.changes_between(1, 2)
    stats = service.change_stats(1, change, to_checkpoint_id=2)

    assert change.status is ChangeStatus.MODIFIED
    assert "+z" in stats.diff.splitlines()
    assert "-x" in stats.diff.splitlines()


def test_service_change_stats_unknown_checkpoint(service, app_repo: Path):
    service.create_checkpoint_sync()
    (app_repo / "a.txt").write_text("z", encoding="utf-8")
    [change] = service.changes_since(1)

    assert service.change_stats(7, change) is None
