"""Tests for workspace storage layout and .gitignore management."""

from __future__ import annotations

from pathlib import Path

import pytest

from iterview.core.workspace import Workspace, get_workspace, set_workspace


def test_ensure_gitignore_entry_creates_new_file(tmp_path: Path):
    workspace = Workspace(root=tmp_path)

    assert workspace.ensure_gitignore_entry(tmp_path) is True

    assert (tmp_path / ".gitignore").read_text(encoding="utf-8") == ".iterview/\n"


def test_ensure_gitignore_entry_appends_to_existing(tmp_path: Path):
    gitignore = tmp_path / ".gitignore"
    gitignore.write_text("node_modules/\n*.log", encoding="utf-8")
    workspace = Workspace(root=tmp_path)

    workspace.ensure_gitignore_entry(tmp_path)

    assert gitignore.read_text(encoding="utf-8").splitlines() == [
        "node_modules/",
        "*.log",
        ".iterview/",
    ]


@pytest.mark.parametrize("existing", [".iterview", ".iterview/", "/.iterview", "/.iterview/"])
def test_existing_entry_variants_are_respected(tmp_path: Path, existing: str):
    gitignore = tmp_path / ".gitignore"
    gitignore.write_text(f"build/\n{existing}\n", encoding="utf-8")
    workspace = Workspace(root=tmp_path)

    assert workspace.ensure_gitignore_entry(tmp_path) is False
    assert gitignore.read_text(encoding="utf-8") == f"build/\n{existing}\n"


def test_entry_is_relative_to_repository(tmp_path: Path):
    root = tmp_path / "repo" / "sub"
    root.mkdir(parents=True)
    workspace = Workspace(root=root)

    workspace.ensure_gitignore_entry(tmp_path / "repo")

    assert (tmp_path / "repo" / ".gitignore").read_text(encoding="utf-8") == "sub/.iterview/\n"


def test_repository_not_containing_storage_is_untouched(tmp_path: Path):
    (tmp_path / "work").mkdir()
    (tmp_path / "elsewhere").mkdir()
    workspace = Workspace(root=tmp_path / "work")

    assert workspace.ensure_gitignore_entry(tmp_path / "elsewhere") is False
    assert not (tmp_path / "elsewhere" / ".gitignore").exists()


def test_unwritable_gitignore_is_best_effort(tmp_path: Path):
    (tmp_path / ".gitignore").mkdir()
    workspace = Workspace(root=tmp_path)

    assert workspace.ensure_gitignore_entry(tmp_path) is False


def test_filter_storage_paths(tmp_path: Path):
    workspace = Workspace(root=tmp_path / "sub", storage_dir_name=".state")

    paths = ["a.txt", "sub/.state/manifests/checkpoint-1.json", "sub/.statement", "sub/x"]

    assert workspace.filter_storage_paths(tmp_path, paths) == [
        "a.txt",
        "sub/.statement",
        "sub/x",
    ]
    assert workspace.filter_storage_paths(tmp_path / "other", paths) == paths


def test_set_and_get_workspace(tmp_path: Path):
    workspace = set_workspace(tmp_path)

    assert get_workspace() is workspace
    assert workspace.manifests_dir.is_dir()
    assert workspace.manifests_dir == tmp_path.resolve() / ".iterview" / "manifests"


def test_set_workspace_rejects_missing_directory(tmp_path: Path):
    with pytest.raises(NotADirectoryError):
        set_workspace(tmp_path / "missing")
