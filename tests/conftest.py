"""Shared pytest fixtures for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from git import Repo

from iterview.config.schema import IterviewConfig
from iterview.core.workspace import Workspace
from iterview.services.checkpoint_service import CheckpointService


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path_factory):
    """Keep tests away from the user's git identity and iterview settings."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "iterview tests")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tests@iterview.invalid")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "iterview tests")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tests@iterview.invalid")
    monkeypatch.setenv(
        "ITERVIEW_CONFIG_DIR", str(tmp_path_factory.mktemp("iterview_config"))
    )
    for key in (
        "LOG_LEVEL",
        "LOG_FORMAT",
        "LOG_COLORS",
        "ITERVIEW_MAX_CHECKPOINTS",
        "ITERVIEW_STORAGE_DIR",
        "ITERVIEW_AUTO_GITIGNORE",
        "ITERVIEW_GIT_SEARCH_DEPTH",
        "ITERVIEW_EXCLUDE_DIRS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_globals():
    """Drop process-wide singletons that CLI and API tests install."""
    yield

    from iterview.api.deps import set_checkpoint_service
    from iterview.config import settings
    from iterview.utils.logger import configure_structlog

    # main() reinstalls the root handler on the test's captured stream
    configure_structlog()

    set_checkpoint_service(None)
    settings._config_manager = None


def make_repo(path: Path, files: dict[str, str] | None = None, commit: bool = True) -> Path:
    """Create a git repository at path holding files, optionally committed."""
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(path)
    try:
        for name, content in (files or {}).items():
            file_path = path / name
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        if files and commit:
            repo.index.add(list(files))
            repo.index.commit("initial")
    finally:
        repo.close()
    return path.resolve()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Directory scanned for repositories (not itself a repository)."""
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture
def workspace(workdir: Path) -> Workspace:
    ws = Workspace(root=workdir)
    ws.ensure_storage_dir()
    return ws


@pytest.fixture
def app_repo(workdir: Path) -> Path:
    """A committed repository with a.txt and b.txt, one level below workdir."""
    return make_repo(workdir / "app", {"a.txt": "x", "b.txt": "y"})


@pytest.fixture
def make_service(workspace: Workspace):
    """Factory for services over the shared workspace with config overrides."""

    def _make(**overrides) -> CheckpointService:
        return CheckpointService(workspace, IterviewConfig(**overrides))

    return _make


@pytest.fixture
def service(make_service) -> CheckpointService:
    return make_service()


@pytest.fixture
def repo_factory():
    """Expose make_repo to tests as a fixture."""
    return make_repo
