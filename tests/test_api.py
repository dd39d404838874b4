"""Tests for the HTTP API."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from iterview.api.app import create_app
from iterview.api.deps import set_checkpoint_service
from iterview.core.workspace import set_workspace


@pytest.fixture
def api_workspace(workdir: Path):
    workspace = set_workspace(workdir)
    set_checkpoint_service(None)
    return workspace


@pytest.fixture
def client(api_workspace):
    return TestClient(create_app())


def test_health(client, api_workspace):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "iterview"
    assert data["workdir"] == str(api_workspace.root)
    assert data["config_valid"] is True


def test_create_without_repositories_is_400(client):
    response = client.post("/api/checkpoints")

    assert response.status_code == 400
    assert response.json()["detail"] == "no git repositories found"


def test_create_list_and_get(client, app_repo: Path):
    created = client.post("/api/checkpoints")
    assert created.status_code == 200
    assert created.json() == {"checkpoint_id": 1, "total_files": 2}
    client.post("/api/checkpoints")

    listing = client.get("/api/checkpoints").json()["checkpoints"]
    assert [item["id"] for item in listing] == [2, 1]
    assert listing[0]["repository_count"] == 1
    assert listing[0]["total_files"] == 2

    detail = client.get("/api/checkpoints/1").json()
    assert detail["repositories"] == {str(app_repo): 2}

    latest = client.get("/api/checkpoints/latest").json()
    assert latest["id"] == 2


def test_missing_checkpoint_is_404(client, app_repo: Path):
    assert client.get("/api/checkpoints/latest").status_code == 404
    assert client.get("/api/checkpoints/3").status_code == 404
    assert client.get("/api/checkpoints/3/changes").status_code == 404


def test_changes_since(client, app_repo: Path):
    client.post("/api/checkpoints")
    (app_repo / "a.txt").write_text("z\n", encoding="utf-8")
    (app_repo / "b.txt").unlink()
    (app_repo / "c.txt").write_text("w\n", encoding="utf-8")

    response = client.get("/api/checkpoints/1/changes")

    assert response.status_code == 200
    data = response.json()
    assert data["from_checkpoint"] == 1
    assert data["to_checkpoint"] is None
    assert [(c["code"], c["path"]) for c in data["changes"]] == [
        ("M", "a.txt"),
        ("A", "c.txt"),
        ("D", "b.txt"),
    ]
    assert data["changes"][0]["insertions"] is None


def test_changes_since_with_stats(client, app_repo: Path):
    client.post("/api/checkpoints")
    (app_repo / "c.txt").write_text("1\n2\n", encoding="utf-8")

    data = client.get("/api/checkpoints/1/changes", params={"include_stats": "true"}).json()

    [change] = data["changes"]
    assert (change["insertions"], change["deletions"]) == (2, 0)


def test_no_changes_is_empty_list(client, app_repo: Path):
    client.post("/api/checkpoints")
    assert client.get("/api/checkpoints/1/changes").json()["changes"] == []


def test_changes_between(client, app_repo: Path):
    client.post("/api/checkpoints")
    (app_repo / "b.txt").write_text("changed\n", encoding="utf-8")
    client.post("/api/checkpoints")

    data = client.get("/api/checkpoints/1/changes/2").json()

    assert data["to_checkpoint"] == 2
    assert [(c["status"], c["path"]) for c in data["changes"]] == [("modified", "b.txt")]
    assert client.get("/api/checkpoints/1/changes/9").status_code == 404


def test_content(client, app_repo: Path):
    client.post("/api/checkpoints")
    (app_repo / "a.txt").write_text("later", encoding="utf-8")

    response = client.get(
        "/api/checkpoints/1/content",
        params={"repository": str(app_repo), "path": "a.txt"},
    )
    assert response.status_code == 200
    assert response.content == b"x"

    missing = client.get(
        "/api/checkpoints/1/content",
        params={"repository": str(app_repo), "path": "never.txt"},
    )
    assert missing.status_code == 404


def test_clear(client, app_repo: Path):
    client.post("/api/checkpoints")
    client.post("/api/checkpoints")

    response = client.delete("/api/checkpoints")

    assert response.json() == {"cleared": 2}
    assert client.get("/api/checkpoints").json()["checkpoints"] == []


def test_create_after_repository_appears(client, workdir: Path, repo_factory):
    assert client.post("/api/checkpoints").status_code == 400

    repo_factory(workdir / "late", {"a.txt": "a"})

    created = client.post("/api/checkpoints")
    assert created.status_code == 200
    assert created.json() == {"checkpoint_id": 1, "total_files": 1}


@pytest.mark.skipif(sys.platform != "linux", reason="needs arbitrary bytes in file names")
def test_undecodable_name_is_escaped_in_changes(client, app_repo: Path):
    client.post("/api/checkpoints")
    (app_repo / os.fsdecode(b"bad\xff.txt")).write_bytes(b"raw")

    response = client.get("/api/checkpoints/1/changes")

    assert response.status_code == 200
    assert [(c["code"], c["path"]) for c in response.json()["changes"]] == [
        ("A", "bad\\xff.txt")
    ]
