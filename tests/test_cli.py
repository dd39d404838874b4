"""Tests for the command line entry point."""

from __future__ import annotations

import json
import os
from pathlib import Path

import logging

import pytest
import structlog

from main import build_parser, main


def run(workdir: Path, *args: str) -> int:
    return main(["--workdir", str(workdir), *args])


def test_checkpoint_then_diff(capsys, workdir: Path, app_repo: Path):
    assert run(workdir, "checkpoint") == 0
    assert "Checkpoint 1 created (2 files)" in capsys.readouterr().out

    (app_repo / "a.txt").write_text("z\n", encoding="utf-8")
    (app_repo / "b.txt").unlink()
    (app_repo / "c.txt").write_text("w\n", encoding="utf-8")

    assert run(workdir, "diff") == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        f"M {os.path.join('app', 'a.txt')}",
        f"A {os.path.join('app', 'c.txt')}",
        f"D {os.path.join('app', 'b.txt')}",
    ]


def test_diff_with_stat(capsys, workdir: Path, app_repo: Path):
    run(workdir, "checkpoint")
    (app_repo / "c.txt").write_text("1\n2\n", encoding="utf-8")
    capsys.readouterr()

    assert run(workdir, "diff", "1", "--stat") == 0

    assert capsys.readouterr().out.strip() == f"A {os.path.join('app', 'c.txt')} +2 -0"


def test_diff_between_checkpoints(capsys, workdir: Path, app_repo: Path):
    run(workdir, "checkpoint")
    (app_repo / "a.txt").write_text("z\n", encoding="utf-8")
    run(workdir, "checkpoint")
    capsys.readouterr()

    assert run(workdir, "diff", "1", "--to", "2") == 0

    assert capsys.readouterr().out.strip() == f"M {os.path.join('app', 'a.txt')}"


def test_diff_without_checkpoints(capsys, workdir: Path, app_repo: Path):
    assert run(workdir, "diff") == 0
    assert capsys.readouterr().out.strip() == "no checkpoints yet"


def test_diff_unknown_checkpoint(capsys, workdir: Path, app_repo: Path):
    run(workdir, "checkpoint")
    assert run(workdir, "diff", "5") == 1
    assert "Checkpoint not found" in capsys.readouterr().err


def test_diff_no_changes(capsys, workdir: Path, app_repo: Path):
    run(workdir, "checkpoint")
    capsys.readouterr()

    run(workdir, "diff")

    assert capsys.readouterr().out.strip() == "No changes since checkpoint 1"


def test_checkpoint_without_repositories_fails(capsys, workdir: Path):
    assert run(workdir, "checkpoint") == 1
    assert "no git repositories found" in capsys.readouterr().err


def test_history_and_clear(capsys, workdir: Path, app_repo: Path):
    run(workdir, "checkpoint")
    run(workdir, "checkpoint")
    capsys.readouterr()

    run(workdir, "history")
    history = capsys.readouterr().out.splitlines()
    assert [line.split()[0] for line in history] == ["#2", "#1"]

    run(workdir, "clear")
    assert capsys.readouterr().out.strip() == "Cleared 2 checkpoints"

    run(workdir, "history")
    assert capsys.readouterr().out.strip() == "no checkpoints yet"


def test_config_file_settings_apply(capsys, workdir: Path, app_repo: Path):
    config_dir = Path(os.environ["ITERVIEW_CONFIG_DIR"])
    (config_dir / "config.json").write_text(
        json.dumps({"max_checkpoints": 1}), encoding="utf-8"
    )

    run(workdir, "checkpoint")
    run(workdir, "checkpoint")
    capsys.readouterr()
    run(workdir, "history")

    assert [line.split()[0] for line in capsys.readouterr().out.splitlines()] == ["#2"]


def _root_renderer():
    return logging.root.handlers[0].formatter.processors[-1]


def test_logging_settings_come_from_config_file(workdir: Path, app_repo: Path):
    config_dir = Path(os.environ["ITERVIEW_CONFIG_DIR"])
    (config_dir / "config.json").write_text(
        json.dumps({"log_level": "DEBUG", "log_format": "json"}), encoding="utf-8"
    )

    assert run(workdir, "history") == 0

    assert logging.root.level == logging.DEBUG
    assert isinstance(_root_renderer(), structlog.processors.JSONRenderer)


def test_logging_flags_override_config_file(monkeypatch, workdir: Path, app_repo: Path):
    config_dir = Path(os.environ["ITERVIEW_CONFIG_DIR"])
    (config_dir / "config.json").write_text(
        json.dumps({"log_format": "json"}), encoding="utf-8"
    )
    monkeypatch.setenv("LOG_FORMAT", "json")

    assert run(workdir, "--log-format", "pretty", "history") == 0

    assert isinstance(_root_renderer(), structlog.dev.ConsoleRenderer)


def test_invalid_log_level_in_config_fails(workdir: Path, app_repo: Path):
    config_dir = Path(os.environ["ITERVIEW_CONFIG_DIR"])
    (config_dir / "config.json").write_text(
        json.dumps({"log_level": "LOUD"}), encoding="utf-8"
    )

    assert run(workdir, "history") == 1

def test_missing_workdir(tmp_path: Path):
    assert run(tmp_path / "missing", "history") == 1


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
