#!/usr/bin/env python3
"""Command line entry point for iterview.

Subcommands:
    checkpoint          snapshot every git repository under --workdir
    diff [ID]           list changes since a checkpoint (latest by default)
    history             list checkpoints, newest first
    clear               delete every checkpoint
    serve               run the HTTP API

Loads .env from --workdir if present to populate environment variables.
"""

from __future__ import annotations

import asyncio
import os
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="iterview",
        description="Checkpoint git working trees and review what changed",
    )
    parser.add_argument(
        "--workdir",
        default=".",
        help="Directory to scan for git repositories (default: current directory)",
    )
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        help="Log format (pretty or json). Overrides config and LOG_FORMAT env var.",
    )
    parser.add_argument(
        "--log-colors",
        type=lambda x: x.lower() in ("true", "1", "yes", "on"),
        help="Enable colored logs (true/false). Overrides config and LOG_COLORS env var.",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("checkpoint", help="Create a checkpoint")

    diff = commands.add_parser("diff", help="Show changes since a checkpoint")
    diff.add_argument("id", nargs="?", type=int, help="Checkpoint id (default: latest)")
    diff.add_argument("--to", type=int, help="Compare against this checkpoint instead of disk")
    diff.add_argument("--stat", action="store_true", help="Show +/- line counts")

    commands.add_parser("history", help="List checkpoints")
    commands.add_parser("clear", help="Delete all checkpoints")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind host (default: server_host setting)")
    serve.add_argument("--port", type=int, help="Bind port (default: server_port setting)")
    return parser


def _display_path(change, workdir: Path) -> str:
    from iterview.services.models import printable_path

    try:
        return printable_path(os.path.relpath(change.absolute_path, workdir))
    except ValueError:
        return printable_path(change.absolute_path)


def logging_options(settings) -> dict:
    """Logging choices: CLI flags and LOG_* env vars win over the config file."""
    colors = os.getenv("LOG_COLORS")
    return {
        "level": os.getenv("LOG_LEVEL") or settings.log_level,
        "log_format": os.getenv("LOG_FORMAT") or settings.log_format,
        "colors": (
            colors.lower() in ("true", "1", "yes", "on") if colors else settings.log_colors
        ),
    }


def cmd_checkpoint(service, args: Namespace) -> int:
    outcome = service.create_checkpoint_sync()
    if not outcome.ok:
        print(f"Checkpoint failed: {outcome.error}", file=sys.stderr)
        return 1
    print(f"Checkpoint {outcome.checkpoint_id} created ({outcome.total_files} files)")
    return 0


def cmd_diff(service, args: Namespace) -> int:
    if args.id is None:
        manifest = service.latest_checkpoint()
        if manifest is None:
            print("no checkpoints yet")
            return 0
        checkpoint_id = manifest.id
    else:
        checkpoint_id = args.id

    if args.to is not None:
        changes = service.changes_between(checkpoint_id, args.to)
    else:
        changes = service.changes_since(checkpoint_id)
    if changes is None:
        print("Checkpoint not found", file=sys.stderr)
        return 1
    if not changes:
        print(f"No changes since checkpoint {checkpoint_id}")
        return 0

    for change in changes:
        line = f"{change.status.code} {_display_path(change, service.workspace.root)}"
        if args.stat:
            stats = service.change_stats(checkpoint_id, change, args.to)
            if stats is not None:
                line += " (binary)" if stats.binary else f" +{stats.insertions} -{stats.deletions}"
        print(line)
    return 0


def cmd_history(service, args: Namespace) -> int:
    manifests = service.list_checkpoints()
    if not manifests:
        print("no checkpoints yet")
        return 0
    for manifest in manifests:
        created = manifest.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        print(
            f"#{manifest.id}  {created}  "
            f"{len(manifest.repositories)} repos  {manifest.total_files} files"
        )
    return 0


def cmd_clear(service, args: Namespace) -> int:
    removed = service.clear_all()
    print(f"Cleared {removed} checkpoints")
    return 0


def cmd_serve(config_manager, args: Namespace) -> int:
    import uvicorn

    from iterview.api.server import app
    from iterview.config import settings
    from iterview.config.logging_config import get_logging_config
    from iterview.utils.logger import get_logger

    startup_logger = get_logger("server.startup")
    host = args.host or settings.server_host
    port = args.port or settings.server_port

    app.state.config_manager = config_manager
    log_options = logging_options(settings)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=get_logging_config(log_options["log_format"], log_options["colors"]),
        lifespan="on",
        timeout_graceful_shutdown=5,
    )
    startup_logger.info(
        "Starting iterview server",
        server_url=f"http://{host}:{port}",
        docs_url=f"http://{host}:{port}/docs",
    )
    asyncio.run(uvicorn.Server(config).serve())
    return 0


COMMANDS = {
    "checkpoint": cmd_checkpoint,
    "diff": cmd_diff,
    "history": cmd_history,
    "clear": cmd_clear,
}


def main(argv: list[str] | None = None) -> int:
    # Parse arguments FIRST so --help works without touching config
    args = build_parser().parse_args(argv)

    # Logging env vars must be set before the logger module is imported
    if args.log_format:
        os.environ["LOG_FORMAT"] = args.log_format
    if args.log_colors is not None:
        os.environ["LOG_COLORS"] = "true" if args.log_colors else "false"

    from iterview.utils.logger import get_logger

    startup_logger = get_logger("cli")

    workdir_path = Path(args.workdir).expanduser().resolve()
    if not workdir_path.is_dir():
        startup_logger.error("--workdir is not a directory", path=str(workdir_path))
        return 1

    # Load .env file from workdir to populate environment variables for config
    from dotenv import load_dotenv

    env_file = workdir_path / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)
        startup_logger.debug("Loaded .env file", path=str(env_file))

    from iterview.config import (
        ConfigValidationError,
        create_config_manager,
        get_default_config,
        settings,
    )
    from iterview.config.constants import DEFAULT_STORAGE_DIR

    config_dir = Path(
        os.getenv("ITERVIEW_CONFIG_DIR") or workdir_path / DEFAULT_STORAGE_DIR
    )
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        config_manager = create_config_manager(config_dir, defaults=get_default_config())
        asyncio.run(config_manager.initialize())
        settings._config_manager = config_manager
    except (OSError, ValueError) as e:
        startup_logger.error("Failed to initialize configuration", error=str(e))
        return 1

    from iterview.utils.logger import configure_structlog

    try:
        configure_structlog(**logging_options(settings))
    except ValueError as e:
        startup_logger.error("Invalid logging configuration", error=str(e))
        return 1

    from iterview.api.deps import set_checkpoint_service
    from iterview.core.workspace import set_workspace
    from iterview.services.checkpoint_service import CheckpointService

    try:
        checkpoint_config = settings.checkpoint_config()
        workspace = set_workspace(workdir_path, checkpoint_config.storage_dir)
    except ConfigValidationError as e:
        startup_logger.error("Invalid configuration", errors=e.errors)
        return 1
    except OSError as e:
        startup_logger.error("Failed to initialize workspace", error=str(e))
        return 1

    service = CheckpointService(workspace, checkpoint_config)
    set_checkpoint_service(service)

    if args.command == "serve":
        return cmd_serve(config_manager, args)
    return COMMANDS[args.command](service, args)


if __name__ == "__main__":
    sys.exit(main())
