"""Configuration providers.

LocalFileConfigProvider keeps iterview's settings in a JSON file under the
storage directory. Values in the file are layered over the defaults and
validated; a file that stops parsing is answered with the last good
configuration so a half-saved edit never takes the service down.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from iterview.config.schema import deep_merge, validate_config
from iterview.utils.logger import get_logger

logger = get_logger("config.providers")

ConfigCallback = Callable[[dict[str, Any]], None]


class ConfigProvider(ABC):
    """Source of the configuration dictionary."""

    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Return the effective configuration (defaults included)."""

    @abstractmethod
    async def save(self, config: dict[str, Any]) -> None:
        """Persist configuration values."""

    @abstractmethod
    async def watch(self, callback: ConfigCallback) -> None:
        """Call callback with the new configuration whenever it changes."""

    @abstractmethod
    async def stop_watching(self) -> None:
        """Stop delivering change notifications."""


class _ConfigFileHandler(FileSystemEventHandler):
    """Forwards writes to the config file onto the provider's event loop."""

    def __init__(self, provider: "LocalFileConfigProvider", loop: asyncio.AbstractEventLoop):
        self.provider = provider
        self.loop = loop

    def _is_config_file(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        targets = {event.src_path, getattr(event, "dest_path", "") or ""}
        return any(
            path and Path(path).resolve() == self.provider.config_path.resolve()
            for path in targets
        )

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in ("modified", "created", "moved"):
            return
        if not self._is_config_file(event) or not self.provider.file_changed():
            return
        if self.loop.is_closed():
            return
        logger.debug("Config file changed, reloading", path=str(self.provider.config_path))
        asyncio.run_coroutine_threadsafe(self.provider.reload(), self.loop)


class LocalFileConfigProvider(ConfigProvider):
    """Configuration stored in a local JSON file, hot-reloaded with watchdog."""

    def __init__(
        self,
        config_path: Path,
        defaults: dict[str, Any] | None = None,
        *,
        create_if_missing: bool = True,
    ):
        self.config_path = Path(config_path)
        self.defaults = defaults or {}
        self.create_if_missing = create_if_missing
        self._observer: Any = None
        self._callback: ConfigCallback | None = None
        self._last_mtime: float | None = None
        self._last_valid_config: dict[str, Any] | None = None
        # Values as written in the file, without defaults layered in
        self._user_config: dict[str, Any] | None = None

    def file_changed(self) -> bool:
        """True if the file's mtime differs from the last load or save."""
        try:
            return self.config_path.stat().st_mtime != self._last_mtime
        except FileNotFoundError:
            return False

    def _remember(self, user_config: dict[str, Any], effective: dict[str, Any]) -> None:
        self._user_config = dict(user_config)
        self._last_valid_config = dict(effective)
        try:
            self._last_mtime = self.config_path.stat().st_mtime
        except FileNotFoundError:
            self._last_mtime = None

    def _last_good(self, reason: str) -> dict[str, Any]:
        if self._last_valid_config is not None:
            logger.warning(
                "Keeping last valid configuration",
                reason=reason,
                path=str(self.config_path),
            )
            return dict(self._last_valid_config)
        logger.warning("Falling back to default configuration", reason=reason)
        return dict(self.defaults)

    async def load(self) -> dict[str, Any]:
        """Load the file, creating it from defaults if it does not exist.

        Raises:
            ConfigValidationError: if the file parses but holds invalid values
        """
        if not self.config_path.exists():
            if self.create_if_missing:
                logger.info("Creating config file with defaults", path=str(self.config_path))
                await self.save({})
            else:
                self._user_config = {}
                self._last_valid_config = dict(self.defaults)
            return dict(self.defaults)

        try:
            user_config = json.loads(self.config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(
                "Invalid JSON in config file",
                error=e.msg,
                line=e.lineno,
                column=e.colno,
                path=str(self.config_path),
            )
            return self._last_good("invalid JSON")
        except OSError as e:
            logger.error("Failed to read config file", error=str(e), path=str(self.config_path))
            return self._last_good("read error")

        if not isinstance(user_config, dict):
            logger.error("Config file must hold a JSON object", path=str(self.config_path))
            return self._last_good("not a JSON object")

        effective = deep_merge(self.defaults, user_config)
        validate_config(effective)
        self._remember(user_config, effective)
        logger.debug("Config loaded", path=str(self.config_path))
        return effective

    async def save(self, config: dict[str, Any]) -> None:
        """Validate and atomically write config (merged over defaults)."""
        effective = deep_merge(self.defaults, config)
        validate_config(effective)

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.config_path.with_name(self.config_path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(effective, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        tmp_path.replace(self.config_path)
        self._remember(effective, effective)
        logger.debug("Config saved", path=str(self.config_path))

    async def reload(self) -> None:
        """Reload after an external edit and notify the watcher callback."""
        previous = self._last_valid_config
        try:
            config = await self.load()
        except ValueError as e:
            logger.error("Ignoring invalid config change", error=str(e))
            return
        # Half-written files fall back to the previous config; nothing to announce
        if config == previous:
            return
        if self._callback is not None:
            self._callback(config)

    async def watch(self, callback: ConfigCallback) -> None:
        self._callback = callback
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        # Watch the directory: editors replace the file rather than write in place
        observer = Observer()
        observer.schedule(
            _ConfigFileHandler(self, asyncio.get_running_loop()),
            str(self.config_path.parent),
            recursive=False,
        )
        observer.start()
        self._observer = observer
        logger.info("Watching config file", path=str(self.config_path))

    async def stop_watching(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        try:
            await asyncio.wait_for(asyncio.to_thread(observer.join, 1.0), timeout=2.0)
        except TimeoutError:
            logger.debug("Config watcher did not stop in time")
        logger.info("Stopped watching config file")
