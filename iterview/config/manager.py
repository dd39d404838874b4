"""Configuration manager with hot-reload support."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from iterview.config.constants import CONFIG_FILE_NAME
from iterview.config.providers import ConfigProvider, LocalFileConfigProvider
from iterview.config.schema import deep_merge
from iterview.utils.logger import get_logger

logger = get_logger("config.manager")

T = TypeVar("T")

ChangeCallback = Callable[[dict[str, Any]], None]


class ConfigManager:
    """Holds the effective configuration and tells listeners when it changes.

    Reads are served from memory. Writes go through the provider, and
    reloads triggered by the provider's watcher replace the in-memory copy.
    """

    def __init__(self, provider: ConfigProvider):
        self.provider = provider
        self._config: dict[str, Any] = {}
        self._callbacks: list[ChangeCallback] = []

    async def initialize(self) -> None:
        self._config = await self.provider.load()
        logger.info("Configuration initialized", keys=sorted(self._config))

    async def start_watching(self) -> None:
        await self.provider.watch(self._on_config_changed)

    async def stop_watching(self) -> None:
        await self.provider.stop_watching()

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_typed(self, key: str, expected_type: type[T], default: T) -> T:
        """Return key if it holds expected_type, otherwise default (with a warning)."""
        value = self._config.get(key, default)
        # bool is an int subclass but never a valid count
        wrong_bool = expected_type is int and isinstance(value, bool)
        if isinstance(value, expected_type) and not wrong_bool:
            return value
        logger.warning(
            "Config type mismatch, using default",
            key=key,
            expected=expected_type.__name__,
            actual=type(value).__name__,
        )
        return default

    def get_int(self, key: str, default: int = 0) -> int:
        return self.get_typed(key, int, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self.get_typed(key, bool, default)

    def get_list(self, key: str, default: list | None = None) -> list:
        return self.get_typed(key, list, [] if default is None else default)

    async def update(self, updates: dict[str, Any]) -> None:
        """Merge updates into the stored values, persist them and notify.

        Raises:
            ConfigValidationError: if the result is invalid; nothing is changed
        """
        stored = getattr(self.provider, "_user_config", None)
        base = stored if isinstance(stored, dict) else self._config
        await self.provider.save(deep_merge(base, updates))
        self._config = deep_merge(self._config, updates)
        logger.info("Configuration updated", keys=sorted(updates))
        self._notify()

    def register_change_callback(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def _on_config_changed(self, new_config: dict[str, Any]) -> None:
        changed = sorted(
            key
            for key in set(self._config) | set(new_config)
            if self._config.get(key) != new_config.get(key)
        )
        self._config = new_config
        logger.info("Configuration reloaded", changed_keys=changed)
        self._notify()

    def _notify(self) -> None:
        for callback in self._callbacks:
            try:
                callback(dict(self._config))
            except Exception as e:
                # One bad listener must not stop the others from hearing about it
                logger.error(
                    "Config change callback failed",
                    error=str(e),
                    callback=getattr(callback, "__name__", repr(callback)),
                )


_config_manager: ConfigManager | None = None


def create_config_manager(
    config_dir: Path,
    *,
    defaults: dict[str, Any] | None = None,
) -> ConfigManager:
    """Create the process-wide manager backed by <config_dir>/config.json."""
    global _config_manager
    config_path = Path(config_dir) / CONFIG_FILE_NAME
    _config_manager = ConfigManager(LocalFileConfigProvider(config_path, defaults=defaults))
    logger.debug("Config manager created", config_path=str(config_path))
    return _config_manager


def get_config_manager() -> ConfigManager:
    if _config_manager is None:
        raise RuntimeError(
            "Config manager not initialized. Call create_config_manager() first."
        )
    return _config_manager
