"""Configuration settings for iterview.

This module provides a Settings class that wraps the ConfigManager,
providing property-based access to configuration values with hot-reload support.
"""

from __future__ import annotations

import os
from typing import Any

from iterview.config.constants import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_GIT_SEARCH_DEPTH,
    DEFAULT_MAX_CHECKPOINTS,
    DEFAULT_STORAGE_DIR,
)
from iterview.config.manager import ConfigManager
from iterview.config.schema import IterviewConfig, validate_config


class Settings:
    """Application settings with hot-reload support.

    Values come from the ConfigManager when one is attached, otherwise from
    ITERVIEW_* environment variables, otherwise from built-in defaults.
    """

    def __init__(self, config_manager: ConfigManager | None = None):
        self._config_manager = config_manager

    def _get(
        self,
        key: str,
        default: Any,
        env_key: str | None = None,
    ) -> Any:
        """Get config value from manager, fallback to env, then default."""
        if self._config_manager:
            return self._config_manager.get(key, default)
        if env_key and (env_val := os.getenv(env_key)):
            # Type conversion based on default type
            if isinstance(default, bool):
                return env_val.lower() in ("true", "1", "yes", "on")
            elif isinstance(default, int):
                return int(env_val)
            elif isinstance(default, list):
                return [part.strip() for part in env_val.split(",") if part.strip()]
            return env_val
        return default

    # Checkpoint Configuration
    @property
    def max_checkpoints(self) -> int:
        return self._get(
            "max_checkpoints", DEFAULT_MAX_CHECKPOINTS, "ITERVIEW_MAX_CHECKPOINTS"
        )

    @property
    def storage_dir(self) -> str:
        return self._get("storage_dir", DEFAULT_STORAGE_DIR, "ITERVIEW_STORAGE_DIR")

    @property
    def auto_gitignore(self) -> bool:
        return self._get("auto_gitignore", True, "ITERVIEW_AUTO_GITIGNORE")

    @property
    def git_search_depth(self) -> int:
        return self._get(
            "git_search_depth", DEFAULT_GIT_SEARCH_DEPTH, "ITERVIEW_GIT_SEARCH_DEPTH"
        )

    @property
    def exclude_dirs(self) -> list[str]:
        return self._get(
            "exclude_dirs", list(DEFAULT_EXCLUDE_DIRS), "ITERVIEW_EXCLUDE_DIRS"
        )

    def checkpoint_config(self) -> IterviewConfig:
        """Return the validated checkpoint engine configuration.

        Raises:
            ConfigValidationError: if any checkpoint key is invalid.
        """
        return validate_config(
            {
                "max_checkpoints": self.max_checkpoints,
                "storage_dir": self.storage_dir,
                "auto_gitignore": self.auto_gitignore,
                "git_search_depth": self.git_search_depth,
                "exclude_dirs": self.exclude_dirs,
            }
        )

    def validation_status(self) -> tuple[bool, list[str]]:
        """Return (is_valid, errors) without raising."""
        try:
            self.checkpoint_config()
            return True, []
        except ValueError as exc:
            errors = getattr(exc, "errors", None)
            return False, list(errors) if isinstance(errors, list) else [str(exc)]

    # Server Configuration
    @property
    def server_host(self) -> str:
        return self._get("server_host", "localhost", "SERVER_HOST")

    @property
    def server_port(self) -> int:
        return self._get("server_port", 8766, "SERVER_PORT")

    # Logging Configuration
    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


# Global settings instance (will be initialized with config manager)
settings = Settings()
