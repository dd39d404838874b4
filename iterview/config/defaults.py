"""Default configuration values for iterview."""

from typing import Any

from iterview.config.constants import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_GIT_SEARCH_DEPTH,
    DEFAULT_MAX_CHECKPOINTS,
    DEFAULT_STORAGE_DIR,
)


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        # Checkpoint retention and storage
        "max_checkpoints": DEFAULT_MAX_CHECKPOINTS,
        "storage_dir": DEFAULT_STORAGE_DIR,
        "auto_gitignore": True,
        # Repository discovery
        "git_search_depth": DEFAULT_GIT_SEARCH_DEPTH,
        "exclude_dirs": list(DEFAULT_EXCLUDE_DIRS),
        # Server Configuration
        "server_host": "localhost",
        "server_port": 8766,
        # Logging Configuration
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }
