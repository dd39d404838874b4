"""Configuration module for iterview."""

from .defaults import get_default_config
from .logging_config import get_logging_config
from .manager import ConfigManager, create_config_manager, get_config_manager
from .providers import ConfigProvider, LocalFileConfigProvider
from .schema import ConfigValidationError, IterviewConfig, validate_config
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "get_logging_config",
    "ConfigManager",
    "ConfigValidationError",
    "IterviewConfig",
    "create_config_manager",
    "get_config_manager",
    "ConfigProvider",
    "LocalFileConfigProvider",
    "get_default_config",
    "validate_config",
]
