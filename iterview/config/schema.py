from __future__ import annotations

from copy import deepcopy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from iterview.config.constants import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_GIT_SEARCH_DEPTH,
    DEFAULT_MAX_CHECKPOINTS,
    DEFAULT_STORAGE_DIR,
)


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge updates into base without mutating inputs.

    - Keys present in updates with non-None values are merged/overwritten
    - Keys present in updates with None values are skipped (preserve base value)
    - Keys not present in updates are preserved from base
    """
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and value is None:
            # Treat None as "not provided" so lower layers keep their values
            continue
        else:
            result[key] = value
    return result


class IterviewConfig(BaseModel):
    """Checkpoint engine configuration consumed by the services layer."""

    model_config = ConfigDict(extra="ignore")

    max_checkpoints: int = Field(DEFAULT_MAX_CHECKPOINTS, ge=1)
    storage_dir: str = DEFAULT_STORAGE_DIR
    auto_gitignore: bool = True
    git_search_depth: int = Field(DEFAULT_GIT_SEARCH_DEPTH, ge=1)
    exclude_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))

    @field_validator("storage_dir")
    @classmethod
    def _storage_dir_is_a_name(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError("storage_dir must be a single directory name")
        return value

    @field_validator("exclude_dirs")
    @classmethod
    def _drop_blank_names(cls, value: list[str]) -> list[str]:
        return [name.strip() for name in value if name and name.strip()]


class ConfigValidationError(ValueError):
    """Raised when configuration values fail validation."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def validate_config(config: dict[str, Any]) -> IterviewConfig:
    """Validate the checkpoint keys of a config dict.

    Raises:
        ConfigValidationError: listing every offending key.
    """
    try:
        return IterviewConfig.model_validate(config)
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ConfigValidationError(errors) from exc
