"""Configuration package for fsedit."""

from .constants import DEFAULT_EXCLUDED_FILES
from .manager import (
    ConfigurationError,
    get_config_path,
    load_config,
    merge_with_env,
    save_config,
)
from .schema import ProjectConfig, WorkspaceSettings

__all__ = [
    # Constants
    "DEFAULT_EXCLUDED_FILES",
    # Schema
    "ProjectConfig",
    "WorkspaceSettings",
    # Manager
    "ConfigurationError",
    "get_config_path",
    "load_config",
    "save_config",
    "merge_with_env",
]
