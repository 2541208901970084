"""Configuration file manager for loading, saving, and overriding fsedit settings."""

import json
import os
from pathlib import Path

from pydantic import ValidationError

from .constants import CONFIG_DIR_NAME, CONFIG_FILE_NAME
from .schema import WorkspaceSettings


class ConfigurationError(Exception):
    """Raised when configuration operations fail."""

    pass


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Returns:
        Path to ~/.fsedit/settings.json
    """
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_config(config_path: Path | None = None) -> WorkspaceSettings:
    """Load configuration from JSON file.

    Args:
        config_path: Optional path to config file. Defaults to ~/.fsedit/settings.json

    Returns:
        WorkspaceSettings loaded from file, or default settings if the file doesn't exist

    Raises:
        ConfigurationError: If file exists but is invalid JSON or fails validation

    Example:
        >>> settings = load_config()
        >>> settings.excluded_files
        ['.git', '.env', '.env.*', '*.pem', '*.key']
    """
    if config_path is None:
        config_path = get_config_path()

    # Return defaults if file doesn't exist
    if not config_path.exists():
        return WorkspaceSettings()

    try:
        with open(config_path) as f:
            data = json.load(f)

        return WorkspaceSettings(**data)

    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed for {config_path}:\n{e}") from e
    except (OSError, TypeError) as e:
        raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}") from e


def save_config(settings: WorkspaceSettings, config_path: Path | None = None) -> None:
    """Save configuration to JSON file.

    Sets restrictive permissions (0o600) on POSIX systems.

    Args:
        settings: WorkspaceSettings instance to save
        config_path: Optional path to config file. Defaults to ~/.fsedit/settings.json

    Raises:
        ConfigurationError: If save operation fails
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        old_umask = os.umask(0o077) if os.name != "nt" else None
        try:
            with open(config_path, "w") as f:
                f.write(settings.model_dump_json_pretty())

            if os.name != "nt":
                os.chmod(config_path, 0o600)
        finally:
            if old_umask is not None:
                os.umask(old_umask)

    except OSError as e:
        raise ConfigurationError(f"Failed to save configuration to {config_path}: {e}") from e


def merge_with_env(settings: WorkspaceSettings) -> WorkspaceSettings:
    """Return a copy of the settings with environment overrides applied.

    Environment variables take precedence over file settings:

    - ``FSEDIT_PROJECT_ROOT``: project root directory
    - ``FSEDIT_EXCLUDED_FILES``: comma-separated patterns appended to the
      project's own exclusions
    - ``FSEDIT_LOG_LEVEL``: log level name

    Raises:
        ConfigurationError: If an override fails validation

    Example:
        >>> settings = merge_with_env(load_config())
        >>> settings.project.root
        PosixPath('/home/user/project')
    """
    data = settings.model_dump()

    if os.getenv("FSEDIT_PROJECT_ROOT"):
        data["project"]["root"] = os.getenv("FSEDIT_PROJECT_ROOT")

    if os.getenv("FSEDIT_EXCLUDED_FILES"):
        extra = [p for p in os.getenv("FSEDIT_EXCLUDED_FILES", "").split(",") if p.strip()]
        data["project"]["excluded_files"] = data["project"]["excluded_files"] + extra

    if os.getenv("FSEDIT_LOG_LEVEL"):
        data["log_level"] = os.getenv("FSEDIT_LOG_LEVEL")

    try:
        return WorkspaceSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment override:\n{e}") from e
