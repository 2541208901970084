"""Logging and workspace setup for a CLI invocation."""

import logging
import os
from pathlib import Path

from fsedit.config import load_config, merge_with_env
from fsedit.config.manager import get_config_path
from fsedit.config.schema import WorkspaceSettings

logger = logging.getLogger(__name__)


def resolve_log_level(settings: WorkspaceSettings | None = None) -> str:
    """Pick the log level: FSEDIT_LOG_LEVEL, then LOG_LEVEL, then settings, then INFO."""
    log_level = os.getenv("FSEDIT_LOG_LEVEL") or os.getenv("LOG_LEVEL")
    if not log_level and settings is not None:
        log_level = settings.log_level
    return (log_level or "INFO").upper()


def setup_logging(
    settings: WorkspaceSettings | None = None, log_file: Path | None = None
) -> str:
    """Send log records to a file (not the console).

    Args:
        settings: Loaded settings, used for the log level fallback
        log_file: Log file path; defaults to ~/.fsedit/logs/fsedit.log

    Returns:
        Path to log file as string

    Example:
        >>> setup_logging()
        '/Users/user/.fsedit/logs/fsedit.log'
    """
    if log_file is None:
        log_file = get_config_path().parent / "logs" / "fsedit.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = resolve_log_level(settings)
    numeric_level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=str(log_file),
        filemode="a",
        force=True,  # Reconfigure if already configured
    )
    logger.debug(f"Logging to {log_file} at level {log_level}")
    return str(log_file)


def load_settings(
    root: Path | None = None, extra_excludes: list[str] | None = None
) -> WorkspaceSettings:
    """Load settings, apply environment overrides, then command-line overrides.

    The project root falls back to the current directory when neither the
    settings file, FSEDIT_PROJECT_ROOT nor ``--root`` name one.

    Raises:
        ConfigurationError: If the settings file or an override is invalid
    """
    settings = merge_with_env(load_config())
    if root is not None:
        settings.project.root = root.expanduser().resolve()
    elif settings.project.root is None:
        settings.project.root = Path.cwd().resolve()
    if extra_excludes:
        settings.project.excluded_files = settings.project.excluded_files + list(extra_excludes)
    return settings
