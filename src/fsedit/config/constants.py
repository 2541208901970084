"""Configuration constants for fsedit.

Single source of truth for default configuration values, kept apart from
schema.py and manager.py to avoid circular imports.
"""

# Settings file location, relative to the user home directory
CONFIG_DIR_NAME = ".fsedit"
CONFIG_FILE_NAME = "settings.json"

# Patterns denied in every project unless the settings say otherwise
DEFAULT_EXCLUDED_FILES = [".git", ".env", ".env.*", "*.pem", "*.key"]

# Size limits
DEFAULT_MAX_READ_BYTES = 10_485_760  # 10MB
DEFAULT_MAX_WRITE_BYTES = 1_048_576  # 1MB

DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
