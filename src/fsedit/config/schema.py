"""Pydantic models for fsedit configuration schema."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from fsedit.config.constants import (
    DEFAULT_EXCLUDED_FILES,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_READ_BYTES,
    DEFAULT_MAX_WRITE_BYTES,
    VALID_LOG_LEVELS,
)


def _clean_patterns(v: list[str]) -> list[str]:
    cleaned: list[str] = []
    for pattern in v:
        pattern = pattern.strip()
        if pattern and pattern not in cleaned:
            cleaned.append(pattern)
    return cleaned


class ProjectConfig(BaseModel):
    """Per-project settings."""

    name: str | None = None
    root: Path | None = None
    excluded_files: list[str] = Field(default_factory=list)

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: Path | None) -> Path | None:
        """Expand ``~`` and resolve the project root."""
        if v is None:
            return None
        return v.expanduser().resolve()

    @field_validator("excluded_files")
    @classmethod
    def clean_excluded_files(cls, v: list[str]) -> list[str]:
        return _clean_patterns(v)


class WorkspaceSettings(BaseModel):
    """Root configuration model for fsedit settings."""

    version: str = "1.0"
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    excluded_files: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_FILES))
    log_level: str = DEFAULT_LOG_LEVEL
    max_read_bytes: int = Field(default=DEFAULT_MAX_READ_BYTES, gt=0)
    max_write_bytes: int = Field(default=DEFAULT_MAX_WRITE_BYTES, gt=0)

    @field_validator("excluded_files")
    @classmethod
    def clean_excluded_files(cls, v: list[str]) -> list[str]:
        return _clean_patterns(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize the log level name."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {sorted(VALID_LOG_LEVELS)}")
        return level

    def effective_excluded_patterns(self) -> list[str]:
        """Global patterns followed by the project's own, without duplicates.

        Example:
            >>> settings = WorkspaceSettings(excluded_files=[".git"])
            >>> settings.project.excluded_files = ["dist/**", ".git"]
            >>> settings.effective_excluded_patterns()
            ['.git', 'dist/**']
        """
        return _clean_patterns(self.excluded_files + self.project.excluded_files)

    def model_dump_json_pretty(self, **kwargs: Any) -> str:
        """Dump model to pretty-printed JSON string."""
        return self.model_dump_json(indent=2, exclude_none=True, **kwargs)

    @classmethod
    def get_json_schema(cls) -> dict[str, Any]:
        """Get JSON schema for the settings model."""
        return cls.model_json_schema()
