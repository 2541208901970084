"""Whole-file and directory operations inside the sandbox.

Reading with line ranges, atomic writes, deletes, moves, directory
creation and removal, and recursive file listing. Every method receives
a ``SafePath`` that has already passed resolution and the exclusion
guard.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass

from pydantic import BaseModel, Field, model_validator

from fsedit.config.constants import DEFAULT_MAX_READ_BYTES, DEFAULT_MAX_WRITE_BYTES
from fsedit.documents import LineDocument, atomic_write_text, is_binary_file, read_text
from fsedit.exceptions import (
    FileExistsInWorkspaceError,
    FileOperationError,
    InvalidPatternError,
    MissingDirectoryError,
    MissingFileError,
    PathRestrictedError,
)
from fsedit.sandbox import ExclusionPatternSet, PathSandbox, SafePath
from fsedit.search import path_sort_key
from fsedit.walk import iter_files

logger = logging.getLogger(__name__)


class ReadOptions(BaseModel):
    """Options for ``FileOperations.read_file``."""

    show_line_numbers: bool = Field(default=True, description="Prefix lines with their number")
    start_line: int = Field(default=1, ge=1, description="First line to return (1-based)")
    end_line: int | None = Field(
        default=None, ge=1, description="Last line to return (1-based, inclusive)"
    )
    max_lines: int | None = Field(default=None, ge=1, description="Maximum lines to return")

    @model_validator(mode="after")
    def check_range(self) -> "ReadOptions":
        if self.end_line is not None and self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must not be before start_line ({self.start_line})"
            )
        return self


@dataclass
class ReadResult:
    """A window of a text file.

    Attributes:
        path: Project-relative path
        content: Selected lines, optionally numbered
        total_lines: Number of lines in the file
        start_line: First line returned (1-based)
        end_line: Last line returned (0 if nothing was returned)
        truncated: True if lines after ``end_line`` exist but were cut off
        next_start_line: Where to continue reading, when truncated
    """

    path: str
    content: str
    total_lines: int
    start_line: int
    end_line: int
    truncated: bool = False
    next_start_line: int | None = None

    def metadata(self) -> dict:
        return {
            "path": self.path,
            "total_lines": self.total_lines,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "truncated": self.truncated,
            "next_start_line": self.next_start_line,
        }


def number_lines(pairs: list[tuple[int, str]]) -> str:
    """Format ``(number, text)`` pairs as ``"  7: text"`` rows."""
    if not pairs:
        return ""
    width = len(str(pairs[-1][0]))
    return "\n".join(f"{number:>{width}}: {text}" for number, text in pairs)


class FileOperations:
    """File and directory operations bound to a sandbox."""

    def __init__(
        self,
        sandbox: PathSandbox,
        max_read_bytes: int = DEFAULT_MAX_READ_BYTES,
        max_write_bytes: int = DEFAULT_MAX_WRITE_BYTES,
        logger: logging.Logger | None = None,
    ):
        self.sandbox = sandbox
        self.max_read_bytes = max_read_bytes
        self.max_write_bytes = max_write_bytes
        self.logger = logger or logging.getLogger(__name__)

    def read_file(
        self, safe_path: SafePath, options: ReadOptions | dict | None = None
    ) -> ReadResult:
        """Read a text file, optionally a line window of it.

        Raises:
            MissingFileError: If the file does not exist
            FileOperationError: If the file is too large, binary or unreadable
        """
        if options is None:
            options = ReadOptions()
        elif isinstance(options, dict):
            options = ReadOptions(**options)

        path = safe_path.absolute
        if not path.is_file():
            raise MissingFileError(safe_path.logical)

        try:
            size = path.stat().st_size
            binary = is_binary_file(path)
        except OSError as e:
            raise FileOperationError(
                safe_path.logical, f"Cannot read file {safe_path.logical}: {e.strerror or e}", e
            ) from e
        if size > self.max_read_bytes:
            raise FileOperationError(
                safe_path.logical,
                f"File size ({size} bytes) exceeds max read limit "
                f"({self.max_read_bytes} bytes): {safe_path.logical}",
            )
        if binary:
            raise FileOperationError(
                safe_path.logical,
                f"File appears to be binary (contains null bytes): {safe_path.logical}",
            )

        document = LineDocument.from_text(read_text(safe_path))
        total = len(document)
        start = options.start_line
        end = total if options.end_line is None else min(options.end_line, total)
        if options.max_lines is not None:
            end = min(end, start + options.max_lines - 1)

        pairs = document.slice(start, end)
        if options.show_line_numbers:
            content = number_lines(pairs)
        else:
            content = "\n".join(text for _, text in pairs)

        last = pairs[-1][0] if pairs else 0
        requested_end = total if options.end_line is None else min(options.end_line, total)
        truncated = bool(pairs) and last < requested_end
        return ReadResult(
            path=safe_path.logical,
            content=content,
            total_lines=total,
            start_line=start,
            end_line=last,
            truncated=truncated,
            next_start_line=last + 1 if truncated else None,
        )

    def write_file(self, safe_path: SafePath, content: str) -> str:
        """Create or overwrite a file atomically, creating parent directories.

        Raises:
            FileOperationError: If the content is too large, the target is a
                directory, or the write fails
        """
        size = len(content.encode("utf-8"))
        if size > self.max_write_bytes:
            raise FileOperationError(
                safe_path.logical,
                f"Content size ({size} bytes) exceeds max write limit "
                f"({self.max_write_bytes} bytes)",
            )
        if safe_path.absolute.is_dir():
            raise FileOperationError(
                safe_path.logical, f"Path is a directory: {safe_path.logical}"
            )

        existed = safe_path.absolute.exists()
        self._ensure_parent(safe_path)
        written = atomic_write_text(safe_path, content)
        verb = "Overwrote" if existed else "Created"
        self.logger.info(f"{verb} {safe_path.relative} ({written} bytes)")
        return f"{verb} {safe_path.logical} ({written} bytes)"

    def delete_file(self, safe_path: SafePath) -> str:
        """Delete a regular file.

        Raises:
            MissingFileError: If the path is not an existing file
            FileOperationError: If the unlink fails
        """
        # Unlink the entry as addressed so a symlink is removed, not its target
        path = safe_path.lexical
        if not path.is_file():
            raise MissingFileError(safe_path.logical)
        try:
            path.unlink()
        except OSError as e:
            raise FileOperationError(
                safe_path.logical, f"Error deleting {safe_path.logical}: {e.strerror or e}", e
            ) from e
        self.logger.info(f"Deleted {safe_path.relative}")
        return f"Deleted {safe_path.logical}"

    def move_file(self, source: SafePath, destination: SafePath) -> str:
        """Move or rename a file; never overwrites an existing destination.

        Raises:
            MissingFileError: If the source is not an existing file
            FileExistsInWorkspaceError: If the destination exists
            FileOperationError: If the rename fails
        """
        if not source.absolute.is_file():
            raise MissingFileError(source.logical)
        if destination.absolute.exists():
            raise FileExistsInWorkspaceError(destination.logical)

        self._ensure_parent(destination)
        try:
            shutil.move(str(source.lexical), str(destination.absolute))
        except OSError as e:
            raise FileOperationError(
                source.logical,
                f"Error moving {source.logical} to {destination.logical}: {e.strerror or e}",
                e,
            ) from e
        self.logger.info(f"Moved {source.relative} -> {destination.relative}")
        return f"Moved {source.logical} to {destination.logical}"

    def create_directory(self, safe_path: SafePath) -> str:
        """Create a directory and its parents; succeeds if it already exists.

        Raises:
            FileOperationError: If a non-directory is in the way or mkdir fails
        """
        path = safe_path.absolute
        if path.is_dir():
            return f"Directory already exists: {safe_path.logical}"
        if path.exists():
            raise FileOperationError(
                safe_path.logical, f"Path exists but is not a directory: {safe_path.logical}"
            )
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(
                safe_path.logical,
                f"Error creating directory {safe_path.logical}: {e.strerror or e}",
                e,
            ) from e
        self.logger.info(f"Created directory {safe_path.relative}")
        return f"Created directory {safe_path.logical}"

    def remove_directory(self, safe_path: SafePath) -> str:
        """Remove a directory tree.

        The project root itself cannot be removed, and neither can a
        directory containing excluded entries.

        Raises:
            PathRestrictedError: For the root, or when excluded entries are inside
            MissingDirectoryError: If the path is not an existing directory
            FileOperationError: If removal fails
        """
        if safe_path.is_root:
            raise PathRestrictedError(".", None)
        path = safe_path.absolute
        if not path.is_dir() or safe_path.lexical.is_symlink():
            raise MissingDirectoryError(safe_path.logical)

        protected = self._first_excluded_entry(safe_path)
        if protected is not None:
            raise PathRestrictedError(protected)

        try:
            shutil.rmtree(path)
        except OSError as e:
            raise FileOperationError(
                safe_path.logical,
                f"Error removing directory {safe_path.logical}: {e.strerror or e}",
                e,
            ) from e
        self.logger.info(f"Removed directory {safe_path.relative}")
        return f"Removed directory {safe_path.logical}"

    def list_files(self, safe_dir: SafePath, filter_pattern: str = "") -> list[str]:
        """List included files under a directory, project-relative and sorted.

        Args:
            safe_dir: Directory to list recursively
            filter_pattern: Optional regex matched (``re.search``) against relative paths

        Raises:
            MissingDirectoryError: If the path is not an existing directory
            InvalidPatternError: If the filter is not a valid regex
        """
        if not safe_dir.absolute.is_dir():
            raise MissingDirectoryError(safe_dir.logical)
        compiled = None
        if filter_pattern:
            try:
                compiled = re.compile(filter_pattern)
            except re.error as e:
                raise InvalidPatternError(filter_pattern, str(e)) from e

        items = [
            relative
            for _, relative in iter_files(
                self.sandbox, safe_dir.absolute, self.sandbox.patterns, self.logger
            )
            if compiled is None or compiled.search(relative)
        ]
        return sorted(items, key=path_sort_key)

    def _ensure_parent(self, safe_path: SafePath) -> None:
        parent = safe_path.absolute.parent
        if parent.is_dir():
            return
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(
                safe_path.logical,
                f"Error creating parent directory for {safe_path.logical}: {e.strerror or e}",
                e,
            ) from e

    def _first_excluded_entry(self, safe_dir: SafePath) -> str | None:
        """Return the first excluded path under a directory, if any."""
        patterns: ExclusionPatternSet = self.sandbox.patterns
        if not patterns:
            return None
        for current, dirnames, filenames in os.walk(safe_dir.absolute):
            for name in dirnames + filenames:
                relative = self.sandbox.to_relative(os.path.join(current, name))
                if patterns.match(relative, is_dir=name in dirnames) is not None:
                    return relative
        return None
