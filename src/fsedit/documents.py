"""Line-addressed text documents.

A ``LineDocument`` is a file's content as an immutable, 1-based sequence
of lines. Edits never mutate a document in place; they produce a new one.
Files are read and written as UTF-8, and writes go through a temp file
plus ``os.replace`` so readers never observe a half-written file.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from fsedit.exceptions import FileOperationError, MissingFileError
from fsedit.sandbox import SafePath

logger = logging.getLogger(__name__)

# Bytes sampled when sniffing for binary content
BINARY_SNIFF_BYTES = 8192

# mkstemp creates 0o600 files; new files get regular permissions instead
NEW_FILE_MODE = 0o644


@dataclass(frozen=True)
class LineDocument:
    """Immutable sequence of text lines addressed from 1.

    Attributes:
        lines: Line texts without their terminators
        trailing_newline: Whether the source text ended with a newline
        newline: Line terminator used when joining (``\\n`` or ``\\r\\n``)
    """

    lines: tuple[str, ...] = ()
    trailing_newline: bool = False
    newline: str = "\n"

    @classmethod
    def from_text(cls, text: str) -> "LineDocument":
        """Split text on newline boundaries.

        Only ``\\n`` and ``\\r\\n`` end a line; a lone ``\\r`` stays part of
        the line text. A file that uses ``\\r\\n`` keeps that terminator when
        joined again. An empty string is a document with zero lines.

        Example:
            >>> LineDocument.from_text("a\\nb\\n").lines
            ('a', 'b')
        """
        if not text:
            return cls((), False)
        newline = "\r\n" if "\r\n" in text else "\n"
        normalized = text.replace("\r\n", "\n")
        trailing = normalized.endswith("\n")
        if trailing:
            normalized = normalized[:-1]
        return cls(tuple(normalized.split("\n")), trailing, newline)

    @classmethod
    def from_lines(cls, lines, trailing_newline: bool = False) -> "LineDocument":
        return cls(tuple(lines), trailing_newline)

    def to_text(self) -> str:
        """Join lines with the document's terminator, restoring the trailing newline."""
        if not self.lines:
            return ""
        text = self.newline.join(self.lines)
        return text + self.newline if self.trailing_newline else text

    def line(self, number: int) -> str:
        """Return the text of a 1-based line number."""
        if number < 1 or number > len(self.lines):
            raise IndexError(f"Line {number} is out of range (1-{len(self.lines)})")
        return self.lines[number - 1]

    def slice(self, start: int, end: int) -> list[tuple[int, str]]:
        """Return ``(number, text)`` pairs for lines ``start..end`` inclusive, clipped."""
        start = max(start, 1)
        end = min(end, len(self.lines))
        return [(n, self.lines[n - 1]) for n in range(start, end + 1)]

    def __len__(self) -> int:
        return len(self.lines)


def split_content(content: str) -> list[str]:
    """Split an edit payload into the lines it contributes.

    An empty payload contributes one empty line, so replacing a line with
    ``""`` blanks it rather than deleting it (use a delete for that).
    """
    normalized = content.replace("\r\n", "\n")
    return normalized.split("\n")


def is_binary_file(path: Path) -> bool:
    """Check the first 8KB for NUL bytes."""
    with open(path, "rb") as f:
        return b"\x00" in f.read(BINARY_SNIFF_BYTES)


def read_text(safe_path: SafePath) -> str:
    """Read a UTF-8 text file inside the sandbox.

    Raises:
        MissingFileError: If the path does not exist or is not a regular file
        FileOperationError: If the read fails or the content is not UTF-8
    """
    path = safe_path.absolute
    if not path.is_file():
        raise MissingFileError(safe_path.logical)
    try:
        # Keep \r\n as-is so the terminator survives an edit
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise FileOperationError(
            safe_path.logical, f"File is not valid UTF-8 text: {safe_path.logical}", e
        ) from e
    except OSError as e:
        raise FileOperationError(
            safe_path.logical, f"Error reading file {safe_path.logical}: {e.strerror or e}", e
        ) from e


def read_document(safe_path: SafePath) -> LineDocument:
    """Read a file and split it into a LineDocument."""
    return LineDocument.from_text(read_text(safe_path))


def atomic_write_text(safe_path: SafePath, content: str) -> int:
    """Write content atomically (temp file in the same directory + rename).

    Concurrent writers to the same path race as last-writer-wins; readers
    see either the old or the new content, never a partial file.

    Returns:
        Number of bytes written

    Raises:
        FileOperationError: If the write or rename fails
    """
    path = safe_path.absolute
    data = content.encode("utf-8")
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise FileOperationError(
            safe_path.logical, f"Error writing to {safe_path.logical}: {e.strerror or e}", e
        ) from e

    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(data)
        if path.exists():
            # Keep the original permission bits
            os.chmod(temp_path, path.stat().st_mode & 0o7777)
        else:
            os.chmod(temp_path, NEW_FILE_MODE)
        os.replace(temp_path, path)
    except OSError as e:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise FileOperationError(
            safe_path.logical, f"Error writing to {safe_path.logical}: {e.strerror or e}", e
        ) from e

    logger.debug(f"Wrote {len(data)} bytes to {safe_path.relative}")
    return len(data)


def write_document(safe_path: SafePath, document: LineDocument) -> int:
    return atomic_write_text(safe_path, document.to_text())
