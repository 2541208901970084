"""Batched, line-addressed editing of text files.

An edit batch is a list of insert, replace and delete operations that all
refer to line numbers of the same snapshot of a file. The batch is
validated as a whole (bounds and overlaps) before anything is computed,
then applied from the highest line number down so that no operation's
coordinates are shifted by another. Either every operation is applied or
none is.

Preview mode computes the result and a diff against the original without
touching the file.
"""

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from fsedit.diff import DiffLine, diff_lines, has_changes, render_diff
from fsedit.documents import LineDocument, read_document, split_content, write_document
from fsedit.exceptions import InvalidRangeError
from fsedit.sandbox import SafePath

logger = logging.getLogger(__name__)

STALE_LINES_NOTICE = (
    "Line numbers have shifted; re-read the file before issuing another edit against it."
)
PREVIEW_NOTICE = (
    "Preview only, the file was not modified. Run again with preview disabled to save; "
    "line numbers will shift once saved, so re-read the file before further edits."
)


class InsertOp(BaseModel):
    """Insert content before (or after) a line.

    With ``after=False`` the content becomes the new line ``at_line``;
    with ``after=True`` it follows line ``at_line``. Multi-line content is
    inserted as multiple lines.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["insert"] = "insert"
    at_line: int = Field(ge=1, description="Anchor line number (1-based)")
    content: str = Field(description="Text to insert")
    after: bool = Field(default=False, description="Insert after the anchor line")

    @property
    def start_line(self) -> int:
        return self.at_line

    @property
    def end_line(self) -> int:
        return self.at_line


class ReplaceOp(BaseModel):
    """Replace lines ``start_line..end_line`` inclusive with content."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["replace"] = "replace"
    start_line: int = Field(ge=1, description="First line to replace (1-based)")
    end_line: int = Field(ge=1, description="Last line to replace (1-based, inclusive)")
    content: str = Field(description="Replacement text")

    @model_validator(mode="after")
    def check_order(self) -> "ReplaceOp":
        if self.start_line > self.end_line:
            raise ValueError(
                f"start_line ({self.start_line}) must not exceed end_line ({self.end_line})"
            )
        return self


class DeleteOp(BaseModel):
    """Delete lines ``start_line..end_line`` inclusive."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["delete"] = "delete"
    start_line: int = Field(ge=1, description="First line to delete (1-based)")
    end_line: int = Field(ge=1, description="Last line to delete (1-based, inclusive)")

    @model_validator(mode="after")
    def check_order(self) -> "DeleteOp":
        if self.start_line > self.end_line:
            raise ValueError(
                f"start_line ({self.start_line}) must not exceed end_line ({self.end_line})"
            )
        return self


EditOperation = Annotated[Union[InsertOp, ReplaceOp, DeleteOp], Field(discriminator="kind")]

_operations_adapter = TypeAdapter(list[EditOperation])


def parse_operations(raw: Iterable, kind: str | None = None) -> list:
    """Build operation models from dicts (or pass models through).

    Args:
        raw: Operation models or dicts
        kind: Default ``kind`` for dicts that do not name one

    Raises:
        InvalidRangeError: If any entry fails validation; nothing is applied
    """
    items = []
    for item in raw:
        if isinstance(item, dict) and kind is not None and "kind" not in item:
            item = {**item, "kind": kind}
        items.append(item)
    try:
        return _operations_adapter.validate_python(items)
    except ValidationError as e:
        details = "; ".join(_describe_error(err) for err in e.errors())
        raise InvalidRangeError(f"Invalid edit batch: {details}") from e


def _describe_error(err: dict) -> str:
    loc = err.get("loc") or ()
    if loc and isinstance(loc[0], int):
        return f"operation {loc[0] + 1}: {err['msg']}"
    return err["msg"]


@dataclass(frozen=True)
class _Splice:
    """An operation translated to original-document coordinates."""

    index: int
    remove: int
    lines: tuple[str, ...]
    position: int


@dataclass
class EditResult:
    """Outcome of an edit batch.

    Attributes:
        path: Project-relative path of the edited file
        preview: True if nothing was written
        operations: Number of operations in the batch
        message: Caller-facing summary including the stale-line notice
        diff: Structured line diff between original and result
        diff_text: Rendered diff
        line_count: Number of lines after the edit
        bytes_written: Bytes written (0 in preview mode)
    """

    path: str
    preview: bool
    operations: int
    message: str
    diff: list[DiffLine] = field(default_factory=list)
    diff_text: str = ""
    line_count: int = 0
    bytes_written: int = 0

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "preview": self.preview,
            "operations": self.operations,
            "message": self.message,
            "diff": [entry.to_dict() for entry in self.diff],
            "diff_text": self.diff_text,
            "line_count": self.line_count,
            "bytes_written": self.bytes_written,
        }


class _PathLocks:
    """Per-file locks serializing read-modify-write cycles in this process."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def for_path(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


_path_locks = _PathLocks()


def validate_batch(document: LineDocument, operations: Sequence) -> None:
    """Check bounds and overlaps for a whole batch.

    Rules:
    - Replace/Delete ranges must lie within ``1..len(document)``
    - Inserts anchor on an existing line; ``after=False`` may also use
      ``len(document) + 1`` to append
    - No two ranges may overlap, no insert may land between two lines of
      the same range, and no two inserts may target the same position

    Raises:
        InvalidRangeError: On the first violation found
    """
    if not operations:
        raise InvalidRangeError("Edit batch is empty")

    total = len(document)
    ranges: list[tuple[int, int, int]] = []
    insert_positions: dict[int, int] = {}

    for number, op in enumerate(operations, start=1):
        if isinstance(op, InsertOp):
            limit = total if op.after else total + 1
            if op.at_line > limit:
                raise InvalidRangeError(
                    f"Operation {number}: insert line {op.at_line} is out of range "
                    f"(file has {total} lines)"
                )
            position = op.at_line if op.after else op.at_line - 1
            if position in insert_positions:
                raise InvalidRangeError(
                    f"Operation {number}: insert position overlaps operation "
                    f"{insert_positions[position]}"
                )
            insert_positions[position] = number
        else:
            if op.end_line > total:
                raise InvalidRangeError(
                    f"Operation {number}: lines {op.start_line}-{op.end_line} are out of range "
                    f"(file has {total} lines)"
                )
            ranges.append((op.start_line, op.end_line, number))

    ranges.sort()
    for (s1, e1, n1), (s2, e2, n2) in zip(ranges, ranges[1:]):
        if s2 <= e1:
            raise InvalidRangeError(
                f"Operation {n2}: lines {s2}-{e2} overlap operation {n1} (lines {s1}-{e1})"
            )

    for number, op in enumerate(operations, start=1):
        if not isinstance(op, InsertOp):
            continue
        # Gap index: 0 is before line 1, n is after line n
        gap = op.at_line if op.after else op.at_line - 1
        for start, end, other in ranges:
            if start <= gap < end:
                raise InvalidRangeError(
                    f"Operation {number}: insert at line {op.at_line} falls inside "
                    f"operation {other} (lines {start}-{end})"
                )


def apply_operations(document: LineDocument, operations: Sequence) -> LineDocument:
    """Apply a validated batch and return the new document.

    Operations are sorted by starting position descending and applied
    against a copy of the original lines, so submission order never
    changes the result.

    Example:
        >>> doc = LineDocument.from_lines(["a", "b", "c", "d", "e"])
        >>> ops = [DeleteOp(start_line=4, end_line=4), ReplaceOp(start_line=2, end_line=2, content="B")]
        >>> apply_operations(doc, ops).lines
        ('a', 'B', 'c', 'e')
    """
    splices = [_to_splice(op, position) for position, op in enumerate(operations)]
    # Equal indexes: removals before inserts, so inserted text lands in front
    splices.sort(key=lambda s: (s.index, s.remove > 0, -s.position), reverse=True)

    lines = list(document.lines)
    for splice in splices:
        lines[splice.index : splice.index + splice.remove] = splice.lines

    trailing = document.trailing_newline or (not document.lines and bool(lines))
    return LineDocument(tuple(lines), trailing, document.newline)


def _to_splice(op, position: int) -> _Splice:
    if isinstance(op, InsertOp):
        index = op.at_line if op.after else op.at_line - 1
        return _Splice(index, 0, tuple(split_content(op.content)), position)
    if isinstance(op, ReplaceOp):
        count = op.end_line - op.start_line + 1
        return _Splice(op.start_line - 1, count, tuple(split_content(op.content)), position)
    if isinstance(op, DeleteOp):
        count = op.end_line - op.start_line + 1
        return _Splice(op.start_line - 1, count, (), position)
    raise InvalidRangeError(f"Unsupported edit operation: {type(op).__name__}")


class LineEditor:
    """Applies edit batches to files inside the sandbox.

    Example:
        >>> editor = LineEditor()
        >>> result = editor.apply(safe_path, [ReplaceOp(start_line=2, end_line=2, content="B")])
        >>> print(result.diff_text)
    """

    def __init__(self, logger: logging.Logger | None = None, diff_context: int | None = 3):
        """Initialize LineEditor.

        Args:
            logger: Optional logger (defaults to the module logger)
            diff_context: Unchanged lines shown around changes in rendered diffs
        """
        self.logger = logger or logging.getLogger(__name__)
        self.diff_context = diff_context

    def apply(self, safe_path: SafePath, operations: Iterable, preview: bool = False) -> EditResult:
        """Validate and apply an edit batch.

        Args:
            safe_path: Target file (must exist)
            operations: Operation models or dicts carrying a ``kind``
            preview: Compute and return the diff without writing

        Returns:
            EditResult with the diff and caller-facing message

        Raises:
            MissingFileError: If the file does not exist
            InvalidRangeError: If the batch is malformed; nothing is written
            FileOperationError: If reading or writing fails
        """
        ops = parse_operations(operations)

        with _path_locks.for_path(str(safe_path.absolute)):
            original = read_document(safe_path)
            validate_batch(original, ops)
            updated = apply_operations(original, ops)

            diff = diff_lines(original, updated)
            diff_text = render_diff(diff, self.diff_context) if has_changes(diff) else ""

            if preview:
                message = (
                    f"Preview of {len(ops)} operation(s) on {safe_path.logical}. {PREVIEW_NOTICE}"
                )
                self.logger.debug(f"Previewed {len(ops)} edit(s) on {safe_path.relative}")
                return EditResult(
                    path=safe_path.logical,
                    preview=True,
                    operations=len(ops),
                    message=message,
                    diff=diff,
                    diff_text=diff_text,
                    line_count=len(updated),
                )

            written = write_document(safe_path, updated)

        self.logger.info(f"Applied {len(ops)} edit(s) to {safe_path.relative}")
        return EditResult(
            path=safe_path.logical,
            preview=False,
            operations=len(ops),
            message=f"Applied {len(ops)} operation(s) to {safe_path.logical}. {STALE_LINES_NOTICE}",
            diff=diff,
            diff_text=diff_text,
            line_count=len(updated),
            bytes_written=written,
        )

    def insert_lines(
        self, safe_path: SafePath, inserts: Iterable, after: bool = False, preview: bool = False
    ) -> EditResult:
        """Insert at several anchors; ``after`` applies to dicts that omit it."""
        items = [
            {"after": after, **item} if isinstance(item, dict) else item for item in inserts
        ]
        return self.apply(safe_path, parse_operations(items, kind="insert"), preview=preview)

    def replace_lines(
        self, safe_path: SafePath, replacements: Iterable, preview: bool = True
    ) -> EditResult:
        """Replace several ranges. Previews by default."""
        return self.apply(safe_path, parse_operations(replacements, kind="replace"), preview=preview)

    def delete_lines(
        self, safe_path: SafePath, deletions: Iterable, preview: bool = False
    ) -> EditResult:
        return self.apply(safe_path, parse_operations(deletions, kind="delete"), preview=preview)
