"""Line-level differences for edit previews.

Uses ``difflib.SequenceMatcher`` to build a minimal edit script between
two LineDocuments. The result is only ever rendered for human review; it
never decides whether a write happens.
"""

import difflib
from dataclasses import dataclass
from typing import Literal

from fsedit.documents import LineDocument

DiffKind = Literal["equal", "added", "removed"]

MARKERS = {"equal": " ", "added": "+", "removed": "-"}


@dataclass(frozen=True)
class DiffLine:
    """One entry of a line diff.

    Attributes:
        kind: "equal", "added" or "removed"
        line_number: Line number in the new document for added lines,
            otherwise in the original document (1-based)
        text: Line text without terminator
    """

    kind: DiffKind
    line_number: int
    text: str

    def to_dict(self) -> dict:
        return {"kind": self.kind, "line_number": self.line_number, "text": self.text}


def diff_lines(before: LineDocument, after: LineDocument) -> list[DiffLine]:
    """Compute a line diff between two documents.

    Changed blocks list their removed lines before their added lines.

    Example:
        >>> before = LineDocument.from_text("a\\nb\\nc")
        >>> after = LineDocument.from_text("a\\nB\\nc")
        >>> [(d.kind, d.line_number, d.text) for d in diff_lines(before, after)]
        [('equal', 1, 'a'), ('removed', 2, 'b'), ('added', 2, 'B'), ('equal', 3, 'c')]
    """
    old, new = before.lines, after.lines
    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    result: list[DiffLine] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            result.extend(DiffLine("equal", i + 1, old[i]) for i in range(i1, i2))
            continue
        if tag in ("replace", "delete"):
            result.extend(DiffLine("removed", i + 1, old[i]) for i in range(i1, i2))
        if tag in ("replace", "insert"):
            result.extend(DiffLine("added", j + 1, new[j]) for j in range(j1, j2))

    return result


def has_changes(diff: list[DiffLine]) -> bool:
    return any(entry.kind != "equal" for entry in diff)


def render_diff(diff: list[DiffLine], context: int | None = 3) -> str:
    """Render a diff as text, one ``<marker> <line> | <text>`` row per entry.

    Args:
        diff: Entries from ``diff_lines``
        context: Unchanged lines kept around each change; runs further away
            are collapsed into a single ``...`` row. ``None`` keeps everything.
    """
    if not diff:
        return ""

    width = len(str(max(entry.line_number for entry in diff)))
    keep = _visible_indexes(diff, context)
    rows: list[str] = []
    skipped = False

    for index, entry in enumerate(diff):
        if index not in keep:
            if not skipped:
                rows.append("...")
                skipped = True
            continue
        skipped = False
        rows.append(f"{MARKERS[entry.kind]} {entry.line_number:>{width}} | {entry.text}")

    return "\n".join(rows)


def _visible_indexes(diff: list[DiffLine], context: int | None) -> set[int]:
    if context is None:
        return set(range(len(diff)))
    changed = [i for i, entry in enumerate(diff) if entry.kind != "equal"]
    visible: set[int] = set()
    for i in changed:
        visible.update(range(max(0, i - context), min(len(diff), i + context + 1)))
    return visible
