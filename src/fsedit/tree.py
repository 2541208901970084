"""Directory tree enumeration under exclusion rules.

Builds a ``TreeNode`` hierarchy bottom-up and renders it as indented text.
Entries matching the merged exclusion patterns are left out (and excluded
directories are not descended into). Symlinked directories are listed as
leaves and never followed, so cyclic links cannot cause infinite
recursion.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from fsedit.exceptions import MissingDirectoryError
from fsedit.sandbox import ExclusionPatternSet, PathSandbox, SafePath

logger = logging.getLogger(__name__)

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


class TreeOptions(BaseModel):
    """Options for ``DirectoryTreeBuilder.generate_tree``."""

    exclude: list[str] = Field(
        default_factory=list, description="Extra exclusion patterns for this call only"
    )
    max_depth: int | None = Field(
        default=None, ge=1, description="Stop descending below this depth (None for unbounded)"
    )


@dataclass
class TreeNode:
    """One entry of a directory tree.

    Attributes:
        name: Entry name (the root node carries its project-relative path)
        kind: "file" or "directory"
        children: Child nodes, name-sorted (directories only)
        is_symlink: True for symlinks, which are never descended into
    """

    name: str
    kind: Literal["file", "directory"]
    children: list["TreeNode"] = field(default_factory=list)
    is_symlink: bool = False

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"

    def label(self) -> str:
        if self.is_symlink:
            return f"{self.name}@"
        return f"{self.name}/" if self.is_dir else self.name

    def to_dict(self) -> dict:
        data = {"name": self.name, "kind": self.kind, "is_symlink": self.is_symlink}
        if self.is_dir:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    def render(self) -> str:
        """Render the tree with box-drawing connectors.

        Example:
            >>> print(root.render())
            src/
            ├── app/
            │   └── main.py
            └── README.md
        """
        lines = [self.label()]
        _render_children(self, "", lines)
        return "\n".join(lines)


def _render_children(node: TreeNode, prefix: str, lines: list[str]) -> None:
    for index, child in enumerate(node.children):
        last = index == len(node.children) - 1
        lines.append(f"{prefix}{LAST_BRANCH if last else BRANCH}{child.label()}")
        if child.is_dir and child.children:
            _render_children(child, prefix + (SPACE if last else PIPE), lines)


class DirectoryTreeBuilder:
    """Recursively enumerates a directory inside the sandbox.

    Example:
        >>> builder = DirectoryTreeBuilder(sandbox)
        >>> print(builder.generate_tree(sandbox.resolve("src"), {"exclude": ["*.pyc"]}))
    """

    def __init__(self, sandbox: PathSandbox, logger: logging.Logger | None = None):
        self.sandbox = sandbox
        self.logger = logger or logging.getLogger(__name__)

    def build(self, safe_dir: SafePath, options: TreeOptions | dict | None = None) -> TreeNode:
        """Build the TreeNode hierarchy for a directory.

        Raises:
            MissingDirectoryError: If the path is not an existing directory
        """
        if options is None:
            options = TreeOptions()
        elif isinstance(options, dict):
            options = TreeOptions(**options)

        if not safe_dir.absolute.is_dir():
            raise MissingDirectoryError(safe_dir.logical)

        patterns = self.sandbox.patterns.extend(options.exclude)
        self.logger.debug(f"Building tree for {safe_dir.relative} excluding {list(patterns)}")
        root = TreeNode(name=safe_dir.logical, kind="directory")
        root.children = self._children(safe_dir.absolute, patterns, 1, options.max_depth)
        return root

    def generate_tree(self, safe_dir: SafePath, options: TreeOptions | dict | None = None) -> str:
        """Return the textual tree for a directory."""
        return self.build(safe_dir, options).render()

    def _children(
        self, directory: Path, patterns: ExclusionPatternSet, depth: int, max_depth: int | None
    ) -> list[TreeNode]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self.logger.warning(
                f"Cannot list directory {self.sandbox.to_relative(directory)}: {e.strerror}"
            )
            return []

        nodes: list[TreeNode] = []
        for entry in entries:
            relative = self.sandbox.to_relative(entry.path)
            try:
                is_link = entry.is_symlink()
                # Symlinks are classified by their target but never followed
                is_dir = entry.is_dir()
            except OSError:
                continue

            if patterns.match(relative, is_dir=is_dir) is not None:
                continue

            node = TreeNode(
                name=entry.name, kind="directory" if is_dir else "file", is_symlink=is_link
            )
            if is_dir and not is_link and (max_depth is None or depth < max_depth):
                node.children = self._children(Path(entry.path), patterns, depth + 1, max_depth)
            nodes.append(node)

        return nodes
