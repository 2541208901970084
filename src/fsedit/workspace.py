"""Session facade tying the sandbox to every file operation.

A ``Workspace`` holds the project root and the merged exclusion patterns
for one session. Each method resolves its path arguments through the
sandbox, runs the exclusion guard, and delegates to the component that
does the work. Path fields in every result are project-relative.
"""

import logging
import os
from collections.abc import Iterable
from typing import TYPE_CHECKING

from fsedit.config.constants import DEFAULT_MAX_READ_BYTES, DEFAULT_MAX_WRITE_BYTES
from fsedit.editor import EditResult, LineEditor
from fsedit.files import FileOperations, ReadOptions, ReadResult
from fsedit.sandbox import ExclusionPatternSet, PathSandbox, SafePath
from fsedit.search import (
    FileGrepResult,
    GrepOptions,
    ProjectGrepOptions,
    ProjectGrepResult,
    SearchEngine,
    coerce_options,
)
from fsedit.tree import DirectoryTreeBuilder, TreeNode, TreeOptions

if TYPE_CHECKING:
    from fsedit.config.schema import WorkspaceSettings

logger = logging.getLogger(__name__)


class Workspace:
    """All file, search and edit operations for one project root.

    Example:
        >>> ws = Workspace("/home/user/project", [".git", ".env", "node_modules/**"])
        >>> print(ws.directory_tree("/"))
        >>> ws.edit_lines("src/app.py", [{"start_line": 3, "end_line": 3, "content": "x = 1"}])
    """

    def __init__(
        self,
        project_root: str | os.PathLike,
        excluded_patterns: Iterable[str] | ExclusionPatternSet | None = None,
        logger: logging.Logger | None = None,
        max_read_bytes: int = DEFAULT_MAX_READ_BYTES,
        max_write_bytes: int = DEFAULT_MAX_WRITE_BYTES,
    ):
        """Initialize Workspace.

        Args:
            project_root: Directory the session is confined to
            excluded_patterns: Merged global and project deny patterns
            logger: Optional logger shared by every component
            max_read_bytes: Largest file ``read_file`` will return
            max_write_bytes: Largest content ``write_file`` will accept
        """
        self.logger = logger or logging.getLogger(__name__)
        self.sandbox = PathSandbox(project_root, excluded_patterns, logger=self.logger)
        self.editor = LineEditor(logger=self.logger)
        self.search = SearchEngine(self.sandbox, logger=self.logger)
        self.trees = DirectoryTreeBuilder(self.sandbox, logger=self.logger)
        self.files = FileOperations(
            self.sandbox,
            max_read_bytes=max_read_bytes,
            max_write_bytes=max_write_bytes,
            logger=self.logger,
        )

    @classmethod
    def from_settings(
        cls, settings: "WorkspaceSettings", logger: logging.Logger | None = None
    ) -> "Workspace":
        """Build a workspace from loaded settings.

        Raises:
            ValueError: If the settings do not name a project root
        """
        if settings.project.root is None:
            raise ValueError(
                "No project root configured (set project.root or FSEDIT_PROJECT_ROOT)"
            )
        return cls(
            settings.project.root,
            settings.effective_excluded_patterns(),
            logger=logger,
            max_read_bytes=settings.max_read_bytes,
            max_write_bytes=settings.max_write_bytes,
        )

    @property
    def project_root(self):
        return self.sandbox.project_root

    @property
    def patterns(self) -> ExclusionPatternSet:
        return self.sandbox.patterns

    def _guard(self, path: str | os.PathLike, extra: Iterable[str] | None = None) -> SafePath:
        return self.sandbox.resolve_allowed(path, extra or None)

    # Tree and listing

    def tree(self, path: str = "/", options: TreeOptions | dict | None = None) -> TreeNode:
        """Build the directory tree below ``path`` as TreeNode objects."""
        options = coerce_options(options, TreeOptions)
        safe = self._guard(path, options.exclude)
        return self.trees.build(safe, options)

    def directory_tree(self, path: str = "/", options: TreeOptions | dict | None = None) -> str:
        """Return the textual directory tree below ``path``."""
        return self.tree(path, options).render()

    def list_files(self, path: str = "/", filter_pattern: str = "") -> list[str]:
        return self.files.list_files(self._guard(path), filter_pattern)

    # Directories

    def create_directory(self, path: str) -> str:
        return self.files.create_directory(self._guard(path))

    def remove_directory(self, path: str) -> str:
        return self.files.remove_directory(self._guard(path))

    # Whole files

    def read_file(self, path: str, options: ReadOptions | dict | None = None) -> ReadResult:
        return self.files.read_file(self._guard(path), options)

    def write_file(self, path: str, content: str) -> str:
        return self.files.write_file(self._guard(path), content)

    def delete_file(self, path: str) -> str:
        return self.files.delete_file(self._guard(path))

    def move_file(self, source: str, destination: str) -> str:
        """Move a file; both endpoints must be inside the root and not excluded."""
        return self.files.move_file(self._guard(source), self._guard(destination))

    # Search

    def find_in_file(
        self, path: str, pattern: str, options: GrepOptions | dict | None = None
    ) -> FileGrepResult:
        """Search a single file.

        Raises:
            PathRestrictedError: If the file is excluded, including by
                per-call ``exclude`` patterns
        """
        options = coerce_options(options, GrepOptions)
        return self.search.file_grep(self._guard(path, options.exclude), pattern, options)

    def project_grep(
        self, pattern: str, path: str = "/", options: ProjectGrepOptions | dict | None = None
    ) -> ProjectGrepResult:
        """Search every eligible file under ``path`` (the whole project by default)."""
        options = coerce_options(options, ProjectGrepOptions)
        return self.search.project_grep(self._guard(path, options.exclude), pattern, options)

    # Line edits

    def insert_lines(
        self, path: str, inserts: Iterable, after: bool = False, preview: bool = False
    ) -> EditResult:
        return self.editor.insert_lines(self._guard(path), inserts, after=after, preview=preview)

    def edit_lines(self, path: str, replacements: Iterable, preview: bool = True) -> EditResult:
        """Replace line ranges. Previews unless ``preview=False``."""
        return self.editor.replace_lines(self._guard(path), replacements, preview=preview)

    def delete_lines(self, path: str, deletions: Iterable, preview: bool = False) -> EditResult:
        return self.editor.delete_lines(self._guard(path), deletions, preview=preview)

    def apply_edits(self, path: str, operations: Iterable, preview: bool = False) -> EditResult:
        """Apply a batch that may mix insert, replace and delete operations."""
        return self.editor.apply(self._guard(path), operations, preview=preview)
