"""Filesystem tools exposing the workspace as structured responses.

This module is the adapter between callers that speak in plain values
(an agent loop, the CLI, an RPC layer) and the ``Workspace`` core. Each
tool resolves its arguments into option models, calls the core, and
translates the outcome into a success or error response dict.

Key Features:
- Project-root sandboxing with traversal and symlink-escape protection
- Global and per-project exclusion patterns on every operation
- Directory trees, file listing, and ranged reads
- Single-file and project-wide search with context lines
- Batched line edits with diff previews

Core errors never escape a tool; they are logged and returned with a
machine-readable code.
"""

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, ValidationError

from fsedit.config.schema import WorkspaceSettings
from fsedit.editor import EditResult
from fsedit.exceptions import (
    FileExistsInWorkspaceError,
    FileOperationError,
    FseditError,
    InvalidPatternError,
    InvalidRangeError,
    PathEscapeError,
    PathRestrictedError,
    TargetNotFoundError,
)
from fsedit.files import ReadOptions
from fsedit.search import GrepOptions, ProjectGrepOptions
from fsedit.tools.toolset import WorkspaceToolset
from fsedit.tree import TreeOptions
from fsedit.workspace import Workspace

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_CODES: list[tuple[type[Exception], str]] = [
    (PathEscapeError, "path_outside_workspace"),
    (PathRestrictedError, "path_restricted"),
    (TargetNotFoundError, "not_found"),
    (FileExistsInWorkspaceError, "file_exists"),
    (InvalidRangeError, "invalid_range"),
    (InvalidPatternError, "invalid_pattern"),
    (FileOperationError, "os_error"),
    (ValidationError, "invalid_arguments"),
]


def error_code_for(error: Exception) -> str:
    """Map an exception to its response error code."""
    for error_type, code in ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return "os_error"


class FileSystemTools(WorkspaceToolset):
    """Sandboxed file, search and edit tools.

    Example:
        >>> settings = WorkspaceSettings()
        >>> settings.project.root = Path("/home/user/project")
        >>> tools = FileSystemTools(settings)
        >>> result = await tools.project_grep("TODO", file_types=["py"])
        >>> print(result["result"]["results"][0]["path"])
        src/app.py
    """

    def __init__(self, settings: WorkspaceSettings, workspace: Workspace | None = None):
        """Initialize FileSystemTools.

        Args:
            settings: Workspace settings (project root, exclusions, limits)
            workspace: Optional prebuilt Workspace (built from settings if omitted)
        """
        super().__init__(settings)
        self.workspace = workspace or self._build_workspace()

    def _build_workspace(self) -> Workspace:
        root = self.settings.project.root
        if root is None:
            root = Path.cwd().resolve()
            if root == Path.home() or root == Path("/"):
                logger.warning(
                    f"Project root is set to {root}. Consider configuring project.root "
                    "in ~/.fsedit/settings.json or FSEDIT_PROJECT_ROOT."
                )
        return Workspace(
            root,
            self.settings.effective_excluded_patterns(),
            logger=logger,
            max_read_bytes=self.settings.max_read_bytes,
            max_write_bytes=self.settings.max_write_bytes,
        )

    def get_tools(self) -> list:
        """Get list of filesystem tools.

        Returns:
            List of filesystem tool functions
        """
        return [
            self.directory_tree,
            self.list_files,
            self.read_file,
            self.write_file,
            self.delete_file,
            self.move_file,
            self.create_directory,
            self.remove_directory,
            self.find_in_file,
            self.project_grep,
            self.insert_lines,
            self.edit_lines,
            self.delete_lines,
            self.apply_edits,
        ]

    def _error(self, action: str, error: Exception) -> dict:
        """Log a failed operation and build its error response."""
        code = error_code_for(error)
        message = self.workspace.sandbox.redact(str(error))
        logger.warning(f"{action} failed ({code}): {message}")
        return self._create_error_response(error=code, message=message)

    def _edit_response(self, result: EditResult) -> dict:
        return self._create_success_response(result=result.to_dict(), message=result.message)

    async def directory_tree(
        self,
        path: Annotated[str, Field(description="Directory relative to the project root")] = "/",
        exclude: Annotated[
            list[str] | None, Field(description="Extra exclusion patterns for this call")
        ] = None,
        max_depth: Annotated[
            int | None, Field(description="Maximum depth to descend (None for unbounded)")
        ] = None,
    ) -> dict:
        """Render the directory tree below a path, hiding excluded entries.

        Returns:
            Success response with {"tree": str, "root": dict}
        """
        try:
            options = TreeOptions(exclude=exclude or [], max_depth=max_depth)
            node = self.workspace.tree(path, options)
        except (FseditError, ValidationError) as e:
            return self._error(f"directory_tree {path}", e)
        return self._create_success_response(
            result={"tree": node.render(), "root": node.to_dict()},
            message=f"Directory tree for {node.name}",
        )

    async def list_files(
        self,
        path: Annotated[str, Field(description="Directory relative to the project root")] = "/",
        filter_pattern: Annotated[
            str, Field(description="Regex matched against relative paths (empty for all)")
        ] = "",
    ) -> dict:
        """List included files below a directory, recursively.

        Returns:
            Success response with {"files": [relative paths], "count": int}
        """
        try:
            files = self.workspace.list_files(path, filter_pattern)
        except FseditError as e:
            return self._error(f"list_files {path}", e)
        return self._create_success_response(
            result={"files": files, "count": len(files)}, message=f"Found {len(files)} file(s)"
        )

    async def read_file(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        start_line: Annotated[int, Field(description="First line to return (1-based)")] = 1,
        end_line: Annotated[
            int | None, Field(description="Last line to return (inclusive, None for end)")
        ] = None,
        max_lines: Annotated[
            int | None, Field(description="Maximum number of lines to return")
        ] = None,
        show_line_numbers: Annotated[
            bool, Field(description="Prefix each line with its number")
        ] = True,
    ) -> dict:
        """Read a text file or a window of its lines.

        Returns:
            Success response with {"content": str, "metadata": {...}}
        """
        try:
            options = ReadOptions(
                start_line=start_line,
                end_line=end_line,
                max_lines=max_lines,
                show_line_numbers=show_line_numbers,
            )
            result = self.workspace.read_file(path, options)
        except (FseditError, ValidationError) as e:
            return self._error(f"read_file {path}", e)

        message = f"Read lines {result.start_line}-{result.end_line} of {result.path}"
        if result.truncated:
            message += f" (truncated, continue from line {result.next_start_line})"
        return self._create_success_response(
            result={"content": result.content, "metadata": result.metadata()}, message=message
        )

    async def write_file(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        content: Annotated[str, Field(description="Full file content to write")],
    ) -> dict:
        """Create or overwrite a file atomically."""
        try:
            message = self.workspace.write_file(path, content)
        except FseditError as e:
            return self._error(f"write_file {path}", e)
        return self._create_success_response(result={"path": path}, message=message)

    async def delete_file(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
    ) -> dict:
        """Delete a file."""
        try:
            message = self.workspace.delete_file(path)
        except FseditError as e:
            return self._error(f"delete_file {path}", e)
        return self._create_success_response(result={"path": path}, message=message)

    async def move_file(
        self,
        source: Annotated[str, Field(description="Existing file path")],
        destination: Annotated[str, Field(description="New file path (must not exist)")],
    ) -> dict:
        """Move or rename a file inside the project."""
        try:
            message = self.workspace.move_file(source, destination)
        except FseditError as e:
            return self._error(f"move_file {source} -> {destination}", e)
        return self._create_success_response(
            result={"source": source, "destination": destination}, message=message
        )

    async def create_directory(
        self,
        path: Annotated[str, Field(description="Directory path relative to the project root")],
    ) -> dict:
        """Create a directory and any missing parents."""
        try:
            message = self.workspace.create_directory(path)
        except FseditError as e:
            return self._error(f"create_directory {path}", e)
        return self._create_success_response(result={"path": path}, message=message)

    async def remove_directory(
        self,
        path: Annotated[str, Field(description="Directory path relative to the project root")],
    ) -> dict:
        """Remove a directory and everything in it."""
        try:
            message = self.workspace.remove_directory(path)
        except FseditError as e:
            return self._error(f"remove_directory {path}", e)
        return self._create_success_response(result={"path": path}, message=message)

    async def find_in_file(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        pattern: Annotated[str, Field(description="Regex (or literal text) to search for")],
        regex: Annotated[bool, Field(description="Treat pattern as a regex")] = True,
        case_sensitive: Annotated[bool, Field(description="Case-sensitive matching")] = True,
        context: Annotated[int, Field(description="Context lines around each match")] = 0,
        max_results: Annotated[
            int | None, Field(description="Stop after this many matches")
        ] = None,
    ) -> dict:
        """Search one file line by line.

        Returns:
            Success response with {"path", "pattern", "matches", "truncated"}
        """
        try:
            options = GrepOptions(
                regex=regex,
                case_sensitive=case_sensitive,
                context=context,
                max_results=max_results,
            )
            result = self.workspace.find_in_file(path, pattern, options)
        except (FseditError, ValidationError) as e:
            return self._error(f"find_in_file {path}", e)
        return self._create_success_response(
            result=result.to_dict(),
            message=f"Found {len(result.matches)} match(es) in {result.path}",
        )

    async def project_grep(
        self,
        pattern: Annotated[str, Field(description="Regex (or literal text) to search for")],
        path: Annotated[str, Field(description="Directory to search below")] = "/",
        file_types: Annotated[
            list[str] | None, Field(description="Extensions to search, e.g. ['py', '.ts']")
        ] = None,
        regex: Annotated[bool, Field(description="Treat pattern as a regex")] = True,
        case_sensitive: Annotated[bool, Field(description="Case-sensitive matching")] = True,
        context: Annotated[int, Field(description="Context lines around each match")] = 0,
        max_results: Annotated[int, Field(description="Stop after this many matches")] = 100,
        exclude: Annotated[
            list[str] | None, Field(description="Extra exclusion patterns for this call")
        ] = None,
    ) -> dict:
        """Search every eligible file in the project.

        Returns:
            Success response with {"results", "files_searched", "files_matched",
            "files_skipped", "truncated"}
        """
        try:
            options = ProjectGrepOptions(
                regex=regex,
                case_sensitive=case_sensitive,
                context=context,
                max_results=max_results,
                file_types=file_types or [],
                exclude=exclude or [],
            )
            result = self.workspace.project_grep(pattern, path, options)
        except (FseditError, ValidationError) as e:
            return self._error(f"project_grep {pattern!r}", e)

        message = (
            f"Found {len(result.results)} match(es) in {result.files_matched} "
            f"of {result.files_searched} file(s)"
        )
        if result.truncated:
            message += f" (stopped at {max_results})"
        return self._create_success_response(result=result.to_dict(), message=message)

    async def insert_lines(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        inserts: Annotated[
            list[dict[str, Any]],
            Field(description="Items of {at_line, content, after?}, all against the current file"),
        ],
        after: Annotated[
            bool, Field(description="Default for items without 'after': insert after at_line")
        ] = False,
        preview: Annotated[bool, Field(description="Show the diff without saving")] = False,
    ) -> dict:
        """Insert content at one or more lines in a single atomic batch."""
        try:
            result = self.workspace.insert_lines(path, inserts, after=after, preview=preview)
        except (FseditError, ValidationError) as e:
            return self._error(f"insert_lines {path}", e)
        return self._edit_response(result)

    async def edit_lines(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        edits: Annotated[
            list[dict[str, Any]],
            Field(description="Items of {start_line, end_line, content}, non-overlapping"),
        ],
        preview: Annotated[
            bool, Field(description="Show the diff without saving (default true)")
        ] = True,
    ) -> dict:
        """Replace one or more line ranges in a single atomic batch."""
        try:
            result = self.workspace.edit_lines(path, edits, preview=preview)
        except (FseditError, ValidationError) as e:
            return self._error(f"edit_lines {path}", e)
        return self._edit_response(result)

    async def delete_lines(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        deletions: Annotated[
            list[dict[str, Any]],
            Field(description="Items of {start_line, end_line}, non-overlapping"),
        ],
        preview: Annotated[bool, Field(description="Show the diff without saving")] = False,
    ) -> dict:
        """Delete one or more line ranges in a single atomic batch."""
        try:
            result = self.workspace.delete_lines(path, deletions, preview=preview)
        except (FseditError, ValidationError) as e:
            return self._error(f"delete_lines {path}", e)
        return self._edit_response(result)

    async def apply_edits(
        self,
        path: Annotated[str, Field(description="File path relative to the project root")],
        operations: Annotated[
            list[dict[str, Any]],
            Field(
                description=(
                    "Items with kind 'insert' {at_line, content, after}, "
                    "'replace' {start_line, end_line, content} or 'delete' {start_line, end_line}"
                )
            ),
        ],
        preview: Annotated[bool, Field(description="Show the diff without saving")] = False,
    ) -> dict:
        """Apply a mixed batch of inserts, replacements and deletions atomically.

        Line numbers in every operation refer to the file before the batch.
        """
        try:
            result = self.workspace.apply_edits(path, operations, preview=preview)
        except (FseditError, ValidationError) as e:
            return self._error(f"apply_edits {path}", e)
        return self._edit_response(result)
