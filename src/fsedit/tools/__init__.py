"""Tool adapters for fsedit workspaces."""

from fsedit.tools.filesystem import FileSystemTools, error_code_for
from fsedit.tools.toolset import WorkspaceToolset

__all__ = ["WorkspaceToolset", "FileSystemTools", "error_code_for"]
