"""fsedit - Sandboxed file editing and search for a single project root."""

from importlib.metadata import PackageNotFoundError, version

# Read version from package metadata (pyproject.toml)
try:
    __version__ = version("fsedit")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "0.0.0.dev"

from fsedit.config import WorkspaceSettings
from fsedit.editor import DeleteOp, EditResult, InsertOp, ReplaceOp
from fsedit.exceptions import FseditError
from fsedit.sandbox import ExclusionPatternSet, PathSandbox, SafePath
from fsedit.workspace import Workspace

__all__ = [
    "Workspace",
    "WorkspaceSettings",
    "PathSandbox",
    "SafePath",
    "ExclusionPatternSet",
    "InsertOp",
    "ReplaceOp",
    "DeleteOp",
    "EditResult",
    "FseditError",
    "__version__",
]
