"""Custom exceptions for workspace operations.

This module provides the error taxonomy raised by the sandbox, editor,
search and tree components. Components raise these at the point of
detection; translating them into caller-facing responses is the job of
the adapter layer (see ``fsedit.tools``).

Exception Hierarchy:
    FseditError (base)
    ├── PathEscapeError
    ├── PathRestrictedError
    ├── TargetNotFoundError (also FileNotFoundError)
    │   ├── MissingFileError
    │   └── MissingDirectoryError
    ├── FileExistsInWorkspaceError (also FileExistsError)
    ├── InvalidRangeError (also ValueError)
    ├── InvalidPatternError (also ValueError)
    └── FileOperationError (also OSError)
"""


class FseditError(Exception):
    """Base exception for all workspace errors.

    Example:
        >>> try:
        ...     workspace.read_file("../outside.txt")
        ... except FseditError as e:
        ...     print(f"Rejected: {e}")
    """

    pass


class PathEscapeError(FseditError):
    """Path resolves outside the project root.

    Raised for ``..`` traversal and for symlinks whose real target lies
    outside the root. Never retried.

    Attributes:
        path: The caller-supplied path that was rejected
    """

    def __init__(self, path: str, message: str | None = None):
        """Initialize PathEscapeError.

        Args:
            path: The caller-supplied path that was rejected
            message: Optional override for the default message
        """
        self.path = path
        super().__init__(message or f"Path resolves outside the project root: {path}")


class PathRestrictedError(FseditError):
    """Path matches an exclusion pattern.

    Attributes:
        path: Project-relative path that was denied
        pattern: The pattern that matched, when known
    """

    def __init__(self, path: str, pattern: str | None = None):
        """Initialize PathRestrictedError.

        Args:
            path: Project-relative path that was denied
            pattern: The pattern that matched, when known
        """
        self.path = path
        self.pattern = pattern
        super().__init__(f"Access to '{path}' is restricted by the tool configuration")


class TargetNotFoundError(FseditError, FileNotFoundError):
    """Target does not exist where existence was required."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Path not found: {path}")


class MissingFileError(TargetNotFoundError):
    """File does not exist (or is not a regular file)."""

    def __init__(self, path: str):
        super().__init__(path, f"File not found: {path}")


class MissingDirectoryError(TargetNotFoundError):
    """Directory does not exist (or is not a directory)."""

    def __init__(self, path: str):
        super().__init__(path, f"Directory not found: {path}")


class FileExistsInWorkspaceError(FseditError, FileExistsError):
    """Destination already exists and overwriting was not requested."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Destination already exists: {path}")


class InvalidRangeError(FseditError, ValueError):
    """Edit batch has malformed or overlapping line ranges.

    The whole batch is rejected; no operation in it is applied.
    """

    pass


class InvalidPatternError(FseditError, ValueError):
    """Search pattern could not be compiled as a regular expression.

    Attributes:
        pattern: The pattern text as supplied
    """

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"Invalid regex pattern '{pattern}': {reason}")


class FileOperationError(FseditError, OSError):
    """Underlying read, write or rename failed.

    Surfaced as-is and never retried internally.

    Attributes:
        path: Project-relative path of the failed operation
        original_error: The OSError raised by the filesystem (optional)
    """

    def __init__(self, path: str, message: str, original_error: Exception | None = None):
        """Initialize FileOperationError.

        Args:
            path: Project-relative path of the failed operation
            message: Human-friendly error message
            original_error: The OSError raised by the filesystem
        """
        self.path = path
        self.original_error = original_error
        super().__init__(message)
