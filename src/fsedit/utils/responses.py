"""Shared response helper functions for the tool adapter.

Every adapter method returns one of two dict shapes so callers (an agent
loop, an RPC layer, a test) can handle results uniformly.
"""

from typing import Any


def create_success_response(result: Any, message: str = "") -> dict:
    """Create standardized success response.

    Args:
        result: Operation result (can be any JSON-serializable value)
        message: Optional success message for logging/display

    Returns:
        Structured response dict with success=True

    Example:
        >>> create_success_response(result=["src/app.py"], message="Found 1 file")
        {'success': True, 'result': ['src/app.py'], 'message': 'Found 1 file'}
    """
    return {
        "success": True,
        "result": result,
        "message": message,
    }


def create_error_response(error: str, message: str) -> dict:
    """Create standardized error response.

    Args:
        error: Machine-readable error code (e.g., "path_restricted")
        message: Human-friendly error message, free of absolute paths

    Returns:
        Structured response dict with success=False

    Example:
        >>> create_error_response(error="not_found", message="File not found: a.txt")
        {'success': False, 'error': 'not_found', 'message': 'File not found: a.txt'}
    """
    return {
        "success": False,
        "error": error,
        "message": message,
    }
