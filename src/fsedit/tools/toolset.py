"""Base class for workspace toolsets.

Toolsets group related tools around shared dependencies (settings and a
Workspace) instead of global state, so tests can inject their own.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from fsedit.config.schema import WorkspaceSettings
from fsedit.utils.responses import create_error_response, create_success_response


class WorkspaceToolset(ABC):
    """Base class for workspace toolsets.

    Each toolset receives a WorkspaceSettings instance with everything it
    needs, which makes it easy to build in tests.

    Example:
        >>> class MyTools(WorkspaceToolset):
        ...     def get_tools(self):
        ...         return [self.my_tool]
        ...
        ...     async def my_tool(self, arg: str) -> dict:
        ...         return self._create_success_response(
        ...             result=f"Processed: {arg}",
        ...             message="Tool executed successfully"
        ...         )
    """

    def __init__(self, settings: WorkspaceSettings):
        """Initialize toolset with settings.

        Args:
            settings: Workspace settings (project root, exclusions, limits)
        """
        self.settings = settings

    @abstractmethod
    def get_tools(self) -> list[Callable]:
        """Get list of tool functions.

        Tools are async callables with type hints and docstrings that
        describe their parameters.

        Returns:
            List of callable tool functions
        """
        pass

    def _create_success_response(self, result: Any, message: str = "") -> dict:
        return create_success_response(result, message)

    def _create_error_response(self, error: str, message: str) -> dict:
        return create_error_response(error, message)
