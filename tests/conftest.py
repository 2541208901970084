"""Shared test fixtures for all tests.

This file imports and re-exports fixtures from the fixtures/ module so
they are discovered by pytest for every test package.
"""

from tests.fixtures.workspace import (  # noqa: F401
    fs_tools,
    isolated_home,
    outside_dir,
    project_root,
    sandbox,
    workspace,
    workspace_settings,
)
