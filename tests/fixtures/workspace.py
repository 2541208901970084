"""Workspace fixtures for testing."""

import pytest

from fsedit.config.schema import WorkspaceSettings
from fsedit.sandbox import PathSandbox
from fsedit.tools.filesystem import FileSystemTools
from fsedit.workspace import Workspace

EXCLUDED_PATTERNS = [".git", ".env", "node_modules/**", "*.secret", "build/"]


@pytest.fixture
def project_root(tmp_path):
    """Create an isolated project directory with a small source tree.

    Structure:
        project/
            README.md
            .env                      (excluded)
            .git/config               (excluded)
            docs/guide.txt
            node_modules/pkg/index.js (excluded)
            src/app.py
            src/keys.secret           (excluded)
            src/util.py
    """
    root = tmp_path / "project"
    root.mkdir()

    (root / "README.md").write_text("# Demo\n\nTODO: describe the project\n")
    (root / ".env").write_text("API_KEY=hunter2\n")
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]\n\tTODO = no\n")

    (root / "docs").mkdir()
    (root / "docs" / "guide.txt").write_text("Guide\nTODO: write the guide\n")

    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "node_modules" / "pkg" / "index.js").write_text("// TODO vendored\n")

    src = root / "src"
    src.mkdir()
    (src / "app.py").write_text(
        "import os\n\n\ndef main():\n    # TODO: wire config\n    return os.getcwd()\n"
    )
    (src / "util.py").write_text("def helper():\n    return 'todo later'\n")
    (src / "keys.secret").write_text("TODO secret\n")

    return root


@pytest.fixture
def outside_dir(tmp_path):
    """A directory next to (not inside) the project root."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("outside data\n")
    return outside


@pytest.fixture
def sandbox(project_root):
    """Create a PathSandbox over the sample project."""
    return PathSandbox(project_root, EXCLUDED_PATTERNS)


@pytest.fixture
def workspace(project_root):
    """Create a Workspace over the sample project."""
    return Workspace(project_root, EXCLUDED_PATTERNS)


@pytest.fixture
def workspace_settings(project_root):
    """Create settings pointing at the sample project."""
    return WorkspaceSettings(
        excluded_files=[".git", ".env"],
        project={
            "name": "demo",
            "root": str(project_root),
            "excluded_files": ["node_modules/**", "*.secret", "build/"],
        },
    )


@pytest.fixture
def fs_tools(workspace_settings):
    """Create FileSystemTools over the sample project."""
    return FileSystemTools(workspace_settings)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a temp directory and clear fsedit environment overrides."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in ("FSEDIT_PROJECT_ROOT", "FSEDIT_EXCLUDED_FILES", "FSEDIT_LOG_LEVEL", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return home
