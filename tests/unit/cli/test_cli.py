"""Unit tests for fsedit.cli module."""

import json

import pytest
import typer
from typer.testing import CliRunner

from fsedit.cli import app
from fsedit.cli.session import load_settings, resolve_log_level, setup_logging
from fsedit.config.schema import WorkspaceSettings


@pytest.fixture
def run(isolated_home, project_root, workspace_settings):
    """Invoke the CLI against the sample project with an isolated HOME."""
    runner = CliRunner()
    excludes = [
        arg for pattern in workspace_settings.project.excluded_files for arg in ("-e", pattern)
    ]

    def _run(*args, root=True):
        argv = ["--root", str(project_root), *excludes, *args] if root else list(args)
        return runner.invoke(app, argv)

    return _run


@pytest.mark.unit
@pytest.mark.cli
class TestCLIFramework:
    """Tests for CLI framework and structure."""

    def test_app_is_typer_instance(self):
        """Test that CLI app is a Typer instance."""
        assert isinstance(app, typer.Typer)

    def test_help_lists_commands(self, run):
        """Test help output names every command."""
        result = run("--help", root=False)

        assert result.exit_code == 0
        for command in ("tree", "ls", "cat", "grep", "find", "insert", "replace", "delete-lines"):
            assert command in result.output

    def test_version(self, run):
        """Test version command prints the version."""
        result = run("version", root=False)

        assert result.exit_code == 0
        assert "fsedit version" in result.output


@pytest.mark.unit
@pytest.mark.cli
class TestReadCommands:
    """Tests for tree, ls, cat, grep and find."""

    def test_tree(self, run):
        result = run("tree", "src")

        assert result.exit_code == 0
        assert result.output.strip() == "src/\n├── app.py\n└── util.py"

    def test_tree_hides_excluded(self, run):
        result = run("tree")

        assert result.exit_code == 0
        assert ".env" not in result.output
        assert "keys.secret" not in result.output

    def test_ls_with_filter(self, run):
        result = run("ls", "--filter", r"\.py$")

        assert result.exit_code == 0
        assert result.output.split() == ["src/app.py", "src/util.py"]

    def test_extra_exclude_option(self, run, project_root):
        result = CliRunner().invoke(app, ["--root", str(project_root), "-e", "*.md", "ls"])

        assert result.exit_code == 0
        assert "README.md" not in result.output
        assert "docs/guide.txt" in result.output

    def test_cat_window(self, run):
        result = run("cat", "src/app.py", "--start", "4", "--end", "5")

        assert result.exit_code == 0
        assert result.output.splitlines() == ["4: def main():", "5:     # TODO: wire config"]

    def test_cat_truncated_hint(self, run):
        result = run("cat", "src/app.py", "--max-lines", "2", "--no-numbers")

        assert result.exit_code == 0
        assert result.output.splitlines()[:2] == ["import os", ""]
        assert "continue with --start 3" in result.output

    def test_grep(self, run):
        result = run("grep", "TODO")

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[:3] == [
            "docs/guide.txt:2: TODO: write the guide",
            "src/app.py:5:     # TODO: wire config",
            "README.md:3: TODO: describe the project",
        ]
        assert "3 match(es) in 3 of 4 file(s)" in result.output

    def test_grep_context_and_type(self, run):
        result = run("grep", "TODO", "-t", "txt", "-C", "1")

        assert result.exit_code == 0
        assert result.output.splitlines()[:2] == [
            "docs/guide.txt-1- Guide",
            "docs/guide.txt:2: TODO: write the guide",
        ]

    def test_grep_never_shows_excluded(self, run):
        result = run("grep", "TODO", "-i")

        assert "node_modules" not in result.output
        assert ".git" not in result.output
        assert "secret" not in result.output

    def test_find(self, run):
        result = run("find", "src/util.py", "TODO", "--ignore-case")

        assert result.exit_code == 0
        assert "src/util.py:2:     return 'todo later'" in result.output
        assert "1 match(es)" in result.output


@pytest.mark.unit
@pytest.mark.cli
class TestEditCommands:
    """Tests for insert, replace and delete-lines."""

    def test_replace_previews_by_default(self, run, project_root):
        before = (project_root / "src" / "app.py").read_text()

        result = run("replace", "src/app.py", "1", "1", "import sys")

        assert result.exit_code == 0
        assert "- 1 | import os" in result.output
        assert "+ 1 | import sys" in result.output
        assert "Preview only" in result.output
        assert (project_root / "src" / "app.py").read_text() == before

    def test_replace_apply(self, run, project_root):
        result = run("replace", "src/app.py", "1", "1", "import sys", "--apply")

        assert result.exit_code == 0
        assert "Applied 1 operation(s)" in result.output
        assert (project_root / "src" / "app.py").read_text().startswith("import sys\n")

    def test_insert_after_apply(self, run, project_root):
        result = run("insert", "docs/guide.txt", "1", "=====", "--after", "--apply")

        assert result.exit_code == 0
        assert (project_root / "docs" / "guide.txt").read_text() == (
            "Guide\n=====\nTODO: write the guide\n"
        )

    def test_delete_lines_apply(self, run, project_root):
        result = run("delete-lines", "src/app.py", "2", "3", "--apply")

        assert result.exit_code == 0
        assert (project_root / "src" / "app.py").read_text().startswith("import os\ndef main")

    def test_invalid_range_fails(self, run, project_root):
        result = run("delete-lines", "docs/guide.txt", "2", "9", "--apply")

        assert result.exit_code == 1
        assert "out of range" in result.output
        assert (project_root / "docs" / "guide.txt").read_text().endswith("guide\n")


@pytest.mark.unit
@pytest.mark.cli
class TestErrors:
    """Tests for error reporting and exit codes."""

    def test_outside_root(self, run, project_root):
        result = run("cat", "../outside/secret.txt")

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert str(project_root) not in result.output

    def test_restricted_file(self, run):
        result = run("cat", ".env")

        assert result.exit_code == 1
        assert "restricted" in result.output
        assert "hunter2" not in result.output

    def test_missing_file(self, run):
        result = run("cat", "missing.txt")

        assert result.exit_code == 1
        assert "File not found: missing.txt" in result.output

    def test_invalid_settings_file(self, run, isolated_home):
        config_dir = isolated_home / ".fsedit"
        config_dir.mkdir()
        (config_dir / "settings.json").write_text("{ nope")

        result = run("ls")

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output


@pytest.mark.unit
@pytest.mark.cli
class TestSession:
    """Tests for settings loading and logging setup."""

    def test_root_from_environment(self, isolated_home, project_root, monkeypatch):
        monkeypatch.setenv("FSEDIT_PROJECT_ROOT", str(project_root))

        result = CliRunner().invoke(app, ["ls", "docs"])

        assert result.exit_code == 0
        assert result.output.split() == ["docs/guide.txt"]

    def test_root_option_wins_over_environment(self, isolated_home, project_root, monkeypatch):
        monkeypatch.setenv("FSEDIT_PROJECT_ROOT", str(isolated_home))

        settings = load_settings(project_root)

        assert settings.project.root == project_root.resolve()

    def test_root_defaults_to_cwd(self, isolated_home, project_root, monkeypatch):
        monkeypatch.chdir(project_root)

        assert load_settings().project.root == project_root.resolve()

    def test_settings_file_exclusions(self, isolated_home, project_root):
        config_dir = isolated_home / ".fsedit"
        config_dir.mkdir()
        (config_dir / "settings.json").write_text(
            json.dumps({"project": {"root": str(project_root), "excluded_files": ["docs/"]}})
        )

        settings = load_settings(extra_excludes=["*.md"])

        assert settings.project.excluded_files == ["docs/", "*.md"]

    def test_log_file_under_home(self, run, isolated_home):
        run("ls")

        assert (isolated_home / ".fsedit" / "logs" / "fsedit.log").exists()

    def test_setup_logging_custom_file(self, isolated_home, tmp_path):
        log_file = tmp_path / "logs" / "custom.log"

        assert setup_logging(WorkspaceSettings(), log_file) == str(log_file)
        assert log_file.parent.is_dir()

    def test_resolve_log_level_precedence(self, isolated_home, monkeypatch):
        settings = WorkspaceSettings(log_level="warning")
        assert resolve_log_level(settings) == "WARNING"

        monkeypatch.setenv("LOG_LEVEL", "error")
        assert resolve_log_level(settings) == "ERROR"

        monkeypatch.setenv("FSEDIT_LOG_LEVEL", "debug")
        assert resolve_log_level(settings) == "DEBUG"
