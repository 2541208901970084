"""Unit tests for fsedit.tools.filesystem module.

Test suite covering:
1. Construction and tool registration
2. Sandboxing and exclusion errors as response codes
3. Tree, listing and reads
4. Search through the adapter
5. Batched line edits and previews
6. Redaction of absolute paths
"""

import logging
from pathlib import Path

import pytest

from fsedit.config.schema import WorkspaceSettings
from fsedit.exceptions import (
    FileExistsInWorkspaceError,
    FileOperationError,
    InvalidPatternError,
    InvalidRangeError,
    MissingFileError,
    PathEscapeError,
    PathRestrictedError,
)
from fsedit.tools.filesystem import FileSystemTools, error_code_for
from fsedit.workspace import Workspace
from tests.helpers import (
    assert_error_response,
    assert_no_absolute_root,
    assert_success_response,
    assert_tool_response_format,
)

# ============================================================================
# Initialization
# ============================================================================


@pytest.mark.unit
@pytest.mark.tools
class TestFileSystemToolsInitialization:
    """Tests for FileSystemTools construction."""

    def test_builds_workspace_from_settings(self, fs_tools, project_root):
        assert fs_tools.workspace.project_root == project_root.resolve()
        assert ".env" in fs_tools.workspace.patterns
        assert "*.secret" in fs_tools.workspace.patterns

    def test_accepts_prebuilt_workspace(self, workspace_settings, workspace):
        tools = FileSystemTools(workspace_settings, workspace=workspace)
        assert tools.workspace is workspace

    def test_falls_back_to_cwd(self, project_root, monkeypatch):
        monkeypatch.chdir(project_root)

        tools = FileSystemTools(WorkspaceSettings())

        assert tools.workspace.project_root == project_root.resolve()

    def test_get_tools(self, fs_tools):
        names = [tool.__name__ for tool in fs_tools.get_tools()]

        assert len(names) == 14
        assert {"directory_tree", "project_grep", "edit_lines", "delete_lines", "apply_edits"} <= set(names)


@pytest.mark.unit
@pytest.mark.tools
class TestErrorCodes:
    """Tests for exception to error code mapping."""

    @pytest.mark.parametrize(
        "error, code",
        [
            (PathEscapeError("../x"), "path_outside_workspace"),
            (PathRestrictedError(".env", ".env"), "path_restricted"),
            (MissingFileError("a.txt"), "not_found"),
            (FileExistsInWorkspaceError("a.txt"), "file_exists"),
            (InvalidRangeError("bad"), "invalid_range"),
            (InvalidPatternError("(", "missing )"), "invalid_pattern"),
            (FileOperationError("a.txt", "disk full"), "os_error"),
            (RuntimeError("boom"), "os_error"),
        ],
    )
    def test_error_code_for(self, error, code):
        assert error_code_for(error) == code


# ============================================================================
# Sandboxing
# ============================================================================


@pytest.mark.unit
@pytest.mark.tools
class TestSandboxing:
    """Tests for escape and exclusion errors through the adapter."""

    @pytest.mark.asyncio
    async def test_traversal_rejected(self, fs_tools, project_root):
        result = await fs_tools.read_file("../outside/secret.txt")

        assert_error_response(result, "path_outside_workspace")
        assert_no_absolute_root(result, project_root)

    @pytest.mark.asyncio
    async def test_null_byte_rejected(self, fs_tools, project_root):
        result = await fs_tools.read_file("src/app.py\x00.txt")

        assert_error_response(result, "path_outside_workspace")
        assert_no_absolute_root(result, project_root)

    @pytest.mark.asyncio
    async def test_absolute_outside_rejected(self, fs_tools, outside_dir):
        result = await fs_tools.read_file(str(outside_dir / "secret.txt"))

        assert_error_response(result, "path_outside_workspace")
        assert "outside data" not in result["message"]

    @pytest.mark.asyncio
    async def test_absolute_inside_accepted(self, fs_tools, project_root):
        result = await fs_tools.read_file(str(project_root / "docs" / "guide.txt"))

        assert_success_response(result)
        assert result["result"]["metadata"]["path"] == "docs/guide.txt"
        assert_no_absolute_root(result, project_root)

    @pytest.mark.asyncio
    async def test_excluded_file_rejected(self, fs_tools):
        result = await fs_tools.read_file(".env")

        assert_error_response(result, "path_restricted")
        assert "hunter2" not in result["message"]

    @pytest.mark.asyncio
    async def test_excluded_write_rejected(self, fs_tools, project_root):
        result = await fs_tools.write_file("src/new.secret", "x")

        assert_error_response(result, "path_restricted")
        assert not (project_root / "src" / "new.secret").exists()

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, fs_tools, caplog):
        with caplog.at_level(logging.WARNING):
            await fs_tools.delete_file("missing.txt")

        assert "delete_file missing.txt failed (not_found)" in caplog.text


# ============================================================================
# Tree, listing and reads
# ============================================================================


@pytest.mark.unit
@pytest.mark.tools
class TestReadTools:
    """Tests for directory_tree, list_files and read_file."""

    @pytest.mark.asyncio
    async def test_directory_tree(self, fs_tools, project_root):
        result = await fs_tools.directory_tree("src")

        assert_success_response(result)
        assert result["result"]["tree"] == "src/\n├── app.py\n└── util.py"
        assert result["result"]["root"]["name"] == "src"
        assert_no_absolute_root(result, project_root)

    @pytest.mark.asyncio
    async def test_directory_tree_invalid_depth(self, fs_tools):
        result = await fs_tools.directory_tree("/", max_depth=0)
        assert_error_response(result, "invalid_arguments")

    @pytest.mark.asyncio
    async def test_list_files(self, fs_tools):
        result = await fs_tools.list_files("/", filter_pattern=r"\.py$")

        assert_success_response(result)
        assert result["result"] == {"files": ["src/app.py", "src/util.py"], "count": 2}

    @pytest.mark.asyncio
    async def test_read_file_window(self, fs_tools):
        result = await fs_tools.read_file("src/app.py", start_line=4, max_lines=2)

        assert_success_response(result)
        assert result["result"]["content"] == "4: def main():\n5:     # TODO: wire config"
        metadata = result["result"]["metadata"]
        assert metadata["truncated"] is True
        assert metadata["next_start_line"] == 6
        assert "continue from line 6" in result["message"]

    @pytest.mark.asyncio
    async def test_read_file_bad_range(self, fs_tools):
        result = await fs_tools.read_file("src/app.py", start_line=5, end_line=1)
        assert_error_response(result, "invalid_arguments")

    @pytest.mark.asyncio
    async def test_read_missing_file(self, fs_tools):
        result = await fs_tools.read_file("src/nope.py")
        assert_error_response(result, "not_found")

    @pytest.mark.asyncio
    async def test_write_and_move(self, fs_tools, project_root):
        written = await fs_tools.write_file("notes/todo.md", "- item\n")
        moved = await fs_tools.move_file("notes/todo.md", "notes/done.md")
        clash = await fs_tools.move_file("notes/done.md", "README.md")

        assert_success_response(written)
        assert_success_response(moved)
        assert_error_response(clash, "file_exists")
        assert (project_root / "notes" / "done.md").read_text() == "- item\n"

    @pytest.mark.asyncio
    async def test_directories(self, fs_tools, project_root):
        created = await fs_tools.create_directory("tmp/cache")
        removed = await fs_tools.remove_directory("tmp")
        root = await fs_tools.remove_directory("/")

        assert_success_response(created)
        assert_success_response(removed)
        assert not (project_root / "tmp").exists()
        assert_error_response(root, "path_restricted")


# ============================================================================
# Search
# ============================================================================


@pytest.mark.unit
@pytest.mark.tools
class TestSearchTools:
    """Tests for find_in_file and project_grep."""

    @pytest.mark.asyncio
    async def test_project_grep(self, fs_tools, project_root):
        result = await fs_tools.project_grep("TODO", context=1)

        assert_success_response(result)
        paths = [match["path"] for match in result["result"]["results"]]
        assert paths == ["docs/guide.txt", "src/app.py", "README.md"]
        assert result["message"] == "Found 3 match(es) in 3 of 4 file(s)"
        assert_no_absolute_root(result, project_root)

    @pytest.mark.asyncio
    async def test_project_grep_file_types(self, fs_tools):
        result = await fs_tools.project_grep("TODO", file_types=[".md", "txt"])

        paths = [match["path"] for match in result["result"]["results"]]
        assert paths == ["docs/guide.txt", "README.md"]

    @pytest.mark.asyncio
    async def test_project_grep_invalid_pattern(self, fs_tools):
        result = await fs_tools.project_grep("(")
        assert_error_response(result, "invalid_pattern")

    @pytest.mark.asyncio
    async def test_find_in_file(self, fs_tools):
        result = await fs_tools.find_in_file("src/app.py", "getcwd", regex=False, context=1)

        assert_success_response(result)
        match = result["result"]["matches"][0]
        assert match["line_number"] == 6
        assert match["before"] == [{"line_number": 5, "text": "    # TODO: wire config"}]
        assert match["after"] == []

    @pytest.mark.asyncio
    async def test_find_in_excluded_file(self, fs_tools):
        result = await fs_tools.find_in_file("src/keys.secret", "TODO")
        assert_error_response(result, "path_restricted")

    @pytest.mark.asyncio
    async def test_find_in_binary_file(self, fs_tools, project_root):
        (project_root / "blob.bin").write_bytes(b"\x00TODO")

        result = await fs_tools.find_in_file("blob.bin", "TODO")

        assert_error_response(result, "os_error")
        assert_no_absolute_root(result, project_root)


# ============================================================================
# Line edits
# ============================================================================


@pytest.mark.unit
@pytest.mark.tools
class TestEditTools:
    """Tests for insert_lines, edit_lines and delete_lines."""

    @pytest.mark.asyncio
    async def test_edit_lines_previews_by_default(self, fs_tools, project_root):
        before = (project_root / "src" / "app.py").read_text()

        result = await fs_tools.edit_lines(
            "src/app.py", [{"start_line": 1, "end_line": 1, "content": "import sys"}]
        )

        assert_success_response(result)
        assert result["result"]["preview"] is True
        assert "+ 1 | import sys" in result["result"]["diff_text"]
        assert "re-read the file" in result["message"]
        assert (project_root / "src" / "app.py").read_text() == before

    @pytest.mark.asyncio
    async def test_edit_lines_apply(self, fs_tools, project_root):
        result = await fs_tools.edit_lines(
            "src/app.py",
            [
                {"start_line": 1, "end_line": 1, "content": "import sys"},
                {"start_line": 6, "end_line": 6, "content": "    return sys.argv"},
            ],
            preview=False,
        )

        assert_success_response(result)
        assert result["result"]["bytes_written"] > 0
        text = (project_root / "src" / "app.py").read_text()
        assert text.startswith("import sys\n")
        assert text.endswith("    return sys.argv\n")
        assert_no_absolute_root(result, project_root)

    @pytest.mark.asyncio
    async def test_overlapping_edits_rejected(self, fs_tools, project_root):
        before = (project_root / "src" / "app.py").read_text()

        result = await fs_tools.edit_lines(
            "src/app.py",
            [
                {"start_line": 1, "end_line": 3, "content": "x"},
                {"start_line": 3, "end_line": 4, "content": "y"},
            ],
            preview=False,
        )

        assert_error_response(result, "invalid_range")
        assert (project_root / "src" / "app.py").read_text() == before

    @pytest.mark.asyncio
    async def test_insert_lines(self, fs_tools, project_root):
        result = await fs_tools.insert_lines(
            "docs/guide.txt", [{"at_line": 1, "content": "====="}], after=True
        )

        assert_success_response(result)
        assert (project_root / "docs" / "guide.txt").read_text() == (
            "Guide\n=====\nTODO: write the guide\n"
        )

    @pytest.mark.asyncio
    async def test_delete_lines_out_of_range(self, fs_tools):
        result = await fs_tools.delete_lines("docs/guide.txt", [{"start_line": 2, "end_line": 9}])
        assert_error_response(result, "invalid_range")

    @pytest.mark.asyncio
    async def test_delete_lines_malformed_item(self, fs_tools):
        result = await fs_tools.delete_lines("docs/guide.txt", [{"start_line": 0, "end_line": 1}])

        assert_tool_response_format(result)
        assert_error_response(result, "invalid_range")

    @pytest.mark.asyncio
    async def test_apply_edits_mixed_batch(self, fs_tools, project_root):
        result = await fs_tools.apply_edits(
            "src/app.py",
            [
                {"kind": "insert", "at_line": 1, "content": "import sys"},
                {"kind": "delete", "start_line": 5, "end_line": 5},
                {"kind": "replace", "start_line": 6, "end_line": 6, "content": "    return sys.argv"},
            ],
        )

        assert_success_response(result)
        assert result["result"]["operations"] == 3
        assert (project_root / "src" / "app.py").read_text() == (
            "import sys\nimport os\n\n\ndef main():\n    return sys.argv\n"
        )

    @pytest.mark.asyncio
    async def test_apply_edits_preview(self, fs_tools, project_root):
        before = (project_root / "docs" / "guide.txt").read_text()

        result = await fs_tools.apply_edits(
            "docs/guide.txt", [{"kind": "delete", "start_line": 2, "end_line": 2}], preview=True
        )

        assert_success_response(result)
        assert result["result"]["preview"] is True
        assert (project_root / "docs" / "guide.txt").read_text() == before

    @pytest.mark.asyncio
    async def test_apply_edits_requires_kind(self, fs_tools):
        result = await fs_tools.apply_edits("docs/guide.txt", [{"start_line": 1, "end_line": 1}])
        assert_error_response(result, "invalid_range")

    @pytest.mark.asyncio
    async def test_edit_in_excluded_file(self, fs_tools, project_root):
        result = await fs_tools.delete_lines(".git/config", [{"start_line": 1, "end_line": 1}])

        assert_error_response(result, "path_restricted")
        assert (project_root / ".git" / "config").read_text().startswith("[core]")


@pytest.mark.unit
@pytest.mark.tools
class TestRedaction:
    """Tests that OS error text never leaks the absolute root."""

    @pytest.mark.asyncio
    async def test_os_error_message_redacted(self, workspace_settings, project_root, monkeypatch):
        tools = FileSystemTools(workspace_settings)
        absolute = Path(tools.workspace.project_root) / "docs" / "guide.txt"

        def failing_delete(safe_path):
            raise FileOperationError(safe_path.logical, f"Permission denied: '{absolute}'")

        monkeypatch.setattr(tools.workspace.files, "delete_file", failing_delete)

        result = await tools.delete_file("docs/guide.txt")

        assert_error_response(result, "os_error")
        assert "docs/guide.txt" in result["message"]
        assert_no_absolute_root(result, project_root)

    def test_workspace_type(self, fs_tools):
        assert isinstance(fs_tools.workspace, Workspace)
