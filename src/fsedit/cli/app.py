"""CLI entry point for fsedit."""

import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape

from fsedit import __version__
from fsedit.cli.constants import ExitCodes
from fsedit.cli.session import load_settings, setup_logging
from fsedit.cli.utils import get_console, print_error, print_plain
from fsedit.config import ConfigurationError
from fsedit.editor import EditResult
from fsedit.exceptions import FseditError
from fsedit.search import GrepOptions, ProjectGrepOptions, SearchMatch
from fsedit.tree import TreeOptions
from fsedit.workspace import Workspace

app = typer.Typer(help="fsedit - Sandboxed file editing and search for one project root")

console = get_console()

logger = logging.getLogger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    root: Path = typer.Option(
        None, "--root", "-r", help="Project root (defaults to settings, then current directory)"
    ),
    exclude: list[str] = typer.Option(
        None, "--exclude", "-e", help="Extra exclusion pattern (repeatable)"
    ),
    log_file: Path = typer.Option(None, "--log-file", help="Write logs to this file"),
) -> None:
    """fsedit - Sandboxed file editing and search.

    \b
    Examples:
        fsedit tree                               # Tree of the project root
        fsedit grep "TODO" -t py -C 2             # Search Python files with context
        fsedit cat src/app.py --start 10 --end 20 # Read a line window
        fsedit replace src/app.py 3 4 "x = 1"     # Preview a replacement
        fsedit replace src/app.py 3 4 "x = 1" --apply
    """
    if ctx.resilient_parsing or ctx.invoked_subcommand == "version":
        return
    try:
        settings = load_settings(root, exclude)
    except ConfigurationError as e:
        print_error(console, str(e))
        raise typer.Exit(ExitCodes.GENERAL_ERROR) from e

    setup_logging(settings, log_file)
    ctx.obj = Workspace.from_settings(settings)


def _workspace(ctx: typer.Context) -> Workspace:
    return ctx.obj


def _fail(workspace: Workspace, error: Exception) -> None:
    """Print a core error and exit non-zero."""
    message = workspace.sandbox.redact(str(error))
    logger.warning(f"Command failed: {message}")
    print_error(console, message)
    raise typer.Exit(ExitCodes.GENERAL_ERROR) from error


def _print_edit(result: EditResult) -> None:
    if result.diff_text:
        print_plain(console, result.diff_text)
    else:
        console.print("[dim]No changes[/dim]")
    if result.preview:
        print_plain(console, result.message)
    else:
        console.print(f"[green]{escape(result.message)}[/green]", highlight=False, soft_wrap=True)


def _print_match(match: SearchMatch) -> None:
    for line in match.before:
        print_plain(console, f"{match.path}-{line.line_number}- {line.text}")
    print_plain(console, f"{match.path}:{match.line_number}: {match.line}")
    for line in match.after:
        print_plain(console, f"{match.path}-{line.line_number}- {line.text}")


@app.command("tree")
def tree_command(
    ctx: typer.Context,
    path: str = typer.Argument("/", help="Directory relative to the project root"),
    max_depth: int = typer.Option(None, "--max-depth", "-d", help="Maximum depth to show"),
) -> None:
    """Show the directory tree, hiding excluded entries."""
    workspace = _workspace(ctx)
    try:
        text = workspace.directory_tree(path, TreeOptions(max_depth=max_depth))
    except (FseditError, ValidationError) as e:
        _fail(workspace, e)
    print_plain(console, text)


@app.command("ls")
def list_command(
    ctx: typer.Context,
    path: str = typer.Argument("/", help="Directory relative to the project root"),
    filter_pattern: str = typer.Option("", "--filter", "-f", help="Regex on relative paths"),
) -> None:
    """List included files recursively."""
    workspace = _workspace(ctx)
    try:
        files = workspace.list_files(path, filter_pattern)
    except FseditError as e:
        _fail(workspace, e)
    for name in files:
        print_plain(console, name)


@app.command("cat")
def cat_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File relative to the project root"),
    start: int = typer.Option(1, "--start", "-s", help="First line (1-based)"),
    end: int = typer.Option(None, "--end", "-n", help="Last line (inclusive)"),
    max_lines: int = typer.Option(None, "--max-lines", help="Maximum lines to show"),
    numbers: bool = typer.Option(True, "--numbers/--no-numbers", help="Show line numbers"),
) -> None:
    """Print a file or a window of its lines."""
    workspace = _workspace(ctx)
    try:
        result = workspace.read_file(
            path,
            {
                "start_line": start,
                "end_line": end,
                "max_lines": max_lines,
                "show_line_numbers": numbers,
            },
        )
    except (FseditError, ValidationError) as e:
        _fail(workspace, e)
    if result.content:
        print_plain(console, result.content)
    if result.truncated:
        console.print(
            f"[dim]... continue with --start {result.next_start_line}[/dim]", highlight=False
        )


@app.command("grep")
def grep_command(
    ctx: typer.Context,
    pattern: str = typer.Argument(..., help="Regex (or literal text with --literal)"),
    path: str = typer.Argument("/", help="Directory to search below"),
    file_type: list[str] = typer.Option(None, "--type", "-t", help="Extension (repeatable)"),
    literal: bool = typer.Option(False, "--literal", "-F", help="Match literal text"),
    ignore_case: bool = typer.Option(False, "--ignore-case", "-i", help="Case-insensitive"),
    context: int = typer.Option(0, "--context", "-C", help="Context lines around matches"),
    max_results: int = typer.Option(100, "--max-results", "-m", help="Stop after N matches"),
) -> None:
    """Search every eligible file in the project."""
    workspace = _workspace(ctx)
    try:
        options = ProjectGrepOptions(
            regex=not literal,
            case_sensitive=not ignore_case,
            context=context,
            max_results=max_results,
            file_types=file_type or [],
        )
        result = workspace.project_grep(pattern, path, options)
    except (FseditError, ValidationError) as e:
        _fail(workspace, e)
    for match in result.results:
        _print_match(match)
    summary = (
        f"{len(result.results)} match(es) in {result.files_matched} "
        f"of {result.files_searched} file(s)"
    )
    if result.truncated:
        summary += f" (stopped at {max_results})"
    console.print(f"[dim]{summary}[/dim]", highlight=False)


@app.command("find")
def find_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File relative to the project root"),
    pattern: str = typer.Argument(..., help="Regex (or literal text with --literal)"),
    literal: bool = typer.Option(False, "--literal", "-F", help="Match literal text"),
    ignore_case: bool = typer.Option(False, "--ignore-case", "-i", help="Case-insensitive"),
    context: int = typer.Option(0, "--context", "-C", help="Context lines around matches"),
) -> None:
    """Search a single file."""
    workspace = _workspace(ctx)
    try:
        options = GrepOptions(regex=not literal, case_sensitive=not ignore_case, context=context)
        result = workspace.find_in_file(path, pattern, options)
    except (FseditError, ValidationError) as e:
        _fail(workspace, e)
    for match in result.matches:
        _print_match(match)
    console.print(f"[dim]{len(result.matches)} match(es)[/dim]", highlight=False)


@app.command("insert")
def insert_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File relative to the project root"),
    line: int = typer.Argument(..., help="Anchor line (1-based)"),
    content: str = typer.Argument(..., help="Text to insert (may span lines)"),
    after: bool = typer.Option(False, "--after", help="Insert after the anchor line"),
    apply: bool = typer.Option(False, "--apply", help="Write the change (default: preview)"),
) -> None:
    """Insert content before (or after) a line."""
    workspace = _workspace(ctx)
    try:
        result = workspace.insert_lines(
            path, [{"at_line": line, "content": content}], after=after, preview=not apply
        )
    except FseditError as e:
        _fail(workspace, e)
    _print_edit(result)


@app.command("replace")
def replace_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File relative to the project root"),
    start: int = typer.Argument(..., help="First line to replace"),
    end: int = typer.Argument(..., help="Last line to replace (inclusive)"),
    content: str = typer.Argument(..., help="Replacement text (may span lines)"),
    apply: bool = typer.Option(False, "--apply", help="Write the change (default: preview)"),
) -> None:
    """Replace a line range."""
    workspace = _workspace(ctx)
    try:
        result = workspace.edit_lines(
            path,
            [{"start_line": start, "end_line": end, "content": content}],
            preview=not apply,
        )
    except FseditError as e:
        _fail(workspace, e)
    _print_edit(result)


@app.command("delete-lines")
def delete_lines_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File relative to the project root"),
    start: int = typer.Argument(..., help="First line to delete"),
    end: int = typer.Argument(..., help="Last line to delete (inclusive)"),
    apply: bool = typer.Option(False, "--apply", help="Write the change (default: preview)"),
) -> None:
    """Delete a line range."""
    workspace = _workspace(ctx)
    try:
        result = workspace.delete_lines(
            path, [{"start_line": start, "end_line": end}], preview=not apply
        )
    except FseditError as e:
        _fail(workspace, e)
    _print_edit(result)


@app.command("version")
def version_command() -> None:
    """Show version."""
    console.print(f"fsedit version {__version__}")
