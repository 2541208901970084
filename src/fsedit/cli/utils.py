"""Utility functions for CLI module."""

import os
import platform
import sys

from rich.console import Console
from rich.markup import escape


def get_console() -> Console:
    """Create Rich console with proper encoding for Windows.

    On Windows in non-interactive mode (subprocess, pipe, etc.), the default
    encoding is often CP1252, which cannot draw the tree connectors. This
    forces UTF-8 when possible.

    Returns:
        Console: Configured Rich console instance
    """
    if platform.system() == "Windows" and not sys.stdout.isatty():
        import locale

        encoding = locale.getpreferredencoding() or ""
        if "utf" not in encoding.lower():
            os.environ["PYTHONIOENCODING"] = "utf-8"
            return Console(force_terminal=True, legacy_windows=False)
    return Console()


def print_plain(console: Console, text: str) -> None:
    """Print data (file content, paths, trees) without markup or wrapping."""
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def print_error(console: Console, message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True)
