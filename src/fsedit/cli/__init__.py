"""Command line interface for fsedit."""

from fsedit.cli.app import app

__all__ = ["app"]
