"""Utility functions for the query-mcp CLI."""

import signal
import sys
from importlib.metadata import PackageNotFoundError, version

from rich.console import Console

console = Console()


def _get_cli_version() -> str:
    """Get installed package version.

    Falls back to "unknown" when package metadata isn't available
    (e.g. running from a source checkout without installation).
    """
    try:
        return version("query-mcp")
    except PackageNotFoundError:
        return "unknown"


def _handle_sigint(signum, frame):
    """Handle Ctrl-C gracefully."""
    console.print("\n[dim]Cancelled.[/dim]")
    sys.exit(130)


signal.signal(signal.SIGINT, _handle_sigint)
