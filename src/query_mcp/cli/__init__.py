"""query-mcp CLI package.

Re-exports `main` (the click group):

    from query_mcp.cli import main
"""

from query_mcp.cli.main import main

__all__ = ["main"]
