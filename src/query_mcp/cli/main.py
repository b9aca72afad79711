"""Click command group for query-mcp.

Commands stay thin: they delegate to the other modules for
business logic.
"""

import os

import click

from query_mcp.cli.commands import agents_cmd
from query_mcp.cli.utils import _get_cli_version


@click.group()
@click.version_option(version=_get_cli_version())
def main():
    """query-mcp - Read-only database MCP server for coding agents."""
    pass


@main.command()
@click.option("-c", "--connection", default=None, help="Default connection name")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default=None,
    help="MCP transport (default: from MCP_TRANSPORT, else stdio)",
)
def start(connection: str | None, transport: str | None):
    """Start the MCP server (stdio mode for local agents)."""
    from query_mcp.config import reset_settings

    if connection:
        os.environ["CONNECTION_NAME"] = connection
    if transport:
        os.environ["MCP_TRANSPORT"] = transport
    reset_settings()

    from query_mcp.server import main as server_main

    server_main()


agents_cmd.register_commands(main)
