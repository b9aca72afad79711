"""FastMCP server for query-mcp."""

import logging
import sys
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from starlette.requests import Request
from starlette.responses import JSONResponse

from query_mcp.config import get_settings
from query_mcp.tools.database import _database_query, _list_connections

logger = logging.getLogger(__name__)


class HealthCheckFilter(logging.Filter):
    """Filter out health check requests from uvicorn access logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        return "GET /health" not in record.getMessage()


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


INSTRUCTIONS = """
Read-only database access for this project.

- Use `database_query` to run SELECT, SHOW, EXPLAIN, DESCRIBE, DESC,
  WITH ... SELECT, VALUES or TABLE statements. Anything else is refused.
- Write table names without the connection's table prefix; it is added
  automatically.
- Use `list_connections` to see which named connections can be passed as
  `database`.
"""


async def database_query(query: str, database: str | None = None) -> list[dict[str, Any]]:
    """Execute a read-only SQL query against the configured database.

    Args:
        query: The SQL query to execute. Only read-only queries are allowed
            (i.e. SELECT, SHOW, EXPLAIN, DESCRIBE).
        database: Optional database connection name to use. Defaults to the
            default connection.
    """
    result = await _database_query(query, database)
    if result["status"] == "error":
        raise ToolError(result["error"])
    return result["rows"]


def _create_server() -> FastMCP:
    """Create and configure the MCP server."""
    settings = get_settings()

    server = FastMCP(name="query-mcp", instructions=INSTRUCTIONS)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint for load balancers and probes."""
        return JSONResponse(
            {
                "status": "healthy",
                "service": "query-mcp",
                "connection": settings.connection_name,
            }
        )

    async def _ping() -> dict:
        """Health check - verify server is running."""
        return {
            "status": "ok",
            "connection": settings.connection_name,
            "database_configured": bool(settings.database_url),
        }

    server.tool(name="ping")(_ping)
    server.tool(name="database_query", annotations={"readOnlyHint": True})(database_query)
    server.tool(name="list_connections", annotations={"readOnlyHint": True})(
        _list_connections
    )

    return server


def _configure_logging() -> None:
    """Configure logging on stderr so stdio transport stays clean."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    """Run the MCP server."""
    _configure_logging()

    settings = get_settings()
    mcp = _create_server()

    logger.info(
        f"Starting query-mcp over {settings.mcp_transport} "
        f"(default connection: {settings.connection_name})"
    )

    if settings.mcp_transport == "http":
        mcp.run(
            transport="http",
            host=settings.mcp_host,
            port=settings.mcp_port,
            path=settings.mcp_path,
        )
    else:
        mcp.run()


if __name__ == "__main__":
    main()
