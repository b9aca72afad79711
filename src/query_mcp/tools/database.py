"""Database MCP tools."""

import asyncio
import logging
from functools import partial

from query_mcp.registry import ConnectionRegistry
from query_mcp.validation.readonly import (
    QueryGateError,
    add_table_prefix,
    ensure_read_only,
)

logger = logging.getLogger(__name__)

EXECUTION_FAILURE = "execution_failure"


def _error(kind: str, message: str) -> dict:
    return {"status": "error", "kind": kind, "error": message}


async def _database_query(query: str, database: str | None = None) -> dict:
    """Execute a read-only SQL query against a configured connection.

    Only statements starting with SELECT, SHOW, EXPLAIN, DESCRIBE, DESC,
    WITH (followed by a SELECT), VALUES or TABLE are executed. When the
    connection has a table prefix, bare table names after FROM, JOIN, INTO,
    UPDATE, TABLE, DESCRIBE and DESC are prefixed before execution.

    Args:
        query: The SQL query to execute.
        database: Optional connection name. Defaults to the default connection.

    Returns:
        Dict with status 'success' and the result rows, or status 'error'
        and a human-readable message.
    """
    try:
        query = ensure_read_only(query or "")
    except QueryGateError as e:
        logger.info(f"Refused query ({e.kind}): {str(query)[:80]!r}")
        return _error(e.kind, str(e))

    try:
        registry = ConnectionRegistry.get_instance()
        connection = registry.resolve(database)

        prefix = connection.get_table_prefix()
        if prefix:
            query = add_table_prefix(query, prefix)

        logger.debug(f"Executing on {database or 'default'}: {query}")
        # Run the blocking query in a thread pool
        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, partial(connection.execute_sql, query))
    except Exception as e:
        logger.warning(f"Query failed on {database or 'default'}: {e}")
        return _error(EXECUTION_FAILURE, f"Query failed: {e}")

    return {
        "status": "success",
        "connection": database or registry.get_default_name(),
        "rows": rows,
        "row_count": len(rows),
    }


async def _list_connections() -> dict:
    """List the named database connections available to database_query."""
    try:
        registry = ConnectionRegistry.get_instance()
        connections = registry.list_connections()
        return {
            "connections": connections,
            "default": registry.get_default_name(),
            "count": len(connections),
            "error": None,
        }
    except Exception as e:
        return {
            "connections": [],
            "default": None,
            "count": 0,
            "error": str(e),
        }
