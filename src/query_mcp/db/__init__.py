"""Database connectivity."""

from query_mcp.db.connection import (
    DatabaseError,
    detect_dialect_from_url,
    get_engine,
    normalize_database_url,
    test_connection,
)

__all__ = [
    "DatabaseError",
    "detect_dialect_from_url",
    "get_engine",
    "normalize_database_url",
    "test_connection",
]
