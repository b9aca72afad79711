"""Database connection management."""

import urllib.parse
from functools import lru_cache

from sqlalchemy import Engine, create_engine, text

from query_mcp.config import get_settings


class DatabaseError(Exception):
    """Database connection or query error."""

    pass


def detect_dialect_from_url(database_url: str) -> str:
    """Detect SQL dialect from database URL.

    Args:
        database_url: SQLAlchemy-compatible database URL

    Returns:
        Dialect name: 'postgresql', 'mysql', 'sqlite', etc.
    """
    if not database_url:
        return "unknown"

    parsed = urllib.parse.urlparse(database_url)
    scheme = parsed.scheme.lower()

    # Handle driver specifications (e.g., postgresql+psycopg2)
    dialect = scheme.split("+")[0]

    dialect_map = {
        "postgres": "postgresql",
        "psycopg2": "postgresql",
        "mysql": "mysql",
        "mariadb": "mysql",
        "pymysql": "mysql",
        "mysqlconnector": "mysql",
        "mssql": "mssql",
        "sqlserver": "mssql",
        "pyodbc": "mssql",
        "pymssql": "mssql",
        "sqlite": "sqlite",
        "sqlite3": "sqlite",
    }

    return dialect_map.get(dialect, dialect)


def normalize_database_url(database_url: str) -> str:
    """Normalize database URL for SQLAlchemy compatibility."""
    if not database_url:
        return database_url

    # Replace 'postgres://' with 'postgresql://' for SQLAlchemy
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[11:]

    return database_url


@lru_cache(maxsize=8)
def get_engine(database_url: str | None = None) -> Engine:
    """Get or create a SQLAlchemy engine.

    Args:
        database_url: Optional database URL. If not provided, uses settings.

    Returns:
        SQLAlchemy Engine instance

    Raises:
        DatabaseError: If no database URL is configured
    """
    if database_url is None:
        database_url = get_settings().database_url

    if not database_url:
        raise DatabaseError("No database URL configured")

    normalized_url = normalize_database_url(database_url)
    dialect = detect_dialect_from_url(normalized_url)

    engine_kwargs: dict = {"pool_pre_ping": True}

    # SQLite uses a singleton/null pool that rejects sizing arguments
    if dialect != "sqlite":
        engine_kwargs.update(
            {
                "pool_size": 5,
                "max_overflow": 10,
                "pool_recycle": 300,
            }
        )

    try:
        return create_engine(normalized_url, **engine_kwargs)
    except Exception as e:
        raise DatabaseError(f"Failed to create database engine: {e}") from e


def test_connection(database_url: str | None = None) -> dict:
    """Test database connection.

    Returns:
        Dict with connection status and info
    """
    try:
        engine = get_engine(database_url)
        dialect = detect_dialect_from_url(str(engine.url))

        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()

        return {
            "connected": True,
            "dialect": dialect,
            "url_host": engine.url.host,
            "url_database": engine.url.database,
            "error": None,
        }
    except DatabaseError as e:
        return {
            "connected": False,
            "dialect": None,
            "url_host": None,
            "url_database": None,
            "error": str(e),
        }
    except Exception as e:
        return {
            "connected": False,
            "dialect": None,
            "url_host": None,
            "url_database": None,
            "error": f"Connection failed: {e}",
        }
