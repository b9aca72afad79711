"""SQL database connector - wraps the db/ module."""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import text

from query_mcp.db.connection import (
    DatabaseError,
    detect_dialect_from_url,
    get_engine,
)
from query_mcp.db.connection import (
    test_connection as db_test_connection,
)


@dataclass
class SQLConnectorConfig:
    """Configuration for a SQL database connector."""

    type: str = field(default="sql", init=False)
    database_url: str = ""
    table_prefix: str = ""
    description: str = ""


class SQLConnector:
    """Connector for SQL databases via SQLAlchemy."""

    def __init__(self, config: SQLConnectorConfig) -> None:
        self.config = config

    def get_table_prefix(self) -> str:
        """Return the prefix prepended to every real table name."""
        return self.config.table_prefix

    def get_dialect(self) -> str:
        return detect_dialect_from_url(self.config.database_url)

    def test_connection(self) -> dict[str, Any]:
        return db_test_connection(self.config.database_url)

    def execute_sql(self, sql: str, params: dict | None = None) -> list[dict[str, Any]]:
        """Execute SQL and return rows as dicts.

        Without ``params`` the statement is passed to the driver untouched, so
        literal colons and percent signs in user SQL are not taken as bind
        markers.
        """
        try:
            engine = get_engine(self.config.database_url)
            with engine.connect() as conn:
                if params:
                    result = conn.execute(text(sql), params)
                else:
                    result = conn.execution_options(no_parameters=True).exec_driver_sql(sql)
                if not result.returns_rows:
                    return []
                columns = list(result.keys())
                return [dict(zip(columns, row)) for row in result]
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to execute SQL: {e}") from e
