"""Connector abstraction layer.

Defines the Connector protocol and provides factory functions
for creating connectors from configuration.
"""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from query_mcp.config import Settings, get_settings
from query_mcp.connectors.sql import SQLConnector, SQLConnectorConfig

CONNECTOR_FILE = "connector.yaml"


@runtime_checkable
class Connector(Protocol):
    """Protocol defining the interface the query tool relies on."""

    def get_table_prefix(self) -> str:
        """Return the table prefix for this connection ('' for none)."""
        ...

    def get_dialect(self) -> str:
        """Return the dialect identifier."""
        ...

    def test_connection(self) -> dict[str, Any]:
        """Test connectivity and return status info."""
        ...

    def execute_sql(self, sql: str, params: dict | None = None) -> list[dict[str, Any]]:
        """Execute a SQL query and return rows as dicts."""
        ...


def load_connector_config(path: Path) -> SQLConnectorConfig:
    """Load connector config from a connector.yaml file.

    Raises:
        ValueError: If the connector type is not 'sql'
    """
    if not path.exists():
        return SQLConnectorConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    connector_type = data.get("type", "sql")
    if connector_type != "sql":
        raise ValueError(f"Unknown connector type: {connector_type}")

    return SQLConnectorConfig(
        database_url=str(data.get("database_url", "") or ""),
        table_prefix=str(data.get("table_prefix", "") or ""),
        description=str(data.get("description", "") or ""),
    )


def get_connector(
    connection_path: str | Path | None = None, settings: Settings | None = None
) -> Connector:
    """Factory: create a Connector for a connection directory.

    Reads connector.yaml from the connection directory. Without a path,
    builds a SQLConnector from DATABASE_URL / TABLE_PREFIX in settings.
    """
    if connection_path is None:
        settings = settings or get_settings()
        return SQLConnector(
            SQLConnectorConfig(
                database_url=settings.database_url,
                table_prefix=settings.table_prefix,
            )
        )

    config = load_connector_config(Path(connection_path) / CONNECTOR_FILE)
    return SQLConnector(config)


__all__ = [
    "CONNECTOR_FILE",
    "Connector",
    "SQLConnector",
    "SQLConnectorConfig",
    "get_connector",
    "load_connector_config",
]
