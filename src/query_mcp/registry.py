"""Connection registry for multi-connection support.

Discovers, caches, and provides access to named database connections.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from query_mcp.config import Settings, get_settings
from query_mcp.connectors import CONNECTOR_FILE, Connector, get_connector

logger = logging.getLogger(__name__)


class ConnectionInfo:
    """Metadata about a discovered connection."""

    __slots__ = ("name", "path", "description", "has_prefix", "is_default")

    def __init__(
        self,
        name: str,
        path: Path,
        description: str = "",
        has_prefix: bool = False,
        is_default: bool = False,
    ):
        self.name = name
        self.path = path
        self.description = description
        self.has_prefix = has_prefix
        self.is_default = is_default

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "has_prefix": self.has_prefix,
            "is_default": self.is_default,
        }


class ConnectionRegistry:
    """Registry that discovers and caches database connections.

    Thread-safe singleton per settings configuration.
    """

    _instance: ConnectionRegistry | None = None
    _lock = threading.Lock()

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._connections: dict[str, ConnectionInfo] = {}
        self._connectors: dict[str, Connector] = {}
        self._connectors_lock = threading.Lock()
        self._discovered = False

    @classmethod
    def get_instance(cls, settings: Settings | None = None) -> ConnectionRegistry:
        """Get or create the singleton registry instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls(settings)
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            cls._instance = None

    def discover(self) -> dict[str, ConnectionInfo]:
        """Scan the connections directory for <name>/connector.yaml entries."""
        connections_dir = self._settings.get_connections_dir()
        self._connections.clear()

        if not connections_dir.is_dir():
            self._discovered = True
            return self._connections

        default_name = self.get_default_name()

        for entry in sorted(connections_dir.iterdir()):
            if not entry.is_dir():
                continue
            yaml_path = entry / CONNECTOR_FILE
            if not yaml_path.exists():
                continue

            try:
                with open(yaml_path) as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Skipping connection {entry.name}: {e}")
                continue

            self._connections[entry.name] = ConnectionInfo(
                name=entry.name,
                path=entry,
                description=data.get("description", ""),
                has_prefix=bool(data.get("table_prefix")),
                is_default=(entry.name == default_name),
            )

        self._discovered = True
        return self._connections

    def list_connections(self) -> list[dict[str, Any]]:
        """List all discovered connections with metadata."""
        if not self._discovered:
            self.discover()
        return [info.to_dict() for info in self._connections.values()]

    def get_default_name(self) -> str:
        """Return the configured default connection name."""
        return self._settings.connection_name or "default"

    def resolve(self, name: str | None = None) -> Connector:
        """Resolve a connection name to a connector.

        Rules:
        - name given -> must be a discovered connection or the default name
        - name omitted or empty -> the discovered connection named after the
          configured default, else the connection built from settings

        Raises:
            ValueError: If a named connection does not exist.
        """
        name = name or None
        if not self._discovered:
            self.discover()

        default_name = self.get_default_name()
        if name is not None and name not in self._connections and name != default_name:
            available = list(self._connections.keys())
            if available:
                raise ValueError(
                    f"Connection '{name}' not found. "
                    f"Available connections: {', '.join(available)}"
                )
            raise ValueError(f"Connection '{name}' not found. No connections are configured.")

        cache_key = name or default_name

        with self._connectors_lock:
            cached = self._connectors.get(cache_key)
            if cached is not None:
                return cached

            info = self._connections.get(cache_key)
            if info is not None:
                connector = get_connector(info.path)
            else:
                connector = get_connector(settings=self._settings)

            self._connectors[cache_key] = connector
            return connector

