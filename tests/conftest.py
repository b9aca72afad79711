"""Shared fixtures."""

import pytest

from query_mcp.config import reset_settings
from query_mcp.registry import ConnectionRegistry


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at an empty connections dir and drop cached state."""
    monkeypatch.setenv("CONNECTIONS_DIR", str(tmp_path / "connections"))
    monkeypatch.setenv("CONNECTION_NAME", "default")
    for var in ("DATABASE_URL", "TABLE_PREFIX", "EXECUTABLE_PATH", "MCP_TRANSPORT"):
        monkeypatch.delenv(var, raising=False)

    reset_settings()
    ConnectionRegistry.reset()
    yield
    reset_settings()
    ConnectionRegistry.reset()
