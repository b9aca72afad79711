"""Tests for the database_query tool handler."""

import asyncio
import sqlite3
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from query_mcp.config import reset_settings
from query_mcp.tools.database import EXECUTION_FAILURE, _database_query, _list_connections
from query_mcp.validation.readonly import INVALID_QUERY_MESSAGE


class FakeConnector:
    """Connector double that records the SQL it is asked to run."""

    def __init__(self, prefix: str = "", rows=None, error: Exception | None = None):
        self.prefix = prefix
        self.rows = rows if rows is not None else []
        self.error = error
        self.executed: list[str] = []

    def get_table_prefix(self) -> str:
        return self.prefix

    def execute_sql(self, sql, params=None):
        self.executed.append(sql)
        if self.error is not None:
            raise self.error
        return self.rows


def _patch_registry(connector):
    registry = MagicMock()
    registry.resolve.return_value = connector
    registry.get_default_name.return_value = "default"
    return patch(
        "query_mcp.tools.database.ConnectionRegistry.get_instance", return_value=registry
    )


class TestRefusals:
    @pytest.mark.asyncio
    async def test_drop_table_is_refused(self):
        connector = FakeConnector()
        with _patch_registry(connector):
            result = await _database_query("DROP TABLE users")

        assert result["status"] == "error"
        assert result["kind"] == "not_read_only"
        assert "Only read-only queries are allowed" in result["error"]
        assert connector.executed == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None])
    async def test_empty_query_is_refused(self, query):
        connector = FakeConnector()
        with _patch_registry(connector):
            result = await _database_query(query)

        assert result == {
            "status": "error",
            "kind": "invalid_query",
            "error": INVALID_QUERY_MESSAGE,
        }
        assert connector.executed == []

    @pytest.mark.asyncio
    async def test_refused_before_connection_is_resolved(self):
        with patch("query_mcp.tools.database.ConnectionRegistry.get_instance") as get_instance:
            await _database_query("DELETE FROM users")
        get_instance.assert_not_called()


class TestExecution:
    @pytest.mark.asyncio
    async def test_prefix_is_applied_before_execution(self):
        connector = FakeConnector(prefix="wp_", rows=[{"id": 1}])
        with _patch_registry(connector):
            result = await _database_query("SELECT * FROM users")

        assert connector.executed == ["SELECT * FROM wp_users"]
        assert result == {
            "status": "success",
            "connection": "default",
            "rows": [{"id": 1}],
            "row_count": 1,
        }

    @pytest.mark.asyncio
    async def test_no_prefix_runs_trimmed_query(self):
        connector = FakeConnector()
        with _patch_registry(connector):
            await _database_query("  SELECT * FROM users\n")

        assert connector.executed == ["SELECT * FROM users"]

    @pytest.mark.asyncio
    async def test_named_connection_is_resolved(self):
        connector = FakeConnector(rows=[])
        with _patch_registry(connector) as get_instance:
            result = await _database_query("SHOW TABLES", database="analytics")

        get_instance.return_value.resolve.assert_called_once_with("analytics")
        assert result["connection"] == "analytics"
        assert result["row_count"] == 0

    @pytest.mark.asyncio
    async def test_empty_database_name_uses_default(self):
        connector = FakeConnector(rows=[{"id": 1}])
        with _patch_registry(connector):
            result = await _database_query("SELECT 1", database="")

        assert result["status"] == "success"
        assert result["connection"] == "default"

    @pytest.mark.asyncio
    async def test_query_runs_off_the_event_loop_thread(self):
        loop_thread = threading.get_ident()
        seen = []

        class RecordingConnector(FakeConnector):
            def execute_sql(self, sql, params=None):
                seen.append(threading.get_ident())
                return super().execute_sql(sql, params)

        with _patch_registry(RecordingConnector()):
            await _database_query("SELECT 1")

        assert seen and seen[0] != loop_thread

    @pytest.mark.asyncio
    async def test_slow_query_does_not_block_other_tasks(self):
        class SlowConnector(FakeConnector):
            def execute_sql(self, sql, params=None):
                time.sleep(0.5)
                return []

        gaps = []

        async def ticker():
            last = time.monotonic()
            for _ in range(10):
                await asyncio.sleep(0.05)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        with _patch_registry(SlowConnector()):
            await asyncio.gather(_database_query("SELECT 1"), ticker())

        assert max(gaps) < 0.3

    @pytest.mark.asyncio
    async def test_execution_failure_is_reported(self):
        connector = FakeConnector(error=RuntimeError("no such table: users"))
        with _patch_registry(connector):
            result = await _database_query("SELECT * FROM users")

        assert result["status"] == "error"
        assert result["kind"] == EXECUTION_FAILURE
        assert result["error"] == "Query failed: no such table: users"

    @pytest.mark.asyncio
    async def test_unknown_connection_is_reported(self):
        result = await _database_query("SELECT 1", database="missing")

        assert result["status"] == "error"
        assert result["kind"] == EXECUTION_FAILURE
        assert "Connection 'missing' not found" in result["error"]

    @pytest.mark.asyncio
    async def test_missing_database_url_is_reported(self):
        result = await _database_query("SELECT 1")

        assert result["status"] == "error"
        assert result["error"] == "Query failed: No database URL configured"


class TestSqliteEndToEnd:
    @pytest.fixture
    def sqlite_url(self, tmp_path, monkeypatch):
        db_path = tmp_path / "blog.db"
        with sqlite3.connect(db_path) as conn:
            conn.execute("CREATE TABLE wp_users (id INTEGER PRIMARY KEY, name TEXT)")
            conn.executemany(
                "INSERT INTO wp_users (id, name) VALUES (?, ?)", [(1, "ada"), (2, "grace")]
            )
        url = f"sqlite:///{db_path}"
        monkeypatch.setenv("DATABASE_URL", url)
        monkeypatch.setenv("TABLE_PREFIX", "wp_")
        reset_settings()
        return url

    @pytest.mark.asyncio
    async def test_select_with_prefix(self, sqlite_url):
        result = await _database_query("SELECT id, name FROM users ORDER BY id")

        assert result["status"] == "success"
        assert result["rows"] == [{"id": 1, "name": "ada"}, {"id": 2, "name": "grace"}]
        assert result["row_count"] == 2

    @pytest.mark.asyncio
    async def test_empty_database_name_uses_default_connection(self, sqlite_url):
        result = await _database_query("SELECT name FROM users WHERE id = 1", database="")

        assert result["status"] == "success"
        assert result["rows"] == [{"name": "ada"}]

    @pytest.mark.asyncio
    async def test_cte_over_prefixed_table(self, sqlite_url):
        query = (
            "WITH named AS (SELECT name FROM users WHERE id = 2) "
            "SELECT name FROM named"
        )
        result = await _database_query(query)

        assert result["status"] == "success"
        assert result["rows"] == [{"name": "grace"}]

    @pytest.mark.asyncio
    async def test_literal_colon_is_not_a_bind_parameter(self, sqlite_url):
        result = await _database_query("SELECT name FROM users WHERE name != 'a:b' AND id = 1")

        assert result["rows"] == [{"name": "ada"}]

    @pytest.mark.asyncio
    async def test_write_is_refused_and_table_untouched(self, sqlite_url, tmp_path):
        result = await _database_query("DELETE FROM users")
        assert result["kind"] == "not_read_only"

        with sqlite3.connect(tmp_path / "blog.db") as conn:
            count = conn.execute("SELECT COUNT(*) FROM wp_users").fetchone()[0]
        assert count == 2


class TestListConnections:
    @pytest.mark.asyncio
    async def test_lists_discovered_connections(self, tmp_path):
        conn_dir = tmp_path / "connections" / "default"
        conn_dir.mkdir(parents=True)
        (conn_dir / "connector.yaml").write_text(
            "type: sql\ndatabase_url: sqlite://\ntable_prefix: wp_\ndescription: Blog\n"
        )

        result = await _list_connections()

        assert result["error"] is None
        assert result["default"] == "default"
        assert result["count"] == 1
        assert result["connections"] == [
            {"name": "default", "description": "Blog", "has_prefix": True, "is_default": True}
        ]

    @pytest.mark.asyncio
    async def test_no_connections_dir(self):
        result = await _list_connections()
        assert result["connections"] == []
        assert result["count"] == 0
