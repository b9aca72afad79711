"""Writers that merge an MCP server entry into an agent's config file."""

import datetime
import json
import logging
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    """Existing agent config could not be parsed."""


def _format_inline_value(value) -> str:
    """Format any value as an inline TOML value (dicts as inline tables).

    Raises:
        TypeError: If the value has no TOML representation.
    """
    if isinstance(value, dict):
        items = ", ".join(
            f"{_toml_key(k)} = {_format_inline_value(v)}" for k, v in value.items()
        )
        return "{" + items + "}"
    elif isinstance(value, list):
        return "[" + ", ".join(_format_inline_value(v) for v in value) + "]"
    elif isinstance(value, str):
        return json.dumps(value)
    elif isinstance(value, bool):
        return str(value).lower()
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    raise TypeError(f"Cannot write {type(value).__name__} value to TOML")


def _format_toml_value(value) -> str | None:
    """Format a scalar or list value for TOML. Returns None for dicts."""
    if isinstance(value, dict):
        return None
    return _format_inline_value(value)


def _toml_key(key: str) -> str:
    """Quote a table key unless it is a bare TOML key."""
    if key and all(c.isalnum() or c in "-_" for c in key):
        return key
    return json.dumps(key)


def dict_to_toml(data: dict, prefix: str = "") -> str:
    """Convert dict to TOML format string.

    Recursively handles arbitrary nesting depth so that structures like
    ``mcp_servers.<name>.env`` survive a round-trip.
    """
    lines: list[str] = []

    # First pass: scalar / list values at this level
    for key, value in data.items():
        formatted = _format_toml_value(value)
        if formatted is not None:
            lines.append(f"{_toml_key(key)} = {formatted}")

    # Second pass: dict values as TOML tables
    for key, value in data.items():
        if not isinstance(value, dict):
            continue
        section = f"{prefix}.{_toml_key(key)}" if prefix else _toml_key(key)
        # Emit a header if the table has its own scalar keys or is empty
        has_scalars = any(_format_toml_value(v) is not None for v in value.values())
        if has_scalars or not value:
            lines.append(f"\n[{section}]")
            for k, v in value.items():
                formatted = _format_toml_value(v)
                if formatted is not None:
                    lines.append(f"{_toml_key(k)} = {formatted}")
        sub = dict_to_toml(
            {k: v for k, v in value.items() if isinstance(v, dict)},
            prefix=section,
        )
        if sub:
            if not has_scalars:
                lines.append("")
            lines.append(sub)

    return "\n".join(lines)


class JsonFileWriter:
    """Merge MCP server entries into a JSON config file.

    Other keys and other servers already in the file are preserved.
    """

    def __init__(self, path: str | Path, base_config: dict[str, Any] | None = None) -> None:
        self.path = Path(path)
        self.base_config = dict(base_config or {})
        self._config_key = "mcpServers"
        self._servers: dict[str, dict[str, Any]] = {}
        self._removals: list[str] = []

    def config_key(self, key: str) -> "JsonFileWriter":
        self._config_key = key
        return self

    def add_server_config(self, key: str, config: dict[str, Any]) -> "JsonFileWriter":
        self._servers[key] = config
        return self

    def remove_server(self, key: str) -> "JsonFileWriter":
        self._removals.append(key)
        return self

    def _parse(self, raw: str) -> dict[str, Any]:
        return json.loads(raw)

    def _dump(self, config: dict[str, Any]) -> str:
        return json.dumps(config, indent=2) + "\n"

    def load(self) -> dict[str, Any]:
        """Load the existing config, or the base config when there is none.

        Raises:
            ConfigLoadError: If the file exists but cannot be parsed.
        """
        if not self.path.exists():
            return dict(self.base_config)

        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return dict(self.base_config)

        try:
            data = self._parse(raw)
        except (ValueError, tomllib.TOMLDecodeError) as e:
            raise ConfigLoadError(f"Could not parse {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top of {self.path}")
        return data

    def save(self) -> bool:
        """Write pending changes.

        Returns False, leaving the file untouched, if the existing file cannot
        be parsed or the merged config cannot be serialized.
        """
        try:
            config = self.load()
        except ConfigLoadError as e:
            logger.warning(str(e))
            return False

        servers = config.get(self._config_key)
        if not isinstance(servers, dict):
            servers = {}

        for key in self._removals:
            servers.pop(key, None)
        servers.update(self._servers)
        config[self._config_key] = servers

        try:
            content = self._dump(config)
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not serialize {self.path}: {e}")
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(content, encoding="utf-8")
        logger.debug(f"Wrote MCP config to {self.path}")
        return True


class TomlFileWriter(JsonFileWriter):
    """Merge MCP server entries into a TOML config file (e.g. Codex)."""

    def __init__(self, path: str | Path, base_config: dict[str, Any] | None = None) -> None:
        super().__init__(path, base_config)
        self._config_key = "mcp_servers"

    def _parse(self, raw: str) -> dict[str, Any]:
        return tomllib.loads(raw)

    def _dump(self, config: dict[str, Any]) -> str:
        return dict_to_toml(config).lstrip("\n") + "\n"


def writer_for(path: str | Path, base_config: dict[str, Any] | None = None) -> JsonFileWriter:
    """Pick the writer for a config path by its extension."""
    if str(path).endswith(".toml"):
        return TomlFileWriter(path, base_config)
    return JsonFileWriter(path, base_config)
