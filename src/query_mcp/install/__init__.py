"""Agent detection and MCP config writers."""

from query_mcp.install.detection import (
    CommandDetectionStrategy,
    CompositeDetectionStrategy,
    DetectionStrategyFactory,
    DirectoryDetectionStrategy,
    FileDetectionStrategy,
    Platform,
)
from query_mcp.install.writers import JsonFileWriter, TomlFileWriter, dict_to_toml, writer_for

__all__ = [
    "CommandDetectionStrategy",
    "CompositeDetectionStrategy",
    "DetectionStrategyFactory",
    "DirectoryDetectionStrategy",
    "FileDetectionStrategy",
    "JsonFileWriter",
    "Platform",
    "TomlFileWriter",
    "dict_to_toml",
    "writer_for",
]
