"""Detection strategies for locating coding agents.

A detection config is a plain dict with any of these keys:

- ``paths``: directories/files whose existence means the agent is there.
  ``~`` and environment variables are expanded, glob patterns are allowed,
  and relative paths are resolved against ``base_path``.
- ``command``: a shell command that exits 0 when the agent is installed.
- ``files``: file names checked under ``base_path``.
"""

import glob
import logging
import os
import platform
import subprocess
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Platform(str, Enum):
    """Operating system family used to pick detection rules."""

    DARWIN = "darwin"
    LINUX = "linux"
    WINDOWS = "windows"

    @classmethod
    def current(cls) -> "Platform":
        system = platform.system()
        if system == "Darwin":
            return cls.DARWIN
        if system == "Windows":
            return cls.WINDOWS
        return cls.LINUX


class DetectionStrategy(Protocol):
    def detect(self, config: dict[str, Any], platform: Platform | None = None) -> bool: ...


def _expand_path(path: str, base_path: str | None = None) -> str:
    expanded = os.path.expandvars(os.path.expanduser(path))
    if base_path and not os.path.isabs(expanded):
        expanded = os.path.join(base_path, expanded)
    return expanded


class DirectoryDetectionStrategy:
    """Detect an agent by the presence of any configured path."""

    def detect(self, config: dict[str, Any], platform: Platform | None = None) -> bool:
        base_path = config.get("base_path")
        for path in config.get("paths", []):
            expanded = _expand_path(path, base_path)
            if glob.has_magic(expanded):
                if glob.glob(expanded):
                    return True
            elif Path(expanded).exists():
                return True
        return False


class CommandDetectionStrategy:
    """Detect an agent by running a shell command and checking its exit code."""

    def detect(self, config: dict[str, Any], platform: Platform | None = None) -> bool:
        command = config.get("command")
        if not command:
            return False
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Detection command failed: {command}: {e}")
            return False
        return result.returncode == 0


class FileDetectionStrategy:
    """Detect an agent by files inside a project directory."""

    def detect(self, config: dict[str, Any], platform: Platform | None = None) -> bool:
        base_path = config.get("base_path")
        if not base_path:
            return False
        return any((Path(base_path) / name).exists() for name in config.get("files", []))


class CompositeDetectionStrategy:
    """Detect an agent when any of the child strategies does."""

    def __init__(self, strategies: list[DetectionStrategy]) -> None:
        self.strategies = strategies

    def detect(self, config: dict[str, Any], platform: Platform | None = None) -> bool:
        return any(strategy.detect(config, platform) for strategy in self.strategies)


class DetectionStrategyFactory:
    """Build the detection strategy matching a detection config."""

    def make_from_config(self, config: dict[str, Any]) -> DetectionStrategy:
        """Return a strategy for the keys present in ``config``.

        Raises:
            ValueError: If the config has none of paths, command or files.
        """
        strategies: list[DetectionStrategy] = []

        if config.get("paths"):
            strategies.append(DirectoryDetectionStrategy())
        if config.get("command"):
            strategies.append(CommandDetectionStrategy())
        if config.get("files"):
            strategies.append(FileDetectionStrategy())

        if not strategies:
            raise ValueError(
                "Detection config needs at least one of 'paths', 'command' or 'files'"
            )
        if len(strategies) == 1:
            return strategies[0]
        return CompositeDetectionStrategy(strategies)
