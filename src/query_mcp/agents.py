"""Coding agent registry - detection and MCP configuration for supported agents."""

import logging
import re
import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any

from query_mcp.config import get_settings
from query_mcp.install.detection import DetectionStrategyFactory, Platform
from query_mcp.install.writers import writer_for

logger = logging.getLogger(__name__)

# Key of our entry in every agent's MCP server map
SERVER_KEY = "query-mcp"
DEFAULT_COMMAND = "query-mcp"
DEFAULT_ARGS = ["start"]

_WINDOWS_DRIVE_PATH = re.compile(r"^[a-zA-Z]:[/\\]")


class McpInstallationStrategy(str, Enum):
    """How an agent gets the MCP server registered."""

    FILE = "file"
    SHELL = "shell"
    NONE = "none"


class Agent(ABC):
    """A coding agent that can talk to MCP servers."""

    name: str = ""
    display_name: str = ""

    def __init__(self, strategy_factory: DetectionStrategyFactory | None = None) -> None:
        self.strategy_factory = strategy_factory or DetectionStrategyFactory()

    @abstractmethod
    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        """Detection config (paths / command) for a machine-wide install."""

    @abstractmethod
    def project_detection_config(self) -> dict[str, Any]:
        """Detection config (paths / files) relative to a project directory."""

    def use_absolute_path_for_mcp(self) -> bool:
        return False

    def detect_on_system(self, platform: Platform) -> bool:
        config = self.system_detection_config(platform)
        if not config:
            return False
        strategy = self.strategy_factory.make_from_config(config)
        return strategy.detect(config, platform)

    def detect_in_project(self, base_path: str | Path) -> bool:
        config = {**self.project_detection_config(), "base_path": str(base_path)}
        strategy = self.strategy_factory.make_from_config(config)
        return strategy.detect(config)

    def mcp_installation_strategy(self) -> McpInstallationStrategy:
        return McpInstallationStrategy.FILE

    def shell_mcp_command(self) -> str | None:
        """Shell template with {key}, {command}, {args} and {env} placeholders."""
        return None

    def shell_mcp_remove_command(self, key: str) -> str | None:
        """Command a user runs to unregister a shell-installed MCP server."""
        return None

    def mcp_config_path(self) -> str | None:
        """Config file path relative to the project directory."""
        return None

    def mcp_config_key(self) -> str:
        return "mcpServers"

    def default_mcp_config(self) -> dict[str, Any]:
        return {}

    def mcp_server_config(
        self, command: str, args: list[str] | None = None, env: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Build the server entry written into a file-based config."""
        return {
            "command": command,
            "args": list(args or []),
            "env": dict(env or {}),
        }

    def install_mcp(
        self,
        key: str,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        base_path: str | Path | None = None,
    ) -> bool:
        """Register an MCP server with this agent using its strategy."""
        strategy = self.mcp_installation_strategy()
        if strategy == McpInstallationStrategy.SHELL:
            return self._install_shell_mcp(key, command, args or [], env or {})
        if strategy == McpInstallationStrategy.FILE:
            return self._install_file_mcp(key, command, args or [], env or {}, base_path)
        return False

    def remove_mcp(self, key: str, base_path: str | Path | None = None) -> bool:
        """Remove an MCP server entry from a file-based config.

        Returns True when the entry is gone afterwards (including when the
        config never had it), False when the agent has no config file.
        """
        path = self.resolve_config_path(base_path)
        if path is None:
            return False
        if not path.exists():
            return True

        return (
            writer_for(path, self.default_mcp_config())
            .config_key(self.mcp_config_key())
            .remove_server(key)
            .save()
        )

    def resolve_config_path(self, base_path: str | Path | None) -> Path | None:
        """MCP config file for a project, or None for agents without one."""
        relative = self.mcp_config_path()
        if not relative:
            return None
        return Path(base_path or Path.cwd()) / relative

    def _install_shell_mcp(
        self, key: str, command: str, args: list[str], env: dict[str, str]
    ) -> bool:
        template = self.shell_mcp_command()
        if template is None:
            return False

        command, args = normalize_command(command, args)

        env_string = " ".join(
            f'-e {env_key.upper()}="{value}"' for env_key, value in env.items()
        )

        shell_command = (
            template.replace("{key}", key)
            .replace("{command}", command)
            .replace("{args}", " ".join(f'"{arg}"' for arg in args))
            .replace("{env}", env_string)
        )

        logger.debug(f"Running: {shell_command}")
        try:
            result = subprocess.run(shell_command, shell=True, capture_output=True, text=True)
        except OSError as e:
            logger.warning(f"Could not run {shell_command}: {e}")
            return False

        if result.returncode == 0:
            return True

        return "already exists" in (result.stderr or "")

    def _install_file_mcp(
        self,
        key: str,
        command: str,
        args: list[str],
        env: dict[str, str],
        base_path: str | Path | None,
    ) -> bool:
        path = self.resolve_config_path(base_path)
        if path is None:
            return False

        command, args = normalize_command(command, args)

        return (
            writer_for(path, self.default_mcp_config())
            .config_key(self.mcp_config_key())
            .add_server_config(key, self.mcp_server_config(command, args, env))
            .save()
        )


def normalize_command(command: str, args: list[str] | None = None) -> tuple[str, list[str]]:
    """Split a space-separated command into command + args.

    Absolute paths (starting with / on Unix or a drive letter on Windows)
    are never split, as they may contain spaces (e.g. macOS
    "Application Support").
    """
    args = list(args or [])
    if command.startswith("/") or _WINDOWS_DRIVE_PATH.match(command):
        return command, args

    parts = command.split(" ")
    return parts[0], parts[1:] + args


# =============================================================================
# Supported agents
# =============================================================================


def _cli_detection(binary: str, platform: Platform) -> dict[str, Any]:
    if platform == Platform.WINDOWS:
        return {"command": f"where {binary} 2>nul"}
    return {"command": f"command -v {binary}"}


class Junie(Agent):
    name = "junie"
    display_name = "Junie"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        if platform == Platform.DARWIN:
            return {"paths": ["/Applications/PyCharm*.app", "/Applications/IntelliJ IDEA*.app"]}
        if platform == Platform.WINDOWS:
            return {"paths": ["%ProgramFiles%\\JetBrains\\PyCharm*"]}
        return {
            "paths": [
                "/opt/pycharm*",
                "~/.local/share/JetBrains/Toolbox/apps/pycharm*",
            ]
        }

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".idea", ".junie"]}

    def use_absolute_path_for_mcp(self) -> bool:
        return True

    def mcp_config_path(self) -> str | None:
        return ".junie/mcp/mcp.json"


class Cursor(Agent):
    name = "cursor"
    display_name = "Cursor"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        if platform == Platform.DARWIN:
            return {"paths": ["/Applications/Cursor.app"]}
        if platform == Platform.WINDOWS:
            return {
                "paths": [
                    "%ProgramFiles%\\Cursor",
                    "%LOCALAPPDATA%\\Programs\\Cursor",
                ]
            }
        return {"paths": ["/opt/cursor", "/usr/local/bin/cursor", "~/.local/bin/cursor"]}

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".cursor"]}

    def mcp_config_path(self) -> str | None:
        return ".cursor/mcp.json"


class ClaudeCode(Agent):
    name = "claude_code"
    display_name = "Claude Code"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        return _cli_detection("claude", platform)

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".claude"], "files": ["CLAUDE.md"]}

    def mcp_installation_strategy(self) -> McpInstallationStrategy:
        return McpInstallationStrategy.SHELL

    def shell_mcp_command(self) -> str | None:
        return 'claude mcp add -s local -t stdio {key} "{command}" {args} {env}'

    def shell_mcp_remove_command(self, key: str) -> str | None:
        return f"claude mcp remove -s local {key}"


class Codex(Agent):
    name = "codex"
    display_name = "Codex"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        return _cli_detection("codex", platform)

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".codex"], "files": ["AGENTS.md"]}

    def mcp_config_path(self) -> str | None:
        return ".codex/config.toml"

    def mcp_config_key(self) -> str:
        return "mcp_servers"


class Copilot(Agent):
    name = "copilot"
    display_name = "GitHub Copilot"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        if platform == Platform.DARWIN:
            return {"paths": ["/Applications/Visual Studio Code.app"]}
        if platform == Platform.WINDOWS:
            return {
                "paths": [
                    "%ProgramFiles%\\Microsoft VS Code",
                    "%LOCALAPPDATA%\\Programs\\Microsoft VS Code",
                ]
            }
        return {"command": "command -v code"}

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".vscode"], "files": [".github/copilot-instructions.md"]}

    def mcp_config_path(self) -> str | None:
        return ".vscode/mcp.json"

    def mcp_config_key(self) -> str:
        return "servers"


class OpenCode(Agent):
    name = "opencode"
    display_name = "OpenCode"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        return _cli_detection("opencode", platform)

    def project_detection_config(self) -> dict[str, Any]:
        return {"files": ["AGENTS.md", "opencode.json"]}

    def mcp_config_path(self) -> str | None:
        return "opencode.json"

    def mcp_config_key(self) -> str:
        return "mcp"

    def default_mcp_config(self) -> dict[str, Any]:
        return {"$schema": "https://opencode.ai/config.json"}

    def mcp_server_config(
        self, command: str, args: list[str] | None = None, env: dict[str, str] | None = None
    ) -> dict[str, Any]:
        return {
            "type": "local",
            "enabled": True,
            "command": [command, *(args or [])],
            "environment": dict(env or {}),
        }


class Gemini(Agent):
    name = "gemini"
    display_name = "Gemini CLI"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        return _cli_detection("gemini", platform)

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".gemini"], "files": ["GEMINI.md"]}

    def mcp_config_path(self) -> str | None:
        return ".gemini/settings.json"


class Cline(Agent):
    name = "cline"
    display_name = "Cline"

    def system_detection_config(self, platform: Platform) -> dict[str, Any]:
        return {"paths": ["~/.vscode/extensions/saoudrizwan.claude-dev-*"]}

    def project_detection_config(self) -> dict[str, Any]:
        return {"paths": [".clinerules"]}

    def mcp_installation_strategy(self) -> McpInstallationStrategy:
        # Cline keeps MCP settings in VS Code global storage
        return McpInstallationStrategy.NONE


AGENT_CLASSES: list[type[Agent]] = [
    Junie,
    Cursor,
    ClaudeCode,
    Codex,
    Copilot,
    OpenCode,
    Gemini,
    Cline,
]


class AgentsDetector:
    """Detect which registered agents are installed."""

    def __init__(
        self,
        agent_classes: list[type[Agent]] | None = None,
        strategy_factory: DetectionStrategyFactory | None = None,
    ) -> None:
        factory = strategy_factory or DetectionStrategyFactory()
        self._agents = {
            cls.name: cls(factory) for cls in (agent_classes or AGENT_CLASSES)
        }

    def get_agents(self) -> dict[str, Agent]:
        """All registered agents keyed by name, in registration order."""
        return dict(self._agents)

    def get_agent(self, name: str) -> Agent | None:
        return self._agents.get(name)

    def discover_system_installed_agents(self, platform: Platform | None = None) -> list[str]:
        """Names of agents installed on this machine."""
        platform = platform or Platform.current()
        return [
            name for name, agent in self._agents.items() if agent.detect_on_system(platform)
        ]

    def discover_project_installed_agents(self, base_path: str | Path) -> list[str]:
        """Names of agents that left traces in the project directory."""
        return [
            name for name, agent in self._agents.items() if agent.detect_in_project(base_path)
        ]


def get_binary_path(force_absolute: bool = False) -> str:
    """Command that launches query-mcp, as written into agent configs."""
    configured = get_settings().executable_path
    if configured:
        return configured

    if getattr(sys, "frozen", False):
        return sys.executable

    if force_absolute:
        resolved = shutil.which(DEFAULT_COMMAND)
        if resolved:
            return resolved

    return DEFAULT_COMMAND


def install_agents(
    agent_names: list[str],
    base_path: str | Path | None = None,
    detector: AgentsDetector | None = None,
) -> dict[str, bool]:
    """Install the query-mcp server entry into each named agent.

    Returns:
        Dict mapping agent name -> success. Unknown names map to False.
    """
    detector = detector or AgentsDetector()
    results = {}
    for name in agent_names:
        agent = detector.get_agent(name)
        if agent is None:
            logger.warning(f"Unknown agent: {name}")
            results[name] = False
            continue

        command = get_binary_path(force_absolute=agent.use_absolute_path_for_mcp())
        try:
            results[name] = agent.install_mcp(
                SERVER_KEY, command, list(DEFAULT_ARGS), base_path=base_path
            )
        except OSError as e:
            logger.warning(f"Failed to configure {agent.display_name}: {e}")
            results[name] = False
    return results


def remove_from_agents(
    agent_names: list[str],
    base_path: str | Path | None = None,
    detector: AgentsDetector | None = None,
) -> dict[str, bool]:
    """Remove the query-mcp server entry from each named agent's config."""
    detector = detector or AgentsDetector()
    results = {}
    for name in agent_names:
        agent = detector.get_agent(name)
        if agent is None:
            results[name] = False
            continue
        try:
            results[name] = agent.remove_mcp(SERVER_KEY, base_path=base_path)
        except OSError as e:
            logger.warning(f"Failed to update {agent.display_name}: {e}")
            results[name] = False
    return results
