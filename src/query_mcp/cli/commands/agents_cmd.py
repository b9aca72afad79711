"""Agent commands: install, agents, uninstall."""

import sys
from pathlib import Path

import click
from rich.table import Table

from query_mcp.agents import (
    SERVER_KEY,
    AgentsDetector,
    McpInstallationStrategy,
    remove_from_agents,
)
from query_mcp.cli.agent_config import _configure_agents, _detect_agents
from query_mcp.cli.utils import console
from query_mcp.install.detection import Platform

_path_option = click.option(
    "--path",
    "-p",
    "base_path",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project directory to detect agents in and write configs to",
)


def _validate_agent_names(detector: AgentsDetector, names: tuple[str, ...]) -> list[str]:
    agent_names = list(names)
    known = detector.get_agents()
    invalid = [name for name in agent_names if name not in known]
    if invalid:
        console.print(f"[red]Unknown agent(s): {', '.join(invalid)}[/red]")
        console.print(f"\n[dim]Valid agent names: {', '.join(known.keys())}[/dim]")
        sys.exit(1)
    return agent_names


@click.command()
@click.option("--all", "-a", "all_", is_flag=True, help="Configure all detected agents")
@click.option(
    "--agent",
    "-A",
    multiple=True,
    help="Configure specific agent(s) by name (e.g., cursor, claude_code, codex)",
)
@_path_option
def install(all_: bool, agent: tuple[str, ...], base_path: Path):
    """Configure coding agents to use query-mcp as an MCP server.

    Detects installed agents (on this machine or in the project) and writes
    the query-mcp server entry into their MCP configuration.

    Examples:
        query-mcp install                       # Interactive selection
        query-mcp install --all                 # Configure all detected
        query-mcp install -A cursor -A codex    # Configure specific agents
    """
    detector = AgentsDetector()
    base_path = base_path.resolve()

    if agent:
        _configure_agents(_validate_agent_names(detector, agent), base_path, detector)
    elif all_:
        detected = _detect_agents(detector, base_path)
        if not detected:
            console.print("[yellow]No coding agents detected.[/yellow]")
            return
        _configure_agents(detected, base_path, detector)
    else:
        _configure_agents(None, base_path, detector)


@click.command()
@_path_option
def agents(base_path: Path):
    """List supported agents and whether they were detected."""
    detector = AgentsDetector()
    base_path = base_path.resolve()
    on_system = set(detector.discover_system_installed_agents())
    in_project = set(detector.discover_project_installed_agents(base_path))

    table = Table(title="Coding agents")
    table.add_column("Name")
    table.add_column("Agent")
    table.add_column("System")
    table.add_column("Project")
    table.add_column("MCP config")

    for name, agent_info in detector.get_agents().items():
        table.add_row(
            name,
            agent_info.display_name,
            "✓" if name in on_system else "",
            "✓" if name in in_project else "",
            agent_info.mcp_config_path() or agent_info.mcp_installation_strategy().value,
        )

    console.print(table)
    console.print(f"[dim]Platform: {Platform.current().value}[/dim]")


@click.command()
@click.option("--agent", "-A", multiple=True, required=True, help="Agent(s) to update")
@_path_option
def uninstall(agent: tuple[str, ...], base_path: Path):
    """Remove the query-mcp entry from agents' MCP configuration."""
    detector = AgentsDetector()
    agent_names = _validate_agent_names(detector, agent)
    base_path = base_path.resolve()
    results = remove_from_agents(agent_names, base_path=base_path, detector=detector)

    for name, success in results.items():
        agent_info = detector.get_agents()[name]
        label = agent_info.display_name
        strategy = agent_info.mcp_installation_strategy()
        if success:
            console.print(f"[green]✓ Removed query-mcp from {label}[/green]")
        elif strategy == McpInstallationStrategy.SHELL:
            remove_command = agent_info.shell_mcp_remove_command(SERVER_KEY)
            console.print(f"[yellow]{label} manages MCP servers through its own CLI.[/yellow]")
            if remove_command:
                console.print(f"[dim]Run: {remove_command}[/dim]")
        elif strategy == McpInstallationStrategy.FILE:
            config_path = agent_info.resolve_config_path(base_path)
            console.print(
                f"[red]✗ Could not update {config_path}: "
                f"the existing config could not be parsed[/red]"
            )
        else:
            console.print(f"[yellow]{label} has no editable MCP config[/yellow]")


def register_commands(main_group: click.Group) -> None:
    """Register agent commands with the main group."""
    main_group.add_command(install)
    main_group.add_command(agents)
    main_group.add_command(uninstall)
