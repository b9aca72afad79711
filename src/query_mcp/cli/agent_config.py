"""Agent configuration helpers for the query-mcp CLI.

Handles detection summaries, interactive agent selection and
reporting installation results.
"""

from pathlib import Path

from rich.prompt import Confirm, Prompt

from query_mcp.agents import AgentsDetector, install_agents
from query_mcp.cli.utils import console


def _detect_agents(detector: AgentsDetector, base_path: Path) -> list[str]:
    """Agents found on the system or in the project, in registration order."""
    on_system = set(detector.discover_system_installed_agents())
    in_project = set(detector.discover_project_installed_agents(base_path))
    return [name for name in detector.get_agents() if name in on_system | in_project]


def _configure_agents_interactive(
    detector: AgentsDetector, base_path: Path, preselect_installed: bool = True
) -> list[str]:
    """Interactive agent selection.

    Returns:
        List of agent names to configure
    """
    installed = _detect_agents(detector, base_path)
    agents = detector.get_agents()

    if not installed:
        console.print("[yellow]No coding agents detected on this system or project.[/yellow]")
        console.print("[dim]Use --agent to configure one explicitly.[/dim]")
        return []

    console.print("\n[bold]Detected coding agents:[/bold]")
    for i, name in enumerate(installed, 1):
        console.print(f"  [{i}] {agents[name].display_name}")

    console.print("\n[dim]Configure query-mcp for which agents?[/dim]")
    console.print("[1] All detected agents")
    console.print("[2] Select specific agents")
    console.print("[3] Skip agent configuration")

    choice = Prompt.ask("Choice", choices=["1", "2", "3"], default="1")

    if choice == "3":
        return []
    elif choice == "1":
        return installed

    selected = []
    for name in installed:
        if Confirm.ask(f"Configure {agents[name].display_name}?", default=preselect_installed):
            selected.append(name)
    return selected


def _configure_agents(
    agent_names: list[str] | None,
    base_path: Path,
    detector: AgentsDetector | None = None,
) -> dict[str, bool]:
    """Configure coding agents for query-mcp.

    Args:
        agent_names: Agents to configure. If None, uses interactive selection.
        base_path: Project directory that file-based configs are written to.
    """
    detector = detector or AgentsDetector()

    if agent_names is None:
        agent_names = _configure_agents_interactive(detector, base_path)

    if not agent_names:
        console.print("[dim]No agents selected for configuration.[/dim]")
        return {}

    results = install_agents(agent_names, base_path=base_path, detector=detector)

    agents = detector.get_agents()
    for name, success in results.items():
        label = agents[name].display_name if name in agents else name
        if success:
            console.print(f"[green]✓ {label} configured[/green]")
        else:
            console.print(f"[red]✗ {label} could not be configured[/red]")

    success_count = sum(1 for success in results.values() if success)
    console.print(f"\n[green]✓ Configured {success_count}/{len(agent_names)} agent(s)[/green]")
    return results
