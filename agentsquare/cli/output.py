"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich table output (default) and machine-parseable
JSON output (--json flag).
"""

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from agentsquare.db.models import Agent

console = Console()


def _agent_dict(agent: Agent) -> dict[str, Any]:
    return {
        "id": agent.id,
        "name": agent.name,
        "description": agent.description,
        "min_content_length": agent.min_content_length,
        "min_reference_images": agent.min_reference_images,
        "is_active": agent.is_active,
        "created_at": agent.created_at,
    }


def format_agent_table(agents: list[Agent], as_json: bool = False) -> str:
    """Format agents as a Rich table or JSON.

    Args:
        agents: Agents to display.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps([_agent_dict(a) for a in agents], indent=2, ensure_ascii=False)

    if not agents:
        return "No agents found."

    table = Table(title="Agents", show_lines=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Min chars", justify="right")
    table.add_column("Min images", justify="right")
    table.add_column("Active")
    table.add_column("Created")

    for agent in agents:
        table.add_row(
            agent.id,
            agent.name,
            str(agent.min_content_length),
            str(agent.min_reference_images),
            "[green]yes[/green]" if agent.is_active else "[dim]no[/dim]",
            agent.created_at[:19] if agent.created_at else "—",
        )

    # Render to string
    with console.capture() as capture:
        console.print(table)
    return capture.get()


def format_settings(view: dict[str, Any], as_json: bool = False) -> str:
    """Format the masked settings view.

    Args:
        view: Output of SettingsService.masked_view().
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(view, indent=2, ensure_ascii=False)

    table = Table(title=f"Settings (version {view.get('version')})")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key in sorted(view):
        if key.startswith("has_") or key in ("version", "updated_at"):
            continue
        table.add_row(key, str(view[key]) or "[dim]—[/dim]")
    table.add_row("admin_password", "set" if view.get("has_admin_password") else "[dim]default[/dim]")

    with console.capture() as capture:
        console.print(table)
    return capture.get()
