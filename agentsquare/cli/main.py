"""AgentSquare CLI.

Entry point for running the API server and managing agents and settings
directly against the database.

Usage:
    agentsquare serve             Start the API server
    agentsquare init-db           Create database tables
    agentsquare agent list        List agents
    agentsquare settings show     Show settings (secrets masked)
"""

import logging
from typing import Optional

import typer
from rich.console import Console

from agentsquare.cli.output import format_agent_table, format_settings

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="agentsquare",
    help="Chat with image-generation agents: server and admin CLI",
    no_args_is_help=True,
)
agent_app = typer.Typer(help="Manage agents")
settings_app = typer.Typer(help="Inspect settings")
admin_app = typer.Typer(help="Admin account management")

app.add_typer(agent_app, name="agent")
app.add_typer(settings_app, name="settings")
app.add_typer(admin_app, name="admin")

console = Console()


# --- Server ---


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
    log_level: str = typer.Option("info", "--log-level", help="Uvicorn log level"),
):
    """Start the AgentSquare API server."""
    import uvicorn

    console.print(f"[bold]Starting AgentSquare on {host}:{port}[/bold]")
    uvicorn.run(
        "agentsquare.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


@app.command("init-db")
def init_db_cmd():
    """Create database tables (idempotent)."""
    from agentsquare.db.connection import DATABASE_URL, init_db

    init_db()
    console.print(f"[green]Database ready:[/green] {DATABASE_URL}")


# --- Agent commands ---


@agent_app.command("list")
def agent_list(
    all_agents: bool = typer.Option(False, "--all", help="Include inactive agents"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List agents."""
    from agentsquare.db.connection import get_db_context
    from agentsquare.services.agent_service import AgentService

    with get_db_context() as db:
        agents = AgentService(db).list(include_inactive=all_agents)
        console.print(format_agent_table(agents, as_json=json_output))


@agent_app.command("add")
def agent_add(
    name: str = typer.Argument(..., help="Display name"),
    system_prompt: str = typer.Option(..., "--system-prompt", "-p", help="Persona instructions"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    avatar: Optional[str] = typer.Option(None, "--avatar", help="Avatar emoji or URL"),
    policy_prompt: Optional[str] = typer.Option(None, "--policy", help="Moderation rules"),
    min_content_length: int = typer.Option(0, "--min-chars", help="Minimum message length"),
    min_reference_images: int = typer.Option(0, "--min-images", help="Minimum reference images"),
):
    """Create a new agent."""
    from agentsquare.db.connection import get_db_context
    from agentsquare.errors import ValidationError
    from agentsquare.services.agent_service import AgentService

    with get_db_context() as db:
        try:
            agent = AgentService(db).create(
                {
                    "name": name,
                    "system_prompt": system_prompt,
                    "description": description,
                    "avatar": avatar,
                    "policy_prompt": policy_prompt,
                    "min_content_length": min_content_length,
                    "min_reference_images": min_reference_images,
                }
            )
            db.commit()
        except ValidationError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        console.print(f"[green]Created agent {agent.name}[/green] ({agent.id})")


@agent_app.command("remove")
def agent_remove(
    agent_id: str = typer.Argument(..., help="Agent ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete an agent and all of its messages."""
    from agentsquare.db.connection import get_db_context
    from agentsquare.errors import NotFoundError
    from agentsquare.services.agent_service import AgentService

    if not yes:
        typer.confirm(f"Delete agent {agent_id} and all its messages?", abort=True)

    with get_db_context() as db:
        try:
            AgentService(db).delete(agent_id)
            db.commit()
        except NotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
    console.print(f"[green]Deleted agent {agent_id}[/green]")


# --- Settings / admin commands ---


@settings_app.command("show")
def settings_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Display settings with secrets masked."""
    from agentsquare.db.connection import get_db_context
    from agentsquare.services.settings_service import SettingsService

    with get_db_context() as db:
        view = SettingsService(db).masked_view()
        db.commit()
    console.print(format_settings(view, as_json=json_output))


@admin_app.command("set-password")
def admin_set_password(
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True,
        help="New admin password",
    ),
):
    """Store a new admin console password."""
    from agentsquare.db.connection import get_db_context
    from agentsquare.services.settings_service import SettingsService

    if not password.strip():
        console.print("[red]Password must not be empty.[/red]")
        raise typer.Exit(code=1)

    with get_db_context() as db:
        SettingsService(db).update({"admin_password": password})
        db.commit()
    console.print("[green]Admin password updated.[/green]")


if __name__ == "__main__":
    app()
