"""Main CLI for Huly MCP."""

import asyncio
from typing import Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import HulyConfig, load_config
from .connection import ConnectionManager
from .errors import ConfigurationError, HulyError
from .logging_setup import configure_logging
from .platform import PlatformClient
from . import services

app = typer.Typer(
    name="huly-mcp",
    help="Huly issue tracker MCP server and workspace checks",
)
console = Console()


def _run(operation: Callable[[PlatformClient], Awaitable[dict]]) -> dict:
    """Connect, run one service operation, and disconnect; exit on errors."""

    async def runner() -> dict:
        manager = ConnectionManager()
        try:
            client = await manager.acquire()
            return await operation(client)
        finally:
            await manager.release()

    try:
        return asyncio.run(runner())
    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        console.print("")
        console.print(HulyConfig.get_help_message())
        raise typer.Exit(1)
    except HulyError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command("serve")
def serve(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, ...)"),
):
    """Run the MCP server over stdio."""
    from .mcp_server import mcp

    configure_logging(log_level)
    try:
        load_config()
    except ConfigurationError as e:
        typer.echo(f"Failed to load configuration: {e}", err=True)
        raise typer.Exit(1)
    mcp.run(transport="stdio")


@app.command("check")
def check():
    """Verify configuration and connectivity to the workspace."""
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        for suggestion in e.suggestions:
            console.print(f"  [cyan]{suggestion}[/cyan]")
        raise typer.Exit(1)

    console.print(f"URL: {config.url}")
    console.print(f"Workspace: {config.workspace}")
    console.print(f"Auth: {'token' if config.token else 'email/password'}")

    result = _run(services.list_projects)
    console.print(f"[green]Connected.[/green] {len(result['projects'])} project(s) visible.")


@app.command("projects")
def projects():
    """List projects in the workspace."""
    result = _run(services.list_projects)

    table = Table(title="Projects")
    table.add_column("Identifier", style="cyan")
    table.add_column("Name")
    table.add_column("Description", style="dim")
    for project in result["projects"]:
        table.add_row(project["identifier"], project["name"], project["description"] or "")
    console.print(table)


@app.command("issues")
def issues(
    project: str = typer.Argument(..., help="Project identifier (e.g. HULY)"),
    limit: int = typer.Option(20, "--limit", help="Maximum issues to show"),
    status: Optional[str] = typer.Option(None, "--status", help="Status ID filter"),
):
    """List issues of a project."""
    result = _run(lambda client: services.list_issues(client, project, limit=limit, status=status))

    table = Table(title=f"Issues in {project}")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Assignee", style="dim")
    for issue in result["issues"]:
        table.add_row(issue["identifier"], issue["title"], issue["priority"], issue["assignee"] or "")
    console.print(table)


if __name__ == "__main__":
    app()
