"""Database management CLI commands."""

import asyncio

import typer
from rich.console import Console

from turfhub.database import close_db, create_db, drop_db, get_session_context
from turfhub.models.role import DEFAULT_ROLES
from turfhub.services import access

console = Console()
app = typer.Typer(help="Database management commands")


@app.command("init")
def init():
    """Create missing tables and seed the built-in roles."""

    async def _init():
        try:
            await create_db()
            async with get_session_context() as session:
                for name in DEFAULT_ROLES:
                    await access.get_or_create_default_role(session, name)
                await session.commit()
        finally:
            await close_db()

    console.print("[dim]Creating tables...[/dim]")
    asyncio.run(_init())
    console.print("[green]Database ready![/green]")


@app.command("drop")
def drop(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Drop all tables.

    WARNING: This will delete all data!
    """
    if not force:
        console.print("[bold red]WARNING:[/bold red] This will delete ALL data in the database!")
        if not typer.confirm("Are you sure you want to continue?"):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)

    async def _drop():
        try:
            await drop_db()
        finally:
            await close_db()

    console.print("[dim]Dropping all tables...[/dim]")
    asyncio.run(_drop())
    console.print("[green]Tables dropped.[/green]")
