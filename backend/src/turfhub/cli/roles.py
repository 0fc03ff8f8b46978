"""Role management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import select

from turfhub.database import get_session_context
from turfhub.models import Role
from turfhub.models.role import DEFAULT_ROLES
from turfhub.services import access

console = Console()
app = typer.Typer(help="Role management commands")


@app.command("list")
def list_roles():
    """List all roles and their permissions."""

    async def _list():
        async with get_session_context() as session:
            result = await session.execute(select(Role).order_by(Role.name))

            table = Table(title="Roles")
            table.add_column("Name", style="cyan")
            table.add_column("Scope", style="magenta")
            table.add_column("Permissions", style="green")

            for role in result.scalars().all():
                table.add_row(role.name, role.scope.value, ", ".join(role.permissions))

            console.print(table)

    asyncio.run(_list())


@app.command("seed")
def seed_roles():
    """Create the built-in roles if they are missing."""

    async def _seed():
        async with get_session_context() as session:
            for name in DEFAULT_ROLES:
                role = await access.get_or_create_default_role(session, name)
                console.print(f"[green]Role ready:[/green] {role.name} ({role.scope.value})")
            await session.commit()

    asyncio.run(_seed())
