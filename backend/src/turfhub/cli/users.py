"""User management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import select

from turfhub.database import get_session_context
from turfhub.models import User
from turfhub.models.role import SUPER_ADMIN_ROLE
from turfhub.services import access
from turfhub.services.accounts import get_user_by_email, normalize_email
from turfhub.services.auth import hash_password

console = Console()
app = typer.Typer(help="User management commands")


@app.command("list")
def list_users():
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            result = await session.execute(select(User).order_by(User.email))
            users = result.scalars().all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Name")
            table.add_column("Verified", style="magenta")
            table.add_column("Created", style="dim")

            for user in users:
                verified = "[green]Yes[/green]" if user.is_verified else "No"
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(
                    user.id, user.email, f"{user.first_name} {user.last_name}", verified, created
                )

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    first_name: str = typer.Option(..., "--first-name", help="First name"),
    last_name: str = typer.Option(..., "--last-name", help="Last name"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password"
    ),
    verified: bool = typer.Option(True, "--verified/--unverified", help="Mark email as verified"),
):
    """Create a user without sending a verification email."""

    async def _create():
        async with get_session_context() as session:
            if await get_user_by_email(session, email):
                console.print(f"[red]Error:[/red] User {email} already exists")
                raise typer.Exit(1)

            user = User(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=normalize_email(email),
                password_hash=hash_password(password.strip()),
                is_verified=verified,
            )
            session.add(user)
            await session.commit()
            console.print(f"[green]Created user:[/green] {user.email} ({user.id})")

    asyncio.run(_create())


@app.command("grant-admin")
def grant_admin(email: str = typer.Argument(..., help="User email")):
    """Give a user the super admin role (admin dashboard access)."""

    async def _grant():
        async with get_session_context() as session:
            user = await get_user_by_email(session, email)
            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            role = await access.get_or_create_default_role(session, SUPER_ADMIN_ROLE)
            assignment = await access.assign_role(session, user.id, role)
            if assignment is None:
                console.print(f"[yellow]Warning:[/yellow] User {email} is already an admin")
                return

            await session.commit()
            console.print(f"[green]Granted {SUPER_ADMIN_ROLE} to:[/green] {user.email}")

    asyncio.run(_grant())
