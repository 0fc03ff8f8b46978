"""CLI commands using Typer."""

import typer

from turfhub.cli.db import app as db_app
from turfhub.cli.roles import app as roles_app
from turfhub.cli.users import app as users_app

app = typer.Typer(name="turfhub", help="TurfHub CLI")

app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")
app.add_typer(roles_app, name="roles")


@app.command()
def version():
    """Show version information."""
    from turfhub import __version__

    typer.echo(f"TurfHub v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the API server."""
    import uvicorn

    from turfhub.logging import get_uvicorn_log_config, setup_logging

    setup_logging()
    uvicorn.run(
        "turfhub.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


if __name__ == "__main__":
    app()
