"""modelgen CLI - Main entry point."""

import logging
import re

import typer
from rich.console import Console

from . import __version__
from .commands import generate, inspect
from .config import settings

app = typer.Typer(
    name="modelgen",
    help="Generate SQLAlchemy models from a PostgreSQL schema",
    add_completion=False,
)

# Add commands
app.command("generate")(generate.generate)
app.command("inspect")(inspect.inspect)

console = Console()


def mask_password(url: str) -> str:
    """Hide the password part of a database URL."""
    return re.sub(r"(://[^:/@]+:)[^@]*@", r"\1****@", url)


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    database_url = mask_password(settings.database_url) if settings.database_url else "Not set"
    console.print(f"  Database URL: {database_url}")
    console.print(f"  Schema: {settings.db_schema}")
    console.print(f"  Connect timeout: {settings.connect_timeout}s")
    console.print(f"  Statement timeout: {settings.statement_timeout_ms}ms")
    console.print(f"  Output dir: {settings.output_dir}")
    console.print(f"  Package: {settings.package_name}")
    console.print(f"  Workers: {settings.workers}")
    console.print(
        f"  Conventions: id={settings.identifier_column}, "
        f"timestamps={settings.inserted_at_column}/{settings.updated_at_column}"
    )


@app.command()
def version():
    """Show the modelgen version."""
    console.print(f"modelgen {__version__}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable informational logging"),
):
    """
    modelgen - Generate SQLAlchemy models from a PostgreSQL schema.

    Examples:

        modelgen inspect --dsn postgresql://localhost/app

        modelgen generate --schema public --output-dir src

        modelgen generate --binary-id --context Accounts --dry-run
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    app()
