"""Inspect command - shows the inferred model without generating code."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..analysis import Conventions, RunOptions
from ..config import settings
from ..errors import ModelgenError
from .generate import introspect_schema, print_diagnostics, print_entities

console = Console()


def inspect(
    dsn: Optional[str] = typer.Option(None, "--dsn", help="PostgreSQL URL (or MODELGEN_DATABASE_URL env)"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to introspect (default: public)"),
    table: Optional[str] = typer.Option(None, "--table", "-t", help="Only inspect this relation"),
    exclude_views: bool = typer.Option(False, "--exclude-views", help="Skip views and materialized views"),
    diagnostics: bool = typer.Option(False, "--diagnostics", help="Report associations that were dropped"),
):
    """
    Show entities, keys and associations inferred from a schema.

    Examples:
        modelgen inspect --dsn postgresql://localhost/app
        modelgen inspect -t users --diagnostics
    """
    schema = schema or settings.db_schema
    options = RunOptions(
        include_views=not exclude_views,
        conventions=Conventions.from_settings(settings),
    )

    try:
        schema_model = introspect_schema(dsn or settings.database_url, schema, options, table, settings.workers)
    except ModelgenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    if not schema_model.entities:
        console.print(f"[yellow]No relations found in schema {schema}[/yellow]")
        raise typer.Exit(1)

    print_entities(schema_model)

    if table:
        entity = schema_model.entities[0]
        columns = Table(title=f"Columns of {entity.name}")
        columns.add_column("Column", style="cyan")
        columns.add_column("Native Type")
        columns.add_column("Portable Type", style="green")
        columns.add_column("Nullable")
        columns.add_column("Field")
        field_names = {f.name for f in entity.fields}
        for cc in entity.columns:
            columns.add_row(
                cc.name,
                cc.column.native_type,
                str(cc.portable_type),
                "yes" if cc.nullable else "no",
                "yes" if cc.name in field_names else "-",
            )
        console.print(columns)

    if diagnostics:
        print_diagnostics(schema_model)
