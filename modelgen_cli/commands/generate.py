"""Model generation command - introspects a schema and writes SQLAlchemy models."""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..analysis import Conventions, RunOptions, SchemaModel, SchemaModelBuilder
from ..config import settings
from ..database import CachingCatalogReader, create_reader
from ..errors import ModelgenError
from ..generator import RepositoryGenerator, SQLAlchemyModelGenerator, write_files

logger = logging.getLogger(__name__)

console = Console()


def introspect_schema(
    dsn: Optional[str],
    schema: str,
    options: RunOptions,
    table: Optional[str] = None,
    workers: int = 1,
) -> SchemaModel:
    """Connect, build the schema model and close the connection.

    Raises:
        ModelgenError: On configuration or catalog access failures
    """
    reader = create_reader(
        dsn,
        connect_timeout=settings.connect_timeout,
        statement_timeout_ms=settings.statement_timeout_ms,
    )
    with CachingCatalogReader(reader) as cached:
        builder = SchemaModelBuilder(cached, schema=schema, options=options)
        return builder.build(table=table, workers=workers)


def print_entities(schema_model: SchemaModel):
    """Display the inferred entities as a table."""
    table = Table(title=f"Entities in schema {schema_model.schema}")
    table.add_column("Relation", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Primary Key", style="yellow")
    table.add_column("Fields", justify="right")
    table.add_column("Timestamps")
    table.add_column("Associations", style="magenta")

    for entity in schema_model.entities:
        pk = entity.primary_key
        key = ", ".join(pk.columns) if pk.columns else "-"
        if pk.is_uuid:
            key += " (uuid, db default)" if pk.has_db_default else " (uuid)"

        associations = [f"{a.kind.value}:{a.field}->{a.target}" for a in entity.associations.all]
        table.add_row(
            entity.name,
            entity.relation.kind.value,
            f"{key} [{pk.shape.value}]",
            str(len(entity.fields)),
            "yes" if entity.timestamps else "no",
            "\n".join(associations) or "-",
        )

    console.print(table)


def print_diagnostics(schema_model: SchemaModel):
    """Display associations that were dropped during analysis."""
    diagnostics = schema_model.diagnostics
    if not diagnostics:
        console.print("[green]No dropped associations[/green]")
        return

    table = Table(title="Dropped Associations")
    table.add_column("Relation", style="cyan")
    table.add_column("Code", style="yellow")
    table.add_column("Message")
    for diagnostic in diagnostics:
        table.add_row(diagnostic.relation, diagnostic.code, diagnostic.message)
    console.print(table)


def generate(
    dsn: Optional[str] = typer.Option(None, "--dsn", help="PostgreSQL URL (or MODELGEN_DATABASE_URL env)"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to introspect (default: public)"),
    table: Optional[str] = typer.Option(None, "--table", "-t", help="Only generate this relation"),
    exclude_views: bool = typer.Option(False, "--exclude-views", help="Skip views and materialized views"),
    binary_id: bool = typer.Option(False, "--binary-id", help="Use UUID identifiers for keys and foreign keys"),
    no_timestamps: bool = typer.Option(False, "--no-timestamps", help="Never use the timestamp mixin"),
    no_associations: bool = typer.Option(False, "--no-associations", help="Skip relationship analysis"),
    package: Optional[str] = typer.Option(None, "--package", "-p", help="Name of the generated package"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Directory to write the package to"),
    context: Optional[str] = typer.Option(None, "--context", help="Also generate a repository module with this name"),
    context_tables: Optional[str] = typer.Option(
        None, "--context-tables", help="Comma-separated relations for the repository (default: all)"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", help="Relations analyzed concurrently"),
    overwrite: bool = typer.Option(True, "--overwrite/--no-overwrite", help="Replace existing files"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Generate code but don't write files"),
    diagnostics: bool = typer.Option(False, "--diagnostics", help="Report associations that were dropped"),
):
    """
    Generate SQLAlchemy models from a PostgreSQL schema.

    This command will:
    1. Introspect the schema's tables, views, keys and constraints
    2. Infer primary keys, timestamps and associations
    3. Write one model module per relation (plus an optional repository)

    Examples:
        modelgen generate --dsn postgresql://localhost/app
        modelgen generate -s billing --binary-id -o src --package billing_models
        modelgen generate --context Accounts --context-tables users,teams --dry-run
    """
    schema = schema or settings.db_schema
    package = package or settings.package_name
    output_dir = output_dir or settings.output_dir
    workers = workers or settings.workers

    options = RunOptions(
        binary_id=binary_id,
        skip_timestamps=no_timestamps,
        skip_associations=no_associations,
        include_views=not exclude_views,
        conventions=Conventions.from_settings(settings),
    )

    console.print(Panel(
        f"[bold blue]Generating SQLAlchemy models[/bold blue]\n"
        f"Schema: {schema}\n"
        f"Table: {table or 'All relations'}",
        title="modelgen"
    ))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Introspecting database schema...", total=None)
        try:
            schema_model = introspect_schema(dsn or settings.database_url, schema, options, table, workers)
        except ModelgenError as e:
            console.print(f"[red]Error: {e.message}[/red]")
            raise typer.Exit(1)

    if not schema_model.entities:
        if table:
            console.print(f"[yellow]Relation {table} not found in schema {schema}[/yellow]")
        else:
            console.print(f"[yellow]No relations found in schema {schema}[/yellow]")
        raise typer.Exit(1)

    print_entities(schema_model)
    if diagnostics:
        print_diagnostics(schema_model)

    # A single-table run extends an existing package instead of replacing it
    existing_init = None
    init_path = Path(output_dir) / package / "__init__.py"
    if table and init_path.exists():
        existing_init = init_path.read_text(encoding="utf-8")
        console.print(f"[dim]Adding {table} to existing package {package}[/dim]")

    try:
        files = render_files(schema_model, package, context, context_tables, existing_init)
    except ModelgenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    if dry_run:
        console.print("\n[yellow]Dry run - not writing files[/yellow]")
        for name, code in files.items():
            console.print(f"  {name} ({len(code.splitlines())} lines)")
        return

    # Nor does it replace a repository that covers the whole package
    kept = {}
    if existing_init is not None and context:
        repository = f"{package}/{RepositoryGenerator.module_name(context)}.py"
        kept[repository] = files.pop(repository)

    try:
        written = write_files(output_dir, files, overwrite=overwrite)
        written.extend(write_files(output_dir, kept, overwrite=False))
    except ModelgenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    for path in written:
        console.print(f"[green]Saved {path}[/green]")
    skipped = len(files) + len(kept) - len(written)
    if skipped:
        console.print(f"[yellow]Skipped {skipped} existing file(s)[/yellow]")


def render_files(
    schema_model: SchemaModel,
    package: str,
    context: Optional[str] = None,
    context_tables: Optional[str] = None,
    existing_init: Optional[str] = None,
) -> dict:
    """Render generated files keyed by their path relative to the output dir.

    With ``existing_init`` the package already exists: only the relation
    modules are rendered, ``base.py`` is left alone and the models are added
    to the existing ``__init__.py``.
    """
    generator = SQLAlchemyModelGenerator(schema_model, package)
    if existing_init is None:
        files = generator.generate_package()
    else:
        files = generator.generate_modules()
        files["__init__.py"] = generator.merge_init(existing_init)

    if context:
        wanted = _split_names(context_tables)
        entities = [e for e in schema_model.entities if not wanted or e.name in wanted]
        files.update(RepositoryGenerator(generator).generate(context, entities))

    return {f"{package}/{name}": code for name, code in files.items()}


def _split_names(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]
