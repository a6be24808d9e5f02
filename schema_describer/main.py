"""schema-describer - Main entry point."""

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

from .backends import BACKENDS
from .config import settings
from .describer import describe as describe_schema
from .describer import describe_metadata, list_schemas
from .engines import ENGINE_ALIASES, resolve_engine
from .errors import DescriberError
from .executor import connect, database_name_from_url
from .models import DefaultValue, Schema
from .serialization import metadata_to_dict, schema_to_dict

app = typer.Typer(
    name="schema-describer",
    help="Describe relational database schemas across engines",
    add_completion=False,
)

console = Console()


def _resolve_url(url: Optional[str]) -> str:
    resolved = url or settings.database_url
    if not resolved:
        console.print("[red]No database URL given (pass URL or set SCHEMA_DESCRIBER_DATABASE_URL)[/red]")
        raise typer.Exit(1)
    return resolved


def _open(url: str, engine: Optional[str]):
    try:
        return connect(url, engine=engine or settings.engine)
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except DescriberError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error connecting to database: {e}[/red]")
        raise typer.Exit(1)


def _schema_name(url: str, schema: Optional[str], engine: str) -> str:
    if schema:
        return schema
    return settings.schema_for(resolve_engine(engine), database_name_from_url(url, engine))


def _format_default(default: Optional[DefaultValue]) -> str:
    if default is None:
        return ""
    if default.is_literal:
        return repr(default.value)
    if default.is_sequence_next:
        return f"nextval({default.sequence_name})"
    if default.is_expression:
        return default.expression_text or ""
    return default.kind.value.upper()


def _print_schema(schema: Schema):
    console.print(f"\n[bold]Schema:[/bold] [cyan]{schema.name}[/cyan] ({schema.engine})")

    for table in schema.tables:
        column_table = Table(title=f"{table.name}")
        column_table.add_column("Column", style="cyan")
        column_table.add_column("Type", style="green")
        column_table.add_column("Native", style="dim")
        column_table.add_column("Nullable", style="yellow")
        column_table.add_column("Default", style="magenta")
        column_table.add_column("Identity")

        for column in table.columns:
            column_type = column.column_type
            family = column_type.family.value
            if column_type.enum_name:
                family = f"{family}({column_type.enum_name})"
            if column_type.is_array:
                family = f"{family}[]"
            column_table.add_row(
                column.name,
                family,
                column_type.native_type,
                "Yes" if column.is_nullable else "No",
                _format_default(column.default),
                "Yes" if column.is_identity else "",
            )
        console.print(column_table)

        for index in table.indexes:
            kind = "PRIMARY KEY" if index.is_primary_key else ("UNIQUE" if index.is_unique else "INDEX")
            console.print(f"  {kind} {index.name} ({', '.join(index.columns)})")
        for fk in table.foreign_keys:
            console.print(
                f"  FOREIGN KEY ({', '.join(fk.columns)}) -> "
                f"{fk.referenced_table} ({', '.join(fk.referenced_columns)}) "
                f"ON DELETE {fk.on_delete.value} ON UPDATE {fk.on_update.value}"
            )

    if schema.enums:
        console.print("\n[green]Enums:[/green]")
        for enum in schema.enums:
            console.print(f"  {enum.name}: {', '.join(enum.variants)}")

    if schema.sequences:
        console.print("\n[green]Sequences:[/green]")
        for sequence in schema.sequences:
            console.print(f"  {sequence.name} (start {sequence.start_value}, current {sequence.current_value})")

    for anomaly in schema.anomalies:
        console.print(f"[yellow]Warning: {anomaly.message}[/yellow]")

    console.print(f"\n[bold]Total: {len(schema.tables)} tables, {len(schema.enums)} enums, {len(schema.sequences)} sequences[/bold]")


@app.command()
def describe(
    url: Optional[str] = typer.Argument(None, help="Database URL (e.g. sqlite:///app.db, postgresql://user@host/db)"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to describe (default depends on the engine)"),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help="Engine family, if the URL scheme does not name it"),
    tables: Annotated[Optional[List[str]], typer.Option(
        "--table", "-t",
        help="Only show these tables (repeatable)",
    )] = None,
    as_json: bool = typer.Option(False, "--json", help="Print the description as JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON description to a file"),
):
    """Describe the tables, columns, indexes and keys of a schema."""
    url = _resolve_url(url)
    table_filter = tables or settings.table_allowlist or None

    with _open(url, engine) as executor:
        schema_name = _schema_name(url, schema, executor.engine)
        try:
            result = describe_schema(executor, schema_name, table_filter=table_filter)
        except DescriberError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1)

    if output:
        output.write_text(json.dumps(schema_to_dict(result), indent=2))
        console.print(f"[green]Wrote description of {len(result.tables)} tables to {output}[/green]")
    elif as_json:
        typer.echo(json.dumps(schema_to_dict(result), indent=2))
    else:
        _print_schema(result)


@app.command()
def schemas(
    url: Optional[str] = typer.Argument(None, help="Database URL"),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help="Engine family, if the URL scheme does not name it"),
):
    """List the user schemas of a database."""
    url = _resolve_url(url)
    with _open(url, engine) as executor:
        try:
            names = list_schemas(executor)
        except DescriberError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1)

    if not names:
        console.print("[yellow]No schemas found[/yellow]")
        return
    for name in names:
        console.print(f"  {name}")


@app.command()
def info(
    url: Optional[str] = typer.Argument(None, help="Database URL"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to summarize"),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help="Engine family, if the URL scheme does not name it"),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON"),
):
    """Show table count, size and server version for a schema."""
    url = _resolve_url(url)
    with _open(url, engine) as executor:
        schema_name = _schema_name(url, schema, executor.engine)
        try:
            metadata = describe_metadata(executor, schema_name)
        except DescriberError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(metadata_to_dict(metadata), indent=2))
        return

    console.print(f"[bold]Schema:[/bold] {metadata.schema_name} ({metadata.engine})")
    console.print(f"  Tables: {metadata.table_count}")
    console.print(f"  Size: {metadata.size_in_bytes} bytes")
    console.print(f"  Version: {metadata.version or 'Unknown'}")
    if metadata.is_mariadb:
        console.print("  Server: MariaDB")


@app.command()
def engines():
    """List supported engine families and their aliases."""
    engine_table = Table(title="Supported Engines")
    engine_table.add_column("Engine", style="cyan")
    engine_table.add_column("Aliases", style="green")
    engine_table.add_column("Backend", style="magenta")

    for family, backend in BACKENDS.items():
        aliases = sorted(alias for alias, target in ENGINE_ALIASES.items() if target is family and alias != family.value)
        engine_table.add_row(family.value, ", ".join(aliases), backend.__name__)
    console.print(engine_table)


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Database URL: {'Configured' if settings.database_url else 'Not set'}")
    console.print(f"  Default Schema: {settings.default_schema or 'Engine default'}")
    console.print(f"  Engine: {settings.engine or 'From URL'}")
    console.print(f"  Table Allowlist: {', '.join(settings.table_allowlist) or 'All tables'}")
    console.print(f"  Log Level: {settings.log_level}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log catalog queries and assembly steps"),
):
    """
    schema-describer - Describe relational database schemas.

    Examples:

        schema-describer describe sqlite:///app.db

        schema-describer describe postgresql://user@localhost/shop --schema sales --json

        schema-describer schemas mysql://root@localhost/shop
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


if __name__ == "__main__":
    app()
