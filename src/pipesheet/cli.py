"""pipesheet CLI - Main entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .api.client import PipedriveClient, PipedriveError
from .api.fields import FieldDefinitionCache
from .config import settings
from .errors import ConfigurationError
from .grid.csv_io import load_grid, save_grid
from .grid.surface import MemoryGrid
from .schemas.sync import ProgressEvent, SyncStatus
from .storage.properties import DOCUMENT_SCOPE, SCRIPT_SCOPE, MemoryPropertyStore, SQLPropertyStore
from .sync.field_rules import normalize_entity_type
from .sync.flattener import discover_columns
from .sync.grid_writer import WriteOptions
from .sync.preferences import ColumnPreferenceStore
from .sync.reconciler import Reconciler
from .sync.tracker import RowChangeTracker

app = typer.Typer(
    name="pipesheet",
    help="Two-way sync between Pipedrive and spreadsheet grids",
    no_args_is_help=True,
)
console = Console()

# Sub-command groups
columns_app = typer.Typer(help="Column selection and header names")

app.add_typer(columns_app, name="columns")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


async def _stores():
    """Script-scope (preferences) and document-scope (sheet state) stores."""
    from .storage.database import async_session_factory, create_tables

    await create_tables()
    return (
        SQLPropertyStore(async_session_factory, scope=SCRIPT_SCOPE),
        SQLPropertyStore(async_session_factory, scope=DOCUMENT_SCOPE),
    )


def _preferences(script, document) -> ColumnPreferenceStore:
    return ColumnPreferenceStore(script, settings.user_email, settings.team_id, sheet_state=document)


def _progress(event: ProgressEvent) -> None:
    if event.total:
        console.print(f"[dim]{event.message} ({event.current}/{event.total})[/dim]")
    else:
        console.print(f"[dim]{event.message}[/dim]")


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


# ============================================================================
# Sync Commands
# ============================================================================


@app.command("pull")
def pull(
    entity_type: str = typer.Argument(..., help="deals, persons, organizations, activities, leads or products"),
    out: Path = typer.Option(..., "--out", "-o", help="CSV file to write"),
    sheet: str = typer.Option(None, "--sheet", "-s", help="Sheet name (defaults to the file name)"),
    filter_id: str = typer.Option(None, "--filter", "-f", help="Pipedrive saved filter id"),
    limit: int = typer.Option(0, "--limit", "-l", help="Max records (0 = all)"),
    footer: bool = typer.Option(False, "--footer", help="Append a 'Last synced' row"),
):
    """Pull records from Pipedrive into a CSV grid."""
    sheet_id = sheet or out.stem

    async def _pull():
        script, document = await _stores()
        grid = MemoryGrid()
        async with PipedriveClient() as client:
            reconciler = Reconciler(
                client,
                grid,
                document,
                _preferences(script, document),
                sheet_id,
                sample_size=settings.sample_size,
                on_progress=_progress,
            )
            await reconciler.configure(entity_type, filter_id)
            result = await reconciler.pull(limit=limit, options=WriteOptions(include_footer=footer))
        save_grid(grid, out)
        return result

    try:
        result = asyncio.run(_pull())
    except (ConfigurationError, PipedriveError) as e:
        _fail(e.message)

    console.print(
        Panel(
            f"[bold green]Pulled {result.records} {result.entity_type}[/bold green]\n\n"
            f"Columns: {len(result.columns)}\n"
            f"Written to: {out}",
            title=f"Pull: {sheet_id}",
        )
    )


@app.command("push")
def push(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV grid written by 'pull'"),
    sheet: str = typer.Option(None, "--sheet", "-s", help="Sheet name (defaults to the file name)"),
    mark_all: bool = typer.Option(False, "--all", help="Mark every row Modified before pushing"),
):
    """Push Modified rows from a CSV grid back to Pipedrive."""
    sheet_id = sheet or file.stem
    grid = load_grid(file)

    async def _push():
        script, document = await _stores()
        async with PipedriveClient() as client:
            reconciler = Reconciler(
                client,
                grid,
                document,
                _preferences(script, document),
                sheet_id,
                on_progress=_progress,
            )
            if mark_all:
                await reconciler.tracker.locate_status_column()
                reconciler.tracker.reset(SyncStatus.MODIFIED)
            return await reconciler.push()

    try:
        result = asyncio.run(_push())
    except (ConfigurationError, PipedriveError) as e:
        _fail(e.message)

    save_grid(grid, file)

    table = Table(title=f"Push: {sheet_id}")
    table.add_column("Result", style="cyan")
    table.add_column("Rows", justify="right")
    table.add_row("Modified", str(result.total))
    table.add_row("Synced", f"[green]{result.synced}[/green]")
    table.add_row("Errors", f"[red]{result.failed}[/red]" if result.failed else "0")
    table.add_row("Skipped", str(result.skipped))
    console.print(table)

    if result.failures:
        failures = Table(title="Failed rows")
        failures.add_column("Row", justify="right")
        failures.add_column("ID", style="cyan")
        failures.add_column("Error", style="red")
        for failure in result.failures:
            failures.add_row(str(failure.row + 1), failure.remote_id or "-", failure.message)
        console.print(failures)

    for warning in result.warnings:
        console.print(f"[yellow]{warning}[/yellow]")


@app.command("status")
def status(file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV grid")):
    """Count rows per sync status."""
    grid = load_grid(file)
    tracker = RowChangeTracker(grid, MemoryPropertyStore(), file.stem)
    if tracker.status_column() is None:
        _fail(f"No 'Sync Status' column in {file}")

    table = Table(title=f"Sync status: {file.name}")
    table.add_column("Status", style="cyan")
    table.add_column("Rows", justify="right")
    for sync_status, count in tracker.counts().items():
        table.add_row(sync_status.value, str(count))
    console.print(table)


# ============================================================================
# Column Commands
# ============================================================================


@columns_app.command("show")
def columns_show(
    entity_type: str = typer.Argument(..., help="Entity type"),
    sheet: str = typer.Option("Sheet1", "--sheet", "-s", help="Sheet name"),
    discover: bool = typer.Option(False, "--discover", "-d", help="Flatten live records instead of saved columns"),
):
    """Show the saved (or discoverable) columns for a sheet."""

    async def _columns():
        entity = normalize_entity_type(entity_type)
        if discover:
            async with PipedriveClient() as client:
                registry = await FieldDefinitionCache(client).registry(entity)
                records = await client.list_records(entity, limit=settings.sample_size)
            return discover_columns(records, entity, registry)
        script, document = await _stores()
        return await _preferences(script, document).load(entity, sheet)

    try:
        columns = asyncio.run(_columns())
    except (ConfigurationError, PipedriveError) as e:
        _fail(e.message)

    table = Table(title=f"{entity_type} columns ({'discovered' if discover else sheet})")
    table.add_column("Key", style="cyan")
    table.add_column("Header")
    table.add_column("Category", style="dim")
    table.add_column("Editable")
    for col in columns:
        key = f"  {col.key}" if col.is_nested else col.key
        table.add_row(key, col.header, col.category, "[red]no[/red]" if col.read_only else "[green]yes[/green]")
    console.print(table)


@columns_app.command("rename")
def columns_rename(
    entity_type: str = typer.Argument(..., help="Entity type"),
    key: str = typer.Argument(..., help="Field key, e.g. title or custom_fields.<hash>.amount"),
    name: str = typer.Argument(..., help="New header text ('' to reset)"),
    sheet: str = typer.Option("Sheet1", "--sheet", "-s", help="Sheet name"),
):
    """Give a column a custom header; pushes keep resolving to the same field."""

    async def _rename():
        entity = normalize_entity_type(entity_type)
        script, document = await _stores()
        return await _preferences(script, document).rename(entity, sheet, key, name)

    try:
        preference = asyncio.run(_rename())
    except ConfigurationError as e:
        _fail(e.message)
    except KeyError:
        _fail(f"No column '{key}' saved for {entity_type} on {sheet}")

    console.print(f"[green]Saved {len(preference.columns)} columns for {sheet}[/green]")
