"""
CLI: ``recordspine migrate``: schema migration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from recordspine.cli.utils import console, fail, load_settings, open_db
from recordspine.core.errors import RecordSpineError
from recordspine.migrations import MigrationResult, MigrationRunner

app = typer.Typer(no_args_is_help=True)

DatabaseOption = typer.Option(None, "--database", "-d", help="Database URL or SQLite path")
PathOption = typer.Option(None, "--path", "-p", help="Migrations directory")


def _runner(database: str | None, path: Path | None) -> MigrationRunner:
    settings = load_settings(database, path)
    db = open_db(settings)
    try:
        return MigrationRunner(db, settings.migrations_dir)
    except RecordSpineError as e:
        fail(e)


def _progress(event: str, name: str) -> None:
    if event == "migrating":
        console.print(f"[yellow]Migrating:[/yellow] {name}")
    else:
        console.print(f"[green]Migrated:[/green]  {name}")


def _report(result: MigrationResult) -> None:
    if not result.success:
        for name, error in result.errors.items():
            fail(f"{name}: {error}")
    if not result.applied:
        console.print("Nothing to migrate.")


@app.command()
def run(
    database: str | None = DatabaseOption,
    path: Path | None = PathOption,
) -> None:
    """Apply pending migrations."""
    runner = _runner(database, path)
    try:
        result = runner.apply_pending(_progress)
    except RecordSpineError as e:
        fail(e)
    _report(result)


@app.command()
def fresh(
    database: str | None = DatabaseOption,
    path: Path | None = PathOption,
) -> None:
    """Drop all tables and re-run every migration."""
    runner = _runner(database, path)
    try:
        result = runner.fresh(_progress)
    except RecordSpineError as e:
        fail(e)
    _report(result)


@app.command()
def rollback(
    database: str | None = DatabaseOption,
    path: Path | None = PathOption,
) -> None:
    """Forget the last batch of applied migrations."""
    runner = _runner(database, path)
    names = runner.rollback()
    if not names:
        console.print("Nothing to rollback.")
        return
    for name in names:
        console.print(f"[yellow]Rolled back:[/yellow] {name}")


@app.command()
def status(
    database: str | None = DatabaseOption,
    path: Path | None = PathOption,
) -> None:
    """Show which migrations have run."""
    runner = _runner(database, path)
    try:
        rows = runner.status()
    except RecordSpineError as e:
        fail(e)
    if not rows:
        console.print("[dim]No migrations found.[/dim]")
        return
    table = Table(title="Migrations", show_lines=False, pad_edge=False)
    table.add_column("Ran?")
    table.add_column("Migration", overflow="fold")
    table.add_column("Batch", justify="right")
    for row in rows:
        table.add_row(
            "[green]Yes[/green]" if row.ran else "[red]No[/red]",
            row.migration,
            str(row.batch) if row.batch is not None else "",
        )
    console.print(table)
