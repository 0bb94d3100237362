"""
CLI utility helpers: consoles, settings and handle construction.
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from recordspine.core.connection import connect
from recordspine.core.db import DB
from recordspine.core.errors import RecordSpineError
from recordspine.core.logging import configure_logging
from recordspine.core.settings import DatabaseSettings

console = Console()
err_console = Console(stderr=True)


def load_settings(database: str | None = None, path: Path | None = None) -> DatabaseSettings:
    """``DB_*`` settings with command-line overrides applied."""
    settings = DatabaseSettings()
    overrides: dict[str, object] = {}
    if database:
        overrides["url"] = database
    if path:
        overrides["migrations_dir"] = path
    if overrides:
        settings = settings.model_copy(update=overrides)
    configure_logging(level=settings.log_level)
    return settings


def open_db(settings: DatabaseSettings) -> DB:
    """Connect, or exit with code 1 on configuration errors."""
    try:
        return connect(settings)
    except RecordSpineError as e:
        fail(e)


def fail(error: Exception | str) -> NoReturn:
    """Print *error* to stderr and exit with code 1."""
    if isinstance(error, RecordSpineError):
        err_console.print(
            f"[bold red]Error[/bold red] ({error.category.value}): {error.message}"
        )
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")
    raise typer.Exit(code=1)
