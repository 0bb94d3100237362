"""
Root Typer application for the record-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from recordspine import __version__

app = Typer(
    name="recordspine",
    help="record-spine: records in, parameterized SQL out.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"record-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """record-spine CLI: manage database migrations."""


from recordspine.cli.migrate import app as migrate_app  # noqa: E402

app.add_typer(migrate_app, name="migrate", help="Schema migrations.")


if __name__ == "__main__":
    app()
