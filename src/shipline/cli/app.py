"""Command-line interface for shipline."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

import typer
from rich.table import Table

from shipline import meta
from shipline.cli.commands.deploy import deploy
from shipline.cli.commands.list import list_command
from shipline.cli.commands.run import run
from shipline.cli.common import console
from shipline.config.exceptions import ConfigError
from shipline.logging import LOGGING_LEVEL, get_logger, init_logging, parse_level

app = typer.Typer(
    name=meta.__app_name__,
    help=f"{meta.__app_name__}: {meta.__description__}",
    no_args_is_help=True,
    add_completion=False,
)

# -v -> INFO, -vv -> DEBUG, -vvv and beyond -> TRACE
_VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG", "TRACE")


def get_cli_logger() -> logging.Logger:
    """Return the logger used by CLI commands."""
    return get_logger("cli")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{meta.__app_name__} {meta.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv, -vvv)."),
    ] = 0,
    log_level: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--log-level", help="Explicit log level (overrides -v)."),
    ] = None,
    version: Annotated[  # pylint: disable=unused-argument
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
) -> None:
    """Sequential stage pipelines for build and deploy jobs."""
    level = log_level or (_VERBOSITY_LEVELS[min(verbose, len(_VERBOSITY_LEVELS) - 1)] if verbose else None)
    if level is not None:
        try:
            parse_level(level)
        except ValueError:
            console.print(f"[red]Invalid log level:[/] {level}")
            console.print(f"Valid levels: {', '.join(vars(LOGGING_LEVEL))}")
            raise typer.Exit(code=1) from None

    try:
        init_logging(level=level)
    except (ConfigError, ValueError):
        init_logging({"output": "console"}, level=level)
    get_cli_logger().debug("CLI log level set to %s", level or "config default")


@app.command()
def info(
    full: Annotated[bool, typer.Option("--full", "-f", help="Show full metadata.")] = False,
) -> None:
    """Show version information."""
    if not full:
        console.print(f"{meta.__app_name__} {meta.__version__}")
        return
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Name", meta.__app_name__)
    table.add_row("Version", meta.__version__)
    table.add_row("Description", meta.__description__)
    table.add_row("Author", meta.__author__)
    table.add_row("License", meta.__license_type__)
    console.print(table)


app.command(name="run")(run)
app.command(name="deploy")(deploy)
app.command(name="list")(list_command)


if __name__ == "__main__":
    app()
