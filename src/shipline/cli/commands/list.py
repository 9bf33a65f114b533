"""List configured pipelines."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

from rich.table import Table

from shipline.cli.commands.run import CONFIG_OPTION
from shipline.cli.common import console, exit_error
from shipline.config.exceptions import ConfigError
from shipline.pipeline import list_pipelines


def list_command(
    config: Annotated[Optional[Path], CONFIG_OPTION] = None,  # noqa: UP007
) -> None:
    """List pipelines declared under pipeline.pipelines."""
    try:
        pipelines = list_pipelines(config)
    except ConfigError as exc:
        exit_error(str(exc))

    if not pipelines:
        console.print("[dim]No pipelines configured.[/]")
        return

    table = Table(title="Configured Pipelines")
    table.add_column("Name", style="cyan")
    table.add_column("Stages", justify="right")
    for name, count in pipelines.items():
        table.add_row(name, str(count))
    console.print(table)


__all__ = [
    "list_command",
]
