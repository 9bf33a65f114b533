"""Shared helpers for shipline CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from shipline.pipeline.models import CommandResult, CommandStatus, RunResult

console = Console()

_STATUS_STYLES = {
    CommandStatus.SUCCESS: "green",
    CommandStatus.FAILED: "red",
    CommandStatus.TIMEOUT: "red",
    CommandStatus.TOLERATED: "yellow",
    CommandStatus.SKIPPED: "dim",
    CommandStatus.CANCELLED: "magenta",
}


def exit_error(message: str, code: int = 1) -> NoReturn:
    """Print an error message and exit with ``code``."""
    console.print(f"[red]Error:[/] {message}")
    raise typer.Exit(code=code)


def _add_row(table: Table, result: CommandResult) -> None:
    style = _STATUS_STYLES.get(result.status, "")
    exit_code = "-" if result.exit_code is None else str(result.exit_code)
    table.add_row(
        result.stage,
        result.command,
        f"[{style}]{result.status.value}[/]" if style else result.status.value,
        exit_code,
        f"{result.duration:.2f}s",
    )


def render_run_result(result: RunResult, *, show_output: bool = False) -> None:
    """Print the per-command table and a one-line verdict.

    Args:
        result: Completed run.
        show_output: Also print the captured output of failed commands.
    """
    table = Table(title=f"Pipeline '{result.name}'", show_lines=False)
    table.add_column("Stage", style="cyan")
    table.add_column("Command", overflow="fold")
    table.add_column("Status", justify="center")
    table.add_column("Exit", justify="right")
    table.add_column("Duration", justify="right", style="dim")

    for item in [*result.results, *result.post_results]:
        _add_row(table, item)
    console.print(table)

    if show_output:
        for item in result.results:
            if item.status in (CommandStatus.FAILED, CommandStatus.TIMEOUT) and item.output.strip():
                console.print(f"\n[red]Output of[/] {item.command}:")
                console.print(item.output.rstrip(), markup=False, highlight=False)

    if result.success:
        console.print(f"[green]✓[/] Pipeline succeeded in {result.duration:.2f}s")
    else:
        reason = " (cancelled)" if result.cancelled else ""
        console.print(
            f"[red]✗[/] Pipeline failed at stage [bold]{result.failed_stage}[/] "
            f"with exit code {result.exit_code}{reason}"
        )
    for error in result.post_errors:
        console.print(f"[yellow]![/] {error}")


def exit_code_for(result: RunResult) -> int:
    """Process exit status for a run: 0, else the failing command's code (never 0).

    Examples:
        >>> exit_code_for(RunResult(name="ok"))
        0
    """
    if result.success:
        return 0
    return result.exit_code if 0 < result.exit_code < 256 else 1


__all__ = [
    "console",
    "exit_code_for",
    "exit_error",
    "render_run_result",
]
