"""Run a pipeline declared in ``shipline.conf.yml``."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from shipline.cli.common import console, exit_code_for, exit_error, render_run_result
from shipline.config.exceptions import ConfigError
from shipline.pipeline import CancelToken, PipelineConfigError, PipelineRunner

CONFIG_OPTION = typer.Option("--config", "-c", help="Configuration file (default: lookup cascade).")
DRY_RUN_OPTION = typer.Option("--dry-run", help="Print commands without executing them.")
SHOW_OUTPUT_OPTION = typer.Option("--show-output", help="Print the output of failed commands.")


def run(
    name: Annotated[str, typer.Argument(help="Pipeline name under pipeline.pipelines.")],
    config: Annotated[Optional[Path], CONFIG_OPTION] = None,  # noqa: UP007
    dry_run: Annotated[bool, DRY_RUN_OPTION] = False,
    workdir: Annotated[
        Optional[Path],  # noqa: UP007
        typer.Option("--workdir", "-w", help="Override the pipeline working directory."),
    ] = None,
    show_output: Annotated[bool, SHOW_OUTPUT_OPTION] = False,
) -> None:
    """Run a configured pipeline; exits with the failing stage's exit code."""
    overrides = {"working_dir": str(workdir)} if workdir else {}
    try:
        runner = PipelineRunner.from_config(name, path=config, **overrides)
    except (ConfigError, PipelineConfigError) as exc:
        exit_error(str(exc))

    console.print(f"Running pipeline [cyan]{runner.config.name}[/] ({len(runner.config.stages)} stages)")
    token = CancelToken()
    with token.install_signal_handlers():
        result = runner.run(dry_run=dry_run, cancel_token=token)

    render_run_result(result, show_output=show_output)
    code = exit_code_for(result)
    if code:
        raise typer.Exit(code=code)


__all__ = [
    "CONFIG_OPTION",
    "DRY_RUN_OPTION",
    "SHOW_OUTPUT_OPTION",
    "run",
]
