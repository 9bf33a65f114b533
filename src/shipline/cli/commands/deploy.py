"""Run the built-in build-and-deploy pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from shipline.cli.commands.run import CONFIG_OPTION, DRY_RUN_OPTION, SHOW_OUTPUT_OPTION
from shipline.cli.common import console, exit_code_for, exit_error, render_run_result
from shipline.config.exceptions import ConfigError
from shipline.deploy import DeploySettings, build_deploy_pipeline, prepare_workspace
from shipline.pipeline import CancelToken, PipelineConfigError, PipelineRunner


def deploy(  # noqa: PLR0913
    config: Annotated[Optional[Path], CONFIG_OPTION] = None,  # noqa: UP007
    repo_url: Annotated[Optional[str], typer.Option("--repo-url", help="Repository to clone.")] = None,  # noqa: UP007
    branch: Annotated[Optional[str], typer.Option("--branch", "-b", help="Branch to deploy.")] = None,  # noqa: UP007
    image_tag: Annotated[Optional[str], typer.Option("--image-tag", help="Image tag to build.")] = None,  # noqa: UP007
    workspace: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--workspace", help="Directory the pipeline runs in."),
    ] = None,
    health_url: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--health-url", help="Health endpoint polled after deploy."),
    ] = None,
    dry_run: Annotated[bool, DRY_RUN_OPTION] = False,
    show_output: Annotated[bool, SHOW_OUTPUT_OPTION] = False,
) -> None:
    """Clone, build, start and verify the application."""
    try:
        settings = DeploySettings.from_config(
            config,
            repo_url=repo_url,
            branch=branch,
            image_tag=image_tag,
            workspace=workspace,
            health_url=health_url,
        )
        pipeline = build_deploy_pipeline(settings)
    except (ConfigError, PipelineConfigError) as exc:
        exit_error(str(exc))

    if not dry_run:
        prepare_workspace(settings)

    console.print(f"Deploying [cyan]{settings.repo_url}[/] ({settings.branch}) as [cyan]{settings.image_tag}[/]")
    token = CancelToken()
    with token.install_signal_handlers():
        result = PipelineRunner(pipeline).run(dry_run=dry_run, cancel_token=token)

    render_run_result(result, show_output=show_output)
    code = exit_code_for(result)
    if code:
        raise typer.Exit(code=code)


__all__ = [
    "deploy",
]
