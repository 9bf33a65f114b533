"""Build-and-deploy pipeline definition.

The stage list reproduces a classic container deploy job:

1. ``Cleanup`` - tear down leftovers of a previous run (all tolerated)
2. ``Clone Repository`` - fresh checkout of the configured branch
3. ``Copy Configs`` - copy externally supplied files into the build context
4. ``Build Image`` - build the application image
5. ``Deploy`` - start the compose application detached
6. ``Verify Deployment`` - poll the health endpoint with backoff

Post-processing always prints ``Pipeline completed``; on failure it dumps
the compose logs and tears the application down with its volumes.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from box import Box

from shipline.deploy import commands as cmd
from shipline.pipeline.exceptions import PipelineConfigError
from shipline.pipeline.models import PipelineConfig, PostActions, Stage

STAGE_CLEANUP = "Cleanup"
STAGE_CLONE = "Clone Repository"
STAGE_COPY_CONFIGS = "Copy Configs"
STAGE_BUILD = "Build Image"
STAGE_DEPLOY = "Deploy"
STAGE_VERIFY = "Verify Deployment"

DEPLOY_STAGES = (STAGE_CLEANUP, STAGE_CLONE, STAGE_COPY_CONFIGS, STAGE_BUILD, STAGE_DEPLOY, STAGE_VERIFY)

_NUMERIC_FIELDS = {
    "health_attempts": int,
    "health_timeout": float,
    "startup_delay": float,
    "stage_timeout": float,
}


def _resolve_source(path: Any, base: Path) -> str:
    source = Path(str(path)).expanduser()
    if not source.is_absolute():
        source = base / source
    return str(source)


@dataclass(slots=True)
class DeploySettings:
    """Inputs of the deploy pipeline.

    Attributes:
        repo_url: Repository to clone.
        branch: Branch to check out.
        workspace: Directory the pipeline runs in.
        checkout_dir: Checkout directory inside the workspace (the build context).
        image_tag: Tag of the built image.
        compose_file: Compose definition, relative to the checkout.
        compose_project: Optional compose project name.
        config_files: Files copied verbatim into the checkout before the build.
        health_url: Health endpoint polled by the verify stage.
        health_attempts: Maximum probe attempts.
        health_timeout: Per-request probe timeout.
        startup_delay: Fixed wait before the first probe.
        stage_timeout: Default timeout for every command.
        docker: Container engine command.
        compose: Compose command.
        name: Pipeline name.
    """

    repo_url: str
    branch: str = "main"
    workspace: str = "./workspace"
    checkout_dir: str = "app"
    image_tag: str = "app:latest"
    compose_file: str = "docker-compose.yml"
    compose_project: str | None = None
    config_files: list[str] = field(default_factory=list)
    health_url: str = "http://localhost:8080/health"
    health_attempts: int = 10
    health_timeout: float = 5.0
    startup_delay: float = 0.0
    stage_timeout: float = 900.0
    docker: str = "docker"
    compose: str = "docker compose"
    name: str = "deploy"

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        base_dir: str | Path | None = None,
        **overrides: Any,
    ) -> DeploySettings:
        """Build settings from a ``deploy`` config section.

        ``None`` overrides are ignored so CLI flags can be passed through as-is.
        Numeric values given as strings (an expanded ``${VAR}``) are converted.
        Relative ``config_files`` are resolved against ``base_dir`` (default:
        the current directory), not against the workspace.

        Raises:
            PipelineConfigError: On unknown keys, a missing ``repo_url`` or a
                non-numeric value in a numeric setting.
        """
        if isinstance(data, Box):
            data = data.to_dict()
        merged = {**data, **{k: v for k, v in overrides.items() if v is not None}}
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(merged) - known
        if unknown:
            raise PipelineConfigError(f"Unknown deploy settings: {', '.join(sorted(unknown))}")
        if not merged.get("repo_url"):
            raise PipelineConfigError("Deploy settings require 'repo_url'")

        for key, convert in _NUMERIC_FIELDS.items():
            if merged.get(key) is None:
                merged.pop(key, None)
                continue
            try:
                merged[key] = convert(merged[key])
            except (TypeError, ValueError):
                raise PipelineConfigError(f"Deploy setting '{key}' must be a number, got {merged[key]!r}") from None

        base = Path(base_dir) if base_dir is not None else Path.cwd()
        merged["config_files"] = [_resolve_source(p, base) for p in merged.get("config_files") or []]
        return cls(**merged)

    @classmethod
    def from_config(cls, path: str | Path | None = None, **overrides: Any) -> DeploySettings:
        """Build settings from the ``deploy`` section of ``shipline.conf.yml``."""
        from shipline.config import find_config_file, get_config, load_config  # pylint: disable=import-outside-toplevel

        config = load_config(path) if path is not None else get_config()
        source = find_config_file(path)
        base_dir = source.parent if source is not None else None
        return cls.from_mapping(config.get("deploy", {}) or {}, base_dir=base_dir, **overrides)

    @property
    def compose_path(self) -> str:
        """Compose file path relative to the workspace."""
        return str(Path(self.checkout_dir) / self.compose_file)


def build_deploy_pipeline(settings: DeploySettings) -> PipelineConfig:
    """Build the six-stage deploy pipeline for ``settings``.

    Examples:
        >>> config = build_deploy_pipeline(DeploySettings(repo_url="https://example.com/app.git"))
        >>> [stage.name for stage in config.stages]
        ['Cleanup', 'Clone Repository', 'Copy Configs', 'Build Image', 'Deploy', 'Verify Deployment']
    """
    compose = {"project": settings.compose_project, "compose": settings.compose}
    compose_file = settings.compose_path

    stages = (
        Stage(
            STAGE_CLEANUP,
            (
                cmd.compose_down(compose_file, volumes=True, **compose),
                cmd.remove_path(settings.checkout_dir),
            ),
        ),
        Stage(STAGE_CLONE, (cmd.git_clone(settings.repo_url, settings.branch, settings.checkout_dir),)),
        Stage(STAGE_COPY_CONFIGS, tuple(cmd.copy_files(settings.config_files, settings.checkout_dir))),
        Stage(STAGE_BUILD, (cmd.docker_build(settings.image_tag, settings.checkout_dir, docker=settings.docker),)),
        Stage(STAGE_DEPLOY, (cmd.compose_up(compose_file, detached=True, **compose),)),
        Stage(
            STAGE_VERIFY,
            (
                cmd.health_probe(
                    settings.health_url,
                    attempts=settings.health_attempts,
                    timeout=settings.health_timeout,
                    delay=settings.startup_delay,
                ),
            ),
        ),
    )
    post = PostActions(
        always=(cmd.echo("Pipeline completed"),),
        on_failure=(
            cmd.compose_logs(compose_file, **compose),
            cmd.compose_down(compose_file, volumes=True, **compose),
        ),
    )
    return PipelineConfig(
        name=settings.name,
        stages=stages,
        post=post,
        default_timeout=settings.stage_timeout,
        working_dir=settings.workspace,
    )


def prepare_workspace(settings: DeploySettings) -> Path:
    """Create the workspace directory and return its absolute path."""
    path = Path(settings.workspace).expanduser().resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


__all__ = [
    "DEPLOY_STAGES",
    "STAGE_BUILD",
    "STAGE_CLEANUP",
    "STAGE_CLONE",
    "STAGE_COPY_CONFIGS",
    "STAGE_DEPLOY",
    "STAGE_VERIFY",
    "DeploySettings",
    "build_deploy_pipeline",
    "prepare_workspace",
]
