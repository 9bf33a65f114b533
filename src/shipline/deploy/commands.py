"""Command builders for the deploy collaborators.

Each builder returns a :class:`~shipline.pipeline.models.Command` invoking an
external tool; arguments are shell-quoted so paths with spaces survive.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence

from shipline.pipeline.models import Command, CommandType


def _join(parts: Sequence[str]) -> str:
    return shlex.join(parts)


def _compose_base(compose: str, file: str, project: str | None) -> list[str]:
    parts = [*shlex.split(compose), "-f", file]
    if project:
        parts += ["-p", project]
    return parts


def git_clone(url: str, branch: str, dest: str, *, depth: int | None = 1) -> Command:
    """Materialize ``branch`` of ``url`` at ``dest``.

    Examples:
        >>> git_clone("https://example.com/app.git", "main", "app").command
        'git clone --branch main --single-branch --depth 1 https://example.com/app.git app'
    """
    parts = ["git", "clone", "--branch", branch, "--single-branch"]
    if depth:
        parts += ["--depth", str(depth)]
    parts += [url, dest]
    return Command(_join(parts))


def copy_files(sources: Sequence[str], dest: str) -> list[Command]:
    """Copy static configuration files verbatim into the build context.

    Examples:
        >>> [c.command for c in copy_files(["/etc/app/.env"], "app")]
        ['cp /etc/app/.env app/']
    """
    target = dest.rstrip("/") + "/"
    return [Command(_join(["cp", source, target])) for source in sources]


def remove_path(path: str) -> Command:
    """Delete a leftover path from a previous run (tolerated)."""
    return Command(_join(["rm", "-rf", path]), tolerate_failure=True)


def docker_build(image_tag: str, context_path: str, *, docker: str = "docker") -> Command:
    """Build ``image_tag`` from ``context_path``.

    Examples:
        >>> docker_build("app:latest", "app").command
        'docker build -t app:latest app'
    """
    return Command(_join([*shlex.split(docker), "build", "-t", image_tag, context_path]))


def compose_up(
    file: str,
    *,
    detached: bool = True,
    project: str | None = None,
    compose: str = "docker compose",
) -> Command:
    """Start the multi-service application.

    Examples:
        >>> compose_up("app/docker-compose.yml").command
        'docker compose -f app/docker-compose.yml up -d'
    """
    parts = [*_compose_base(compose, file, project), "up"]
    if detached:
        parts.append("-d")
    return Command(_join(parts))


def compose_logs(
    file: str,
    *,
    project: str | None = None,
    compose: str = "docker compose",
    tail: int | None = 200,
) -> Command:
    """Dump service logs; used on failure paths, so always tolerated."""
    parts = [*_compose_base(compose, file, project), "logs", "--no-color"]
    if tail:
        parts += ["--tail", str(tail)]
    return Command(_join(parts), tolerate_failure=True)


def compose_down(
    file: str,
    *,
    volumes: bool = False,
    project: str | None = None,
    compose: str = "docker compose",
) -> Command:
    """Tear the application down; used on cleanup paths, so always tolerated.

    Examples:
        >>> compose_down("app/docker-compose.yml", volumes=True).command
        'docker compose -f app/docker-compose.yml down --volumes'
    """
    parts = [*_compose_base(compose, file, project), "down"]
    if volumes:
        parts.append("--volumes")
    return Command(_join(parts), tolerate_failure=True)


def health_probe(
    url: str,
    *,
    attempts: int = 10,
    timeout: float = 5.0,
    delay: float = 0.0,
    expect_status: int | None = None,
) -> Command:
    """Poll ``url`` until it answers 2xx (or ``expect_status``)."""
    return Command(
        url,
        type=CommandType.PROBE,
        attempts=attempts,
        timeout=timeout,
        delay=delay,
        expect_status=expect_status,
    )


def echo(message: str) -> Command:
    """Print a message to the run log."""
    return Command(_join(["echo", message]))


__all__ = [
    "compose_down",
    "compose_logs",
    "compose_up",
    "copy_files",
    "docker_build",
    "echo",
    "git_clone",
    "health_probe",
    "remove_path",
]
