"""Execution context and executor protocol for pipeline commands.

:class:`RunContext` is the explicit build context of a run: the working
directory, environment and defaults every command sees. It is threaded
through the executors instead of relying on the process working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import httpx

    from shipline.pipeline.cancellation import CancelToken
    from shipline.pipeline.models import Command, CommandResult


@dataclass(frozen=True, slots=True)
class RunContext:
    """Per-run state shared by every command.

    Attributes:
        working_dir: Build context; relative command directories resolve against it.
        env: Pipeline-wide environment, applied on top of the process environment.
        default_timeout: Timeout for commands without their own.
        dry_run: Log commands instead of executing them.
        cancel_token: Cancellation flag checked between commands.
        http_client: Client reused by probe commands.
    """

    working_dir: Path = field(default_factory=Path.cwd)
    env: dict[str, str] = field(default_factory=dict)
    default_timeout: float = 300.0
    dry_run: bool = False
    cancel_token: CancelToken | None = None
    http_client: httpx.Client | None = None

    def resolve_workdir(self, command: Command) -> Path:
        """Directory a command runs in.

        Examples:
            >>> from shipline.pipeline.models import Command
            >>> ctx = RunContext(working_dir=Path("/srv/build"))
            >>> str(ctx.resolve_workdir(Command("make", working_dir="app")))
            '/srv/build/app'
            >>> str(ctx.resolve_workdir(Command("make")))
            '/srv/build'
        """
        if not command.working_dir:
            return self.working_dir
        path = Path(os.path.expandvars(command.working_dir)).expanduser()
        return path if path.is_absolute() else self.working_dir / path

    def timeout_for(self, command: Command) -> float:
        """Command timeout, falling back to the pipeline default."""
        return command.timeout if command.timeout is not None else self.default_timeout

    def environment(self, command: Command) -> dict[str, str] | None:
        """Environment for a command, or None to inherit the process environment."""
        if not self.env and not command.env:
            return None
        return {**os.environ, **self.env, **command.env}


@runtime_checkable
class CommandExecutor(Protocol):
    """Protocol implemented by every command executor.

    Executors report the raw outcome; the runner applies the failure policy.
    """

    def execute(self, command: Command, context: RunContext, *, stage: str) -> CommandResult:
        """Execute one command.

        Args:
            command: Command definition.
            context: Per-run state.
            stage: Name of the owning stage (or post phase) for the result.

        Returns:
            CommandResult with status, exit code, output and duration.
        """
        ...


__all__ = [
    "CommandExecutor",
    "RunContext",
]
