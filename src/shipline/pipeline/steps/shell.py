"""Shell command executor.

Runs command strings via ``subprocess.run(shell=True)`` inside the run's
build context, with stderr merged into stdout so the captured output reads
like a terminal log. Multi-line strings (YAML ``|`` blocks) are passed as-is,
so loops, pipes and redirections work.
"""

from __future__ import annotations

import logging
import subprocess
import time

from shipline.logging import TRACE_LEVEL
from shipline.pipeline.base import RunContext
from shipline.pipeline.models import Command, CommandResult, CommandStatus

logger = logging.getLogger(__name__)

#: Exit code reported when a command exceeds its timeout (coreutils ``timeout``).
EXIT_TIMEOUT = 124

#: Exit code reported when a command cannot be started.
EXIT_NOT_STARTED = 127

#: Encoding of captured output; undecodable bytes are replaced.
OUTPUT_ENCODING = "utf-8"


def _decode(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(OUTPUT_ENCODING, errors="replace")
    return output


class ShellCommand:
    """Execute a shell command.

    Examples:
        >>> from shipline.pipeline.base import RunContext
        >>> from shipline.pipeline.models import Command
        >>> result = ShellCommand().execute(Command("echo hello"), RunContext(), stage="greet")  # doctest: +SKIP
        >>> result.output  # doctest: +SKIP
        'hello\\n'
    """

    def execute(self, command: Command, context: RunContext, *, stage: str) -> CommandResult:
        """Execute a shell command.

        Args:
            command: Command definition.
            context: Per-run state (working dir, env, timeout, dry-run).
            stage: Owning stage name.

        Returns:
            CommandResult with combined output, exit code and duration.
        """
        cmd = command.command
        logger.debug("[%s] $ %s", stage, cmd)

        if context.dry_run:
            logger.info("[DRY RUN] [%s] %s", stage, cmd)
            return CommandResult(
                stage=stage,
                command=cmd,
                status=CommandStatus.SKIPPED,
                output=f"[dry-run] would execute: {cmd}",
            )

        timeout = context.timeout_for(command)
        start = time.monotonic()
        try:
            proc = subprocess.run(  # noqa: S602
                cmd,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding=OUTPUT_ENCODING,
                errors="replace",
                check=False,
                timeout=timeout,
                env=context.environment(command),
                cwd=context.resolve_workdir(command),
            )
        except subprocess.TimeoutExpired as exc:
            output = _decode(exc.output)
            logger.warning("[%s] %r timed out after %.1fs", stage, cmd, timeout)
            return CommandResult(
                stage=stage,
                command=cmd,
                status=CommandStatus.TIMEOUT,
                exit_code=EXIT_TIMEOUT,
                output=output,
                duration=time.monotonic() - start,
                error=f"Timed out after {timeout}s",
            )
        except OSError as exc:
            logger.error("[%s] %r could not be started: %s", stage, cmd, exc)
            return CommandResult(
                stage=stage,
                command=cmd,
                status=CommandStatus.FAILED,
                exit_code=EXIT_NOT_STARTED,
                duration=time.monotonic() - start,
                error=str(exc),
            )

        duration = time.monotonic() - start
        if proc.stdout:
            logger.log(TRACE_LEVEL, "[%s] output of %r:\n%s", stage, cmd, proc.stdout.rstrip())

        if proc.returncode == 0:
            return CommandResult(
                stage=stage,
                command=cmd,
                status=CommandStatus.SUCCESS,
                exit_code=0,
                output=proc.stdout,
                duration=duration,
            )

        tail = proc.stdout.strip().splitlines()[-1] if proc.stdout.strip() else "(no output)"
        return CommandResult(
            stage=stage,
            command=cmd,
            status=CommandStatus.FAILED,
            exit_code=proc.returncode,
            output=proc.stdout,
            duration=duration,
            error=tail,
        )


__all__ = [
    "EXIT_NOT_STARTED",
    "EXIT_TIMEOUT",
    "ShellCommand",
]
