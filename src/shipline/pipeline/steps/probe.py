"""HTTP readiness probe executor."""

from __future__ import annotations

import logging

from shipline.pipeline.base import RunContext
from shipline.pipeline.models import Command, CommandResult, CommandStatus
from shipline.pipeline.readiness import wait_until_ready

logger = logging.getLogger(__name__)


class ProbeCommand:
    """Poll the command URL until it answers, with bounded backoff.

    The per-request timeout is the command timeout when set, else 5 seconds;
    the pipeline default timeout is meant for whole processes, not requests.
    """

    request_timeout = 5.0

    def execute(self, command: Command, context: RunContext, *, stage: str) -> CommandResult:
        """Probe ``command.command`` as an HTTP URL.

        Args:
            command: Probe definition (URL, attempts, backoff, expected status).
            context: Per-run state.
            stage: Owning stage name.

        Returns:
            CommandResult whose exit code follows ``curl --fail``.
        """
        description = command.describe()
        if context.dry_run:
            logger.info("[DRY RUN] [%s] %s", stage, description)
            return CommandResult(
                stage=stage,
                command=description,
                status=CommandStatus.SKIPPED,
                output=f"[dry-run] would probe: {command.command}",
            )

        probe = wait_until_ready(
            command.command,
            attempts=command.attempts,
            timeout=command.timeout or self.request_timeout,
            interval=command.interval,
            backoff=command.backoff,
            max_interval=command.max_interval,
            expect_status=command.expect_status,
            client=context.http_client,
            cancel_token=context.cancel_token,
        )

        if probe.cancelled:
            status = CommandStatus.CANCELLED
        elif probe.ok:
            status = CommandStatus.SUCCESS
        else:
            status = CommandStatus.FAILED

        summary = f"{probe.attempts} attempt(s), last status {probe.status_code}"
        return CommandResult(
            stage=stage,
            command=description,
            status=status,
            exit_code=probe.exit_code,
            output=summary if probe.error is None else f"{summary}: {probe.error}",
            duration=probe.duration,
            error=probe.error,
        )


__all__ = [
    "ProbeCommand",
]
