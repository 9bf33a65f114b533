"""Specialized exceptions raised by the shipline.pipeline module.

Exception hierarchy::

    ShiplineError
        PipelineError (base for all pipeline errors)
            PipelineConfigError (invalid configuration, also ValueError)
            CommandFailedError (external command exited non-zero)
            StageAbortedError (untolerated failure halted the run)
                PipelineCancelledError (cancel token set between commands)
            PostActionError (always/on_failure command failed, logged only)
            ProbeError (readiness probe could not confirm the service)

A tolerated failure is not an exception: it is recorded with the
``tolerated`` command status and logged as a warning.
"""

from __future__ import annotations

from shipline.config.exceptions import ShiplineError


class PipelineError(ShiplineError):
    """Base exception for all pipeline module errors."""


class PipelineConfigError(PipelineError, ValueError):
    """Pipeline configuration is invalid.

    Raised when a stage, command or pipeline definition contains invalid
    values, missing required fields, or constraint violations.
    """


class CommandFailedError(PipelineError):
    """An external command returned a non-zero exit status.

    Attributes:
        command: The invocation string.
        exit_code: Exit status of the process.
    """

    def __init__(self, command: str, exit_code: int) -> None:
        """Initialize CommandFailedError.

        Args:
            command: The invocation string.
            exit_code: Exit status of the process.
        """
        super().__init__(f"Command {command!r} failed with exit code {exit_code}")
        self.command = command
        self.exit_code = exit_code


class StageAbortedError(PipelineError):
    """A stage failed without tolerance and the remaining stages were skipped.

    Attributes:
        stage_name: Name of the stage that failed.
        exit_code: Exit status of the failing command.
        reason: Description of the failure.
    """

    def __init__(self, stage_name: str, exit_code: int, reason: str | None = None) -> None:
        """Initialize StageAbortedError.

        Args:
            stage_name: Name of the stage that failed.
            exit_code: Exit status of the failing command.
            reason: Optional description of the failure.
        """
        detail = f": {reason}" if reason else ""
        super().__init__(f"Pipeline aborted at stage '{stage_name}' (exit code {exit_code}){detail}")
        self.stage_name = stage_name
        self.exit_code = exit_code
        self.reason = reason


class PipelineCancelledError(StageAbortedError):
    """The run was cancelled before a stage could complete.

    Attributes:
        stage_name: Stage that was about to run (or running) when cancelled.
    """

    #: Exit status reported for a cancelled run (128 + SIGINT).
    EXIT_CODE = 130

    def __init__(self, stage_name: str, reason: str | None = None) -> None:
        """Initialize PipelineCancelledError.

        Args:
            stage_name: Stage that was about to run when cancellation was seen.
            reason: Optional cancellation reason.
        """
        super().__init__(stage_name, self.EXIT_CODE, reason or "cancelled")


class PostActionError(PipelineError):
    """A post-processing command failed.

    Never raised by the runner: instances are logged and collected in
    ``RunResult.post_errors``.

    Attributes:
        phase: ``always`` or ``on_failure``.
        command: The invocation string.
        exit_code: Exit status of the process.
    """

    def __init__(self, phase: str, command: str, exit_code: int | None) -> None:
        """Initialize PostActionError.

        Args:
            phase: Post-processing phase name.
            command: The invocation string.
            exit_code: Exit status of the process, if any.
        """
        super().__init__(f"Post action ({phase}) {command!r} failed with exit code {exit_code}")
        self.phase = phase
        self.command = command
        self.exit_code = exit_code


class ProbeError(PipelineError):
    """A readiness probe failed to confirm the target is serving.

    Attributes:
        url: Probed URL.
        reason: Last failure observed.
    """

    def __init__(self, url: str, reason: str) -> None:
        """Initialize ProbeError.

        Args:
            url: Probed URL.
            reason: Last failure observed.
        """
        super().__init__(f"Probe of {url} failed: {reason}")
        self.url = url
        self.reason = reason


__all__ = [
    "CommandFailedError",
    "PipelineCancelledError",
    "PipelineConfigError",
    "PipelineError",
    "PostActionError",
    "ProbeError",
    "StageAbortedError",
]
