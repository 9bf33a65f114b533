"""Data models for the shipline.pipeline module.

This module defines the core data structures used by the pipeline module:

- CommandType: Enum for command execution mode (shell, probe)
- CommandStatus: Enum for a single command outcome
- RunStatus: Enum for the terminal status of a run
- Command: Frozen definition of one external invocation
- Stage: Frozen named, ordered group of commands
- PostActions: Frozen always / on_failure command lists
- PipelineConfig: Frozen configuration for an entire pipeline
- CommandResult: Mutable result of one command execution
- RunResult: Mutable aggregate result of a pipeline run
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from shipline.pipeline.exceptions import PipelineConfigError, PostActionError, StageAbortedError
from shipline.pipeline.validators import (
    MAX_PROBE_ATTEMPTS,
    validate_command,
    validate_command_count,
    validate_env,
    validate_pipeline_config,
    validate_stage_name,
    validate_url,
)


class CommandType(str, Enum):
    """Execution mode for a command.

    Attributes:
        SHELL: Run the command string through the shell.
        PROBE: Poll the command string as an HTTP URL until it answers.
    """

    SHELL = "shell"
    PROBE = "probe"


class CommandStatus(str, Enum):
    """Outcome of a single command.

    Attributes:
        SUCCESS: Exit code 0.
        FAILED: Non-zero exit code, not tolerated.
        TOLERATED: Non-zero exit code on a command marked ``tolerate_failure``.
        TIMEOUT: The command exceeded its timeout (not tolerated).
        SKIPPED: Not executed (dry-run).
        CANCELLED: Not executed because the run was cancelled.
    """

    SUCCESS = "success"
    FAILED = "failed"
    TOLERATED = "tolerated"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    """Terminal status of a pipeline run."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Command:
    """One external invocation inside a stage or post phase.

    Attributes:
        command: Shell command string, or the URL for a probe.
        tolerate_failure: Log a non-zero exit instead of aborting the run.
        type: Execution mode.
        timeout: Timeout in seconds (None uses the pipeline default).
        delay: Fixed wait in seconds before the command starts.
        env: Extra environment variables.
        working_dir: Directory to run in, relative to the build context.
        attempts: Probe only, maximum number of requests.
        interval: Probe only, wait before the second attempt.
        backoff: Probe only, multiplier applied to the wait after each attempt.
        max_interval: Probe only, upper bound for the wait between attempts.
        expect_status: Probe only, exact status required (default: any 2xx).

    Examples:
        >>> Command("docker compose down", tolerate_failure=True).tolerate_failure
        True
        >>> Command("http://localhost:8080/health", type=CommandType.PROBE).type
        <CommandType.PROBE: 'probe'>
    """

    command: str
    tolerate_failure: bool = False
    type: CommandType = CommandType.SHELL
    timeout: float | None = None
    delay: float = 0.0
    env: dict[str, str] = field(default_factory=dict)
    working_dir: str | None = None
    attempts: int = 10
    interval: float = 1.0
    backoff: float = 2.0
    max_interval: float = 30.0
    expect_status: int | None = None

    def __post_init__(self) -> None:
        """Validate command values.

        Raises:
            PipelineConfigError: If any value is invalid.
        """
        validate_command(self.command)
        if self.type == CommandType.PROBE:
            validate_url(self.command)
            if not 1 <= self.attempts <= MAX_PROBE_ATTEMPTS:
                raise PipelineConfigError(f"Probe attempts must be between 1 and {MAX_PROBE_ATTEMPTS}")
            if self.interval < 0 or self.max_interval < 0:
                raise PipelineConfigError("Probe intervals cannot be negative")
            if self.backoff < 1:
                raise PipelineConfigError(f"Probe backoff must be >= 1, got {self.backoff}")
        if self.env:
            validate_env(self.env)
        if self.timeout is not None and self.timeout <= 0:
            raise PipelineConfigError(f"Command timeout must be positive, got {self.timeout}")
        if self.delay < 0:
            raise PipelineConfigError(f"Command delay cannot be negative, got {self.delay}")

    def __hash__(self) -> int:
        # env is a dict, so hash a frozen view of it
        return hash(
            (
                self.command,
                self.tolerate_failure,
                self.type,
                self.timeout,
                self.delay,
                frozenset(self.env.items()),
                self.working_dir,
                self.attempts,
                self.interval,
                self.backoff,
                self.max_interval,
                self.expect_status,
            )
        )

    def describe(self) -> str:
        """Short human-readable form used in logs and tables."""
        if self.type == CommandType.PROBE:
            return f"probe {self.command}"
        return self.command


def _as_commands(owner: str, commands: Iterable[Command]) -> tuple[Command, ...]:
    items = tuple(commands)
    for item in items:
        if not isinstance(item, Command):
            raise PipelineConfigError(f"{owner}: expected Command, got {type(item).__name__}")
    validate_command_count(owner, len(items))
    return items


@dataclass(frozen=True, slots=True)
class Stage:
    """A named, ordered group of commands.

    An empty command list is a legal no-op stage.

    Examples:
        >>> stage = Stage("Build Image", [Command("docker build -t app .")])
        >>> stage.commands[0].command
        'docker build -t app .'
    """

    name: str
    commands: tuple[Command, ...] = ()

    def __post_init__(self) -> None:
        """Validate the stage and freeze its command list."""
        validate_stage_name(self.name)
        object.__setattr__(self, "commands", _as_commands(f"Stage '{self.name}'", self.commands))


@dataclass(frozen=True, slots=True)
class PostActions:
    """Commands run after the stage loop.

    Attributes:
        always: Run once per invocation whatever the outcome.
        on_failure: Run only when the run failed.
    """

    always: tuple[Command, ...] = ()
    on_failure: tuple[Command, ...] = ()

    def __post_init__(self) -> None:
        """Freeze the command lists."""
        object.__setattr__(self, "always", _as_commands("post.always", self.always))
        object.__setattr__(self, "on_failure", _as_commands("post.on_failure", self.on_failure))


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Configuration for a complete pipeline.

    Attributes:
        name: Pipeline name.
        stages: Ordered stages (at least one).
        post: Post-processing commands.
        default_timeout: Timeout for commands without an explicit one.
        working_dir: Build context every relative working directory resolves against.
        env: Environment variables applied to every command.

    Examples:
        >>> config = PipelineConfig(
        ...     name="deploy",
        ...     stages=(
        ...         Stage("Build", (Command("make build"),)),
        ...         Stage("Test", (Command("make test"),)),
        ...     ),
        ... )
        >>> len(config.stages)
        2
    """

    name: str
    stages: tuple[Stage, ...]
    post: PostActions = field(default_factory=PostActions)
    default_timeout: float = 300.0
    working_dir: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate pipeline configuration values.

        Raises:
            PipelineConfigError: If configuration is invalid.
        """
        if not self.name:
            raise PipelineConfigError("Pipeline name cannot be empty")
        stages = tuple(self.stages)
        validate_pipeline_config(stage_count=len(stages))
        for stage in stages:
            if not isinstance(stage, Stage):
                raise PipelineConfigError(f"Pipeline '{self.name}': expected Stage, got {type(stage).__name__}")
        object.__setattr__(self, "stages", stages)

        if self.default_timeout <= 0:
            raise PipelineConfigError(f"Pipeline default_timeout must be positive, got {self.default_timeout}")
        if self.env:
            validate_env(self.env)

    def __hash__(self) -> int:
        return hash(
            (self.name, self.stages, self.post, self.default_timeout, self.working_dir, frozenset(self.env.items()))
        )

    @property
    def duplicate_stage_names(self) -> list[str]:
        """Stage names used more than once, in first-seen order."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for stage in self.stages:
            if stage.name in seen and stage.name not in duplicates:
                duplicates.append(stage.name)
            seen.add(stage.name)
        return duplicates


@dataclass(slots=True)
class CommandResult:
    """Result of a single command execution.

    Attributes:
        stage: Stage name, or ``post:always`` / ``post:on_failure``.
        command: Command description.
        status: Outcome.
        exit_code: Process exit status (None when not executed).
        output: Combined stdout and stderr.
        duration: Execution duration in seconds.
        error: Error message when the command did not succeed.

    Examples:
        >>> CommandResult(stage="Build", command="make", status=CommandStatus.SUCCESS, exit_code=0).ok
        True
    """

    stage: str
    command: str
    status: CommandStatus
    exit_code: int | None = None
    output: str = ""
    duration: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the command counts as passed for control flow."""
        return self.status in (CommandStatus.SUCCESS, CommandStatus.TOLERATED, CommandStatus.SKIPPED)


@dataclass(slots=True)
class RunResult:
    """Aggregate result of a pipeline run.

    Attributes:
        name: Pipeline name.
        status: Terminal status.
        failed_stage: Stage that aborted the run.
        exit_code: Exit status of the failing command (0 on success).
        stages_run: Names of the stages entered, in order.
        results: Stage command results in execution order.
        post_results: Post-processing command results in execution order.
        post_errors: Post-processing failures (logged, never escalated).
        cancelled: Whether the run stopped because of a cancel request.
        duration: Total duration in seconds, post-processing included.
        error: The abort recorded for a failed run.

    Examples:
        >>> result = RunResult(name="deploy")
        >>> result.success
        True
    """

    name: str
    status: RunStatus = RunStatus.SUCCESS
    failed_stage: str | None = None
    exit_code: int = 0
    stages_run: list[str] = field(default_factory=list)
    results: list[CommandResult] = field(default_factory=list)
    post_results: list[CommandResult] = field(default_factory=list)
    post_errors: list[PostActionError] = field(default_factory=list)
    cancelled: bool = False
    duration: float = 0.0
    error: StageAbortedError | None = None

    @property
    def success(self) -> bool:
        """Whether the run finished with status success."""
        return self.status == RunStatus.SUCCESS

    @property
    def tolerated(self) -> list[CommandResult]:
        """Commands that failed but were tolerated."""
        return [r for r in self.results if r.status == CommandStatus.TOLERATED]

    def fail(self, error: StageAbortedError) -> None:
        """Record the terminal failure of the run."""
        self.status = RunStatus.FAILED
        self.failed_stage = error.stage_name
        self.exit_code = error.exit_code
        self.error = error

    def raise_for_status(self) -> None:
        """Raise the recorded abort if the run failed.

        Raises:
            StageAbortedError: If the run failed.
        """
        if self.error is not None:
            raise self.error


__all__ = [
    "Command",
    "CommandResult",
    "CommandStatus",
    "CommandType",
    "PipelineConfig",
    "PostActions",
    "RunResult",
    "RunStatus",
    "Stage",
]
