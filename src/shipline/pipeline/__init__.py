"""Sequential stage pipelines with failure policy and cleanup.

A pipeline is an ordered list of named stages, each running one or more
external commands. The first command failure that is not explicitly
tolerated aborts the remaining stages; post-processing then runs the
``always`` commands and, for a failed run, the ``on_failure`` commands.

Pipelines can be defined programmatically or declared in
``shipline.conf.yml``.

Examples:
    Programmatic pipeline:

    >>> from shipline.pipeline import Command, PostActions, Stage, run
    >>> result = run(
    ...     [
    ...         Stage("Cleanup", (Command("docker compose down", tolerate_failure=True),)),
    ...         Stage("Build Image", (Command("docker build -t app ."),)),
    ...     ],
    ...     PostActions(always=(Command("echo 'Pipeline completed'"),)),
    ... )  # doctest: +SKIP

    Config-driven pipeline:

    >>> runner = PipelineRunner.from_config("deploy")  # doctest: +SKIP
    >>> result = runner.run()  # doctest: +SKIP
"""

from shipline.pipeline.base import CommandExecutor, RunContext
from shipline.pipeline.cancellation import CancelToken
from shipline.pipeline.exceptions import (
    CommandFailedError,
    PipelineCancelledError,
    PipelineConfigError,
    PipelineError,
    PostActionError,
    ProbeError,
    StageAbortedError,
)
from shipline.pipeline.models import (
    Command,
    CommandResult,
    CommandStatus,
    CommandType,
    PipelineConfig,
    PostActions,
    RunResult,
    RunStatus,
    Stage,
)
from shipline.pipeline.readiness import ProbeResult, wait_until_ready
from shipline.pipeline.runner import PipelineRunner, list_pipelines, run
from shipline.pipeline.steps import ProbeCommand, ShellCommand

__all__ = [
    "CancelToken",
    "Command",
    "CommandExecutor",
    "CommandFailedError",
    "CommandResult",
    "CommandStatus",
    "CommandType",
    "PipelineCancelledError",
    "PipelineConfig",
    "PipelineConfigError",
    "PipelineError",
    "PipelineRunner",
    "PostActionError",
    "PostActions",
    "ProbeCommand",
    "ProbeError",
    "ProbeResult",
    "RunContext",
    "RunResult",
    "RunStatus",
    "ShellCommand",
    "Stage",
    "StageAbortedError",
    "list_pipelines",
    "run",
    "wait_until_ready",
]
