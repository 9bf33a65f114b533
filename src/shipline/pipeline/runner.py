"""Pipeline runner for sequential stage execution.

Provides :class:`PipelineRunner` and the functional :func:`run` entry point.
A run executes stages strictly in order; the first untolerated command
failure aborts every remaining command and stage. Post-processing
(``always`` then, on failure, ``on_failure``) runs exactly once per run,
including when the stage loop is interrupted, because the loop is wrapped
in a context manager whose exit performs it.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from box import Box

from shipline.logging import SUCCESS_LEVEL
from shipline.pipeline.base import CommandExecutor, RunContext
from shipline.pipeline.exceptions import (
    CommandFailedError,
    PipelineCancelledError,
    PipelineConfigError,
    PostActionError,
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
    Stage,
)
from shipline.pipeline.steps.probe import ProbeCommand
from shipline.pipeline.steps.shell import ShellCommand
from shipline.pipeline.validators import parse_bool

if TYPE_CHECKING:
    import httpx

    from shipline.pipeline.cancellation import CancelToken

logger = logging.getLogger(__name__)

# Exit code recorded when the stage loop dies on an unexpected exception.
_EXIT_INTERNAL_ERROR = 1

_COMMAND_FIELDS = frozenset(f.name for f in dataclasses.fields(Command))
_FLOAT_FIELDS = ("timeout", "delay", "interval", "backoff", "max_interval")
_INT_FIELDS = ("attempts", "expect_status")


def _default_executors() -> dict[CommandType, CommandExecutor]:
    return {
        CommandType.SHELL: ShellCommand(),
        CommandType.PROBE: ProbeCommand(),
    }


class PipelineRunner:
    """Execute a pipeline of sequential stages.

    Args:
        config: Pipeline configuration.
        executors: Override the executor used per command type.

    Examples:
        Build a pipeline programmatically:

        >>> from shipline.pipeline.models import Command, PipelineConfig, PostActions, Stage
        >>> config = PipelineConfig(
        ...     name="demo",
        ...     stages=(Stage("Greet", (Command("echo hello"),)),),
        ...     post=PostActions(always=(Command("echo done"),)),
        ... )
        >>> result = PipelineRunner(config).run()  # doctest: +SKIP

        Load from ``shipline.conf.yml``:

        >>> runner = PipelineRunner.from_config("deploy")  # doctest: +SKIP
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        executors: Mapping[CommandType, CommandExecutor] | None = None,
    ) -> None:
        """Initialize PipelineRunner.

        Args:
            config: Pipeline configuration with stages and post actions.
            executors: Optional executor overrides keyed by command type.
        """
        self._config = config
        self._executors: dict[CommandType, CommandExecutor] = {**_default_executors(), **(executors or {})}

    @property
    def config(self) -> PipelineConfig:
        """Return the pipeline configuration."""
        return self._config

    @classmethod
    def from_config(
        cls,
        name: str,
        *,
        path: str | Path | None = None,
        **overrides: Any,
    ) -> PipelineRunner:
        """Create a PipelineRunner from ``shipline.conf.yml``.

        Loads the pipeline definition from ``pipeline.pipelines.<name>``.
        Pipeline-wide ``pipeline.default_timeout``, ``pipeline.working_dir``
        and ``pipeline.env`` act as defaults.

        Args:
            name: Pipeline name as defined in config.
            path: Explicit configuration file.
            **overrides: Override pipeline-level settings (e.g. ``working_dir``).

        Returns:
            Configured PipelineRunner instance.

        Raises:
            PipelineConfigError: If the pipeline is not found or invalid.
        """
        config_data, defaults = _load_pipeline_config(name, path)
        if overrides:
            config_data = {**config_data, **overrides}
        return cls(_parse_pipeline_config(name, config_data, defaults))

    def run(
        self,
        *,
        dry_run: bool = False,
        cancel_token: CancelToken | None = None,
        http_client: httpx.Client | None = None,
    ) -> RunResult:
        """Execute the pipeline.

        Args:
            dry_run: Log commands instead of executing them.
            cancel_token: Checked before every command; a set token stops the run.
            http_client: Client reused by probe commands.

        Returns:
            RunResult; ``status`` is failed when a stage aborted the run.
        """
        config = self._config
        working_dir = Path(config.working_dir).expanduser().resolve() if config.working_dir else Path.cwd()
        context = RunContext(
            working_dir=working_dir,
            env=dict(config.env),
            default_timeout=config.default_timeout,
            dry_run=dry_run,
            cancel_token=cancel_token,
            http_client=http_client,
        )
        result = RunResult(name=config.name)

        logger.info(
            "Pipeline '%s' started (%d stages, workdir=%s%s)",
            config.name,
            len(config.stages),
            working_dir,
            ", dry_run=True" if dry_run else "",
        )
        for duplicate in config.duplicate_stage_names:
            logger.warning("Pipeline '%s': stage name %r is used more than once", config.name, duplicate)

        with self._post_processing(result, context):
            self._run_stages(result, context)
        return result

    # ------------------------------------------------------------------
    # Stage loop
    # ------------------------------------------------------------------

    def _run_stages(self, result: RunResult, context: RunContext) -> None:
        for stage in self._config.stages:
            if self._stop_if_cancelled(result, context, stage.name):
                return
            result.stages_run.append(stage.name)
            logger.info("Stage '%s' started (%d commands)", stage.name, len(stage.commands))
            stage_start = time.monotonic()

            for command in stage.commands:
                if self._stop_if_cancelled(result, context, stage.name):
                    return
                if not self._wait_delay(command, context) and self._stop_if_cancelled(result, context, stage.name):
                    return

                command_result = self._execute(command, context, stage.name)
                if not self._apply_policy(command, command_result, result):
                    return

            logger.info("Stage '%s' completed (%.3fs)", stage.name, time.monotonic() - stage_start)

    def _apply_policy(self, command: Command, command_result: CommandResult, result: RunResult) -> bool:
        """Record a command result; return False when the run must stop."""
        stage = command_result.stage
        if command_result.ok:
            result.results.append(command_result)
            return True

        if command_result.status == CommandStatus.CANCELLED:
            result.results.append(command_result)
            result.cancelled = True
            result.fail(PipelineCancelledError(stage, command_result.error))
            logger.warning("Stage '%s' cancelled", stage)
            return False

        exit_code = command_result.exit_code if command_result.exit_code is not None else _EXIT_INTERNAL_ERROR
        if command.tolerate_failure:
            command_result.status = CommandStatus.TOLERATED
            result.results.append(command_result)
            logger.warning(
                "Stage '%s': tolerated failure of %r (exit code %d): %s",
                stage,
                command_result.command,
                exit_code,
                command_result.error or "(no output)",
            )
            return True

        result.results.append(command_result)
        error = StageAbortedError(stage, exit_code, command_result.error)
        error.__cause__ = CommandFailedError(command_result.command, exit_code)
        result.fail(error)
        logger.error(
            "Stage '%s' failed: %r exited with %d: %s",
            stage,
            command_result.command,
            exit_code,
            command_result.error or "(no output)",
        )
        return False

    def _stop_if_cancelled(self, result: RunResult, context: RunContext, stage_name: str) -> bool:
        token = context.cancel_token
        if token is None or not token.cancelled:
            return False
        result.cancelled = True
        result.fail(PipelineCancelledError(stage_name, token.reason))
        logger.warning("Pipeline '%s' cancelled before stage '%s' finished", self._config.name, stage_name)
        return True

    def _wait_delay(self, command: Command, context: RunContext) -> bool:
        """Honor a fixed pre-command delay; return False if cancelled while waiting."""
        if command.delay <= 0 or context.dry_run:
            return True
        logger.info("Waiting %.1fs before %r", command.delay, command.describe())
        if context.cancel_token is not None:
            return not context.cancel_token.wait(command.delay)
        time.sleep(command.delay)
        return True

    def _execute(self, command: Command, context: RunContext, stage: str) -> CommandResult:
        executor = self._executors[command.type]
        return executor.execute(command, context, stage=stage)

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    @contextmanager
    def _post_processing(self, result: RunResult, context: RunContext) -> Iterator[None]:
        """Run the post phases once when the wrapped stage loop exits, however it exits."""
        start = time.monotonic()
        try:
            yield
        except BaseException as exc:
            if result.success:
                stage = result.stages_run[-1] if result.stages_run else self._config.stages[0].name
                if isinstance(exc, KeyboardInterrupt):
                    result.cancelled = True
                    result.fail(PipelineCancelledError(stage, "interrupted"))
                else:
                    result.fail(StageAbortedError(stage, _EXIT_INTERNAL_ERROR, f"{exc.__class__.__name__}: {exc}"))
            logger.error("Pipeline '%s' interrupted in stage '%s'", self._config.name, result.failed_stage)
            raise
        finally:
            post_context = dataclasses.replace(context, cancel_token=None)
            self._run_phase("always", self._config.post.always, result, post_context)
            if not result.success:
                self._run_phase("on_failure", self._config.post.on_failure, result, post_context)
            result.duration = time.monotonic() - start
            self._log_summary(result)

    def _run_phase(
        self,
        phase: str,
        commands: Sequence[Command],
        result: RunResult,
        context: RunContext,
    ) -> None:
        """Run post commands best-effort: failures are logged, never raised."""
        label = f"post:{phase}"
        for command in commands:
            self._wait_delay(command, context)
            try:
                command_result = self._execute(command, context, label)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Post action (%s) %r raised", phase, command.describe())
                command_result = CommandResult(
                    stage=label,
                    command=command.describe(),
                    status=CommandStatus.FAILED,
                    error=f"{exc.__class__.__name__}: {exc}",
                )

            if not command_result.ok and command.tolerate_failure:
                command_result.status = CommandStatus.TOLERATED
            result.post_results.append(command_result)

            if not command_result.ok:
                error = PostActionError(phase, command_result.command, command_result.exit_code)
                result.post_errors.append(error)
                logger.warning("%s: %s", error, command_result.error or "(no output)")

    def _log_summary(self, result: RunResult) -> None:
        if result.success:
            logger.log(
                SUCCESS_LEVEL,
                "Pipeline '%s' succeeded in %.3fs (%d stages)",
                result.name,
                result.duration,
                len(result.stages_run),
            )
        else:
            logger.error(
                "Pipeline '%s' failed at stage '%s' (exit code %d) after %.3fs",
                result.name,
                result.failed_stage,
                result.exit_code,
                result.duration,
            )


def run(  # noqa: PLR0913
    stages: Iterable[Stage],
    post: PostActions | None = None,
    *,
    name: str = "pipeline",
    working_dir: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    default_timeout: float = 300.0,
    dry_run: bool = False,
    cancel_token: CancelToken | None = None,
    http_client: httpx.Client | None = None,
) -> RunResult:
    """Run ``stages`` in order, then the post phases.

    Args:
        stages: Ordered stages (at least one).
        post: Post-processing commands.
        name: Pipeline name used in logs.
        working_dir: Build context (default: current directory).
        env: Environment applied to every command.
        default_timeout: Timeout for commands without their own.
        dry_run: Log commands instead of executing them.
        cancel_token: Checked before every command.
        http_client: Client reused by probe commands.

    Returns:
        RunResult with the terminal status and per-command log.

    Raises:
        PipelineConfigError: If the stage list is empty or invalid.

    Examples:
        >>> from shipline.pipeline.models import Command, Stage
        >>> result = run([Stage("Greet", (Command("echo hi"),))])  # doctest: +SKIP
        >>> result.success  # doctest: +SKIP
        True
    """
    config = PipelineConfig(
        name=name,
        stages=tuple(stages),
        post=post or PostActions(),
        default_timeout=default_timeout,
        working_dir=str(working_dir) if working_dir is not None else None,
        env=dict(env or {}),
    )
    return PipelineRunner(config).run(dry_run=dry_run, cancel_token=cancel_token, http_client=http_client)


# ============================================================================
# Config helpers
# ============================================================================


def _to_dict(value: Any) -> Any:
    if isinstance(value, Box):
        return value.to_dict()
    return value


def _load_pipeline_config(
    name: str,
    path: str | Path | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Load a pipeline definition and the pipeline-wide defaults.

    Returns:
        Tuple of (raw pipeline mapping, pipeline section defaults).

    Raises:
        PipelineConfigError: If the pipeline is not found.
    """
    from shipline.config import get_config, load_config  # pylint: disable=import-outside-toplevel

    raw_config = load_config(path) if path is not None else get_config()
    section = _to_dict(raw_config.get("pipeline", {})) or {}
    pipelines: Mapping[str, Any] = section.get("pipelines", {}) or {}

    if name not in pipelines:
        available = ", ".join(sorted(pipelines.keys())) or "(none)"
        raise PipelineConfigError(f"Pipeline '{name}' not found in config. Available: {available}")

    raw = pipelines[name]
    if not isinstance(raw, Mapping):
        raise PipelineConfigError(f"Pipeline '{name}' must be a mapping, got {type(raw).__name__}")

    defaults = {key: section[key] for key in ("default_timeout", "working_dir", "env") if section.get(key) is not None}
    return dict(raw), defaults


def list_pipelines(path: str | Path | None = None) -> dict[str, int]:
    """Configured pipeline names mapped to their stage count."""
    from shipline.config import get_config, load_config  # pylint: disable=import-outside-toplevel

    raw_config = load_config(path) if path is not None else get_config()
    section = _to_dict(raw_config.get("pipeline", {})) or {}
    pipelines = section.get("pipelines", {}) or {}
    return {
        name: len(data.get("stages", []) or []) if isinstance(data, Mapping) else 0
        for name, data in sorted(pipelines.items())
    }


def _parse_pipeline_config(
    name: str,
    data: Mapping[str, Any],
    defaults: Mapping[str, Any] | None = None,
) -> PipelineConfig:
    """Parse raw config data into a PipelineConfig.

    Raises:
        PipelineConfigError: If config is invalid.
    """
    defaults = defaults or {}
    raw_stages = data.get("stages", [])
    if not isinstance(raw_stages, list):
        raise PipelineConfigError(f"Pipeline '{name}': 'stages' must be a list")

    stages: list[Stage] = []
    for i, raw_stage in enumerate(raw_stages):
        if not isinstance(raw_stage, Mapping):
            raise PipelineConfigError(f"Pipeline '{name}': stage {i} must be a mapping")
        stages.append(_parse_stage(name, i, raw_stage))

    raw_post = data.get("post", {}) or {}
    if not isinstance(raw_post, Mapping):
        raise PipelineConfigError(f"Pipeline '{name}': 'post' must be a mapping")
    post = PostActions(
        always=_parse_commands(f"Pipeline '{name}' post.always", raw_post.get("always", [])),
        on_failure=_parse_commands(f"Pipeline '{name}' post.on_failure", raw_post.get("on_failure", [])),
    )

    default_timeout = data.get("default_timeout", defaults.get("default_timeout", 300.0))
    try:
        default_timeout = float(default_timeout)
    except (TypeError, ValueError):
        raise PipelineConfigError(f"Pipeline '{name}': invalid default_timeout {default_timeout!r}") from None

    env = {**_parse_env(name, defaults.get("env", {})), **_parse_env(name, data.get("env", {}))}
    working_dir = data.get("working_dir", defaults.get("working_dir"))

    return PipelineConfig(
        name=name,
        stages=tuple(stages),
        post=post,
        default_timeout=default_timeout,
        working_dir=str(working_dir) if working_dir else None,
        env=env,
    )


def _parse_env(owner: str, raw: Any) -> dict[str, str]:
    if not raw:
        return {}
    if not isinstance(raw, Mapping):
        raise PipelineConfigError(f"{owner}: 'env' must be a mapping")
    return {str(k): str(v) for k, v in raw.items()}


def _parse_stage(pipeline_name: str, index: int, data: Mapping[str, Any]) -> Stage:
    stage_name = data.get("name")
    if not stage_name:
        raise PipelineConfigError(f"Pipeline '{pipeline_name}': stage {index} missing 'name'")
    commands = _parse_commands(f"Pipeline '{pipeline_name}' stage '{stage_name}'", data.get("commands", []))
    return Stage(name=str(stage_name), commands=commands)


def _parse_commands(owner: str, raw: Any) -> tuple[Command, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, Mapping)):
        raw = [raw]
    if not isinstance(raw, list):
        raise PipelineConfigError(f"{owner}: commands must be a list")
    return tuple(_parse_command(owner, i, item) for i, item in enumerate(raw))


def _parse_command(owner: str, index: int, data: Any) -> Command:
    """Parse a command given as a plain string or a mapping."""
    if isinstance(data, str):
        return Command(command=data)
    if not isinstance(data, Mapping):
        raise PipelineConfigError(f"{owner}: command {index} must be a string or a mapping")

    unknown = set(data) - _COMMAND_FIELDS
    if unknown:
        raise PipelineConfigError(f"{owner}: command {index} has unknown keys: {', '.join(sorted(unknown))}")
    if not data.get("command"):
        raise PipelineConfigError(f"{owner}: command {index} missing 'command'")

    kwargs: dict[str, Any] = dict(data)
    raw_type = kwargs.get("type", "shell")
    try:
        kwargs["type"] = CommandType(raw_type)
    except ValueError:
        raise PipelineConfigError(f"{owner}: command {index} invalid type {raw_type!r}") from None

    try:
        for key in _FLOAT_FIELDS:
            if kwargs.get(key) is not None:
                kwargs[key] = float(kwargs[key])
        for key in _INT_FIELDS:
            if kwargs.get(key) is not None:
                kwargs[key] = int(kwargs[key])
    except (TypeError, ValueError):
        raise PipelineConfigError(f"{owner}: command {index} has a non-numeric value") from None

    try:
        kwargs["tolerate_failure"] = parse_bool(kwargs.get("tolerate_failure") or False, "tolerate_failure")
    except PipelineConfigError as exc:
        raise PipelineConfigError(f"{owner}: command {index} {exc}") from None
    kwargs["env"] = _parse_env(owner, kwargs.get("env"))
    return Command(**kwargs)


__all__ = [
    "PipelineRunner",
    "list_pipelines",
    "run",
]
