"""Fixtures for pipeline tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping

import pytest

from shipline.pipeline.base import RunContext
from shipline.pipeline.models import Command, CommandResult, CommandStatus, CommandType, PipelineConfig
from shipline.pipeline.runner import PipelineRunner


class RecordingExecutor:
    """Executor double: records every call and answers from a table of exit codes.

    Commands missing from ``exit_codes`` succeed. ``on_call`` runs before the
    result is produced, which lets tests cancel a token or raise mid-run.
    """

    def __init__(
        self,
        exit_codes: Mapping[str, int] | None = None,
        on_call: Callable[[str, str], None] | None = None,
    ) -> None:
        self.exit_codes = dict(exit_codes or {})
        self.on_call = on_call
        self.calls: list[tuple[str, str]] = []
        self.contexts: list[RunContext] = []

    def execute(self, command: Command, context: RunContext, *, stage: str) -> CommandResult:
        self.calls.append((stage, command.command))
        self.contexts.append(context)
        if self.on_call is not None:
            self.on_call(stage, command.command)
        code = self.exit_codes.get(command.command, 0)
        return CommandResult(
            stage=stage,
            command=command.command,
            status=CommandStatus.SUCCESS if code == 0 else CommandStatus.FAILED,
            exit_code=code,
            output=f"ran {command.command}\n",
            error=None if code == 0 else f"{command.command} exited {code}",
        )

    def commands(self, stage: str | None = None) -> list[str]:
        return [cmd for s, cmd in self.calls if stage is None or s == stage]

    def stages(self) -> list[str]:
        seen: list[str] = []
        for stage, _ in self.calls:
            if not seen or seen[-1] != stage:
                seen.append(stage)
        return seen


@pytest.fixture
def make_runner() -> Callable[..., tuple[PipelineRunner, RecordingExecutor]]:
    """Build a PipelineRunner whose commands all go to a fresh RecordingExecutor."""

    def _make(
        config: PipelineConfig,
        exit_codes: Mapping[str, int] | None = None,
        on_call: Callable[[str, str], None] | None = None,
    ) -> tuple[PipelineRunner, RecordingExecutor]:
        executor = RecordingExecutor(exit_codes, on_call)
        runner = PipelineRunner(config, executors={CommandType.SHELL: executor, CommandType.PROBE: executor})
        return runner, executor

    return _make
