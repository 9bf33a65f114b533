"""Tests for the shipline.pipeline.steps.probe module."""

from __future__ import annotations

import httpx
import pytest

from shipline.pipeline.base import RunContext
from shipline.pipeline.cancellation import CancelToken
from shipline.pipeline.models import Command, CommandStatus, CommandType
from shipline.pipeline.steps.probe import ProbeCommand

URL = "http://service.test/health"


def _probe(**kwargs: object) -> Command:
    return Command(URL, type=CommandType.PROBE, interval=0.0, **kwargs)  # type: ignore[arg-type]


def _context(status: int, **kwargs: object) -> RunContext:
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(status)))
    return RunContext(http_client=client, **kwargs)  # type: ignore[arg-type]


class TestProbeCommand:
    """Tests for ProbeCommand.execute."""

    def test_success(self) -> None:
        """A healthy service yields a successful command."""
        result = ProbeCommand().execute(_probe(), _context(200), stage="Verify Deployment")
        assert result.status == CommandStatus.SUCCESS
        assert result.exit_code == 0
        assert result.command == f"probe {URL}"
        assert "1 attempt(s)" in result.output

    def test_http_500(self) -> None:
        """A failing service maps to exit 22 after all attempts."""
        result = ProbeCommand().execute(_probe(attempts=3), _context(500), stage="Verify Deployment")
        assert result.status == CommandStatus.FAILED
        assert result.exit_code == 22
        assert "3 attempt(s)" in result.output
        assert "HTTP 500" in (result.error or "")

    def test_cancelled(self) -> None:
        """A cancelled token yields a cancelled command."""
        token = CancelToken()
        token.cancel("stop")
        result = ProbeCommand().execute(_probe(), _context(200, cancel_token=token), stage="v")
        assert result.status == CommandStatus.CANCELLED
        assert result.exit_code == 130

    def test_dry_run(self) -> None:
        """Dry run sends no request."""

        def handler(request: httpx.Request) -> httpx.Response:
            pytest.fail("probe sent a request during dry run")

        context = RunContext(dry_run=True, http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        result = ProbeCommand().execute(_probe(), context, stage="v")
        assert result.status == CommandStatus.SKIPPED

    def test_request_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The per-request timeout is the command timeout, else the probe default."""
        seen: list[float] = []

        def fake_wait(url: str, **kwargs: object) -> object:
            seen.append(kwargs["timeout"])  # type: ignore[arg-type]
            raise RuntimeError("stop")

        monkeypatch.setattr("shipline.pipeline.steps.probe.wait_until_ready", fake_wait)
        for command in (_probe(), _probe(timeout=2.0)):
            with pytest.raises(RuntimeError):
                ProbeCommand().execute(command, RunContext(default_timeout=900.0), stage="v")
        assert seen == [ProbeCommand.request_timeout, 2.0]
