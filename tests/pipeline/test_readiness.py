"""Tests for the shipline.pipeline.readiness module."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest

from shipline.pipeline.cancellation import CancelToken
from shipline.pipeline.exceptions import ProbeError
from shipline.pipeline.readiness import (
    EXIT_CONNECT_FAILED,
    EXIT_HTTP_ERROR,
    EXIT_OK,
    EXIT_TIMEOUT,
    backoff_delays,
    wait_until_ready,
)

URL = "http://service.test/health"


def _client(responses: list[int | Exception]) -> tuple[httpx.Client, list[httpx.Request]]:
    """Client answering each request with the next status code or exception."""
    seen: list[httpx.Request] = []
    queue: Iterator[int | Exception] = iter(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = next(queue)
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item)

    return httpx.Client(transport=httpx.MockTransport(handler)), seen


class TestBackoffDelays:
    """Tests for backoff_delays."""

    def test_exponential_with_cap(self) -> None:
        """Delays grow geometrically and are capped."""
        assert backoff_delays(6, 0.5, 2.0, 3.0) == [0.5, 1.0, 2.0, 3.0, 3.0]

    def test_constant(self) -> None:
        """A backoff of 1 keeps the interval constant."""
        assert backoff_delays(4, 2.0, 1.0, 30.0) == [2.0, 2.0, 2.0]

    @pytest.mark.parametrize("attempts", [0, 1])
    def test_single_attempt_never_waits(self, attempts: int) -> None:
        """No waits without a second attempt."""
        assert backoff_delays(attempts, 1.0, 2.0, 30.0) == []


class TestWaitUntilReady:
    """Tests for wait_until_ready."""

    def test_ready_first_try(self) -> None:
        """A 2xx answer succeeds immediately."""
        client, seen = _client([204])
        result = wait_until_ready(URL, client=client, sleep=lambda _: None)
        assert result.ok is True
        assert result.exit_code == EXIT_OK
        assert result.attempts == 1
        assert result.status_code == 204
        assert len(seen) == 1
        result.raise_for_status()

    def test_ready_after_retries(self) -> None:
        """Connection errors and 503s are retried with backoff."""
        waits: list[float] = []
        client, _ = _client([httpx.ConnectError("refused"), 503, 200])
        result = wait_until_ready(URL, attempts=5, interval=1.0, backoff=2.0, client=client, sleep=waits.append)
        assert result.ok is True
        assert result.attempts == 3
        assert waits == [1.0, 2.0]

    def test_exhausted_on_http_error(self) -> None:
        """An error status on every attempt reports curl's exit 22."""
        waits: list[float] = []
        client, seen = _client([500, 500, 500])
        result = wait_until_ready(URL, attempts=3, client=client, sleep=waits.append)
        assert result.ok is False
        assert result.exit_code == EXIT_HTTP_ERROR
        assert result.status_code == 500
        assert result.attempts == 3
        assert len(seen) == 3
        assert len(waits) == 2
        assert "HTTP 500" in (result.error or "")
        with pytest.raises(ProbeError, match="HTTP 500"):
            result.raise_for_status()

    def test_connect_failure(self) -> None:
        """Refused connections report exit 7."""
        client, _ = _client([httpx.ConnectError("refused")])
        result = wait_until_ready(URL, attempts=1, client=client, sleep=lambda _: None)
        assert result.exit_code == EXIT_CONNECT_FAILED
        assert result.status_code is None

    def test_timeout(self) -> None:
        """Request timeouts report exit 28."""
        client, _ = _client([httpx.ReadTimeout("slow")])
        result = wait_until_ready(URL, attempts=1, client=client, sleep=lambda _: None)
        assert result.exit_code == EXIT_TIMEOUT
        assert "timed out" in (result.error or "")

    def test_expect_status(self) -> None:
        """An explicit expected status replaces the 2xx rule."""
        client, _ = _client([200, 401])
        result = wait_until_ready(URL, attempts=2, expect_status=401, client=client, sleep=lambda _: None)
        assert result.ok is True
        assert result.attempts == 2

    def test_cancelled_before_attempt(self) -> None:
        """A set token stops polling without another request."""
        token = CancelToken()
        token.cancel("stop")
        client, seen = _client([200])
        result = wait_until_ready(URL, client=client, cancel_token=token)
        assert result.cancelled is True
        assert result.exit_code == 130
        assert seen == []

    def test_cancel_wakes_wait(self) -> None:
        """A cancel during the backoff wait ends the probe."""
        token = CancelToken()
        client, seen = _client([503, 200])

        def cancel_on_wait(timeout: float) -> bool:
            token.cancel("operator")
            return True

        token.wait = cancel_on_wait  # type: ignore[method-assign]
        result = wait_until_ready(URL, attempts=5, client=client, cancel_token=token)
        assert result.cancelled is True
        assert len(seen) == 1

    def test_private_client_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A client created by the probe is closed afterwards."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        created: list[httpx.Client] = []
        original = httpx.Client

        def factory(**kwargs: object) -> httpx.Client:
            client = original(transport=transport, **kwargs)  # type: ignore[arg-type]
            created.append(client)
            return client

        monkeypatch.setattr(httpx, "Client", factory)
        result = wait_until_ready(URL, attempts=1)
        assert result.ok is True
        assert created[0].is_closed is True

    def test_shared_client_left_open(self) -> None:
        """A caller-provided client is not closed."""
        client, _ = _client([200])
        wait_until_ready(URL, client=client)
        assert client.is_closed is False
        client.close()
