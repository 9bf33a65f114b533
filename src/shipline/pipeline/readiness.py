"""HTTP readiness probing with bounded exponential backoff.

A freshly started service usually has no readiness signal of its own, so
instead of sleeping a fixed amount the pipeline polls a health URL until it
answers, up to a bounded number of attempts.

Exit codes mirror ``curl --fail`` so a probe reads like the shell command
it replaces:

- ``0``  the service answered with the expected status
- ``7``  connection failed
- ``22`` the service answered with an error status
- ``28`` the request timed out
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from shipline.pipeline.cancellation import CancelToken
from shipline.pipeline.exceptions import PipelineCancelledError, ProbeError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONNECT_FAILED = 7
EXIT_HTTP_ERROR = 22
EXIT_TIMEOUT = 28


@dataclass(slots=True)
class ProbeResult:
    """Outcome of :func:`wait_until_ready`.

    Attributes:
        url: Probed URL.
        exit_code: curl-compatible exit code of the last attempt.
        attempts: Number of requests sent.
        status_code: HTTP status of the last response, if any.
        error: Description of the last failure.
        duration: Total time spent, waits included.
        cancelled: Whether polling stopped on a cancel request.
    """

    url: str
    exit_code: int
    attempts: int
    status_code: int | None = None
    error: str | None = None
    duration: float = 0.0
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """Whether the service answered as expected."""
        return self.exit_code == EXIT_OK

    def raise_for_status(self) -> None:
        """Raise ProbeError if the probe did not succeed."""
        if not self.ok:
            raise ProbeError(self.url, self.error or f"exit code {self.exit_code}")


def backoff_delays(attempts: int, interval: float, backoff: float, max_interval: float) -> list[float]:
    """Waits inserted between consecutive attempts.

    Examples:
        >>> backoff_delays(5, 1.0, 2.0, 5.0)
        [1.0, 2.0, 4.0, 5.0]
        >>> backoff_delays(1, 1.0, 2.0, 5.0)
        []
    """
    delays: list[float] = []
    current = interval
    for _ in range(max(attempts - 1, 0)):
        delays.append(min(current, max_interval))
        current *= backoff
    return delays


def _is_expected(status_code: int, expect_status: int | None) -> bool:
    if expect_status is not None:
        return status_code == expect_status
    return 200 <= status_code < 300


def _probe_once(
    client: httpx.Client,
    url: str,
    timeout: float,
    expect_status: int | None,
) -> tuple[int, int | None, str | None]:
    """Send one GET and classify it as (exit_code, status_code, error)."""
    try:
        response = client.get(url, timeout=timeout)
    except httpx.TimeoutException as exc:
        return EXIT_TIMEOUT, None, f"timed out after {timeout}s ({exc.__class__.__name__})"
    except httpx.HTTPError as exc:
        return EXIT_CONNECT_FAILED, None, f"{exc.__class__.__name__}: {exc}"

    if _is_expected(response.status_code, expect_status):
        return EXIT_OK, response.status_code, None
    expected = str(expect_status) if expect_status is not None else "2xx"
    return EXIT_HTTP_ERROR, response.status_code, f"HTTP {response.status_code} (expected {expected})"


def wait_until_ready(  # noqa: PLR0913
    url: str,
    *,
    attempts: int = 10,
    timeout: float = 5.0,
    interval: float = 1.0,
    backoff: float = 2.0,
    max_interval: float = 30.0,
    expect_status: int | None = None,
    client: httpx.Client | None = None,
    cancel_token: CancelToken | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ProbeResult:
    """Poll ``url`` until it answers with the expected status.

    Args:
        url: Health endpoint.
        attempts: Maximum number of requests.
        timeout: Per-request timeout in seconds.
        interval: Wait before the second attempt.
        backoff: Multiplier applied to the wait after each attempt.
        max_interval: Upper bound for a single wait.
        expect_status: Exact status to accept (default: any 2xx).
        client: HTTP client to reuse; a private one is created otherwise.
        cancel_token: Checked before every attempt; waits wake up on cancel.
        sleep: Wait function used when no cancel token is given.

    Returns:
        ProbeResult describing the last attempt.

    Examples:
        >>> result = wait_until_ready("http://localhost:8080/health", attempts=3)  # doctest: +SKIP
        >>> result.ok  # doctest: +SKIP
        True
    """
    delays = backoff_delays(attempts, interval, backoff, max_interval)
    owns_client = client is None
    http = client if client is not None else httpx.Client(follow_redirects=True)
    start = time.monotonic()

    exit_code, status_code, error = EXIT_CONNECT_FAILED, None, "not attempted"
    sent = 0
    try:
        for attempt in range(1, attempts + 1):
            if cancel_token is not None and cancel_token.cancelled:
                return ProbeResult(
                    url=url,
                    exit_code=PipelineCancelledError.EXIT_CODE,
                    attempts=sent,
                    status_code=status_code,
                    error="cancelled",
                    duration=time.monotonic() - start,
                    cancelled=True,
                )

            exit_code, status_code, error = _probe_once(http, url, timeout, expect_status)
            sent = attempt
            if exit_code == EXIT_OK:
                logger.info("Probe %s ready after %d attempt(s) (HTTP %s)", url, attempt, status_code)
                break

            logger.debug("Probe %s attempt %d/%d failed: %s", url, attempt, attempts, error)
            if attempt < attempts:
                delay = delays[attempt - 1]
                if cancel_token is not None:
                    cancel_token.wait(delay)
                else:
                    sleep(delay)
    finally:
        if owns_client:
            http.close()

    if exit_code != EXIT_OK:
        logger.warning("Probe %s failed after %d attempt(s): %s", url, sent, error)

    return ProbeResult(
        url=url,
        exit_code=exit_code,
        attempts=sent,
        status_code=status_code,
        error=error,
        duration=time.monotonic() - start,
    )


__all__ = [
    "EXIT_CONNECT_FAILED",
    "EXIT_HTTP_ERROR",
    "EXIT_OK",
    "EXIT_TIMEOUT",
    "ProbeResult",
    "backoff_delays",
    "wait_until_ready",
]
