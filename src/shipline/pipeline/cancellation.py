"""Cooperative cancellation for pipeline runs.

The runner checks a :class:`CancelToken` between commands and between
probe attempts. A command already in flight is never interrupted: how a
child process reacts to signals is up to the external tool.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType
from typing import Any

from shipline.pipeline.exceptions import PipelineCancelledError

logger = logging.getLogger(__name__)


def _default_signals() -> tuple[signal.Signals, ...]:
    if sys.platform == "win32":
        return (signal.SIGINT,)
    return (signal.SIGINT, signal.SIGTERM)


class CancelToken:
    """Thread-safe cancellation flag.

    Examples:
        >>> token = CancelToken()
        >>> token.cancelled
        False
        >>> token.cancel("operator request")
        >>> token.cancelled, token.reason
        (True, 'operator request')
    """

    def __init__(self) -> None:
        """Initialize an unset token."""
        self._event = threading.Event()
        self._reason: str | None = None
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given with the first cancel request."""
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation. Only the first reason is kept."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
        logger.warning("Cancellation requested: %s", reason)

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, waking early on cancellation.

        Returns:
            True if cancellation was requested.
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self, stage_name: str) -> None:
        """Raise PipelineCancelledError if cancellation was requested."""
        if self.cancelled:
            raise PipelineCancelledError(stage_name, self._reason)

    @contextmanager
    def install_signal_handlers(
        self,
        signals: tuple[signal.Signals, ...] | None = None,
    ) -> Iterator[CancelToken]:
        """Cancel this token when one of ``signals`` is received.

        Previous handlers are restored on exit. Handlers can only be
        installed from the main thread; elsewhere this is a no-op.

        Examples:
            >>> token = CancelToken()
            >>> with token.install_signal_handlers():  # doctest: +SKIP
            ...     runner.run(cancel_token=token)
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, signal handlers not installed")
            yield self
            return

        chosen = signals or _default_signals()
        previous: dict[signal.Signals, Any] = {}

        def handler(signum: int, _frame: FrameType | None) -> None:
            self.cancel(f"received {signal.Signals(signum).name}")

        for sig in chosen:
            previous[sig] = signal.signal(sig, handler)
        try:
            yield self
        finally:
            for sig, old in previous.items():
                signal.signal(sig, old)


__all__ = [
    "CancelToken",
]
