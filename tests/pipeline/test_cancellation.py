"""Tests for the shipline.pipeline.cancellation module."""

from __future__ import annotations

import os
import signal
import sys
import threading

import pytest

from shipline.pipeline.cancellation import CancelToken
from shipline.pipeline.exceptions import PipelineCancelledError


class TestCancelToken:
    """Tests for CancelToken."""

    def test_initial_state(self) -> None:
        """A new token is not cancelled."""
        token = CancelToken()
        assert token.cancelled is False
        assert token.reason is None
        token.raise_if_cancelled("Build")

    def test_first_reason_wins(self) -> None:
        """Repeated cancel requests keep the first reason."""
        token = CancelToken()
        token.cancel("first")
        token.cancel("second")
        assert token.cancelled is True
        assert token.reason == "first"

    def test_raise_if_cancelled(self) -> None:
        """A cancelled token raises PipelineCancelledError with exit 130."""
        token = CancelToken()
        token.cancel("operator")
        with pytest.raises(PipelineCancelledError) as exc_info:
            token.raise_if_cancelled("Deploy")
        assert exc_info.value.stage_name == "Deploy"
        assert exc_info.value.exit_code == 130
        assert exc_info.value.reason == "operator"

    def test_wait_times_out(self) -> None:
        """wait() returns False when nobody cancels."""
        assert CancelToken().wait(0.01) is False

    def test_wait_wakes_on_cancel(self) -> None:
        """wait() returns early when another thread cancels."""
        token = CancelToken()
        timer = threading.Timer(0.05, token.cancel, args=("timer",))
        timer.start()
        try:
            assert token.wait(5.0) is True
        finally:
            timer.cancel()


class TestSignalHandlers:
    """Tests for CancelToken.install_signal_handlers."""

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_signal_cancels_token(self) -> None:
        """SIGTERM cancels the token instead of killing the process."""
        token = CancelToken()
        previous = signal.getsignal(signal.SIGTERM)
        with token.install_signal_handlers((signal.SIGTERM,)):
            os.kill(os.getpid(), signal.SIGTERM)
        assert token.cancelled is True
        assert token.reason == "received SIGTERM"
        assert signal.getsignal(signal.SIGTERM) is previous

    def test_handlers_restored_on_error(self) -> None:
        """Previous handlers come back even if the body raises."""
        token = CancelToken()
        previous = signal.getsignal(signal.SIGINT)
        with pytest.raises(RuntimeError), token.install_signal_handlers((signal.SIGINT,)):
            assert signal.getsignal(signal.SIGINT) is not previous
            raise RuntimeError("boom")
        assert signal.getsignal(signal.SIGINT) is previous

    def test_noop_outside_main_thread(self) -> None:
        """Installing from a worker thread leaves handlers untouched."""
        token = CancelToken()
        previous = signal.getsignal(signal.SIGINT)
        observed: list[object] = []

        def worker() -> None:
            with token.install_signal_handlers() as installed:
                observed.append(installed)
                observed.append(signal.getsignal(signal.SIGINT))

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        assert observed == [token, previous]
