"""Tests for __main__ entry point.

These tests verify that the CLI can be invoked through python -m shipline.
"""

import os
import subprocess
import sys
from subprocess import CompletedProcess
from unittest.mock import patch

from shipline import meta


def test_main_module_invocation() -> None:
    """Test that `python -m shipline --help` runs without errors."""
    env = os.environ.copy()
    env["PYTHONIOENCODING"] = "utf-8"

    result: CompletedProcess[bytes] = subprocess.run(
        [sys.executable, "-m", "shipline", "--help"],
        capture_output=True,
        timeout=30,
        check=False,
        env=env,
    )
    assert result.returncode == 0
    assert b"shipline" in result.stdout.lower()


def test_main_module_version() -> None:
    """Test that `python -m shipline --version` prints the version."""
    result = subprocess.run(
        [sys.executable, "-m", "shipline", "--version"],
        capture_output=True,
        text=True,
        timeout=30,
        check=False,
    )
    assert result.returncode == 0
    assert meta.__version__ in result.stdout


def test_main_function_calls_app() -> None:
    """main() delegates to the Typer app."""
    from shipline.__main__ import main  # pylint: disable=import-outside-toplevel

    with patch("shipline.__main__.app") as app:
        main()
    app.assert_called_once_with()
