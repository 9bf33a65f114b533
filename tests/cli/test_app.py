"""Tests for the CLI application entry points and global options."""

from __future__ import annotations

import logging
import runpy
import sys
from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from shipline import meta
from shipline.cli.app import app, get_cli_logger
from shipline.logging import ROOT_LOGGER_NAME, TRACE_LEVEL

# Mark all tests in this module as CLI tests
# Run with: pytest -m cli
pytestmark = pytest.mark.cli

runner = CliRunner()


def test_app_help() -> None:
    """Test that --help lists the commands."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "shipline" in result.stdout.lower()
    for command in ("run", "deploy", "list", "info"):
        assert command in result.stdout


def test_no_args_shows_help() -> None:
    """Invoking without a command prints usage."""
    result = runner.invoke(app, [])
    assert "Usage" in result.output


def test_app_version() -> None:
    """Test that --version displays the version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert meta.__version__ in result.stdout


def test_info_command_basic() -> None:
    """Test info without options shows name and version."""
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert f"{meta.__app_name__} {meta.__version__}" in result.stdout


@pytest.mark.parametrize("flag", ["-f", "--full"])
def test_info_command_full(flag: str) -> None:
    """Test info with --full shows the metadata table."""
    result = runner.invoke(app, ["info", flag])
    assert result.exit_code == 0
    assert meta.__description__ in result.stdout
    assert meta.__author__ in result.stdout
    assert meta.__license_type__ in result.stdout


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (["-v"], logging.INFO),
        (["-vv"], logging.DEBUG),
        (["-vvv"], TRACE_LEVEL),
        (["-vvvv"], TRACE_LEVEL),
        (["--log-level", "error"], logging.ERROR),
        (["-vv", "--log-level", "warning"], logging.WARNING),
    ],
)
def test_verbosity_sets_level(args: list[str], expected: int) -> None:
    """-v flags and --log-level drive the shipline logger level."""
    result = runner.invoke(app, [*args, "info"])
    assert result.exit_code == 0
    assert logging.getLogger(ROOT_LOGGER_NAME).level == expected


def test_default_level_from_config(
    write_config: Callable[..., Path],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Without flags the configured level applies."""
    write_config("logger:\n  level: ERROR\n")
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.ERROR


def test_invalid_log_level() -> None:
    """An unknown level exits 1 and lists the valid ones."""
    result = runner.invoke(app, ["--log-level", "chatty", "info"])
    assert result.exit_code == 1
    assert "Invalid log level" in result.stdout
    assert "Valid levels" in result.stdout


def test_broken_config_falls_back_to_console(
    write_config: Callable[..., Path],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """A broken configuration file does not prevent logging setup."""
    write_config("logger: [unclosed")
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["-v", "info"])
    assert result.exit_code == 0
    assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.INFO


@pytest.mark.parametrize("content", ["logger:\n  output: syslog\n", "logger:\n  level: CHATTY\n"])
def test_invalid_logger_config_falls_back_to_console(
    content: str,
    write_config: Callable[..., Path],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """An invalid logger section falls back to console logging at INFO."""
    write_config(content)
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.INFO


def test_cli_logger_name() -> None:
    """CLI logs go to the shipline.cli logger."""
    assert get_cli_logger().name == "shipline.cli"


def test_main_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """python -m shipline runs the app."""
    monkeypatch.setattr(sys, "argv", ["shipline", "--version"])
    with pytest.raises(SystemExit) as exc_info:
        runpy.run_module("shipline", run_name="__main__")
    assert exc_info.value.code == 0
