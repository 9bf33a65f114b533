"""Shared pytest fixtures for shipline test suite."""

from __future__ import annotations

# Disable Rich colors and force wide terminal BEFORE any imports
# Rich checks these at import time
import os

os.environ["NO_COLOR"] = "1"
os.environ["COLUMNS"] = "200"  # Prevent text wrapping in CLI output

import logging
import shlex
import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from shipline.config import clear_config
from shipline.logging import ROOT_LOGGER_NAME

# pylint: disable=redefined-outer-name

PYTHON = shlex.quote(sys.executable)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Keep user configuration and logging state out of every test."""
    monkeypatch.delenv("SHIPLINE_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    clear_config()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = logger.level
    yield
    clear_config()
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)


@pytest.fixture
def py() -> Callable[[str], str]:
    """Build a shell command running a Python snippet with the test interpreter."""

    def _build(code: str) -> str:
        return f"{PYTHON} -c {shlex.quote(code)}"

    return _build


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a YAML configuration file into the temp directory."""

    def _write(content: str, name: str = "shipline.conf.yml") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
