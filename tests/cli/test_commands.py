"""Tests for the run, deploy and list CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from shipline.cli.app import app

pytestmark = pytest.mark.cli

runner = CliRunner()

WriteConfig = Callable[..., Path]

PIPELINES = """
pipeline:
  pipelines:
    green:
      stages:
        - name: Build
          commands:
            - echo building
        - name: Test
          commands:
            - command: exit 1
              tolerate_failure: true
            - echo tested
      post:
        always: echo cleanup-done
    red:
      stages:
        - name: Build
          commands:
            - echo building
        - name: Test
          commands:
            - sh -c 'echo broken; exit 3'
        - name: Ship
          commands:
            - echo shipped
      post:
        on_failure: echo rolled-back
"""


@pytest.fixture
def pipelines(write_config: WriteConfig) -> Path:
    return write_config(PIPELINES)


# ============================================================================
# run
# ============================================================================


def test_run_success(pipelines: Path, tmp_path: Path) -> None:
    """A green pipeline exits 0 and shows every command."""
    result = runner.invoke(app, ["run", "green", "--config", str(pipelines), "--workdir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "Pipeline succeeded" in result.stdout
    assert "tolerated" in result.stdout
    assert "echo cleanup-done" in result.stdout


def test_run_failure_exit_code(pipelines: Path, tmp_path: Path) -> None:
    """The process exits with the failing command's exit status."""
    result = runner.invoke(app, ["run", "red", "-c", str(pipelines), "-w", str(tmp_path), "--show-output"])
    assert result.exit_code == 3
    assert "Pipeline failed at stage Test with exit code 3" in result.stdout
    assert "echo shipped" not in result.stdout
    assert "echo rolled-back" in result.stdout
    assert "broken" in result.stdout


def test_run_dry_run(pipelines: Path, tmp_path: Path) -> None:
    """Dry run never fails because nothing executes."""
    result = runner.invoke(app, ["run", "red", "-c", str(pipelines), "-w", str(tmp_path), "--dry-run"])
    assert result.exit_code == 0
    assert "skipped" in result.stdout


def test_run_unknown_pipeline(pipelines: Path) -> None:
    """An unknown pipeline name is reported with the available ones."""
    result = runner.invoke(app, ["run", "blue", "-c", str(pipelines)])
    assert result.exit_code == 1
    assert "Error:" in result.stdout
    assert "green, red" in result.stdout


def test_run_missing_config(tmp_path: Path) -> None:
    """A missing configuration file is an error."""
    result = runner.invoke(app, ["run", "green", "-c", str(tmp_path / "nope.yml")])
    assert result.exit_code == 1
    assert "not found" in result.stdout


# ============================================================================
# deploy
# ============================================================================


def test_deploy_dry_run(write_config: WriteConfig, tmp_path: Path) -> None:
    """A dry-run deploy lists all six stages and creates nothing."""
    workspace = tmp_path / "ws"
    path = write_config("deploy:\n  repo_url: https://git.example.com/shop.git\n")
    result = runner.invoke(
        app,
        ["deploy", "-c", str(path), "--workspace", str(workspace), "--branch", "release", "--dry-run"],
    )
    assert result.exit_code == 0, result.output
    assert "https://git.example.com/shop.git" in result.stdout
    assert "(release)" in result.stdout
    for stage in ("Cleanup", "Clone Repository", "Build Image", "Deploy", "Verify Deployment"):
        assert stage in result.stdout
    assert not workspace.exists()


def test_deploy_repo_url_from_flag(write_config: WriteConfig, tmp_path: Path) -> None:
    """--repo-url supplies the repository when config has none."""
    path = write_config("deploy: {}\n")
    result = runner.invoke(
        app,
        ["deploy", "-c", str(path), "--repo-url", "https://git.example.com/x.git", "--dry-run"],
    )
    assert result.exit_code == 0, result.output


def test_deploy_requires_repo_url(write_config: WriteConfig) -> None:
    """Without a repository the command fails before running anything."""
    path = write_config("deploy: {}\n")
    result = runner.invoke(app, ["deploy", "-c", str(path), "--dry-run"])
    assert result.exit_code == 1
    assert "repo_url" in result.stdout


def test_deploy_unknown_setting(write_config: WriteConfig) -> None:
    """Typos in the deploy section are reported."""
    path = write_config("deploy:\n  repo_url: https://x/y.git\n  brnach: main\n")
    result = runner.invoke(app, ["deploy", "-c", str(path), "--dry-run"])
    assert result.exit_code == 1
    assert "brnach" in result.stdout


# ============================================================================
# list
# ============================================================================


def test_list(pipelines: Path) -> None:
    """Configured pipelines are listed with their stage count."""
    result = runner.invoke(app, ["list", "--config", str(pipelines)])
    assert result.exit_code == 0
    assert "green" in result.stdout
    assert "red" in result.stdout
    assert "3" in result.stdout


def test_list_empty(write_config: WriteConfig) -> None:
    """No pipelines prints a hint instead of an empty table."""
    path = write_config("logger:\n  level: INFO\n")
    result = runner.invoke(app, ["list", "-c", str(path)])
    assert result.exit_code == 0
    assert "No pipelines configured." in result.stdout
