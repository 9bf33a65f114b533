"""Failure policy example.

Demonstrates how a failing stage aborts the run, how tolerated failures are
only logged, and how ``on_failure`` commands run after ``always``.

Usage:
    python examples/pipeline/02_failure_policy.py
"""

from __future__ import annotations

from shipline.logging import init_logging
from shipline.pipeline import Command, PostActions, Stage, StageAbortedError, run


def main() -> None:
    """Run a pipeline that fails in its second stage."""
    init_logging({"level": "INFO", "output": "console"})

    result = run(
        [
            Stage("Cleanup", (Command("false", tolerate_failure=True),)),
            Stage("Test", (Command("echo 'running tests'; exit 3"),)),
            Stage("Ship", (Command("echo 'never printed'"),)),
        ],
        PostActions(
            always=(Command("echo 'Pipeline completed'"),),
            on_failure=(Command("echo 'collecting logs'"), Command("echo 'rolling back'")),
        ),
        name="failure-policy",
    )

    print(f"\nStages run: {', '.join(result.stages_run)}")
    print(f"Tolerated: {[item.command for item in result.tolerated]}")
    print(f"Post commands: {[item.command for item in result.post_results]}")

    try:
        result.raise_for_status()
    except StageAbortedError as e:
        print(f"\n{e}")
        print(f"Cause: {e.__cause__}")


if __name__ == "__main__":
    main()
