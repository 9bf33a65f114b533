"""Basic stage pipeline example.

Demonstrates a programmatic pipeline with a tolerated cleanup stage and
post-processing.

Usage:
    python examples/pipeline/01_basic_stages.py
"""

from __future__ import annotations

from shipline.pipeline import Command, PostActions, Stage, run


def main() -> None:
    """Run a basic stage pipeline."""
    result = run(
        [
            Stage("Cleanup", (Command("rm -rf build-output", tolerate_failure=True),)),
            Stage(
                "Build",
                (
                    Command("mkdir -p build-output"),
                    Command('python -c "import platform; print(platform.platform())" > build-output/platform.txt'),
                ),
            ),
            Stage("Report", (Command("cat build-output/platform.txt"),)),
        ],
        PostActions(always=(Command("echo 'Pipeline completed'"),)),
        name="basic-stages",
    )

    print(f"\nPipeline '{result.name}' finished in {result.duration:.3f}s")
    print(f"Status: {result.status.value}")
    print()
    for item in [*result.results, *result.post_results]:
        print(f"  [{item.status.value.upper():>9}] {item.stage}: {item.command}")
        if item.output.strip():
            for line in item.output.strip().splitlines():
                print(f"              {line}")


if __name__ == "__main__":
    main()
