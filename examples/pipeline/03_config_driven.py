"""Config-driven pipeline example.

Demonstrates loading a pipeline from shipline.conf.yml using
PipelineRunner.from_config(). The configuration is written to a temporary
directory so the example is self-contained.

Usage:
    python examples/pipeline/03_config_driven.py
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from shipline.pipeline import CancelToken, PipelineRunner

CONFIG = """
pipeline:
  default_timeout: 60
  pipelines:
    example-pipeline:
      env:
        APP_ENV: example
      stages:
        - name: Prepare
          commands:
            - command: rm -rf out
              tolerate_failure: true
            - mkdir -p out
        - name: Build
          commands:
            - command: echo "building for $APP_ENV" > build.log
              working_dir: out
        - name: Check
          commands:
            - cat out/build.log
      post:
        always: echo 'Pipeline completed'
        on_failure:
          - ls -la out
"""


def main() -> None:
    """Run a config-driven pipeline."""
    with tempfile.TemporaryDirectory() as tmp:
        config_path = Path(tmp) / "shipline.conf.yml"
        config_path.write_text(CONFIG, encoding="utf-8")

        runner = PipelineRunner.from_config("example-pipeline", path=config_path, working_dir=tmp)
        print(f"Pipeline: {runner.config.name}")
        print(f"Stages: {[stage.name for stage in runner.config.stages]}")
        print(f"Default timeout: {runner.config.default_timeout}s")
        print()

        token = CancelToken()
        with token.install_signal_handlers():
            result = runner.run(cancel_token=token)

        print(f"Completed in {result.duration:.3f}s")
        print(f"Success: {result.success}")
        for item in result.results:
            print(f"  [{item.status.value:>9}] {item.stage}: {item.command}")
            if item.output.strip():
                print(f"              {item.output.strip()}")


if __name__ == "__main__":
    main()
