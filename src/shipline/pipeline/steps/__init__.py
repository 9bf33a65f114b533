"""Command executors.

- ShellCommand: run a command string via ``subprocess.run(shell=True)``
- ProbeCommand: poll an HTTP URL until it answers
"""

from shipline.pipeline.steps.probe import ProbeCommand
from shipline.pipeline.steps.shell import ShellCommand

__all__ = [
    "ProbeCommand",
    "ShellCommand",
]
