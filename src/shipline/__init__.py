"""shipline: sequential stage pipelines with failure policy and cleanup.

Examples:
    >>> from shipline import Command, Stage, PostActions, run
    >>> result = run(
    ...     [Stage("Build", (Command("make build"),))],
    ...     PostActions(always=(Command("echo done"),)),
    ... )  # doctest: +SKIP
"""

from shipline.config import clear_config, get_config, load_config
from shipline.config.exceptions import ShiplineError
from shipline.logging import get_logger, init_logging
from shipline.meta import __version__
from shipline.pipeline import (
    Command,
    PipelineConfig,
    PipelineRunner,
    PostActions,
    RunResult,
    RunStatus,
    Stage,
    run,
)

__all__ = [
    "Command",
    "PipelineConfig",
    "PipelineRunner",
    "PostActions",
    "RunResult",
    "RunStatus",
    "ShiplineError",
    "Stage",
    "__version__",
    "clear_config",
    "get_config",
    "get_logger",
    "init_logging",
    "load_config",
    "run",
]
