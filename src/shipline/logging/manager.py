"""Logging setup for shipline.

Module code logs through ``logging.getLogger(__name__)`` so every record
lands under the ``shipline`` logger. :func:`init_logging` attaches the
handlers described by the ``logger`` configuration section:

- console output through :class:`rich.logging.RichHandler` (stderr)
- optional rotating file output

Two extra levels are registered: ``TRACE`` (5) for command output dumps and
``SUCCESS`` (25) for run summaries.
"""

from __future__ import annotations

import logging
import logging.handlers
from collections.abc import Mapping
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

#: Level below DEBUG used to dump captured command output.
TRACE_LEVEL = 5

#: Level between INFO and WARNING used for successful run summaries.
SUCCESS_LEVEL = 25

#: Namespace of all level values understood by shipline.
LOGGING_LEVEL = SimpleNamespace(
    TRACE=TRACE_LEVEL,
    DEBUG=logging.DEBUG,
    INFO=logging.INFO,
    SUCCESS=SUCCESS_LEVEL,
    WARNING=logging.WARNING,
    ERROR=logging.ERROR,
    CRITICAL=logging.CRITICAL,
)

ROOT_LOGGER_NAME = "shipline"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

logging.addLevelName(TRACE_LEVEL, "TRACE")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


def parse_level(level: str | int) -> int:
    """Convert a level name or number to a logging level.

    Raises:
        ValueError: If the name is not a known level.

    Examples:
        >>> parse_level("success")
        25
        >>> parse_level(10)
        10
    """
    if isinstance(level, int):
        return level
    value = getattr(LOGGING_LEVEL, level.strip().upper(), None)
    if value is None:
        valid = ", ".join(vars(LOGGING_LEVEL))
        raise ValueError(f"Invalid log level {level!r}. Valid levels: {valid}")
    return int(value)


def _remove_shipline_handlers(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        if getattr(handler, "_shipline", False):
            logger.removeHandler(handler)
            handler.close()


def _tag(handler: logging.Handler) -> logging.Handler:
    handler._shipline = True  # type: ignore[attr-defined]  # pylint: disable=protected-access
    return handler


def _console_handler(options: Mapping[str, Any], level: int) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=bool(options.get("show_path", False)),
        rich_tracebacks=bool(options.get("rich_tracebacks", True)),
        markup=False,
    )
    handler.setLevel(level)
    return _tag(handler)


def _file_handler(options: Mapping[str, Any], level: int) -> logging.Handler:
    path = Path(str(options.get("path", "./logs/shipline.log"))).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=int(options.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(options.get("backup_count", 3)),
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    handler.setLevel(level)
    return _tag(handler)


def init_logging(
    config: Mapping[str, Any] | None = None,
    *,
    level: str | int | None = None,
) -> logging.Logger:
    """Configure the ``shipline`` logger.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        config: ``logger`` configuration section; loaded from the global
            configuration when omitted.
        level: Overrides the configured level (CLI flags).

    Returns:
        The configured ``shipline`` logger.

    Raises:
        ValueError: If the level or output mode is invalid.
    """
    if config is None:
        from shipline.config import get_config  # pylint: disable=import-outside-toplevel

        config = get_config().get("logger", {})

    effective = parse_level(level if level is not None else config.get("level", "INFO"))
    output = str(config.get("output", "console"))
    if output not in ("console", "file", "both"):
        raise ValueError(f"Invalid logger output {output!r} (expected 'console', 'file', or 'both')")

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    _remove_shipline_handlers(logger)
    logger.setLevel(effective)

    if output in ("console", "both"):
        logger.addHandler(_console_handler(config.get("console", {}) or {}, effective))
    if output in ("file", "both"):
        logger.addHandler(_file_handler(config.get("file", {}) or {}, effective))

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``shipline`` logger or one of its children.

    Examples:
        >>> get_logger("cli").name
        'shipline.cli'
        >>> get_logger("shipline.pipeline").name
        'shipline.pipeline'
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    "LOGGING_LEVEL",
    "ROOT_LOGGER_NAME",
    "SUCCESS_LEVEL",
    "TRACE_LEVEL",
    "get_logger",
    "init_logging",
    "parse_level",
]
