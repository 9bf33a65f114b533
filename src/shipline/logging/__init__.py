"""Logging helpers for shipline."""

from shipline.logging.manager import (
    LOGGING_LEVEL,
    ROOT_LOGGER_NAME,
    SUCCESS_LEVEL,
    TRACE_LEVEL,
    get_logger,
    init_logging,
    parse_level,
)

__all__ = [
    "LOGGING_LEVEL",
    "ROOT_LOGGER_NAME",
    "SUCCESS_LEVEL",
    "TRACE_LEVEL",
    "get_logger",
    "init_logging",
    "parse_level",
]
