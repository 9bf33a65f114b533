"""Input validation for shipline.pipeline module.

Hard limits guard against malformed pipeline definitions coming from
configuration files.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from urllib.parse import urlparse

from shipline.pipeline.exceptions import PipelineConfigError

# ============================================================================
# Constants - Hard Limits
# ============================================================================

#: Maximum stage name length.
MAX_STAGE_NAME_LENGTH = 64

#: Pattern for valid stage names ("Clone Repository", "build-image", "step_1").
STAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _.\-]*$")

#: Maximum number of stages in a single pipeline.
MAX_PIPELINE_STAGES = 50

#: Maximum number of commands in one stage or post phase.
MAX_STAGE_COMMANDS = 50

#: Maximum length of a command string.
MAX_COMMAND_LENGTH = 4096

#: Pattern for environment variable names.
ENV_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

#: Maximum number of environment variables per command or pipeline.
MAX_ENV_VARS = 100

#: Maximum length of an environment variable value.
MAX_ENV_VALUE_LENGTH = 32768

#: Maximum number of probe attempts.
MAX_PROBE_ATTEMPTS = 100

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0", ""})


# ============================================================================
# Validation Functions
# ============================================================================


def validate_stage_name(name: str) -> str:
    """Validate and return a stage name.

    Examples:
        >>> validate_stage_name("Clone Repository")
        'Clone Repository'
        >>> validate_stage_name("")
        Traceback (most recent call last):
            ...
        shipline.pipeline.exceptions.PipelineConfigError: Stage name cannot be empty
    """
    if not name:
        raise PipelineConfigError("Stage name cannot be empty")
    if len(name) > MAX_STAGE_NAME_LENGTH:
        raise PipelineConfigError(f"Stage name too long (max {MAX_STAGE_NAME_LENGTH} chars)")
    if not STAGE_NAME_PATTERN.match(name):
        raise PipelineConfigError(
            f"Invalid stage name {name!r}: use letters, digits, spaces, dot, underscore or hyphen"
        )
    return name


def validate_command(command: str) -> str:
    """Validate a command string."""
    if not command or not command.strip():
        raise PipelineConfigError("Command cannot be empty")
    if len(command) > MAX_COMMAND_LENGTH:
        raise PipelineConfigError(f"Command too long (max {MAX_COMMAND_LENGTH} chars)")
    if "\x00" in command:
        raise PipelineConfigError("Command cannot contain NUL bytes")
    return command


def validate_env(env: Mapping[str, str]) -> Mapping[str, str]:
    """Validate environment variable names and values."""
    if len(env) > MAX_ENV_VARS:
        raise PipelineConfigError(f"Too many environment variables (max {MAX_ENV_VARS})")
    for key, value in env.items():
        if not isinstance(key, str) or not ENV_KEY_PATTERN.match(key):
            raise PipelineConfigError(f"Invalid environment variable name: {key!r}")
        if not isinstance(value, str):
            raise PipelineConfigError(f"Environment variable {key!r} must be a string, got {type(value).__name__}")
        if len(value) > MAX_ENV_VALUE_LENGTH:
            raise PipelineConfigError(f"Environment variable {key!r} value too long")
    return env


def validate_url(url: str) -> str:
    """Validate a probe URL (http or https with a host).

    Examples:
        >>> validate_url("http://localhost:8080/health")
        'http://localhost:8080/health'
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise PipelineConfigError(f"Invalid probe URL {url!r} (expected http:// or https://)")
    return url


def parse_bool(value: object, field_name: str) -> bool:
    """Read a boolean from configuration.

    Accepts real booleans and the strings an expanded ``${VAR}`` can produce.

    Examples:
        >>> parse_bool("false", "tolerate_failure")
        False
        >>> parse_bool(True, "tolerate_failure")
        True
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise PipelineConfigError(f"{field_name} must be a boolean, got {value!r}")


def validate_command_count(owner: str, count: int) -> None:
    """Validate the number of commands in a stage or post phase."""
    if count > MAX_STAGE_COMMANDS:
        raise PipelineConfigError(f"{owner}: too many commands (max {MAX_STAGE_COMMANDS})")


def validate_pipeline_config(*, stage_count: int) -> None:
    """Validate pipeline-level configuration."""
    if stage_count == 0:
        raise PipelineConfigError("Pipeline must have at least one stage")
    if stage_count > MAX_PIPELINE_STAGES:
        raise PipelineConfigError(f"Too many stages (max {MAX_PIPELINE_STAGES})")


__all__ = [
    "ENV_KEY_PATTERN",
    "MAX_COMMAND_LENGTH",
    "MAX_ENV_VARS",
    "MAX_PIPELINE_STAGES",
    "MAX_PROBE_ATTEMPTS",
    "MAX_STAGE_COMMANDS",
    "MAX_STAGE_NAME_LENGTH",
    "STAGE_NAME_PATTERN",
    "parse_bool",
    "validate_command",
    "validate_command_count",
    "validate_env",
    "validate_pipeline_config",
    "validate_stage_name",
    "validate_url",
]
