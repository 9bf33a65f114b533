"""Configuration loading for shipline.

Configuration is plain YAML. The packaged ``shipline.conf.yml`` provides
defaults; a user file found through the lookup cascade is deep-merged on top
of it, and string values may reference environment variables:

- ``${VAR}`` - required variable, raises ConfigEnvVarError if not set
- ``${VAR:-default}`` - optional variable with default value

Lookup cascade (first match wins):

1. explicit ``path`` argument
2. ``$SHIPLINE_CONFIG``
3. ``./shipline.conf.yml``
4. ``~/.config/shipline/shipline.conf.yml``
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from box import Box

from shipline.config.exceptions import (
    ConfigEnvVarError,
    ConfigFileNotFoundError,
    ConfigFormatError,
)

log = logging.getLogger(__name__)

#: File name searched in the working directory and the user config directory.
CONFIG_FILENAME = "shipline.conf.yml"

#: Environment variable pointing to an explicit configuration file.
CONFIG_ENV_VAR = "SHIPLINE_CONFIG"

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / CONFIG_FILENAME

# Pattern for environment variable substitution: ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([a-zA-Z_][a-zA-Z0-9_]*)(?::-([^}]*))?\}")

_config: Box | None = None


def _expand_env_vars(value: str, source: str | None = None) -> str:
    """Expand environment variables in a string value.

    Args:
        value: String potentially containing ${VAR} patterns.
        source: Source file for error messages.

    Returns:
        String with environment variables expanded.

    Raises:
        ConfigEnvVarError: If a required variable is not set.

    Examples:
        >>> import os
        >>> os.environ["SHIPLINE_DOC_VAR"] = "hello"
        >>> _expand_env_vars("${SHIPLINE_DOC_VAR} world")
        'hello world'
        >>> _expand_env_vars("${SHIPLINE_MISSING:-default}")
        'default'
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default_value = match.group(2)

        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value

        if default_value is not None:
            return default_value

        raise ConfigEnvVarError(var_name, source)

    return _ENV_VAR_PATTERN.sub(replacer, value)


def _expand_env_vars_recursive(data: Any, source: str | None = None) -> Any:
    """Recursively expand environment variables in config data."""
    if isinstance(data, dict):
        return {k: _expand_env_vars_recursive(v, source) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars_recursive(item, source) for item in data]
    if isinstance(data, str):
        return _expand_env_vars(data, source)
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; any other value in ``override``
    replaces the one in ``base``.

    Examples:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": 4})
        {'a': {'x': 1, 'y': 3}, 'b': 4}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file that must contain a mapping (an empty file is ``{}``)."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}") from None
    except OSError as exc:
        raise ConfigFormatError(f"Cannot read configuration file {path}: {exc}") from exc

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigFormatError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFormatError(f"Invalid configuration in {path}: expected a mapping, got {type(data).__name__}")
    return data


def _load_default_config() -> dict[str, Any]:
    """Load the configuration shipped with the package."""
    return _read_yaml(_DEFAULT_CONFIG_PATH)


def find_config_file(path: str | os.PathLike[str] | None = None) -> Path | None:
    """Resolve the user configuration file through the lookup cascade.

    Args:
        path: Explicit path; must exist when given.

    Returns:
        The file to load, or None when only defaults apply.

    Raises:
        ConfigFileNotFoundError: If ``path`` or ``$SHIPLINE_CONFIG`` points to a missing file.
    """
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.is_file():
            raise ConfigFileNotFoundError(f"Configuration file not found: {explicit}")
        return explicit

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        if not candidate.is_file():
            raise ConfigFileNotFoundError(f"{CONFIG_ENV_VAR} points to a missing file: {candidate}")
        return candidate

    for candidate in (Path.cwd() / CONFIG_FILENAME, Path.home() / ".config" / "shipline" / CONFIG_FILENAME):
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | os.PathLike[str] | None = None) -> Box:
    """Load configuration and make it the current global configuration.

    Args:
        path: Optional explicit configuration file.

    Returns:
        Merged configuration as a Box (attribute access).

    Raises:
        ConfigFileNotFoundError: If an explicit file is missing.
        ConfigFormatError: If a file is not valid YAML or not a mapping.
        ConfigEnvVarError: If a required ``${VAR}`` is not set.
    """
    global _config  # pylint: disable=global-statement

    data = _load_default_config()
    source = find_config_file(path)
    if source is not None:
        log.debug("Loading configuration from %s", source)
        data = deep_merge(data, _read_yaml(source))
    else:
        log.debug("No configuration file found, using packaged defaults")

    data = _expand_env_vars_recursive(data, source=str(source) if source else None)
    _config = Box(data, default_box=False)
    return _config


def get_config(*, force_reload: bool = False) -> Box:
    """Return the current configuration, loading it on first use."""
    if _config is None or force_reload:
        return load_config()
    return _config


def clear_config() -> None:
    """Forget the cached configuration."""
    global _config  # pylint: disable=global-statement
    _config = None


__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "clear_config",
    "deep_merge",
    "find_config_file",
    "get_config",
    "load_config",
]
