"""Configuration management for shipline.

Examples:
    >>> from shipline.config import load_config
    >>> config = load_config()  # doctest: +SKIP
    >>> config.pipeline.default_timeout  # doctest: +SKIP
    300.0
"""

from shipline.config.exceptions import (
    ConfigEnvVarError,
    ConfigError,
    ConfigFileNotFoundError,
    ConfigFormatError,
    ShiplineError,
)
from shipline.config.loader import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    clear_config,
    deep_merge,
    find_config_file,
    get_config,
    load_config,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "ConfigEnvVarError",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ShiplineError",
    "clear_config",
    "deep_merge",
    "find_config_file",
    "get_config",
    "load_config",
]
