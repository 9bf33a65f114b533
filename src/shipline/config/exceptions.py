"""Specialized exceptions raised by the shipline.config module.

Exception hierarchy::

    ShiplineError (root of every shipline exception)
        ConfigError (base for configuration errors)
            ConfigFileNotFoundError (also FileNotFoundError)
            ConfigFormatError (unreadable or malformed file)
            ConfigEnvVarError (required ``${VAR}`` not set)
"""

from __future__ import annotations


class ShiplineError(Exception):
    """Root exception for all shipline errors."""


class ConfigError(ShiplineError):
    """Base exception for configuration errors."""


class ConfigFileNotFoundError(ConfigError, FileNotFoundError):
    """An explicitly requested configuration file does not exist."""


class ConfigFormatError(ConfigError):
    """A configuration file could not be parsed or has the wrong shape."""


class ConfigEnvVarError(ConfigError):
    """A required environment variable referenced as ``${VAR}`` is not set.

    Attributes:
        var_name: Name of the missing variable.
    """

    def __init__(self, var_name: str, source: str | None = None) -> None:
        """Initialize ConfigEnvVarError.

        Args:
            var_name: Name of the missing environment variable.
            source: Optional file the reference came from.
        """
        where = f" (referenced in {source})" if source else ""
        super().__init__(f"Environment variable '{var_name}' is not set{where}")
        self.var_name = var_name
        self.source = source


__all__ = [
    "ConfigEnvVarError",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ShiplineError",
]
