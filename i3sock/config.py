"""Client configuration: defaults, TOML file and environment overrides."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import aiofiles.os

from .constants import (
    CONFIG_FILE_NAME,
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_PAYLOAD_SIZE,
    DEFAULT_MAX_STRAY_REPLIES,
)
from .logging_setup import get_logger
from .models import ConfigError

if TYPE_CHECKING:
    import logging

__all__ = ["BOOL_FALSE_STRINGS", "DEFAULTS", "ENV_OVERRIDES", "Configuration", "coerce_to_bool", "default_config_file", "load_config"]

ConfigValueType = float | bool | str | list | dict

BOOL_FALSE_STRINGS = frozenset({"false", "no", "off", "0", "disabled"})

DEFAULTS: dict[str, ConfigValueType] = {
    "socket_path": "",
    "debug": False,
    "call_timeout": DEFAULT_CALL_TIMEOUT,
    "connect_timeout": DEFAULT_CONNECT_TIMEOUT,
    "max_stray_replies": DEFAULT_MAX_STRAY_REPLIES,
    "max_payload_size": DEFAULT_MAX_PAYLOAD_SIZE,
}

# environment variable: config key
ENV_OVERRIDES = {
    "I3SOCK_DEBUG": "debug",
    "I3SOCK_CALL_TIMEOUT": "call_timeout",
    "I3SOCK_CONNECT_TIMEOUT": "connect_timeout",
    "I3SOCK_MAX_STRAY_REPLIES": "max_stray_replies",
}


def coerce_to_bool(value: ConfigValueType | None, default: bool = False) -> bool:
    """Coerce a value to boolean, handling loose typing.

    Behavior:
        - None → default
        - Empty string → False
        - Explicit falsy strings ("false", "no", "off", "0", "disabled") → False
        - Any other non-empty string → True
        - Non-string values → bool(value)
    """
    if value is None:
        return default
    if isinstance(value, str):
        if not value.strip():
            return False
        return value.lower().strip() not in BOOL_FALSE_STRINGS
    return bool(value)


class Configuration(dict):
    """Configuration wrapper providing typed access."""

    def __init__(self, *args: Any, logger: logging.Logger | None = None, **kwargs: Any) -> None:  # noqa: ANN401
        """Initialize the configuration object.

        Args:
            *args: Arguments for dict
            logger: Logger instance to use for warnings
            **kwargs: Keyword arguments for dict
        """
        super().__init__(*args, **kwargs)
        self.log = logger or get_logger("i3sock.config")

    @classmethod
    def defaults(cls, logger: logging.Logger | None = None) -> Configuration:
        """Return a configuration holding the built-in defaults."""
        return cls(DEFAULTS, logger=logger)

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Get a boolean value."""
        return coerce_to_bool(self.get(name), default)

    def get_int(self, name: str, default: int = 0) -> int:
        """Get an integer value.

        Args:
            name: The key name
            default: Default value if key is missing or invalid

        Returns:
            The integer value
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)
        except (ValueError, TypeError):
            self.log.warning("Invalid integer value for %s: %s", name, value)
            return default

    def get_float(self, name: str, default: float = 0.0) -> float:
        """Get a float value.

        Args:
            name: The key name
            default: Default value if key is missing or invalid

        Returns:
            The float value
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return float(value)
        except (ValueError, TypeError):
            self.log.warning("Invalid float value for %s: %s", name, value)
            return default

    def get_str(self, name: str, default: str = "") -> str:
        """Get a string value."""
        value = self.get(name)
        if value is None:
            return default
        return str(value)


def default_config_file(env: Mapping[str, str] | None = None) -> Path:
    """Return `$XDG_CONFIG_HOME/i3sock/config.toml` (~/.config when unset)."""
    env = os.environ if env is None else env
    config_home = Path(env.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return config_home / "i3sock" / CONFIG_FILE_NAME


async def _read_toml(path: Path) -> dict[str, Any]:
    async with aiofiles.open(path, "rb") as f:
        content = await f.read()
    try:
        return tomllib.loads(content.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        msg = f"{path}: {e}"
        raise ConfigError(msg) from e


async def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> Configuration:
    """Build the client configuration.

    Defaults are updated with the `[client]` table of the TOML file, then with
    the I3SOCK_* environment variables.

    Args:
        path: configuration file (default location if not set), may not exist
        env: environment mapping (os.environ if not set)
        logger: logger used for warnings

    Raises:
        ConfigError: the file exists but can't be parsed
    """
    env = os.environ if env is None else env
    config = Configuration.defaults(logger)
    fname = Path(os.path.expandvars(str(path))).expanduser() if path else default_config_file(env)

    if await aiofiles.os.path.exists(fname):
        section = (await _read_toml(fname)).get("client", {})
        if not isinstance(section, dict):
            msg = f"{fname}: [client] must be a table"
            raise ConfigError(msg)
        unknown = set(section) - set(DEFAULTS)
        if unknown:
            config.log.warning("Unknown option(s) in %s: %s", fname, ", ".join(sorted(unknown)))
        config.update(section)
    else:
        config.log.debug("No configuration file at %s", fname)

    for var_name, key in ENV_OVERRIDES.items():
        if env.get(var_name):
            config[key] = env[var_name]
    return config
