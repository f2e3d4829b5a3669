"""Session configuration.

Values are resolved once at start, in precedence order: explicit options
(pytest command line), environment variables, documented defaults.

=====================  ================================  ===========================
Option                 Environment variable              Default
=====================  ================================  ===========================
device_name            TEST_CONFIG_DEVICE_NAME           emulator-5554
platform_name          TEST_CONFIG_PLATFORM_NAME         Android
platform_version       TEST_CONFIG_PLATFORM_VERSION      14.0
app_identifier         TEST_CONFIG_APP_IDENTIFIER        nl.ictu.edi.wallet.latest
remote                 TEST_CONFIG_REMOTE                false
server_url             TEST_CONFIG_SERVER_URL            http://127.0.0.1:4723
remote_server_url      TEST_CONFIG_REMOTE_SERVER_URL     (none)
=====================  ================================  ===========================
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from appnav.exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "TEST_CONFIG_"

DEFAULTS: dict[str, Any] = {
    "device_name": "emulator-5554",
    "platform_name": "Android",
    "platform_version": "14.0",
    "app_identifier": "nl.ictu.edi.wallet.latest",
    "remote": False,
    "server_url": "http://127.0.0.1:4723",
    "remote_server_url": None,
    "new_command_timeout": 300,
}

SUPPORTED_PLATFORMS = ("Android", "iOS")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class SessionConfig:
    """Opaque parameters of one automation session."""

    device_name: str = DEFAULTS["device_name"]
    platform_name: str = DEFAULTS["platform_name"]
    platform_version: str = DEFAULTS["platform_version"]
    app_identifier: str = DEFAULTS["app_identifier"]
    remote: bool = DEFAULTS["remote"]
    server_url: str = DEFAULTS["server_url"]
    remote_server_url: str | None = DEFAULTS["remote_server_url"]
    new_command_timeout: int = DEFAULTS["new_command_timeout"]

    def __post_init__(self):
        if self.platform_name not in SUPPORTED_PLATFORMS:
            raise ConfigurationError(
                f"Unsupported platform '{self.platform_name}'. "
                f"Supported: {list(SUPPORTED_PLATFORMS)}"
            )
        if self.remote and not self.remote_server_url:
            raise ConfigurationError(
                f"Remote execution requested but {ENV_PREFIX}REMOTE_SERVER_URL is not set"
            )

    @property
    def command_executor(self) -> str:
        """Appium server the session connects to."""
        return self.remote_server_url if self.remote else self.server_url

    @property
    def is_android(self) -> bool:
        return self.platform_name == "Android"

    @classmethod
    def resolve(
        cls,
        options: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> SessionConfig:
        """Resolve every field from options, environment and defaults.

        Args:
            options: Explicit values; None entries are treated as unset
            environ: Environment (``os.environ`` if None)

        Raises:
            ConfigurationError: On unparsable or unsupported values
        """
        options = options or {}
        environ = os.environ if environ is None else environ

        values: dict[str, Any] = {}
        for name, default in DEFAULTS.items():
            if options.get(name) is not None:
                value, source = options[name], "option"
            elif f"{ENV_PREFIX}{name.upper()}" in environ:
                value, source = environ[f"{ENV_PREFIX}{name.upper()}"], "environment"
            else:
                value, source = default, "default"
            values[name] = _coerce(name, value, default)
            _LOGGER.debug("Session config %s=%r (%s)", name, values[name], source)

        config = cls(**values)
        _LOGGER.info(
            "Session config: %s %s on %s, app %s, %s",
            config.platform_name,
            config.platform_version,
            config.device_name,
            config.app_identifier,
            "remote" if config.remote else "local",
        )
        return config


def parse_bool(value: Any) -> bool:
    """Parse a boolean flag given as bool or string.

    Raises:
        ConfigurationError: If the string is not a recognised flag value
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid boolean value: {value!r}")


def _coerce(name: str, value: Any, default: Any) -> Any:
    if value is None:
        return None
    if isinstance(default, bool):
        return parse_bool(value)
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid integer for {name}: {value!r}") from e
    return str(value)
