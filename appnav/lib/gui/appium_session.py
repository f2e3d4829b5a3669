"""Appium session wrapper.

Owns the device connection of one test. Use it as a context manager (or the
``appnav_session`` pytest fixture) so the session is released on every exit
path, failures included.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from appium import webdriver
from appium.options.android import UiAutomator2Options
from appium.options.ios import XCUITestOptions

from appnav.lib.gui.element_actions import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT, ElementActions

if TYPE_CHECKING:
    from appium.webdriver.webdriver import WebDriver

    from appnav.lib.config import SessionConfig

_LOGGER = logging.getLogger(__name__)


class AppiumSession:
    """One live automation session against the app under test."""

    def __init__(
        self,
        config: SessionConfig,
        default_timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """Initialize session (does not connect).

        Args:
            config: Resolved session configuration
            default_timeout: Default element wait budget in seconds
            poll_interval: Seconds between element probes
        """
        self._config = config
        self._default_timeout = default_timeout
        self._poll_interval = poll_interval
        self._driver: WebDriver | None = None
        self._actions: ElementActions | None = None

    def start(self) -> None:
        """Connect to the Appium server and launch the app."""
        self._disable_log_messages_from_libraries()
        _LOGGER.info(
            "Starting %s session on %s via %s",
            self._config.platform_name,
            self._config.device_name,
            self._config.command_executor,
        )
        self._driver = webdriver.Remote(
            command_executor=self._config.command_executor,
            options=self._build_options(),
        )
        # all waiting happens in the action layer's poll loops
        self._driver.implicitly_wait(0)
        self._actions = ElementActions(
            self._driver,
            default_timeout=self._default_timeout,
            poll_interval=self._poll_interval,
        )
        _LOGGER.info("Session started: %s", self._driver.session_id)

    def close(self) -> None:
        """Quit the session. Safe to call more than once."""
        if self._driver is None:
            return
        try:
            self._driver.quit()
            _LOGGER.info("Session closed")
        except Exception as e:  # noqa: BLE001
            _LOGGER.warning("Error closing session: %s", e)
        finally:
            self._driver = None
            self._actions = None

    def __enter__(self) -> AppiumSession:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def driver(self) -> WebDriver:
        if self._driver is None:
            raise RuntimeError("Session not started. Call start() first.")
        return self._driver

    @property
    def actions(self) -> ElementActions:
        """Element action layer bound to this session."""
        if self._actions is None:
            raise RuntimeError("Session not started. Call start() first.")
        return self._actions

    def _build_options(self) -> UiAutomator2Options | XCUITestOptions:
        config = self._config
        if config.is_android:
            options = UiAutomator2Options()
            options.app_package = config.app_identifier
        else:
            options = XCUITestOptions()
            options.bundle_id = config.app_identifier
        options.platform_version = config.platform_version
        options.device_name = config.device_name
        options.new_command_timeout = config.new_command_timeout
        return options

    def _disable_log_messages_from_libraries(self) -> None:
        """Disable debug logs from the HTTP stack."""
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("selenium").setLevel(logging.WARNING)
