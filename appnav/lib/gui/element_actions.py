"""Element action layer.

The only component that talks to the automation driver. All operations poll
with a fixed interval inside a bounded time budget:

- existence checks (``wait_visible``, ``wait_absent``, ``is_visible_now``)
  return booleans, since "not observed" is a legitimate outcome
- interactions (``click``, ``enter_text``, ``read_text``) raise
  :class:`~appnav.exceptions.ElementNotFound` when the element never shows up
  and :class:`~appnav.exceptions.InteractionFailed` when the platform rejects
  the action

There are no retries beyond the poll loop; coarser retries belong to the
test-level harness.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from appnav.exceptions import ElementNotFound, InteractionFailed

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver
    from selenium.webdriver.remote.webelement import WebElement

    from appnav.lib.gui.locators import Locator

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.25


class ElementActions:
    """Polling element waits and actions bound to one live session.

    Attributes:
        driver: Selenium compatible driver (Appium ``Remote`` in production)
        default_timeout: Wait budget used when neither the call nor the
            locator specify one
        poll_interval: Seconds between two probes
    """

    def __init__(
        self,
        driver: WebDriver,
        default_timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.driver = driver
        self.default_timeout = default_timeout
        self.poll_interval = poll_interval

    def _timeout_for(self, locator: Locator, timeout: float | None) -> float:
        if timeout is not None:
            return timeout
        if locator.timeout is not None:
            return locator.timeout
        return self.default_timeout

    def _wait(self, timeout: float) -> WebDriverWait:
        return WebDriverWait(
            self.driver,
            timeout,
            poll_frequency=self.poll_interval,
            ignored_exceptions=(NoSuchElementException, StaleElementReferenceException),
        )

    # ================================================================
    # EXISTENCE CHECKS
    # ================================================================

    def wait_visible(self, locator: Locator, timeout: float | None = None) -> bool:
        """Wait until the element is present and displayed.

        Args:
            locator: Element locator
            timeout: Budget in seconds (locator override / default if None)

        Returns:
            True if visible within the budget, False otherwise (a driver
            error during lookup counts as not visible)
        """
        try:
            return self._find_visible(locator, self._timeout_for(locator, timeout)) is not None
        except WebDriverException as e:
            _LOGGER.debug("Lookup of %s failed: %s", locator, e.msg or e)
            return False

    def wait_absent(self, locator: Locator, timeout: float | None = None) -> bool:
        """Wait until the element is gone or hidden.

        Returns:
            True if the element is absent (or never appeared), False if it
            stayed visible for the whole budget
        """
        budget = self._timeout_for(locator, timeout)
        try:
            self._wait(budget).until(
                EC.invisibility_of_element_located(locator.as_tuple())
            )
        except TimeoutException:
            _LOGGER.debug("Element %s still visible after %ss", locator, budget)
            return False
        except WebDriverException as e:
            _LOGGER.debug("Lookup of %s failed: %s", locator, e.msg or e)
            return False
        return True

    def is_visible_now(self, locator: Locator) -> bool:
        """Probe the element once without waiting.

        Stale references and driver errors count as "not visible".
        """
        try:
            elements = self.driver.find_elements(*locator.as_tuple())
            return any(element.is_displayed() for element in elements)
        except (StaleElementReferenceException, NoSuchElementException):
            return False
        except WebDriverException as e:
            _LOGGER.debug("Probe of %s failed: %s", locator, e)
            return False

    # ================================================================
    # INTERACTIONS
    # ================================================================

    def click(self, locator: Locator, timeout: float | None = None) -> None:
        """Wait until visible, then tap the element.

        Raises:
            ElementNotFound: Element never visible within the budget
            InteractionFailed: Lookup failed or the platform rejected the tap
        """
        element = self._require_visible(locator, timeout)
        try:
            element.click()
        except WebDriverException as e:
            _LOGGER.error("Tap on %s rejected: %s", locator, e.msg or e)
            raise InteractionFailed(locator, "tap", _reason(e)) from e
        _LOGGER.debug("Tapped %s", locator)

    def enter_text(self, locator: Locator, text: str, timeout: float | None = None) -> None:
        """Wait until visible, then type text into the element.

        Raises:
            ElementNotFound: Element never visible within the budget
            InteractionFailed: Platform rejected the input
        """
        element = self._require_visible(locator, timeout)
        try:
            element.send_keys(text)
        except WebDriverException as e:
            _LOGGER.error("Text input into %s rejected: %s", locator, e.msg or e)
            raise InteractionFailed(locator, "enter text into", _reason(e)) from e
        _LOGGER.debug("Entered %d characters into %s", len(text), locator)

    def read_text(self, locator: Locator, timeout: float | None = None) -> str:
        """Wait until visible, then return the element text.

        Raises:
            ElementNotFound: Element never visible within the budget
            InteractionFailed: Element detached before its text was read
        """
        element = self._require_visible(locator, timeout)
        try:
            return element.text
        except WebDriverException as e:
            _LOGGER.error("Reading text of %s failed: %s", locator, e.msg or e)
            raise InteractionFailed(locator, "read text of", _reason(e)) from e

    def pause(self, seconds: float) -> None:
        """Block for ``seconds``."""
        _LOGGER.debug("Pausing %.2fs", seconds)
        time.sleep(seconds)

    # ================================================================
    # HELPERS
    # ================================================================

    def _find_visible(self, locator: Locator, budget: float) -> WebElement | None:
        try:
            elements = self._wait(budget).until(
                EC.visibility_of_any_elements_located(locator.as_tuple())
            )
        except TimeoutException:
            _LOGGER.debug("Element %s not visible within %ss", locator, budget)
            return None
        _LOGGER.debug("Element %s visible", locator)
        return elements[0]

    def _require_visible(self, locator: Locator, timeout: float | None) -> WebElement:
        budget = self._timeout_for(locator, timeout)
        try:
            element = self._find_visible(locator, budget)
        except WebDriverException as e:
            _LOGGER.error("Lookup of %s failed: %s", locator, e.msg or e)
            raise InteractionFailed(locator, "find", _reason(e)) from e
        if element is None:
            _LOGGER.error("Element not found: %s within %s seconds", locator, budget)
            raise ElementNotFound(locator, budget)
        return element


def _reason(error: WebDriverException) -> str:
    return f"{type(error).__name__}: {error.msg}" if error.msg else type(error).__name__
