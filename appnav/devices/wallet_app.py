"""Wallet app GUI component.

Bundles the onboarding navigation model of the wallet app with the element
action layer of one test. Tests navigate by screen name and then use the
screen's named actions or plain element checks::

    wallet = WalletApp(appnav_actions)
    wallet.to_screen(OnboardingScreen.MENU)
    wallet.screen(OnboardingScreen.MENU).perform(wallet.actions, "lock")
    assert wallet.is_showing(OnboardingScreen.PIN)
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from appnav.lib.gui.graph_loader import load_navigation_model
from appnav.lib.gui.navigator import DEFAULT_VERIFY_TIMEOUT, Navigator
from appnav.lib.gui.screen_state import DEFAULT_DETECT_TIMEOUT
from appnav.lib.l10n import L10n

if TYPE_CHECKING:
    from appnav.lib.gui.element_actions import ElementActions
    from appnav.lib.gui.navigation_graph import NavigationGraph
    from appnav.lib.gui.navigator import NavigationResult
    from appnav.lib.gui.screen_state import ScreenRegistry, ScreenState

_LOGGER = logging.getLogger(__name__)

MODEL_FILE = Path(__file__).with_name("wallet_onboarding.yaml")
STRINGS_DIR = Path(__file__).parent


class OnboardingScreen:
    """Screen names of the onboarding model."""

    INTRODUCTION = "introduction"
    INTRODUCTION_EXPECTATIONS = "introduction_expectations"
    INTRODUCTION_PRIVACY = "introduction_privacy"
    INTRODUCTION_CONDITIONS = "introduction_conditions"
    SETUP_SECURITY_CHOOSE_PIN = "setup_security_choose_pin"
    SETUP_SECURITY_CONFIRM_PIN = "setup_security_confirm_pin"
    SETUP_SECURITY_COMPLETED = "setup_security_completed"
    PERSONALIZE_INFORM = "personalize_inform"
    PERSONALIZE_CONFIRM = "personalize_confirm"
    PERSONALIZE_SUCCESS = "personalize_success"
    DASHBOARD = "dashboard"
    MENU = "menu"
    PIN = "pin"
    PLACEHOLDER = "placeholder"
    SETTINGS = "settings"


@functools.lru_cache(maxsize=None)
def wallet_navigation_model(locale: str = "en") -> tuple[ScreenRegistry, NavigationGraph]:
    """Load the shared, read-only onboarding model for one locale.

    Raises:
        FileNotFoundError: If no string table exists for the locale
    """
    l10n = L10n.from_arb_file(STRINGS_DIR / f"app_{locale}.arb")
    return load_navigation_model(MODEL_FILE, l10n)


class WalletApp:
    """Wallet app driven through its navigation model."""

    def __init__(
        self,
        actions: ElementActions,
        locale: str = "en",
        detect_timeout: float = DEFAULT_DETECT_TIMEOUT,
        verify_timeout: float = DEFAULT_VERIFY_TIMEOUT,
    ):
        """Initialize the component.

        Args:
            actions: Element action layer of the test's session
            locale: Locale of the app strings (selects ``app_<locale>.arb``)
            detect_timeout: Budget for current screen detection
            verify_timeout: Budget for each arrival verification
        """
        self.actions = actions
        self.registry, self.graph = wallet_navigation_model(locale)
        self._detect_timeout = detect_timeout
        self._verify_timeout = verify_timeout
        self._history: list[NavigationResult] = []

    def navigator(self) -> Navigator:
        """Return a fresh navigator bound to this test's session."""
        return Navigator(
            self.graph,
            self.registry,
            self.actions,
            detect_timeout=self._detect_timeout,
            verify_timeout=self._verify_timeout,
        )

    def to_screen(
        self,
        name: str,
        *,
        current: str | None = None,
        final_state_only: bool = False,
    ) -> NavigationResult:
        """Navigate to a screen and fail loudly if it is not reached.

        Raises:
            KeyError: If name is not a screen of the model
            NavigationError: If the screen was not reached
        """
        result = self.navigator().to_screen(
            name, current=current, final_state_only=final_state_only
        )
        self._history.append(result)
        return result.raise_for_status()

    def screen(self, name: str) -> ScreenState:
        """Return the screen state called name."""
        return self.registry[name]

    def perform(self, screen: str, action: str) -> None:
        """Run a named action of a screen."""
        self.screen(screen).perform(self.actions, action)

    def is_showing(self, name: str, timeout: float | None = None) -> bool:
        """Return True if the screen shows up within timeout."""
        budget = self._detect_timeout if timeout is None else timeout
        return self.screen(name).is_showing(self.actions, budget)

    def is_absent(self, name: str, timeout: float | None = None) -> bool:
        """Return True if the screen is gone within timeout."""
        budget = self._detect_timeout if timeout is None else timeout
        return self.screen(name).is_absent(self.actions, budget)

    def get_navigation_history(self) -> list[NavigationResult]:
        """Results of every to_screen call made through this component."""
        return list(self._history)
