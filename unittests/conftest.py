"""Shared fixtures: an in-memory app that renders screens for the action layer."""

import time

import pytest
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    WebDriverException,
)

from appnav.lib.gui.element_actions import ElementActions
from appnav.lib.gui.locators import LocatorFactory
from appnav.lib.gui.navigation_graph import NavigationGraph
from appnav.lib.gui.screen_actions import Tap, tap_digits
from appnav.lib.gui.screen_state import AnchorVisible, ScreenRegistry, ScreenState

PIN = "000000"


class FakeElement:
    """Element handle; goes stale once its screen is gone."""

    def __init__(self, driver, value):
        self._driver = driver
        self._value = value

    def is_displayed(self):
        if self._value not in self._driver.visible_values():
            raise StaleElementReferenceException(f"{self._value} detached")
        return True

    def click(self):
        self._driver.tap(self._value)

    @property
    def text(self):
        return self._driver.texts.get(self._value, self._value)

    def send_keys(self, text):
        self._driver.typed.append((self._value, text))


class FakeAppDriver:
    """Selenium-compatible driver over a scripted screen flow.

    Args:
        screens: screen name -> element values visible on it
        transitions: (screen, tapped value) -> next screen
        current: screen shown at start (None = nothing rendered)
        taps_required: (screen, tapped value) -> taps needed before switching
    """

    def __init__(self, screens, transitions, current=None, taps_required=None):
        self.screens = {name: set(values) for name, values in screens.items()}
        self.transitions = dict(transitions)
        self.taps_required = dict(taps_required or {})
        self.render_delay = {}
        self.never_render = set()
        self.always_visible = set()
        self.rejected = set()
        self.stale_clicks = 0
        self.texts = {}
        self.typed = []
        self.taps = []
        self.current = None
        self._shown_at = 0.0
        self._tap_counts = {}
        if current is not None:
            self.show(current)

    def show(self, screen):
        self.current = screen
        self._tap_counts.clear()
        self._shown_at = time.monotonic() + self.render_delay.get(screen, 0.0)

    def visible_values(self):
        visible = set(self.always_visible)
        if (
            self.current is not None
            and self.current not in self.never_render
            and time.monotonic() >= self._shown_at
        ):
            visible |= self.screens.get(self.current, set())
        return visible

    def find_element(self, by, value):
        if value not in self.visible_values():
            raise NoSuchElementException(f"No element {by}={value}")
        return FakeElement(self, value)

    def find_elements(self, by, value):
        if value not in self.visible_values():
            return []
        return [FakeElement(self, value)]

    def tap(self, value):
        if self.stale_clicks:
            self.stale_clicks -= 1
            raise StaleElementReferenceException("element detached during tap")
        if value in self.rejected:
            raise WebDriverException("tap rejected")
        self.taps.append(value)
        key = (self.current, value)
        if key in self.transitions:
            self._tap_counts[key] = self._tap_counts.get(key, 0) + 1
            if self._tap_counts[key] >= self.taps_required.get(key, 1):
                self.show(self.transitions[key])


def onboarding_model():
    """Boot -> Introduction -> Pin -> Dashboard, plus an isolated Settings screen."""
    find = LocatorFactory()
    registry = ScreenRegistry([
        ScreenState(
            "boot",
            AnchorVisible(find.by_key("bootScreen")),
            actions={"next": Tap(find.by_key("bootNextButton"))},
        ),
        ScreenState(
            "introduction",
            AnchorVisible(find.by_key("introductionScreen")),
            actions={"next": Tap(find.by_key("introductionNextButton"))},
        ),
        ScreenState(
            "pin",
            AnchorVisible(find.by_key("pinScreen")),
            actions={"unlock": tap_digits(find, PIN)},
        ),
        ScreenState("dashboard", AnchorVisible(find.by_key("dashboardScreen"))),
        ScreenState("settings", AnchorVisible(find.by_key("settingsScreen"))),
    ])
    graph = NavigationGraph(start="boot")
    for state in registry:
        graph.add_state(state.name)
    graph.add_transition("boot", "introduction", registry["boot"].actions["next"])
    graph.add_transition("introduction", "pin", registry["introduction"].actions["next"])
    graph.add_transition("pin", "dashboard", registry["pin"].actions["unlock"])
    return registry, graph.freeze()


def onboarding_driver(current="boot"):
    """Fake app matching onboarding_model()."""
    digit = "keyboardDigitKey#0"
    return FakeAppDriver(
        screens={
            "boot": {"bootScreen", "bootNextButton"},
            "introduction": {"introductionScreen", "introductionNextButton"},
            "pin": {"pinScreen", digit},
            "dashboard": {"dashboardScreen"},
            "settings": {"settingsScreen"},
        },
        transitions={
            ("boot", "bootNextButton"): "introduction",
            ("introduction", "introductionNextButton"): "pin",
            ("pin", digit): "dashboard",
        },
        taps_required={("pin", digit): len(PIN)},
        current=current,
    )


@pytest.fixture
def fake_driver():
    return onboarding_driver()


@pytest.fixture
def actions(fake_driver):
    return ElementActions(fake_driver, default_timeout=0.5, poll_interval=0.01)


@pytest.fixture
def model():
    return onboarding_model()
