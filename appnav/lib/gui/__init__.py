"""GUI components for app navigation."""

from appnav.lib.gui.element_actions import ElementActions
from appnav.lib.gui.graph_loader import load_navigation_model
from appnav.lib.gui.locators import Locator, LocatorFactory
from appnav.lib.gui.navigation_graph import NavigationGraph, Transition
from appnav.lib.gui.navigator import NavigationResult, Navigator
from appnav.lib.gui.screen_state import ScreenRegistry, ScreenState

__all__ = [
    "ElementActions",
    "Locator",
    "LocatorFactory",
    "NavigationGraph",
    "NavigationResult",
    "Navigator",
    "ScreenRegistry",
    "ScreenState",
    "Transition",
    "load_navigation_model",
]
