"""Screen states and the registry that catalogues them.

A :class:`ScreenState` is a plain record: a name, a detection predicate and a
set of named actions. Behaviour is dispatched through the navigation graph,
not through one subclass per screen.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from appnav.lib.gui.element_actions import ElementActions
    from appnav.lib.gui.locators import Locator
    from appnav.lib.gui.screen_actions import ScreenAction

_LOGGER = logging.getLogger(__name__)

DEFAULT_DETECT_TIMEOUT = 2.0


class DetectionPredicate(Protocol):
    """Decides whether a screen is currently displayed."""

    def is_satisfied(self, actions: ElementActions, timeout: float) -> bool:
        """Wait up to timeout for the screen to show."""

    def is_satisfied_now(self, actions: ElementActions) -> bool:
        """Probe once without waiting."""

    def anchors(self) -> tuple[Locator, ...]:
        """Locators the predicate looks at."""


@dataclass(frozen=True)
class AnchorVisible:
    """Screen is showing when its anchor element is visible."""

    anchor: Locator

    def is_satisfied(self, actions: ElementActions, timeout: float) -> bool:
        return actions.wait_visible(self.anchor, timeout)

    def is_satisfied_now(self, actions: ElementActions) -> bool:
        return actions.is_visible_now(self.anchor)

    def anchors(self) -> tuple[Locator, ...]:
        return (self.anchor,)


@dataclass(frozen=True)
class AllVisible:
    """Screen is showing when every anchor is visible.

    The budget is shared: later anchors get what the earlier ones left.
    """

    locators: tuple[Locator, ...]

    def is_satisfied(self, actions: ElementActions, timeout: float) -> bool:
        deadline = _Deadline(timeout)
        return all(
            actions.wait_visible(locator, deadline.remaining())
            for locator in self.locators
        )

    def is_satisfied_now(self, actions: ElementActions) -> bool:
        return all(actions.is_visible_now(locator) for locator in self.locators)

    def anchors(self) -> tuple[Locator, ...]:
        return self.locators


@dataclass(frozen=True, eq=False)
class ScreenState:
    """Identifiable application screen.

    Attributes:
        name: Unique screen name
        predicate: Detection predicate
        description: Free text for reports
        actions: Capability-tagged actions available on the screen
            (e.g. ``"next" -> Tap(...)``)
    """

    name: str
    predicate: DetectionPredicate
    description: str = ""
    actions: Mapping[str, ScreenAction] = field(default_factory=dict)

    def __post_init__(self):
        # freeze the action table together with the record
        object.__setattr__(self, "actions", MappingProxyType(dict(self.actions)))

    def is_showing(
        self,
        actions: ElementActions,
        timeout: float = DEFAULT_DETECT_TIMEOUT,
    ) -> bool:
        """Return True if the screen shows up within timeout."""
        return self.predicate.is_satisfied(actions, timeout)

    def is_showing_now(self, actions: ElementActions) -> bool:
        """Return True if the screen is showing right now."""
        return self.predicate.is_satisfied_now(actions)

    def is_absent(
        self,
        actions: ElementActions,
        timeout: float = DEFAULT_DETECT_TIMEOUT,
    ) -> bool:
        """Return True if every anchor is gone (or never appeared) within timeout."""
        deadline = _Deadline(timeout)
        return all(
            actions.wait_absent(locator, deadline.remaining())
            for locator in self.predicate.anchors()
        )

    def perform(self, actions: ElementActions, action_name: str) -> None:
        """Run one of the screen's named actions.

        Raises:
            KeyError: If the screen has no such action
            ElementError: If the action fails
        """
        if action_name not in self.actions:
            raise KeyError(
                f"Screen '{self.name}' has no action '{action_name}'. "
                f"Available: {sorted(self.actions)}"
            )
        action = self.actions[action_name]
        _LOGGER.info("%s: %s (%s)", self.name, action_name, action.describe())
        action.perform(actions)


class ScreenRegistry:
    """Fixed catalogue of screen states, read-only once built.

    Example:
        >>> registry = ScreenRegistry([boot, introduction, pin, dashboard])
        >>> registry["pin"].is_showing(actions)
    """

    def __init__(self, states: Iterable[ScreenState]):
        """Build the catalogue.

        Raises:
            ValueError: If two states share a name
        """
        catalogue: dict[str, ScreenState] = {}
        for state in states:
            if state.name in catalogue:
                raise ValueError(f"Duplicate screen state '{state.name}'")
            catalogue[state.name] = state
        self._states = MappingProxyType(catalogue)
        _LOGGER.debug("Screen registry built with %d states", len(catalogue))

    def __getitem__(self, name: str) -> ScreenState:
        try:
            return self._states[name]
        except KeyError:
            raise KeyError(
                f"Screen '{name}' not registered. Available: {list(self._states)}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __iter__(self) -> Iterator[ScreenState]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)

    @property
    def names(self) -> list[str]:
        """Registered screen names in registration order."""
        return list(self._states)

    def detect(self, actions: ElementActions, candidates: Iterable[str]) -> list[str]:
        """Probe every candidate once and return the names currently showing."""
        return [
            name for name in candidates
            if self[name].is_showing_now(actions)
        ]


class _Deadline:
    """Remaining share of a time budget."""

    def __init__(self, budget: float):
        self._end = time.monotonic() + budget

    def remaining(self) -> float:
        return max(0.0, self._end - time.monotonic())
