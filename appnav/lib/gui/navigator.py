"""Navigator: drive the app from its current screen to a target screen.

A navigation request runs through these phases::

    UNINITIALIZED -> DETECTING_CURRENT -> PATH_PLANNED
        -> EXECUTING_STEP(i) -> VERIFYING(i) -> ... -> REACHED | FAILED

1. Detect the current screen among the screens reachable from the graph's
   start screen. Exactly one predicate must match; none is
   ``CurrentStateUnknown``, several is ``AmbiguousState``.
2. Plan the shortest path (fewest UI interactions) with BFS.
3. Execute each transition, then verify the next screen's predicate. A
   failure at either point is ``TransitionFailed`` for that edge; it is not
   retried here, the test-level harness owns coarse retries.

The full planned path is always replayed, even if the target shows up early,
so intermediate screens stay deterministic. Callers that only care about the
final screen pass ``final_state_only=True``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from appnav.exceptions import (
    AmbiguousState,
    CurrentStateUnknown,
    ElementError,
    NavigationError,
    TargetUnreachable,
    TransitionFailed,
)
from appnav.lib.gui.screen_state import DEFAULT_DETECT_TIMEOUT

if TYPE_CHECKING:
    from appnav.lib.gui.element_actions import ElementActions
    from appnav.lib.gui.navigation_graph import NavigationGraph, Transition
    from appnav.lib.gui.screen_state import ScreenRegistry

_LOGGER = logging.getLogger(__name__)

DEFAULT_VERIFY_TIMEOUT = 10.0


class NavigatorPhase(Enum):
    """Phase of an in-flight navigation request."""

    UNINITIALIZED = "uninitialized"
    DETECTING_CURRENT = "detecting_current"
    PATH_PLANNED = "path_planned"
    EXECUTING_STEP = "executing_step"
    VERIFYING = "verifying"
    REACHED = "reached"
    FAILED = "failed"


@dataclass
class NavigationResult:
    """Outcome of :meth:`Navigator.to_screen`.

    Attributes:
        target: Requested screen
        reached: True if the target screen was confirmed
        start: Detected (or given) screen the request started from
        last_confirmed: Last screen whose predicate was verified
        path: Planned transitions
        steps: One history record per executed transition
        error: Structured failure, None on success
    """

    target: str
    reached: bool = False
    start: str | None = None
    last_confirmed: str | None = None
    path: list[Transition] = field(default_factory=list)
    steps: list[dict] = field(default_factory=list)
    error: NavigationError | None = None

    @property
    def steps_executed(self) -> int:
        """Number of transitions whose action was performed."""
        return len(self.steps)

    @property
    def failed_edge(self) -> Transition | None:
        """Transition that failed, if the request ended with TransitionFailed."""
        if isinstance(self.error, TransitionFailed):
            return self.error.transition
        return None

    def raise_for_status(self) -> NavigationResult:
        """Raise the navigation error if the target was not reached.

        Returns:
            self, to allow ``navigator.to_screen(x).raise_for_status()``
        """
        if self.error is not None:
            raise self.error
        return self


class Navigator:
    """Navigates between screens using the navigation graph.

    Navigators are cheap: create one per request (or per test). The graph and
    registry are shared read-only; the action layer is owned by the test.

    Example:
        >>> navigator = Navigator(graph, registry, ElementActions(driver))
        >>> result = navigator.to_screen("dashboard")
        >>> result.raise_for_status()
        >>> [step["to"] for step in result.steps]
        ['introduction', 'pin', 'dashboard']
    """

    def __init__(
        self,
        graph: NavigationGraph,
        registry: ScreenRegistry,
        actions: ElementActions,
        detect_timeout: float = DEFAULT_DETECT_TIMEOUT,
        verify_timeout: float = DEFAULT_VERIFY_TIMEOUT,
    ):
        """Initialize navigator.

        Args:
            graph: Navigation graph (read-only)
            registry: Screen catalogue (read-only)
            actions: Element action layer bound to the test's session
            detect_timeout: Budget in seconds for current screen detection
            verify_timeout: Budget in seconds for each arrival verification
        """
        self._graph = graph
        self._registry = registry
        self._actions = actions
        self._detect_timeout = detect_timeout
        self._verify_timeout = verify_timeout

        self.phase = NavigatorPhase.UNINITIALIZED
        self.step_index: int | None = None

    def to_screen(
        self,
        target: str,
        *,
        current: str | None = None,
        final_state_only: bool = False,
    ) -> NavigationResult:
        """Navigate to ``target``.

        Args:
            target: Target screen name
            current: Screen the caller knows the app is on; it is verified
                instead of probing every candidate
            final_state_only: Stop as soon as the target shows up, even if the
                planned path is not fully replayed

        Returns:
            NavigationResult; check ``reached`` or call ``raise_for_status()``

        Raises:
            KeyError: If target (or current) is not a registered screen
        """
        target_state = self._registry[target]
        if current is not None and current not in self._registry:
            raise KeyError(
                f"Screen '{current}' not registered. Available: {self._registry.names}"
            )

        result = NavigationResult(target=target)
        self.phase = NavigatorPhase.UNINITIALIZED
        self.step_index = None

        try:
            start = self._establish_current(target, current)
            result.start = result.last_confirmed = start

            if start == target:
                _LOGGER.info("Already at target screen '%s'", target)
                return self._reached(result)

            result.path = self.plan(target, start)
            self.phase = NavigatorPhase.PATH_PLANNED
            _LOGGER.info(
                "Navigating: %s -> %s (%d steps)", start, target, len(result.path)
            )

            for index, transition in enumerate(result.path):
                self.step_index = index
                self._execute_step(target, index, transition, result)

                if (
                    final_state_only
                    and transition.to_state != target
                    and target_state.is_showing_now(self._actions)
                ):
                    _LOGGER.info(
                        "Target '%s' showing after step %d/%d, stopping early",
                        target, index + 1, len(result.path),
                    )
                    result.last_confirmed = target
                    return self._reached(result)

                self.phase = NavigatorPhase.VERIFYING
                if not self._registry[transition.to_state].is_showing(
                    self._actions, self._verify_timeout
                ):
                    raise TransitionFailed(target, index, transition)
                result.last_confirmed = transition.to_state
                result.steps[-1]["verified"] = True

        except NavigationError as e:
            self.phase = NavigatorPhase.FAILED
            result.error = e
            e.last_confirmed = result.last_confirmed
            _LOGGER.error("%s", e)
            return result

        _LOGGER.info("Navigation successful: arrived at '%s'", target)
        return self._reached(result)

    def plan(self, target: str, current: str) -> list[Transition]:
        """Compute the shortest path without executing it.

        Raises:
            TargetUnreachable: If the graph holds no path
        """
        path = self._graph.find_shortest_path(current, target)
        if path is None:
            raise TargetUnreachable(target, current)
        return path

    def _establish_current(self, target: str, current: str | None) -> str:
        self.phase = NavigatorPhase.DETECTING_CURRENT
        if current is not None:
            if not self._registry[current].is_showing(self._actions, self._detect_timeout):
                raise CurrentStateUnknown(target, [current], self._detect_timeout)
            _LOGGER.debug("Current screen '%s' confirmed", current)
            return current
        return self._detect_current(target)

    def _detect_current(self, target: str) -> str:
        """Probe all start-reachable screens until exactly one matches.

        Each round takes one snapshot of every candidate, so two predicates
        matching in the same round means the UI is ambiguous.
        """
        candidates = [
            name for name in self._graph.reachable_from() if name in self._registry
        ]
        deadline = time.monotonic() + self._detect_timeout
        _LOGGER.debug("Detecting current screen among %s", candidates)

        while True:
            matches = self._registry.detect(self._actions, candidates)
            if len(matches) == 1:
                _LOGGER.info("Detected current screen: %s", matches[0])
                return matches[0]
            if len(matches) > 1:
                raise AmbiguousState(target, matches)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CurrentStateUnknown(target, candidates, self._detect_timeout)
            time.sleep(min(self._actions.poll_interval, remaining))

    def _execute_step(
        self,
        target: str,
        index: int,
        transition: Transition,
        result: NavigationResult,
    ) -> None:
        self.phase = NavigatorPhase.EXECUTING_STEP
        _LOGGER.info(
            "Step %d/%d: %s", index + 1, len(result.path), transition
        )
        step = {
            "from": transition.from_state,
            "to": transition.to_state,
            "via": transition.action.describe(),
            "verified": False,
            "timestamp": time.time(),
        }
        result.steps.append(step)
        try:
            transition.action.perform(self._actions)
        except ElementError as e:
            raise TransitionFailed(target, index, transition, cause=e) from e

    def _reached(self, result: NavigationResult) -> NavigationResult:
        self.phase = NavigatorPhase.REACHED
        result.reached = True
        return result
