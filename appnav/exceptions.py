"""appnav exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from appnav.lib.gui.locators import Locator
    from appnav.lib.gui.navigation_graph import Transition


class AppNavException(Exception):
    """Base exception all appnav exceptions inherit from."""


class ConfigurationError(AppNavException):
    """Raise this on invalid session or harness configuration."""


class GraphConfigError(AppNavException):
    """Raise this on an inconsistent navigation model."""


class ElementError(AppNavException):
    """Base class for element interaction failures.

    :param locator: locator of the element the action was aimed at
    :param message: human readable failure description
    """

    transient = False

    def __init__(self, locator: Locator, message: str) -> None:
        super().__init__(message)
        self.locator = locator


class ElementNotFound(ElementError):
    """Element never became visible within its time budget."""

    def __init__(self, locator: Locator, timeout: float) -> None:
        super().__init__(
            locator,
            f"Element {locator} not visible within {timeout}s",
        )
        self.timeout = timeout


class InteractionFailed(ElementError):
    """Platform rejected the action, e.g. element detached mid-click."""

    transient = True

    def __init__(self, locator: Locator, action: str, reason: str) -> None:
        super().__init__(locator, f"Could not {action} {locator}: {reason}")
        self.action = action
        self.reason = reason


class NavigationError(AppNavException):
    """Base class for failed navigation requests.

    :param target: name of the screen that was not reached
    :param last_confirmed: last screen whose predicate was verified
    """

    def __init__(
        self,
        message: str,
        target: str,
        last_confirmed: str | None = None,
    ) -> None:
        super().__init__(message)
        self.target = target
        self.last_confirmed = last_confirmed


class CurrentStateUnknown(NavigationError):
    """No candidate screen was detected."""

    def __init__(self, target: str, candidates: list[str], timeout: float) -> None:
        super().__init__(
            f"Cannot navigate to '{target}': current screen unknown, none of "
            f"{candidates} detected within {timeout}s",
            target,
        )
        self.candidates = candidates


class AmbiguousState(NavigationError):
    """More than one screen predicate matched the same UI snapshot."""

    def __init__(self, target: str, matches: list[str]) -> None:
        super().__init__(
            f"Cannot navigate to '{target}': ambiguous current screen, "
            f"predicates of {matches} all matched",
            target,
        )
        self.matches = matches


class TargetUnreachable(NavigationError):
    """The graph holds no path from the current screen to the target."""

    def __init__(self, target: str, current: str) -> None:
        super().__init__(
            f"Cannot navigate to '{target}': no path from '{current}'",
            target,
            last_confirmed=current,
        )


class TransitionFailed(NavigationError):
    """An edge action failed or its arrival could not be verified.

    :param edge_index: zero based position of the edge in the planned path
    :param transition: the edge that failed
    :param cause: element error raised by the action, None when the action
        succeeded but the next screen never showed up
    """

    def __init__(
        self,
        target: str,
        edge_index: int,
        transition: Transition,
        cause: ElementError | None = None,
    ) -> None:
        reason = str(cause) if cause else (
            f"screen '{transition.to_state}' not detected after action"
        )
        super().__init__(
            f"Cannot navigate to '{target}': transition {edge_index + 1} "
            f"'{transition.from_state}' -> '{transition.to_state}' "
            f"({transition.action.describe()}) failed, last confirmed screen "
            f"'{transition.from_state}': {reason}",
            target,
            last_confirmed=transition.from_state,
        )
        self.edge_index = edge_index
        self.transition = transition
        self.cause = cause

    @property
    def from_state(self) -> str:
        """Source screen of the failing edge."""
        return self.transition.from_state

    @property
    def to_state(self) -> str:
        """Destination screen of the failing edge."""
        return self.transition.to_state


class RetriesExhausted(AppNavException):
    """Every attempt of a retried test failed.

    :param name: test name
    :param failures: one exception per attempt, in attempt order
    """

    def __init__(self, name: str, failures: list[BaseException]) -> None:
        lines = [
            f"  attempt {index}: {type(exc).__name__}: {exc}"
            for index, exc in enumerate(failures, 1)
        ]
        super().__init__(
            f"{name} failed {len(failures)} attempt(s):\n" + "\n".join(lines)
        )
        self.name = name
        self.failures = failures
