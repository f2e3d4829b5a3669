"""Capability-typed UI actions attached to screens and transitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from appnav.lib.gui.element_actions import ElementActions
    from appnav.lib.gui.locators import Locator, LocatorFactory


class ScreenAction(Protocol):
    """Operation executed against the element action layer."""

    def perform(self, actions: ElementActions) -> None:
        """Execute the action.

        Raises:
            ElementError: If an element is missing or rejects the action
        """

    def describe(self) -> str:
        """Short human readable form used in logs and failure messages."""


@dataclass(frozen=True)
class Tap:
    """Tap an element."""

    locator: Locator

    def perform(self, actions: ElementActions) -> None:
        actions.click(self.locator)

    def describe(self) -> str:
        return f"tap {self.locator}"


@dataclass(frozen=True)
class EnterText:
    """Type text into an input element."""

    locator: Locator
    text: str

    def perform(self, actions: ElementActions) -> None:
        actions.enter_text(self.locator, self.text)

    def describe(self) -> str:
        return f"enter {len(self.text)} characters into {self.locator}"


@dataclass(frozen=True)
class Pause:
    """Wait a fixed time, e.g. for an animation nothing can be polled for."""

    seconds: float

    def perform(self, actions: ElementActions) -> None:
        actions.pause(self.seconds)

    def describe(self) -> str:
        return f"wait {int(self.seconds * 1000)}ms"


@dataclass(frozen=True)
class Sequence:
    """Run several actions in order, stopping at the first failure."""

    steps: tuple[ScreenAction, ...]

    def perform(self, actions: ElementActions) -> None:
        for step in self.steps:
            step.perform(actions)

    def describe(self) -> str:
        return ", then ".join(step.describe() for step in self.steps)


def tap_digits(find: LocatorFactory, digits: str) -> Sequence:
    """Build the key presses that enter ``digits`` on the on-screen PIN pad."""
    return Sequence(tuple(Tap(find.by_key(f"keyboardDigitKey#{digit}")) for digit in digits))


def action_from_config(
    config: dict[str, Any],
    find: LocatorFactory,
    named: dict[str, ScreenAction] | None = None,
) -> ScreenAction:
    """Build an action from its YAML mapping.

    Example mappings::

        {tap: {key: introductionNextPageCta}}
        {enter_text: {key: pinField}, text: "123456"}
        {wait_ms: 500}
        {pin: "000000"}
        {sequence: [{tap: ...}, {wait_ms: 200}]}
        {screen_action: next}          # reuse an action declared on the screen

    Args:
        config: Action mapping
        find: Locator factory used to resolve locators
        named: Screen actions available to ``screen_action`` references

    Raises:
        ValueError: If the mapping does not describe a known action
    """
    if not isinstance(config, dict):
        raise ValueError(f"Unsupported action definition: {config!r}")
    if "tap" in config:
        return Tap(find.from_config(config["tap"]))
    if "enter_text" in config:
        if "text" not in config:
            raise ValueError(f"enter_text action without text: {config}")
        return EnterText(find.from_config(config["enter_text"]), str(config["text"]))
    if "wait_ms" in config:
        return Pause(int(config["wait_ms"]) / 1000)
    if "pin" in config:
        return tap_digits(find, str(config["pin"]))
    if "sequence" in config:
        if not isinstance(config["sequence"], list):
            raise ValueError(f"sequence must be a list of actions: {config}")
        return Sequence(tuple(action_from_config(step, find, named) for step in config["sequence"]))
    if "screen_action" in config:
        name = config["screen_action"]
        if not named or name not in named:
            available = sorted(named or {})
            raise ValueError(f"Unknown screen action '{name}'. Available: {available}")
        return named[name]
    raise ValueError(f"Unsupported action definition: {config}")
