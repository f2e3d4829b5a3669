"""Element locators.

A :class:`Locator` is only a selector expression: it never holds a live
element reference, because the app rebuilds its UI tree on every screen
transition. Every wait or action re-queries the driver with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from appium.webdriver.common.appiumby import AppiumBy

if TYPE_CHECKING:
    from appnav.lib.l10n import L10n


@dataclass(frozen=True)
class Locator:
    """Selector expression plus optional timeout override.

    Attributes:
        by: Locator strategy (``AppiumBy`` constant, e.g. ``"accessibility id"``)
        value: Selector value
        timeout: Wait budget in seconds overriding the action layer default
    """

    by: str
    value: str
    timeout: float | None = None

    def as_tuple(self) -> tuple[str, str]:
        """Return the ``(by, value)`` pair Selenium waits expect."""
        return (self.by, self.value)

    def with_timeout(self, timeout: float) -> Locator:
        """Return a copy with a different timeout override."""
        return Locator(self.by, self.value, timeout)

    def __str__(self) -> str:
        return f"[{self.by}={self.value!r}]"


class LocatorFactory:
    """Build locators, resolving visible texts through an injected L10n.

    Example:
        >>> find = LocatorFactory(L10n.from_arb_file("app_en.arb"))
        >>> find.by_key("menuScreen")
        Locator(by='accessibility id', value='menuScreen', timeout=None)
        >>> find.by_text("menuScreenLockCta")
    """

    # Mapping of YAML strategy names to Appium locator strategies
    BY_MAPPING = {
        "key": AppiumBy.ACCESSIBILITY_ID,
        "accessibility_id": AppiumBy.ACCESSIBILITY_ID,
        "id": AppiumBy.ID,
        "xpath": AppiumBy.XPATH,
        "class_name": AppiumBy.CLASS_NAME,
        "uiautomator": AppiumBy.ANDROID_UIAUTOMATOR,
        "ios_predicate": AppiumBy.IOS_PREDICATE,
        "ios_class_chain": AppiumBy.IOS_CLASS_CHAIN,
    }

    def __init__(self, l10n: L10n | None = None) -> None:
        self._l10n = l10n

    def by_key(self, key: str, timeout: float | None = None) -> Locator:
        """Locate by widget key / accessibility id."""
        return Locator(AppiumBy.ACCESSIBILITY_ID, key, timeout)

    def by_literal_text(self, text: str, timeout: float | None = None) -> Locator:
        """Locate the element whose text or content description is ``text``."""
        quoted = _xpath_literal(text)
        return Locator(
            AppiumBy.XPATH,
            f"//*[@text={quoted} or @content-desc={quoted} "
            f"or @label={quoted} or @name={quoted}]",
            timeout,
        )

    def by_text(self, string_key: str, timeout: float | None = None) -> Locator:
        """Locate by localized text looked up with ``string_key``.

        Raises:
            KeyError: If no L10n was injected or the key is unknown
        """
        if self._l10n is None:
            raise KeyError(
                f"Cannot resolve text locator '{string_key}': no string table"
            )
        return self.by_literal_text(self._l10n.get_string(string_key), timeout)

    def from_config(self, config: dict[str, Any]) -> Locator:
        """Build a locator from a YAML mapping.

        Accepted forms::

            {key: introductionNextPageCta}
            {text: menuScreenLockCta}          # localized
            {literal_text: "1"}
            {by: xpath, value: "//...", timeout: 5}

        Raises:
            ValueError: If the mapping matches none of the forms
        """
        if not isinstance(config, dict):
            raise ValueError(f"Unsupported locator definition: {config!r}")
        timeout = config.get("timeout")
        if "key" in config:
            return self.by_key(config["key"], timeout)
        if "text" in config:
            return self.by_text(config["text"], timeout)
        if "literal_text" in config:
            return self.by_literal_text(str(config["literal_text"]), timeout)
        if "by" in config and "value" in config:
            by = self.BY_MAPPING.get(config["by"], config["by"])
            return Locator(by, config["value"], timeout)
        raise ValueError(f"Unsupported locator definition: {config}")


def _xpath_literal(text: str) -> str:
    """Quote text for use inside an XPath 1.0 expression."""
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"
