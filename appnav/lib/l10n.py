"""Localized string tables used to build text locators.

The app under test ships its strings as Flutter ARB files (JSON objects where
keys starting with ``@`` hold metadata). An :class:`L10n` instance is passed
into locator construction instead of being looked up globally, so every test
decides which locale it runs against.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

_LOGGER = logging.getLogger(__name__)


class L10n:
    """Read-only localized string lookup.

    Example:
        >>> l10n = L10n({"menuScreenLockCta": "Log out"}, locale="en")
        >>> l10n.get_string("menuScreenLockCta")
        'Log out'
    """

    def __init__(self, strings: Mapping[str, str], locale: str = "en") -> None:
        """Initialize lookup table.

        Args:
            strings: Key to localized text mapping
            locale: Locale tag of the table
        """
        self._strings = {
            key: value for key, value in strings.items()
            if not key.startswith("@")
        }
        self.locale = locale

    @classmethod
    def from_arb_file(cls, arb_file: str | Path) -> L10n:
        """Load a Flutter ARB string table.

        The locale is taken from the ``@@locale`` entry when present, otherwise
        from the ``app_<locale>.arb`` file name convention.

        Args:
            arb_file: Path to the .arb (JSON) file

        Returns:
            New L10n instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a JSON object
        """
        arb_path = Path(arb_file)
        if not arb_path.exists():
            raise FileNotFoundError(f"String table not found: {arb_file}")

        with arb_path.open(encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Invalid string table {arb_file}: expected a JSON object")

        locale = data.get("@@locale") or arb_path.stem.rsplit("_", 1)[-1]
        instance = cls(data, locale=locale)
        _LOGGER.debug(
            "Loaded %d strings for locale '%s' from %s",
            len(instance._strings), locale, arb_path,
        )
        return instance

    def get_string(self, key: str) -> str:
        """Return the localized text for key.

        Raises:
            KeyError: If key is not in the table
        """
        try:
            return self._strings[key]
        except KeyError:
            raise KeyError(
                f"String '{key}' not found for locale '{self.locale}'"
            ) from None

    def __contains__(self, key: object) -> bool:
        return key in self._strings

    def __len__(self) -> int:
        return len(self._strings)
