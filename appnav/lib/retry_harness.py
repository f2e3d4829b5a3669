"""Test-level retry harness (the outer retry tier).

Element waits poll on their own; this harness re-runs a whole failed test.
A test is run up to ``retry_count`` times. It passes as soon as one attempt
passes. When every attempt fails, the failures are aggregated into a single
:class:`~appnav.exceptions.RetriesExhausted`.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from appnav.exceptions import ConfigurationError, RetriesExhausted

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class HarnessConfig:
    """Recognized harness options.

    Attributes:
        retry_count: Maximum attempts per test (1 = no retry)
        tag_filter: Run only tests carrying one of these tags (empty = all)
        include_suites: Glob patterns of test paths to run (empty = all)
        exclude_suites: Glob patterns of test paths to skip
    """

    retry_count: int = 1
    tag_filter: frozenset[str] = field(default_factory=frozenset)
    include_suites: tuple[str, ...] = ()
    exclude_suites: tuple[str, ...] = ()

    def __post_init__(self):
        if self.retry_count < 1:
            raise ConfigurationError(f"retry_count must be >= 1, got {self.retry_count}")
        object.__setattr__(self, "tag_filter", frozenset(self.tag_filter))
        object.__setattr__(self, "include_suites", tuple(self.include_suites))
        object.__setattr__(self, "exclude_suites", tuple(self.exclude_suites))

    def selects(self, path: str, tags: Iterable[str] = ()) -> bool:
        """Return True if a test at ``path`` with ``tags`` should run.

        Example:
            >>> config = HarnessConfig(tag_filter={"smoke"}, exclude_suites=("suite/**",))
            >>> config.selects("feature/lock/test_app_locked.py", {"smoke"})
            True
            >>> config.selects("suite/test_all.py", {"smoke"})
            False
        """
        path = path.replace("\\", "/")
        if self.tag_filter and not self.tag_filter.intersection(tags):
            return False
        if self.include_suites and not _matches_any(path, self.include_suites):
            return False
        return not _matches_any(path, self.exclude_suites)


@dataclass
class HarnessReport:
    """Outcome of a passing harness run.

    Attributes:
        name: Test name
        attempts: Number of attempts made (the last one passed)
        failures: Exceptions of the failed attempts, in order
        value: Return value of the passing attempt
    """

    name: str
    attempts: int
    failures: list[BaseException] = field(default_factory=list)
    value: Any = None

    @property
    def flaky(self) -> bool:
        """True if the test passed only after at least one failure."""
        return bool(self.failures)


class RetryHarness:
    """Runs a test callable with explicit, bounded re-execution."""

    def __init__(
        self,
        config: HarnessConfig | None = None,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ):
        """Initialize harness.

        Args:
            config: Harness options (defaults if None)
            retry_on: Failure types that trigger another attempt; anything
                else (e.g. a skip) propagates immediately
        """
        self.config = config or HarnessConfig()
        self._retry_on = retry_on

    def run(
        self,
        func: Callable[[], T],
        retry_count: int | None = None,
        name: str | None = None,
    ) -> HarnessReport:
        """Run ``func`` up to ``retry_count`` times.

        Args:
            func: Zero-argument test callable; each call is an independent attempt
            retry_count: Maximum attempts (harness default if None)
            name: Test name for logs and reports

        Returns:
            HarnessReport of the passing attempt

        Raises:
            RetriesExhausted: If every attempt failed; chained to the last failure
        """
        max_attempts = self.config.retry_count if retry_count is None else retry_count
        if max_attempts < 1:
            raise ConfigurationError(f"retry_count must be >= 1, got {max_attempts}")
        name = name or getattr(func, "__name__", "test")

        failures: list[BaseException] = []
        attempt = 0
        while attempt < max_attempts:
            attempt += 1
            started = time.monotonic()
            try:
                value = func()
            except self._retry_on as e:
                failures.append(e)
                _LOGGER.warning(
                    "%s - attempt %d/%d failed after %.1fs: %s: %s",
                    name, attempt, max_attempts, time.monotonic() - started,
                    type(e).__name__, e,
                )
                continue

            if failures:
                _LOGGER.info("%s - passed on attempt %d/%d", name, attempt, max_attempts)
            return HarnessReport(name=name, attempts=attempt, failures=failures, value=value)

        _LOGGER.error("%s - all %d attempts failed", name, max_attempts)
        raise RetriesExhausted(name, failures) from failures[-1]


def _matches_any(path: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        pattern = pattern.replace("\\", "/")
        if fnmatch.fnmatch(path, pattern):
            return True
        # "suite/**" also matches nested paths like "tests/suite/x.py"
        if fnmatch.fnmatch(path, f"*/{pattern}"):
            return True
    return False
