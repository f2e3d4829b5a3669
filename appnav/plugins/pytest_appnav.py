"""pytest plugin wiring the retry harness and the Appium session into tests.

Markers:
    ``@pytest.mark.retry(3)``         run the test up to 3 times
    ``@pytest.mark.tags("smoke")``    labels used by ``--tags`` selection

Command line options:
    ``--retry-count N``               default attempts for tests without marker
    ``--tags smoke,lock``             run only tests carrying one of the tags
    ``--include-suites GLOB``         run only test paths matching (repeatable)
    ``--exclude-suites GLOB``         skip test paths matching (repeatable)
    ``--device-name`` ... ``--remote`` session configuration overrides

Fixtures:
    ``appnav_session_config``         resolved SessionConfig (session scope)
    ``appnav_session``                started AppiumSession, quit on teardown
    ``appnav_actions``                ElementActions of that session
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from _pytest.runner import runtestprotocol

from appnav.exceptions import AppNavException, RetriesExhausted
from appnav.lib.config import SessionConfig
from appnav.lib.gui.appium_session import AppiumSession
from appnav.lib.retry_harness import HarnessConfig, RetryHarness

if TYPE_CHECKING:
    from collections.abc import Iterator

    from appnav.lib.gui.element_actions import ElementActions

_LOGGER = logging.getLogger(__name__)

harness_config_key = pytest.StashKey[HarnessConfig]()

_SESSION_OPTIONS = (
    "device_name",
    "platform_name",
    "platform_version",
    "app_identifier",
    "remote",
)


class AttemptFailed(AppNavException):
    """One setup/call/teardown cycle of a retried test failed."""

    def __init__(self, report: pytest.TestReport) -> None:
        crash = getattr(report.longrepr, "reprcrash", None)
        if crash is not None:
            summary = (crash.message.splitlines() or ["failed"])[0]
        else:
            lines = report.longreprtext.strip().splitlines()
            summary = lines[-1] if lines else "failed"
        super().__init__(f"{report.when}: {summary}")
        self.report = report


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register harness and session options."""
    group = parser.getgroup("appnav", "app navigation")
    group.addoption(
        "--retry-count",
        type=int,
        default=None,
        help="maximum attempts for tests without a retry marker (default: 1)",
    )
    group.addoption(
        "--tags",
        action="append",
        default=[],
        help="comma separated tags; run only tests carrying one of them",
    )
    group.addoption(
        "--include-suites",
        action="append",
        default=[],
        help="glob of test paths to run (repeatable)",
    )
    group.addoption(
        "--exclude-suites",
        action="append",
        default=[],
        help="glob of test paths to skip (repeatable)",
    )
    group.addoption("--device-name", default=None, help="device name / udid")
    group.addoption("--platform-name", default=None, help="Android or iOS")
    group.addoption("--platform-version", default=None, help="platform version")
    group.addoption("--app-identifier", default=None, help="app package / bundle id")
    group.addoption(
        "--remote",
        action="store_const",
        const=True,
        default=None,
        help="run against the remote Appium server",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register markers and build the harness configuration."""
    config.addinivalue_line(
        "markers", "retry(count): run the test up to count times until it passes"
    )
    config.addinivalue_line(
        "markers", "tags(*labels): labels used for --tags test selection"
    )
    tags = {
        tag.strip()
        for option in config.getoption("tags")
        for tag in option.split(",")
        if tag.strip()
    }
    config.stash[harness_config_key] = HarnessConfig(
        retry_count=config.getoption("retry_count") or 1,
        tag_filter=frozenset(tags),
        include_suites=tuple(config.getoption("include_suites")),
        exclude_suites=tuple(config.getoption("exclude_suites")),
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Deselect tests outside the tag filter and suite patterns."""
    harness_config = config.stash[harness_config_key]
    if not (
        harness_config.tag_filter
        or harness_config.include_suites
        or harness_config.exclude_suites
    ):
        return

    selected, deselected = [], []
    for item in items:
        path = item.nodeid.split("::", 1)[0]
        if harness_config.selects(path, _item_tags(item)):
            selected.append(item)
        else:
            deselected.append(item)

    if deselected:
        _LOGGER.debug("Deselected %d tests", len(deselected))
        config.hook.pytest_deselected(items=deselected)
        items[:] = selected


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_protocol(item: pytest.Item, nextitem: pytest.Item | None) -> bool | None:
    """Run tests needing more than one attempt through the retry harness.

    Every attempt is a full setup/call/teardown cycle, so function-scoped
    fixtures (e.g. the app session) are fresh per attempt. Only the reports
    of the last attempt are logged.
    """
    harness_config = item.config.stash[harness_config_key]
    retry_count = _retry_count(item, harness_config)
    if retry_count <= 1:
        return None

    item.ihook.pytest_runtest_logstart(nodeid=item.nodeid, location=item.location)
    attempts: list[list[pytest.TestReport]] = []

    def run_attempt() -> list[pytest.TestReport]:
        _forget_failed_fixtures(item)
        reports = runtestprotocol(item, nextitem=nextitem, log=False)
        attempts.append(reports)
        for report in reports:
            if report.failed:
                raise AttemptFailed(report)
        return reports

    try:
        harness = RetryHarness(harness_config, retry_on=(AttemptFailed,))
        harness.run(run_attempt, retry_count=retry_count, name=item.nodeid)
    except RetriesExhausted as e:
        failed = next(report for report in attempts[-1] if report.failed)
        failed.sections.append(("appnav retries", str(e)))

    for report in attempts[-1]:
        item.ihook.pytest_runtest_logreport(report=report)
    item.ihook.pytest_runtest_logfinish(nodeid=item.nodeid, location=item.location)
    return True


@pytest.fixture(scope="session")
def appnav_session_config(request: pytest.FixtureRequest) -> SessionConfig:
    """Session configuration resolved from options, environment and defaults."""
    options = {name: request.config.getoption(name) for name in _SESSION_OPTIONS}
    return SessionConfig.resolve(options)


@pytest.fixture
def appnav_session(appnav_session_config: SessionConfig) -> Iterator[AppiumSession]:
    """Appium session acquired for one test and always released."""
    with AppiumSession(appnav_session_config) as session:
        yield session


@pytest.fixture
def appnav_actions(appnav_session: AppiumSession) -> ElementActions:
    """Element action layer of the test's session."""
    return appnav_session.actions


def _item_tags(item: pytest.Item) -> set[str]:
    return {str(label) for marker in item.iter_markers("tags") for label in marker.args}


def _retry_count(item: pytest.Item, harness_config: HarnessConfig) -> int:
    marker = item.get_closest_marker("retry")
    if marker is None:
        return harness_config.retry_count
    return int(marker.args[0] if marker.args else marker.kwargs.get("count", 1))


def _forget_failed_fixtures(item: pytest.Item) -> None:
    """Drop cached fixture errors so the next attempt sets them up again."""
    fixtureinfo = getattr(item, "_fixtureinfo", None)
    if fixtureinfo is None:
        return
    for fixturedefs in fixtureinfo.name2fixturedefs.values():
        for fixturedef in fixturedefs:
            cached = fixturedef.cached_result
            # (value, cache key, error)
            if cached is not None and cached[2] is not None:
                fixturedef.cached_result = None
