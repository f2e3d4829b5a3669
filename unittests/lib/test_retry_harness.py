"""Unit tests for the test-level retry harness."""

from unittest.mock import Mock

import pytest

from appnav.exceptions import ConfigurationError, RetriesExhausted
from appnav.lib.retry_harness import HarnessConfig, RetryHarness


class TestRetryHarness:
    """Test bounded re-execution."""

    def test_passes_first_time(self):
        func = Mock(return_value=42)

        report = RetryHarness().run(func, retry_count=3, name="test_pass")

        assert report.attempts == 1
        assert report.value == 42
        assert not report.flaky
        func.assert_called_once_with()

    def test_passes_after_failures(self):
        func = Mock(side_effect=[AssertionError("one"), RuntimeError("two"), "ok"])

        report = RetryHarness().run(func, retry_count=3, name="test_flaky")

        assert report.attempts == 3
        assert report.flaky
        assert [str(e) for e in report.failures] == ["one", "two"]
        assert report.value == "ok"

    def test_never_exceeds_retry_count(self):
        """Test a test failing N times runs exactly N times and aggregates failures."""
        func = Mock(side_effect=AssertionError("screen missing"))

        with pytest.raises(RetriesExhausted) as excinfo:
            RetryHarness().run(func, retry_count=3, name="test_lock")

        assert func.call_count == 3
        assert len(excinfo.value.failures) == 3
        assert "test_lock failed 3 attempt(s)" in str(excinfo.value)
        assert "attempt 3: AssertionError: screen missing" in str(excinfo.value)
        assert excinfo.value.__cause__ is excinfo.value.failures[-1]

    def test_default_retry_count_from_config(self):
        func = Mock(side_effect=ValueError("boom"))

        with pytest.raises(RetriesExhausted):
            RetryHarness(HarnessConfig(retry_count=2)).run(func)

        assert func.call_count == 2

    def test_single_attempt_means_no_retry(self):
        func = Mock(side_effect=ValueError("boom"))

        with pytest.raises(RetriesExhausted):
            RetryHarness().run(func)

        func.assert_called_once_with()

    def test_unlisted_exception_propagates(self):
        """Test failures outside retry_on are not retried."""
        func = Mock(side_effect=KeyboardInterrupt)

        with pytest.raises(KeyboardInterrupt):
            RetryHarness().run(func, retry_count=3)

        func.assert_called_once_with()

    def test_invalid_retry_count(self):
        with pytest.raises(ConfigurationError):
            RetryHarness().run(Mock(), retry_count=0)
        with pytest.raises(ConfigurationError):
            HarnessConfig(retry_count=0)


class TestHarnessConfigSelection:
    """Test tag and suite selection."""

    def test_no_filters_selects_everything(self):
        assert HarnessConfig().selects("feature/test_menu.py")

    def test_tag_filter(self):
        config = HarnessConfig(tag_filter={"smoke"})

        assert config.selects("feature/test_menu.py", {"smoke", "menu"})
        assert not config.selects("feature/test_menu.py", {"menu"})

    def test_exclude_suites(self):
        config = HarnessConfig(exclude_suites=("suite/**",))

        assert not config.selects("suite/test_all.py")
        assert not config.selects("unittests/suite/test_all.py")
        assert config.selects("feature/test_menu.py")

    def test_include_suites(self):
        config = HarnessConfig(include_suites=("feature/*",))

        assert config.selects("feature/test_menu.py")
        assert not config.selects("other/test_menu.py")
