"""Tests for the first-signal race."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError

from court_booker.waits import TIMEOUT, Signal, first_signal, url_changed, visible


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _race(signals, timeout=1.0, clock=None):
    clock = clock or FakeClock()
    return first_signal(signals, timeout, 0.25, clock=clock, sleep=clock.sleep), clock


class TestFirstSignal:
    def test_returns_first_signal_that_fires(self):
        result, _ = _race([Signal("a", lambda: False), Signal("b", lambda: True)])
        assert result == "b"

    def test_earlier_signal_wins_ties(self):
        result, _ = _race([Signal("a", lambda: True), Signal("b", lambda: True)])
        assert result == "a"

    def test_times_out_when_nothing_fires(self):
        result, clock = _race([Signal("a", lambda: False)], timeout=1.0)
        assert result == TIMEOUT
        assert clock.now >= 1.0
        assert clock.sleeps == [0.25, 0.25, 0.25, 0.25]

    def test_zero_timeout_checks_once(self):
        probe = MagicMock(return_value=False)
        result, clock = _race([Signal("a", probe)], timeout=0)
        assert result == TIMEOUT
        probe.assert_called_once()
        assert clock.sleeps == []

    def test_signal_firing_later_is_seen(self):
        clock = FakeClock()
        result, _ = _race([Signal("late", lambda: clock.now >= 0.5)], timeout=2.0, clock=clock)
        assert result == "late"
        assert clock.now == 0.5

    def test_playwright_error_counts_as_not_fired(self):
        def boom():
            raise PlaywrightError("Execution context was destroyed")

        result, _ = _race([Signal("broken", boom), Signal("ok", lambda: True)])
        assert result == "ok"

    def test_other_errors_propagate(self):
        def boom():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            _race([Signal("broken", boom)])


class TestProbes:
    def test_url_changed(self):
        page = MagicMock()
        page.url = "https://example.test/a"
        signal = url_changed(page, "https://example.test/a")
        assert signal.name == "navigation"
        assert signal.check() is False
        page.url = "https://example.test/b"
        assert signal.check() is True

    def test_visible(self):
        page = MagicMock()
        page.locator.return_value.first.is_visible.return_value = True
        signal = visible(page, "success", ".success")
        assert signal.check() is True
        page.locator.assert_called_with(".success")
