"""Tests for browser launch/teardown and screenshots."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError

from court_booker import browser
from court_booker.browser import USER_AGENT, VIEWPORT, BrowserSession, take_screenshot
from court_booker.config import Settings


def test_launch_uses_settings(monkeypatch):
    pw = MagicMock()
    monkeypatch.setattr(browser, "sync_playwright", MagicMock(return_value=MagicMock(start=MagicMock(return_value=pw))))

    session = BrowserSession(Settings(headless=False, slow_mo=250))
    page = session.launch()

    pw.chromium.launch.assert_called_once_with(headless=False, slow_mo=250)
    pw.chromium.launch.return_value.new_context.assert_called_once_with(
        viewport=VIEWPORT, user_agent=USER_AGENT
    )
    assert page is session.page
    assert session.is_open


def test_close_stops_playwright_even_if_browser_close_fails():
    session = BrowserSession()
    session.browser = MagicMock()
    session.browser.close.side_effect = PlaywrightError("Target closed")
    pw = MagicMock()
    session._pw = pw
    session.page = MagicMock()

    with pytest.raises(PlaywrightError):
        session.close()

    pw.stop.assert_called_once()
    assert not session.is_open


def test_screenshot_disabled():
    page = MagicMock()
    assert take_screenshot(page, "x", enabled=False) is None
    page.screenshot.assert_not_called()


def test_screenshot_failure_is_swallowed(monkeypatch, tmp_path):
    monkeypatch.setattr(browser, "SCREENSHOT_DIR", tmp_path)
    page = MagicMock()
    page.screenshot.side_effect = PlaywrightError("Target closed")
    assert take_screenshot(page, "booking-error") is None


def test_screenshot_path(monkeypatch, tmp_path):
    monkeypatch.setattr(browser, "SCREENSHOT_DIR", tmp_path)
    page = MagicMock()
    assert take_screenshot(page, "booking-page-loaded") == tmp_path / "booking-page-loaded.png"
    page.screenshot.assert_called_once_with(path=str(tmp_path / "booking-page-loaded.png"), full_page=True)
