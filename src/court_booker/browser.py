"""Playwright browser session management."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from playwright.sync_api import Browser, BrowserContext, Error as PlaywrightError, Page, Playwright, sync_playwright
from rich.console import Console

from .config import Settings

console = Console()

SCREENSHOT_DIR = Path.home() / ".court-booker" / "screenshots"

VIEWPORT = {"width": 1500, "height": 900}
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class BrowserSession:
    """Owns one Chromium browser, its context and a single page."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self._pw: Playwright | None = None
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None

    @property
    def is_open(self) -> bool:
        return self.page is not None

    def launch(self) -> Page:
        """Launch browser and return the main page."""
        self._pw = sync_playwright().start()
        self.browser = self._pw.chromium.launch(
            headless=self.settings.headless,
            slow_mo=self.settings.slow_mo,
        )
        self.context = self.browser.new_context(
            viewport=VIEWPORT,
            user_agent=USER_AGENT,
        )
        self.page = self.context.new_page()
        return self.page

    def close(self) -> None:
        """Close browser and playwright. Safe to call more than once."""
        browser, pw = self.browser, self._pw
        self._pw = None
        self.browser = None
        self.context = None
        self.page = None
        try:
            if browser is not None:
                browser.close()
        finally:
            if pw is not None:
                pw.stop()


def take_screenshot(page: Optional[Page], name: str, enabled: bool = True) -> Optional[Path]:
    """Save a full-page screenshot for debugging; never raises."""
    if not enabled or page is None:
        return None
    try:
        SCREENSHOT_DIR.mkdir(parents=True, exist_ok=True)
        path = SCREENSHOT_DIR / f"{name}.png"
        page.screenshot(path=str(path), full_page=True)
    except (PlaywrightError, OSError) as e:
        console.print(f"[dim]Screenshot '{name}' failed: {e}[/]")
        return None
    console.print(f"[dim]Screenshot saved: {path}[/]")
    return path
