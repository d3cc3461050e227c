"""Authentication flow — automated CourtReserve login."""

from __future__ import annotations

from playwright.sync_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError
from rich.console import Console

from .browser import take_screenshot
from .config import Credentials, Portal, Timeouts

console = Console()

LOGIN_PATH = "/Account/Login"

EMAIL_INPUT = 'input[name="email"]'
PASSWORD_INPUT = 'input[name="password"]'
REMEMBER_ME = 'input[name="RememberMe"], input[type="checkbox"][id*="remember" i]'
SUBMIT_BUTTON = 'button[type="submit"]'

# Indicators that the user is logged in
_LOGGED_IN_SELECTORS = [
    'a[href*="Logout"], button:has-text("Logout")',
    'a:has-text("Book a Court")',
]

_ERROR_SELECTORS = [
    ".error",
    ".alert-danger",
    '[class*="error-message"]',
    ".validation-summary-errors",
]


def is_logged_in(page: Page) -> bool:
    """Check whether a post-login marker is visible."""
    for sel in _LOGGED_IN_SELECTORS:
        try:
            if page.locator(sel).first.is_visible():
                return True
        except PlaywrightError:
            continue
    return False


def login_errors(page: Page) -> list[str]:
    """Return the text of any login error messages on the page."""
    errors = []
    for sel in _ERROR_SELECTORS:
        found = page.locator(sel)
        for i in range(found.count()):
            text = (found.nth(i).text_content() or "").strip()
            errors.append(text or sel)
    return errors


def _submit(page: Page, timeouts: Timeouts) -> None:
    """Click submit and wait for a navigation or a quiet network, both bounded."""
    try:
        with page.expect_navigation(wait_until="domcontentloaded", timeout=timeouts.navigation_ms):
            page.locator(SUBMIT_BUTTON).click()
    except PlaywrightTimeoutError:
        console.print("[dim]No navigation after submit.[/]")

    try:
        page.wait_for_load_state("networkidle", timeout=timeouts.network_idle_ms)
    except PlaywrightTimeoutError:
        pass  # busy pages never go idle


def login(
    page: Page,
    credentials: Credentials,
    portal: Portal,
    timeouts: Timeouts | None = None,
    debug: bool = False,
) -> bool:
    """Log in to the portal.

    Returns True when the portal accepted the credentials, False otherwise.
    Never raises for failures inside the flow.
    """
    timeouts = timeouts or Timeouts()
    console.rule("[bold cyan]Step 1 · Log In[/]")

    try:
        console.print(f"[cyan]→ Opening login page:[/] {portal.login_url}")
        page.goto(portal.login_url, wait_until="domcontentloaded", timeout=timeouts.navigation_ms)
        take_screenshot(page, "login-page", debug)
        login_page_url = page.url
        console.print(f"[dim]Current URL: {login_page_url}[/]")

        page.locator(EMAIL_INPUT).fill(credentials.email)
        page.locator(PASSWORD_INPUT).fill(credentials.password)

        remember = page.locator(REMEMBER_ME)
        if remember.count() > 0 and not remember.first.is_checked():
            remember.first.check()

        console.print("[cyan]Submitting login...[/]")
        _submit(page, timeouts)

        current_url = page.url
        if LOGIN_PATH.lower() not in current_url.lower():
            console.print(f"[bold green]✓ Login successful — redirected to {current_url}[/]")
            return True

        if is_logged_in(page):
            console.print("[bold green]✓ Login successful![/]")
            return True

        errors = login_errors(page)
        for message in errors:
            console.print(f"[red]Login error: {message}[/]")

        if not errors and current_url != login_page_url:
            console.print("[green]✓ Login appears successful (URL changed, no errors shown).[/]")
            return True

        console.print(f"[bold red]✗ Login could not be verified.[/] [dim]URL: {current_url}[/]")
        return False

    except Exception as e:
        console.print(f"[red]Error during login: {e}[/]")
        take_screenshot(page, "login-error", debug)
        return False
