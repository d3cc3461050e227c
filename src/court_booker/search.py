"""Booking page navigation, calendar date selection and slot discovery."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from playwright.sync_api import Error as PlaywrightError, Locator, Page, TimeoutError as PlaywrightTimeoutError
from rich.console import Console

from .config import Timeouts

console = Console()

PAGE_READY = '.k-nav-current, [data-testid="link-0"]'
DATE_PICKER = 'a[data-testid="link-0"]'
CALENDAR = ".k-calendar"
CALENDAR_HEADER = ".k-calendar .k-nav-fast"
CALENDAR_NEXT = ".k-calendar .k-nav-next"
CALENDAR_DAYS = ".k-calendar td:not(.k-other-month) a"
SLOT_BUTTON = "a.slot-btn"

_MAX_MONTH_PAGES = 12

_START_FORMATS = (
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%a %b %d %Y %H:%M:%S",
)

_TZ_SUFFIX = re.compile(r"\s*(GMT[+-]\d{4})?\s*(\([^)]*\))?\s*$")


@dataclass
class Slot:
    """A reservable start time rendered on the scheduler."""
    start: datetime
    raw: str
    disabled: bool
    locator: Locator


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def start_text(data_href: Optional[str]) -> Optional[str]:
    """Return the decoded ``start`` query parameter of a slot link."""
    if not data_href:
        return None
    values = parse_qs(urlsplit(data_href).query).get("start")
    if not values:
        # Some links carry the query without a leading "?"
        values = parse_qs(data_href.split("?", 1)[-1]).get("start")
    return values[0].strip() if values else None


def parse_start(text: str) -> Optional[datetime]:
    """Parse a slot start such as ``11/14/2026 8:30 AM``; None if unrecognised."""
    cleaned = " ".join(_TZ_SUFFIX.sub("", text).replace(",", " ").split())
    for fmt in _START_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return None


def is_disabled(class_attr: Optional[str], disabled_attr: Optional[str]) -> bool:
    classes = class_attr or ""
    return "disabled" in classes or "fn-disable" in classes or disabled_attr is not None


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def open_booking_page(page: Page, url: str, timeouts: Timeouts) -> None:
    """Load the scheduler and wait (softly) for its date picker."""
    console.print(f"[cyan]→ Opening booking page:[/] {url}")
    page.goto(url, wait_until="networkidle", timeout=timeouts.navigation_ms)
    console.print(f"[dim]Current URL: {page.url}[/]")
    try:
        page.wait_for_selector(PAGE_READY, timeout=timeouts.page_marker_ms)
    except PlaywrightTimeoutError:
        console.print("[dim]Date picker marker not seen — continuing.[/]")


def open_calendar(page: Page, timeouts: Timeouts) -> None:
    console.print("[cyan]Opening calendar...[/]")
    page.locator(DATE_PICKER).click()
    page.wait_for_selector(CALENDAR, timeout=timeouts.calendar_ms)


def _header_month(text: str) -> Optional[date]:
    """First day of the month a header like ``November 2026`` shows."""
    cleaned = " ".join(text.replace(",", " ").split())
    try:
        return datetime.strptime(cleaned, "%B %Y").date()
    except ValueError:
        return None


def _show_month(page: Page, target: date) -> bool:
    """Page the calendar forward to the target month, never past it.

    Returns False when the header is unreadable, already shows a later month,
    or does not reach the target month within the paging limit.
    """
    wanted = target.replace(day=1)
    header = page.locator(CALENDAR_HEADER)
    for _ in range(_MAX_MONTH_PAGES + 1):
        if header.count() == 0:
            return False
        shown = _header_month(header.first.text_content() or "")
        if shown is None or shown > wanted:
            return False
        if shown == wanted:
            return True
        page.locator(CALENDAR_NEXT).first.click()
    return False


def select_date(page: Page, target: Optional[date]) -> bool:
    """Click the target day in the open calendar.

    Returns False when the day could not be found; the scheduler then keeps
    whatever date it is currently showing.
    """
    if target is None:
        console.print("[dim]No target date — using the currently selected date.[/]")
        page.keyboard.press("Escape")
        return True

    console.print(f"[cyan]Selecting date:[/] {target:%A %d %B %Y}")
    if not _show_month(page, target):
        console.print(
            f"[yellow]Calendar does not show {target:%B %Y}, using the current date.[/]"
        )
        return False

    day = page.locator(CALENDAR_DAYS).filter(
        has_text=re.compile(rf"^\s*{target.day}\s*$")
    ).first
    if not day.is_visible():
        console.print("[yellow]Could not select the target date, using the current date.[/]")
        return False

    day.click()
    console.print(f"[green]✓ Selected {target:%d %B %Y}[/]")
    return True


def wait_for_slots(page: Page, timeouts: Timeouts) -> bool:
    """Wait for slot buttons to render; False if a fixed delay had to be used instead."""
    console.print("[dim]Waiting for time slots to load...[/]")
    try:
        page.wait_for_selector(SLOT_BUTTON, timeout=timeouts.slot_render_ms)
        return True
    except PlaywrightTimeoutError:
        page.wait_for_timeout(timeouts.slot_render_fallback_ms)
        return False


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def find_slots(page: Page) -> list[Slot]:
    """Return every slot button with a parseable start, disabled ones included.

    Disabled slots stay in the list: clicking one can still open the
    waitlist dialog.
    """
    buttons = page.locator(SLOT_BUTTON)
    count = buttons.count()
    console.print(f"[dim]Found {count} slot button(s)[/]")

    slots: list[Slot] = []
    for i in range(count):
        btn = buttons.nth(i)
        try:
            raw = start_text(btn.get_attribute("data-href"))
            if raw is None:
                continue
            start = parse_start(raw)
            if start is None:
                console.print(f"[dim]Skipping slot with unparseable start: {raw!r}[/]")
                continue
            disabled = is_disabled(btn.get_attribute("class"), btn.get_attribute("disabled"))
        except PlaywrightError as e:
            console.print(f"[dim]Error reading slot {i}: {e}[/]")
            continue
        slots.append(Slot(start=start, raw=raw, disabled=disabled, locator=btn))
    return slots
