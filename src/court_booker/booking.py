"""Slot selection and the confirmation / save flow on the CourtReserve scheduler.

Flow:
  1. choose_slot()       — next slot after "now on the target date", or the
                           requested time (legacy), with named fallbacks
  2. wait_for_dialog()   — reservation modal, or none (direct booking)
  3. select_duration()   — pick the duration option, else force the default
  4. accept_disclosure() — tick the agreement checkbox through its label
  5. save_with_retry()   — click Save and race navigation / error / success
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Sequence

from playwright.sync_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError
from rich.console import Console

from .browser import take_screenshot
from .config import Timeouts, parse_time
from .errors import ConfigError, ConfirmationFailure
from .outcome import Fallback
from .search import Slot
from .waits import first_signal, url_changed, visible

console = Console()

MAX_SAVE_ATTEMPTS = 3

DIALOG = '.modal, [role="dialog"]'
DURATION_LISTBOX_NAME = "Duration *"
DURATION_INPUT_ID = "Duration"
DEFAULT_DURATION_VALUE = "2"
DEFAULT_DURATION_LABEL = "2 hours"
DISCLOSURE_INPUT = "#DisclosureAgree"
DISCLOSURE_LABEL = 'label[for="DisclosureAgree"]'
SAVE_BUTTON = 'button[data-testid="Save"]'
ERROR_POPUP = ".swal2-popup.swal2-icon-error"
ERROR_POPUP_ANY = ".swal2-popup"
ERROR_POPUP_CONFIRM = "button.swal2-confirm"
SUCCESS_MARKER = '.success, .confirmation, [class*="success"]'


# ---------------------------------------------------------------------------
# Step 1 – slot selection
# ---------------------------------------------------------------------------

@dataclass
class SlotChoice:
    slot: Optional[Slot]
    fallbacks: list[Fallback] = field(default_factory=list)


def _requested_time(target_time: str) -> Optional[time]:
    try:
        return parse_time(target_time)
    except ConfigError:
        return None


def matches_time(slot: Slot, target_time: str) -> bool:
    """True if the slot starts at the requested time, e.g. "8:30 AM".

    Requests that do not parse as a time are matched against the raw start
    text instead, never inside a longer time ("1:00" does not match "11:00").
    """
    wanted = _requested_time(target_time)
    if wanted is not None:
        return slot.start.time() == wanted
    pattern = r"(?<![\d:])" + re.escape(target_time.strip())
    return re.search(pattern, slot.raw, re.IGNORECASE) is not None


def choose_next_slot(slots: Sequence[Slot], target_date: Optional[date], now: datetime) -> SlotChoice:
    """Earliest slot strictly after the current time-of-day on the target date.

    Disabled slots are candidates too. When every slot is earlier than the
    reference instant the earliest slot overall is taken.
    """
    if not slots:
        return SlotChoice(None)

    ordered = sorted(slots, key=lambda s: s.start)
    reference = datetime.combine(target_date or now.date(), now.time())
    for slot in ordered:
        if slot.start > reference:
            return SlotChoice(slot)
    return SlotChoice(ordered[0], [Fallback.EARLIEST_SLOT])


def choose_slot_for_time(
    slots: Sequence[Slot], target_date: Optional[date], target_time: str
) -> SlotChoice:
    """Exact requested time (even if disabled), else the next enabled slot after it."""
    for slot in slots:
        if matches_time(slot, target_time):
            return SlotChoice(slot)

    available = sorted((s for s in slots if not s.disabled), key=lambda s: s.start)
    if not available:
        return SlotChoice(None)

    wanted = _requested_time(target_time)
    if wanted is not None:
        reference = datetime.combine(target_date or available[0].start.date(), wanted)
        for slot in available:
            if slot.start > reference:
                return SlotChoice(slot, [Fallback.ALTERNATE_SLOT])
    return SlotChoice(available[0], [Fallback.ALTERNATE_SLOT, Fallback.EARLIEST_SLOT])


def choose_slot(
    slots: Sequence[Slot],
    target_date: Optional[date],
    target_time: Optional[str],
    now: datetime,
) -> SlotChoice:
    if target_time:
        choice = choose_slot_for_time(slots, target_date, target_time)
    else:
        choice = choose_next_slot(slots, target_date, now)

    if choice.slot is None:
        console.print("[red]✗ No usable time slots found.[/]")
    elif Fallback.ALTERNATE_SLOT in choice.fallbacks:
        console.print(
            f"[yellow]Requested {target_time} not offered — "
            f"using {choice.slot.start:%I:%M %p} instead.[/]"
        )
    elif Fallback.EARLIEST_SLOT in choice.fallbacks:
        console.print(
            f"[yellow]Nothing later today — using earliest slot {choice.slot.start:%I:%M %p}.[/]"
        )
    else:
        state = " (marked disabled — popup expected)" if choice.slot.disabled else ""
        console.print(f"[green]✓ Chose slot {choice.slot.start:%a %d %b %I:%M %p}{state}[/]")
    return choice


# ---------------------------------------------------------------------------
# Step 2-4 – confirmation dialog
# ---------------------------------------------------------------------------

def wait_for_dialog(page: Page, timeouts: Timeouts) -> bool:
    """True once the reservation modal is visible, False if none appeared."""
    console.print("[dim]Waiting for reservation dialog...[/]")
    try:
        page.wait_for_selector(DIALOG, state="visible", timeout=timeouts.dialog_ms)
    except PlaywrightTimeoutError:
        console.print("[yellow]No dialog appeared — looks like a direct booking.[/]")
        return False
    console.print("[green]✓ Reservation dialog opened[/]")
    return True


def _force_default_duration(page: Page) -> None:
    page.evaluate(
        """({ id, value }) => {
            const input = document.getElementById(id);
            if (input) {
                input.value = value;
                input.dispatchEvent(new Event('change', { bubbles: true }));
            }
        }""",
        {"id": DURATION_INPUT_ID, "value": DEFAULT_DURATION_VALUE},
    )


def _fall_back_to_default_duration(page: Page, duration: str, reason: str) -> bool:
    console.print(
        f"[yellow]Could not pick '{duration}' ({reason}); "
        f"falling back to {DEFAULT_DURATION_LABEL}.[/]"
    )
    _force_default_duration(page)
    return False


def select_duration(page: Page, duration: str, timeouts: Timeouts) -> bool:
    """Choose *duration* in the dropdown.

    Returns False when the dropdown or option could not be used and the
    default duration was written into the hidden input instead.
    """
    console.print(f"[cyan]Selecting duration:[/] {duration}")
    listbox = page.get_by_role("listbox", name=DURATION_LISTBOX_NAME)
    if listbox.count() == 0:
        return _fall_back_to_default_duration(page, duration, "dropdown not found")

    try:
        listbox.first.click()
        page.wait_for_timeout(timeouts.ui_settle_ms)
        page.get_by_role("option", name=duration, exact=True).click(
            timeout=timeouts.option_click_ms
        )
    except PlaywrightError as e:
        reason = str(e).splitlines()[0] if str(e) else type(e).__name__
        return _fall_back_to_default_duration(page, duration, reason)

    console.print(f"[green]✓ Duration set to {duration}[/]")
    return True


def accept_disclosure(page: Page) -> None:
    """Tick the disclosure agreement if it is not ticked yet.

    The label intercepts pointer events, so the label is clicked rather than
    the input.
    """
    label = page.locator(DISCLOSURE_LABEL)
    checkbox = page.locator(DISCLOSURE_INPUT)
    if label.count() == 0 or checkbox.count() == 0:
        raise ConfirmationFailure("Disclosure agreement checkbox not found")

    if checkbox.first.is_checked():
        console.print("[dim]Disclosure agreement already checked[/]")
        return
    label.first.click()
    console.print("[green]✓ Checked disclosure agreement[/]")


# ---------------------------------------------------------------------------
# Step 5 – save with retry
# ---------------------------------------------------------------------------

@dataclass
class SaveResult:
    succeeded: bool
    attempts: int
    error_text: Optional[str] = None
    aborted: bool = False


def _error_popup_text(page: Page) -> str:
    text = page.locator(ERROR_POPUP).first.text_content() or ""
    return " ".join(text.split()) or "Error popup shown"


def dismiss_error_popup(page: Page, timeouts: Timeouts) -> bool:
    """Click OK on the error popup; False if there is no OK button."""
    ok = page.locator(ERROR_POPUP_CONFIRM)
    if ok.count() == 0:
        console.print("[red]Could not find OK button on error popup.[/]")
        return False
    ok.first.click()
    try:
        page.wait_for_selector(ERROR_POPUP_ANY, state="hidden", timeout=timeouts.popup_hidden_ms)
    except PlaywrightTimeoutError:
        pass
    return True


def save_with_retry(
    page: Page,
    timeouts: Timeouts,
    max_attempts: int = MAX_SAVE_ATTEMPTS,
    debug: bool = False,
) -> SaveResult:
    """Click Save up to *max_attempts* times until the portal confirms."""
    console.rule("[bold cyan]Step 4 · Save[/]")
    error_text: Optional[str] = None

    for attempt in range(1, max_attempts + 1):
        save = page.locator(SAVE_BUTTON)
        if save.count() == 0:
            raise ConfirmationFailure("Save button not found in reservation dialog")

        previous_url = page.url
        save.first.click()
        console.print(f"[cyan]Clicked Save (attempt {attempt}/{max_attempts})[/]")

        signal = first_signal(
            [
                url_changed(page, previous_url),
                visible(page, "error_popup", ERROR_POPUP),
                visible(page, "success", SUCCESS_MARKER),
            ],
            timeout=timeouts.save_signal_s,
            poll_interval=timeouts.poll_interval_s,
        )

        if signal in ("navigation", "success"):
            console.print("[bold green]🎉 Booking saved![/]")
            take_screenshot(page, "booking-completed", debug)
            return SaveResult(True, attempt, error_text)

        if signal == "error_popup":
            error_text = _error_popup_text(page)
            console.print(f"[red]✗ Error popup: {error_text}[/]")
            take_screenshot(page, f"booking-error-popup-attempt-{attempt}", debug)
            if not dismiss_error_popup(page, timeouts):
                return SaveResult(False, attempt, error_text, aborted=True)
        else:
            console.print("[yellow]No clear outcome after Save.[/]")

        if attempt < max_attempts:
            page.wait_for_timeout(timeouts.retry_delay_ms)

    console.print(f"[bold red]✗ Max save attempts ({max_attempts}) reached.[/]")
    return SaveResult(False, max_attempts, error_text)
