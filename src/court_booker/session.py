"""The booking session: one browser, one login, one booking attempt."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional

from playwright.sync_api import Page
from rich.console import Console

from . import auth
from .booking import (
    accept_disclosure,
    choose_slot,
    save_with_retry,
    select_duration,
    wait_for_dialog,
)
from .browser import BrowserSession, take_screenshot
from .config import Credentials, Portal, Settings, Timeouts
from .errors import AuthenticationFailure, SessionNotInitialized
from .notify import ConsoleNotifier, Notifier
from .outcome import BookingOutcome, BookingRequest, Fallback, OutcomeKind, to_notification
from .search import find_slots, open_booking_page, open_calendar, select_date, wait_for_slots

console = Console()

DEFAULT_DURATION = "2 hours"


class BookingSession:
    """Drives CourtReserve from login to a saved reservation.

    Usage::

        with BookingSession(credentials) as session:
            ok = session.book_court(date(2026, 11, 14), duration="2 hours")
    """

    def __init__(
        self,
        credentials: Credentials,
        portal: Portal | None = None,
        facility: str = "Indoor",
        notifier: Notifier | None = None,
        settings: Settings | None = None,
        timeouts: Timeouts | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.credentials = credentials
        self.portal = portal or Portal()
        self.facility = facility
        self.notifier = notifier or ConsoleNotifier()
        self.settings = settings or Settings()
        self.timeouts = timeouts or Timeouts()
        self.clock = clock
        self.browser = BrowserSession(self.settings)
        self.authenticated = False
        self.last_outcome: Optional[BookingOutcome] = None

    @property
    def page(self) -> Optional[Page]:
        return self.browser.page

    def _require_page(self) -> Page:
        if self.page is None:
            raise SessionNotInitialized()
        return self.page

    # -- lifecycle ---------------------------------------------------------

    def initialize(self) -> None:
        """Launch the browser, context and page."""
        console.print("[dim]Launching browser...[/]")
        self.browser.launch()

    def login(self) -> bool:
        page = self._require_page()
        self.authenticated = auth.login(
            page, self.credentials, self.portal, self.timeouts, debug=self.settings.debug
        )
        return self.authenticated

    def close(self) -> None:
        """Tear down the browser. Calling it again is a no-op."""
        self.browser.close()
        self.authenticated = False

    def __enter__(self) -> "BookingSession":
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -- booking -----------------------------------------------------------

    def book_court(
        self,
        target_date: Optional[date] = None,
        target_time: Optional[str] = None,
        duration: str = DEFAULT_DURATION,
    ) -> bool:
        """Run one booking attempt; True only if the court was booked.

        The outcome kind is available afterwards as ``last_outcome``.
        """
        return self.attempt(target_date, target_time, duration).succeeded

    def attempt(
        self,
        target_date: Optional[date] = None,
        target_time: Optional[str] = None,
        duration: str = DEFAULT_DURATION,
    ) -> BookingOutcome:
        """Run one booking attempt, notify, and return its outcome."""
        self._require_page()
        request = BookingRequest(target_date, target_time, duration)
        attempted_at = self.clock()
        fallbacks: list[Fallback] = []

        try:
            outcome = self._attempt(request, attempted_at, fallbacks)
        except Exception as e:
            console.print(f"[red]Error booking court: {e}[/]")
            take_screenshot(self.page, "booking-error", self.settings.debug)
            outcome = BookingOutcome(
                OutcomeKind.UNEXPECTED_ERROR,
                str(e) or type(e).__name__,
                request,
                attempted_at,
                fallbacks=fallbacks,
            )

        self.last_outcome = outcome
        self._report(outcome)
        return outcome

    def _attempt(
        self, request: BookingRequest, attempted_at: datetime, fallbacks: list[Fallback]
    ) -> BookingOutcome:
        if not self.authenticated:
            console.print("[yellow]Not logged in. Attempting login...[/]")
            if not self.login():
                raise AuthenticationFailure("Login failed")

        page = self._require_page()
        timeouts = self.timeouts
        debug = self.settings.debug

        # ── Find a slot ───────────────────────────────────────────────
        console.rule("[bold cyan]Step 2 · Find a Slot[/]")
        open_booking_page(page, self.portal.booking_url(self.facility), timeouts)
        take_screenshot(page, "booking-page-loaded", debug)
        open_calendar(page, timeouts)
        if not select_date(page, request.target_date):
            fallbacks.append(Fallback.CURRENT_DATE)
        if not wait_for_slots(page, timeouts):
            fallbacks.append(Fallback.SLOT_RENDER_DELAY)

        choice = choose_slot(find_slots(page), request.target_date, request.target_time, attempted_at)
        fallbacks.extend(choice.fallbacks)
        if choice.slot is None:
            return BookingOutcome(
                OutcomeKind.NO_SLOTS_AVAILABLE,
                "No time slots were offered for the requested date",
                request,
                attempted_at,
                fallbacks=fallbacks,
            )
        slot = choice.slot

        if not self.authenticated:
            raise AuthenticationFailure("Session lost its login before the slot click")
        slot.locator.click()

        # ── Confirm ───────────────────────────────────────────────────
        console.rule("[bold cyan]Step 3 · Confirm[/]")
        has_dialog = wait_for_dialog(page, timeouts)
        take_screenshot(page, "booking-modal-opened" if has_dialog else "booking-after-slot", debug)
        if not has_dialog:
            # TODO: confirm against the member's reservation list once that page is mapped.
            return BookingOutcome(
                OutcomeKind.BOOKED,
                "Slot clicked and no confirmation dialog appeared; "
                "reservation NOT verified, please check the portal",
                request,
                attempted_at,
                slot_start=slot.start,
                fallbacks=fallbacks,
            )

        if not select_duration(page, request.duration, timeouts):
            fallbacks.append(Fallback.DEFAULT_DURATION)
        page.wait_for_timeout(timeouts.ui_settle_ms)
        accept_disclosure(page)

        result = save_with_retry(page, timeouts, debug=debug)
        if result.succeeded:
            return BookingOutcome(
                OutcomeKind.BOOKED,
                "Reservation saved",
                request,
                attempted_at,
                slot_start=slot.start,
                save_attempts=result.attempts,
                fallbacks=fallbacks,
            )

        if result.aborted:
            detail = f"Error popup could not be dismissed: {result.error_text}"
        else:
            detail = result.error_text or f"No confirmation after {result.attempts} save attempts"
        return BookingOutcome(
            OutcomeKind.SAVE_FAILED_AFTER_RETRIES,
            detail,
            request,
            attempted_at,
            slot_start=slot.start,
            save_attempts=result.attempts,
            fallbacks=fallbacks,
        )

    def _report(self, outcome: BookingOutcome) -> None:
        try:
            self.notifier.send(to_notification(outcome))
        except Exception as e:
            console.print(f"[yellow]⚠ Notification failed: {e}[/]")


def book_court(
    credentials: Credentials,
    target_date: Optional[date] = None,
    target_time: Optional[str] = None,
    duration: str = DEFAULT_DURATION,
    **session_kwargs,
) -> BookingOutcome:
    """Run a complete session (initialize, book, close) and return the outcome."""
    session = BookingSession(credentials, **session_kwargs)
    try:
        session.initialize()
        return session.attempt(target_date, target_time, duration)
    finally:
        session.close()
