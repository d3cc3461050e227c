"""Booking attempt outcomes and their notification text."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from .notify import Notification


class OutcomeKind(str, Enum):
    BOOKED = "booked"
    NO_SLOTS_AVAILABLE = "no_slots_available"
    SAVE_FAILED_AFTER_RETRIES = "save_failed_after_retries"
    UNEXPECTED_ERROR = "unexpected_error"


class Fallback(str, Enum):
    """Soft-degrade branches taken during an attempt."""
    CURRENT_DATE = "current_date"            # target day not in calendar
    SLOT_RENDER_DELAY = "slot_render_delay"  # slot marker never appeared
    ALTERNATE_SLOT = "alternate_slot"        # requested time not offered
    EARLIEST_SLOT = "earliest_slot"          # nothing later than the reference time
    DEFAULT_DURATION = "default_duration"    # duration option not selectable


@dataclass
class BookingRequest:
    target_date: Optional[date]
    target_time: Optional[str]
    duration: str

    def describe(self) -> str:
        when = f"{self.target_date:%a %d %b %Y}" if self.target_date else "current date"
        at = self.target_time or "next available"
        return f"{when} at {at} for {self.duration}"


@dataclass
class BookingOutcome:
    kind: OutcomeKind
    detail: str
    request: BookingRequest
    attempted_at: datetime = field(default_factory=datetime.now)
    slot_start: Optional[datetime] = None
    save_attempts: int = 0
    fallbacks: list[Fallback] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.BOOKED


_TITLES = {
    OutcomeKind.BOOKED: "🎾 Court booked",
    OutcomeKind.NO_SLOTS_AVAILABLE: "No court slots available",
    OutcomeKind.SAVE_FAILED_AFTER_RETRIES: "Court booking failed",
    OutcomeKind.UNEXPECTED_ERROR: "Court booking error",
}


def to_notification(outcome: BookingOutcome) -> Notification:
    """Render an outcome as a notification a human can act on without the logs."""
    lines = [
        f"Request: {outcome.request.describe()}",
        f"Attempted: {outcome.attempted_at:%Y-%m-%d %H:%M:%S}",
    ]
    if outcome.slot_start is not None:
        lines.append(f"Slot: {outcome.slot_start:%a %d %b %Y %I:%M %p}")
    if outcome.save_attempts:
        lines.append(f"Save attempts: {outcome.save_attempts}")
    if outcome.fallbacks:
        lines.append("Fallbacks: " + ", ".join(f.value for f in outcome.fallbacks))
    lines.append(f"Result: {outcome.detail}")
    return Notification(title=_TITLES[outcome.kind], message="\n".join(lines))
