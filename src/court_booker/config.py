"""Load and validate YAML configuration and environment settings."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_BASE_URL = "https://usta.courtreserve.com"
DEFAULT_ORGANIZATION_ID = "5881"
DEFAULT_LEAD_HOURS = 48

_TIME_FORMATS = ("%I:%M %p", "%I:%M%p", "%H:%M")


@dataclass
class Credentials:
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


@dataclass
class Portal:
    base_url: str = DEFAULT_BASE_URL
    organization_id: str = DEFAULT_ORGANIZATION_ID
    schedulers: dict[str, str] = field(default_factory=lambda: {"Indoor": "294"})

    @property
    def login_url(self) -> str:
        return f"{self.base_url}/Account/Login"

    def booking_url(self, facility: str) -> str:
        return (
            f"{self.base_url}/Online/Reservations/Bookings/"
            f"{self.organization_id}?sId={self.schedulers[facility]}"
        )


@dataclass
class Job:
    name: str
    facility: str
    date: date
    start_time: time
    duration_minutes: int
    court: Optional[str] = None
    players: int = 2
    exact_time: bool = False
    notify: bool = False

    @property
    def start(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def duration_label(self) -> str:
        return duration_label(self.duration_minutes)

    @property
    def target_time(self) -> Optional[str]:
        """Time string handed to the exact-time policy, or None for next-available."""
        if not self.exact_time:
            return None
        return format_time(self.start_time)


@dataclass
class NotificationSettings:
    console: bool = True
    desktop: bool = False
    ntfy_topic: str = ""


@dataclass
class Config:
    portal: Portal = field(default_factory=Portal)
    lead_hours: int = DEFAULT_LEAD_HOURS
    jobs: list[Job] = field(default_factory=list)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)


@dataclass
class Timeouts:
    """Bounds for every browser wait.

    Playwright takes milliseconds; the signal race polls in seconds.
    """

    navigation_ms: int = 30_000
    network_idle_ms: int = 5_000
    page_marker_ms: int = 5_000
    calendar_ms: int = 3_000
    slot_render_ms: int = 5_000
    slot_render_fallback_ms: int = 500
    dialog_ms: int = 5_000
    option_click_ms: int = 5_000
    ui_settle_ms: int = 500
    popup_hidden_ms: int = 3_000
    save_signal_s: float = 1.5
    retry_delay_ms: int = 1_000
    poll_interval_s: float = 0.1


@dataclass
class Settings:
    """Runtime switches read from the environment."""

    headless: bool = True
    slow_mo: Optional[int] = None
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        slow_mo = os.environ.get("SLOW_MO")
        return cls(
            headless=os.environ.get("HEADLESS", "true").lower() != "false",
            slow_mo=int(slow_mo) if slow_mo else None,
            debug=bool(os.environ.get("DEBUG")),
        )


def parse_time(value: str) -> time:
    """Parse ``8:30 AM``, ``8:30AM`` or ``20:30``."""
    text = str(value).strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ConfigError(f"Unrecognised time: {value!r}")


def format_time(value: time) -> str:
    """Render a time the way the portal labels slots, e.g. ``8:30 AM``."""
    return value.strftime("%I:%M %p").lstrip("0")


def duration_label(minutes: int) -> str:
    """Return the duration dropdown label for *minutes*.

    60 → "1 hour", 90 → "1 hour & 30 minutes", 120 → "2 hours".
    """
    hours, rest = divmod(int(minutes), 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour" + ("s" if hours > 1 else ""))
    if rest:
        parts.append(f"{rest} minutes")
    return " & ".join(parts)


def load_credentials() -> Credentials:
    """Read USTA_EMAIL / USTA_PASSWORD, honouring a local .env file."""
    load_dotenv()
    email = os.environ.get("USTA_EMAIL")
    password = os.environ.get("USTA_PASSWORD")
    if not email or not password:
        raise ConfigError("Missing USTA_EMAIL or USTA_PASSWORD environment variables")
    return Credentials(email=email, password=password)


def _parse_job(raw: dict, portal: Portal) -> Job:
    try:
        name = str(raw["name"])
        facility = str(raw["facility"])
        job_date = date.fromisoformat(str(raw["date"]))
        start_time = parse_time(raw["start_time"])
        duration = int(raw["duration_minutes"])
    except KeyError as e:
        raise ConfigError(f"Job is missing required field {e.args[0]!r}") from e
    except ValueError as e:
        raise ConfigError(f"Job {raw.get('name', '?')!r}: {e}") from e

    if facility not in portal.schedulers:
        raise ConfigError(
            f"Job {name!r}: unknown facility {facility!r} "
            f"(configured: {', '.join(portal.schedulers)})"
        )
    if duration <= 0 or duration % 30:
        raise ConfigError(f"Job {name!r}: duration_minutes must be a positive multiple of 30")

    players = int(raw.get("players", 2))
    if players <= 0:
        raise ConfigError(f"Job {name!r}: players must be positive")

    court = raw.get("court")
    return Job(
        name=name,
        facility=facility,
        date=job_date,
        start_time=start_time,
        duration_minutes=duration,
        court=str(court) if court is not None else None,
        players=players,
        exact_time=bool(raw.get("exact_time", False)),
        notify=bool(raw.get("notify", False)),
    )


def load_config(path: str | Path) -> Config:
    """Load configuration from a YAML file."""
    p = Path(path)
    if not p.exists():
        print(f"[error] Config file not found: {p}", file=sys.stderr)
        sys.exit(1)

    with open(p) as f:
        raw = yaml.safe_load(f) or {}

    pr = raw.get("portal") or {}
    portal = Portal(
        base_url=str(pr.get("base_url", DEFAULT_BASE_URL)).rstrip("/"),
        organization_id=str(pr.get("organization_id", DEFAULT_ORGANIZATION_ID)),
        schedulers={
            str(k): str(v) for k, v in pr.get("schedulers", {"Indoor": "294"}).items()
        },
    )

    jobs = [_parse_job(j, portal) for j in raw.get("jobs") or []]

    n = raw.get("notifications") or {}
    notifications = NotificationSettings(
        console=bool(n.get("console", True)),
        desktop=bool(n.get("desktop", False)),
        ntfy_topic=str(n.get("ntfy_topic", "") or ""),
    )

    return Config(
        portal=portal,
        lead_hours=int(raw.get("lead_hours", DEFAULT_LEAD_HOURS)),
        jobs=jobs,
        notifications=notifications,
    )
