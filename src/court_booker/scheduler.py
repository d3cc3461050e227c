"""When to run each job: the booking window opens a fixed lead time before the slot."""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Callable, Iterable

from rich.console import Console

from .config import Job

console = Console()

_MAX_SLEEP_S = 30.0


def run_at(job: Job, lead_hours: int) -> datetime:
    """Moment the booking window opens for *job*."""
    return job.start - timedelta(hours=lead_hours)


def plan(jobs: Iterable[Job], lead_hours: int) -> list[tuple[datetime, Job]]:
    """Jobs paired with their run times, soonest first."""
    return sorted(((run_at(j, lead_hours), j) for j in jobs), key=lambda pair: pair[0])


def wait_until(
    when: datetime,
    *,
    now: Callable[[], datetime] = datetime.now,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Block until *when*, waking at least every 30 s to report progress."""
    remaining = (when - now()).total_seconds()
    if remaining <= 0:
        return

    console.print(f"[cyan]Waiting until {when:%Y-%m-%d %H:%M:%S}[/] [dim]({timedelta(seconds=int(remaining))})[/]")
    while remaining > 0:
        sleep(min(remaining, _MAX_SLEEP_S))
        remaining = (when - now()).total_seconds()
        if remaining > 0:
            console.print(f"[dim]  {timedelta(seconds=int(remaining))} to go[/]")
    console.print("[bold green]✓ Booking window open[/]")
