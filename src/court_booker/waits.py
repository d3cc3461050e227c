"""First-settled-wins waiting over several page conditions.

Playwright's sync API blocks on a single wait at a time, so racing
navigation against an error popup against a success banner is done by
polling cheap, side-effect-free probes until one of them fires or the
shared deadline passes. Probes that lose the race are simply never
polled again.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Sequence

from playwright.sync_api import Error as PlaywrightError, Page

TIMEOUT = "timeout"


@dataclass(frozen=True)
class Signal:
    """A named condition; ``check`` returns True once the condition holds."""
    name: str
    check: Callable[[], bool]


def first_signal(
    signals: Sequence[Signal],
    timeout: float,
    poll_interval: float = 0.1,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Return the name of the first signal to fire, or ``"timeout"``.

    Signals are checked in order on every round, so earlier signals win
    ties. A probe that raises a Playwright error (e.g. the page is in the
    middle of navigating) counts as not fired for that round.
    """
    deadline = clock() + timeout
    while True:
        for signal in signals:
            try:
                if signal.check():
                    return signal.name
            except PlaywrightError:
                continue
        if clock() >= deadline:
            return TIMEOUT
        sleep(poll_interval)


def url_changed(page: Page, previous_url: str) -> Signal:
    return Signal("navigation", lambda: page.url != previous_url)


def visible(page: Page, name: str, selector: str) -> Signal:
    return Signal(name, lambda: page.locator(selector).first.is_visible())
