"""Unit tests for search.py — slot parsing, discovery and date selection.

The scheduler DOM is mimicked with MagicMock locators; each slot is an
``<a class="slot-btn" data-href="...?start=...">`` element.
"""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from court_booker.config import Timeouts
from court_booker.search import (
    SLOT_BUTTON,
    find_slots,
    is_disabled,
    parse_start,
    select_date,
    start_text,
    wait_for_slots,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestStartText:
    def test_decodes_query_parameter(self):
        href = "/Online/Reservations/CreateReservation/5881?start=11%2F14%2F2026%208%3A30%20AM&end=x"
        assert start_text(href) == "11/14/2026 8:30 AM"

    def test_plus_means_space(self):
        assert start_text("/x?start=11/14/2026+8:30+AM") == "11/14/2026 8:30 AM"

    def test_query_without_question_mark(self):
        assert start_text("start=11/14/2026 9:00 AM&courtId=3") == "11/14/2026 9:00 AM"

    @pytest.mark.parametrize("href", [None, "", "/x?end=now"])
    def test_missing(self, href):
        assert start_text(href) is None


class TestParseStart:
    @pytest.mark.parametrize("text, expected", [
        ("11/14/2026 8:30 AM", datetime(2026, 11, 14, 8, 30)),
        ("11/14/2026 8:30:00 PM", datetime(2026, 11, 14, 20, 30)),
        ("11/14/2026 20:30", datetime(2026, 11, 14, 20, 30)),
        ("2026-11-14T08:30:00", datetime(2026, 11, 14, 8, 30)),
        ("2026-11-14 08:30", datetime(2026, 11, 14, 8, 30)),
        ("Sat Nov 14 2026 08:30:00 GMT-0800 (Pacific Standard Time)", datetime(2026, 11, 14, 8, 30)),
    ])
    def test_formats(self, text, expected):
        assert parse_start(text) == expected

    def test_unparseable(self):
        assert parse_start("tomorrow-ish") is None


class TestIsDisabled:
    def test_enabled(self):
        assert is_disabled("btn slot-btn", None) is False

    def test_disabled_class(self):
        assert is_disabled("btn slot-btn disabled", None) is True

    def test_fn_disable_class(self):
        assert is_disabled("slot-btn fn-disable", None) is True

    def test_disabled_attribute(self):
        assert is_disabled("slot-btn", "") is True

    def test_no_class(self):
        assert is_disabled(None, None) is False


# ---------------------------------------------------------------------------
# find_slots – mocked scheduler DOM
# ---------------------------------------------------------------------------

def _make_slot_button(start: str | None, classes: str = "slot-btn") -> MagicMock:
    attrs = {
        "data-href": f"/Online/Reservations/Create?start={start}" if start else None,
        "class": classes,
        "disabled": None,
    }
    btn = MagicMock()
    btn.get_attribute.side_effect = lambda name: attrs.get(name)
    return btn


def _make_page_with_slots(buttons: list[MagicMock]) -> MagicMock:
    page = MagicMock()
    collection = MagicMock()
    collection.count.return_value = len(buttons)
    collection.nth.side_effect = lambda i: buttons[i]

    def _locator(selector, **kwargs):
        if selector == SLOT_BUTTON:
            return collection
        return MagicMock()

    page.locator.side_effect = _locator
    return page


class TestFindSlots:
    def test_keeps_disabled_slots(self):
        buttons = [
            _make_slot_button("11/14/2026 8:30 AM", "slot-btn disabled"),
            _make_slot_button("11/14/2026 9:00 AM"),
        ]
        slots = find_slots(_make_page_with_slots(buttons))
        assert [s.start.hour for s in slots] == [8, 9]
        assert slots[0].disabled is True
        assert slots[1].disabled is False
        assert slots[0].locator is buttons[0]
        assert slots[0].raw == "11/14/2026 8:30 AM"

    def test_skips_unparseable_and_missing_starts(self):
        buttons = [
            _make_slot_button(None),
            _make_slot_button("whenever"),
            _make_slot_button("11/14/2026 10:00 AM"),
        ]
        slots = find_slots(_make_page_with_slots(buttons))
        assert len(slots) == 1
        assert slots[0].start == datetime(2026, 11, 14, 10, 0)

    def test_skips_slot_that_errors(self):
        broken = MagicMock()
        broken.get_attribute.side_effect = PlaywrightError("Element is not attached to the DOM")
        buttons = [broken, _make_slot_button("11/14/2026 11:00 AM")]
        slots = find_slots(_make_page_with_slots(buttons))
        assert [s.start.hour for s in slots] == [11]

    def test_no_buttons(self):
        assert find_slots(_make_page_with_slots([])) == []


# ---------------------------------------------------------------------------
# Calendar and slot rendering
# ---------------------------------------------------------------------------

def _make_calendar_page(day_visible: bool, header: str = "November 2026") -> MagicMock:
    page = MagicMock()
    header_loc = MagicMock()
    header_loc.count.return_value = 1
    header_loc.first.text_content.return_value = header
    days = MagicMock()
    days.filter.return_value.first.is_visible.return_value = day_visible
    next_btn = MagicMock()

    def _locator(selector, **kwargs):
        if "k-nav-fast" in selector:
            return header_loc
        if "k-nav-next" in selector:
            return next_btn
        return days

    page.locator.side_effect = _locator
    page._days = days
    page._next = next_btn
    return page


class TestSelectDate:
    def test_clicks_target_day(self):
        page = _make_calendar_page(day_visible=True)
        assert select_date(page, date(2026, 11, 14)) is True
        page._days.filter.return_value.first.click.assert_called_once()
        page._next.first.click.assert_not_called()

    def test_day_matched_exactly(self):
        page = _make_calendar_page(day_visible=True)
        select_date(page, date(2026, 11, 1))
        pattern = page._days.filter.call_args.kwargs["has_text"]
        assert pattern.match("1")
        assert not pattern.match("11")
        assert not pattern.match("21")

    def test_missing_day_falls_back_to_current_date(self):
        page = _make_calendar_page(day_visible=False)
        assert select_date(page, date(2026, 11, 14)) is False
        page._days.filter.return_value.first.click.assert_not_called()

    def test_pages_forward_to_target_month(self):
        page = _make_calendar_page(day_visible=True)
        header = page.locator(".k-calendar .k-nav-fast")
        header.first.text_content.side_effect = ["November 2026", "December 2026"]
        assert select_date(page, date(2026, 12, 1)) is True
        page._next.first.click.assert_called_once()

    def test_header_with_comma(self):
        page = _make_calendar_page(day_visible=True, header="November, 2026")
        assert select_date(page, date(2026, 11, 14)) is True
        page._next.first.click.assert_not_called()

    def test_month_never_reached_clicks_no_day(self):
        page = _make_calendar_page(day_visible=True, header="October 2026")
        assert select_date(page, date(2026, 11, 14)) is False
        assert page._next.first.click.call_count == 12
        page._days.filter.return_value.first.click.assert_not_called()

    def test_unreadable_header_does_not_page(self):
        page = _make_calendar_page(day_visible=True, header="Nov 26")
        assert select_date(page, date(2026, 11, 14)) is False
        page._next.first.click.assert_not_called()
        page._days.filter.return_value.first.click.assert_not_called()

    def test_never_pages_past_target_month(self):
        page = _make_calendar_page(day_visible=True, header="December 2026")
        assert select_date(page, date(2026, 11, 14)) is False
        page._next.first.click.assert_not_called()
        page._days.filter.return_value.first.click.assert_not_called()

    def test_no_target_date_closes_calendar(self):
        page = _make_calendar_page(day_visible=True)
        assert select_date(page, None) is True
        page.keyboard.press.assert_called_once_with("Escape")


class TestWaitForSlots:
    def test_slots_render(self):
        page = MagicMock()
        assert wait_for_slots(page, Timeouts()) is True
        page.wait_for_timeout.assert_not_called()

    def test_falls_back_to_fixed_delay(self):
        page = MagicMock()
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")
        assert wait_for_slots(page, Timeouts(slot_render_fallback_ms=500)) is False
        page.wait_for_timeout.assert_called_once_with(500)
