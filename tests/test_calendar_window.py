"""Tests for calendar window computation and navigation."""
from __future__ import annotations

import calendar
from datetime import date, datetime, time

import pytest

from clinic.calendar_window import days_in_window, navigate, today, window_for
from clinic.errors import InvalidChoice

SUNDAY = 6
MONDAY = 0


def test_month_window_padded_to_sunday_weeks() -> None:
    start, end = window_for(date(2024, 2, 15), "month", week_starts_on=SUNDAY)

    assert start == datetime(2024, 1, 28, 0, 0)
    assert end == datetime(2024, 3, 2, 23, 59, 59, 999000)
    assert start.weekday() == SUNDAY
    assert end.weekday() == (SUNDAY + 6) % 7


def test_month_window_padded_to_monday_weeks() -> None:
    start, end = window_for(date(2024, 2, 15), "month", week_starts_on=MONDAY)

    assert start.date() == date(2024, 1, 29)
    assert end.date() == date(2024, 3, 3)
    assert start.weekday() == MONDAY


@pytest.mark.parametrize("week_starts_on", range(7))
@pytest.mark.parametrize("reference", [date(2023, 12, 31), date(2024, 2, 1), date(2024, 9, 30), date(2025, 6, 15)])
def test_month_window_contains_whole_month(reference, week_starts_on) -> None:
    start, end = window_for(reference, "month", week_starts_on=week_starts_on)

    assert start.weekday() == week_starts_on
    assert end.weekday() == (week_starts_on + 6) % 7
    assert start.date() <= reference.replace(day=1)
    last_day = reference.replace(day=calendar.monthrange(reference.year, reference.month)[1])
    assert end.date() >= last_day
    assert len(days_in_window(start, end)) % 7 == 0


def test_week_window() -> None:
    start, end = window_for(date(2024, 2, 15), "week", week_starts_on=SUNDAY)

    assert start == datetime(2024, 2, 11)
    assert end.date() == date(2024, 2, 17)
    assert len(days_in_window(start, end)) == 7


def test_day_window_from_datetime() -> None:
    start, end = window_for(datetime(2024, 2, 15, 14, 30), "day")

    assert start == datetime.combine(date(2024, 2, 15), time.min)
    assert end == datetime(2024, 2, 15, 23, 59, 59, 999000)


def test_window_rejects_unknown_view() -> None:
    with pytest.raises(InvalidChoice):
        window_for(date(2024, 2, 15), "year")


def test_navigate_month_clamps_to_month_end() -> None:
    assert navigate(date(2024, 1, 31), "month", 1) == date(2024, 2, 29)
    assert navigate(date(2024, 3, 31), "month", -1) == date(2024, 2, 29)


def test_navigate_week_and_day() -> None:
    assert navigate(date(2024, 2, 15), "week", 1) == date(2024, 2, 22)
    assert navigate(date(2024, 2, 15), "week", -1) == date(2024, 2, 8)
    assert navigate(date(2024, 3, 1), "day", -1) == date(2024, 2, 29)


def test_navigate_rejects_bad_direction() -> None:
    with pytest.raises(InvalidChoice):
        navigate(date(2024, 2, 15), "day", 2)


def test_today_is_current_date() -> None:
    assert today() == date.today()
