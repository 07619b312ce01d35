"""Date windows for the month, week and day calendar views."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import relativedelta

from .errors import InvalidChoice

GRANULARITIES = ("month", "week", "day")
DEFAULT_WEEK_STARTS_ON = 6  # Sunday

END_OF_DAY = time(23, 59, 59, 999000)


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def _check_granularity(granularity: str) -> None:
    if granularity not in GRANULARITIES:
        raise InvalidChoice(f"view must be one of: {', '.join(GRANULARITIES)}", field="view")


def start_of_week(day, week_starts_on: int = DEFAULT_WEEK_STARTS_ON) -> date:
    day = _as_date(day)
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def end_of_week(day, week_starts_on: int = DEFAULT_WEEK_STARTS_ON) -> date:
    return start_of_week(day, week_starts_on) + timedelta(days=6)


def window_for(reference, granularity: str, week_starts_on: int = DEFAULT_WEEK_STARTS_ON) -> tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` datetimes shown by a view.

    The month window is padded out to whole weeks so it covers the full grid.
    """
    _check_granularity(granularity)
    day = _as_date(reference)

    if granularity == "month":
        first = day.replace(day=1)
        last = first + relativedelta(months=1) - timedelta(days=1)
        start_day = start_of_week(first, week_starts_on)
        end_day = end_of_week(last, week_starts_on)
    elif granularity == "week":
        start_day = start_of_week(day, week_starts_on)
        end_day = end_of_week(day, week_starts_on)
    else:
        start_day = end_day = day

    return datetime.combine(start_day, time.min), datetime.combine(end_day, END_OF_DAY)


def days_in_window(start: datetime, end: datetime) -> list[date]:
    first, last = _as_date(start), _as_date(end)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def navigate(reference, granularity: str, direction: int):
    """Move ``reference`` one month, week or day backwards or forwards."""
    _check_granularity(granularity)
    if direction not in (-1, 1):
        raise InvalidChoice("direction must be -1 or 1", field="direction")

    if granularity == "month":
        return reference + relativedelta(months=direction)
    if granularity == "week":
        return reference + timedelta(days=7 * direction)
    return reference + timedelta(days=direction)


def today() -> date:
    return date.today()
