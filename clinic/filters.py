"""Appointment filters and staff/time-slot bucketing for the calendar."""
from __future__ import annotations

from datetime import date, datetime, timedelta

from .calendar_window import DEFAULT_WEEK_STARTS_ON, start_of_week
from .errors import InvalidChoice, NotNumeric

TYPE_CHOICES = ("all", "laser", "electrolysis")
DEFAULT_DAY_HOURS = tuple(range(7, 19))

# Bucket key used for every appointment when no staff members exist.
UNASSIGNED = None


def _parse_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class FilterCriteria:
    def __init__(self, type: str = "all", debt_only: bool = False, today_only: bool = False, staff_id=None):
        if type not in TYPE_CHOICES:
            raise InvalidChoice(f"type must be one of: {', '.join(TYPE_CHOICES)}", field="type")
        self.type = type
        self.debt_only = debt_only
        self.today_only = today_only
        self.staff_id = staff_id

    @classmethod
    def from_args(cls, args) -> "FilterCriteria":
        """Build criteria from query-string style arguments."""
        staff_id = args.get("staff_id")
        if staff_id in (None, ""):
            staff_id = None
        else:
            try:
                staff_id = int(staff_id)
            except (TypeError, ValueError):
                raise NotNumeric("staff_id must be an integer", field="staff_id") from None
        return cls(
            type=args.get("type", "all") or "all",
            debt_only=_parse_flag(args.get("debt_only", False)),
            today_only=_parse_flag(args.get("today_only", False)),
            staff_id=staff_id,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type,
            "debt_only": self.debt_only,
            "today_only": self.today_only,
            "staff_id": self.staff_id,
        }


def matches(appointment, criteria: FilterCriteria, today: date | None = None) -> bool:
    if criteria.type != "all" and appointment.treatment_type != criteria.type:
        return False
    if criteria.debt_only and appointment.payment_status != "debt":
        return False
    if criteria.today_only:
        today = today or date.today()
        if appointment.scheduled_at.date() != today:
            return False
    if criteria.staff_id is not None and appointment.staff_member_id != criteria.staff_id:
        return False
    return True


def filter_appointments(appointments, criteria: FilterCriteria, today: date | None = None) -> list:
    """Keep the appointments passing every active criterion, in input order."""
    today = today or date.today()
    return [appt for appt in appointments if matches(appt, criteria, today)]


def bucket_by_staff_and_hour(
    appointments,
    staff_list,
    day,
    view: str = "day",
    hours=DEFAULT_DAY_HOURS,
    week_starts_on: int = DEFAULT_WEEK_STARTS_ON,
) -> dict[tuple, list]:
    """Group appointments into grid cells.

    Day view cells are keyed ``(staff_id, hour)`` for the hours of ``day``;
    week view cells are keyed ``(staff_id, weekday)`` for the week containing
    ``day``. With an empty ``staff_list`` every appointment goes to the
    ``UNASSIGNED`` row. Appointments outside the grid are left out.
    """
    if view not in ("day", "week"):
        raise InvalidChoice("view must be day or week", field="view")
    if isinstance(day, datetime):
        day = day.date()

    staff_ids = [staff.staff_id for staff in staff_list] or [UNASSIGNED]
    if view == "day":
        slots = list(hours)
    else:
        first = start_of_week(day, week_starts_on)
        week_days = [first + timedelta(days=i) for i in range(7)]
        slots = [d.weekday() for d in week_days]

    buckets: dict[tuple, list] = {(staff_id, slot): [] for staff_id in staff_ids for slot in slots}

    for appt in appointments:
        when = appt.scheduled_at
        if view == "day":
            if when.date() != day:
                continue
            slot = when.hour
        else:
            if when.date() not in week_days:
                continue
            slot = when.date().weekday()

        row = UNASSIGNED if staff_ids == [UNASSIGNED] else appt.staff_member_id
        key = (row, slot)
        if key in buckets:
            buckets[key].append(appt)

    return buckets
