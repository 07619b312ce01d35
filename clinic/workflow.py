"""Treatment completion workflow.

An operator closes an open appointment in three input steps:

1. area capture   - body areas with heat level and optional pain level
2. payment capture - paid / partial / debt, optional amount
3. follow-up      - optional reminder appointment N months ahead, notes

``commit()`` then writes the areas, closes the appointment and, when asked
for, books the follow-up appointment. These are separate writes: if one
fails the earlier ones stay written and the workflow stays in follow-up
capture so the commit can be retried. A retry inserts the area rows again.
"""
from __future__ import annotations

from datetime import datetime

from dateutil.relativedelta import relativedelta
from flask import current_app

from .errors import (ClinicError, InvalidChoice, MissingField, NotFound,
                     PersistenceError, WorkflowStateError)
from .history import TreatmentHistory, resolve_history
from .models import Appointment, BodyAreaConfig, TreatmentArea
from .store import TableStore
from .validators import (is_blank, parse_whole_number, validate_heat_level,
                         validate_pain_level, validate_payment_amount)

AREA_CAPTURE = "area_capture"
PAYMENT_CAPTURE = "payment_capture"
FOLLOW_UP_CAPTURE = "follow_up_capture"
COMMITTED = "committed"
ABANDONED = "abandoned"

SINGLE = "single"
FULL_BODY = "fullBody"
AREA_MODES = (SINGLE, FULL_BODY)
AREA_FIELDS = ("area_name", "heat_level", "pain_level")

PAYMENT_CHOICES = ("paid", "partial", "debt")
DEFAULT_REMINDER_MONTH_OPTIONS = (1, 2, 3, 6, 12)

COMMIT_STEPS = ("insert_areas", "close_appointment", "create_follow_up")


class AreaEntry:
    """One row of the area form; values are kept as typed until validated."""

    def __init__(self, area_name: str = "", heat_level="", pain_level="", fixed_name: bool = False):
        self.area_name = area_name
        self.heat_level = heat_level
        self.pain_level = pain_level
        self.fixed_name = fixed_name

    def to_dict(self, history: TreatmentHistory | None = None) -> dict[str, object]:
        name = (self.area_name or "").strip()
        return {
            "area_name": self.area_name,
            "heat_level": self.heat_level,
            "pain_level": self.pain_level,
            "fixed_name": self.fixed_name,
            "treatment_number": history.treatment_number_for(name) if history and name else None,
            "last_heat_level": history.last_heat_level_for(name) if history and name else None,
        }


def initial_areas(mode: str, body_area_names) -> list[AreaEntry]:
    """Fresh area list for ``mode``: one blank row, or one row per catalog area."""
    if mode == SINGLE:
        return [AreaEntry()]
    if mode == FULL_BODY:
        return [AreaEntry(area_name=name, fixed_name=True) for name in body_area_names]
    raise InvalidChoice(f"mode must be one of: {', '.join(AREA_MODES)}", field="mode")


def active_area_names(body_areas) -> list[str]:
    active = [area for area in body_areas if area.is_active]
    active.sort(key=lambda area: (area.sort_order, area.area_name))
    return [area.area_name for area in active]


class TreatmentWorkflow:
    def __init__(
        self,
        appointment: Appointment,
        history: TreatmentHistory,
        body_areas=(),
        store: TableStore | None = None,
        pain_level_required: bool = False,
        reminder_month_options=DEFAULT_REMINDER_MONTH_OPTIONS,
        clock=datetime.now,
    ):
        # Plain copies: the instance outlives the session the row came from.
        self.appointment_id = appointment.appointment_id
        self.client_id = appointment.client_id
        self.treatment_type = appointment.treatment_type
        self.staff_member_id = appointment.staff_member_id
        self.plan_id = appointment.plan_id
        self.scheduled_at = appointment.scheduled_at

        self.history = history
        self.body_area_names = active_area_names(body_areas)
        self.store = store or TableStore()
        self.pain_level_required = pain_level_required
        self.reminder_month_options = tuple(reminder_month_options)
        self.clock = clock
        self.started_at = datetime.now()

        self.state = AREA_CAPTURE
        self.area_mode = SINGLE
        self.areas = initial_areas(SINGLE, self.body_area_names)
        self.payment_status: str | None = None
        self.payment_amount = float(appointment.payment_amount or 0)
        self.reminder_requested = False
        self.reminder_months: int | None = None
        self.notes = appointment.notes or ""

        self.completed_steps: list[str] = []
        self.failed_step: str | None = None
        self.last_error: ClinicError | None = None
        self.follow_up_id = None
        self.committed_at: datetime | None = None
        self._committing = False

    @classmethod
    def start(cls, appointment_id, store: TableStore | None = None, **options) -> "TreatmentWorkflow":
        """Load an open appointment and resolve the client's area history."""
        store = store or TableStore()
        appointment = store.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound(f"Appointment {appointment_id} not found")
        if not appointment.is_open:
            raise WorkflowStateError(f"Appointment {appointment_id} is already closed")

        history = resolve_history(appointment.client_id, store)
        body_areas = store.select(BodyAreaConfig, order_by=BodyAreaConfig.sort_order, is_active=True)
        return cls(appointment, history, body_areas, store=store, **options)

    # -- area capture -----------------------------------------------------

    def _require_state(self, state: str, action: str) -> None:
        if self.state != state:
            raise WorkflowStateError(f"Cannot {action} while in {self.state}")

    def _area_at(self, index: int) -> AreaEntry:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.areas):
            raise NotFound(f"Area {index} not found")
        return self.areas[index]

    def set_area_mode(self, mode: str) -> None:
        self._require_state(AREA_CAPTURE, "change the area mode")
        if mode not in AREA_MODES:
            raise InvalidChoice(f"mode must be one of: {', '.join(AREA_MODES)}", field="mode")
        if mode == FULL_BODY and self.treatment_type != "laser":
            raise WorkflowStateError("Full body mode is only available for laser treatments")
        self.area_mode = mode
        self.areas = initial_areas(mode, self.body_area_names)

    def update_area(self, index: int, field: str, value) -> AreaEntry:
        self._require_state(AREA_CAPTURE, "edit areas")
        if field not in AREA_FIELDS:
            raise InvalidChoice(f"field must be one of: {', '.join(AREA_FIELDS)}", field="field")
        area = self._area_at(index)
        if field == "area_name":
            if area.fixed_name:
                raise WorkflowStateError("Area names are fixed in full body mode")
            value = "" if value is None else str(value)
        setattr(area, field, value)
        return area

    def add_area(self) -> int:
        self._require_state(AREA_CAPTURE, "add areas")
        if self.area_mode != SINGLE:
            raise WorkflowStateError("Areas cannot be added in full body mode")
        self.areas.append(AreaEntry())
        return len(self.areas) - 1

    def remove_area(self, index: int) -> None:
        self._require_state(AREA_CAPTURE, "remove areas")
        if self.area_mode != SINGLE:
            raise WorkflowStateError("Areas cannot be removed in full body mode")
        self._area_at(index)
        if len(self.areas) == 1:
            raise WorkflowStateError("At least one area is required")
        del self.areas[index]

    def validated_areas(self) -> list[dict[str, object]]:
        """Validate every area entry, raising the first problem found."""
        if not self.areas:
            raise MissingField("At least one area is required", field="areas")

        validated = []
        for index, area in enumerate(self.areas):
            prefix = f"areas[{index}]"
            if is_blank(area.area_name):
                raise MissingField("area_name is required", field=f"{prefix}.area_name")
            if is_blank(area.heat_level):
                raise MissingField("heat_level is required", field=f"{prefix}.heat_level")
            validated.append({
                "area_name": area.area_name.strip(),
                "heat_level": validate_heat_level(area.heat_level, field=f"{prefix}.heat_level"),
                "pain_level": validate_pain_level(
                    area.pain_level,
                    required=self.pain_level_required,
                    field=f"{prefix}.pain_level",
                ),
            })
        return validated

    # -- transitions ------------------------------------------------------

    def guard_error(self) -> ClinicError | None:
        """The error that would block ``advance()`` right now, if any."""
        try:
            self._check_guard()
        except ClinicError as exc:
            return exc
        return None

    def _check_guard(self) -> None:
        if self.state == AREA_CAPTURE:
            self.validated_areas()
        elif self.state == PAYMENT_CAPTURE:
            if self.payment_status is None:
                raise MissingField("payment_status is required", field="payment_status")
        elif self.state == FOLLOW_UP_CAPTURE:
            raise WorkflowStateError("Follow-up capture is the last step; commit instead")
        else:
            raise WorkflowStateError(f"Workflow is {self.state}")

    def advance(self) -> str:
        self._check_guard()
        self.state = PAYMENT_CAPTURE if self.state == AREA_CAPTURE else FOLLOW_UP_CAPTURE
        return self.state

    def retreat(self) -> str:
        if self.state == PAYMENT_CAPTURE:
            self.state = AREA_CAPTURE
        elif self.state == FOLLOW_UP_CAPTURE:
            self.state = PAYMENT_CAPTURE
        else:
            raise WorkflowStateError(f"Cannot go back from {self.state}")
        return self.state

    # -- payment and follow-up ----------------------------------------------

    def set_payment_status(self, status: str, amount=None) -> None:
        self._require_state(PAYMENT_CAPTURE, "set the payment status")
        if status not in PAYMENT_CHOICES:
            raise InvalidChoice(
                f"payment_status must be one of: {', '.join(PAYMENT_CHOICES)}",
                field="payment_status",
            )
        if amount is not None and not is_blank(amount):
            self.payment_amount = validate_payment_amount(amount)
        self.payment_status = status

    def set_reminder(self, requested: bool, months=None) -> None:
        self._require_state(FOLLOW_UP_CAPTURE, "set a reminder")
        if not isinstance(requested, bool):
            raise InvalidChoice("reminder_requested must be true or false", field="reminder_requested")
        if not requested:
            self.reminder_requested = False
            self.reminder_months = None
            return
        if is_blank(months):
            raise MissingField("months is required when a reminder is requested", field="months")
        months = parse_whole_number(months, field="months")
        if months not in self.reminder_month_options:
            options = ", ".join(str(option) for option in self.reminder_month_options)
            raise InvalidChoice(f"months must be one of: {options}", field="months")
        self.reminder_requested = True
        self.reminder_months = months

    def set_notes(self, notes: str | None) -> None:
        self._require_state(FOLLOW_UP_CAPTURE, "edit notes")
        self.notes = notes or ""

    # -- commit -------------------------------------------------------------

    def commit(self) -> dict[str, object]:
        """Write areas, close the appointment and book the follow-up."""
        self._require_state(FOLLOW_UP_CAPTURE, "commit")
        if self._committing:
            raise WorkflowStateError("A commit is already in progress")

        # Validation happens before the first write so a bad entry writes nothing.
        area_rows = [
            dict(
                entry,
                appointment_id=self.appointment_id,
                treatment_number=self.history.treatment_number_for(entry["area_name"]),
            )
            for entry in self.validated_areas()
        ]
        if self.payment_status is None:
            raise MissingField("payment_status is required", field="payment_status")

        now = self.clock()
        reminder_date = now + relativedelta(months=self.reminder_months) if self.reminder_requested else None

        self._committing = True
        self.completed_steps = []
        self.failed_step = None
        self.last_error = None
        step = None
        try:
            step = "insert_areas"
            area_ids = self.store.insert(TreatmentArea, area_rows)
            self.completed_steps.append(step)

            step = "close_appointment"
            self.store.update(Appointment, self.appointment_id, {
                "payment_status": self.payment_status,
                "payment_amount": self.payment_amount,
                "status": "closed",
                "notes": self.notes,
                "reminder_requested": self.reminder_requested,
                "reminder_date": reminder_date,
            })
            self.completed_steps.append(step)

            if self.reminder_requested:
                step = "create_follow_up"
                (self.follow_up_id,) = self.store.insert(Appointment, [{
                    "client_id": self.client_id,
                    "treatment_type": self.treatment_type,
                    "staff_member_id": self.staff_member_id,
                    "plan_id": self.plan_id,
                    "scheduled_at": reminder_date,
                    "status": "open",
                }])
                self.completed_steps.append(step)
        except ClinicError as exc:
            self.failed_step = step
            self.last_error = exc
            if isinstance(exc, PersistenceError):
                exc.step = step
                exc.completed_steps = list(self.completed_steps)
            current_app.logger.warning(
                "Treatment commit for appointment %s failed at %s after %s",
                self.appointment_id,
                step,
                self.completed_steps or "no steps",
            )
            raise
        finally:
            self._committing = False

        self.state = COMMITTED
        self.committed_at = now
        current_app.logger.info(
            "Closed appointment %s with %d areas (follow-up: %s)",
            self.appointment_id,
            len(area_ids),
            self.follow_up_id,
        )
        return {
            "appointment_id": self.appointment_id,
            "area_ids": area_ids,
            "follow_up_id": self.follow_up_id,
            "reminder_date": reminder_date.isoformat() if reminder_date else None,
            "completed_steps": list(self.completed_steps),
        }

    def abandon(self) -> None:
        if self.state == COMMITTED:
            raise WorkflowStateError("Workflow is already committed")
        self.state = ABANDONED

    def to_dict(self) -> dict[str, object]:
        guard = self.guard_error() if self.state in (AREA_CAPTURE, PAYMENT_CAPTURE) else None
        return {
            "appointment_id": self.appointment_id,
            "client_id": self.client_id,
            "treatment_type": self.treatment_type,
            "state": self.state,
            "area_mode": self.area_mode,
            "full_body_available": self.treatment_type == "laser",
            "areas": [area.to_dict(self.history) for area in self.areas],
            "can_advance": self.state in (AREA_CAPTURE, PAYMENT_CAPTURE) and guard is None,
            "blocked_by": guard.to_dict() if guard else None,
            "payment_status": self.payment_status,
            "payment_amount": self.payment_amount,
            "reminder_requested": self.reminder_requested,
            "reminder_months": self.reminder_months,
            "reminder_month_options": list(self.reminder_month_options),
            "notes": self.notes,
            "commit": {
                "steps": list(COMMIT_STEPS),
                "completed_steps": list(self.completed_steps),
                "failed_step": self.failed_step,
                "error": self.last_error.to_dict() if self.last_error else None,
            },
        }
