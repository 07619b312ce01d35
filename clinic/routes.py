"""HTTP routes for the clinic calendar and treatment workflow."""
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from .calendar_window import days_in_window, navigate, today, window_for
from .errors import (ClinicError, MissingField, NotFound, NotNumeric,
                     PersistenceError, ValidationError, WorkflowStateError)
from .extensions import db
from .filters import FilterCriteria, bucket_by_staff_and_hour, filter_appointments
from .models import Appointment, StaffMember
from .workflow import TreatmentWorkflow

bp = Blueprint("api", __name__)

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFound, 404),
    (WorkflowStateError, 409),
    (PersistenceError, 500),
)


def register_routes(app) -> None:
    from .routes_extended import bp_ext

    app.register_blueprint(bp)
    app.register_blueprint(bp_ext)


def error_response(exc: ClinicError, **extra) -> tuple[object, int]:
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    payload = exc.to_dict()
    payload.update(extra)
    return jsonify(payload), status


def parse_date(value, field: str = "date") -> date:
    if not value:
        return today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field} must be in YYYY-MM-DD format", field=field) from None


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _require(data: dict, key: str):
    if key not in data or data[key] is None:
        raise MissingField(f"{key} is required", field=key)
    return data[key]


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """Expose a simple uptime check endpoint."""
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database."""
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# ============================================================================
# Calendar
# ============================================================================

@bp.get("/calendar")
def calendar_view() -> tuple[dict[str, object], int]:
    """Appointments inside the month/week/day window around ``date``.

    Query parameters: date (YYYY-MM-DD, default today), view (month, week,
    day), type (all, laser, electrolysis), debt_only, today_only, staff_id.
    Day and week views also return staff/slot buckets.
    """
    try:
        reference = parse_date(request.args.get("date"))
        view = request.args.get("view", "month")
        criteria = FilterCriteria.from_args(request.args)
        week_starts_on = current_app.config["WEEK_STARTS_ON"]
        start, end = window_for(reference, view, week_starts_on)

        appointments = (
            Appointment.query.options(joinedload(Appointment.client))
            .filter(Appointment.scheduled_at >= start, Appointment.scheduled_at <= end)
            .order_by(Appointment.scheduled_at)
            .all()
        )
        visible = filter_appointments(appointments, criteria)

        payload = {
            "date": reference.isoformat(),
            "view": view,
            "window": {"start": start.isoformat(), "end": end.isoformat()},
            "criteria": criteria.to_dict(),
            "appointments": [appt.to_dict() for appt in visible],
        }

        if view == "month":
            payload["days"] = [day.isoformat() for day in days_in_window(start, end)]
        else:
            staff = StaffMember.query.order_by(StaffMember.full_name).all()
            buckets = bucket_by_staff_and_hour(
                visible,
                staff,
                reference,
                view=view,
                hours=current_app.config["DAY_VIEW_HOURS"],
                week_starts_on=week_starts_on,
            )
            payload["staff"] = [member.to_dict() for member in staff]
            payload["buckets"] = [
                {
                    "staff_id": staff_id,
                    "slot": slot,
                    "appointment_ids": [appt.appointment_id for appt in cell],
                }
                for (staff_id, slot), cell in buckets.items()
            ]

        return jsonify(payload), 200

    except ClinicError as exc:
        return error_response(exc)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load calendar appointments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/calendar/navigate")
def calendar_navigate() -> tuple[dict[str, object], int]:
    try:
        reference = parse_date(request.args.get("date"))
        view = request.args.get("view", "month")
        try:
            direction = int(request.args.get("direction", 1))
        except ValueError:
            raise NotNumeric("direction must be -1 or 1", field="direction") from None

        new_reference = navigate(reference, view, direction)
        start, end = window_for(new_reference, view, current_app.config["WEEK_STARTS_ON"])
        return jsonify({
            "date": new_reference.isoformat(),
            "view": view,
            "window": {"start": start.isoformat(), "end": end.isoformat()},
        }), 200
    except ClinicError as exc:
        return error_response(exc)


@bp.get("/calendar/today")
def calendar_today() -> tuple[dict[str, str], int]:
    return jsonify({"date": today().isoformat()}), 200


# ============================================================================
# Treatment workflow
# ============================================================================

def _workflows() -> dict[str, TreatmentWorkflow]:
    return current_app.extensions.setdefault("treatment_workflows", {})


def _is_stale(workflow: TreatmentWorkflow, now: datetime) -> bool:
    max_age = timedelta(seconds=current_app.config["WORKFLOW_MAX_AGE_SECONDS"])
    return now - workflow.started_at > max_age


def _register_workflow(workflow: TreatmentWorkflow) -> str:
    """Store ``workflow`` under a new token.

    Earlier workflows for the same appointment, and any started more than
    ``WORKFLOW_MAX_AGE_SECONDS`` ago, are dropped first.
    """
    registry = _workflows()
    now = datetime.now()
    for token, live in list(registry.items()):
        if live.appointment_id == workflow.appointment_id or _is_stale(live, now):
            current_app.logger.info(
                "Discarding workflow %s for appointment %s", token, live.appointment_id
            )
            del registry[token]

    token = uuid.uuid4().hex
    registry[token] = workflow
    return token


def _get_workflow(token: str) -> TreatmentWorkflow:
    registry = _workflows()
    workflow = registry.get(token)
    if workflow is not None and _is_stale(workflow, datetime.now()):
        del registry[token]
        workflow = None
    if workflow is None:
        raise NotFound("Workflow not found")
    return workflow


def _run_workflow_action(token: str, action, status: int = 200):
    try:
        workflow = _get_workflow(token)
        extra = action(workflow)
        payload = {"token": token, "workflow": workflow.to_dict()}
        if isinstance(extra, dict):
            payload.update(extra)
        return jsonify(payload), status
    except ClinicError as exc:
        return error_response(exc)


@bp.post("/appointments/<int:appointment_id>/workflow")
def start_workflow(appointment_id: int) -> tuple[dict[str, object], int]:
    """Open the treatment workflow for an open appointment."""
    try:
        workflow = TreatmentWorkflow.start(
            appointment_id,
            pain_level_required=current_app.config["PAIN_LEVEL_REQUIRED"],
            reminder_month_options=current_app.config["REMINDER_MONTH_OPTIONS"],
        )
    except ClinicError as exc:
        return error_response(exc)

    token = _register_workflow(workflow)
    return jsonify({"token": token, "workflow": workflow.to_dict()}), 201


@bp.get("/workflows/<token>")
def get_workflow(token: str):
    return _run_workflow_action(token, lambda workflow: None)


@bp.delete("/workflows/<token>")
def abandon_workflow(token: str):
    try:
        workflow = _get_workflow(token)
        workflow.abandon()
    except ClinicError as exc:
        return error_response(exc)

    _workflows().pop(token, None)
    return jsonify({"token": token, "state": workflow.state}), 200


@bp.put("/workflows/<token>/mode")
def set_area_mode(token: str):
    data = _json_body()
    return _run_workflow_action(token, lambda workflow: workflow.set_area_mode(_require(data, "mode")))


@bp.post("/workflows/<token>/areas")
def add_area(token: str):
    return _run_workflow_action(token, lambda workflow: {"index": workflow.add_area()}, status=201)


@bp.put("/workflows/<token>/areas/<int:index>")
def update_area(token: str, index: int):
    """Set one field of an area entry: ``{"field": ..., "value": ...}``."""
    data = _json_body()

    def action(workflow):
        field = _require(data, "field")
        if "value" not in data:
            raise MissingField("value is required", field="value")
        workflow.update_area(index, field, data["value"])

    return _run_workflow_action(token, action)


@bp.delete("/workflows/<token>/areas/<int:index>")
def remove_area(token: str, index: int):
    return _run_workflow_action(token, lambda workflow: workflow.remove_area(index))


@bp.post("/workflows/<token>/advance")
def advance_workflow(token: str):
    return _run_workflow_action(token, lambda workflow: workflow.advance())


@bp.post("/workflows/<token>/retreat")
def retreat_workflow(token: str):
    return _run_workflow_action(token, lambda workflow: workflow.retreat())


@bp.put("/workflows/<token>/payment")
def set_payment(token: str):
    data = _json_body()
    return _run_workflow_action(
        token,
        lambda workflow: workflow.set_payment_status(
            _require(data, "payment_status"), data.get("payment_amount")
        ),
    )


@bp.put("/workflows/<token>/reminder")
def set_reminder(token: str):
    """Set the follow-up reminder and, optionally, the closing notes."""
    data = _json_body()

    def action(workflow):
        workflow.set_reminder(data.get("reminder_requested", False), data.get("months"))
        if "notes" in data:
            workflow.set_notes(data["notes"])

    return _run_workflow_action(token, action)


@bp.post("/workflows/<token>/commit")
def commit_workflow(token: str):
    """Write the treatment and close the appointment.

    A failed write leaves the workflow in follow-up capture; the response
    names the failed step and the steps already written.
    """
    try:
        workflow = _get_workflow(token)
        result = workflow.commit()
    except PersistenceError as exc:
        return error_response(exc, workflow=workflow.to_dict())
    except ClinicError as exc:
        return error_response(exc)

    _workflows().pop(token, None)
    return jsonify({"token": token, "result": result, "state": workflow.state}), 200
