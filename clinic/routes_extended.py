"""Read-only report routes: heat history, debts, recent treatments, today."""
from __future__ import annotations

from datetime import datetime, time

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from .calendar_window import END_OF_DAY, today
from .errors import ClinicError
from .extensions import db
from .history import resolve_history
from .models import Appointment, Client
from .routes import error_response

bp_ext = Blueprint("api_ext", __name__)


@bp_ext.get("/clients/<int:client_id>/heat-history")
def get_heat_history(client_id: int) -> tuple[dict[str, object], int]:
    """Per-area treatment count and last heat level for a client."""
    try:
        client = db.session.get(Client, client_id)
        if not client:
            return jsonify({"error": "not_found", "message": "Client not found"}), 404

        history = resolve_history(client_id)
        return jsonify({"client": client.to_dict(), "areas": history.to_list()}), 200

    except ClinicError as exc:
        return error_response(exc)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load heat history", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/reports/debts")
def get_debt_report() -> tuple[dict[str, object], int]:
    """Appointments still owing payment, newest first."""
    try:
        limit = min(200, max(1, int(request.args.get("limit", 50))))
    except ValueError:
        return jsonify({"error": "invalid_input", "message": "limit must be an integer"}), 400

    try:
        debts = (
            Appointment.query.options(joinedload(Appointment.client))
            .filter(Appointment.payment_status == "debt")
            .order_by(Appointment.scheduled_at.desc())
            .limit(limit)
            .all()
        )
        return jsonify({
            "debts": [
                {
                    "id": appt.appointment_id,
                    "client_name": appt.client.full_name if appt.client else None,
                    "treatment_type": appt.treatment_type,
                    "scheduled_at": appt.scheduled_at.isoformat(),
                    "payment_amount": appt.payment_amount,
                    "areas": [area.area_name for area in appt.areas],
                }
                for appt in debts
            ],
        }), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load debt report", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/reports/recent")
def get_recent_treatments() -> tuple[dict[str, object], int]:
    """Newest appointments with their client and treated areas."""
    try:
        limit = min(200, max(1, int(request.args.get("limit", 50))))
    except ValueError:
        return jsonify({"error": "invalid_input", "message": "limit must be an integer"}), 400

    try:
        appointments = (
            Appointment.query.options(
                joinedload(Appointment.client), selectinload(Appointment.areas)
            )
            .order_by(Appointment.scheduled_at.desc())
            .limit(limit)
            .all()
        )
        return jsonify({
            "treatments": [
                {
                    "id": appt.appointment_id,
                    "client_name": appt.client.full_name if appt.client else None,
                    "treatment_type": appt.treatment_type,
                    "scheduled_at": appt.scheduled_at.isoformat(),
                    "status": appt.status,
                    "payment_status": appt.payment_status,
                    "areas": [
                        {"area_name": area.area_name, "heat_level": area.heat_level}
                        for area in appt.areas
                    ],
                }
                for appt in appointments
            ],
        }), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load recent treatments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/dashboard/today")
def get_today_overview() -> tuple[dict[str, object], int]:
    """Today's appointments, how many are still open, and the client count."""
    try:
        day = today()
        appointments = (
            Appointment.query.options(joinedload(Appointment.client))
            .filter(
                Appointment.scheduled_at >= datetime.combine(day, time.min),
                Appointment.scheduled_at <= datetime.combine(day, END_OF_DAY),
            )
            .order_by(Appointment.scheduled_at.asc())
            .all()
        )
        return jsonify({
            "date": day.isoformat(),
            "appointments": [appt.to_dict() for appt in appointments],
            "open_count": sum(1 for appt in appointments if appt.is_open),
            "client_count": Client.query.count(),
        }), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load today's overview", exc_info=exc)
        return jsonify({"error": "database_error"}), 500
