"""Database models for the clinic treatment core."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import validates

from .errors import InvalidChoice, MissingField, OutOfRange, WorkflowStateError
from .extensions import db
from .validators import (is_blank, validate_heat_level, validate_pain_level,
                         validate_payment_amount)

TREATMENT_TYPES = ("laser", "electrolysis")
APPOINTMENT_STATUSES = ("open", "closed")
PAYMENT_STATUSES = ("unset", "paid", "partial", "debt")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _check_choice(field: str, value, choices) -> str:
    if value not in choices:
        raise InvalidChoice(f"{field} must be one of: {', '.join(choices)}", field=field)
    return value


class Client(db.Model):
    __tablename__ = "clients"

    client_id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(30))
    email = db.Column(db.String(255))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    appointments = db.relationship("Appointment", back_populates="client", lazy="dynamic")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.client_id,
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "notes": self.notes,
        }


class StaffMember(db.Model):
    __tablename__ = "staff_members"

    staff_id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(150))

    def to_dict(self) -> dict[str, object]:
        return {"id": self.staff_id, "full_name": self.full_name}


class TreatmentPlan(db.Model):
    """Catalog entry an appointment may be booked under."""

    __tablename__ = "treatment_plans"

    plan_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    treatment_type = db.Column(
        db.Enum(*TREATMENT_TYPES, name="plan_treatment_type", native_enum=False, validate_strings=True),
        nullable=False,
    )
    price = db.Column(db.Float, nullable=False, default=0)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.plan_id,
            "name": self.name,
            "treatment_type": self.treatment_type,
            "price": self.price,
        }


class BodyAreaConfig(db.Model):
    """Body-area catalog used to pre-populate full body treatments."""

    __tablename__ = "body_areas_config"

    area_id = db.Column(db.Integer, primary_key=True)
    area_name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.area_id,
            "area_name": self.area_name,
            "is_active": bool(self.is_active),
            "sort_order": self.sort_order,
        }


class Appointment(db.Model):
    """A laser or electrolysis session booked for a client."""

    __tablename__ = "appointments"

    appointment_id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.client_id"), nullable=False)
    staff_member_id = db.Column(db.Integer, db.ForeignKey("staff_members.staff_id"), nullable=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("treatment_plans.plan_id"), nullable=True)
    treatment_type = db.Column(
        db.Enum(*TREATMENT_TYPES, name="treatment_type", native_enum=False, validate_strings=True),
        nullable=False,
    )
    scheduled_at = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(
        db.Enum(*APPOINTMENT_STATUSES, name="appointment_status", native_enum=False, validate_strings=True),
        nullable=False,
        server_default="open",
    )
    payment_status = db.Column(
        db.Enum(*PAYMENT_STATUSES, name="payment_status", native_enum=False, validate_strings=True),
        nullable=False,
        server_default="unset",
    )
    payment_amount = db.Column(db.Float, nullable=False, default=0)
    notes = db.Column(db.Text)
    reminder_requested = db.Column(db.Boolean, nullable=False, default=False)
    reminder_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    client = db.relationship("Client", back_populates="appointments")
    staff_member = db.relationship("StaffMember")
    plan = db.relationship("TreatmentPlan")
    areas = db.relationship(
        "TreatmentArea",
        back_populates="appointment",
        order_by="TreatmentArea.area_id",
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("status", "open")
        kwargs.setdefault("payment_status", "unset")
        kwargs.setdefault("payment_amount", 0)
        kwargs.setdefault("reminder_requested", False)
        super().__init__(**kwargs)

    @validates("treatment_type")
    def _validate_treatment_type(self, key, value):
        return _check_choice(key, value, TREATMENT_TYPES)

    @validates("status")
    def _validate_status(self, key, value):
        _check_choice(key, value, APPOINTMENT_STATUSES)
        if self.status == "closed" and value != "closed":
            raise WorkflowStateError("A closed appointment cannot be reopened")
        return value

    @validates("payment_status")
    def _validate_payment_status(self, key, value):
        return _check_choice(key, value, PAYMENT_STATUSES)

    @validates("payment_amount")
    def _validate_payment_amount(self, key, value):
        return validate_payment_amount(value, field=key)

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "client_id": self.client_id,
            "client": {
                "id": self.client.client_id,
                "full_name": self.client.full_name,
            } if self.client else None,
            "staff_member_id": self.staff_member_id,
            "plan_id": self.plan_id,
            "treatment_type": self.treatment_type,
            "scheduled_at": _isoformat(self.scheduled_at),
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_amount": self.payment_amount,
            "notes": self.notes,
            "reminder_requested": bool(self.reminder_requested),
            "reminder_date": _isoformat(self.reminder_date),
            "areas": [area.to_dict() for area in self.areas],
        }


class TreatmentArea(db.Model):
    """Parameters recorded for one body area when an appointment is closed."""

    __tablename__ = "treatment_areas"

    area_id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False, index=True
    )
    area_name = db.Column(db.String(100), nullable=False)
    heat_level = db.Column(db.Float, nullable=False)
    pain_level = db.Column(db.Integer, nullable=True)
    treatment_number = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    appointment = db.relationship("Appointment", back_populates="areas")

    @validates("area_name")
    def _validate_area_name(self, key, value):
        if is_blank(value):
            raise MissingField("area_name is required", field=key)
        return value.strip()

    @validates("heat_level")
    def _validate_heat_level(self, key, value):
        return validate_heat_level(value, field=key)

    @validates("pain_level")
    def _validate_pain_level(self, key, value):
        return validate_pain_level(value, field=key)

    @validates("treatment_number")
    def _validate_treatment_number(self, key, value):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise OutOfRange("treatment_number must be a positive integer", field=key)
        return value

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.area_id,
            "appointment_id": self.appointment_id,
            "area_name": self.area_name,
            "heat_level": self.heat_level,
            "pain_level": self.pain_level,
            "treatment_number": self.treatment_number,
        }
