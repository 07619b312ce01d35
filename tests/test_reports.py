"""HTTP tests for heat history, debt report and today's overview."""
from __future__ import annotations

from datetime import date, datetime, time

import pytest

from clinic.extensions import db
from clinic.models import Appointment, Client, TreatmentArea


@pytest.fixture
def setup_data(app):
    client_row = Client(full_name="Lior Ben David")
    other = Client(full_name="Gal Peretz")
    db.session.add_all([client_row, other])
    db.session.flush()

    older = Appointment(
        client_id=client_row.client_id,
        treatment_type="laser",
        scheduled_at=datetime(2024, 1, 5, 10, 0),
        status="closed",
        payment_status="paid",
    )
    newer = Appointment(
        client_id=client_row.client_id,
        treatment_type="laser",
        scheduled_at=datetime(2024, 3, 5, 10, 0),
        status="closed",
        payment_status="debt",
        payment_amount=0,
    )
    today_open = Appointment(
        client_id=other.client_id,
        treatment_type="electrolysis",
        scheduled_at=datetime.combine(date.today(), time(9, 30)),
    )
    db.session.add_all([older, newer, today_open])
    db.session.flush()
    db.session.add_all([
        TreatmentArea(appointment_id=older.appointment_id, area_name="Legs", heat_level=18, treatment_number=1),
        TreatmentArea(appointment_id=older.appointment_id, area_name="Face", heat_level=10, treatment_number=1),
        TreatmentArea(appointment_id=newer.appointment_id, area_name="Legs", heat_level=22, treatment_number=2),
    ])
    db.session.commit()
    return {
        "client_id": client_row.client_id,
        "newer_id": newer.appointment_id,
        "today_id": today_open.appointment_id,
    }


def test_heat_history_200(client, setup_data):
    response = client.get(f"/clients/{setup_data['client_id']}/heat-history")
    data = response.get_json()

    assert response.status_code == 200
    assert data["client"]["full_name"] == "Lior Ben David"
    assert data["areas"] == [
        {"area_name": "Legs", "treatment_count": 2, "last_heat_level": 22.0, "last_treated_at": "2024-03-05T10:00:00"},
        {"area_name": "Face", "treatment_count": 1, "last_heat_level": 10.0, "last_treated_at": "2024-01-05T10:00:00"},
    ]


def test_heat_history_unknown_client_404(client, setup_data):
    response = client.get("/clients/999/heat-history")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_debt_report_200(client, setup_data):
    response = client.get("/reports/debts")
    data = response.get_json()

    assert response.status_code == 200
    assert [debt["id"] for debt in data["debts"]] == [setup_data["newer_id"]]
    assert data["debts"][0]["client_name"] == "Lior Ben David"
    assert data["debts"][0]["areas"] == ["Legs"]


def test_debt_report_bad_limit_400(client, setup_data):
    response = client.get("/reports/debts?limit=many")

    assert response.status_code == 400


def test_today_overview_200(client, setup_data):
    response = client.get("/dashboard/today")
    data = response.get_json()

    assert response.status_code == 200
    assert data["date"] == date.today().isoformat()
    assert [appt["id"] for appt in data["appointments"]] == [setup_data["today_id"]]
    assert data["open_count"] == 1
    assert data["client_count"] == 2


def test_recent_treatments_200(client, setup_data):
    response = client.get("/reports/recent")
    treatments = response.get_json()["treatments"]

    assert response.status_code == 200
    assert [row["id"] for row in treatments][0] == setup_data["today_id"]
    assert [row["scheduled_at"] for row in treatments][1:] == ["2024-03-05T10:00:00", "2024-01-05T10:00:00"]
    assert treatments[1]["client_name"] == "Lior Ben David"
    assert treatments[2]["areas"] == [
        {"area_name": "Legs", "heat_level": 18.0},
        {"area_name": "Face", "heat_level": 10.0},
    ]
    assert treatments[0]["areas"] == []


def test_recent_treatments_limit(client, setup_data):
    response = client.get("/reports/recent?limit=1")

    assert response.status_code == 200
    assert len(response.get_json()["treatments"]) == 1
    assert client.get("/reports/recent?limit=lots").status_code == 400
