"""Tests for the row-level table store."""
from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from clinic.errors import NotFound, OutOfRange, PersistenceError
from clinic.models import Appointment, BodyAreaConfig, Client
from clinic.store import TableStore


@pytest.fixture
def store(app):
    return TableStore()


def test_insert_returns_ids_and_select_filters(store) -> None:
    ids = store.insert(BodyAreaConfig, [
        {"area_name": "Legs", "sort_order": 2},
        {"area_name": "Arms", "sort_order": 1},
        {"area_name": "Back", "sort_order": 3, "is_active": False},
    ])

    assert len(ids) == 3
    active = store.select(BodyAreaConfig, order_by=BodyAreaConfig.sort_order, is_active=True)
    assert [row.area_name for row in active] == ["Arms", "Legs"]

    picked = store.select(BodyAreaConfig, area_id=[ids[0], ids[2]])
    assert sorted(row.area_name for row in picked) == ["Back", "Legs"]


def test_insert_nothing(store) -> None:
    assert store.insert(BodyAreaConfig, []) == []


def test_update_row(store) -> None:
    (client_id,) = store.insert(Client, [{"full_name": "Maya"}])
    (appointment_id,) = store.insert(Appointment, [{
        "client_id": client_id,
        "treatment_type": "laser",
        "scheduled_at": datetime(2024, 2, 15, 10, 0),
    }])

    store.update(Appointment, appointment_id, {"payment_status": "debt", "status": "closed"})

    row = store.get(Appointment, appointment_id)
    assert row.status == "closed"
    assert row.payment_status == "debt"


def test_update_missing_row(store) -> None:
    with pytest.raises(NotFound):
        store.update(Appointment, 404, {"status": "closed"})


def test_update_invalid_value_is_not_written(store) -> None:
    (client_id,) = store.insert(Client, [{"full_name": "Maya"}])
    (appointment_id,) = store.insert(Appointment, [{
        "client_id": client_id,
        "treatment_type": "laser",
        "scheduled_at": datetime(2024, 2, 15, 10, 0),
    }])

    with pytest.raises(OutOfRange):
        store.update(Appointment, appointment_id, {"notes": "changed", "payment_amount": -10})

    assert store.get(Appointment, appointment_id).notes is None


def test_commit_failure_becomes_persistence_error(store) -> None:
    failure = OperationalError("INSERT", {}, Exception("database is locked"))

    with patch("sqlalchemy.orm.Session.commit", side_effect=failure):
        with pytest.raises(PersistenceError) as excinfo:
            store.insert(Client, [{"full_name": "Maya"}])

    assert excinfo.value.code == "database_error"
    assert store.select(Client) == []
