"""Per-client treatment history by body area.

Treatment numbers and last heat levels are derived from closed appointments
every time they are needed; nothing is cached or stored as a counter.
"""
from __future__ import annotations

from .models import Appointment, TreatmentArea
from .store import TableStore


class TreatmentHistory:
    """Counts and last heat level per area name for one client."""

    def __init__(self, client_id, counts=None, last_seen=None):
        self.client_id = client_id
        self._counts = dict(counts or {})
        # area_name -> (scheduled_at, heat_level)
        self._last_seen = dict(last_seen or {})

    def treatment_number_for(self, area_name: str) -> int:
        return self._counts.get(area_name, 0) + 1

    def last_heat_level_for(self, area_name: str) -> float | None:
        seen = self._last_seen.get(area_name)
        return seen[1] if seen else None

    def area_names(self) -> list[str]:
        return list(self._counts)

    def to_list(self) -> list[dict[str, object]]:
        """Known areas, most recently treated first."""
        entries = []
        for area_name, (scheduled_at, heat_level) in self._last_seen.items():
            entries.append({
                "area_name": area_name,
                "treatment_count": self._counts.get(area_name, 0),
                "last_heat_level": heat_level,
                "last_treated_at": scheduled_at.isoformat() if scheduled_at else None,
            })
        entries.sort(key=lambda entry: entry["last_treated_at"] or "", reverse=True)
        return entries


def build_history(client_id, appointments, areas) -> TreatmentHistory:
    """Fold appointment and area rows into a ``TreatmentHistory``.

    Only areas whose appointment belongs to ``client_id`` and is closed count.
    """
    closed = {
        appt.appointment_id: appt
        for appt in appointments
        if appt.client_id == client_id and appt.status == "closed"
    }

    counts: dict[str, int] = {}
    last_seen: dict[str, tuple] = {}
    latest_key: dict[str, tuple] = {}
    for area in areas:
        appt = closed.get(area.appointment_id)
        if appt is None:
            continue
        counts[area.area_name] = counts.get(area.area_name, 0) + 1

        # Later schedule wins; rows of the same appointment fall back to insert order.
        key = (appt.scheduled_at, area.area_id or 0)
        if area.area_name not in latest_key or key > latest_key[area.area_name]:
            latest_key[area.area_name] = key
            last_seen[area.area_name] = (appt.scheduled_at, area.heat_level)

    return TreatmentHistory(client_id, counts, last_seen)


def resolve_history(client_id, store: TableStore | None = None) -> TreatmentHistory:
    store = store or TableStore()
    appointments = store.select(Appointment, client_id=client_id, status="closed")
    if not appointments:
        return TreatmentHistory(client_id)
    areas = store.select(
        TreatmentArea,
        order_by=TreatmentArea.area_id,
        appointment_id=[appt.appointment_id for appt in appointments],
    )
    return build_history(client_id, appointments, areas)
