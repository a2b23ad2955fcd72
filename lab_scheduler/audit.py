from __future__ import annotations

from datetime import datetime

from .models import ReservationStatus, StatusTransitionRecord
from .store import ReservationStore


class AuditTrail:
    def __init__(self, store: ReservationStore) -> None:
        self.store = store

    def append(
        self,
        reservation_id: str,
        from_status: ReservationStatus,
        to_status: ReservationStatus,
        occurred_at: datetime,
    ) -> StatusTransitionRecord:
        record = StatusTransitionRecord(
            reservation_id=reservation_id,
            from_status=from_status,
            to_status=to_status,
            occurred_at=occurred_at,
        )
        return self.store.append_transition(record)

    def list_for(self, reservation_id: str) -> list[StatusTransitionRecord]:
        """Return the transitions of one reservation, oldest first."""
        return sorted(self.store.transitions_for(reservation_id), key=lambda record: record.occurred_at)
