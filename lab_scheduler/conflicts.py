from __future__ import annotations

from typing import Iterable

from .booking import Interval
from .models import OCCUPYING_STATUSES, Reservation, ReservationStatus
from .store import ReservationStore


class ConflictDetector:
    """Finds bookings on the same lab whose interval overlaps a candidate.

    Only reservations in ``statuses`` count; REJECTED and CANCELLED ones are
    never part of the default occupying set.
    """

    def __init__(self, store: ReservationStore) -> None:
        self.store = store

    def find_conflicts(
        self,
        resource_id: str,
        interval: Interval,
        exclude_reservation_id: str | None = None,
        statuses: Iterable[ReservationStatus] = OCCUPYING_STATUSES,
    ) -> list[Reservation]:
        conflicts = self.store.find_conflicting(
            resource_id,
            interval,
            exclude_id=exclude_reservation_id,
            statuses=statuses,
        )
        return sorted(conflicts, key=lambda reservation: (reservation.start, reservation.end))

    def has_conflict(
        self,
        resource_id: str,
        interval: Interval,
        exclude_reservation_id: str | None = None,
        statuses: Iterable[ReservationStatus] = OCCUPYING_STATUSES,
    ) -> bool:
        return bool(self.find_conflicts(resource_id, interval, exclude_reservation_id, statuses))
