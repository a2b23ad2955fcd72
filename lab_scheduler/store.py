from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from threading import RLock
from typing import ContextManager, Iterable, Iterator

from .booking import Interval, overlaps
from .models import OCCUPYING_STATUSES, Reservation, ReservationStatus, StatusTransitionRecord


class ReservationStore(ABC):
    """Persistence contract the scheduling core depends on.

    Writes made inside ``transaction()`` are either all kept or, when the
    block raises, all discarded.
    """

    @abstractmethod
    def transaction(self) -> ContextManager["ReservationStore"]: ...

    @abstractmethod
    def save(self, reservation: Reservation) -> Reservation: ...

    @abstractmethod
    def find_by_id(self, reservation_id: str) -> Reservation | None: ...

    @abstractmethod
    def find_all(self) -> list[Reservation]: ...

    @abstractmethod
    def append_transition(self, record: StatusTransitionRecord) -> StatusTransitionRecord: ...

    @abstractmethod
    def transitions_for(self, reservation_id: str) -> list[StatusTransitionRecord]: ...

    def find_conflicting(
        self,
        resource_id: str,
        interval: Interval,
        exclude_id: str | None = None,
        statuses: Iterable[ReservationStatus] = OCCUPYING_STATUSES,
    ) -> list[Reservation]:
        wanted = frozenset(statuses)
        return [
            reservation
            for reservation in self.find_all()
            if reservation.resource_id == resource_id
            and reservation.reservation_id != exclude_id
            and reservation.status in wanted
            and overlaps(reservation.interval, interval)
        ]


class InMemoryReservationStore(ReservationStore):
    def __init__(self) -> None:
        self._reservations: dict[str, Reservation] = {}
        self._transitions: list[StatusTransitionRecord] = []
        self._lock = RLock()

    @contextmanager
    def transaction(self) -> Iterator["InMemoryReservationStore"]:
        with self._lock:
            reservations_snapshot = dict(self._reservations)
            transitions_snapshot = len(self._transitions)
            try:
                yield self
            except BaseException:
                self._reservations = reservations_snapshot
                del self._transitions[transitions_snapshot:]
                raise

    def save(self, reservation: Reservation) -> Reservation:
        with self._lock:
            self._reservations[reservation.reservation_id] = reservation
        return reservation

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        with self._lock:
            return self._reservations.get(reservation_id)

    def find_all(self) -> list[Reservation]:
        with self._lock:
            return list(self._reservations.values())

    def append_transition(self, record: StatusTransitionRecord) -> StatusTransitionRecord:
        with self._lock:
            self._transitions.append(record)
        return record

    def transitions_for(self, reservation_id: str) -> list[StatusTransitionRecord]:
        with self._lock:
            return [record for record in self._transitions if record.reservation_id == reservation_id]
