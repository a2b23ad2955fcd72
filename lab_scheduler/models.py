from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .booking import Interval


class Role(str, Enum):
    INSTRUCTOR = "INSTRUCTOR"
    DIRECTOR = "DIRECTOR"
    ADMIN = "ADMIN"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_CHANGES = "NEEDS_CHANGES"
    CANCELLED = "CANCELLED"


STAFF_ROLES = frozenset({Role.DIRECTOR, Role.ADMIN})

OCCUPYING_STATUSES = frozenset(
    {ReservationStatus.APPROVED, ReservationStatus.PENDING, ReservationStatus.NEEDS_CHANGES}
)
EDITABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.NEEDS_CHANGES})
DECIDABLE_STATUSES = frozenset(
    {
        ReservationStatus.PENDING,
        ReservationStatus.NEEDS_CHANGES,
        ReservationStatus.APPROVED,
        ReservationStatus.REJECTED,
    }
)
DECISION_TARGETS = frozenset(
    {ReservationStatus.APPROVED, ReservationStatus.REJECTED, ReservationStatus.NEEDS_CHANGES}
)
REASON_REQUIRED_TARGETS = frozenset({ReservationStatus.REJECTED, ReservationStatus.NEEDS_CHANGES})
CANCELLABLE_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.NEEDS_CHANGES, ReservationStatus.APPROVED}
)


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: Role

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True)
class Lab:
    lab_id: str
    name: str
    capacity: int = 0
    equipment_count: int = 0
    active: bool = True

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Lab name must not be empty.")
        if self.capacity < 0:
            raise ValueError("Lab capacity must be zero or greater.")
        if self.equipment_count < 0:
            raise ValueError("Lab equipment count must be zero or greater.")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Lab":
        return Lab(
            lab_id=str(data["lab_id"]),
            name=str(data["name"]),
            capacity=int(data.get("capacity", 0)),
            equipment_count=int(data.get("equipment_count", 0)),
            active=bool(data.get("active", True)),
        )


@dataclass(frozen=True)
class Unavailability:
    lab_id: str
    interval: Interval
    reason: str

    def __post_init__(self) -> None:
        if not self.reason or not self.reason.strip():
            raise ValueError("Unavailability reason must not be empty.")


@dataclass(frozen=True)
class Plan:
    plan_id: str
    title: str


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    resource_id: str
    requester_id: str
    interval: Interval
    title: str
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime
    class_name: str | None = None
    description: str | None = None
    linked_plan_id: str | None = None
    status_reason: str | None = None

    @property
    def start(self) -> datetime:
        return self.interval.start

    @property
    def end(self) -> datetime:
        return self.interval.end

    @property
    def is_occupying(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "requester_id": self.requester_id,
            **self.interval.to_dict(),
            "title": self.title,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        for key in ("class_name", "description", "linked_plan_id", "status_reason"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        def optional(key: str) -> str | None:
            return str(data[key]) if data.get(key) is not None else None

        return Reservation(
            reservation_id=str(data["reservation_id"]),
            resource_id=str(data["resource_id"]),
            requester_id=str(data["requester_id"]),
            interval=Interval.from_dict(data),
            title=str(data["title"]),
            status=ReservationStatus(str(data["status"])),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
            class_name=optional("class_name"),
            description=optional("description"),
            linked_plan_id=optional("linked_plan_id"),
            status_reason=optional("status_reason"),
        )


@dataclass(frozen=True)
class StatusTransitionRecord:
    reservation_id: str
    from_status: ReservationStatus
    to_status: ReservationStatus
    occurred_at: datetime

    def __post_init__(self) -> None:
        if self.from_status == self.to_status:
            raise ValueError("Transition source and target status must differ.")

    def to_dict(self) -> dict[str, str]:
        return {
            "reservation_id": self.reservation_id,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "occurred_at": self.occurred_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "StatusTransitionRecord":
        return StatusTransitionRecord(
            reservation_id=str(data["reservation_id"]),
            from_status=ReservationStatus(str(data["from_status"])),
            to_status=ReservationStatus(str(data["to_status"])),
            occurred_at=datetime.fromisoformat(str(data["occurred_at"])),
        )
