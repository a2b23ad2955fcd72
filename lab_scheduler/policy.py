from __future__ import annotations

from typing import Callable

from .errors import Forbidden
from .models import Actor, Reservation, Role, STAFF_ROLES

VIEW = "view"
CREATE = "create"
EDIT = "edit"
CANCEL = "cancel"
DECIDE = "decide"


def _is_owner(actor: Actor, reservation: Reservation | None) -> bool:
    return reservation is not None and reservation.requester_id == actor.actor_id


def can_view(actor: Actor, reservation: Reservation) -> bool:
    return actor.role in STAFF_ROLES or _is_owner(actor, reservation)


def can_create(actor: Actor, reservation: Reservation | None = None) -> bool:
    return actor.role == Role.INSTRUCTOR


def can_edit(actor: Actor, reservation: Reservation) -> bool:
    return _is_owner(actor, reservation)


def can_cancel(actor: Actor, reservation: Reservation) -> bool:
    return actor.role in STAFF_ROLES or _is_owner(actor, reservation)


def can_decide(actor: Actor, reservation: Reservation | None = None) -> bool:
    return actor.role in STAFF_ROLES


_GUARDS: dict[str, Callable[..., bool]] = {
    VIEW: can_view,
    CREATE: can_create,
    EDIT: can_edit,
    CANCEL: can_cancel,
    DECIDE: can_decide,
}

_DENIED_MESSAGES = {
    VIEW: "You are not allowed to view this reservation.",
    CREATE: "Only instructors can request reservations.",
    EDIT: "Only the requester can edit this reservation.",
    CANCEL: "You are not allowed to cancel this reservation.",
    DECIDE: "Only directors and administrators can decide on reservations.",
}


def is_allowed(operation: str, actor: Actor, reservation: Reservation | None = None) -> bool:
    try:
        guard = _GUARDS[operation]
    except KeyError:
        raise ValueError(f"Unknown operation: {operation}") from None
    return guard(actor, reservation)


def require(operation: str, actor: Actor, reservation: Reservation | None = None) -> None:
    if not is_allowed(operation, actor, reservation):
        raise Forbidden(_DENIED_MESSAGES[operation])
