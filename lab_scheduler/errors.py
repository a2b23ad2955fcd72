from __future__ import annotations


class SchedulingError(ValueError):
    """Base class for every booking rule failure reported to the caller."""


class NotFound(SchedulingError):
    pass


class InvalidInterval(SchedulingError):
    pass


class ResourceInactive(SchedulingError):
    pass


class Conflict(SchedulingError):
    pass


class Forbidden(SchedulingError):
    pass


class InvalidTransition(SchedulingError):
    pass


class AlreadyTerminal(SchedulingError):
    pass


class InvalidField(SchedulingError):
    pass


class ReservationStorageError(RuntimeError):
    pass
