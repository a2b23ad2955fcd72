from .audit import AuditTrail
from .booking import Interval, is_valid_interval, overlaps
from .config import SchedulerSettings, load_settings
from .conflicts import ConflictDetector
from .errors import (
	AlreadyTerminal,
	Conflict,
	Forbidden,
	InvalidField,
	InvalidInterval,
	InvalidTransition,
	NotFound,
	ReservationStorageError,
	ResourceInactive,
	SchedulingError,
)
from .locks import ResourceLocks
from .models import (
	OCCUPYING_STATUSES,
	Actor,
	Lab,
	Plan,
	Reservation,
	ReservationStatus,
	Role,
	StatusTransitionRecord,
	Unavailability,
)
from .registry import LabRegistry
from .service import ReservationService, build_service
from .store import InMemoryReservationStore, ReservationStore
from .yaml_store import YamlReservationStore

__all__ = [
	"AuditTrail",
	"Interval",
	"is_valid_interval",
	"overlaps",
	"SchedulerSettings",
	"load_settings",
	"ConflictDetector",
	"AlreadyTerminal",
	"Conflict",
	"Forbidden",
	"InvalidField",
	"InvalidInterval",
	"InvalidTransition",
	"NotFound",
	"ReservationStorageError",
	"ResourceInactive",
	"SchedulingError",
	"ResourceLocks",
	"OCCUPYING_STATUSES",
	"Actor",
	"Lab",
	"Plan",
	"Reservation",
	"ReservationStatus",
	"Role",
	"StatusTransitionRecord",
	"Unavailability",
	"LabRegistry",
	"ReservationService",
	"build_service",
	"InMemoryReservationStore",
	"ReservationStore",
	"YamlReservationStore",
]
