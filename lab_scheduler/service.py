from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable
from uuid import uuid4
import logging

from . import policy
from .audit import AuditTrail
from .booking import Interval, is_aware
from .config import SchedulerSettings
from .conflicts import ConflictDetector
from .errors import (
    AlreadyTerminal,
    Conflict,
    InvalidField,
    InvalidInterval,
    InvalidTransition,
    NotFound,
    ResourceInactive,
)
from .locks import ResourceLocks
from .models import (
    CANCELLABLE_STATUSES,
    DECIDABLE_STATUSES,
    DECISION_TARGETS,
    EDITABLE_STATUSES,
    OCCUPYING_STATUSES,
    REASON_REQUIRED_TARGETS,
    Actor,
    Plan,
    Reservation,
    ReservationStatus,
    StatusTransitionRecord,
)
from .registry import LabRegistry
from .store import ReservationStore
from .yaml_store import YamlReservationStore

logger = logging.getLogger(__name__)

PlanLookup = Callable[[str], Plan | None]


class ReservationService:
    """Lifecycle of lab reservations: request, edit, decide and cancel.

    Every write for a lab runs under that lab's lock and inside one store
    transaction, so the conflict check and the commit that depends on it can
    not interleave with another transition on the same lab. Collaborator
    lookups (lab registry, plan lookup) happen before the lock is taken.
    """

    def __init__(
        self,
        store: ReservationStore,
        registry: LabRegistry,
        settings: SchedulerSettings | None = None,
        now_provider: Callable[[], datetime] | None = None,
        plan_lookup: PlanLookup | None = None,
        locks: ResourceLocks | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.settings = settings or SchedulerSettings()
        self.conflicts = ConflictDetector(store)
        self.audit = AuditTrail(store)
        self.locks = locks or ResourceLocks()
        self._clock: Callable[[], datetime] = now_provider or datetime.now
        self._plan_lookup = plan_lookup

    @property
    def blocking_statuses(self) -> frozenset[ReservationStatus]:
        if self.settings.queue_competing_requests:
            return frozenset({ReservationStatus.APPROVED})
        return OCCUPYING_STATUSES

    # ---------- transitions ----------
    def create_reservation(
        self,
        actor: Actor,
        resource_id: str,
        start: datetime,
        end: datetime,
        title: str,
        class_name: str | None = None,
        description: str | None = None,
        linked_plan_id: str | None = None,
    ) -> Reservation:
        policy.require(policy.CREATE, actor)
        interval = Interval(start, end)
        self._ensure_future(interval)
        title, class_name, description = self._validated_fields(title, class_name, description)

        lab = self.registry.get_lab(resource_id)
        if not lab.active:
            raise ResourceInactive(f"Lab '{lab.name}' is not accepting bookings.")
        self._ensure_open(resource_id, interval)
        plan_id = self._resolve_plan(linked_plan_id)

        with self.locks.hold(resource_id):
            with self.store.transaction():
                self._ensure_no_conflict(resource_id, interval)
                now = self._clock()
                reservation = Reservation(
                    reservation_id=str(uuid4()),
                    resource_id=resource_id,
                    requester_id=actor.actor_id,
                    interval=interval,
                    title=title,
                    status=ReservationStatus.PENDING,
                    created_at=now,
                    updated_at=now,
                    class_name=class_name,
                    description=description,
                    linked_plan_id=plan_id,
                )
                self.store.save(reservation)

        logger.info(
            "Reservation %s requested by %s on lab %s for %s - %s",
            reservation.reservation_id,
            actor.actor_id,
            resource_id,
            interval.start.isoformat(),
            interval.end.isoformat(),
        )
        return reservation

    def edit_reservation(
        self,
        actor: Actor,
        reservation_id: str,
        start: datetime,
        end: datetime,
        title: str,
        class_name: str | None = None,
        description: str | None = None,
    ) -> Reservation:
        interval = Interval(start, end)
        title, class_name, description = self._validated_fields(title, class_name, description)
        current = self._get(reservation_id)
        policy.require(policy.EDIT, actor, current)
        self._ensure_editable(current)
        self._ensure_open(current.resource_id, interval)

        with self.locks.hold(current.resource_id):
            with self.store.transaction():
                current = self._get(reservation_id)
                self._ensure_editable(current)
                self._ensure_future(interval)
                self._ensure_no_conflict(current.resource_id, interval, exclude_reservation_id=reservation_id)

                now = self._clock()
                updated = replace(
                    current,
                    interval=interval,
                    title=title,
                    class_name=class_name,
                    description=description,
                    status=ReservationStatus.PENDING,
                    status_reason=None,
                    updated_at=now,
                )
                self.store.save(updated)
                if current.status != updated.status:
                    self.audit.append(reservation_id, current.status, updated.status, now)

        logger.info("Reservation %s edited by %s", reservation_id, actor.actor_id)
        return updated

    def decide(
        self,
        actor: Actor,
        reservation_id: str,
        target_status: ReservationStatus | str,
        reason: str | None = None,
    ) -> Reservation:
        policy.require(policy.DECIDE, actor)
        target = _coerce_status(target_status)
        if target not in DECISION_TARGETS:
            raise InvalidTransition(f"{target.value} is not a decision; use APPROVED, REJECTED or NEEDS_CHANGES.")

        current = self._get(reservation_id)
        reason = self._validated_reason(target, reason)

        with self.locks.hold(current.resource_id):
            with self.store.transaction():
                current = self._get(reservation_id)
                self._ensure_not_cancelled(current)
                if current.status not in DECIDABLE_STATUSES:
                    raise InvalidTransition(f"Reservation in status {current.status.value} can not be decided.")
                if current.status == target:
                    raise InvalidTransition(f"Reservation is already {target.value}.")
                if target == ReservationStatus.APPROVED:
                    self._ensure_no_conflict(
                        current.resource_id,
                        current.interval,
                        exclude_reservation_id=reservation_id,
                    )

                now = self._clock()
                updated = replace(current, status=target, status_reason=reason, updated_at=now)
                self.store.save(updated)
                self.audit.append(reservation_id, current.status, target, now)

        logger.info(
            "Reservation %s moved %s -> %s by %s",
            reservation_id,
            current.status.value,
            target.value,
            actor.actor_id,
        )
        return updated

    def cancel(self, actor: Actor, reservation_id: str) -> Reservation:
        current = self._get(reservation_id)
        policy.require(policy.CANCEL, actor, current)

        with self.locks.hold(current.resource_id):
            with self.store.transaction():
                current = self._get(reservation_id)
                self._ensure_not_cancelled(current)
                if current.status not in CANCELLABLE_STATUSES:
                    raise InvalidTransition(f"Reservation in status {current.status.value} can not be cancelled.")

                now = self._clock()
                updated = replace(current, status=ReservationStatus.CANCELLED, updated_at=now)
                self.store.save(updated)
                self.audit.append(reservation_id, current.status, updated.status, now)

        logger.info("Reservation %s cancelled by %s", reservation_id, actor.actor_id)
        return updated

    # ---------- reads ----------
    def get_reservation(self, actor: Actor, reservation_id: str) -> Reservation:
        reservation = self._get(reservation_id)
        policy.require(policy.VIEW, actor, reservation)
        return reservation

    def list_for_actor(self, actor: Actor, status: ReservationStatus | str | None = None) -> list[Reservation]:
        """Instructors see their own reservations, directors and admins see all; newest first."""
        reservations = self.store.find_all()
        if not actor.is_staff:
            reservations = [item for item in reservations if item.requester_id == actor.actor_id]
        if status is not None:
            wanted = _coerce_status(status)
            reservations = [item for item in reservations if item.status == wanted]
        return sorted(reservations, key=lambda item: item.created_at, reverse=True)

    def list_pending(self) -> list[Reservation]:
        pending = [item for item in self.store.find_all() if item.status == ReservationStatus.PENDING]
        return sorted(pending, key=lambda item: item.created_at, reverse=True)

    def list_for_resource_in_window(self, resource_id: str, interval: Interval) -> list[Reservation]:
        self.registry.get_lab(resource_id)
        found = self.store.find_conflicting(resource_id, interval, statuses=OCCUPYING_STATUSES)
        return sorted(found, key=lambda item: (item.start, item.end))

    def list_upcoming_for_requester(self, requester_id: str) -> list[Reservation]:
        now = self._clock()
        upcoming = [
            item
            for item in self.store.find_all()
            if item.requester_id == requester_id
            and item.status == ReservationStatus.APPROVED
            and item.start >= _aligned(now, item.start)
        ]
        return sorted(upcoming, key=lambda item: item.start)

    def history(self, reservation_id: str) -> list[StatusTransitionRecord]:
        self._get(reservation_id)
        return self.audit.list_for(reservation_id)

    # ---------- guards ----------
    def _get(self, reservation_id: str) -> Reservation:
        reservation = self.store.find_by_id(reservation_id)
        if reservation is None:
            raise NotFound(f"Reservation not found: {reservation_id}")
        return reservation

    def _ensure_future(self, interval: Interval) -> None:
        if interval.start <= _aligned(self._clock(), interval.start):
            raise InvalidInterval("Reservations must start in the future.")

    def _ensure_open(self, resource_id: str, interval: Interval) -> None:
        closure = self.registry.closure_reason(resource_id, interval, self.settings.holiday_country)
        if closure is not None:
            raise ResourceInactive(f"Lab is unavailable for the requested window: {closure}")

    def _ensure_no_conflict(
        self,
        resource_id: str,
        interval: Interval,
        exclude_reservation_id: str | None = None,
    ) -> None:
        clashes = self.conflicts.find_conflicts(
            resource_id,
            interval,
            exclude_reservation_id=exclude_reservation_id,
            statuses=self.blocking_statuses,
        )
        if clashes:
            logger.warning(
                "Conflict on lab %s for %s - %s with reservation %s",
                resource_id,
                interval.start.isoformat(),
                interval.end.isoformat(),
                clashes[0].reservation_id,
            )
            raise Conflict("Another reservation already holds this lab during the requested time.")

    @staticmethod
    def _ensure_not_cancelled(reservation: Reservation) -> None:
        if reservation.status == ReservationStatus.CANCELLED:
            raise AlreadyTerminal("Cancelled reservations can not change status.")

    def _ensure_editable(self, reservation: Reservation) -> None:
        self._ensure_not_cancelled(reservation)
        if reservation.status not in EDITABLE_STATUSES:
            raise InvalidTransition(
                f"Only pending reservations or those awaiting changes can be edited (status: {reservation.status.value})."
            )

    def _validated_fields(
        self,
        title: str | None,
        class_name: str | None,
        description: str | None,
    ) -> tuple[str, str | None, str | None]:
        settings = self.settings
        cleaned_title = _optional_text(title)
        if cleaned_title is None:
            raise InvalidField("title must not be empty")
        if not settings.title_min_length <= len(cleaned_title) <= settings.title_max_length:
            raise InvalidField(
                f"title must be between {settings.title_min_length} and {settings.title_max_length} characters"
            )

        cleaned_class = _optional_text(class_name)
        if cleaned_class is not None and len(cleaned_class) > settings.class_name_max_length:
            raise InvalidField(f"class_name must be at most {settings.class_name_max_length} characters")

        cleaned_description = _optional_text(description)
        if cleaned_description is not None and len(cleaned_description) > settings.description_max_length:
            raise InvalidField(f"description must be at most {settings.description_max_length} characters")

        return cleaned_title, cleaned_class, cleaned_description

    def _validated_reason(self, target: ReservationStatus, reason: str | None) -> str | None:
        cleaned = _optional_text(reason)
        if cleaned is None and target in REASON_REQUIRED_TARGETS:
            raise InvalidTransition(f"A reason is required to mark a reservation {target.value}.")
        if cleaned is not None and len(cleaned) > self.settings.reason_max_length:
            raise InvalidField(f"reason must be at most {self.settings.reason_max_length} characters")
        return cleaned

    def _resolve_plan(self, linked_plan_id: str | None) -> str | None:
        if linked_plan_id is None or self._plan_lookup is None:
            return linked_plan_id
        plan = self._plan_lookup(linked_plan_id)
        return plan.plan_id if plan is not None else None


def build_service(
    settings: SchedulerSettings | None = None,
    labs_file: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    plan_lookup: PlanLookup | None = None,
) -> ReservationService:
    """Wire a service backed by YAML files under ``settings.data_dir``."""
    settings = settings or SchedulerSettings()
    if labs_file is not None:
        registry = LabRegistry.from_yaml(labs_file, holiday_country=settings.holiday_country)
    else:
        registry = LabRegistry(holiday_country=settings.holiday_country)
    store = YamlReservationStore(settings.data_dir, now_provider=now_provider)
    return ReservationService(
        store,
        registry,
        settings=settings,
        now_provider=now_provider,
        plan_lookup=plan_lookup,
    )


def _coerce_status(value: ReservationStatus | str) -> ReservationStatus:
    try:
        return ReservationStatus(value)
    except ValueError:
        raise InvalidTransition(f"Unknown reservation status: {value}") from None


def _aligned(now: datetime, reference: datetime) -> datetime:
    """Express the clock reading the way ``reference`` is expressed (aware or naive)."""
    if is_aware(reference) and not is_aware(now):
        return now.astimezone(reference.tzinfo)
    if not is_aware(reference) and is_aware(now):
        return now.astimezone().replace(tzinfo=None)
    return now


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
