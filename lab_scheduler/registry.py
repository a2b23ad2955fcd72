from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timedelta
from pathlib import Path
from threading import RLock
from uuid import uuid4

import holidays as pyholidays
import yaml

from .booking import Interval, overlaps
from .errors import Conflict, NotFound
from .models import Lab, Unavailability

_HOLIDAY_CACHE: dict[tuple[str, int], set[date]] = {}


class LabRegistry:
    """In-memory catalogue of labs, their activation flag and closure windows."""

    def __init__(self, labs: list[Lab] | None = None, holiday_country: str | None = None) -> None:
        self.holiday_country = holiday_country
        self._labs: dict[str, Lab] = {}
        self._unavailabilities: dict[str, list[Unavailability]] = {}
        self._lock = RLock()
        for lab in labs or []:
            self._add(lab)

    @classmethod
    def from_yaml(cls, path: str | Path, holiday_country: str | None = None) -> "LabRegistry":
        payload = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if payload is None:
            payload = []
        if not isinstance(payload, list):
            raise ValueError(f"Lab file must contain a list: {path}")

        registry = cls(holiday_country=holiday_country)
        for row in payload:
            if not isinstance(row, dict):
                raise ValueError(f"Lab entry is not a mapping: {row!r}")
            registry._add(Lab.from_dict(row))
            for closure in row.get("unavailable", []) or []:
                registry.add_unavailability(
                    str(row["lab_id"]),
                    datetime.fromisoformat(str(closure["start"])),
                    datetime.fromisoformat(str(closure["end"])),
                    str(closure.get("reason", "")),
                )
        return registry

    def _add(self, lab: Lab) -> None:
        if lab.lab_id in self._labs:
            raise Conflict(f"Lab id already registered: {lab.lab_id}")
        self._ensure_unique_name(lab.name)
        self._labs[lab.lab_id] = lab
        self._unavailabilities.setdefault(lab.lab_id, [])

    def _ensure_unique_name(self, name: str, ignore_id: str | None = None) -> None:
        normalized = name.strip().casefold()
        for lab in self._labs.values():
            if lab.lab_id != ignore_id and lab.name.strip().casefold() == normalized:
                raise Conflict(f"A lab named '{name.strip()}' already exists.")

    def register_lab(
        self,
        name: str,
        capacity: int = 0,
        equipment_count: int = 0,
        *,
        active: bool = True,
        lab_id: str | None = None,
    ) -> Lab:
        lab = Lab(
            lab_id=lab_id or str(uuid4()),
            name=name.strip() if name else name,
            capacity=capacity,
            equipment_count=equipment_count,
            active=active,
        )
        with self._lock:
            self._add(lab)
        return lab

    def get_lab(self, lab_id: str) -> Lab:
        with self._lock:
            lab = self._labs.get(lab_id)
        if lab is None:
            raise NotFound(f"Lab not found: {lab_id}")
        return lab

    def is_active(self, lab_id: str) -> bool:
        return self.get_lab(lab_id).active

    def list_labs(self, active: bool | None = None) -> list[Lab]:
        with self._lock:
            labs = list(self._labs.values())
        if active is not None:
            labs = [lab for lab in labs if lab.active == active]
        return sorted(labs, key=lambda lab: lab.name.casefold())

    def update_lab(
        self,
        lab_id: str,
        *,
        name: str | None = None,
        capacity: int | None = None,
        equipment_count: int | None = None,
    ) -> Lab:
        with self._lock:
            current = self.get_lab(lab_id)
            changes: dict[str, object] = {}
            if name is not None and name.strip() != current.name:
                self._ensure_unique_name(name, ignore_id=lab_id)
                changes["name"] = name.strip()
            if capacity is not None:
                changes["capacity"] = capacity
            if equipment_count is not None:
                changes["equipment_count"] = equipment_count
            updated = replace(current, **changes)
            self._labs[lab_id] = updated
        return updated

    def set_active(self, lab_id: str, active: bool) -> Lab:
        with self._lock:
            updated = replace(self.get_lab(lab_id), active=active)
            self._labs[lab_id] = updated
        return updated

    def add_unavailability(self, lab_id: str, start: datetime, end: datetime, reason: str) -> Unavailability:
        closure = Unavailability(lab_id=lab_id, interval=Interval(start, end), reason=reason)
        with self._lock:
            self.get_lab(lab_id)
            self._unavailabilities[lab_id].append(closure)
        return closure

    def unavailabilities_for(self, lab_id: str) -> list[Unavailability]:
        with self._lock:
            self.get_lab(lab_id)
            closures = list(self._unavailabilities[lab_id])
        return sorted(closures, key=lambda closure: closure.interval.start)

    def closure_reason(self, lab_id: str, interval: Interval, holiday_country: str | None = None) -> str | None:
        """Return why the lab is closed for the interval, or None when it is open.

        ``holiday_country`` overrides the registry's own calendar for this lookup.
        """
        country = holiday_country or self.holiday_country
        for closure in self.unavailabilities_for(lab_id):
            if overlaps(closure.interval, interval):
                return closure.reason

        if country:
            for day in _touched_dates(interval):
                if _is_holiday(country, day):
                    return f"{day.isoformat()} is a public holiday"
        return None

    def is_open(self, lab_id: str, interval: Interval, holiday_country: str | None = None) -> bool:
        return self.closure_reason(lab_id, interval, holiday_country) is None


def _touched_dates(interval: Interval) -> list[date]:
    last = interval.end.date()
    if interval.end.time() == time(0, 0) and last > interval.start.date():
        last -= timedelta(days=1)

    cursor = interval.start.date()
    days: list[date] = []
    while cursor <= last:
        days.append(cursor)
        cursor += timedelta(days=1)
    return days


def _is_holiday(country: str, target_date: date) -> bool:
    key = (country, target_date.year)
    if key not in _HOLIDAY_CACHE:
        holiday_map = pyholidays.country_holidays(country, years=[target_date.year])
        _HOLIDAY_CACHE[key] = set(holiday_map.keys())
    return target_date in _HOLIDAY_CACHE[key]
