from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .errors import InvalidInterval


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if is_aware(self.start) != is_aware(self.end):
            raise InvalidInterval("Interval start and end must both carry a timezone or both be naive.")
        if not is_valid_interval(self.start, self.end):
            raise InvalidInterval("Interval end must be later than its start.")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def to_dict(self) -> dict[str, str]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, str]) -> "Interval":
        return Interval(
            start=datetime.fromisoformat(str(data["start"])),
            end=datetime.fromisoformat(str(data["end"])),
        )


def is_aware(moment: datetime) -> bool:
    return moment.tzinfo is not None and moment.utcoffset() is not None


def is_valid_interval(start: datetime, end: datetime) -> bool:
    if is_aware(start) != is_aware(end):
        return False
    return end > start


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True when two intervals share at least one instant.

    Intervals are half-open ranges [start, end), so touching boundaries
    (10:00-11:00 and 11:00-12:00) do not overlap.
    """
    if is_aware(a.start) != is_aware(b.start):
        raise InvalidInterval("Can not compare timezone-aware and naive intervals.")
    return a.start < b.end and b.start < a.end

