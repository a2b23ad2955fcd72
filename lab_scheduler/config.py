from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 160
CLASS_NAME_MAX_LENGTH = 80
DESCRIPTION_MAX_LENGTH = 1000
REASON_MAX_LENGTH = 500
DEFAULT_DATA_DIR = "data"


@dataclass(frozen=True)
class SchedulerSettings:
    # When True only APPROVED bookings block create/edit/approve, so competing
    # requests for the same window can wait side by side for a decision.
    queue_competing_requests: bool = True
    # ISO country code for the `holidays` package; None keeps labs open on holidays.
    holiday_country: str | None = None
    title_min_length: int = TITLE_MIN_LENGTH
    title_max_length: int = TITLE_MAX_LENGTH
    class_name_max_length: int = CLASS_NAME_MAX_LENGTH
    description_max_length: int = DESCRIPTION_MAX_LENGTH
    reason_max_length: int = REASON_MAX_LENGTH
    data_dir: str = DEFAULT_DATA_DIR

    def __post_init__(self) -> None:
        if self.title_min_length < 1:
            raise ValueError("title_min_length must be at least 1")
        if self.title_max_length < self.title_min_length:
            raise ValueError("title_max_length must not be smaller than title_min_length")
        for name in ("class_name_max_length", "description_max_length", "reason_max_length"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SchedulerSettings":
        known = {field.name for field in fields(SchedulerSettings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown scheduler settings: {', '.join(unknown)}")
        return SchedulerSettings(**data)


def load_settings(path: str | Path | None = None) -> SchedulerSettings:
    """Load settings from a YAML mapping; a missing file yields the defaults."""
    if path is None:
        return SchedulerSettings()

    settings_path = Path(path)
    try:
        payload = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return SchedulerSettings()

    if payload is None:
        return SchedulerSettings()
    if not isinstance(payload, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")
    return SchedulerSettings.from_dict(payload)
