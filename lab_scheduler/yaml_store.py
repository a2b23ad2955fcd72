from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Iterator
import logging
import shutil

import yaml

from .errors import ReservationStorageError
from .models import Reservation, StatusTransitionRecord
from .store import ReservationStore

logger = logging.getLogger(__name__)


class YamlReservationStore(ReservationStore):
    """Reservation store kept in three YAML files under ``base_dir``.

    ``reservations.yaml`` holds the latest snapshot of every reservation,
    ``status_history.yaml`` the append-only transition records and
    ``reservation_events.yaml`` an operational event log.
    """

    def __init__(
        self,
        base_dir: str | Path = "data",
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.reservations_file = self.base_dir / "reservations.yaml"
        self.history_file = self.base_dir / "status_history.yaml"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._clock: Callable[[], datetime] = now_provider or datetime.now
        self._lock = RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.reservations_file, self.history_file, self.log_file):
            if not path.exists():
                self._write_yaml_list(path, [])

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        """Return the mapping rows of a YAML list file.

        A missing file is recreated empty. An unreadable or non-list document
        is backed up and reset; rows that are not mappings are dropped and
        reported in the event log.
        """
        if not path.exists():
            self._write_yaml_list(path, [])
            return []
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        rows = [row for row in payload if isinstance(row, dict)]
        skipped = [index for index, row in enumerate(payload) if not isinstance(row, dict)]
        # the event log can not report on itself without re-reading the same rows
        if skipped and path != self.log_file:
            self._log_event(
                "YAML_ROW_SKIPPED",
                {"file": path.name, "indexes": skipped, "reason": "row is not a mapping"},
            )
        return rows

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        document = yaml.safe_dump(rows, allow_unicode=True, sort_keys=False)
        staging = path.with_name(f".{path.name}.tmp")
        try:
            staging.write_text(document, encoding="utf-8")
            staging.replace(path)
        except OSError as error:
            staging.unlink(missing_ok=True)
            raise ReservationStorageError(f"Could not write {path.name} in {self.base_dir}") from error

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        stamp = self._clock().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{stamp}{path.suffix}")
        backup_name: str | None = backup_path.name
        try:
            shutil.copy2(path, backup_path)
        except OSError:
            logger.warning("Could not back up corrupt file %s", path.name)
            backup_name = None

        self._write_yaml_list(path, [])
        logger.warning("Reset corrupt YAML file %s: %s", path.name, error)
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {"file": path.name, "backup": backup_name, "reason": str(error)},
            )

    def _log_event(self, event_type: str, payload: dict[str, Any]) -> None:
        timestamp = self._clock().isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def read_events(self) -> list[dict[str, Any]]:
        with self._lock:
            return self._read_yaml_list(self.log_file)

    @contextmanager
    def transaction(self) -> Iterator["YamlReservationStore"]:
        with self._lock:
            reservations_snapshot = self._read_yaml_list(self.reservations_file)
            history_snapshot = self._read_yaml_list(self.history_file)
            try:
                yield self
            except BaseException as error:
                self._restore(
                    {
                        self.reservations_file: reservations_snapshot,
                        self.history_file: history_snapshot,
                    },
                    error,
                )
                raise

    def _restore(self, snapshots: dict[Path, list[dict[str, Any]]], error: BaseException) -> None:
        """Write snapshots back after a failed transaction.

        Restore failures are logged and reported in the event log; the caller
        re-raises ``error`` so the failure that aborted the transaction is the
        one that propagates.
        """
        unrestored: list[str] = []
        for path, rows in snapshots.items():
            try:
                self._write_yaml_list(path, rows)
            except ReservationStorageError:
                logger.exception("Could not restore %s after a failed transaction", path.name)
                unrestored.append(path.name)

        payload: dict[str, Any] = {"reason": f"{type(error).__name__}: {error}"}
        if unrestored:
            payload["unrestored"] = unrestored
        try:
            self._log_event("TRANSACTION_ROLLED_BACK", payload)
        except ReservationStorageError:
            logger.exception("Could not record the rollback in %s", self.log_file.name)

    def save(self, reservation: Reservation) -> Reservation:
        with self._lock:
            rows = self._read_yaml_list(self.reservations_file)
            payload = reservation.to_dict()
            for index, row in enumerate(rows):
                if str(row.get("reservation_id")) == reservation.reservation_id:
                    rows[index] = payload
                    break
            else:
                rows.append(payload)
            self._write_yaml_list(self.reservations_file, rows)

            self._log_event(
                "RESERVATION_SAVED",
                {
                    "reservation_id": reservation.reservation_id,
                    "resource_id": reservation.resource_id,
                    "status": reservation.status.value,
                    "start": reservation.start.isoformat(timespec="minutes"),
                    "end": reservation.end.isoformat(timespec="minutes"),
                },
            )
        return reservation

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        with self._lock:
            rows = self._read_yaml_list(self.reservations_file)
        for row in rows:
            if str(row.get("reservation_id")) == reservation_id:
                return Reservation.from_dict(row)
        return None

    def find_all(self) -> list[Reservation]:
        with self._lock:
            rows = self._read_yaml_list(self.reservations_file)
        return [Reservation.from_dict(row) for row in rows]

    def append_transition(self, record: StatusTransitionRecord) -> StatusTransitionRecord:
        with self._lock:
            rows = self._read_yaml_list(self.history_file)
            rows.append(record.to_dict())
            self._write_yaml_list(self.history_file, rows)
            self._log_event(
                "STATUS_CHANGED",
                {
                    "reservation_id": record.reservation_id,
                    "from": record.from_status.value,
                    "to": record.to_status.value,
                },
            )
        return record

    def transitions_for(self, reservation_id: str) -> list[StatusTransitionRecord]:
        with self._lock:
            rows = self._read_yaml_list(self.history_file)
        return [
            StatusTransitionRecord.from_dict(row)
            for row in rows
            if str(row.get("reservation_id")) == reservation_id
        ]
