from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator


class ResourceLocks:
    """One mutex per lab id; transitions on different labs never wait on each other."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, Lock] = {}

    def lock_for(self, resource_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = Lock()
                self._locks[resource_id] = lock
            return lock

    @contextmanager
    def hold(self, resource_id: str) -> Iterator[None]:
        with self.lock_for(resource_id):
            yield
