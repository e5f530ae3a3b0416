"""
Advisory locks keyed by (resource, id, day).

Writers that could double-book the same teacher or room on the same day
share a key and are serialised; unrelated writers proceed in parallel.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from ..domain.models import DayOfWeek

LockKey = Tuple[str, str, int]


def booking_lock_keys(teacher_id: str, room_id: str, day: DayOfWeek) -> Set[LockKey]:
    """Keys covering a teacher and a room on one day."""
    return {
        ("teacher", teacher_id, int(day)),
        ("room", room_id, int(day)),
    }


class KeyedLockManager:
    """
    Hands out one lock per key and acquires key sets in a fixed order.

    A key's lock is dropped once no writer holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: Dict[LockKey, threading.Lock] = {}
        self._users: Dict[LockKey, int] = {}
        self._guard = threading.Lock()

    def _checkout(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: LockKey) -> None:
        with self._guard:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def active_keys(self) -> Set[LockKey]:
        """Keys currently held or waited on."""
        with self._guard:
            return set(self._locks)

    @contextmanager
    def hold(self, keys: Iterable[LockKey]) -> Iterator[Set[LockKey]]:
        """
        Hold every lock in ``keys`` for the duration of the block.

        Keys are acquired in sorted order so two writers with overlapping key
        sets cannot deadlock.
        """
        ordered = sorted(set(keys))
        checked_out: List[LockKey] = []
        acquired: List[threading.Lock] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                lock.acquire()
                acquired.append(lock)
            yield set(ordered)
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)
