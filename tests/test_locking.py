"""
Tests for the keyed advisory locks.
"""

import threading

from timetabler.domain.models import DayOfWeek
from timetabler.services.locking import KeyedLockManager, booking_lock_keys


class TestKeyedLockManager:
    """Tests for KeyedLockManager."""

    def test_booking_keys(self):
        assert booking_lock_keys("t1", "r1", DayOfWeek.TUESDAY) == {("teacher", "t1", 2), ("room", "r1", 2)}

    def test_hold_yields_keys(self):
        manager = KeyedLockManager()
        keys = booking_lock_keys("t1", "r1", DayOfWeek.MONDAY)

        with manager.hold(keys) as held:
            assert held == keys

    def test_shared_key_blocks_other_writer(self):
        manager = KeyedLockManager()
        acquired = threading.Event()

        def other_writer():
            with manager.hold({("teacher", "t1", 1)}):
                acquired.set()

        with manager.hold(booking_lock_keys("t1", "r1", DayOfWeek.MONDAY)):
            thread = threading.Thread(target=other_writer)
            thread.start()
            assert not acquired.wait(timeout=0.1)

        thread.join(timeout=5)
        assert acquired.is_set()

    def test_released_locks_are_dropped(self):
        """Test the registry does not keep a lock for every key ever used."""
        manager = KeyedLockManager()

        for day in DayOfWeek:
            with manager.hold(booking_lock_keys("t1", "r1", day)) as held:
                assert manager.active_keys() == held

        assert manager.active_keys() == set()
