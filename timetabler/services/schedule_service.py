"""
Application service for reading, rendering and writing schedule slots.

Every create and update runs the conflict check against a fresh snapshot
while holding the advisory locks of the teacher and room involved, so two
concurrent writers can never both pass the check and double-book. Conflicts
come back as a ``ConflictError`` value instead of an exception, forcing
callers to handle them apart from the happy path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date as _date
from typing import List, Optional, Protocol, Tuple, Union

from ..domain.cache import CollectionCache
from ..domain.conflict_checker import ConflictChecker, ConflictKind, ConflictPair, ConflictResult
from ..domain.exceptions import EntityNotFoundError
from ..domain.master_data import EntityType
from ..domain.models import ScheduleFilters, ScheduleSlot, SlotData, SlotUpdate
from ..domain.week_grid import WeekGrid, WeekGridLayoutEngine, creation_order
from .locking import KeyedLockManager, booking_lock_keys

logger = logging.getLogger(__name__)

SLOTS_CACHE_KEY = "schedule_slots"


class MasterRepositoryProtocol(Protocol):
    """Lookup behaviour the services need from a master data repository."""

    def exists(self, record_id: str) -> bool:
        """Return True when the record is stored."""


class ScheduleStoreProtocol(Protocol):
    """Persistence boundary for schedule slots."""

    def list_slots(self) -> List[ScheduleSlot]:
        """Snapshot of all committed slots."""

    def get_slot(self, slot_id: str) -> ScheduleSlot:
        """Return one slot or raise SlotNotFoundError."""

    def add_slot(self, data: SlotData) -> ScheduleSlot:
        """Insert a slot and return it with its new id."""

    def replace_slot(self, slot: ScheduleSlot) -> ScheduleSlot:
        """Overwrite a stored slot."""

    def remove_slot(self, slot_id: str) -> ScheduleSlot:
        """Delete a slot or raise SlotNotFoundError."""

    def repository(self, entity_type: EntityType) -> MasterRepositoryProtocol:
        """Repository for one master data collection."""


@dataclass(frozen=True)
class ConflictError:
    """
    Returned by create/update when the write would double-book a teacher or room.

    A user-correctable outcome, not a system fault.
    """
    conflicting_slot: ScheduleSlot
    kinds: Tuple[ConflictKind, ...]

    @classmethod
    def from_result(cls, result: ConflictResult) -> "ConflictError":
        return cls(conflicting_slot=result.conflicting_slot, kinds=result.kinds)

    @property
    def message(self) -> str:
        resources = " and ".join(kind.value for kind in self.kinds)
        return (
            f"Conflict: {resources} already booked on "
            f"{self.conflicting_slot.day_of_week.label} {self.conflicting_slot.time_range}"
        )


SlotWriteResult = Union[ScheduleSlot, ConflictError]


class ScheduleService:
    """
    Orchestrates the store, the conflict checker and the week grid layout.
    """

    def __init__(
        self,
        store: ScheduleStoreProtocol,
        conflict_checker: Optional[ConflictChecker] = None,
        layout_engine: Optional[WeekGridLayoutEngine] = None,
        cache: Optional[CollectionCache] = None,
        lock_manager: Optional[KeyedLockManager] = None,
        require_known_references: bool = False,
    ) -> None:
        self._store = store
        self._checker = conflict_checker or ConflictChecker()
        self._layout_engine = layout_engine or WeekGridLayoutEngine(order_key=creation_order)
        self._cache = cache or CollectionCache()
        self._locks = lock_manager or KeyedLockManager()
        self._require_known_references = require_known_references

    @property
    def layout_engine(self) -> WeekGridLayoutEngine:
        return self._layout_engine

    def list_slots_for_week(
        self,
        week_start: _date,
        filters: Optional[ScheduleFilters] = None,
    ) -> List[ScheduleSlot]:
        """
        Slots shown in the week containing ``week_start``.

        Slots recur weekly, so every slot belongs to every week; the date only
        identifies the displayed week.
        """
        snapshot = self._cache.get_or_load(SLOTS_CACHE_KEY, self._store.list_slots)
        return (filters or ScheduleFilters()).apply(snapshot)

    def render_week(
        self,
        day: _date,
        filters: Optional[ScheduleFilters] = None,
    ) -> WeekGrid:
        """Lay out the week containing ``day``."""
        slots = self.list_slots_for_week(day, filters)
        return self._layout_engine.build(slots, day)

    def check_slot(self, data: SlotData, exclude_id: Optional[str] = None) -> ConflictResult:
        """Dry-run conflict check against the committed slots."""
        return self._checker.check(data, self._store.list_slots(), exclude_id=exclude_id)

    def audit(self) -> List[ConflictPair]:
        """Every pair of committed slots that double-books a teacher or room."""
        return self._checker.find_all_conflicts(self._store.list_slots())

    def create_slot(self, data: SlotData) -> SlotWriteResult:
        """
        Create a slot unless it would double-book its teacher or room.

        Raises:
            EntityNotFoundError: If references are validated and one is unknown
            StoreError: If the store cannot persist the slot; nothing is written
        """
        self._validate_references(data)

        with self._locks.hold(booking_lock_keys(data.teacher_id, data.room_id, data.day_of_week)):
            result = self._checker.check(data, self._store.list_slots())
            if result.has_conflict:
                logger.warning("Rejected new slot %s %s: %s", data.day_of_week.label, data.time_range, result.describe())
                return ConflictError.from_result(result)

            try:
                slot = self._store.add_slot(data)
            finally:
                self._cache.invalidate(SLOTS_CACHE_KEY)

        logger.info("Created slot %s (%s)", slot.id, slot)
        return slot

    def update_slot(self, slot_id: str, changes: Union[SlotUpdate, SlotData]) -> SlotWriteResult:
        """
        Apply ``changes`` to a stored slot, re-checking against all other slots.

        Raises:
            SlotNotFoundError: If ``slot_id`` is unknown
            InvalidTimeRange: If the merged range does not end after it starts
        """
        while True:
            current = self._store.get_slot(slot_id)
            candidate = self._merge(current, changes)
            self._validate_references(candidate)

            keys = booking_lock_keys(current.teacher_id, current.room_id, current.day_of_week)
            keys |= booking_lock_keys(candidate.teacher_id, candidate.room_id, candidate.day_of_week)

            with self._locks.hold(keys) as held:
                # Another writer may have changed the slot before the locks were taken
                current = self._store.get_slot(slot_id)
                candidate = self._merge(current, changes)
                needed = booking_lock_keys(candidate.teacher_id, candidate.room_id, candidate.day_of_week)
                if not needed <= held:
                    continue

                result = self._checker.check(candidate, self._store.list_slots(), exclude_id=slot_id)
                if result.has_conflict:
                    logger.warning("Rejected update of slot %s: %s", slot_id, result.describe())
                    return ConflictError.from_result(result)

                try:
                    slot = self._store.replace_slot(
                        ScheduleSlot.from_data(slot_id, candidate, created_at=current.created_at)
                    )
                finally:
                    self._cache.invalidate(SLOTS_CACHE_KEY)

            logger.info("Updated slot %s (%s)", slot.id, slot)
            return slot

    def delete_slot(self, slot_id: str) -> None:
        """
        Delete a slot unconditionally.

        Raises:
            SlotNotFoundError: If ``slot_id`` is unknown
        """
        try:
            slot = self._store.remove_slot(slot_id)
        finally:
            self._cache.invalidate(SLOTS_CACHE_KEY)
        logger.info("Deleted slot %s (%s)", slot.id, slot)

    @staticmethod
    def _merge(current: ScheduleSlot, changes: Union[SlotUpdate, SlotData]) -> SlotData:
        if isinstance(changes, SlotData):
            return changes
        return changes.apply_to(current)

    def _validate_references(self, data: SlotData) -> None:
        if not self._require_known_references:
            return

        for entity_type in EntityType:
            record_id = getattr(data, entity_type.slot_field)
            if not self._store.repository(entity_type).exists(record_id):
                raise EntityNotFoundError(f"Unknown {entity_type.value} id: {record_id}")
