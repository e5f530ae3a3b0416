"""
In-memory implementation of the schedule store.

Keeps slots in insertion order and master data in one repository per entity
type. Useful on its own for tests and as the base of the JSON file store.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import Callable, Dict, Generic, Iterable, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import EntityNotFoundError, SlotNotFoundError
from ..domain.master_data import EntityType, MasterRecord, RecordT
from ..domain.models import ScheduleSlot, SlotData

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryRepository(Generic[RecordT]):
    """
    CRUD over one master data collection.

    ``on_change`` is called after every successful mutation.
    """

    def __init__(
        self,
        entity_type: EntityType,
        records: Iterable[RecordT] = (),
        lock: Optional[threading.RLock] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.entity_type = entity_type
        self._records: Dict[str, RecordT] = {}
        self._lock = lock or threading.RLock()
        self._on_change = on_change
        for record in records:
            self._records[record.id] = record

    def list(self) -> List[RecordT]:
        with self._lock:
            return sorted(self._records.values(), key=lambda record: record.name.lower())

    def get(self, record_id: str) -> RecordT:
        with self._lock:
            try:
                return self._records[record_id]
            except KeyError:
                raise EntityNotFoundError(
                    f"Unknown {self.entity_type.value} id: {record_id}"
                ) from None

    def exists(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._records

    def create(self, **values) -> RecordT:
        """Create a record with a generated id."""
        record = self.entity_type.record_type(id=_new_id(), **values)
        with self._lock:
            previous = dict(self._records)
            self._records[record.id] = record
            self._commit(previous)
        return record

    def update(self, record_id: str, **changes) -> RecordT:
        with self._lock:
            record = replace(self.get(record_id), **changes)
            previous = dict(self._records)
            self._records[record_id] = record
            self._commit(previous)
        return record

    def remove(self, record_id: str) -> RecordT:
        with self._lock:
            record = self.get(record_id)
            previous = dict(self._records)
            del self._records[record_id]
            self._commit(previous)
        return record

    def _commit(self, previous: Dict[str, RecordT]) -> None:
        """Run the change hook, restoring ``previous`` if it fails."""
        try:
            if self._on_change is not None:
                self._on_change()
        except Exception:
            self._records = previous
            raise


class InMemoryScheduleStore:
    """
    Schedule slots plus master data held in process memory.

    All operations are individually atomic and a mutation whose change hook
    raises is undone; the schedule service adds the keyed locking that makes
    check-then-write atomic.
    """

    def __init__(
        self,
        slots: Iterable[ScheduleSlot] = (),
        master_data: Optional[Dict[EntityType, Iterable[MasterRecord]]] = None,
        clock: Callable[[], DateTime] = pendulum.now,
    ):
        self._lock = threading.RLock()
        self._clock = clock
        self._slots: Dict[str, ScheduleSlot] = {slot.id: slot for slot in slots}
        master_data = master_data or {}
        self._repositories: Dict[EntityType, InMemoryRepository] = {
            entity_type: InMemoryRepository(
                entity_type,
                master_data.get(entity_type, ()),
                lock=self._lock,
                on_change=self._changed,
            )
            for entity_type in EntityType
        }

    def list_slots(self) -> List[ScheduleSlot]:
        """Snapshot of all slots in insertion order."""
        with self._lock:
            return list(self._slots.values())

    def get_slot(self, slot_id: str) -> ScheduleSlot:
        with self._lock:
            try:
                return self._slots[slot_id]
            except KeyError:
                raise SlotNotFoundError(f"Unknown schedule slot id: {slot_id}") from None

    def add_slot(self, data: SlotData) -> ScheduleSlot:
        slot = ScheduleSlot.from_data(_new_id(), data, created_at=self._clock())
        with self._lock:
            previous = dict(self._slots)
            self._slots[slot.id] = slot
            self._commit(previous)
        return slot

    def replace_slot(self, slot: ScheduleSlot) -> ScheduleSlot:
        with self._lock:
            previous = self.get_slot(slot.id)
            if slot.created_at is None:
                slot = replace(slot, created_at=previous.created_at)
            snapshot = dict(self._slots)
            self._slots[slot.id] = slot
            self._commit(snapshot)
        return slot

    def remove_slot(self, slot_id: str) -> ScheduleSlot:
        with self._lock:
            slot = self.get_slot(slot_id)
            previous = dict(self._slots)
            del self._slots[slot_id]
            self._commit(previous)
        return slot

    def remove_slots_referencing(self, entity_type: EntityType, record_id: str) -> List[ScheduleSlot]:
        """Delete every slot pointing at a master record."""
        with self._lock:
            removed = [
                slot for slot in self._slots.values()
                if getattr(slot, entity_type.slot_field) == record_id
            ]
            previous = dict(self._slots)
            for slot in removed:
                del self._slots[slot.id]
            if removed:
                self._commit(previous)
        return removed

    def repository(self, entity_type: EntityType) -> InMemoryRepository:
        return self._repositories[entity_type]

    def _commit(self, previous: Dict[str, ScheduleSlot]) -> None:
        """Run the change hook, restoring ``previous`` if it fails."""
        try:
            self._changed()
        except Exception:
            self._slots = previous
            raise

    def _changed(self) -> None:
        """Hook for subclasses that persist after each mutation."""
