"""
CRUD for teachers, subjects, classes and rooms with per-collection caching.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from ..domain.cache import CollectionCache
from ..domain.master_data import EntityType, MasterRecord
from ..domain.models import ScheduleSlot
from .schedule_service import SLOTS_CACHE_KEY

logger = logging.getLogger(__name__)


class RepositoryProtocol(Protocol):
    def list(self) -> List[MasterRecord]: ...

    def get(self, record_id: str) -> MasterRecord: ...

    def create(self, **values) -> MasterRecord: ...

    def update(self, record_id: str, **changes) -> MasterRecord: ...

    def remove(self, record_id: str) -> MasterRecord: ...


class MasterDataStoreProtocol(Protocol):
    def repository(self, entity_type: EntityType) -> RepositoryProtocol: ...

    def remove_slots_referencing(self, entity_type: EntityType, record_id: str) -> List[ScheduleSlot]: ...


class MasterDataService:
    """
    Generic master data operations, dispatched on EntityType.

    Pass the same CollectionCache as the ScheduleService so cascading
    deletes also refresh the slot snapshot.
    """

    def __init__(self, store: MasterDataStoreProtocol, cache: Optional[CollectionCache] = None) -> None:
        self._store = store
        self._cache = cache or CollectionCache()

    def list(self, entity_type: EntityType) -> List[MasterRecord]:
        return self._cache.get_or_load(entity_type, self._store.repository(entity_type).list)

    def get(self, entity_type: EntityType, record_id: str) -> MasterRecord:
        return self._store.repository(entity_type).get(record_id)

    def names(self, entity_type: EntityType) -> Dict[str, str]:
        """Map of id -> display name."""
        return {record.id: record.name for record in self.list(entity_type)}

    def create(self, entity_type: EntityType, **values) -> MasterRecord:
        record = self._store.repository(entity_type).create(**values)
        self._cache.invalidate(entity_type)
        logger.info("Created %s %s (%s)", entity_type.value, record.id, record.name)
        return record

    def update(self, entity_type: EntityType, record_id: str, **changes) -> MasterRecord:
        record = self._store.repository(entity_type).update(record_id, **changes)
        self._cache.invalidate(entity_type)
        logger.info("Updated %s %s", entity_type.value, record_id)
        return record

    def delete(self, entity_type: EntityType, record_id: str) -> List[ScheduleSlot]:
        """
        Delete a record and every slot referencing it.

        Returns:
            The slots removed by the cascade
        """
        record = self._store.repository(entity_type).remove(record_id)
        removed = self._store.remove_slots_referencing(entity_type, record_id)

        self._cache.invalidate(entity_type)
        if removed:
            self._cache.invalidate(SLOTS_CACHE_KEY)

        logger.info(
            "Deleted %s %s (%s), removed %d referencing slot(s)",
            entity_type.value, record_id, record.name, len(removed),
        )
        return removed
