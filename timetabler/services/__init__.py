"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .locking import KeyedLockManager
from .master_data_service import MasterDataService
from .schedule_service import ConflictError, ScheduleService, ScheduleStoreProtocol, SlotWriteResult

__all__ = [
    "ConflictError",
    "KeyedLockManager",
    "MasterDataService",
    "ScheduleService",
    "ScheduleStoreProtocol",
    "SlotWriteResult",
]
