"""
Adapters layer - Persistence backends for slots and master data.
"""

from .json_store import JsonScheduleStore
from .memory_store import InMemoryRepository, InMemoryScheduleStore

__all__ = ["InMemoryRepository", "InMemoryScheduleStore", "JsonScheduleStore"]
