"""
Domain layer - timetable logic without I/O.
"""

from .cache import CollectionCache
from .conflict_checker import ConflictChecker, ConflictKind, ConflictPair, ConflictResult, check_conflict
from .master_data import EntityType, Room, SchoolClass, Subject, Teacher
from .models import (
    DayOfWeek,
    ScheduleFilters,
    ScheduleSlot,
    SlotData,
    SlotUpdate,
    TimeOfDay,
    TimeRange,
    WeekWindow,
    add_minutes,
    duration_minutes,
    format_time,
    overlaps,
    parse_time,
)
from .week_grid import GridLayout, TimeAxis, WeekGrid, WeekGridLayoutEngine

__all__ = [
    "CollectionCache",
    "ConflictChecker",
    "ConflictKind",
    "ConflictPair",
    "ConflictResult",
    "check_conflict",
    "EntityType",
    "Room",
    "SchoolClass",
    "Subject",
    "Teacher",
    "DayOfWeek",
    "ScheduleFilters",
    "ScheduleSlot",
    "SlotData",
    "SlotUpdate",
    "TimeOfDay",
    "TimeRange",
    "WeekWindow",
    "add_minutes",
    "duration_minutes",
    "format_time",
    "overlaps",
    "parse_time",
    "GridLayout",
    "TimeAxis",
    "WeekGrid",
    "WeekGridLayoutEngine",
]
