"""
Master data referenced by schedule slots: teachers, subjects, classes, rooms.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar, Union


@dataclass(frozen=True)
class Teacher:
    id: str
    name: str
    employee_id: Optional[str] = None


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class SchoolClass:
    id: str
    name: str
    grade: Optional[int] = None
    academic_year: Optional[str] = None  # e.g. "2024/2025"


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    capacity: Optional[int] = None
    location: Optional[str] = None


MasterRecord = Union[Teacher, Subject, SchoolClass, Room]
RecordT = TypeVar("RecordT", Teacher, Subject, SchoolClass, Room)


class EntityType(str, Enum):
    """The closed set of master data collections."""
    TEACHER = "teacher"
    SUBJECT = "subject"
    CLASS = "class"
    ROOM = "room"

    @property
    def record_type(self) -> Type[MasterRecord]:
        return _RECORD_TYPES[self]

    @property
    def plural(self) -> str:
        return "classes" if self is EntityType.CLASS else f"{self.value}s"

    @property
    def slot_field(self) -> str:
        """Name of the ScheduleSlot attribute referencing this entity."""
        return f"{self.value}_id"


_RECORD_TYPES: Dict[EntityType, Type[MasterRecord]] = {
    EntityType.TEACHER: Teacher,
    EntityType.SUBJECT: Subject,
    EntityType.CLASS: SchoolClass,
    EntityType.ROOM: Room,
}

# camelCase keys used in the JSON data file
_JSON_KEYS = {
    "employee_id": "employeeId",
    "academic_year": "academicYear",
}


def record_from_dict(entity_type: EntityType, data: Dict[str, Any]) -> MasterRecord:
    """
    Build a master record from a JSON mapping, ignoring unknown keys.

    Raises:
        KeyError: If ``id`` or ``name`` is missing
    """
    record_type = entity_type.record_type
    values: Dict[str, Any] = {}
    for item in fields(record_type):
        key = _JSON_KEYS.get(item.name, item.name)
        if key in data:
            values[item.name] = data[key]
        elif item.name in ("id", "name"):
            raise KeyError(f"{entity_type.value} record is missing '{key}'")
    values["id"] = str(values["id"])
    return record_type(**values)


def record_to_dict(record: MasterRecord) -> Dict[str, Any]:
    """Serialise a master record, dropping empty optional fields."""
    data: Dict[str, Any] = {}
    for item in fields(record):
        value = getattr(record, item.name)
        if value is not None:
            data[_JSON_KEYS.get(item.name, item.name)] = value
    return data
