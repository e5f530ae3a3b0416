"""
Domain models for weekly schedule slots and the time intervals they occupy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date as _date
from enum import IntEnum
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidDayOfWeek, InvalidTimeFormat, InvalidTimeRange

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"([0-9]{2}):([0-9]{2})", re.ASCII)


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """
    A wall-clock time with minute resolution, stored as minutes since midnight.

    Invariant: 0 <= minutes < 1440.
    """
    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise InvalidTimeFormat(
                f"Time must be between 00:00 and 23:59, got {self.minutes} minutes"
            )

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """
        Parse a canonical ``HH:MM`` string.

        Raises:
            InvalidTimeFormat: If the string is not two zero-padded numeric
                fields separated by ``:`` or falls outside the day.
        """
        match = _TIME_PATTERN.fullmatch(value) if isinstance(value, str) else None
        if not match:
            raise InvalidTimeFormat(f"Expected time as HH:MM, got {value!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            raise InvalidTimeFormat(f"Time out of range: {value!r}")

        return cls(hour * 60 + minute)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def format(self) -> str:
        """Return the canonical ``HH:MM`` form."""
        return f"{self.hour:02d}:{self.minute:02d}"

    def add_minutes(self, delta: int) -> Optional["TimeOfDay"]:
        """
        Shift by ``delta`` minutes without wrapping around midnight.

        Returns None when the result leaves the day, so the caller can
        discard it instead of silently landing on the next day.
        """
        total = self.minutes + delta
        if not 0 <= total < MINUTES_PER_DAY:
            return None
        return TimeOfDay(total)

    def __str__(self) -> str:
        return self.format()


class DayOfWeek(IntEnum):
    """Day of the recurring week, Monday=1 ... Sunday=7."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @classmethod
    def from_value(cls, value: Any) -> "DayOfWeek":
        """
        Coerce an int, numeric string or day name ("mon", "Monday") to a DayOfWeek.

        Raises:
            InvalidDayOfWeek: For anything outside 1..7 or an unknown name.
        """
        if isinstance(value, DayOfWeek):
            return value

        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                value = int(text)
            else:
                for day in cls:
                    if day.label.lower() == text.lower() or day.short.lower() == text.lower():
                        return day
                raise InvalidDayOfWeek(f"Unknown day of week: {value!r}")

        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDayOfWeek(f"Day of week must be an integer 1..7, got {value!r}")

        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidDayOfWeek(
                f"Day of week must be between 1 (Monday) and 7 (Sunday), got {value}"
            ) from exc

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def short(self) -> str:
        return self.label[:3]


@dataclass(frozen=True)
class TimeRange:
    """
    A time range within a single day.

    Invariant: end must be after start. Ranges are half-open, so a range
    ending at 09:00 does not overlap one starting at 09:00.
    """
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidTimeRange(
                f"End time {self.end} must be after start time {self.start}"
            )

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeRange":
        """Build a range from two ``HH:MM`` strings."""
        return cls(start=TimeOfDay.parse(start), end=TimeOfDay.parse(end))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return self.end.minutes - self.start.minutes

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{self.start} - {self.end}"


def parse_time(value: str) -> TimeOfDay:
    """Parse ``HH:MM`` into a TimeOfDay."""
    return TimeOfDay.parse(value)


def format_time(value: TimeOfDay) -> str:
    """Format a TimeOfDay as ``HH:MM``."""
    return value.format()


def add_minutes(value: TimeOfDay, delta: int) -> Optional[TimeOfDay]:
    """Shift a time by ``delta`` minutes; None if the result leaves the day."""
    return value.add_minutes(delta)


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """Half-open overlap test for two ranges on the same day."""
    return a.overlaps(b)


def duration_minutes(time_range: TimeRange) -> int:
    """Duration of a range in minutes."""
    return time_range.duration_minutes()


@dataclass(frozen=True)
class SlotData:
    """
    Payload for creating a schedule slot, before the store assigns an id.
    """
    day_of_week: DayOfWeek
    time_range: TimeRange
    teacher_id: str
    subject_id: str
    class_id: str
    room_id: str

    @classmethod
    def build(
        cls,
        *,
        day: Any,
        start: str,
        end: str,
        teacher_id: str,
        subject_id: str,
        class_id: str,
        room_id: str,
    ) -> "SlotData":
        """Build slot data from loosely typed input (day number or name, HH:MM strings)."""
        return cls(
            day_of_week=DayOfWeek.from_value(day),
            time_range=TimeRange.from_strings(start, end),
            teacher_id=teacher_id,
            subject_id=subject_id,
            class_id=class_id,
            room_id=room_id,
        )


@dataclass(frozen=True)
class ScheduleSlot:
    """
    One weekly recurring lesson: a subject taught by a teacher to a class in a room.
    """
    id: str
    day_of_week: DayOfWeek
    time_range: TimeRange
    teacher_id: str
    subject_id: str
    class_id: str
    room_id: str
    created_at: Optional[DateTime] = field(default=None, compare=False)

    @classmethod
    def from_data(
        cls,
        slot_id: str,
        data: SlotData,
        created_at: Optional[DateTime] = None,
    ) -> "ScheduleSlot":
        return cls(
            id=slot_id,
            day_of_week=data.day_of_week,
            time_range=data.time_range,
            teacher_id=data.teacher_id,
            subject_id=data.subject_id,
            class_id=data.class_id,
            room_id=data.room_id,
            created_at=created_at,
        )

    @property
    def start_time(self) -> TimeOfDay:
        return self.time_range.start

    @property
    def end_time(self) -> TimeOfDay:
        return self.time_range.end

    def to_data(self) -> SlotData:
        """Strip identity, leaving the writable fields."""
        return SlotData(
            day_of_week=self.day_of_week,
            time_range=self.time_range,
            teacher_id=self.teacher_id,
            subject_id=self.subject_id,
            class_id=self.class_id,
            room_id=self.room_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the JSON record layout used by the file store."""
        record: Dict[str, Any] = {
            "id": self.id,
            "dayOfWeek": int(self.day_of_week),
            "startTime": self.start_time.format(),
            "endTime": self.end_time.format(),
            "teacherId": self.teacher_id,
            "subjectId": self.subject_id,
            "classId": self.class_id,
            "roomId": self.room_id,
        }
        if self.created_at is not None:
            record["createdAt"] = self.created_at.to_iso8601_string()
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "ScheduleSlot":
        """
        Parse a JSON record.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the day or times are invalid
        """
        created_at = record.get("createdAt")
        return cls(
            id=str(record["id"]),
            day_of_week=DayOfWeek.from_value(record["dayOfWeek"]),
            time_range=TimeRange.from_strings(record["startTime"], record["endTime"]),
            teacher_id=str(record["teacherId"]),
            subject_id=str(record["subjectId"]),
            class_id=str(record["classId"]),
            room_id=str(record["roomId"]),
            created_at=pendulum.parse(created_at) if created_at else None,
        )

    def __str__(self) -> str:
        return f"{self.day_of_week.short} {self.time_range}"


@dataclass(frozen=True)
class SlotUpdate:
    """
    Partial change to a stored slot. Fields left as None keep their stored value.
    """
    day_of_week: Optional[DayOfWeek] = None
    start: Optional[TimeOfDay] = None
    end: Optional[TimeOfDay] = None
    teacher_id: Optional[str] = None
    subject_id: Optional[str] = None
    class_id: Optional[str] = None
    room_id: Optional[str] = None

    def is_empty(self) -> bool:
        return all(value is None for value in self.__dict__.values())

    def apply_to(self, slot: ScheduleSlot) -> SlotData:
        """
        Merge the change over ``slot``.

        Raises:
            InvalidTimeRange: If the merged range would not end after it starts.
        """
        time_range = TimeRange(
            start=self.start if self.start is not None else slot.start_time,
            end=self.end if self.end is not None else slot.end_time,
        )
        return replace(
            slot.to_data(),
            day_of_week=self.day_of_week if self.day_of_week is not None else slot.day_of_week,
            time_range=time_range,
            teacher_id=self.teacher_id if self.teacher_id is not None else slot.teacher_id,
            subject_id=self.subject_id if self.subject_id is not None else slot.subject_id,
            class_id=self.class_id if self.class_id is not None else slot.class_id,
            room_id=self.room_id if self.room_id is not None else slot.room_id,
        )


@dataclass(frozen=True)
class ScheduleFilters:
    """Optional class / teacher restriction for the displayed week."""
    class_id: Optional[str] = None
    teacher_id: Optional[str] = None

    def is_empty(self) -> bool:
        return self.class_id is None and self.teacher_id is None

    def matches(self, slot: ScheduleSlot) -> bool:
        if self.class_id is not None and slot.class_id != self.class_id:
            return False
        if self.teacher_id is not None and slot.teacher_id != self.teacher_id:
            return False
        return True

    def apply(self, slots: List[ScheduleSlot]) -> List[ScheduleSlot]:
        return [slot for slot in slots if self.matches(slot)]


def _to_pendulum_date(value: _date) -> Date:
    return pendulum.date(value.year, value.month, value.day)


@dataclass(frozen=True)
class WeekWindow:
    """
    The Monday-to-Sunday week containing a date.

    Used for grid rendering only; slots recur every week, so conflict checks
    never look at calendar dates.
    """
    start: Date

    def __post_init__(self):
        if self.start.isoweekday() != DayOfWeek.MONDAY:
            raise ValueError(f"Week must start on a Monday, got {self.start}")

    @classmethod
    def containing(cls, value: _date) -> "WeekWindow":
        """Return the week (Monday-based) that contains ``value``."""
        day = _to_pendulum_date(value)
        return cls(start=day.subtract(days=day.isoweekday() - 1))

    @property
    def end(self) -> Date:
        return self.start.add(days=6)

    def days(self) -> List[Date]:
        """The seven calendar dates of the week, Monday first."""
        return [self.start.add(days=offset) for offset in range(7)]

    def date_for(self, day: DayOfWeek) -> Date:
        return self.start.add(days=int(day) - 1)

    def contains(self, value: _date) -> bool:
        return self.start <= _to_pendulum_date(value) <= self.end

    def previous(self) -> "WeekWindow":
        return WeekWindow(start=self.start.subtract(weeks=1))

    def next(self) -> "WeekWindow":
        return WeekWindow(start=self.start.add(weeks=1))

    def label(self) -> str:
        """Format like ``Nov 25 - Dec 1, 2024``."""
        return f"{self.start.format('MMM D')} - {self.end.format('MMM D, YYYY')}"
