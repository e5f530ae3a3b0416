"""
Double-booking detection for schedule slots.

A teacher or a room can only be in one place at a time. Two slots conflict
when they fall on the same day of the week, their time ranges overlap and
they share the teacher or the room. A class may legitimately have parallel
slots (team teaching in different rooms), so the class is not compared.

Pure domain logic: callers pass the snapshot of existing slots in.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .models import DayOfWeek, ScheduleSlot, SlotData

Candidate = Union[SlotData, ScheduleSlot]


class ConflictKind(str, Enum):
    """Which shared resource caused the conflict."""
    TEACHER = "teacher"
    ROOM = "room"


@dataclass(frozen=True)
class ConflictResult:
    """
    Outcome of a conflict check.

    ``conflicting_slot`` is the first existing slot that collides with the
    candidate, or None when the candidate can be written.
    """
    conflicting_slot: Optional[ScheduleSlot] = None
    kinds: Tuple[ConflictKind, ...] = ()

    @classmethod
    def none(cls) -> "ConflictResult":
        return cls()

    @classmethod
    def conflict(cls, slot: ScheduleSlot, kinds: Tuple[ConflictKind, ...]) -> "ConflictResult":
        return cls(conflicting_slot=slot, kinds=kinds)

    @property
    def has_conflict(self) -> bool:
        return self.conflicting_slot is not None

    def describe(self) -> str:
        if self.conflicting_slot is None:
            return "No conflict"
        resources = " and ".join(kind.value for kind in self.kinds)
        return (
            f"Conflict: {resources} already booked {self.conflicting_slot} "
            f"(slot {self.conflicting_slot.id})"
        )


@dataclass(frozen=True)
class ConflictPair:
    """Two stored slots that double-book a teacher or room."""
    first: ScheduleSlot
    second: ScheduleSlot
    kinds: Tuple[ConflictKind, ...]

    @property
    def day_of_week(self) -> DayOfWeek:
        return self.first.day_of_week


def shared_resources(a: Candidate, b: Candidate) -> Tuple[ConflictKind, ...]:
    """Resources two bookings have in common, teacher first."""
    kinds: List[ConflictKind] = []
    if a.teacher_id == b.teacher_id:
        kinds.append(ConflictKind.TEACHER)
    if a.room_id == b.room_id:
        kinds.append(ConflictKind.ROOM)
    return tuple(kinds)


class ConflictChecker:
    """
    Checks a candidate slot against existing slots.

    Algorithm:
    1. Keep existing slots on the candidate's day, minus the slot being updated
    2. Find slots whose time range overlaps the candidate's
    3. Of those, report slots sharing the teacher or the room
    """

    def check(
        self,
        candidate: Candidate,
        existing: Iterable[ScheduleSlot],
        exclude_id: Optional[str] = None,
    ) -> ConflictResult:
        """
        Return the first conflicting slot, in snapshot order.

        Args:
            candidate: New slot data, or the merged state of an updated slot
            existing: Snapshot of stored slots
            exclude_id: Id of the slot being updated, so it is not compared
                against its own stored record
        """
        for slot, kinds in self._collisions(candidate, existing, exclude_id):
            return ConflictResult.conflict(slot, kinds)
        return ConflictResult.none()

    def find_conflicts(
        self,
        candidate: Candidate,
        existing: Iterable[ScheduleSlot],
        exclude_id: Optional[str] = None,
    ) -> List[ConflictResult]:
        """Every existing slot that collides with the candidate."""
        return [
            ConflictResult.conflict(slot, kinds)
            for slot, kinds in self._collisions(candidate, existing, exclude_id)
        ]

    def find_all_conflicts(self, slots: Sequence[ScheduleSlot]) -> List[ConflictPair]:
        """
        Audit a whole snapshot for double bookings.

        Pairs are compared per day and returned ordered by day, then by the
        position of the first slot in the snapshot.
        """
        by_day: Dict[DayOfWeek, List[ScheduleSlot]] = defaultdict(list)
        for slot in slots:
            by_day[slot.day_of_week].append(slot)

        pairs: List[ConflictPair] = []
        for day in sorted(by_day):
            day_slots = by_day[day]
            for index, first in enumerate(day_slots):
                for second in day_slots[index + 1:]:
                    if not first.time_range.overlaps(second.time_range):
                        continue
                    kinds = shared_resources(first, second)
                    if kinds:
                        pairs.append(ConflictPair(first=first, second=second, kinds=kinds))

        return pairs

    def _collisions(
        self,
        candidate: Candidate,
        existing: Iterable[ScheduleSlot],
        exclude_id: Optional[str],
    ):
        for slot in existing:
            if slot.day_of_week != candidate.day_of_week:
                continue
            if exclude_id is not None and slot.id == exclude_id:
                continue
            if not candidate.time_range.overlaps(slot.time_range):
                continue

            kinds = shared_resources(candidate, slot)
            if kinds:
                yield slot, kinds


def check_conflict(
    candidate: Candidate,
    existing: Iterable[ScheduleSlot],
    exclude_id: Optional[str] = None,
) -> ConflictResult:
    """Module-level shortcut for ``ConflictChecker().check``."""
    return ConflictChecker().check(candidate, existing, exclude_id=exclude_id)
