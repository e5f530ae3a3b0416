"""
Layout of schedule slots on the weekly time grid.

The grid has one column per day (Monday first) and one row per time-axis
step. A slot is drawn in the cell where it starts and stretched down over
the cells its duration covers. When several slots start in the same cell
they are stacked diagonally: each one is shifted down and right by a fixed
step and drawn above the previous one. Only the first few are drawn; the
rest are summarised as "+N more" and stay reachable through the cell's full
slot list.

Stateless: the whole grid is recomputed from a snapshot on every change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as _date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pendulum import Date

from .models import DayOfWeek, ScheduleSlot, TimeOfDay, WeekWindow
from .time_options import generate_time_options

OrderKey = Callable[[ScheduleSlot], object]


def by_id(slot: ScheduleSlot) -> object:
    """Order slots by their id."""
    return slot.id


def creation_order(slot: ScheduleSlot) -> object:
    """Order slots by creation time, slots without a timestamp last, ties by id."""
    if slot.created_at is None:
        return (1, 0.0, slot.id)
    return (0, slot.created_at.timestamp(), slot.id)


@dataclass(frozen=True)
class TimeAxis:
    """
    Row labels of the grid: every ``step_minutes`` from ``start_hour:00``
    through the last step of ``end_hour``.
    """
    start_hour: int = 7
    end_hour: int = 18
    step_minutes: int = 30

    def __post_init__(self):
        if not 0 <= self.start_hour <= self.end_hour <= 23:
            raise ValueError(
                f"Axis hours must satisfy 0 <= start_hour <= end_hour <= 23, "
                f"got {self.start_hour}..{self.end_hour}"
            )
        if self.step_minutes <= 0 or 60 % self.step_minutes != 0:
            raise ValueError(f"step_minutes must divide an hour evenly, got {self.step_minutes}")

    def labels(self) -> List[TimeOfDay]:
        return generate_time_options(self.start_hour, self.end_hour, self.step_minutes)


@dataclass(frozen=True)
class GridLayout:
    """Pixel constants of the grid."""
    cell_height_px: int = 64
    gap_px: int = 4
    max_visible: int = 3
    offset_step_px: int = 8
    base_z_index: int = 10
    palette_size: int = 5

    @property
    def cell_total_height_px(self) -> int:
        return self.cell_height_px + self.gap_px


@dataclass(frozen=True)
class StackPosition:
    offset_px: int
    z_index: int


@dataclass(frozen=True)
class VisibleSlots:
    """Slots drawn in a cell plus the count summarised as "+N more"."""
    shown: List[ScheduleSlot]
    overflow_count: int
    all_slots: List[ScheduleSlot]

    @property
    def has_more(self) -> bool:
        return self.overflow_count > 0


@dataclass(frozen=True)
class SlotPlacement:
    """Everything a presentation layer needs to draw one slot."""
    slot: ScheduleSlot
    height_px: float
    offset_px: int
    z_index: int
    color_index: int


@dataclass
class GridCell:
    day: DayOfWeek
    date: Date
    time: TimeOfDay
    all_slots: List[ScheduleSlot] = field(default_factory=list)
    placements: List[SlotPlacement] = field(default_factory=list)
    overflow_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.all_slots

    @property
    def has_more(self) -> bool:
        return self.overflow_count > 0


@dataclass
class GridRow:
    time: TimeOfDay
    cells: List[GridCell]


@dataclass
class WeekGrid:
    """
    Render-ready week: rows follow the time axis, each row has seven cells.

    ``unplaced`` holds slots whose start time is not an axis label (or lies
    outside the axis); they have no cell to start in.
    """
    week: WeekWindow
    rows: List[GridRow]
    unplaced: List[ScheduleSlot] = field(default_factory=list)

    def days(self) -> List[Date]:
        return self.week.days()

    def cell(self, day: DayOfWeek, time: TimeOfDay) -> Optional[GridCell]:
        for row in self.rows:
            if row.time == time:
                return row.cells[int(day) - 1]
        return None

    def slots_at(self, day: DayOfWeek, time: TimeOfDay) -> List[ScheduleSlot]:
        """Full list of slots starting at a cell, including the overflow."""
        cell = self.cell(day, time)
        return list(cell.all_slots) if cell else []

    def placed_count(self) -> int:
        return sum(len(cell.all_slots) for row in self.rows for cell in row.cells)


class WeekGridLayoutEngine:
    """
    Turns a flat slot list into a WeekGrid.

    Slots must already be filtered to the displayed week and any active
    class/teacher filter.
    """

    def __init__(
        self,
        axis: Optional[TimeAxis] = None,
        layout: Optional[GridLayout] = None,
        order_key: OrderKey = by_id,
    ):
        self.axis = axis or TimeAxis()
        self.layout = layout or GridLayout()
        self.order_key = order_key

    def day_dates(self, week_start: _date) -> List[Date]:
        """The seven dates of the week starting at ``week_start``."""
        return WeekWindow.containing(week_start).days()

    def date_for_day(self, week_start: _date, day_index: int) -> Date:
        """Date of column ``day_index`` (0 = Monday .. 6 = Sunday)."""
        if not 0 <= day_index <= 6:
            raise ValueError(f"day_index must be between 0 and 6, got {day_index}")
        return self.day_dates(week_start)[day_index]

    def slots_starting_at(
        self,
        slots: Sequence[ScheduleSlot],
        day: DayOfWeek,
        time: TimeOfDay,
    ) -> List[ScheduleSlot]:
        """
        Slots whose day and start time match the cell exactly.

        A slot starting between two axis labels does not appear at the
        earlier cell.
        """
        matching = [
            slot for slot in slots
            if slot.day_of_week == day and slot.start_time == time
        ]
        return sorted(matching, key=self.order_key)

    def height_px(self, slot: ScheduleSlot) -> float:
        """
        Height covering the slot's cells minus the trailing gap.

        Formula: cells * (cell_height + gap) - gap
        """
        cells = slot.time_range.duration_minutes() / self.axis.step_minutes
        return cells * self.layout.cell_total_height_px - self.layout.gap_px

    def visible_slots(self, slots_at_cell: Sequence[ScheduleSlot]) -> VisibleSlots:
        """Cap drawn slots at ``max_visible``; the rest become the overflow count."""
        all_slots = list(slots_at_cell)
        shown = all_slots[:self.layout.max_visible]
        return VisibleSlots(
            shown=shown,
            overflow_count=max(0, len(all_slots) - self.layout.max_visible),
            all_slots=all_slots,
        )

    def stack_position(self, index_in_cell: int) -> StackPosition:
        """Diagonal offset and z-index; later slots sit lower, further right and on top."""
        return StackPosition(
            offset_px=index_in_cell * self.layout.offset_step_px,
            z_index=self.layout.base_z_index + index_in_cell,
        )

    def place(self, slots_at_cell: Sequence[ScheduleSlot]) -> Tuple[List[SlotPlacement], int]:
        """Placements for the drawn slots of one cell and its overflow count."""
        visible = self.visible_slots(slots_at_cell)
        placements: List[SlotPlacement] = []

        for index, slot in enumerate(visible.shown):
            position = self.stack_position(index)
            placements.append(
                SlotPlacement(
                    slot=slot,
                    height_px=self.height_px(slot),
                    offset_px=position.offset_px,
                    z_index=position.z_index,
                    color_index=index % self.layout.palette_size,
                )
            )

        return placements, visible.overflow_count

    def build(self, slots: Sequence[ScheduleSlot], week_start: _date) -> WeekGrid:
        """Lay out a whole week."""
        week = WeekWindow.containing(week_start)
        dates = week.days()
        labels = self.axis.labels()
        label_set = set(labels)

        # Bucket once instead of scanning every slot for every cell
        buckets: Dict[Tuple[DayOfWeek, TimeOfDay], List[ScheduleSlot]] = {}
        unplaced: List[ScheduleSlot] = []
        for slot in slots:
            if slot.start_time not in label_set:
                unplaced.append(slot)
                continue
            buckets.setdefault((slot.day_of_week, slot.start_time), []).append(slot)

        rows: List[GridRow] = []
        for time in labels:
            cells: List[GridCell] = []
            for day in DayOfWeek:
                at_cell = sorted(buckets.get((day, time), []), key=self.order_key)
                placements, overflow = self.place(at_cell)
                cells.append(
                    GridCell(
                        day=day,
                        date=dates[int(day) - 1],
                        time=time,
                        all_slots=at_cell,
                        placements=placements,
                        overflow_count=overflow,
                    )
                )
            rows.append(GridRow(time=time, cells=cells))

        return WeekGrid(
            week=week,
            rows=rows,
            unplaced=sorted(
                unplaced,
                key=lambda slot: (int(slot.day_of_week), slot.start_time.minutes, self.order_key(slot)),
            ),
        )
