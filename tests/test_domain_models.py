"""
Tests for domain models.
"""

import pendulum
import pytest

from timetabler.domain.exceptions import InvalidDayOfWeek, InvalidTimeFormat, InvalidTimeRange
from timetabler.domain.models import (
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


def _range(start: str, end: str) -> TimeRange:
    return TimeRange.from_strings(start, end)


def _slot(slot_id: str = "s1", day: int = 1, start: str = "08:00", end: str = "09:30", **refs) -> ScheduleSlot:
    return ScheduleSlot(
        id=slot_id,
        day_of_week=DayOfWeek(day),
        time_range=_range(start, end),
        teacher_id=refs.get("teacher_id", "t1"),
        subject_id=refs.get("subject_id", "sub1"),
        class_id=refs.get("class_id", "c1"),
        room_id=refs.get("room_id", "r1"),
    )


class TestTimeOfDay:
    """Tests for TimeOfDay parsing and formatting."""

    def test_parse_and_format(self):
        """Test a canonical string converts to minutes and back."""
        t = parse_time("08:30")

        assert t.minutes == 510
        assert t.hour == 8
        assert t.minute == 30
        assert format_time(t) == "08:30"

    def test_bounds(self):
        """Test the first and last minute of the day are valid."""
        assert parse_time("00:00").minutes == 0
        assert parse_time("23:59").minutes == 1439

    @pytest.mark.parametrize(
        "value",
        [
            "8:30", "08:3", "0830", "08-30", "24:00", "12:60", "ab:cd", " 08:30", "08:30:00", "",
            "08:30\n", "０８:３０", "٠٨:٣٠",
        ],
    )
    def test_invalid_format(self, value):
        """Test malformed or out-of-range strings are rejected."""
        with pytest.raises(InvalidTimeFormat):
            parse_time(value)

    def test_invalid_minutes(self):
        """Test minutes outside the day cannot be constructed."""
        with pytest.raises(InvalidTimeFormat):
            TimeOfDay(1440)
        with pytest.raises(InvalidTimeFormat):
            TimeOfDay(-1)

    def test_round_trip_whole_day(self):
        """Test parse(format(t)) == t for every minute of the day."""
        for minutes in range(0, 1440):
            t = TimeOfDay(minutes)
            assert parse_time(format_time(t)) == t
            assert format_time(parse_time(format_time(t))) == format_time(t)

    def test_add_minutes(self):
        """Test shifting within the day."""
        assert add_minutes(parse_time("08:00"), 90) == parse_time("09:30")
        assert add_minutes(parse_time("08:00"), -60) == parse_time("07:00")

    def test_add_minutes_past_midnight_is_discarded(self):
        """Test results outside the day are None rather than wrapped."""
        assert add_minutes(parse_time("23:00"), 60) is None
        assert add_minutes(parse_time("00:30"), -31) is None
        assert add_minutes(parse_time("23:00"), 59) == parse_time("23:59")

    def test_ordering(self):
        """Test times compare chronologically."""
        assert parse_time("08:00") < parse_time("08:01")
        assert parse_time("10:00") > parse_time("09:59")


class TestDayOfWeek:
    """Tests for DayOfWeek coercion."""

    def test_from_int_and_name(self):
        """Test numbers, numeric strings and names are accepted."""
        assert DayOfWeek.from_value(1) is DayOfWeek.MONDAY
        assert DayOfWeek.from_value("7") is DayOfWeek.SUNDAY
        assert DayOfWeek.from_value("wed") is DayOfWeek.WEDNESDAY
        assert DayOfWeek.from_value("Friday") is DayOfWeek.FRIDAY

    @pytest.mark.parametrize("value", [0, 8, -1, "someday", 1.5, None, True])
    def test_invalid_values(self, value):
        """Test anything outside 1..7 is rejected."""
        with pytest.raises(InvalidDayOfWeek):
            DayOfWeek.from_value(value)

    def test_labels(self):
        """Test display labels."""
        assert DayOfWeek.MONDAY.label == "Monday"
        assert DayOfWeek.THURSDAY.short == "Thu"


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        tr = _range("08:00", "09:30")

        assert tr.start == parse_time("08:00")
        assert tr.end == parse_time("09:30")
        assert tr.duration_minutes() == 90
        assert duration_minutes(tr) == 90

    @pytest.mark.parametrize("start,end", [("09:00", "08:00"), ("09:00", "09:00")])
    def test_invalid_time_range_raises_error(self, start, end):
        """Test that zero or negative durations are rejected."""
        with pytest.raises(InvalidTimeRange, match="must be after start time"):
            _range(start, end)

    def test_overlaps(self):
        """Test overlap detection."""
        assert overlaps(_range("08:00", "09:30"), _range("09:00", "10:00"))
        assert overlaps(_range("08:00", "12:00"), _range("09:00", "10:00"))
        assert not overlaps(_range("08:00", "09:00"), _range("10:00", "11:00"))

    def test_touching_ranges_do_not_overlap(self):
        """Test half-open semantics at a shared boundary."""
        assert not overlaps(_range("08:00", "09:00"), _range("09:00", "10:00"))
        assert not overlaps(_range("09:00", "10:00"), _range("08:00", "09:00"))

    def test_overlap_is_symmetric_and_reflexive(self):
        """Test overlaps(a, b) == overlaps(b, a) and overlaps(a, a)."""
        ranges = [
            _range("07:00", "08:00"),
            _range("07:30", "09:00"),
            _range("08:00", "08:15"),
            _range("08:10", "12:00"),
            _range("12:00", "13:00"),
        ]
        for a in ranges:
            assert overlaps(a, a)
            for b in ranges:
                assert overlaps(a, b) == overlaps(b, a)

    def test_str(self):
        assert str(_range("08:00", "09:30")) == "08:00 - 09:30"


class TestScheduleSlot:
    """Tests for ScheduleSlot serialisation and updates."""

    def test_dict_round_trip(self):
        """Test the JSON record layout."""
        slot = ScheduleSlot(
            id="slot-1",
            day_of_week=DayOfWeek.TUESDAY,
            time_range=_range("10:00", "11:00"),
            teacher_id="t1",
            subject_id="sub1",
            class_id="c1",
            room_id="r1",
            created_at=pendulum.datetime(2024, 8, 20, 9, 0, tz="UTC"),
        )

        record = slot.to_dict()

        assert record["dayOfWeek"] == 2
        assert record["startTime"] == "10:00"
        assert record["endTime"] == "11:00"
        restored = ScheduleSlot.from_dict(record)
        assert restored == slot
        assert restored.created_at == slot.created_at

    def test_from_dict_rejects_bad_times(self):
        """Test invalid records raise instead of producing a slot."""
        record = _slot().to_dict()
        record["endTime"] = "07:00"

        with pytest.raises(InvalidTimeRange):
            ScheduleSlot.from_dict(record)

    def test_slot_data_build(self):
        """Test building write payloads from loose input."""
        data = SlotData.build(
            day="mon", start="08:00", end="09:00",
            teacher_id="t1", subject_id="sub1", class_id="c1", room_id="r1",
        )

        assert data.day_of_week is DayOfWeek.MONDAY
        assert data.time_range.duration_minutes() == 60

    def test_update_keeps_unset_fields(self):
        """Test partial updates merge over the stored slot."""
        slot = _slot()
        merged = SlotUpdate(end=parse_time("09:45"), room_id="r2").apply_to(slot)

        assert merged.time_range == _range("08:00", "09:45")
        assert merged.room_id == "r2"
        assert merged.teacher_id == slot.teacher_id
        assert merged.day_of_week == slot.day_of_week

    def test_update_validates_merged_range(self):
        """Test a new start after the stored end is rejected."""
        with pytest.raises(InvalidTimeRange):
            SlotUpdate(start=parse_time("10:00")).apply_to(_slot())

    def test_update_applies_empty_string_ids(self):
        """Test an explicitly set empty id replaces the stored one."""
        merged = SlotUpdate(room_id="").apply_to(_slot())

        assert merged.room_id == ""
        assert merged.teacher_id == "t1"

    def test_update_is_empty(self):
        assert SlotUpdate().is_empty()
        assert not SlotUpdate(teacher_id="t2").is_empty()


class TestScheduleFilters:
    """Tests for class/teacher filters."""

    def test_filters(self):
        slots = [
            _slot("a", class_id="c1", teacher_id="t1"),
            _slot("b", class_id="c2", teacher_id="t1"),
            _slot("c", class_id="c1", teacher_id="t2"),
        ]

        assert [s.id for s in ScheduleFilters().apply(slots)] == ["a", "b", "c"]
        assert [s.id for s in ScheduleFilters(class_id="c1").apply(slots)] == ["a", "c"]
        assert [s.id for s in ScheduleFilters(teacher_id="t1").apply(slots)] == ["a", "b"]
        assert [s.id for s in ScheduleFilters(class_id="c1", teacher_id="t2").apply(slots)] == ["c"]


class TestWeekWindow:
    """Tests for the Monday-based week window."""

    def test_containing_midweek(self):
        """Test a Wednesday maps to its Monday."""
        window = WeekWindow.containing(pendulum.date(2024, 11, 27))

        assert window.start == pendulum.date(2024, 11, 25)
        assert window.end == pendulum.date(2024, 12, 1)

    def test_containing_sunday(self):
        """Test Sunday belongs to the week that started the previous Monday."""
        window = WeekWindow.containing(pendulum.date(2024, 12, 1))

        assert window.start == pendulum.date(2024, 11, 25)

    def test_days(self):
        """Test the seven dates, Monday first."""
        days = WeekWindow.containing(pendulum.date(2024, 11, 25)).days()

        assert len(days) == 7
        assert days[0] == pendulum.date(2024, 11, 25)
        assert days[6] == pendulum.date(2024, 12, 1)
        assert [d.isoweekday() for d in days] == [1, 2, 3, 4, 5, 6, 7]

    def test_navigation_and_label(self):
        window = WeekWindow.containing(pendulum.date(2024, 11, 27))

        assert window.next().start == pendulum.date(2024, 12, 2)
        assert window.previous().start == pendulum.date(2024, 11, 18)
        assert window.contains(pendulum.date(2024, 11, 30))
        assert not window.contains(pendulum.date(2024, 12, 2))
        assert window.date_for(DayOfWeek.FRIDAY) == pendulum.date(2024, 11, 29)
        assert window.label() == "Nov 25 - Dec 1, 2024"

    def test_start_must_be_monday(self):
        with pytest.raises(ValueError):
            WeekWindow(start=pendulum.date(2024, 11, 26))
