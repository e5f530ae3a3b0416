"""
Time choices offered when creating or editing a slot.

The form offers a fixed list of start/end times. Moving the start time keeps
the current duration when the new end time is still one of the offered
options; otherwise the end time is cleared and the user picks again.
"""

from typing import List, Optional, Sequence

from .models import TimeOfDay, TimeRange

SCHEDULE_START_HOUR = 7
SCHEDULE_END_HOUR = 18
TIME_OPTION_INTERVAL_MINUTES = 15


def generate_time_options(
    start_hour: int = SCHEDULE_START_HOUR,
    end_hour: int = SCHEDULE_END_HOUR,
    interval_minutes: int = TIME_OPTION_INTERVAL_MINUTES,
) -> List[TimeOfDay]:
    """
    Every ``interval_minutes`` from ``start_hour:00`` through the last step of ``end_hour``.

    Example: (7, 8, 30) -> 07:00, 07:30, 08:00, 08:30
    """
    if not 0 <= start_hour <= end_hour <= 23:
        raise ValueError(
            f"Hours must satisfy 0 <= start_hour <= end_hour <= 23, got {start_hour}..{end_hour}"
        )
    if interval_minutes <= 0 or 60 % interval_minutes != 0:
        raise ValueError(f"interval_minutes must divide an hour evenly, got {interval_minutes}")

    return [
        TimeOfDay(hour * 60 + minute)
        for hour in range(start_hour, end_hour + 1)
        for minute in range(0, 60, interval_minutes)
    ]


def filter_end_time_options(
    start: Optional[TimeOfDay],
    options: Sequence[TimeOfDay],
) -> List[TimeOfDay]:
    """Only the options strictly after ``start`` (all options when no start is chosen)."""
    if start is None:
        return list(options)
    return [option for option in options if option > start]


def shift_preserving_duration(
    current: TimeRange,
    new_start: TimeOfDay,
    options: Sequence[TimeOfDay],
) -> Optional[TimeRange]:
    """
    Move ``current`` to ``new_start`` keeping its duration.

    Returns None when the shifted end is not an offered option, which
    includes ends that would cross midnight.
    """
    new_end = new_start.add_minutes(current.duration_minutes())
    if new_end is None or new_end not in options:
        return None
    return TimeRange(start=new_start, end=new_end)
