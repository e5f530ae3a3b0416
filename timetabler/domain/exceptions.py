"""
Domain-specific exception hierarchy for the timetabler application.
"""


class TimetableError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeFormat(TimetableError, ValueError):
    """Raised when a time string is not a canonical HH:MM value within the day."""


class InvalidTimeRange(TimetableError, ValueError):
    """Raised when a time range does not end strictly after it starts."""


class InvalidDayOfWeek(TimetableError, ValueError):
    """Raised for day numbers outside 1 (Monday) .. 7 (Sunday)."""


class NotFoundError(TimetableError, KeyError):
    """Base for unknown ids; keeps the plain message instead of KeyError's quoted repr."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SlotNotFoundError(NotFoundError):
    """Raised when a schedule slot id is unknown to the store."""


class EntityNotFoundError(NotFoundError):
    """Raised when a master data record (teacher, subject, class, room) is unknown."""


class StoreError(TimetableError):
    """Raised when the backing store cannot be read or written."""
