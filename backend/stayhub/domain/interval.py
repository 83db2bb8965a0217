"""
Half-open calendar-date intervals for stays.

A stay `[start, end)` occupies the nights starting on `start` up to but not
including `end`, so a checkout day can be another guest's check-in day.

    >>> a = StayInterval(date(2024, 6, 1), date(2024, 6, 5))
    >>> b = StayInterval(date(2024, 6, 5), date(2024, 6, 10))
    >>> a.nights, a.overlaps(b)
    (4, False)
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Union

DateLike = Union[date, datetime, str]


def to_calendar_date(value: DateLike) -> date:
    """Truncate a date, datetime or ISO-8601 string to its calendar date.

    Aware datetimes are converted to UTC first so that "2024-06-01T23:30-05:00"
    lands on the same day for every caller.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return date.fromisoformat(text)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Cannot interpret {value!r} as a calendar date")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class StayInterval:
    start: date
    end: date

    @classmethod
    def from_values(cls, start: DateLike, end: DateLike) -> "StayInterval":
        return cls(to_calendar_date(start), to_calendar_date(end))

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def overlaps(self, other: "StayInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


def nights(interval: StayInterval) -> int:
    return interval.nights


def overlaps(a: StayInterval, b: StayInterval) -> bool:
    return a.overlaps(b)
