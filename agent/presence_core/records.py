"""
AttendanceRecord — one presence fact per calendar day.
"""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class AttendanceRecord:
    date: date
    is_office: bool = False
    is_day_off: bool = False    # Reserved; carried through load/save untouched

    def __post_init__(self):
        self.date = as_day(self.date)


def as_day(value) -> date:
    """Truncate a datetime to its calendar date; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected a date, got {type(value).__name__}")
