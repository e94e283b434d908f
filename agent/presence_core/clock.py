"""
Clock — the single source of "today" for the core.

Everything that needs the current date asks a Clock instead of calling
date.today() directly, so tests and tools can pin the date.
"""

import threading
from datetime import date, datetime


class SystemClock:
    """Local calendar date of the machine."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock frozen at a settable date."""

    def __init__(self, today):
        self._lock = threading.Lock()
        self._today = _as_date(today)

    def today(self) -> date:
        with self._lock:
            return self._today

    def set(self, today):
        with self._lock:
            self._today = _as_date(today)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
