"""
Monthly compliance — how the month's office days compare to the target.

Business days are Monday–Friday; there is no holiday calendar.
"""

import calendar
import math
from datetime import date, timedelta
from enum import Enum


class ComplianceStatus(Enum):
    SECURED = "Secured"        # whole month's target already met
    COMPLIANT = "Compliant"    # on track against the days elapsed so far
    WARNING = "Warning"        # behind, but the month target is still reachable
    CRITICAL = "Critical"      # month target can no longer be reached

    def __str__(self):
        return self.value


def is_business_day(day) -> bool:
    return day.weekday() < 5


def business_days_between(start, end) -> int:
    """Business days in [start, end], inclusive."""
    if end < start:
        return 0
    count = 0
    day = start
    while day <= end:
        if is_business_day(day):
            count += 1
        day += timedelta(days=1)
    return count


def business_days_in_month(day) -> int:
    last = calendar.monthrange(day.year, day.month)[1]
    return business_days_between(date(day.year, day.month, 1), date(day.year, day.month, last))


def business_days_up_to(day) -> int:
    """Business days from the 1st of the month through `day`."""
    return business_days_between(date(day.year, day.month, 1), day)


def required_days(business_days, threshold) -> int:
    return math.ceil(business_days * threshold)


def evaluate(attendance, business_days_to_date, total_business_days, threshold):
    """
    Classify the month. Rules are checked in order, first match wins:
      attendance >= month target           → SECURED
      attendance >= target for days so far → COMPLIANT
      attendance + days left < month target → CRITICAL
      otherwise                            → WARNING
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    required_for_month = required_days(total_business_days, threshold)
    required_for_rolling = required_days(business_days_to_date, threshold)
    remaining = total_business_days - business_days_to_date
    max_possible = attendance + remaining

    if attendance >= required_for_month:
        return ComplianceStatus.SECURED
    if attendance >= required_for_rolling:
        return ComplianceStatus.COMPLIANT
    if max_possible < required_for_month:
        return ComplianceStatus.CRITICAL
    return ComplianceStatus.WARNING
