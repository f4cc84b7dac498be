"""
Half-open [start, end) comparison windows.
"""

from datetime import date, timedelta
from typing import Tuple


def month_to_date(today: date) -> Tuple[date, date]:
    """First of today's month up to and including today."""
    return today.replace(day=1), today + timedelta(days=1)


def previous_month_same_point(today: date) -> Tuple[date, date]:
    """
    The previous month, from day 1, spanning as many days as today's
    day-of-month. The end is plain day arithmetic on prev_start, so on
    the 31st after a 28-day month it runs into the current month.
    """
    last_of_prev_month = today.replace(day=1) - timedelta(days=1)
    prev_start = last_of_prev_month.replace(day=1)
    return prev_start, prev_start + timedelta(days=today.day)
