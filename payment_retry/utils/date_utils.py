"""Date manipulation utilities for retry scheduling"""

import calendar
from datetime import date, timedelta
from typing import Optional

FRIDAY = calendar.FRIDAY


def next_friday(from_date: date) -> date:
    """Next Friday strictly after from_date (a Friday maps to the following week)"""
    days_until_friday = (FRIDAY - from_date.weekday()) % 7 or 7
    return from_date + timedelta(days=days_until_friday)


def last_friday_of_month(year: int, month: int) -> date:
    """Last Friday of the given month"""
    last_day = date(year, month, calendar.monthrange(year, month)[1])
    return last_day - timedelta(days=(last_day.weekday() - FRIDAY) % 7)


def end_of_month_friday(from_date: date) -> date:
    """
    Last Friday of from_date's month, or of the following month when that
    Friday is not strictly after from_date.
    """
    candidate = last_friday_of_month(from_date.year, from_date.month)
    if candidate > from_date:
        return candidate

    if from_date.month == 12:
        return last_friday_of_month(from_date.year + 1, 1)
    return last_friday_of_month(from_date.year, from_date.month + 1)


def earliest_of(candidate: date, balance_due_date: Optional[date], from_date: date) -> date:
    """
    Earlier of candidate and balance_due_date.

    A balance-due date on or before from_date is stale and ignored.
    """
    if balance_due_date is None or balance_due_date <= from_date:
        return candidate
    return min(candidate, balance_due_date)
