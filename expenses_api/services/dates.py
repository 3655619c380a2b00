"""
Calendar helpers shared by the write path and the statistics services.

A transaction's (week, month, year) bucket is derived once, when it is
written, and stored next to its date so the stores can filter on it.
"""

import calendar
from datetime import date
from typing import NamedTuple


class Bucket(NamedTuple):
    week: int  # ISO week of the year, 1..53
    month: int
    year: int


def bucket(day: date) -> Bucket:
    """Return the (week, month, year) bucket of a calendar date."""
    return Bucket(week=day.isocalendar()[1], month=day.month, year=day.year)


def days_in_month(month: int, year: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_key(month: int, year: int) -> str:
    """Key used for per-month maps, e.g. "03-2025"."""
    return f"{month:02d}-{year}"


def period_label(period_type: str, value: int, year: int | None = None) -> str:
    """
    Human readable label for a comparison period:
      - month periods: "<Month name> <year>", e.g. "January 2025"
      - year periods: the bare year, e.g. "2025"
    """
    if period_type == "month":
        return f"{calendar.month_name[value]} {year}"
    return str(value)
