"""Utility functions for the decree calculator.

This module provides helpers for parsing user input into Python data types
and for calendar arithmetic: adding months, years and days, and measuring a
date range in whole months plus a remainder of days. It uses Python's
``datetime`` and ``calendar`` modules.

``month_span`` is the single definition of "months + remaining days" used
both for money (via ``fractional_months``) and for the duration text shown in
reports, so the two can never disagree.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, getcontext
import calendar
from typing import Tuple

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    A trailing time component (``2024-01-31T00:00:00.000Z``, as written by
    the browser version of the report files) is ignored.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        parts = value.strip()[:10].split("-")
        if len(parts) != 3:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except Exception as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
        if not result.is_finite():
            raise ValueError
        return result
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_days(dt: date, days: int) -> date:
    return dt + timedelta(days=days)


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, days_in_month(year, month))
    return date(year, month, day)


def add_years(dt: date, years: int) -> date:
    """Return the same calendar day ``years`` later (29 Feb maps to 28 Feb)."""
    return add_months(dt, 12 * years)


def month_span(start: date, end: date) -> Tuple[int, int, int]:
    """Measure the inclusive range ``start``..``end`` in months and days.

    Returns ``(months, days, month_length)`` where ``months`` is the number of
    whole months counted from ``start`` (using ``add_months``), ``days`` is
    what is left after the last whole month and ``month_length`` is the
    number of days in the calendar month in which that remainder begins.

    A remainder that covers the whole of its month is counted as one more
    month, so e.g. 31 Jan..29 Mar is two months rather than one month and 30
    days. A reversed range (``end`` before ``start``) is ``(0, 0, 0)``.
    """
    if end < start:
        return 0, 0, 0
    stop = add_days(end, 1)
    # Rough guess from the calendar fields, corrected in both directions.
    months = max((stop.year - start.year) * 12 + stop.month - start.month, 0)
    while months > 0 and add_months(start, months) > stop:
        months -= 1
    while add_months(start, months + 1) <= stop:
        months += 1
    anchor = add_months(start, months)
    days = (stop - anchor).days
    month_length = days_in_month(anchor.year, anchor.month)
    if days >= month_length:
        months += 1
        days = 0
    return months, days, month_length


def fractional_months(start: date, end: date) -> Decimal:
    """Return the inclusive range as months plus a fraction of a month."""
    months, days, month_length = month_span(start, end)
    if not days:
        return Decimal(months)
    return Decimal(months) + Decimal(days) / Decimal(month_length)
