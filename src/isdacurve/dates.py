"""
Date utilities for building calibration instruments.

Uses opendate.Date as the primary date type, with a weekends-only business
day calendar.
"""

import datetime
from typing import Union

from opendate import CustomCalendar, Date, register_calendar

from .enums import BadDayConvention, DayCountConvention

WEEKENDS_ONLY = CustomCalendar(
    name='WEEKENDS_ONLY',
    holidays=set(),
    weekmask='Mon Tue Wed Thu Fri',
)
register_calendar('WEEKENDS_ONLY', WEEKENDS_ONLY)

# Accept various date-like inputs
DateLike = Union[Date, datetime.date, datetime.datetime, str]


def to_date(d: DateLike) -> Date:
    """Convert any date-like input to opendate.Date on the weekends-only calendar."""
    if isinstance(d, Date):
        return d.calendar(WEEKENDS_ONLY)
    if isinstance(d, datetime.datetime):
        return Date.instance(d.date()).calendar(WEEKENDS_ONLY)
    if isinstance(d, datetime.date):
        return Date.instance(d).calendar(WEEKENDS_ONLY)
    if isinstance(d, str):
        result = Date.parse(d)
        if result is None:
            raise ValueError(f'Cannot parse date: {d}')
        return result.calendar(WEEKENDS_ONLY)
    raise TypeError(f'Expected Date, date, datetime, or string, got {type(d)}')


parse_date = to_date


def days_between(start: DateLike, end: DateLike) -> int:
    """Signed number of calendar days from start to end."""
    return to_date(end).toordinal() - to_date(start).toordinal()


def year_fraction(
    start: DateLike,
    end: DateLike,
    convention: DayCountConvention = DayCountConvention.ACT_360,
) -> float:
    """
    Calculate the year fraction between two dates.

    Args:
        start: Start date
        end: End date
        convention: Day count convention to use

    Returns
        Year fraction as a float (negative if end is before start)
    """
    d1 = to_date(start)
    d2 = to_date(end)

    if convention == DayCountConvention.ACT_360:
        return days_between(d1, d2) / 360.0

    elif convention == DayCountConvention.ACT_365F:
        return days_between(d1, d2) / 365.0

    elif convention == DayCountConvention.THIRTY_360:
        y1, m1, d1_day = d1.year, d1.month, d1.day
        y2, m2, d2_day = d2.year, d2.month, d2.day
        if d1_day == 31:
            d1_day = 30
        if d2_day == 31 and d1_day >= 30:
            d2_day = 30
        return (360 * (y2 - y1) + 30 * (m2 - m1) + (d2_day - d1_day)) / 360.0

    else:
        raise ValueError(f'Unknown day count convention: {convention}')


def add_days(d: DateLike, days: int) -> Date:
    """Add calendar days to a date."""
    od = to_date(d)
    return od.add(days=days) if days >= 0 else od.subtract(days=-days)


def add_months(d: DateLike, months: int) -> Date:
    """Add months to a date (end of month clipped)."""
    od = to_date(d)
    return od.add(months=months) if months >= 0 else od.subtract(months=-months)


def is_business_day(d: DateLike) -> bool:
    """Check if a date is a business day."""
    return to_date(d).is_business_day()


def add_business_days(d: DateLike, days: int) -> Date:
    """Add business days to a date."""
    od = to_date(d)
    if days == 0:
        return od
    return od.b.add(days=days) if days > 0 else od.b.subtract(days=abs(days))


def adjust_date(
    d: DateLike,
    convention: BadDayConvention = BadDayConvention.FOLLOWING,
) -> Date:
    """
    Adjust a date according to a bad day convention.

    Uses opendate's business day snapping: .b.add(days=0) snaps forward to
    the next business day and .b.subtract(days=0) snaps backward.
    MODIFIED_FOLLOWING rolls backwards if rolling forwards would change month.

    Args:
        d: Date to adjust
        convention: Bad day convention to apply

    Returns
        Adjusted Date
    """
    od = to_date(d)
    if convention == BadDayConvention.NONE or od.is_business_day():
        return od

    if convention == BadDayConvention.FOLLOWING:
        return od.b.add(days=0)

    if convention == BadDayConvention.PRECEDING:
        return od.b.subtract(days=0)

    if convention == BadDayConvention.MODIFIED_FOLLOWING:
        adjusted = od.b.add(days=0)
        return od.b.subtract(days=0) if adjusted.month != od.month else adjusted

    raise ValueError(f'Unknown bad day convention: {convention}')


def add_tenor(d: DateLike, tenor: str) -> Date:
    """
    Add a tenor string such as '6M', '1Y', '2W' or '10D' to a date.

    Args:
        d: Start date
        tenor: Tenor string (number followed by D, W, M or Y)

    Returns
        Unadjusted Date
    """
    s = tenor.strip().upper()
    if len(s) < 2 or not s[:-1].isdigit():
        raise ValueError(f'Invalid tenor: {tenor}')
    n = int(s[:-1])
    unit = s[-1]
    if unit == 'D':
        return add_days(d, n)
    if unit == 'W':
        return add_days(d, 7 * n)
    if unit == 'M':
        return add_months(d, n)
    if unit == 'Y':
        return add_months(d, 12 * n)
    raise ValueError(f'Invalid tenor unit: {tenor}')
