"""
Tests for date utilities using opendate library.
"""

import datetime

import pytest
from opendate import Date

from isdacurve import BadDayConvention, DayCountConvention
from isdacurve.dates import add_business_days, add_days, add_months, add_tenor
from isdacurve.dates import adjust_date, days_between, is_business_day, to_date
from isdacurve.dates import year_fraction


class TestToDate:
    """Tests for date conversion."""

    def test_parse_iso_format(self):
        """Test YYYY-MM-DD format."""
        d = to_date('2020-03-15')
        assert (d.year, d.month, d.day) == (2020, 3, 15)

    def test_from_datetime(self):
        """datetime and date inputs."""
        assert to_date(datetime.datetime(2020, 3, 15, 12, 30)) == Date(2020, 3, 15)
        assert to_date(datetime.date(2020, 3, 15)) == Date(2020, 3, 15)

    def test_bad_type(self):
        """Unsupported input type."""
        with pytest.raises(TypeError):
            to_date(20200315)


class TestYearFraction:
    """Tests for day count conventions."""

    def test_act_360(self):
        """Test ACT/360 day count."""
        assert abs(year_fraction(Date(2020, 1, 1), Date(2020, 4, 1)) - 91 / 360) < 1e-15

    def test_act_365f(self):
        """Test ACT/365F day count."""
        yf = year_fraction(Date(2020, 1, 1), Date(2021, 1, 1), DayCountConvention.ACT_365F)
        assert abs(yf - 366 / 365) < 1e-15

    def test_thirty_360(self):
        """Test 30/360 day count."""
        yf = year_fraction(Date(2020, 1, 15), Date(2020, 4, 15), DayCountConvention.THIRTY_360)
        assert abs(yf - 90 / 360) < 1e-15

    def test_negative(self):
        """End before start gives a negative fraction."""
        assert year_fraction('2020-01-10', '2020-01-01') == -9 / 360
        assert days_between('2020-01-10', '2020-01-01') == -9


class TestDateArithmetic:
    """Tests for calendar arithmetic."""

    def test_add_days(self):
        """Signed day offsets."""
        assert add_days(Date(2020, 2, 28), 1) == Date(2020, 2, 29)
        assert add_days(Date(2020, 3, 1), -1) == Date(2020, 2, 29)

    def test_add_months_end_of_month(self):
        """Month end is clipped."""
        assert add_months(Date(2020, 1, 31), 1) == Date(2020, 2, 29)
        assert add_months(Date(2020, 3, 31), -1) == Date(2020, 2, 29)

    @pytest.mark.parametrize(('tenor', 'expected'), [
        ('6M', Date(2014, 12, 20)),
        ('1Y', Date(2015, 6, 20)),
        ('10Y', Date(2024, 6, 20)),
        ('2W', Date(2014, 7, 4)),
        ('10D', Date(2014, 6, 30)),
        ('3m', Date(2014, 9, 20)),
    ])
    def test_add_tenor(self, tenor, expected):
        """Tenor strings."""
        assert add_tenor(Date(2014, 6, 20), tenor) == expected

    @pytest.mark.parametrize('tenor', ['', 'M', '5X', 'Y5', '1.5Y'])
    def test_invalid_tenor(self, tenor):
        """Malformed tenor strings."""
        with pytest.raises(ValueError):
            add_tenor(Date(2014, 6, 20), tenor)


class TestBusinessDays:
    """Tests for the weekends-only calendar."""

    def test_weekend(self):
        """Saturday and Sunday are holidays, nothing else is."""
        assert is_business_day(Date(2014, 6, 13))
        assert not is_business_day(Date(2014, 6, 14))
        assert not is_business_day(Date(2014, 6, 15))
        assert is_business_day(Date(2014, 12, 25))

    def test_add_business_days(self):
        """T+3 from a Friday is Wednesday."""
        assert add_business_days(Date(2014, 6, 13), 3) == Date(2014, 6, 18)
        assert add_business_days(Date(2014, 6, 13), 0) == Date(2014, 6, 13)

    def test_following(self):
        """Saturday rolls to Monday."""
        assert adjust_date(Date(2014, 9, 20), BadDayConvention.FOLLOWING) == Date(2014, 9, 22)

    def test_preceding(self):
        """Saturday rolls to Friday."""
        assert adjust_date(Date(2014, 9, 20), BadDayConvention.PRECEDING) == Date(2014, 9, 19)

    def test_modified_following(self):
        """Rolling forward out of the month rolls back instead."""
        assert adjust_date(Date(2014, 5, 31), BadDayConvention.MODIFIED_FOLLOWING) == Date(2014, 5, 30)
        assert adjust_date(Date(2014, 9, 20), BadDayConvention.MODIFIED_FOLLOWING) == Date(2014, 9, 22)

    def test_none_and_business_day(self):
        """No adjustment needed."""
        assert adjust_date(Date(2014, 9, 20), BadDayConvention.NONE) == Date(2014, 9, 20)
        assert adjust_date(Date(2014, 9, 19)) == Date(2014, 9, 19)
