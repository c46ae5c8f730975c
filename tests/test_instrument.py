"""
Tests for calibration instruments and market quotes.
"""

import pytest

from isdacurve import CdsCalibrationInstrument, CdsCoupon, ParSpread, PointsUpFront
from isdacurve import QuotedSpread, ValidationError


def make_instrument(**kwargs):
    fields = dict(
        acc_start=-0.1,
        effective_protection_start=0.0,
        protection_end=1.0,
        cash_settle_time=0.01,
        accrued_year_frac=0.1,
        coupons=[CdsCoupon(-0.1, 0.4, 0.4, 0.5), CdsCoupon(0.4, 1.0, 1.0, 0.6)],
    )
    fields.update(kwargs)
    return CdsCalibrationInstrument(**fields)


class TestCdsCoupon:
    """Tests for CdsCoupon."""

    def test_yf_ratio(self):
        """Accrual fraction per unit of curve time."""
        c = CdsCoupon(eff_start=0.0, eff_end=0.25, payment_time=0.25, year_frac=0.255)
        assert abs(c.yf_ratio - 1.02) < 1e-15

    def test_frozen(self):
        """Coupons are immutable."""
        c = CdsCoupon(0.0, 0.25, 0.25, 0.25)
        with pytest.raises(AttributeError):
            c.year_frac = 0.3

    @pytest.mark.parametrize('args', [
        (0.25, 0.25, 0.25, 0.25),
        (0.5, 0.25, 0.25, 0.25),
        (0.0, 0.25, 0.25, -0.1),
        (0.0, float('inf'), 0.25, 0.25),
        (float('nan'), 0.25, 0.25, 0.25),
    ])
    def test_invalid(self, args):
        """Malformed periods are rejected."""
        with pytest.raises(ValidationError):
            CdsCoupon(*args)


class TestCdsCalibrationInstrument:
    """Tests for CdsCalibrationInstrument."""

    def test_derived_fields(self):
        """lgd, number of payments and maturity."""
        cds = make_instrument(recovery_rate=0.25)
        assert cds.lgd == 0.75
        assert cds.num_payments == 2
        assert cds.maturity == 1.0
        assert cds.coupon(1).payment_time == 1.0

    def test_coupons_stored_as_tuple(self):
        """A list of coupons becomes a tuple."""
        assert isinstance(make_instrument().coupons, tuple)

    def test_with_recovery_rate(self):
        """Functional update leaves the original alone."""
        cds = make_instrument()
        other = cds.with_recovery_rate(0.2)
        assert other.recovery_rate == 0.2
        assert cds.recovery_rate == 0.4
        assert other.coupons == cds.coupons

    def test_with_pay_accrual_on_default(self):
        """Functional update of the accrual flag."""
        assert not make_instrument().with_pay_accrual_on_default(False).pay_accrual_on_default

    @pytest.mark.parametrize('kwargs', [
        {'coupons': []},
        {'recovery_rate': 1.0},
        {'recovery_rate': -0.1},
        {'accrued_year_frac': -0.01},
        {'protection_end': 0.0},
        {'cash_settle_time': float('nan')},
        {'coupons': [CdsCoupon(0.4, 1.0, 1.0, 0.6), CdsCoupon(-0.1, 0.4, 0.4, 0.5)]},
    ])
    def test_invalid(self, kwargs):
        """Malformed instruments are rejected."""
        with pytest.raises(ValidationError):
            make_instrument(**kwargs)


class TestFromSchedule:
    """Tests for building instruments from accrual boundary times."""

    def test_simple_schedule(self, simple_cds):
        """Quarterly five year CDS starting today."""
        assert simple_cds.num_payments == 20
        assert simple_cds.acc_start == 0.0
        assert simple_cds.effective_protection_start == 0.0
        assert simple_cds.protection_end == 5.0
        assert simple_cds.accrued_year_frac == 0.0
        assert all(abs(c.year_frac - 0.25) < 1e-15 for c in simple_cds.coupons)

    def test_step_in_drops_paid_periods(self):
        """Periods ending before step-in are gone and accrued is counted."""
        offset = 1 / 365
        cds = CdsCalibrationInstrument.from_schedule(
            [0.25 * k for k in range(5)], step_in=0.3, protection_offset=offset,
        )
        assert cds.num_payments == 3
        assert cds.coupon(0).eff_start == 0.25 - offset
        assert cds.coupon(0).eff_end == 0.5 - offset
        assert abs(cds.accrued_year_frac - 0.05) < 1e-15
        assert cds.effective_protection_start == 0.3 - offset

    def test_last_period_runs_to_maturity(self):
        """Protection from the start of day adds a day to the last period."""
        offset = 1 / 365
        cds = CdsCalibrationInstrument.from_schedule([0.0, 0.5, 1.0], protection_offset=offset)
        last = cds.coupon(-1)
        assert last.eff_end == 1.0
        assert abs(last.year_frac - (0.5 + offset)) < 1e-15

    def test_year_fraction_function(self):
        """Custom accrual day count."""
        cds = CdsCalibrationInstrument.from_schedule(
            [0.0, 0.5, 1.0], year_fraction=lambda a, b: (b - a) * 365 / 360,
        )
        assert abs(cds.coupon(0).year_frac - 0.5 * 365 / 360) < 1e-15

    @pytest.mark.parametrize('times', [[1.0], [0.0, 0.5, 0.5], [0.0, 1.0, 0.5]])
    def test_invalid_boundaries(self, times):
        """Too few or non-increasing boundaries."""
        with pytest.raises(ValidationError):
            CdsCalibrationInstrument.from_schedule(times)


class TestQuotes:
    """Tests for quote types."""

    def test_par_spread_coupon(self):
        """A par spread is its own coupon."""
        assert ParSpread(0.0123).coupon == 0.0123

    def test_fields(self):
        """Standard coupon quotes."""
        assert QuotedSpread(0.01, 0.015).quoted_spread == 0.015
        assert PointsUpFront(0.05, -0.02).puf == -0.02

    @pytest.mark.parametrize('make', [
        lambda: ParSpread(float('nan')),
        lambda: QuotedSpread(0.01, float('inf')),
        lambda: PointsUpFront(float('nan'), 0.01),
    ])
    def test_non_finite(self, make):
        """Non-finite quotes are rejected."""
        with pytest.raises(ValidationError):
            make()
