"""
Tests for schedule generation and the instrument factory.
"""

import pytest
from opendate import Date

from isdacurve import BadDayConvention, CdsInstrumentFactory, CdsPricer, DayCountConvention
from isdacurve import PaymentFrequency, StubMethod, ValidationError, generate_schedule

MATURITY = Date(2019, 6, 20)


class TestGenerateSchedule:
    """Tests for premium schedule generation."""

    def test_standard_quarterly(self):
        """IMM dates with weekend adjustment of intermediate dates."""
        periods = generate_schedule(Date(2014, 3, 20), Date(2015, 6, 20))
        starts = [p.accrual_start for p in periods]
        assert starts == [
            Date(2014, 3, 20), Date(2014, 6, 20), Date(2014, 9, 22),
            Date(2014, 12, 22), Date(2015, 3, 20),
        ]
        # Maturity itself is not adjusted but its payment date is
        assert periods[-1].accrual_end == Date(2015, 6, 20)
        assert periods[-1].payment_date == Date(2015, 6, 22)

    def test_front_short_stub(self):
        """Irregular period at the front."""
        periods = generate_schedule(Date(2014, 5, 1), Date(2015, 6, 20))
        assert len(periods) == 5
        assert periods[0].accrual_start == Date(2014, 5, 1)
        assert periods[0].accrual_end == Date(2014, 6, 20)

    def test_front_long_stub(self):
        """Stub merged into the first period."""
        periods = generate_schedule(
            Date(2014, 5, 1), Date(2015, 6, 20), stub_method=StubMethod.FRONT_LONG,
        )
        assert len(periods) == 4
        assert periods[0].accrual_end == Date(2014, 9, 22)

    def test_back_short_stub(self):
        """Rolling forward from the start."""
        periods = generate_schedule(
            Date(2014, 5, 1), Date(2015, 6, 20), stub_method=StubMethod.BACK_SHORT,
        )
        assert [p.accrual_end for p in periods] == [
            Date(2014, 8, 1), Date(2014, 11, 3), Date(2015, 2, 2),
            Date(2015, 5, 1), Date(2015, 6, 20),
        ]

    def test_back_long_stub(self):
        """Stub merged into the last period."""
        periods = generate_schedule(
            Date(2014, 5, 1), Date(2015, 6, 20), stub_method=StubMethod.BACK_LONG,
        )
        assert len(periods) == 4
        assert periods[-1].accrual_start == Date(2015, 2, 2)

    def test_semi_annual(self):
        """Frequency sets the step."""
        periods = generate_schedule(
            Date(2014, 3, 20), MATURITY, frequency=PaymentFrequency.SEMI_ANNUAL,
        )
        assert len(periods) == 11

    def test_no_adjustment(self):
        """NONE keeps weekend dates."""
        periods = generate_schedule(
            Date(2014, 3, 20), Date(2015, 6, 20), bad_day=BadDayConvention.NONE,
        )
        assert periods[2].accrual_start == Date(2014, 9, 20)

    def test_maturity_before_start(self):
        """Empty schedule."""
        with pytest.raises(ValidationError):
            generate_schedule(Date(2014, 3, 20), Date(2014, 3, 20))


class TestMakeCds:
    """Tests for CdsInstrumentFactory.make_cds."""

    @pytest.fixture
    def cds(self, factory, trade_date, accrual_start):
        """Five year standard CDS traded 13 Jun 2014."""
        return factory.make_cds(trade_date, accrual_start, MATURITY)

    def test_coupons(self, cds):
        """Every quarter from the previous IMM date is still to be paid."""
        assert cds.num_payments == 21
        assert cds.coupon(0).eff_start == -86 / 365
        assert cds.coupon(1).payment_time == 101 / 365
        assert cds.coupon(1).year_frac == 94 / 360

    def test_last_coupon(self, cds):
        """The last period accrues to the end of the maturity date."""
        last = cds.coupon(-1)
        assert last.eff_end == 1833 / 365
        assert last.year_frac == 93 / 360

    def test_protection(self, cds):
        """Protection starts at the beginning of the step-in day."""
        assert cds.effective_protection_start == 0.0
        assert cds.protection_end == 1833 / 365
        assert cds.acc_start == -85 / 365

    def test_settlement_and_accrued(self, cds):
        """T+3 business days and accrued from the previous IMM date."""
        assert cds.cash_settle_time == 5 / 365
        assert cds.accrued_year_frac == 86 / 360
        assert cds.recovery_rate == 0.4
        assert cds.pay_accrual_on_default

    def test_overrides(self, factory, trade_date, accrual_start):
        """Explicit step-in and cash settle dates."""
        cds = factory.make_cds(
            trade_date, accrual_start, MATURITY,
            step_in_date=Date(2014, 6, 20), cash_settle_date=Date(2014, 6, 16),
        )
        assert cds.num_payments == 20
        assert cds.accrued_year_frac == 0.0
        assert cds.cash_settle_time == 3 / 365
        assert cds.effective_protection_start == 6 / 365

    def test_seasoned_accrual_start(self, factory, trade_date, cds, yield_curve, credit_curve):
        """A trade accruing from an earlier IMM date keeps that date as its accrual start."""
        seasoned = factory.make_cds(trade_date, Date(2013, 12, 20), MATURITY)
        assert seasoned.acc_start == -175 / 365
        # Periods already paid are dropped, so the cash flows are those of the standard trade
        assert seasoned.coupons == cds.coupons
        assert seasoned.accrued_year_frac == cds.accrued_year_frac
        assert seasoned.effective_protection_start == cds.effective_protection_start
        pricer = CdsPricer()
        pv = pricer.present_value(cds, yield_curve, credit_curve, 0.01)
        assert abs(pricer.present_value(seasoned, yield_curve, credit_curve, 0.01) - pv) < 1e-15

    def test_string_dates(self, factory):
        """Dates may be given as strings."""
        cds = factory.make_cds('2014-06-13', '2014-03-20', '2019-06-20')
        assert cds.protection_end == 1833 / 365

    def test_maturity_before_step_in(self, factory, trade_date, accrual_start):
        """Nothing left to protect."""
        with pytest.raises(ValidationError):
            factory.make_cds(trade_date, accrual_start, Date(2014, 6, 14))


class TestFactoryConfiguration:
    """Tests for the fluent configuration."""

    def test_defaults(self, factory):
        """ISDA standard conventions."""
        assert factory.step_in == 1
        assert factory.cash_settle == 3
        assert factory.frequency == PaymentFrequency.QUARTERLY
        assert factory.stub_method == StubMethod.FRONT_SHORT
        assert factory.accrual_day_count == DayCountConvention.ACT_360
        assert factory.curve_day_count == DayCountConvention.ACT_365F

    def test_with_copies(self, factory):
        """with_* returns a modified copy."""
        other = factory.with_recovery_rate(0.25).with_frequency('S').with_bad_day_convention('MF')
        assert other.recovery_rate == 0.25
        assert other.frequency == PaymentFrequency.SEMI_ANNUAL
        assert other.bad_day == BadDayConvention.MODIFIED_FOLLOWING
        assert factory.recovery_rate == 0.4

    def test_protection_from_end_of_day(self, factory, trade_date, accrual_start):
        """Without the start of day convention there is no day offset."""
        cds = factory.with_protection_start(False).make_cds(trade_date, accrual_start, MATURITY)
        assert cds.coupon(0).eff_start == -85 / 365
        assert cds.effective_protection_start == 1 / 365
        assert cds.coupon(-1).year_frac == 92 / 360

    def test_curve_day_count(self, factory, trade_date, accrual_start):
        """Curve times follow the curve day count."""
        cds = factory.with_curve_day_count('ACT/360').make_cds(trade_date, accrual_start, MATURITY)
        assert cds.protection_end == 1833 / 360

    def test_pay_accrual_on_default(self, factory, trade_date, accrual_start):
        """Flag is passed through."""
        cds = factory.with_pay_accrual_on_default(False).make_cds(trade_date, accrual_start, MATURITY)
        assert not cds.pay_accrual_on_default

    @pytest.mark.parametrize('kwargs', [{'step_in': -1}, {'cash_settle': -1}, {'recovery_rate': 1.0}])
    def test_invalid(self, kwargs):
        """Negative lags and bad recovery rates."""
        with pytest.raises(ValidationError):
            CdsInstrumentFactory(**kwargs)


class TestTenors:
    """Tests for strips of CDS."""

    def test_pillars(self, pillars):
        """Maturities a tenor after the next IMM date."""
        assert len(pillars) == 6
        assert pillars[0].protection_end == 190 / 365
        assert pillars[3].protection_end == 1833 / 365
        assert all(a.protection_end < b.protection_end for a, b in zip(pillars, pillars[1:]))

    def test_make_cds_curve(self, factory, trade_date, accrual_start):
        """Explicit maturities."""
        strip = factory.make_cds_curve(trade_date, accrual_start, ['2015-06-20', MATURITY])
        assert [c.protection_end for c in strip] == [372 / 365, 1833 / 365]
