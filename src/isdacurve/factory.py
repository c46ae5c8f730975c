"""
Date-based construction of calibration instruments.

Turns trade date, accrual start and maturity into the time-based
CdsCalibrationInstrument the pricer works with, following the ISDA standard
model conventions:

- step-in (protection effective) date is T+1 calendar day
- cash settlement is T+3 business days
- premiums are paid quarterly, ACT/360, on a schedule generated backwards
  from maturity (short front stub), FOLLOWING adjusted
- protection starts at the beginning of the day, so credit risk of each
  period starts a day early and the last period accrues one extra day
- curve times are ACT/365F from the trade date

Only weekends are non-business days.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace

from opendate import Date

from .dates import DateLike, add_business_days, add_days, add_tenor, adjust_date
from .dates import to_date, year_fraction
from .enums import BadDayConvention, DayCountConvention, PaymentFrequency
from .enums import StubMethod
from .exceptions import ValidationError
from .instrument import CdsCalibrationInstrument, CdsCoupon

DEFAULT_STEP_IN = 1
DEFAULT_CASH_SETTLE = 3
DEFAULT_RECOVERY_RATE = 0.4


@dataclass(frozen=True)
class CouponPeriod:
    """
    A single premium period, in dates.

    Attributes
        accrual_start: Start of accrual period
        accrual_end: End of accrual period
        payment_date: Date when payment is made
    """

    accrual_start: Date
    accrual_end: Date
    payment_date: Date

    def __repr__(self) -> str:
        return f'CouponPeriod({self.accrual_start}, {self.accrual_end}, paid {self.payment_date})'


def _dates_backward(start: Date, end: Date, months: int, long_stub: bool) -> list[Date]:
    """Roll back from end in whole periods; the stub (if any) is at the front."""
    dates = [end]
    k = 1
    while True:
        prev = end.subtract(months=months * k)
        if prev <= start:
            if prev < start and long_stub and len(dates) > 1:
                dates.pop()
            dates.append(start)
            break
        dates.append(prev)
        k += 1
    dates.reverse()
    return dates


def _dates_forward(start: Date, end: Date, months: int, long_stub: bool) -> list[Date]:
    """Roll forward from start in whole periods; the stub (if any) is at the back."""
    dates = [start]
    k = 1
    while True:
        nxt = start.add(months=months * k)
        if nxt >= end:
            if nxt > end and long_stub and len(dates) > 1:
                dates.pop()
            dates.append(end)
            break
        dates.append(nxt)
        k += 1
    return dates


def generate_schedule(
    accrual_start: DateLike,
    maturity: DateLike,
    frequency: PaymentFrequency = PaymentFrequency.QUARTERLY,
    stub_method: StubMethod = StubMethod.FRONT_SHORT,
    bad_day: BadDayConvention = BadDayConvention.FOLLOWING,
) -> list[CouponPeriod]:
    """
    Generate the premium periods of a CDS.

    Intermediate accrual dates are business day adjusted; the first accrual
    start and the last accrual end (the maturity) are not. Payment dates are
    the adjusted accrual ends.

    Args:
        accrual_start: Start of the first accrual period
        maturity: Maturity (end of the last accrual period)
        frequency: Payment frequency
        stub_method: Where to put the irregular period
        bad_day: Business day adjustment

    Returns
        List of CouponPeriod in date order
    """
    start = to_date(accrual_start)
    end = to_date(maturity)
    if end <= start:
        raise ValidationError(f'Maturity {end} must be after accrual start {start}')

    months = frequency.months
    long_stub = stub_method in {StubMethod.FRONT_LONG, StubMethod.BACK_LONG}
    if stub_method in {StubMethod.FRONT_SHORT, StubMethod.FRONT_LONG}:
        unadj = _dates_backward(start, end, months, long_stub)
    else:
        unadj = _dates_forward(start, end, months, long_stub)

    adj = [unadj[0]] + [adjust_date(d, bad_day) for d in unadj[1:-1]] + [unadj[-1]]
    periods = []
    for i in range(len(adj) - 1):
        periods.append(CouponPeriod(
            accrual_start=adj[i],
            accrual_end=adj[i + 1],
            payment_date=adjust_date(unadj[i + 1], bad_day),
        ))
    return periods


@dataclass(frozen=True)
class CdsInstrumentFactory:
    """
    Builds CdsCalibrationInstrument objects from dates.

    The factory is immutable; the ``with_*`` methods return modified copies.

    Example:
        >>> factory = CdsInstrumentFactory().with_recovery_rate(0.25)
        >>> cds = factory.make_cds('2014-06-13', '2014-03-20', '2019-06-20')
    """

    step_in: int = DEFAULT_STEP_IN
    cash_settle: int = DEFAULT_CASH_SETTLE
    pay_accrual_on_default: bool = True
    frequency: PaymentFrequency = PaymentFrequency.QUARTERLY
    stub_method: StubMethod = StubMethod.FRONT_SHORT
    protection_start: bool = True
    recovery_rate: float = DEFAULT_RECOVERY_RATE
    bad_day: BadDayConvention = BadDayConvention.FOLLOWING
    accrual_day_count: DayCountConvention = DayCountConvention.ACT_360
    curve_day_count: DayCountConvention = DayCountConvention.ACT_365F

    def __post_init__(self):
        if self.step_in < 0 or self.cash_settle < 0:
            raise ValidationError('Step-in and cash settle lags must be non-negative')
        if not 0 <= self.recovery_rate < 1:
            raise ValidationError(f'Recovery rate must be in [0, 1), got {self.recovery_rate}')

    # Fluent configuration

    def with_step_in(self, days: int) -> 'CdsInstrumentFactory':
        return replace(self, step_in=days)

    def with_cash_settle(self, business_days: int) -> 'CdsInstrumentFactory':
        return replace(self, cash_settle=business_days)

    def with_pay_accrual_on_default(self, pay: bool) -> 'CdsInstrumentFactory':
        return replace(self, pay_accrual_on_default=pay)

    def with_frequency(self, frequency: PaymentFrequency | str) -> 'CdsInstrumentFactory':
        if isinstance(frequency, str):
            frequency = PaymentFrequency.from_string(frequency)
        return replace(self, frequency=frequency)

    def with_stub_method(self, stub_method: StubMethod | str) -> 'CdsInstrumentFactory':
        if isinstance(stub_method, str):
            stub_method = StubMethod.from_string(stub_method)
        return replace(self, stub_method=stub_method)

    def with_protection_start(self, from_start_of_day: bool) -> 'CdsInstrumentFactory':
        return replace(self, protection_start=from_start_of_day)

    def with_recovery_rate(self, recovery_rate: float) -> 'CdsInstrumentFactory':
        return replace(self, recovery_rate=recovery_rate)

    def with_bad_day_convention(self, bad_day: BadDayConvention | str) -> 'CdsInstrumentFactory':
        if isinstance(bad_day, str):
            bad_day = BadDayConvention.from_string(bad_day)
        return replace(self, bad_day=bad_day)

    def with_accrual_day_count(self, day_count: DayCountConvention | str) -> 'CdsInstrumentFactory':
        if isinstance(day_count, str):
            day_count = DayCountConvention.from_string(day_count)
        return replace(self, accrual_day_count=day_count)

    def with_curve_day_count(self, day_count: DayCountConvention | str) -> 'CdsInstrumentFactory':
        if isinstance(day_count, str):
            day_count = DayCountConvention.from_string(day_count)
        return replace(self, curve_day_count=day_count)

    # Construction

    def make_cds(
        self,
        trade_date: DateLike,
        accrual_start: DateLike,
        maturity: DateLike,
        step_in_date: DateLike | None = None,
        cash_settle_date: DateLike | None = None,
    ) -> CdsCalibrationInstrument:
        """
        Make a CDS from its key dates.

        Args:
            trade_date: Trade date (time zero)
            accrual_start: Start of premium accrual (previous IMM date for a
                standard CDS)
            maturity: End of protection
            step_in_date: Overrides trade date + step-in days
            cash_settle_date: Overrides trade date + cash settle business days

        Returns
            CdsCalibrationInstrument
        """
        trade = to_date(trade_date)
        acc_start = to_date(accrual_start)
        mat = to_date(maturity)
        step_in = to_date(step_in_date) if step_in_date is not None else add_days(trade, self.step_in)
        cash_settle = (
            to_date(cash_settle_date) if cash_settle_date is not None
            else add_business_days(trade, self.cash_settle)
        )
        if mat <= step_in:
            raise ValidationError(f'Maturity {mat} must be after step-in date {step_in}')

        def time(d: Date) -> float:
            return year_fraction(trade, d, self.curve_day_count)

        offset = 1 if self.protection_start else 0
        periods = [p for p in generate_schedule(
            acc_start, mat, self.frequency, self.stub_method, self.bad_day,
        ) if p.accrual_end > step_in]

        coupons = []
        last = len(periods) - 1
        for i, p in enumerate(periods):
            # The last period runs to the end of the maturity date
            acc_end = add_days(p.accrual_end, offset) if i == last else p.accrual_end
            eff_end = p.accrual_end if i == last else add_days(p.accrual_end, -offset)
            coupons.append(CdsCoupon(
                eff_start=time(add_days(p.accrual_start, -offset)),
                eff_end=time(eff_end),
                payment_time=time(p.payment_date),
                year_frac=year_fraction(p.accrual_start, acc_end, self.accrual_day_count),
            ))

        first_start = periods[0].accrual_start
        accrued = (
            year_fraction(first_start, step_in, self.accrual_day_count)
            if step_in > first_start else 0.0
        )
        prot_start = max(acc_start, step_in)
        return CdsCalibrationInstrument(
            acc_start=time(acc_start),
            effective_protection_start=time(add_days(prot_start, -offset)),
            protection_end=time(mat),
            cash_settle_time=time(cash_settle),
            accrued_year_frac=accrued,
            coupons=tuple(coupons),
            recovery_rate=self.recovery_rate,
            pay_accrual_on_default=self.pay_accrual_on_default,
        )

    def make_cds_curve(
        self,
        trade_date: DateLike,
        accrual_start: DateLike,
        maturities: Sequence[DateLike],
    ) -> list[CdsCalibrationInstrument]:
        """Make a strip of CDS sharing trade date and accrual start."""
        return [self.make_cds(trade_date, accrual_start, m) for m in maturities]

    def make_cds_from_tenors(
        self,
        trade_date: DateLike,
        accrual_start: DateLike,
        maturity_reference: DateLike,
        tenors: Sequence[str],
    ) -> list[CdsCalibrationInstrument]:
        """
        Make a strip of CDS with maturities a tenor after a reference date.

        For standard CDS the reference is the next IMM date after the trade
        date, e.g. 20 Jun 2014 with tenors ['6M', '1Y', '5Y'].
        """
        ref = to_date(maturity_reference)
        maturities = [add_tenor(ref, t) for t in tenors]
        return self.make_cds_curve(trade_date, accrual_start, maturities)
