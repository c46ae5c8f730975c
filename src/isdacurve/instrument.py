"""
Time-based description of a CDS used as a calibration pillar.

All times are in years (ACT/365F) measured from the trade date. Dates are
turned into these times by the instrument factory; the pricer and the
calibrators only ever see the numbers held here.
"""

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from .exceptions import ValidationError


def _check_finite(**values: float) -> None:
    for name, value in values.items():
        if not math.isfinite(value):
            raise ValidationError(f'{name} must be finite, got {value}')


@dataclass(frozen=True)
class CdsCoupon:
    """
    One premium period of a CDS.

    Attributes
        eff_start: Start of credit risk for the period (may be negative)
        eff_end: End of credit risk for the period
        payment_time: Time the coupon is paid
        year_frac: Accrual fraction of the period (premium day count)
    """

    eff_start: float
    eff_end: float
    payment_time: float
    year_frac: float

    def __post_init__(self):
        _check_finite(
            eff_start=self.eff_start,
            eff_end=self.eff_end,
            payment_time=self.payment_time,
            year_frac=self.year_frac,
        )
        if self.eff_end <= self.eff_start:
            raise ValidationError(
                f'Coupon end ({self.eff_end}) must be after its start ({self.eff_start})'
            )
        if self.year_frac < 0:
            raise ValidationError(f'Coupon year fraction must be non-negative, got {self.year_frac}')

    @property
    def yf_ratio(self) -> float:
        """Accrual fraction per unit of (curve) time."""
        return self.year_frac / (self.eff_end - self.eff_start)


@dataclass(frozen=True)
class CdsCalibrationInstrument:
    """
    A CDS as seen by the pricer.

    Attributes
        acc_start: Start of the first accrual period
        effective_protection_start: Start of protection (step-in, adjusted
            for protection from the start of day)
        protection_end: End of protection
        cash_settle_time: Time at which the upfront amount is exchanged
        accrued_year_frac: Premium accrued from the current period start to
            step-in, as an accrual fraction
        coupons: Remaining premium periods, in time order
        recovery_rate: Recovery rate in [0, 1)
        pay_accrual_on_default: Whether accrued premium is paid on default
    """

    acc_start: float
    effective_protection_start: float
    protection_end: float
    cash_settle_time: float
    accrued_year_frac: float
    coupons: tuple[CdsCoupon, ...] = field(default_factory=tuple)
    recovery_rate: float = 0.4
    pay_accrual_on_default: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'coupons', tuple(self.coupons))
        _check_finite(
            acc_start=self.acc_start,
            effective_protection_start=self.effective_protection_start,
            protection_end=self.protection_end,
            cash_settle_time=self.cash_settle_time,
            accrued_year_frac=self.accrued_year_frac,
            recovery_rate=self.recovery_rate,
        )
        if not self.coupons:
            raise ValidationError('A CDS needs at least one coupon period')
        if not 0 <= self.recovery_rate < 1:
            raise ValidationError(f'Recovery rate must be in [0, 1), got {self.recovery_rate}')
        if self.accrued_year_frac < 0:
            raise ValidationError(
                f'Accrued year fraction must be non-negative, got {self.accrued_year_frac}'
            )
        if self.protection_end <= self.effective_protection_start:
            raise ValidationError(
                f'Protection end ({self.protection_end}) must be after protection '
                f'start ({self.effective_protection_start})'
            )
        for prev, nxt in zip(self.coupons, self.coupons[1:]):
            if nxt.eff_start < prev.eff_start or nxt.payment_time < prev.payment_time:
                raise ValidationError('Coupon periods must be in time order')

    @property
    def lgd(self) -> float:
        """Loss given default, 1 - recovery rate."""
        return 1 - self.recovery_rate

    @property
    def num_payments(self) -> int:
        """Number of remaining coupon payments."""
        return len(self.coupons)

    @property
    def maturity(self) -> float:
        """Alias for the protection end time."""
        return self.protection_end

    def coupon(self, i: int) -> CdsCoupon:
        """Coupon period i."""
        return self.coupons[i]

    def with_recovery_rate(self, recovery_rate: float) -> 'CdsCalibrationInstrument':
        """Return a copy with a different recovery rate."""
        return replace(self, recovery_rate=recovery_rate)

    def with_pay_accrual_on_default(self, pay: bool) -> 'CdsCalibrationInstrument':
        """Return a copy with the accrual-on-default flag changed."""
        return replace(self, pay_accrual_on_default=pay)

    @classmethod
    def from_schedule(
        cls,
        accrual_times: Sequence[float],
        step_in: float = 0.0,
        cash_settle_time: float = 0.0,
        recovery_rate: float = 0.4,
        pay_accrual_on_default: bool = True,
        protection_offset: float = 0.0,
        year_fraction: Callable[[float, float], float] | None = None,
    ) -> 'CdsCalibrationInstrument':
        """
        Build an instrument directly from accrual period boundary times.

        Periods ending on or before step-in have been paid and are dropped.
        With protection from the start of day, protection_offset is one day
        (1/365) and every period's credit risk starts one day early, except
        that the last period ends on the maturity itself.

        Args:
            accrual_times: Period boundaries t_0 < t_1 < ... < t_n (years)
            step_in: Step-in time (protection cannot start earlier)
            cash_settle_time: Cash settlement time
            recovery_rate: Recovery rate in [0, 1)
            pay_accrual_on_default: Pay accrued premium on default
            protection_offset: Shift applied to credit risk start/end times
            year_fraction: Accrual fraction of a period, defaults to its length

        Returns
            CdsCalibrationInstrument
        """
        times = [float(t) for t in accrual_times]
        if len(times) < 2:
            raise ValidationError('At least two accrual boundaries are needed')
        if any(b <= a for a, b in zip(times, times[1:])):
            raise ValidationError('Accrual boundaries must be strictly increasing')
        yf = year_fraction or (lambda a, b: b - a)

        first = 0
        while first < len(times) - 2 and times[first + 1] <= step_in:
            first += 1
        n = len(times) - 1

        coupons = []
        for k in range(first, n):
            start, end = times[k], times[k + 1]
            last = k == n - 1
            coupons.append(CdsCoupon(
                eff_start=start - protection_offset,
                eff_end=end if last else end - protection_offset,
                payment_time=end,
                year_frac=yf(start, end + protection_offset) if last else yf(start, end),
            ))

        period_start = times[first]
        accrued = yf(period_start, step_in) if step_in > period_start else 0.0
        return cls(
            acc_start=times[0],
            effective_protection_start=max(times[0], step_in) - protection_offset,
            protection_end=times[-1],
            cash_settle_time=cash_settle_time,
            accrued_year_frac=accrued,
            coupons=tuple(coupons),
            recovery_rate=recovery_rate,
            pay_accrual_on_default=pay_accrual_on_default,
        )
