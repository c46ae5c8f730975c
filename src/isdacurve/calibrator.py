"""
Credit curve calibration (bootstrapping).

Builds a piecewise constant hazard rate curve from CDS quotes, one knot per
pillar at the pillar's protection end. Pillars are processed in maturity
order; each knot is solved with all previous knots held fixed so that the
pillar reprices to its quote:

    protection leg - coupon * clean annuity - points upfront = 0

Two implementations share this contract:

- FastCreditCurveBuilder caches everything that does not depend on the
  unknown rate and solves with a bracketed Newton method using the
  analytic derivative.
- SimpleCreditCurveBuilder reprices with CdsPricer on every trial and
  solves with Brent's method.

Both use the same segment formulae, so they agree to rounding.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

from .accrual_on_default import DEFAULT_THRESHOLD, segments_from_pairs
from .curves import HazardRateCurve, ZeroCurve
from .enums import AccrualOnDefaultFormula, ArbitrageHandling, PriceType
from .exceptions import ArbitrageError, BootstrapError, ConvergenceError
from .exceptions import ValidationError
from .instrument import CdsCalibrationInstrument
from .interpolation import integration_points
from .pricer import CdsPricer, premium_leg_start, protection_segment_credit_sensitivity
from .pricer import protection_segment_pv
from .quotes import CdsQuote, ParSpread, PointsUpFront, QuotedSpread
from .root_finding import bracket_root, brent, newton_with_bracket

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-15
DEFAULT_MAX_ITER = 100
DEFAULT_GUESS = 0.01


# Arbitrage policy

@dataclass(frozen=True)
class Accept:
    """Solve for the knot as usual."""


@dataclass(frozen=True)
class Clamp:
    """Use this forward hazard rate instead of solving."""

    rate: float


@dataclass(frozen=True)
class Reject:
    """The pillar cannot be fitted under the policy."""

    reason: str


ArbitrageOutcome = Accept | Clamp | Reject


def check_arbitrage(
    handling: ArbitrageHandling,
    value_at_zero_hazard: float,
    pillar: int = 0,
) -> ArbitrageOutcome:
    """
    Apply the arbitrage policy to a new knot.

    The pricing function is increasing in the new forward hazard rate, so the
    solved rate is negative exactly when the value with a zero forward hazard
    on the new segment is already above target.

    Args:
        handling: Arbitrage policy
        value_at_zero_hazard: PV minus target with zero forward hazard
        pillar: Index of the pillar (for the message)

    Returns
        Accept, Clamp or Reject
    """
    if handling == ArbitrageHandling.IGNORE or value_at_zero_hazard <= 0:
        return Accept()
    if handling == ArbitrageHandling.ZERO_HAZARD_RATE:
        return Clamp(0.0)
    return Reject(
        f'Pillar {pillar} needs a negative forward hazard rate '
        f'(value with zero hazard is {value_at_zero_hazard:.3e} above target)'
    )


# Input handling

def _as_list(x) -> list:
    if isinstance(x, (CdsCalibrationInstrument, ParSpread, QuotedSpread, PointsUpFront)):
        return [x]
    if isinstance(x, (int, float)):
        return [x]
    return list(x)


def validate_pillars(
    instruments: Sequence[CdsCalibrationInstrument],
    coupons: Sequence[float],
    points_upfront: Sequence[float],
) -> None:
    """
    Reject malformed calibration inputs before any solving.

    Raises
        ValidationError: On an empty pillar list, mismatched lengths,
            maturities not strictly increasing, accrual starts going
            backwards, or non-finite quotes
    """
    n = len(instruments)
    if n == 0:
        raise ValidationError('At least one calibration instrument is needed')
    if len(coupons) != n:
        raise ValidationError(f'Got {n} instruments but {len(coupons)} premiums')
    if len(points_upfront) != n:
        raise ValidationError(f'Got {len(coupons)} premiums but {len(points_upfront)} points upfront')

    for i, cds in enumerate(instruments):
        if not isinstance(cds, CdsCalibrationInstrument):
            raise ValidationError(f'Pillar {i} is not a CdsCalibrationInstrument: {type(cds).__name__}')
        if not math.isfinite(coupons[i]) or not math.isfinite(points_upfront[i]):
            raise ValidationError(f'Pillar {i} has a non-finite quote')

    if instruments[0].protection_end <= 0:
        raise ValidationError('First pillar has already expired')
    for i in range(1, n):
        prev, cds = instruments[i - 1], instruments[i]
        if cds.protection_end <= prev.protection_end:
            raise ValidationError(
                f'Pillar {i} protection end ({cds.protection_end}) must be after '
                f'pillar {i - 1} ({prev.protection_end})'
            )
        if cds.acc_start < prev.acc_start:
            raise ValidationError(
                f'Pillar {i} accrual start ({cds.acc_start}) is before that of pillar {i - 1}'
            )


class CreditCurveCalibrator(ABC):
    """
    Bootstraps an ISDA hazard rate curve from CDS quotes.

    Subclasses provide the single knot solve; input handling, the arbitrage
    policy and the pillar loop live here.
    """

    def __init__(
        self,
        formula: AccrualOnDefaultFormula | str = AccrualOnDefaultFormula.ORIGINAL_ISDA,
        arbitrage_handling: ArbitrageHandling | str = ArbitrageHandling.IGNORE,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iter: int = DEFAULT_MAX_ITER,
        threshold: float = DEFAULT_THRESHOLD,
    ):
        """
        Initialize the calibrator.

        Args:
            formula: Accrual-on-default formula
            arbitrage_handling: Policy for pillars needing a negative forward hazard
            tolerance: Convergence tolerance on PV per unit notional
            max_iter: Iteration budget of each knot solve
            threshold: |dH + dR| below which Taylor expansions are used
        """
        if isinstance(arbitrage_handling, str):
            arbitrage_handling = ArbitrageHandling.from_string(arbitrage_handling)
        if tolerance <= 0:
            raise ValidationError(f'Tolerance must be positive, got {tolerance}')
        if max_iter < 1:
            raise ValidationError(f'max_iter must be at least 1, got {max_iter}')
        self.pricer = CdsPricer(formula, threshold)
        self.arbitrage_handling = arbitrage_handling
        self.tolerance = tolerance
        self.max_iter = max_iter

    @property
    def formula(self) -> AccrualOnDefaultFormula:
        return self.pricer.formula

    # Public API

    def calibrate_credit_curve(
        self,
        instruments: CdsCalibrationInstrument | Sequence[CdsCalibrationInstrument],
        quotes: float | CdsQuote | Sequence[float] | Sequence[CdsQuote],
        discount_curve: ZeroCurve,
        points_upfront: float | Sequence[float] | None = None,
    ) -> HazardRateCurve:
        """
        Calibrate a credit curve.

        Accepts a single instrument with a single quote, or matching lists. A
        quote is a ParSpread, QuotedSpread or PointsUpFront; plain numbers are
        premiums (par spreads), paired with points_upfront when given.

        Args:
            instruments: Pillar instrument(s), in maturity order
            quotes: Quote(s) or premium(s), one per instrument
            discount_curve: Yield curve
            points_upfront: Upfront amount(s) when quotes are premiums

        Returns
            HazardRateCurve with one knot per pillar

        Raises
            ValidationError: Malformed inputs
            ArbitrageError: FAIL policy and a pillar needs a negative hazard
            BootstrapError: A knot could not be solved
        """
        instruments = _as_list(instruments)
        quotes = _as_list(quotes)
        if points_upfront is None:
            pufs = None
        else:
            pufs = _as_list(points_upfront)
            if any(not isinstance(q, (int, float)) for q in quotes):
                raise ValidationError('points_upfront can only be given with numeric premiums')
            if len(pufs) != len(quotes):
                raise ValidationError(
                    f'Got {len(quotes)} premiums but {len(pufs)} points upfront'
                )
        if len(quotes) != len(instruments):
            raise ValidationError(f'Got {len(instruments)} instruments but {len(quotes)} quotes')
        if not isinstance(discount_curve, ZeroCurve):
            raise ValidationError(f'Expected ZeroCurve, got {type(discount_curve).__name__}')

        if pufs is None:
            coupons, pufs = self._convert_quotes(instruments, quotes, discount_curve)
        else:
            coupons = [float(q) for q in quotes]
            pufs = [float(p) for p in pufs]
        return self._bootstrap(instruments, coupons, pufs, discount_curve)

    def calibrate(
        self,
        pillars: Sequence[CdsCalibrationInstrument],
        quotes: Sequence[float] | Sequence[CdsQuote],
        discount_curve: ZeroCurve,
    ) -> HazardRateCurve:
        """Calibrate from pillars and par spreads or quote objects."""
        return self.calibrate_credit_curve(pillars, quotes, discount_curve)

    def quoted_spread_to_puf(
        self,
        instrument: CdsCalibrationInstrument,
        coupon: float,
        quoted_spread: float,
        discount_curve: ZeroCurve,
    ) -> float:
        """
        Points upfront equivalent to a quoted spread.

        A flat curve is calibrated to the quoted spread as a par spread, then
        the instrument is priced (clean) at the standard coupon.
        """
        flat = self._bootstrap([instrument], [quoted_spread], [0.0], discount_curve)
        return self.pricer.present_value(
            instrument, discount_curve, flat, coupon, PriceType.CLEAN,
        )

    def puf_to_quoted_spread(
        self,
        instrument: CdsCalibrationInstrument,
        coupon: float,
        points_upfront: float,
        discount_curve: ZeroCurve,
    ) -> float:
        """
        Quoted spread equivalent to an upfront amount.

        The inverse of quoted_spread_to_puf: a flat curve is calibrated to
        the upfront amount at the standard coupon and its par spread is the
        quoted spread.
        """
        flat = self._bootstrap([instrument], [coupon], [points_upfront], discount_curve)
        return self.pricer.par_spread(instrument, discount_curve, flat)

    # Bootstrap

    def _convert_quotes(self, instruments, quotes, discount_curve):
        coupons, pufs = [], []
        for cds, q in zip(instruments, quotes):
            if isinstance(q, ParSpread):
                coupons.append(q.spread)
                pufs.append(0.0)
            elif isinstance(q, PointsUpFront):
                coupons.append(q.coupon)
                pufs.append(q.puf)
            elif isinstance(q, QuotedSpread):
                if not isinstance(cds, CdsCalibrationInstrument):
                    raise ValidationError(f'Not a CdsCalibrationInstrument: {type(cds).__name__}')
                coupons.append(q.coupon)
                pufs.append(self.quoted_spread_to_puf(cds, q.coupon, q.quoted_spread, discount_curve))
            elif isinstance(q, (int, float)) and not isinstance(q, bool):
                coupons.append(float(q))
                pufs.append(0.0)
            else:
                raise ValidationError(f'Unsupported quote type: {type(q).__name__}')
        return coupons, pufs

    def _bootstrap(
        self,
        instruments: list[CdsCalibrationInstrument],
        coupons: list[float],
        pufs: list[float],
        discount_curve: ZeroCurve,
    ) -> HazardRateCurve:
        validate_pillars(instruments, coupons, pufs)

        curve: HazardRateCurve | None = None
        for i, cds in enumerate(instruments):
            # Seed
            base = self._trial_curve(curve, cds.protection_end, 0.0)
            f, fprime = self._pillar_function(cds, coupons[i], pufs[i], base, discount_curve)
            guess = self._seed(cds, coupons[i], pufs[i], curve)

            # Solve
            outcome = check_arbitrage(self.arbitrage_handling, f(0.0), i)
            if isinstance(outcome, Reject):
                raise ArbitrageError(outcome.reason, pillar=i)
            if isinstance(outcome, Clamp):
                rate = outcome.rate
                logger.warning('Pillar %d: forward hazard rate clamped to %g', i, rate)
            else:
                try:
                    rate = self._solve(f, fprime, guess)
                except ConvergenceError as e:
                    raise BootstrapError(f'Failed to calibrate pillar {i}: {e}', pillar=i) from e

            # Commit
            curve = self._trial_curve(curve, cds.protection_end, rate)
            logger.debug(
                'Pillar %d: t=%.6f forward hazard=%.10f survival=%.10f',
                i, cds.protection_end, rate, curve.survival_probability(cds.protection_end),
            )
        return curve

    @staticmethod
    def _trial_curve(curve: HazardRateCurve | None, t: float, rate: float) -> HazardRateCurve:
        if curve is None:
            return HazardRateCurve([t], [rate])
        return curve.with_node(t, rate)

    @staticmethod
    def _seed(cds, coupon, puf, curve) -> float:
        guess = (coupon + puf / cds.protection_end) / cds.lgd
        if guess > 0 and math.isfinite(guess):
            return guess
        if curve is not None and curve.knot_hazard_rate(-1) > 0:
            return curve.knot_hazard_rate(-1)
        return DEFAULT_GUESS

    @abstractmethod
    def _pillar_function(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        puf: float,
        base: HazardRateCurve,
        discount_curve: ZeroCurve,
    ) -> tuple[Callable[[float], float], Callable[[float], float] | None]:
        """
        Pricing function of the new knot's forward hazard rate and its derivative.

        Args:
            cds: Pillar instrument
            coupon: Running coupon of the quote
            puf: Points upfront of the quote
            base: Committed knots plus the new knot with a zero rate
            discount_curve: Yield curve
        """

    @abstractmethod
    def _solve(
        self,
        f: Callable[[float], float],
        fprime: Callable[[float], float] | None,
        guess: float,
    ) -> float:
        """Root of f near guess."""

    def __repr__(self) -> str:
        return (
            f'{type(self).__name__}(formula={self.formula.name}, '
            f'arbitrage_handling={self.arbitrage_handling.name})'
        )


class SimpleCreditCurveBuilder(CreditCurveCalibrator):
    """
    Reprices the pillar with CdsPricer for every trial rate.

    Slower than FastCreditCurveBuilder but has no caching to get wrong, which
    makes it the reference the fast builder is tested against.
    """

    def _pillar_function(self, cds, coupon, puf, base, discount_curve):
        node = base.number_of_knots - 1

        def f(rate: float) -> float:
            trial = base.with_rate(rate, node)
            return self.pricer.present_value(
                cds, discount_curve, trial, coupon, PriceType.CLEAN, puf,
            )

        return f, None

    def _solve(self, f, fprime, guess):
        lower, upper = bracket_root(f, 0.0, guess)
        return brent(f, lower, upper, tol=self.tolerance, max_iter=self.max_iter)


class _PillarCache:
    """
    Everything needed to price one pillar that does not depend on the new rate.

    The cumulative hazard at any time is base + rate * slope, where base is the
    value with a zero rate on the new segment and slope is its sensitivity to
    that rate.
    """

    def __init__(self, pricer, cds, coupon, puf, base, discount_curve):
        node = base.number_of_knots - 1
        accrual = pricer.accrual
        self.threshold = pricer.threshold
        self.accrual = accrual
        self.coupon = coupon
        self.puf = puf
        self.lgd = cds.lgd
        self.cs_df = discount_curve.discount_factor(cds.cash_settle_time)

        def split(t):
            t = np.asarray(t, dtype=float)
            return base.rt_array(t), base.rt_sensitivity_array(t, node)

        # Protection leg grid
        knots = integration_points(
            cds.effective_protection_start, cds.protection_end, discount_curve, base,
        )
        self.pro_rt = discount_curve.rt_array(knots)
        self.pro_h, self.pro_s = split(knots)
        self.pro_knots = knots

        # Coupons
        eff_end = np.array([c.eff_end for c in cds.coupons])
        self.cpn_weight = np.array([
            c.year_frac * discount_curve.discount_factor(c.payment_time) for c in cds.coupons
        ])
        self.cpn_h, self.cpn_s = split(eff_end)

        # Accrual on default, all periods' segments side by side
        self.has_accrual = cds.pay_accrual_on_default
        if self.has_accrual:
            grid = integration_points(
                premium_leg_start(cds), cds.protection_end, discount_curve, base,
            )
            left, right, origin, ratio = [], [], [], []
            for c in cds.coupons:
                k = accrual.period_knots(c, cds.effective_protection_start, grid)
                if k is None:
                    continue
                left.append(k[:-1])
                right.append(k[1:])
                origin.append(np.full(len(k) - 1, c.eff_start - accrual.omega))
                ratio.append(np.full(len(k) - 1, c.yf_ratio))
            self.has_accrual = bool(left)
        if self.has_accrual:
            self.acc_left = np.concatenate(left)
            self.acc_right = np.concatenate(right)
            self.acc_origin = np.concatenate(origin)
            self.acc_ratio = np.concatenate(ratio)
            self.acc_rt_left = discount_curve.rt_array(self.acc_left)
            self.acc_rt_right = discount_curve.rt_array(self.acc_right)
            self.acc_h_left, self.acc_s_left = split(self.acc_left)
            self.acc_h_right, self.acc_s_right = split(self.acc_right)

        # Accrued premium for the clean price
        self.accrued = cds.accrued_year_frac * self.cs_df
        self.prot_start_is_zero = cds.effective_protection_start == 0
        ps_h, ps_s = split([cds.effective_protection_start])
        self.ps_h, self.ps_s = float(ps_h[0]), float(ps_s[0])

        self._last_rate = None
        self._last = None

    def evaluate(self, rate: float) -> tuple[float, float]:
        """PV minus target, and its derivative, at a trial rate."""
        if rate == self._last_rate:
            return self._last

        # Protection leg
        ht = self.pro_h + rate * self.pro_s
        q = np.exp(-ht)
        seg = segments_from_pairs(
            self.pro_knots[:-1], self.pro_knots[1:], ht[:-1], ht[1:],
            self.pro_rt[:-1], self.pro_rt[1:], threshold=self.threshold,
        )
        dq = -self.pro_s * q
        pro = self.lgd * float(np.sum(protection_segment_pv(seg))) / self.cs_df
        pro_sense = self.lgd * float(np.sum(
            protection_segment_credit_sensitivity(seg, dq[:-1], dq[1:])
        )) / self.cs_df

        # Premium leg
        q_end = np.exp(-(self.cpn_h + rate * self.cpn_s))
        ann = float(np.sum(self.cpn_weight * q_end))
        ann_sense = float(np.sum(self.cpn_weight * -self.cpn_s * q_end))

        if self.has_accrual:
            h_left = self.acc_h_left + rate * self.acc_s_left
            h_right = self.acc_h_right + rate * self.acc_s_right
            seg = segments_from_pairs(
                self.acc_left, self.acc_right, h_left, h_right,
                self.acc_rt_left, self.acc_rt_right, self.acc_origin, self.threshold,
            )
            dq0 = -self.acc_s_left * seg.q0
            dq1 = -self.acc_s_right * seg.q1
            ann += float(np.sum(self.acc_ratio * self.accrual.segment_pv(seg)))
            ann_sense += float(np.sum(
                self.acc_ratio * self.accrual.segment_credit_sensitivity(seg, dq0, dq1)
            ))

        if not self.prot_start_is_zero:
            q_ps = math.exp(-(self.ps_h + rate * self.ps_s))
            ann -= self.accrued * q_ps
            ann_sense += self.accrued * self.ps_s * q_ps
        elif self.accrued:
            ann -= self.accrued

        value = pro - self.coupon * ann / self.cs_df - self.puf
        derivative = pro_sense - self.coupon * ann_sense / self.cs_df
        self._last_rate = rate
        self._last = (value, derivative)
        return self._last


class FastCreditCurveBuilder(CreditCurveCalibrator):
    """
    Caches all rate-independent quantities of a pillar and solves with a
    bracketed Newton method using the analytic derivative.
    """

    def _pillar_function(self, cds, coupon, puf, base, discount_curve):
        cache = _PillarCache(self.pricer, cds, coupon, puf, base, discount_curve)
        return (lambda rate: cache.evaluate(rate)[0]), (lambda rate: cache.evaluate(rate)[1])

    def _solve(self, f, fprime, guess):
        lower, upper = bracket_root(f, 0.0, guess)
        return newton_with_bracket(
            f, fprime, lower, upper, guess, tol=self.tolerance, max_iter=self.max_iter,
        )
