"""
Accrual-on-default formulae.

If the reference entity defaults inside a premium period, the protection
buyer pays the premium accrued since the start of the period. For one period
the expected value is

    yf_ratio * integral (t - a) h(t) P(t) Q(t) dt

over the part of the period that is still at risk. Between two points of the
integration grid both the hazard rate and the discount forward rate are flat,
so every grid segment has a closed form. The three formulae differ only in
that closed form:

- ORIGINAL_ISDA: ISDA model up to 1.8.2, accrual time is off by half a day
- MARKIT_FIX: the Markit fix, drops the accrual time at the segment start
- OG_FIX: the exact integral

When the combined forward rate over a segment is close to zero the closed
forms divide by a number close to zero, so a Taylor expansion built from
epsilon(x) = (exp(x) - 1) / x is used instead.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple

import numpy as np

from .curves import HazardRateCurve, ZeroCurve
from .enums import AccrualOnDefaultFormula
from .epsilon import epsilon_array, epsilon_p_array, epsilon_pp_array
from .exceptions import ValidationError
from .instrument import CdsCoupon
from .interpolation import truncate_inclusive

# |dH + dR| below which the Taylor forms are used
DEFAULT_THRESHOLD = 1e-5

# Half a day, the accrual time offset of the original ISDA code
ISDA_OMEGA = 1.0 / 730


class Segments(NamedTuple):
    """Per-segment quantities of an integration grid."""

    t0: np.ndarray    # accrual time at segment start
    t1: np.ndarray    # accrual time at segment end
    dt: np.ndarray
    dht: np.ndarray   # increase of the cumulative hazard
    dhrt: np.ndarray  # increase of cumulative hazard plus integrated rate
    p0: np.ndarray
    p1: np.ndarray
    q0: np.ndarray
    q1: np.ndarray
    small: np.ndarray

    @property
    def b0(self) -> np.ndarray:
        return self.p0 * self.q0

    @property
    def b1(self) -> np.ndarray:
        return self.p1 * self.q1

    @property
    def safe_dhrt(self) -> np.ndarray:
        """dhrt with the small entries replaced by one (they are never used)."""
        return np.where(self.small, 1.0, self.dhrt)


def build_segments(
    knots: np.ndarray,
    ht: np.ndarray,
    rt: np.ndarray,
    accrual_origin: float = 0.0,
    threshold: float = DEFAULT_THRESHOLD,
) -> Segments:
    """
    Split a grid into segments.

    Args:
        knots: Integration grid (sorted)
        ht: Cumulative hazard at the grid points
        rt: Integrated discount rate at the grid points
        accrual_origin: Time from which accrual is measured
        threshold: Switch to the Taylor forms when |dhrt| is below this

    Returns
        Segments
    """
    return segments_from_pairs(
        knots[:-1], knots[1:], ht[:-1], ht[1:], rt[:-1], rt[1:], accrual_origin, threshold,
    )


def segments_from_pairs(
    left: np.ndarray,
    right: np.ndarray,
    ht_left: np.ndarray,
    ht_right: np.ndarray,
    rt_left: np.ndarray,
    rt_right: np.ndarray,
    accrual_origin: np.ndarray | float = 0.0,
    threshold: float = DEFAULT_THRESHOLD,
) -> Segments:
    """
    Segments given by their end points; they need not be contiguous.

    Lets segments of several premium periods be evaluated in one pass.
    """
    dht = ht_right - ht_left
    dhrt = dht + (rt_right - rt_left)
    p0 = np.exp(-rt_left)
    q0 = np.exp(-ht_left)
    return Segments(
        t0=left - accrual_origin,
        t1=right - accrual_origin,
        dt=right - left,
        dht=dht,
        dhrt=dhrt,
        p0=p0,
        p1=np.exp(-rt_right),
        q0=q0,
        q1=np.exp(-ht_right),
        small=np.abs(dhrt) < threshold,
    )


class AccrualOnDefaultCalculator(ABC):
    """
    Strategy for the accrual paid on default over one premium period.

    Instances are stateless apart from the Taylor switch threshold and can
    be shared between pricers and calibrators.
    """

    formula: AccrualOnDefaultFormula
    omega: float = 0.0

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        if not threshold >= 0:
            raise ValidationError(f'Threshold must be non-negative, got {threshold}')
        self.threshold = threshold

    @abstractmethod
    def segment_pv(self, seg: Segments) -> np.ndarray:
        """Value of each grid segment (before the yf_ratio scaling)."""

    @abstractmethod
    def segment_credit_sensitivity(
        self,
        seg: Segments,
        dq0: np.ndarray,
        dq1: np.ndarray,
    ) -> np.ndarray:
        """
        Sensitivity of each segment value to one credit curve parameter.

        Args:
            seg: Grid segments
            dq0: Survival probability sensitivity at segment starts
            dq1: Survival probability sensitivity at segment ends
        """

    def period_pv(
        self,
        knots: np.ndarray,
        ht: np.ndarray,
        rt: np.ndarray,
        eff_start: float,
    ) -> float:
        """Sum of segment_pv over a period grid whose accrual starts at eff_start."""
        seg = build_segments(knots, ht, rt, eff_start - self.omega, self.threshold)
        return float(np.sum(self.segment_pv(seg)))

    def period_credit_sensitivity(
        self,
        knots: np.ndarray,
        ht: np.ndarray,
        rt: np.ndarray,
        dq: np.ndarray,
        eff_start: float,
    ) -> float:
        """Sum of segment_credit_sensitivity over a period grid."""
        seg = build_segments(knots, ht, rt, eff_start - self.omega, self.threshold)
        return float(np.sum(self.segment_credit_sensitivity(seg, dq[:-1], dq[1:])))

    def period_knots(
        self,
        coupon: CdsCoupon,
        effective_start: float,
        integration_points: np.ndarray,
    ) -> np.ndarray | None:
        """Grid of a coupon period, or None if the period is no longer at risk."""
        start = max(coupon.eff_start, effective_start)
        if start >= coupon.eff_end:
            return None
        return truncate_inclusive(start, coupon.eff_end, integration_points)

    def single_period_pv(
        self,
        coupon: CdsCoupon,
        effective_start: float,
        integration_points: np.ndarray,
        discount_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
    ) -> float:
        """
        Present value (to time zero) of the accrual paid on default in one period.

        Args:
            coupon: The premium period
            effective_start: Protection start of the CDS
            integration_points: Grid covering the whole premium leg
            discount_curve: Yield curve
            credit_curve: Credit curve

        Returns
            Value per unit coupon
        """
        knots = self.period_knots(coupon, effective_start, integration_points)
        if knots is None:
            return 0.0
        pv = self.period_pv(
            knots,
            credit_curve.rt_array(knots),
            discount_curve.rt_array(knots),
            coupon.eff_start,
        )
        return coupon.yf_ratio * pv

    def single_period_credit_sensitivity(
        self,
        coupon: CdsCoupon,
        effective_start: float,
        integration_points: np.ndarray,
        discount_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        credit_node: int,
    ) -> float:
        """Sensitivity of single_period_pv to the hazard rate of one credit curve knot."""
        knots = self.period_knots(coupon, effective_start, integration_points)
        if knots is None:
            return 0.0
        ht = credit_curve.rt_array(knots)
        dq = -credit_curve.rt_sensitivity_array(knots, credit_node) * np.exp(-ht)
        sense = self.period_credit_sensitivity(
            knots, ht, discount_curve.rt_array(knots), dq, coupon.eff_start,
        )
        return coupon.yf_ratio * sense

    def __repr__(self) -> str:
        return f'{type(self).__name__}(threshold={self.threshold})'


class _AccrualTimeFormula(AccrualOnDefaultCalculator):
    """Closed form keeping the accrual time t - a inside the integral."""

    def segment_pv(self, seg: Segments) -> np.ndarray:
        b0, b1 = seg.b0, seg.b1
        x = -seg.dhrt
        taylor = seg.dht * b0 * (seg.t0 * epsilon_array(x) + seg.dt * epsilon_p_array(x))
        d = seg.safe_dhrt
        closed = seg.dht / d * (seg.t0 * b0 - seg.t1 * b1 + seg.dt / d * (b0 - b1))
        return np.where(seg.small, taylor, closed)

    def segment_credit_sensitivity(self, seg, dq0, dq1):
        b0, b1 = seg.b0, seg.b1
        x = -seg.dhrt
        e = epsilon_array(x)
        ep = epsilon_p_array(x)
        epp = epsilon_pp_array(x)
        v1 = seg.t0 * e + seg.dt * ep
        v2 = seg.t0 * ep + seg.dt * epp
        taylor = (
            seg.p0 * ((1 + seg.dht) * v1 - seg.dht * v2) * dq0
            + b0 / seg.q1 * (-v1 + seg.dht * v2) * dq1
        )

        d = seg.safe_dhrt
        w1 = seg.dt / d
        w2 = seg.dht / d
        w3 = (seg.t0 + w1) * b0 - (seg.t1 + w1) * b1
        w4 = (1 - w2) / d
        w5 = w1 / d * (b0 - b1)
        dpv_dq0 = w4 * w3 / seg.q0 + w2 * ((seg.t0 + w1) * seg.p0 - w5 / seg.q0)
        dpv_dq1 = w4 * w3 / seg.q1 + w2 * ((seg.t1 + w1) * seg.p1 - w5 / seg.q1)
        closed = dpv_dq0 * dq0 - dpv_dq1 * dq1
        return np.where(seg.small, taylor, closed)


class OriginalIsdaFormula(_AccrualTimeFormula):
    """ISDA model 1.8.2 and lower: accrual time carries an extra half day."""

    formula = AccrualOnDefaultFormula.ORIGINAL_ISDA
    omega = ISDA_OMEGA


class OgFixFormula(_AccrualTimeFormula):
    """The exact integral."""

    formula = AccrualOnDefaultFormula.OG_FIX
    omega = 0.0


class MarkitFixFormula(AccrualOnDefaultCalculator):
    """
    The Markit fix.

    Each segment is valued as if accrual restarted at the segment start, which
    is what the ISDA C code does once the half-day bug is removed.
    """

    formula = AccrualOnDefaultFormula.MARKIT_FIX
    omega = 0.0

    def segment_pv(self, seg: Segments) -> np.ndarray:
        b0, b1 = seg.b0, seg.b1
        taylor = seg.dht * seg.dt * b0 * epsilon_p_array(-seg.dhrt)
        d = seg.safe_dhrt
        closed = seg.dht * seg.dt / d * ((b0 - b1) / d - b1)
        return np.where(seg.small, taylor, closed)

    def segment_credit_sensitivity(self, seg, dq0, dq1):
        b0, b1 = seg.b0, seg.b1
        x = -seg.dhrt
        ep = epsilon_p_array(x)
        epp = epsilon_pp_array(x)
        taylor = (
            seg.p0 * seg.dt * ((1 + seg.dht) * ep - seg.dht * epp) * dq0
            + b0 * seg.dt / seg.q1 * (-ep + seg.dht * epp) * dq1
        )

        d = seg.safe_dhrt
        w1 = (b0 - b1) / d
        w2 = w1 - b1
        w3 = seg.dht / d
        w4 = seg.dt / d
        w5 = (1 - w3) * w2
        dpv_dq0 = w4 / seg.q0 * (w5 + w3 * (b0 - w1))
        dpv_dq1 = w4 / seg.q1 * (w5 + w3 * (b1 * (1 + d) - w1))
        closed = dpv_dq0 * dq0 - dpv_dq1 * dq1
        return np.where(seg.small, taylor, closed)


_FORMULAE = {
    AccrualOnDefaultFormula.ORIGINAL_ISDA: OriginalIsdaFormula,
    AccrualOnDefaultFormula.MARKIT_FIX: MarkitFixFormula,
    AccrualOnDefaultFormula.OG_FIX: OgFixFormula,
}


def accrual_formula(
    formula: AccrualOnDefaultFormula | str | AccrualOnDefaultCalculator = AccrualOnDefaultFormula.ORIGINAL_ISDA,
    threshold: float = DEFAULT_THRESHOLD,
) -> AccrualOnDefaultCalculator:
    """
    Get the accrual-on-default strategy for a formula.

    Args:
        formula: Enum member, its name, or an existing strategy (returned as is)
        threshold: Taylor switch threshold

    Returns
        AccrualOnDefaultCalculator
    """
    if isinstance(formula, AccrualOnDefaultCalculator):
        return formula
    if isinstance(formula, str):
        formula = AccrualOnDefaultFormula.from_string(formula)
    try:
        return _FORMULAE[formula](threshold=threshold)
    except KeyError:
        raise ValidationError(f'Unknown accrual on default formula: {formula}')
