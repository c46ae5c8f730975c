"""
Analytic CDS pricer.

Values the protection and premium legs of a CdsCalibrationInstrument on a
unit notional, given a yield curve and a credit curve. Both curves are flat
forward, so every leg is a finite sum of closed-form segment integrals over
the union of the two curves' knots (the integration grid).

Sign convention is that of the protection buyer:

    PV = protection leg - coupon * annuity - points upfront

All values are seen at the cash settlement time unless a valuation time is
given.
"""

import numpy as np

from .accrual_on_default import DEFAULT_THRESHOLD, AccrualOnDefaultCalculator
from .accrual_on_default import Segments, accrual_formula, build_segments
from .curves import HazardRateCurve, ZeroCurve
from .enums import AccrualOnDefaultFormula, PriceType
from .epsilon import epsilon_array, epsilon_p_array
from .exceptions import ValidationError
from .instrument import CdsCalibrationInstrument
from .interpolation import integration_points


def protection_segment_pv(seg: Segments) -> np.ndarray:
    """Value of default protection over each grid segment (before LGD)."""
    b0, b1 = seg.b0, seg.b1
    taylor = seg.dht * b0 * epsilon_array(-seg.dhrt)
    closed = (b0 - b1) * seg.dht / seg.safe_dhrt
    return np.where(seg.small, taylor, closed)


def protection_segment_credit_sensitivity(
    seg: Segments,
    dq0: np.ndarray,
    dq1: np.ndarray,
) -> np.ndarray:
    """Sensitivity of protection_segment_pv to one credit curve parameter."""
    hbar = seg.dht
    x = -seg.dhrt
    e = epsilon_array(x)
    ep = epsilon_p_array(x)
    taylor = (
        seg.p0 * ((1 + hbar) * e - hbar * ep) * dq0
        - seg.p0 * seg.q0 / seg.q1 * (e - hbar * ep) * dq1
    )

    fhbar = seg.safe_dhrt
    w = (seg.dhrt - hbar) / fhbar * (seg.b0 - seg.b1)
    closed = (
        (w / seg.q0 + hbar * seg.p0) / fhbar * dq0
        - (w / seg.q1 + hbar * seg.p1) / fhbar * dq1
    )
    return np.where(seg.small, taylor, closed)


def premium_leg_start(cds: CdsCalibrationInstrument) -> float:
    """First point of the grid used for accrual on default."""
    # A single coupon only needs the grid from protection start; otherwise the
    # grid starts at the accrual start, which adds a knot for forward starts
    return cds.effective_protection_start if cds.num_payments == 1 else cds.acc_start


class CdsPricer:
    """
    Prices CDS with the ISDA standard model.

    Methods are pure functions of their arguments; a pricer only holds the
    accrual-on-default strategy and the Taylor switch threshold.

    Example:
        >>> pricer = CdsPricer(AccrualOnDefaultFormula.MARKIT_FIX)
        >>> pv = pricer.present_value(cds, yield_curve, credit_curve, coupon=0.01)
    """

    def __init__(
        self,
        formula: AccrualOnDefaultFormula | str | AccrualOnDefaultCalculator = AccrualOnDefaultFormula.ORIGINAL_ISDA,
        threshold: float = DEFAULT_THRESHOLD,
    ):
        """
        Initialize the pricer.

        Args:
            formula: Accrual-on-default formula (enum, name, or strategy)
            threshold: |dH + dR| below which Taylor expansions are used
        """
        self.accrual = accrual_formula(formula, threshold)
        self.threshold = self.accrual.threshold

    @property
    def formula(self) -> AccrualOnDefaultFormula:
        """The accrual-on-default formula in use."""
        return self.accrual.formula

    def _check(self, cds, yield_curve, credit_curve) -> None:
        if not isinstance(cds, CdsCalibrationInstrument):
            raise ValidationError(f'Expected CdsCalibrationInstrument, got {type(cds).__name__}')
        if not isinstance(yield_curve, ZeroCurve):
            raise ValidationError(f'Expected ZeroCurve, got {type(yield_curve).__name__}')
        if not isinstance(credit_curve, HazardRateCurve):
            raise ValidationError(f'Expected HazardRateCurve, got {type(credit_curve).__name__}')

    def _segments(self, knots, yield_curve, credit_curve) -> Segments:
        return build_segments(
            knots,
            credit_curve.rt_array(knots),
            yield_curve.rt_array(knots),
            threshold=self.threshold,
        )

    # Protection leg

    def protection_leg(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        valuation_time: float | None = None,
    ) -> float:
        """
        Value of the protection leg on a unit notional.

        (1 - R) / P(T_v) * integral P(t) dQ(t) from protection start to end.

        Args:
            cds: The instrument
            yield_curve: Yield curve
            credit_curve: Credit curve
            valuation_time: Time the value is seen at (default: cash settle)

        Returns
            Protection leg value
        """
        self._check(cds, yield_curve, credit_curve)
        if cds.protection_end <= 0:
            return 0.0
        if valuation_time is None:
            valuation_time = cds.cash_settle_time

        knots = integration_points(
            cds.effective_protection_start, cds.protection_end, yield_curve, credit_curve,
        )
        pv = float(np.sum(protection_segment_pv(self._segments(knots, yield_curve, credit_curve))))
        return cds.lgd * pv / yield_curve.discount_factor(valuation_time)

    # Premium leg

    def dirty_annuity(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
    ) -> float:
        """
        Full (dirty) risky annuity, per unit coupon, seen at time zero.

        Coupons are risky discounted to time zero and, if the instrument pays
        accrual on default, the expected accrual paid on default is added.
        """
        self._check(cds, yield_curve, credit_curve)
        if cds.protection_end <= 0:
            return 0.0

        pv = 0.0
        for c in cds.coupons:
            q = credit_curve.survival_probability(c.eff_end)
            p = yield_curve.discount_factor(c.payment_time)
            pv += c.year_frac * p * q

        if cds.pay_accrual_on_default:
            grid = integration_points(
                premium_leg_start(cds), cds.protection_end, yield_curve, credit_curve,
            )
            pv += sum(
                self.accrual.single_period_pv(
                    c, cds.effective_protection_start, grid, yield_curve, credit_curve,
                )
                for c in cds.coupons
            )
        return pv

    def annuity(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        price_type: PriceType | str = PriceType.CLEAN,
        valuation_time: float | None = None,
    ) -> float:
        """
        Risky annuity (RPV01 per unit coupon) seen at the valuation time.

        The clean annuity removes the premium accrued up to step-in, paid at
        cash settlement and conditional on survival to protection start.

        Args:
            cds: The instrument
            yield_curve: Yield curve
            credit_curve: Credit curve
            price_type: CLEAN or DIRTY
            valuation_time: Time the value is seen at (default: cash settle)

        Returns
            Annuity value
        """
        if isinstance(price_type, str):
            price_type = PriceType.from_string(price_type)
        if valuation_time is None:
            valuation_time = cds.cash_settle_time

        pv = self.dirty_annuity(cds, yield_curve, credit_curve)
        val_df = yield_curve.discount_factor(valuation_time)
        if price_type == PriceType.CLEAN:
            cs_df = yield_curve.discount_factor(cds.cash_settle_time)
            prot_start = cds.effective_protection_start
            q = 1.0 if prot_start == 0 else credit_curve.survival_probability(prot_start)
            pv -= cds.accrued_year_frac * cs_df * q
        return pv / val_df

    # Present value

    def present_value(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        coupon: float,
        price_type: PriceType | str = PriceType.CLEAN,
        points_upfront: float = 0.0,
    ) -> float:
        """
        PV of a CDS for the protection buyer, on a unit notional.

        Args:
            cds: The instrument
            yield_curve: Yield curve
            credit_curve: Credit curve
            coupon: Running coupon as a fraction (0.01 for 100bps)
            price_type: CLEAN or DIRTY
            points_upfront: Upfront amount (fraction of notional) paid by the buyer

        Returns
            protection leg - coupon * annuity - points_upfront
        """
        self._check(cds, yield_curve, credit_curve)
        if cds.protection_end <= 0:
            return 0.0
        rpv01 = self.annuity(cds, yield_curve, credit_curve, price_type)
        pro_leg = self.protection_leg(cds, yield_curve, credit_curve)
        return pro_leg - coupon * rpv01 - points_upfront

    def par_spread(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
    ) -> float:
        """Coupon that makes the clean PV zero."""
        self._check(cds, yield_curve, credit_curve)
        if cds.protection_end <= 0:
            raise ValidationError('CDS has expired, no par spread')
        rpv01 = self.annuity(cds, yield_curve, credit_curve, PriceType.CLEAN)
        return self.protection_leg(cds, yield_curve, credit_curve) / rpv01

    def points_upfront(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        coupon: float,
    ) -> float:
        """Clean upfront amount that makes the CDS fair at the given coupon."""
        return self.present_value(cds, yield_curve, credit_curve, coupon, PriceType.CLEAN)

    # Credit sensitivities

    def protection_leg_credit_sensitivity(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        credit_node: int,
    ) -> float:
        """Sensitivity of the protection leg to the hazard rate of one knot."""
        self._check(cds, yield_curve, credit_curve)
        n = credit_curve.number_of_knots
        if not 0 <= credit_node < n:
            raise ValidationError(f'Credit curve node {credit_node} out of range')
        if cds.protection_end <= 0:
            return 0.0
        if credit_node > 0 and cds.protection_end <= credit_curve.knot_time(credit_node - 1):
            return 0.0

        knots = integration_points(
            cds.effective_protection_start, cds.protection_end, yield_curve, credit_curve,
        )
        seg = self._segments(knots, yield_curve, credit_curve)
        dq = -credit_curve.rt_sensitivity_array(knots, credit_node) * np.exp(-credit_curve.rt_array(knots))
        sense = float(np.sum(protection_segment_credit_sensitivity(seg, dq[:-1], dq[1:])))
        return cds.lgd * sense / yield_curve.discount_factor(cds.cash_settle_time)

    def premium_leg_credit_sensitivity(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        credit_node: int,
        price_type: PriceType | str = PriceType.CLEAN,
    ) -> float:
        """Sensitivity of the annuity (seen at cash settle) to the hazard rate of one knot."""
        self._check(cds, yield_curve, credit_curve)
        if not 0 <= credit_node < credit_curve.number_of_knots:
            raise ValidationError(f'Credit curve node {credit_node} out of range')
        if isinstance(price_type, str):
            price_type = PriceType.from_string(price_type)
        if cds.protection_end <= 0:
            return 0.0

        sense = 0.0
        for c in cds.coupons:
            dq = credit_curve.survival_sensitivity(c.eff_end, credit_node)
            if dq == 0:
                continue
            sense += c.year_frac * yield_curve.discount_factor(c.payment_time) * dq

        if cds.pay_accrual_on_default:
            grid = integration_points(
                premium_leg_start(cds), cds.protection_end, yield_curve, credit_curve,
            )
            sense += sum(
                self.accrual.single_period_credit_sensitivity(
                    c, cds.effective_protection_start, grid, yield_curve, credit_curve, credit_node,
                )
                for c in cds.coupons
            )

        cs_df = yield_curve.discount_factor(cds.cash_settle_time)
        if price_type == PriceType.CLEAN and cds.effective_protection_start != 0:
            dq = credit_curve.survival_sensitivity(cds.effective_protection_start, credit_node)
            sense -= cds.accrued_year_frac * cs_df * dq
        return sense / cs_df

    def present_value_credit_sensitivity(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        coupon: float,
        credit_node: int,
        price_type: PriceType | str = PriceType.CLEAN,
    ) -> float:
        """
        Analytic sensitivity of present_value to the hazard rate of one knot.

        Args:
            cds: The instrument
            yield_curve: Yield curve
            credit_curve: Credit curve
            coupon: Running coupon as a fraction
            credit_node: Index of the credit curve knot
            price_type: CLEAN or DIRTY

        Returns
            dPV / dh_node
        """
        if cds.protection_end <= 0:
            return 0.0
        pro = self.protection_leg_credit_sensitivity(cds, yield_curve, credit_curve, credit_node)
        rpv01 = self.premium_leg_credit_sensitivity(
            cds, yield_curve, credit_curve, credit_node, price_type,
        )
        return pro - coupon * rpv01

    def present_value_sensitivity_to_last_hazard_rate(
        self,
        cds: CdsCalibrationInstrument,
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        coupon: float,
        price_type: PriceType | str = PriceType.CLEAN,
    ) -> float:
        """present_value_credit_sensitivity for the last knot of the credit curve."""
        return self.present_value_credit_sensitivity(
            cds, yield_curve, credit_curve, coupon, credit_curve.number_of_knots - 1, price_type,
        )

    def __repr__(self) -> str:
        return f'CdsPricer(formula={self.formula.name}, threshold={self.threshold})'
