"""
Tests for the accrual-on-default formulae.
"""

import numpy as np
import pytest

from isdacurve import AccrualOnDefaultFormula, CdsCoupon, HazardRateCurve, MarkitFixFormula
from isdacurve import OgFixFormula, OriginalIsdaFormula, ValidationError, accrual_formula
from isdacurve.accrual_on_default import ISDA_OMEGA
from isdacurve.interpolation import integration_points

FORMULAE = list(AccrualOnDefaultFormula)
EFFECTIVE_START = 0.5


def gauss_legendre(g, knots, order=20):
    """Integrate g piece by piece; g is smooth between consecutive knots."""
    x, w = np.polynomial.legendre.leggauss(order)
    total = 0.0
    for a, b in zip(knots[:-1], knots[1:]):
        t = 0.5 * (b - a) * x + 0.5 * (a + b)
        total += 0.5 * (b - a) * float(np.sum(w * g(t, a)))
    return total


def default_density(yield_curve, credit_curve):
    """h(t) P(t) Q(t) inside a segment of both curves."""
    def density(t):
        idx = np.minimum(np.searchsorted(credit_curve.times, t), credit_curve.number_of_knots - 1)
        h = credit_curve.hazard_rates[idx]
        return h * np.exp(-yield_curve.rt_array(t) - credit_curve.rt_array(t))
    return density


@pytest.fixture
def coupon():
    """Period that started before protection starts."""
    return CdsCoupon(eff_start=0.2, eff_end=1.7, payment_time=1.7, year_frac=1.52)


@pytest.fixture
def grid(yield_curve, credit_curve):
    """Integration grid over the period at risk."""
    return integration_points(EFFECTIVE_START, 1.7, yield_curve, credit_curve)


class TestClosedForms:
    """Each formula against direct numerical integration."""

    def test_og_fix_is_exact_integral(self, coupon, grid, yield_curve, credit_curve):
        """Accrual measured from the period start."""
        density = default_density(yield_curve, credit_curve)
        expected = coupon.yf_ratio * gauss_legendre(
            lambda t, a: (t - coupon.eff_start) * density(t), grid,
        )
        pv = OgFixFormula().single_period_pv(coupon, EFFECTIVE_START, grid, yield_curve, credit_curve)
        assert abs(pv - expected) < 1e-12

    def test_original_isda_adds_half_day(self, coupon, grid, yield_curve, credit_curve):
        """Accrual time carries an extra half day."""
        density = default_density(yield_curve, credit_curve)
        expected = coupon.yf_ratio * gauss_legendre(
            lambda t, a: (t - coupon.eff_start + ISDA_OMEGA) * density(t), grid,
        )
        pv = OriginalIsdaFormula().single_period_pv(
            coupon, EFFECTIVE_START, grid, yield_curve, credit_curve,
        )
        assert abs(pv - expected) < 1e-12

    def test_markit_fix_restarts_each_segment(self, coupon, grid, yield_curve, credit_curve):
        """Accrual measured from the start of each grid segment."""
        density = default_density(yield_curve, credit_curve)
        expected = coupon.yf_ratio * gauss_legendre(lambda t, a: (t - a) * density(t), grid)
        pv = MarkitFixFormula().single_period_pv(
            coupon, EFFECTIVE_START, grid, yield_curve, credit_curve,
        )
        assert abs(pv - expected) < 1e-12

    def test_formulae_ordering(self, coupon, grid, yield_curve, credit_curve):
        """MARKIT_FIX < OG_FIX < ORIGINAL_ISDA, all close."""
        pv = {
            f: accrual_formula(f).single_period_pv(
                coupon, EFFECTIVE_START, grid, yield_curve, credit_curve,
            )
            for f in FORMULAE
        }
        markit = pv[AccrualOnDefaultFormula.MARKIT_FIX]
        og = pv[AccrualOnDefaultFormula.OG_FIX]
        isda = pv[AccrualOnDefaultFormula.ORIGINAL_ISDA]
        assert 0 < markit < og < isda

    def test_period_no_longer_at_risk(self, yield_curve, credit_curve):
        """A period ending before protection starts is worth nothing."""
        c = CdsCoupon(eff_start=-0.25, eff_end=0.0, payment_time=0.0, year_frac=0.25)
        grid = integration_points(0.0, 1.0, yield_curve, credit_curve)
        for f in FORMULAE:
            calc = accrual_formula(f)
            assert calc.single_period_pv(c, 0.0, grid, yield_curve, credit_curve) == 0.0
            assert calc.single_period_credit_sensitivity(c, 0.0, grid, yield_curve, credit_curve, 0) == 0.0


class TestTaylorBranch:
    """The expansions near zero and the closed forms agree."""

    @pytest.mark.parametrize('formula', FORMULAE)
    def test_value_and_sensitivity_match(self, formula, coupon, grid, yield_curve, credit_curve):
        """Forcing every segment onto one branch or the other gives the same numbers."""
        taylor = accrual_formula(formula, threshold=1.0)
        closed = accrual_formula(formula, threshold=0.0)
        args = (coupon, EFFECTIVE_START, grid, yield_curve, credit_curve)
        assert abs(taylor.single_period_pv(*args) - closed.single_period_pv(*args)) < 1e-11
        for node in range(credit_curve.number_of_knots):
            a = taylor.single_period_credit_sensitivity(*args, node)
            b = closed.single_period_credit_sensitivity(*args, node)
            assert abs(a - b) < 1e-8

    @pytest.mark.parametrize('formula', FORMULAE)
    def test_zero_rates(self, formula, coupon, flat_yield_curve):
        """Zero hazard rates mean nothing is paid on default."""
        zero_credit = HazardRateCurve.flat(0.0)
        grid = integration_points(EFFECTIVE_START, 1.7, flat_yield_curve, zero_credit)
        calc = accrual_formula(formula)
        assert calc.single_period_pv(coupon, EFFECTIVE_START, grid, flat_yield_curve, zero_credit) == 0.0

    def test_hazard_offsetting_discount_rate(self, coupon, flat_yield_curve):
        """Hazard plus discount forward near zero uses the expansion and stays exact."""
        cc = HazardRateCurve.flat(-0.02 + 1e-6)
        grid = integration_points(EFFECTIVE_START, 1.7, flat_yield_curve, cc)
        density = default_density(flat_yield_curve, cc)
        expected = coupon.yf_ratio * gauss_legendre(
            lambda t, a: (t - coupon.eff_start) * density(t), grid,
        )
        pv = OgFixFormula().single_period_pv(coupon, EFFECTIVE_START, grid, flat_yield_curve, cc)
        assert abs(pv - expected) < 1e-15


class TestCreditSensitivity:
    """Analytic sensitivities against finite differences."""

    @pytest.mark.parametrize('formula', FORMULAE)
    @pytest.mark.parametrize('node', [0, 1, 2])
    def test_finite_difference(self, formula, node, coupon, grid, yield_curve, credit_curve):
        """Central difference in the knot hazard rate."""
        calc = accrual_formula(formula)
        bump = 1e-5
        h = credit_curve.knot_hazard_rate(node)
        up = credit_curve.with_rate(h + bump, node)
        down = credit_curve.with_rate(h - bump, node)
        fd = (
            calc.single_period_pv(coupon, EFFECTIVE_START, grid, yield_curve, up)
            - calc.single_period_pv(coupon, EFFECTIVE_START, grid, yield_curve, down)
        ) / (2 * bump)
        analytic = calc.single_period_credit_sensitivity(
            coupon, EFFECTIVE_START, grid, yield_curve, credit_curve, node,
        )
        assert abs(analytic - fd) < 1e-8

    def test_node_after_period(self, coupon, grid, yield_curve, credit_curve):
        """Knots that only govern later times have no effect."""
        calc = accrual_formula(AccrualOnDefaultFormula.OG_FIX)
        assert calc.single_period_credit_sensitivity(
            coupon, EFFECTIVE_START, grid, yield_curve, credit_curve, 2,
        ) == 0.0


class TestAccrualFormula:
    """Tests for the strategy lookup."""

    def test_from_enum_and_string(self):
        """Enum members and names."""
        assert isinstance(accrual_formula(AccrualOnDefaultFormula.OG_FIX), OgFixFormula)
        assert isinstance(accrual_formula('markit'), MarkitFixFormula)
        assert isinstance(accrual_formula(), OriginalIsdaFormula)

    def test_strategy_passes_through(self):
        """An existing strategy is returned unchanged."""
        calc = MarkitFixFormula(threshold=1e-6)
        assert accrual_formula(calc) is calc

    def test_threshold(self):
        """Threshold is kept and must be non-negative."""
        assert accrual_formula('og', threshold=1e-4).threshold == 1e-4
        with pytest.raises(ValidationError):
            accrual_formula('og', threshold=-1.0)

    def test_unknown_name(self):
        """Unknown formula names."""
        with pytest.raises(ValueError):
            accrual_formula('bogus')
