"""
Curve classes for discounting and default probabilities.

Provides:
- ZeroCurve: the discount (yield) curve, knots of zero rates
- HazardRateCurve: the credit curve, knots of forward hazard rates

Both are flat forward: the integrated rate rt(t) = -ln(P(t)) is piecewise
linear in t. Curves are immutable; the ``with_*`` methods return new curves.
"""

import bisect
import math
from abc import ABC, abstractmethod

import numpy as np

from .exceptions import CurveError
from .interpolation import flat_forward_rt, flat_forward_rt_array


def _check_times(times: np.ndarray, values: np.ndarray, name: str) -> None:
    if times.ndim != 1 or len(times) == 0:
        raise CurveError(f'{name} requires at least one knot')
    if len(times) != len(values):
        raise CurveError(f'times and {name} must have same length')
    if not np.all(np.isfinite(times)) or not np.all(np.isfinite(values)):
        raise CurveError(f'times and {name} must be finite')
    if times[0] <= 0:
        raise CurveError(f'First knot time must be positive, got {times[0]}')
    if np.any(np.diff(times) <= 0):
        raise CurveError('Knot times must be strictly increasing')


class Curve(ABC):
    """Abstract base class for flat forward curves."""

    def __init__(self, times: np.ndarray, rt: np.ndarray):
        self._times = times
        self._rt = rt
        self._times.setflags(write=False)
        self._rt.setflags(write=False)

    @property
    def times(self) -> np.ndarray:
        """Array of knot times (in years)."""
        return self._times

    @property
    def number_of_knots(self) -> int:
        """Number of knots in the curve."""
        return len(self._times)

    def knot_time(self, i: int) -> float:
        """Time of knot i."""
        return float(self._times[i])

    def rt(self, t: float) -> float:
        """Integrated rate to time t, i.e. -ln of the discount factor."""
        return flat_forward_rt(t, self._times, self._rt)

    def rt_array(self, t: np.ndarray) -> np.ndarray:
        """Vectorised rt."""
        return flat_forward_rt_array(t, self._times, self._rt)

    def discount_factor(self, t: float) -> float:
        """exp(-rt(t)); a survival probability for credit curves."""
        return math.exp(-self.rt(t))

    def zero_rate(self, t: float) -> float:
        """Average rate from zero to t."""
        if t <= self._times[0]:
            return float(self._rt[0] / self._times[0])
        return self.rt(t) / t

    @abstractmethod
    def forward_rate(self, t: float) -> float:
        """Instantaneous forward rate at time t."""

    def _segment(self, t: float) -> int:
        # Index of the knot closing the segment that contains t (value just
        # before the knot at a knot); the last segment is extrapolated
        idx = bisect.bisect_left(self._times, t)
        return min(idx, len(self._times) - 1)


class ZeroCurve(Curve):
    """
    Zero rate curve for discounting.

    Zero rates are continuously compounded: DF(t) = exp(-r(t) * t).
    The curve is supplied fully built; calibration never mutates it.
    """

    def __init__(self, times, rates):
        """
        Initialize a zero curve.

        Args:
            times: Array of knot times (in years, strictly increasing, positive)
            rates: Array of zero rates at each knot
        """
        times = np.array(times, dtype=float)
        rates = np.array(rates, dtype=float)
        _check_times(times, rates, 'rates')
        super().__init__(times, rates * times)

    @classmethod
    def flat(cls, rate: float, t: float = 1.0) -> 'ZeroCurve':
        """A curve with the same zero rate everywhere."""
        return cls([t], [rate])

    @classmethod
    def from_discount_factors(cls, times, discount_factors) -> 'ZeroCurve':
        """Build a curve from discount factors at the knots."""
        times = np.array(times, dtype=float)
        dfs = np.array(discount_factors, dtype=float)
        if np.any(dfs <= 0):
            raise CurveError('Discount factors must be positive')
        return cls(times, -np.log(dfs) / times)

    @property
    def rates(self) -> np.ndarray:
        """Array of zero rates at the knots."""
        return self._rt / self._times

    def forward_rate(self, t: float) -> float:
        """Instantaneous forward rate at time t."""
        i = self._segment(t)
        if i == 0:
            return float(self._rt[0] / self._times[0])
        return float((self._rt[i] - self._rt[i - 1]) / (self._times[i] - self._times[i - 1]))

    def __repr__(self) -> str:
        return f'ZeroCurve(times={self._times.tolist()}, rates={self.rates.tolist()})'


class HazardRateCurve(Curve):
    """
    Credit curve of piecewise constant (forward) hazard rates.

    Knot i carries the hazard rate h_i that applies on (t_{i-1}, t_i], with
    t_0 = 0. The first rate also applies before the first knot and the last
    rate is held flat beyond the last knot. Survival probability is
    Q(t) = exp(-H(t)) where the cumulative hazard H is accumulated segment by
    segment when the curve is built.
    """

    def __init__(self, times, hazard_rates):
        """
        Initialize a hazard rate curve.

        Args:
            times: Array of knot times (in years, strictly increasing, positive)
            hazard_rates: Forward hazard rate on the segment ending at each knot
        """
        times = np.array(times, dtype=float)
        hazard_rates = np.array(hazard_rates, dtype=float)
        _check_times(times, hazard_rates, 'hazard_rates')
        self._hazard_rates = hazard_rates
        self._hazard_rates.setflags(write=False)
        dt = np.diff(times, prepend=0.0)
        super().__init__(times, np.cumsum(hazard_rates * dt))

    @classmethod
    def flat(cls, hazard_rate: float, t: float = 1.0) -> 'HazardRateCurve':
        """A single knot curve with a constant hazard rate."""
        return cls([t], [hazard_rate])

    @classmethod
    def from_zero_hazard_rates(cls, times, zero_rates) -> 'HazardRateCurve':
        """
        Build a curve from average (zero) hazard rates at the knots.

        This is how ISDA describes its credit curves: the survival probability
        to knot i is exp(-z_i * t_i).
        """
        times = np.array(times, dtype=float)
        zero_rates = np.array(zero_rates, dtype=float)
        _check_times(times, zero_rates, 'zero_rates')
        rt = zero_rates * times
        return cls(times, np.diff(rt, prepend=0.0) / np.diff(times, prepend=0.0))

    @property
    def hazard_rates(self) -> np.ndarray:
        """Array of forward hazard rates, one per knot."""
        return self._hazard_rates

    def knot_hazard_rate(self, i: int) -> float:
        """Hazard rate of knot i."""
        return float(self._hazard_rates[i])

    def forward_hazard_rate(self, i: int) -> float:
        """Forward hazard rate between knot i-1 and knot i (from zero for i=0)."""
        return self.knot_hazard_rate(i)

    def cumulative_hazard(self, t: float) -> float:
        """H(t), the integral of the hazard rate from zero to t."""
        i = self._segment(t)
        t_prev = self._times[i - 1] if i > 0 else 0.0
        h_prev = self._rt[i - 1] if i > 0 else 0.0
        return float(h_prev + self._hazard_rates[i] * (t - t_prev))

    def rt(self, t: float) -> float:
        return self.cumulative_hazard(t)

    def survival_probability(self, t: float) -> float:
        """Probability of no default before time t."""
        return math.exp(-self.cumulative_hazard(t))

    def default_probability(self, t: float) -> float:
        """Cumulative probability of default by time t."""
        return -math.expm1(-self.cumulative_hazard(t))

    def hazard_rate(self, t: float) -> float:
        """Instantaneous hazard rate at time t."""
        return float(self._hazard_rates[self._segment(t)])

    def forward_rate(self, t: float) -> float:
        return self.hazard_rate(t)

    def zero_hazard_rate(self, t: float) -> float:
        """Average hazard rate from zero to t."""
        return self.zero_rate(t)

    def rt_array(self, t: np.ndarray) -> np.ndarray:
        """Vectorised cumulative hazard, same arithmetic as cumulative_hazard."""
        t = np.asarray(t, dtype=float)
        idx = np.minimum(np.searchsorted(self._times, t, side='left'), len(self._times) - 1)
        has_prev = idx > 0
        t_prev = np.where(has_prev, self._times[idx - 1], 0.0)
        h_prev = np.where(has_prev, self._rt[idx - 1], 0.0)
        return h_prev + self._hazard_rates[idx] * (t - t_prev)

    def rt_sensitivity(self, t: float, i: int) -> float:
        """
        Sensitivity of H(t) to the hazard rate of knot i.

        This is the time spent by [0, t] inside the segment governed by knot i.
        """
        return float(self.rt_sensitivity_array(np.array([t]), i)[0])

    def rt_sensitivity_array(self, t: np.ndarray, i: int) -> np.ndarray:
        """Vectorised rt_sensitivity."""
        t = np.asarray(t, dtype=float)
        n = len(self._times)
        if not 0 <= i < n:
            raise CurveError(f'Knot index {i} out of range')
        upper = np.inf if i == n - 1 else self._times[i]
        if i == 0:
            # The first rate also applies before time zero
            return np.minimum(t, upper)
        lower = self._times[i - 1]
        return np.clip(t, lower, upper) - lower

    def survival_sensitivity(self, t: float, i: int) -> float:
        """Sensitivity of the survival probability at t to the hazard rate of knot i."""
        return -self.rt_sensitivity(t, i) * self.survival_probability(t)

    def with_node(self, t: float, hazard_rate: float) -> 'HazardRateCurve':
        """
        Return a new curve with one extra trailing knot.

        Args:
            t: Knot time, must be after the current last knot
            hazard_rate: Hazard rate on (t_n, t]
        """
        if t <= self._times[-1]:
            raise CurveError(f'New knot time {t} must be after last knot {self._times[-1]}')
        return HazardRateCurve(
            np.append(self._times, t),
            np.append(self._hazard_rates, hazard_rate),
        )

    def with_rate(self, hazard_rate: float, i: int = -1) -> 'HazardRateCurve':
        """Return a new curve with the hazard rate of knot i replaced."""
        rates = self._hazard_rates.copy()
        try:
            rates[i] = hazard_rate
        except IndexError:
            raise CurveError(f'Knot index {i} out of range')
        return HazardRateCurve(self._times, rates)

    def __len__(self) -> int:
        return len(self._times)

    def __repr__(self) -> str:
        return (
            f'HazardRateCurve(times={self._times.tolist()}, '
            f'hazard_rates={self._hazard_rates.tolist()})'
        )
