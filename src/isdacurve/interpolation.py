"""
Interpolation methods for curve construction.

Implements flat forward interpolation which is the standard method
for ISDA CDS pricing. Curves are stored as knot times and the integrated
rate ``rt`` (zero rate times time, i.e. minus the log of the discount factor
or survival probability); flat forward means ``rt`` is piecewise linear.
"""

import numpy as np

from .exceptions import CurveError

# Knot times closer than this are treated as the same point when merging grids
TIME_TOLERANCE = 1e-12


def flat_forward_rt(
    target_time: float,
    times: np.ndarray,
    rt: np.ndarray,
) -> float:
    """
    Interpolate the integrated rate at a time using flat forward interpolation.

    Before the first knot the first forward rate is used from time zero;
    after the last knot the last segment's forward rate is extrapolated.

    Args:
        target_time: Time point to interpolate (in years)
        times: Array of curve times (strictly increasing, positive)
        rt: Array of integrated rates at each time

    Returns
        Integrated rate at target_time
    """
    n = len(times)
    if n == 0:
        raise CurveError('Empty curve data')

    if target_time <= times[0]:
        return rt[0] * target_time / times[0]

    if n == 1:
        return rt[0] * target_time / times[0]

    # Binary search for the segment containing target_time
    idx = int(np.searchsorted(times, target_time))
    if idx < n and times[idx] == target_time:
        return float(rt[idx])
    idx = min(idx, n - 1)

    t0, t1 = times[idx - 1], times[idx]
    return float(((t1 - target_time) * rt[idx - 1] + (target_time - t0) * rt[idx]) / (t1 - t0))


def flat_forward_rt_array(
    target_times: np.ndarray,
    times: np.ndarray,
    rt: np.ndarray,
) -> np.ndarray:
    """
    Vectorised version of flat_forward_rt.

    Args:
        target_times: Array of time points (in years)
        times: Array of curve times
        rt: Array of integrated rates at each time

    Returns
        Array of integrated rates at target_times
    """
    target_times = np.asarray(target_times, dtype=float)
    n = len(times)
    if n == 0:
        raise CurveError('Empty curve data')
    if n == 1:
        return rt[0] * target_times / times[0]

    idx = np.clip(np.searchsorted(times, target_times), 1, n - 1)
    t0 = times[idx - 1]
    t1 = times[idx]
    res = ((t1 - target_times) * rt[idx - 1] + (target_times - t0) * rt[idx]) / (t1 - t0)
    # Knot hits return the stored value exactly
    hit = np.searchsorted(times, target_times)
    exact = (hit < n) & (times[np.minimum(hit, n - 1)] == target_times)
    res = np.where(exact, rt[np.minimum(hit, n - 1)], res)
    before = target_times <= times[0]
    return np.where(before, rt[0] * target_times / times[0], res)


def truncate_inclusive(
    lower: float,
    upper: float,
    points: np.ndarray,
) -> np.ndarray:
    """
    Restrict a sorted grid to [lower, upper], always including both ends.

    Args:
        lower: Start of the interval
        upper: End of the interval
        points: Sorted array of grid points

    Returns
        Sorted array starting at lower and ending at upper
    """
    inner = points[(points > lower + TIME_TOLERANCE) & (points < upper - TIME_TOLERANCE)]
    return np.concatenate(([lower], inner, [upper]))


def integration_points(start: float, end: float, *curves) -> np.ndarray:
    """
    Build the integration grid for a leg between start and end.

    The grid is the union of the knot times of all curves that fall strictly
    inside (start, end), plus the two end points. Between two consecutive grid
    points both the discount and the hazard forward rates are constant.

    Args:
        start: First point of the grid
        end: Last point of the grid
        *curves: Curves exposing a ``times`` array

    Returns
        Sorted array of integration points
    """
    if end <= start:
        raise CurveError(f'Integration end ({end}) must be after start ({start})')
    knots = np.unique(np.concatenate([np.asarray(c.times, dtype=float) for c in curves]))
    return truncate_inclusive(start, end, knots)
