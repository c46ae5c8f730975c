"""
Numerically stable helpers for exponential integrals.

    epsilon(x)    = (exp(x) - 1) / x
    epsilon_p(x)  = d epsilon / dx
    epsilon_pp(x) = d2 epsilon / dx2

Near zero the closed forms lose all precision, so a Taylor series is used.
"""

import math

import numpy as np

SERIES_THRESHOLD = 1e-3


def epsilon(x: float) -> float:
    """(exp(x) - 1) / x, equal to 1 at x = 0."""
    if abs(x) > SERIES_THRESHOLD:
        return math.expm1(x) / x
    return 1 + x * (1 / 2 + x * (1 / 6 + x * (1 / 24 + x * (1 / 120 + x / 720))))


def epsilon_p(x: float) -> float:
    """First derivative of epsilon, equal to 1/2 at x = 0."""
    if abs(x) > SERIES_THRESHOLD:
        return (x * math.exp(x) - math.expm1(x)) / (x * x)
    return 1 / 2 + x * (1 / 3 + x * (1 / 8 + x * (1 / 30 + x * (1 / 144 + x / 840))))


def epsilon_pp(x: float) -> float:
    """Second derivative of epsilon, equal to 1/3 at x = 0."""
    if abs(x) > SERIES_THRESHOLD:
        ex = math.exp(x)
        return (x * x * ex - 2 * (x * ex - math.expm1(x))) / (x * x * x)
    return 1 / 3 + x * (1 / 4 + x * (1 / 10 + x * (1 / 36 + x * (1 / 168 + x / 960))))


def _series_safe(x: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, dtype=float)
    small = np.abs(x) <= SERIES_THRESHOLD
    return small, np.where(small, 1.0, x)


def epsilon_array(x: np.ndarray) -> np.ndarray:
    """Vectorised epsilon."""
    small, xs = _series_safe(x)
    x = np.asarray(x, dtype=float)
    series = 1 + x * (1 / 2 + x * (1 / 6 + x * (1 / 24 + x * (1 / 120 + x / 720))))
    return np.where(small, series, np.expm1(xs) / xs)


def epsilon_p_array(x: np.ndarray) -> np.ndarray:
    """Vectorised epsilon_p."""
    small, xs = _series_safe(x)
    x = np.asarray(x, dtype=float)
    series = 1 / 2 + x * (1 / 3 + x * (1 / 8 + x * (1 / 30 + x * (1 / 144 + x / 840))))
    return np.where(small, series, (xs * np.exp(xs) - np.expm1(xs)) / (xs * xs))


def epsilon_pp_array(x: np.ndarray) -> np.ndarray:
    """Vectorised epsilon_pp."""
    small, xs = _series_safe(x)
    x = np.asarray(x, dtype=float)
    series = 1 / 3 + x * (1 / 4 + x * (1 / 10 + x * (1 / 36 + x * (1 / 168 + x / 960))))
    ex = np.exp(xs)
    return np.where(small, series, (xs * xs * ex - 2 * (xs * ex - np.expm1(xs))) / (xs * xs * xs))
