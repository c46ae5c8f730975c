"""
Market quote types for CDS calibration pillars.

A quote fixes the running coupon and the upfront amount a pillar must
reprice to:

- ParSpread: coupon equal to the spread, no upfront
- PointsUpFront: standard coupon plus an upfront amount
- QuotedSpread: standard coupon, with the upfront implied from a flat
  curve calibrated to the quoted spread
"""

import math
from dataclasses import dataclass

from .exceptions import ValidationError


def _check_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ValidationError(f'{name} must be finite, got {value}')


@dataclass(frozen=True)
class ParSpread:
    """Par spread quote, as a fraction (0.01 for 100bps)."""

    spread: float

    def __post_init__(self):
        _check_finite('spread', self.spread)

    @property
    def coupon(self) -> float:
        return self.spread


@dataclass(frozen=True)
class QuotedSpread:
    """Quoted (conventional) spread traded with a standard coupon."""

    coupon: float
    quoted_spread: float

    def __post_init__(self):
        _check_finite('coupon', self.coupon)
        _check_finite('quoted_spread', self.quoted_spread)


@dataclass(frozen=True)
class PointsUpFront:
    """Points upfront (fraction of notional) traded with a standard coupon."""

    coupon: float
    puf: float

    def __post_init__(self):
        _check_finite('coupon', self.coupon)
        _check_finite('puf', self.puf)


CdsQuote = ParSpread | QuotedSpread | PointsUpFront
