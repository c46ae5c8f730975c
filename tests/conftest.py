"""
Shared test fixtures for credit curve calibration tests.
"""

import os
import pathlib
import sys

import pytest
from opendate import Date

# Add src to path for imports
sys.path.insert(0, os.path.join(pathlib.Path(__file__).parent, '..', 'src'))

from isdacurve.curves import HazardRateCurve, ZeroCurve  # noqa: E402
from isdacurve.factory import CdsInstrumentFactory  # noqa: E402
from isdacurve.instrument import CdsCalibrationInstrument  # noqa: E402

SCENARIO_SPREADS = [0.027, 0.017, 0.012, 0.009, 0.008, 0.005]
SCENARIO_TENORS = ['6M', '1Y', '3Y', '5Y', '7Y', '10Y']
SAMPLE_TIMES = [30 / 365, 90 / 365, 0.5] + list(range(1, 13))


@pytest.fixture
def yield_curve():
    """USD-like yield curve with knots from one month to thirty years."""
    times = [1 / 12, 0.25, 0.5, 1, 2, 3, 5, 7, 10, 15, 20, 30]
    rates = [
        0.00155, 0.00234, 0.00329, 0.00545, 0.00790, 0.01120,
        0.01650, 0.02010, 0.02380, 0.02650, 0.02790, 0.02870,
    ]
    return ZeroCurve(times, rates)


@pytest.fixture
def flat_yield_curve():
    """Flat 2% yield curve."""
    return ZeroCurve.flat(0.02)


@pytest.fixture
def trade_date():
    """Sample trade date (a Friday)."""
    return Date(2014, 6, 13)


@pytest.fixture
def accrual_start():
    """Previous IMM date before the trade date."""
    return Date(2014, 3, 20)


@pytest.fixture
def next_imm():
    """Next IMM date after the trade date."""
    return Date(2014, 6, 20)


@pytest.fixture
def factory():
    """Factory with the ISDA standard conventions."""
    return CdsInstrumentFactory()


@pytest.fixture
def pillars(factory, trade_date, accrual_start, next_imm):
    """Standard CDS at 6M, 1Y, 3Y, 5Y, 7Y and 10Y."""
    return factory.make_cds_from_tenors(trade_date, accrual_start, next_imm, SCENARIO_TENORS)


@pytest.fixture
def scenario_spreads():
    """Par spreads for the standard pillars."""
    return list(SCENARIO_SPREADS)


@pytest.fixture
def sample_times():
    """Times at which calibrated curves are compared."""
    return list(SAMPLE_TIMES)


@pytest.fixture
def simple_cds():
    """Five year quarterly CDS built directly from times, no dates."""
    return CdsCalibrationInstrument.from_schedule(
        [0.25 * k for k in range(21)],
        cash_settle_time=3 / 365,
    )


@pytest.fixture
def credit_curve():
    """Three knot hazard rate curve."""
    return HazardRateCurve([1.0, 3.0, 5.0], [0.01, 0.02, 0.015])
