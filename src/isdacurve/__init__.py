"""
ISDA Credit Curve - Pure Python Implementation

Bootstraps ISDA-compliant hazard rate curves from CDS quotes given as par
spreads, quoted spreads or points upfront.

Basic Usage:
    >>> from isdacurve import CdsInstrumentFactory, FastCreditCurveBuilder
    >>> from isdacurve import ZeroCurve
    >>>
    >>> factory = CdsInstrumentFactory()
    >>> pillars = factory.make_cds_from_tenors(
    ...     trade_date='2014-06-13',
    ...     accrual_start='2014-03-20',
    ...     maturity_reference='2014-06-20',
    ...     tenors=['6M', '1Y', '3Y', '5Y', '7Y'],
    ... )
    >>> yield_curve = ZeroCurve([0.5, 1, 2, 5, 10], [0.01, 0.012, 0.015, 0.02, 0.025])
    >>>
    >>> builder = FastCreditCurveBuilder(formula='MARKIT_FIX', arbitrage_handling='FAIL')
    >>> curve = builder.calibrate_credit_curve(
    ...     pillars, [0.027, 0.017, 0.012, 0.009, 0.008], yield_curve
    ... )
    >>> print(curve.survival_probability(5.0))
"""

__version__ = '1.0.0'

# Accrual on default
from .accrual_on_default import AccrualOnDefaultCalculator, MarkitFixFormula
from .accrual_on_default import OgFixFormula, OriginalIsdaFormula, accrual_formula
# Calibration
from .calibrator import Accept, Clamp, CreditCurveCalibrator
from .calibrator import FastCreditCurveBuilder, Reject, SimpleCreditCurveBuilder
from .calibrator import check_arbitrage, validate_pillars
# Curve classes
from .curves import Curve, HazardRateCurve, ZeroCurve
# Date utilities
from .dates import add_business_days, add_days, add_months, add_tenor
from .dates import adjust_date, parse_date, year_fraction
# Enumerations
from .enums import AccrualOnDefaultFormula, ArbitrageHandling, BadDayConvention
from .enums import DayCountConvention, PaymentFrequency, PriceType, ShiftType, StubMethod
# Exceptions
from .exceptions import ArbitrageError, BootstrapError, CDSError, ConvergenceError
from .exceptions import CurveError, ValidationError
# Instruments
from .factory import CdsInstrumentFactory, CouponPeriod, generate_schedule
from .instrument import CdsCalibrationInstrument, CdsCoupon
# Pricer
from .pricer import CdsPricer
# Quotes
from .quotes import ParSpread, PointsUpFront, QuotedSpread
# Spread sensitivities
from .sensitivity import SpreadSensitivityCalculator

__all__ = [
    # Version
    '__version__',
    # Calibration
    'CreditCurveCalibrator',
    'FastCreditCurveBuilder',
    'SimpleCreditCurveBuilder',
    'check_arbitrage',
    'validate_pillars',
    'Accept',
    'Clamp',
    'Reject',
    # Pricer
    'CdsPricer',
    'AccrualOnDefaultCalculator',
    'OriginalIsdaFormula',
    'MarkitFixFormula',
    'OgFixFormula',
    'accrual_formula',
    # Spread sensitivities
    'SpreadSensitivityCalculator',
    # Curves
    'Curve',
    'ZeroCurve',
    'HazardRateCurve',
    # Instruments
    'CdsCoupon',
    'CdsCalibrationInstrument',
    'CdsInstrumentFactory',
    'CouponPeriod',
    'generate_schedule',
    # Quotes
    'ParSpread',
    'QuotedSpread',
    'PointsUpFront',
    # Enums
    'AccrualOnDefaultFormula',
    'ArbitrageHandling',
    'PriceType',
    'ShiftType',
    'DayCountConvention',
    'BadDayConvention',
    'StubMethod',
    'PaymentFrequency',
    # Exceptions
    'CDSError',
    'ValidationError',
    'CurveError',
    'ConvergenceError',
    'BootstrapError',
    'ArbitrageError',
    # Dates
    'parse_date',
    'year_fraction',
    'add_days',
    'add_months',
    'add_tenor',
    'add_business_days',
    'adjust_date',
]
