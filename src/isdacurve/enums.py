"""
Enumeration types for the ISDA credit curve calibrator.

These enums define the model choices and the standard conventions used
when building calibration instruments.
"""

from enum import Enum, auto


def _normalise(s: str) -> str:
    return s.upper().replace(' ', '').replace('_', '').replace('-', '')


class AccrualOnDefaultFormula(Enum):
    """Formula used for the accrual-on-default part of the premium leg.

    - ORIGINAL_ISDA: as in ISDA model versions 1.8.2 and lower (half-day bug)
    - MARKIT_FIX: the fix proposed by Markit
    - OG_FIX: the mathematically correct formula
    """

    ORIGINAL_ISDA = auto()
    MARKIT_FIX = auto()
    OG_FIX = auto()

    @classmethod
    def from_string(cls, s: str) -> 'AccrualOnDefaultFormula':
        """Parse an accrual-on-default formula from string."""
        mapping = {
            'ORIGINALISDA': cls.ORIGINAL_ISDA,
            'ISDA': cls.ORIGINAL_ISDA,
            'ORIGINAL': cls.ORIGINAL_ISDA,
            'MARKITFIX': cls.MARKIT_FIX,
            'MARKIT': cls.MARKIT_FIX,
            'OGFIX': cls.OG_FIX,
            'OG': cls.OG_FIX,
            'CORRECT': cls.OG_FIX,
        }
        key = _normalise(s)
        if key not in mapping:
            raise ValueError(f'Unknown accrual on default formula: {s}')
        return mapping[key]


class ArbitrageHandling(Enum):
    """What to do when a pillar implies a negative forward hazard rate."""

    IGNORE = auto()            # Accept the solved rate
    ZERO_HAZARD_RATE = auto()  # Floor the forward hazard rate at zero
    FAIL = auto()              # Raise an ArbitrageError

    @classmethod
    def from_string(cls, s: str) -> 'ArbitrageHandling':
        """Parse an arbitrage handling policy from string."""
        mapping = {
            'IGNORE': cls.IGNORE,
            'ZEROHAZARDRATE': cls.ZERO_HAZARD_RATE,
            'ZERO': cls.ZERO_HAZARD_RATE,
            'FAIL': cls.FAIL,
        }
        key = _normalise(s)
        if key not in mapping:
            raise ValueError(f'Unknown arbitrage handling: {s}')
        return mapping[key]


class PriceType(Enum):
    """Clean prices exclude the premium accrued to the step-in date."""

    CLEAN = auto()
    DIRTY = auto()

    @classmethod
    def from_string(cls, s: str) -> 'PriceType':
        """Parse a price type from string."""
        key = _normalise(s)
        if key == 'CLEAN':
            return cls.CLEAN
        if key in {'DIRTY', 'FULL'}:
            return cls.DIRTY
        raise ValueError(f'Unknown price type: {s}')


class ShiftType(Enum):
    """How a spread bump is applied: added, or as a fraction of the spread."""

    ABSOLUTE = auto()
    RELATIVE = auto()

    @classmethod
    def from_string(cls, s: str) -> 'ShiftType':
        """Parse a shift type from string."""
        key = _normalise(s)
        if key in {'ABSOLUTE', 'ABS'}:
            return cls.ABSOLUTE
        if key in {'RELATIVE', 'REL'}:
            return cls.RELATIVE
        raise ValueError(f'Unknown shift type: {s}')

    def apply(self, spread: float, amount: float) -> float:
        """Bumped spread."""
        if self == ShiftType.ABSOLUTE:
            return spread + amount
        return spread * (1 + amount)


class DayCountConvention(Enum):
    """Day count conventions for calculating year fractions."""

    ACT_360 = 2
    ACT_365F = 3
    THIRTY_360 = 0

    @classmethod
    def from_string(cls, s: str) -> 'DayCountConvention':
        """Parse a day count convention from string."""
        mapping = {
            'ACT/360': cls.ACT_360,
            'ACT360': cls.ACT_360,
            'A360': cls.ACT_360,
            'ACT/365F': cls.ACT_365F,
            'ACT/365': cls.ACT_365F,
            'ACT365': cls.ACT_365F,
            'ACT365F': cls.ACT_365F,
            'A365F': cls.ACT_365F,
            '30/360': cls.THIRTY_360,
            '30360': cls.THIRTY_360,
        }
        key = s.upper().replace(' ', '')
        if key not in mapping:
            raise ValueError(f'Unknown day count convention: {s}')
        return mapping[key]


class BadDayConvention(Enum):
    """Business day adjustment conventions."""

    NONE = auto()
    FOLLOWING = auto()
    MODIFIED_FOLLOWING = auto()
    PRECEDING = auto()

    @classmethod
    def from_string(cls, s: str) -> 'BadDayConvention':
        """Parse a bad day convention from string."""
        mapping = {
            'NONE': cls.NONE,
            'N': cls.NONE,
            'FOLLOWING': cls.FOLLOWING,
            'F': cls.FOLLOWING,
            'MODIFIEDFOLLOWING': cls.MODIFIED_FOLLOWING,
            'MODFOLLOWING': cls.MODIFIED_FOLLOWING,
            'MF': cls.MODIFIED_FOLLOWING,
            'PRECEDING': cls.PRECEDING,
            'P': cls.PRECEDING,
        }
        key = _normalise(s)
        if key not in mapping:
            raise ValueError(f'Unknown bad day convention: {s}')
        return mapping[key]


class StubMethod(Enum):
    """Stub period conventions for CDS schedules."""

    FRONT_SHORT = auto()    # Short first period
    FRONT_LONG = auto()     # Long first period
    BACK_SHORT = auto()     # Short last period
    BACK_LONG = auto()      # Long last period

    @classmethod
    def from_string(cls, s: str) -> 'StubMethod':
        """Parse a stub method from string."""
        mapping = {
            'FRONTSHORT': cls.FRONT_SHORT,
            'SHORTFRONT': cls.FRONT_SHORT,
            'SHORTINITIAL': cls.FRONT_SHORT,
            'FRONTLONG': cls.FRONT_LONG,
            'LONGFRONT': cls.FRONT_LONG,
            'LONGINITIAL': cls.FRONT_LONG,
            'BACKSHORT': cls.BACK_SHORT,
            'SHORTBACK': cls.BACK_SHORT,
            'SHORTFINAL': cls.BACK_SHORT,
            'BACKLONG': cls.BACK_LONG,
            'LONGBACK': cls.BACK_LONG,
            'LONGFINAL': cls.BACK_LONG,
        }
        key = _normalise(s)
        if key not in mapping:
            raise ValueError(f'Unknown stub method: {s}')
        return mapping[key]


class PaymentFrequency(Enum):
    """Payment frequency for the CDS premium leg."""

    MONTHLY = 1
    QUARTERLY = 3    # Standard CDS payment frequency
    SEMI_ANNUAL = 6
    ANNUAL = 12

    @property
    def months(self) -> int:
        """Return the number of months between payments."""
        return self.value

    @classmethod
    def from_string(cls, s: str) -> 'PaymentFrequency':
        """Parse payment frequency from string."""
        mapping = {
            'Q': cls.QUARTERLY,
            'QUARTERLY': cls.QUARTERLY,
            '3M': cls.QUARTERLY,
            'S': cls.SEMI_ANNUAL,
            'SEMIANNUAL': cls.SEMI_ANNUAL,
            '6M': cls.SEMI_ANNUAL,
            'A': cls.ANNUAL,
            'ANNUAL': cls.ANNUAL,
            '1Y': cls.ANNUAL,
            '12M': cls.ANNUAL,
            'M': cls.MONTHLY,
            'MONTHLY': cls.MONTHLY,
            '1M': cls.MONTHLY,
        }
        key = _normalise(s)
        if key not in mapping:
            raise ValueError(f'Unknown payment frequency: {s}')
        return mapping[key]
