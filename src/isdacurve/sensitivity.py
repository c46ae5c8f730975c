"""
Spread sensitivities (CS01) by bump and recalibrate.

The credit curve is bootstrapped from the market quotes, the trade is
priced, then the quotes are bumped, the curve rebuilt and the trade
repriced. The CS01 is the change in PV divided by the bump, so for bumps of
1e-4 it is the PV change for a one basis point move per unit bump, and for
small bumps it approximates dPV/dS.

Parallel CS01 bumps every quote together; bucketed CS01 bumps one quote at a
time and returns one value per pillar.

Quotes of different kinds are bumped on their spread:

- ParSpread and QuotedSpread: the spread is bumped
- PointsUpFront: converted to a quoted spread, bumped, and converted back
"""

import logging
from collections.abc import Sequence

import numpy as np

from .calibrator import CreditCurveCalibrator, FastCreditCurveBuilder
from .curves import HazardRateCurve, ZeroCurve
from .enums import AccrualOnDefaultFormula, ArbitrageHandling, PriceType, ShiftType
from .exceptions import ValidationError
from .instrument import CdsCalibrationInstrument
from .quotes import CdsQuote, ParSpread, PointsUpFront, QuotedSpread

logger = logging.getLogger(__name__)

# Bumps smaller than this are lost in the calibration tolerance
MIN_BUMP = 1e-10


def _check_bump(bump: float) -> None:
    if not abs(bump) > MIN_BUMP:
        raise ValidationError(f'Bump amount too small: {bump}')


def _check_lengths(instruments: Sequence, quotes: Sequence) -> None:
    if len(instruments) == 0:
        raise ValidationError('At least one market instrument is needed')
    if len(instruments) != len(quotes):
        raise ValidationError(f'Got {len(instruments)} market instruments but {len(quotes)} quotes')


class SpreadSensitivityCalculator:
    """
    Finite difference CS01 of a CDS to the market quotes of a credit curve.

    Every CS01 rebuilds the credit curve through a CreditCurveCalibrator, so
    bumps of any size are handled exactly rather than to first order.
    """

    def __init__(
        self,
        formula: AccrualOnDefaultFormula | str = AccrualOnDefaultFormula.ORIGINAL_ISDA,
        arbitrage_handling: ArbitrageHandling | str = ArbitrageHandling.IGNORE,
        calibrator: CreditCurveCalibrator | None = None,
    ):
        """
        Initialize the calculator.

        Args:
            formula: Accrual-on-default formula (ignored if calibrator is given)
            arbitrage_handling: Arbitrage policy (ignored if calibrator is given)
            calibrator: Calibrator used to build base and bumped curves;
                a FastCreditCurveBuilder by default
        """
        if calibrator is None:
            calibrator = FastCreditCurveBuilder(formula, arbitrage_handling)
        self.calibrator = calibrator
        self.pricer = calibrator.pricer

    def _pv(self, cds, yield_curve, credit_curve, coupon, price_type=PriceType.CLEAN):
        return self.pricer.present_value(cds, yield_curve, credit_curve, coupon, price_type)

    # Quote bumping

    def bump_quote(
        self,
        cds: CdsCalibrationInstrument,
        quote: CdsQuote,
        yield_curve: ZeroCurve,
        bump: float,
    ) -> CdsQuote:
        """
        Bump a market quote on its spread.

        Args:
            cds: Instrument the quote is for
            quote: ParSpread, QuotedSpread or PointsUpFront
            yield_curve: Yield curve
            bump: Spread bump as a fraction (1e-4 for one basis point)

        Returns
            Quote of the same kind
        """
        if isinstance(quote, ParSpread):
            return ParSpread(quote.spread + bump)
        if isinstance(quote, QuotedSpread):
            return QuotedSpread(quote.coupon, quote.quoted_spread + bump)
        if isinstance(quote, PointsUpFront):
            spread = self.calibrator.puf_to_quoted_spread(cds, quote.coupon, quote.puf, yield_curve)
            puf = self.calibrator.quoted_spread_to_puf(cds, quote.coupon, spread + bump, yield_curve)
            return PointsUpFront(quote.coupon, puf)
        raise ValidationError(f'Unsupported quote type: {type(quote).__name__}')

    def bump_quotes(
        self,
        instruments: Sequence[CdsCalibrationInstrument],
        quotes: Sequence[CdsQuote],
        yield_curve: ZeroCurve,
        bump: float,
    ) -> list[CdsQuote]:
        """Bump every quote by the same amount."""
        _check_lengths(instruments, quotes)
        return [self.bump_quote(c, q, yield_curve, bump) for c, q in zip(instruments, quotes)]

    # Parallel CS01

    def parallel_cs01(
        self,
        cds: CdsCalibrationInstrument,
        quote: CdsQuote,
        yield_curve: ZeroCurve,
        bump: float,
    ) -> float:
        """
        CS01 of a CDS from its own market quote.

        A points upfront quote is first turned into a quoted spread, and
        that spread is bumped.
        """
        if isinstance(quote, QuotedSpread):
            return self.parallel_cs01_from_par_spreads(
                cds, quote.coupon, yield_curve, [cds], [quote.quoted_spread], bump,
            )
        if isinstance(quote, PointsUpFront):
            return self.parallel_cs01_from_puf(cds, quote.coupon, yield_curve, quote.puf, bump)
        if isinstance(quote, ParSpread):
            return self.parallel_cs01_from_par_spreads(
                cds, quote.spread, yield_curve, [cds], [quote.spread], bump,
            )
        raise ValidationError(f'Unsupported quote type: {type(quote).__name__}')

    def parallel_cs01_from_puf(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        yield_curve: ZeroCurve,
        points_upfront: float,
        bump: float,
    ) -> float:
        """
        CS01 of a CDS quoted as points upfront.

        The upfront amount is converted to a quoted spread, the spread is
        bumped, and the CDS is priced off the flat curve at the bumped spread.
        """
        _check_bump(bump)
        spread = self.calibrator.puf_to_quoted_spread(cds, coupon, points_upfront, yield_curve)
        bumped = self.calibrator.calibrate_credit_curve(cds, spread + bump, yield_curve)
        return (self._pv(cds, yield_curve, bumped, coupon) - points_upfront) / bump

    def parallel_cs01_from_spread(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        yield_curve: ZeroCurve,
        market_spread: float,
        bump: float,
        shift_type: ShiftType | str = ShiftType.ABSOLUTE,
    ) -> float:
        """CS01 of a CDS whose flat curve comes from its own spread."""
        return self.parallel_cs01_from_par_spreads(
            cds, coupon, yield_curve, [cds], [market_spread], bump, shift_type,
        )

    def parallel_cs01_from_par_spreads(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        yield_curve: ZeroCurve,
        market_instruments: Sequence[CdsCalibrationInstrument],
        par_spreads: Sequence[float],
        bump: float,
        shift_type: ShiftType | str = ShiftType.ABSOLUTE,
    ) -> float:
        """
        CS01 to a parallel shift of the par spread curve.

        Args:
            cds: Trade to compute the CS01 of
            coupon: Trade coupon as a fraction
            yield_curve: Yield curve
            market_instruments: Pillars of the credit curve
            par_spreads: Par spreads of the pillars
            bump: Shift amount (1e-4 for one basis point when ABSOLUTE)
            shift_type: ABSOLUTE adds the bump, RELATIVE scales by 1 + bump

        Returns
            (dirty PV with bumped spreads - dirty PV) / bump
        """
        if isinstance(shift_type, str):
            shift_type = ShiftType.from_string(shift_type)
        _check_bump(bump)
        _check_lengths(market_instruments, par_spreads)
        bumped_spreads = [shift_type.apply(s, bump) for s in par_spreads]
        base = self.calibrator.calibrate_credit_curve(market_instruments, list(par_spreads), yield_curve)
        bumped = self.calibrator.calibrate_credit_curve(market_instruments, bumped_spreads, yield_curve)
        up = self._pv(cds, yield_curve, bumped, coupon, PriceType.DIRTY)
        down = self._pv(cds, yield_curve, base, coupon, PriceType.DIRTY)
        return (up - down) / bump

    def parallel_cs01_from_pillar_quotes(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        yield_curve: ZeroCurve,
        market_instruments: Sequence[CdsCalibrationInstrument],
        quotes: Sequence[CdsQuote],
        bump: float,
    ) -> float:
        """CS01 to a parallel bump of pillar quotes of any (mixed) kind."""
        _check_bump(bump)
        _check_lengths(market_instruments, quotes)
        base = self.calibrator.calibrate_credit_curve(market_instruments, list(quotes), yield_curve)
        bumped_quotes = self.bump_quotes(market_instruments, quotes, yield_curve, bump)
        bumped = self.calibrator.calibrate_credit_curve(market_instruments, bumped_quotes, yield_curve)
        return (self._pv(cds, yield_curve, bumped, coupon) - self._pv(cds, yield_curve, base, coupon)) / bump

    def parallel_cs01_from_credit_curve(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        pillar_instruments: Sequence[CdsCalibrationInstrument],
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        bump: float,
    ) -> float:
        """
        CS01 to a parallel bump of the par spreads a credit curve implies.

        Par spreads of the pillar instruments are read off the credit curve
        and used as market spreads.
        """
        _check_bump(bump)
        spreads = self._implied_spreads(pillar_instruments, yield_curve, credit_curve)
        base = self.calibrator.calibrate_credit_curve(pillar_instruments, spreads, yield_curve)
        bumped = self.calibrator.calibrate_credit_curve(
            pillar_instruments, [s + bump for s in spreads], yield_curve,
        )
        return (self._pv(cds, yield_curve, bumped, coupon) - self._pv(cds, yield_curve, base, coupon)) / bump

    # Bucketed CS01

    def bucketed_cs01_from_pillar_quotes(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        yield_curve: ZeroCurve,
        market_instruments: Sequence[CdsCalibrationInstrument],
        quotes: Sequence[CdsQuote],
        bump: float,
    ) -> np.ndarray:
        """CS01 to each pillar quote bumped in turn."""
        _check_bump(bump)
        _check_lengths(market_instruments, quotes)
        quotes = list(quotes)
        base = self.calibrator.calibrate_credit_curve(market_instruments, quotes, yield_curve)
        base_pv = self._pv(cds, yield_curve, base, coupon)

        res = np.zeros(len(quotes))
        for i, (instrument, quote) in enumerate(zip(market_instruments, quotes)):
            bumped_quotes = list(quotes)
            bumped_quotes[i] = self.bump_quote(instrument, quote, yield_curve, bump)
            bumped = self.calibrator.calibrate_credit_curve(market_instruments, bumped_quotes, yield_curve)
            res[i] = (self._pv(cds, yield_curve, bumped, coupon) - base_pv) / bump
        return res

    def bucketed_cs01_from_par_spreads(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        yield_curve: ZeroCurve,
        market_instruments: Sequence[CdsCalibrationInstrument],
        par_spreads: Sequence[float],
        bump: float,
        shift_type: ShiftType | str = ShiftType.ABSOLUTE,
    ) -> np.ndarray:
        """
        CS01 to each pillar par spread bumped in turn.

        Returns
            Array of (dirty PV with spread i bumped - dirty PV) / bump
        """
        if isinstance(shift_type, str):
            shift_type = ShiftType.from_string(shift_type)
        _check_bump(bump)
        _check_lengths(market_instruments, par_spreads)
        spreads = list(par_spreads)
        base = self.calibrator.calibrate_credit_curve(market_instruments, spreads, yield_curve)
        base_pv = self._pv(cds, yield_curve, base, coupon, PriceType.DIRTY)

        res = np.zeros(len(spreads))
        for i in range(len(spreads)):
            bumped_spreads = list(spreads)
            bumped_spreads[i] = shift_type.apply(spreads[i], bump)
            bumped = self.calibrator.calibrate_credit_curve(market_instruments, bumped_spreads, yield_curve)
            res[i] = (self._pv(cds, yield_curve, bumped, coupon, PriceType.DIRTY) - base_pv) / bump
        return res

    def bucketed_cs01_from_quoted_spreads(
        self,
        cds: CdsCalibrationInstrument | Sequence[CdsCalibrationInstrument],
        deal_spread: float,
        yield_curve: ZeroCurve,
        market_instruments: Sequence[CdsCalibrationInstrument],
        quoted_spreads: Sequence[float],
        bump: float,
        shift_type: ShiftType | str = ShiftType.ABSOLUTE,
    ) -> np.ndarray:
        """
        CS01 to each pillar quoted spread bumped in turn.

        All pillars are assumed to trade at the deal spread as their standard
        coupon. Each quoted spread is converted to an upfront amount; only the
        bumped pillar's upfront amount changes between recalibrations.

        Args:
            cds: Trade, or several trades
            deal_spread: Coupon of the trade(s) and of the pillars
            yield_curve: Yield curve
            market_instruments: Pillars of the credit curve
            quoted_spreads: Quoted spreads of the pillars
            bump: Shift amount
            shift_type: ABSOLUTE or RELATIVE

        Returns
            One value per pillar for a single trade, or an array of shape
            (trades, pillars) for several
        """
        if isinstance(shift_type, str):
            shift_type = ShiftType.from_string(shift_type)
        _check_bump(bump)
        _check_lengths(market_instruments, quoted_spreads)
        single = isinstance(cds, CdsCalibrationInstrument)
        trades = [cds] if single else list(cds)
        n = len(quoted_spreads)
        coupons = [deal_spread] * n

        pufs = [
            self.calibrator.quoted_spread_to_puf(m, deal_spread, s, yield_curve)
            for m, s in zip(market_instruments, quoted_spreads)
        ]
        base = self.calibrator.calibrate_credit_curve(
            market_instruments, coupons, yield_curve, points_upfront=pufs,
        )
        base_pvs = [self._pv(t, yield_curve, base, deal_spread, PriceType.DIRTY) for t in trades]

        res = np.zeros((len(trades), n))
        for i in range(n):
            bumped_pufs = list(pufs)
            bumped_pufs[i] = self.calibrator.quoted_spread_to_puf(
                market_instruments[i], deal_spread, shift_type.apply(quoted_spreads[i], bump), yield_curve,
            )
            bumped = self.calibrator.calibrate_credit_curve(
                market_instruments, coupons, yield_curve, points_upfront=bumped_pufs,
            )
            for j, trade in enumerate(trades):
                pv = self._pv(trade, yield_curve, bumped, deal_spread, PriceType.DIRTY)
                res[j, i] = (pv - base_pvs[j]) / bump
        return res[0] if single else res

    def bucketed_cs01_from_credit_curve(
        self,
        cds: CdsCalibrationInstrument,
        coupon: float,
        bucket_instruments: Sequence[CdsCalibrationInstrument],
        yield_curve: ZeroCurve,
        credit_curve: HazardRateCurve,
        bump: float,
    ) -> np.ndarray:
        """
        CS01 to the par spreads a credit curve implies at bucket maturities.

        Par spreads of the bucket instruments are read off the credit curve,
        a curve is bootstrapped from them, and each is bumped in turn.
        Buckets after the first one maturing on or after the trade have no
        effect on it and are left at zero.
        """
        _check_bump(bump)
        spreads = self._implied_spreads(bucket_instruments, yield_curve, credit_curve)
        ends = np.array([b.protection_end for b in bucket_instruments])
        last = min(int(np.searchsorted(ends, cds.protection_end)), len(ends) - 1)

        base = self.calibrator.calibrate_credit_curve(bucket_instruments, spreads, yield_curve)
        base_pv = self._pv(cds, yield_curve, base, coupon)
        res = np.zeros(len(spreads))
        for i in range(last + 1):
            bumped_spreads = list(spreads)
            bumped_spreads[i] += bump
            bumped = self.calibrator.calibrate_credit_curve(bucket_instruments, bumped_spreads, yield_curve)
            res[i] = (self._pv(cds, yield_curve, bumped, coupon) - base_pv) / bump
        logger.debug('Bucketed CS01 over %d of %d buckets', last + 1, len(spreads))
        return res

    def bucketed_cs01_from_puf(
        self,
        cds: CdsCalibrationInstrument,
        quote: PointsUpFront,
        yield_curve: ZeroCurve,
        bucket_instruments: Sequence[CdsCalibrationInstrument],
        bump: float,
    ) -> np.ndarray:
        """Bucketed CS01 of a CDS off the flat curve implied by its upfront quote."""
        flat = self.calibrator.calibrate_credit_curve(cds, quote, yield_curve)
        return self.bucketed_cs01_from_credit_curve(
            cds, quote.coupon, bucket_instruments, yield_curve, flat, bump,
        )

    def _implied_spreads(self, instruments, yield_curve, credit_curve) -> list[float]:
        if len(instruments) == 0:
            raise ValidationError('At least one pillar instrument is needed')
        for i in range(1, len(instruments)):
            if instruments[i].protection_end <= instruments[i - 1].protection_end:
                raise ValidationError('Pillar maturities must be strictly increasing')
        return [self.pricer.par_spread(c, yield_curve, credit_curve) for c in instruments]

    def __repr__(self) -> str:
        return f'SpreadSensitivityCalculator(calibrator={self.calibrator!r})'
