#!/usr/bin/env python3
"""
Quote Types and Sensitivities
=============================

This example demonstrates:
1. Calibrating to quoted spreads and points upfront
2. Converting a quoted spread to points upfront
3. Arbitrage handling for inverted spread curves
4. Analytic PV sensitivity to each credit curve knot
5. Parallel and bucketed CS01 by bump and recalibrate
"""


from isdacurve import ArbitrageError, CdsInstrumentFactory, CdsPricer, FastCreditCurveBuilder
from isdacurve import PointsUpFront, QuotedSpread, SpreadSensitivityCalculator, ZeroCurve

print('=' * 70)
print('ISDA Credit Curve - Quotes and Sensitivities')
print('=' * 70)
print()

yield_curve = ZeroCurve([0.5, 1, 2, 5, 10], [0.01, 0.012, 0.015, 0.02, 0.025])
factory = CdsInstrumentFactory()
tenors = ['1Y', '3Y', '5Y', '7Y', '10Y']
pillars = factory.make_cds_from_tenors('2014-06-13', '2014-03-20', '2014-06-20', tenors)

coupon = 0.01
quoted_spreads = [0.006, 0.009, 0.012, 0.014, 0.015]

# =============================================================================
# Quoted Spread to Points Upfront
# =============================================================================

print('-' * 70)
print('Quoted Spread to Points Upfront (100bp coupon)')
print('-' * 70)
print()

builder = FastCreditCurveBuilder('ISDA')
pufs = [
    builder.quoted_spread_to_puf(cds, coupon, qs, yield_curve)
    for cds, qs in zip(pillars, quoted_spreads)
]
print(f"{'Tenor':<6} {'Quoted':>10} {'Upfront':>12}")
print('-' * 30)
for tenor, qs, puf in zip(tenors, quoted_spreads, pufs):
    print(f'{tenor:<6} {qs*1e4:>8.1f}bp {puf*100:>11.4f}%')
print()

from_quoted = builder.calibrate(pillars, [QuotedSpread(coupon, qs) for qs in quoted_spreads], yield_curve)
from_pufs = builder.calibrate(pillars, [PointsUpFront(coupon, p) for p in pufs], yield_curve)
diff = max(abs(a - b) for a, b in zip(from_quoted.hazard_rates, from_pufs.hazard_rates))
print(f'Largest hazard rate difference between quote types: {diff:.2e}')
print()

# =============================================================================
# Arbitrage Handling
# =============================================================================

print('-' * 70)
print('Inverted Spreads')
print('-' * 70)
print()

inverted = [0.05, 0.01]
short = factory.make_cds_from_tenors('2014-06-13', '2014-03-20', '2014-06-20', ['1Y', '2Y'])
for handling in ['IGNORE', 'ZERO_HAZARD_RATE', 'FAIL']:
    try:
        curve = FastCreditCurveBuilder(arbitrage_handling=handling).calibrate(short, inverted, yield_curve)
        print(f'{handling:<18} forward hazards {curve.hazard_rates}')
    except ArbitrageError as e:
        print(f'{handling:<18} failed at pillar {e.pillar}: {e}')
print()

# =============================================================================
# Sensitivities
# =============================================================================

print('-' * 70)
print('5Y PV Sensitivity to Each Knot')
print('-' * 70)
print()

pricer = CdsPricer('ISDA')
five_year = pillars[2]
for node in range(from_pufs.number_of_knots):
    sense = pricer.present_value_credit_sensitivity(five_year, yield_curve, from_pufs, coupon, node)
    print(f'{tenors[node]:<6} {sense:>14.8f}')
print()

# =============================================================================
# CS01
# =============================================================================

print('-' * 70)
print('5Y CS01 to Quoted Spreads (1bp bump)')
print('-' * 70)
print()

cs01 = SpreadSensitivityCalculator('ISDA')
quotes = [QuotedSpread(coupon, qs) for qs in quoted_spreads]
parallel = cs01.parallel_cs01_from_pillar_quotes(five_year, coupon, yield_curve, pillars, quotes, 1e-4)
bucketed = cs01.bucketed_cs01_from_pillar_quotes(five_year, coupon, yield_curve, pillars, quotes, 1e-4)
for tenor, value in zip(tenors, bucketed):
    print(f'{tenor:<6} {value:>14.8f}')
print(f'{"Sum":<6} {bucketed.sum():>14.8f}')
print(f'{"Par":<6} {parallel:>14.8f}')
print()

print('=' * 70)
print('Done!')
print('=' * 70)
