#!/usr/bin/env python3
"""
Credit Curve Calibration
========================

This example demonstrates:
1. Building standard CDS pillars from dates and tenors
2. Bootstrapping a hazard rate curve from par spreads
3. Comparing the fast and simple calibrators
4. Comparing the three accrual-on-default formulae

The yield curve is given as zero rates; building it is out of scope.
"""


from isdacurve import AccrualOnDefaultFormula, CdsInstrumentFactory, CdsPricer
from isdacurve import FastCreditCurveBuilder, SimpleCreditCurveBuilder, ZeroCurve

print('=' * 70)
print('ISDA Credit Curve - Calibration')
print('=' * 70)
print()

# =============================================================================
# Market Data
# =============================================================================

yield_curve = ZeroCurve(
    [1 / 12, 0.25, 0.5, 1, 2, 3, 5, 7, 10, 15, 20, 30],
    [0.00155, 0.00234, 0.00329, 0.00545, 0.00790, 0.01120,
     0.01650, 0.02010, 0.02380, 0.02650, 0.02790, 0.02870],
)

tenors = ['6M', '1Y', '3Y', '5Y', '7Y', '10Y']
spreads = [0.027, 0.017, 0.012, 0.009, 0.008, 0.005]

factory = CdsInstrumentFactory().with_recovery_rate(0.4)
pillars = factory.make_cds_from_tenors(
    trade_date='2014-06-13',
    accrual_start='2014-03-20',
    maturity_reference='2014-06-20',
    tenors=tenors,
)

# =============================================================================
# Calibration
# =============================================================================

print('-' * 70)
print('Bootstrapped Hazard Rates (MARKIT_FIX)')
print('-' * 70)
print()

formula = AccrualOnDefaultFormula.MARKIT_FIX
fast = FastCreditCurveBuilder(formula).calibrate(pillars, spreads, yield_curve)
simple = SimpleCreditCurveBuilder(formula).calibrate(pillars, spreads, yield_curve)

print(f"{'Tenor':<6} {'Maturity':>10} {'Spread':>10} {'Fwd Hazard':>12} {'Difference':>12}")
print('-' * 54)
for i, (tenor, cds) in enumerate(zip(tenors, pillars)):
    diff = fast.knot_hazard_rate(i) - simple.knot_hazard_rate(i)
    print(
        f'{tenor:<6} {cds.protection_end:>10.4f} {spreads[i]*1e4:>8.1f}bp '
        f'{fast.knot_hazard_rate(i):>12.8f} {diff:>12.2e}'
    )
print()

# Repricing check
pricer = CdsPricer(formula)
worst = max(
    abs(pricer.present_value(cds, yield_curve, fast, s)) for cds, s in zip(pillars, spreads)
)
print(f'Largest pillar PV after calibration: {worst:.2e}')
print()

# =============================================================================
# Accrual-on-Default Formulae
# =============================================================================

print('-' * 70)
print('Forward Hazard Rates by Formula')
print('-' * 70)
print()

curves = {
    f.name: FastCreditCurveBuilder(f).calibrate(pillars, spreads, yield_curve)
    for f in AccrualOnDefaultFormula
}
print(f"{'Time':<8}" + ''.join(f'{name:>16}' for name in curves))
print('-' * (8 + 16 * len(curves)))
for t in [30 / 365, 90 / 365, 0.5] + list(range(1, 13)):
    print(f'{t:<8.4f}' + ''.join(f'{c.forward_rate(t):>16.10f}' for c in curves.values()))
print()

print('=' * 70)
print('Calibration complete!')
print('=' * 70)
