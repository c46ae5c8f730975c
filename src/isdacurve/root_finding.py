"""
Root finding algorithms for curve bootstrapping.

Brent's method needs a bracket; bracket_root finds one by
geometric expansion. newton_with_bracket takes Newton steps but falls back
to bisection whenever a step would leave the bracket or converge too slowly,
so it keeps the robustness of bisection with the speed of Newton.
"""

from collections.abc import Callable

from .exceptions import ConvergenceError

# Derivatives smaller than this are treated as zero
TINY_DERIVATIVE = 1e-14


def bracket_root(
    f: Callable[[float], float],
    x1: float,
    x2: float,
    factor: float = 1.6,
    max_iter: int = 50,
) -> tuple[float, float]:
    """
    Expand [x1, x2] geometrically until f changes sign over it.

    Args:
        f: Function to bracket a root of
        x1: First end of the initial interval
        x2: Second end of the initial interval
        factor: Expansion factor
        max_iter: Maximum number of expansions

    Returns
        (a, b) with f(a) and f(b) of opposite sign (or one of them zero)

    Raises
        ConvergenceError: If no bracket was found
    """
    if x1 == x2:
        raise ConvergenceError('Initial bracket has zero width')
    f1 = f(x1)
    f2 = f(x2)
    for _ in range(max_iter):
        if f1 * f2 <= 0:
            return (x1, x2) if x1 < x2 else (x2, x1)
        # Move the end with the smaller function value
        if abs(f1) < abs(f2):
            x1 += factor * (x1 - x2)
            f1 = f(x1)
        else:
            x2 += factor * (x2 - x1)
            f2 = f(x2)
    raise ConvergenceError(f'Could not bracket a root in {max_iter} expansions')


def brent(
    f: Callable[[float], float],
    a: float,
    b: float,
    tol: float = 1e-12,
    max_iter: int = 100,
) -> float:
    """
    Find a root of f using Brent's method.

    Brent's method combines bisection, secant method, and inverse quadratic
    interpolation for guaranteed convergence with superlinear speed.

    Args:
        f: Function to find root of
        a: Lower bound of search interval (f(a) and f(b) must have opposite signs)
        b: Upper bound of search interval
        tol: Tolerance for convergence
        max_iter: Maximum number of iterations

    Returns
        x such that f(x) ≈ 0

    Raises
        ConvergenceError: If f(a) and f(b) have the same sign, or max_iter exceeded
    """
    fa = f(a)
    fb = f(b)

    if fa * fb > 0:
        raise ConvergenceError(
            f'Function values at bounds must have opposite signs: '
            f'f({a})={fa}, f({b})={fb}'
        )

    if abs(fa) < abs(fb):
        a, b = b, a
        fa, fb = fb, fa

    c = a
    fc = fa
    mflag = True
    d = 0.0

    for _ in range(max_iter):
        if fb == 0 or abs(fb) < tol:
            return b

        if abs(b - a) < tol:
            return b

        # Inverse quadratic interpolation
        if fc not in {fa, fb}:
            s = (
                a * fb * fc / ((fa - fb) * (fa - fc))
                + b * fa * fc / ((fb - fa) * (fb - fc))
                + c * fa * fb / ((fc - fa) * (fc - fb))
            )
        else:
            # Secant method
            s = b - fb * (b - a) / (fb - fa)

        # Conditions for accepting s
        cond1 = not ((3 * a + b) / 4 < s < b or b < s < (3 * a + b) / 4)
        cond2 = mflag and abs(s - b) >= abs(b - c) / 2
        cond3 = not mflag and abs(s - b) >= abs(c - d) / 2
        cond4 = mflag and abs(b - c) < tol
        cond5 = not mflag and abs(c - d) < tol

        if cond1 or cond2 or cond3 or cond4 or cond5:
            # Bisection
            s = (a + b) / 2
            mflag = True
        else:
            mflag = False

        fs = f(s)
        d = c
        c = b
        fc = fb

        if fa * fs < 0:
            b = s
            fb = fs
        else:
            a = s
            fa = fs

        if abs(fa) < abs(fb):
            a, b = b, a
            fa, fb = fb, fa

    raise ConvergenceError(f"Brent's method did not converge in {max_iter} iterations")


def newton_with_bracket(
    f: Callable[[float], float],
    df: Callable[[float], float],
    lower: float,
    upper: float,
    x0: float | None = None,
    tol: float = 1e-12,
    x_tol: float = 1e-15,
    max_iter: int = 100,
) -> float:
    """
    Newton-Raphson safeguarded by a bracket.

    A Newton step is taken when it stays inside the current bracket and at
    least halves the previous step; otherwise the bracket is bisected. The
    bracket shrinks on every iteration.

    Args:
        f: Function to find root of
        df: Derivative of f
        lower: Lower end of a bracket
        upper: Upper end of a bracket
        x0: Initial guess (midpoint of the bracket if None or outside it)
        tol: Stop when |f(x)| < tol
        x_tol: Stop when the step is smaller than this
        max_iter: Maximum iterations

    Returns
        x such that f(x) ≈ 0

    Raises
        ConvergenceError: If the bracket is invalid or max_iter exceeded
    """
    f_lo = f(lower)
    if f_lo == 0:
        return lower
    f_hi = f(upper)
    if f_hi == 0:
        return upper
    if f_lo * f_hi > 0:
        raise ConvergenceError(
            f'Function values at bounds must have opposite signs: '
            f'f({lower})={f_lo}, f({upper})={f_hi}'
        )

    # Orient so that f(xl) < 0 < f(xh)
    xl, xh = (lower, upper) if f_lo < 0 else (upper, lower)

    x = x0 if x0 is not None and min(lower, upper) < x0 < max(lower, upper) else 0.5 * (lower + upper)
    dx_old = abs(upper - lower)
    dx = dx_old
    fx = f(x)
    dfx = df(x)

    for _ in range(max_iter):
        if abs(fx) < tol:
            return x

        out_of_bracket = ((x - xh) * dfx - fx) * ((x - xl) * dfx - fx) > 0
        too_slow = abs(2 * fx) > abs(dx_old * dfx)
        if out_of_bracket or too_slow or abs(dfx) < TINY_DERIVATIVE:
            dx_old = dx
            dx = 0.5 * (xh - xl)
            x = xl + dx
        else:
            dx_old = dx
            dx = fx / dfx
            x -= dx

        if abs(dx) < x_tol:
            return x

        fx = f(x)
        dfx = df(x)
        if fx < 0:
            xl = x
        else:
            xh = x

    raise ConvergenceError(f'Newton with bracket did not converge in {max_iter} iterations')
