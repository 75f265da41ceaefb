"""Brent's bracketing root finder.

Keeps an interval ``[b, c]`` over which the error function changes sign and
shrinks it each iteration.  The next point comes from inverse quadratic
interpolation through the last three points when they are distinct, from
the secant through the last two otherwise, and from bisection whenever the
interpolated step would land outside the safe part of the bracket or would
not have shrunk the bracket enough over the previous two steps.  The result
keeps the guaranteed convergence of bisection with the superlinear speed of
interpolation near a simple root.

References:
    R. P. Brent, *Algorithms for Minimization without Derivatives*,
    Ch. 4, 1973.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

import numpy as np
from jax.typing import ArrayLike

from physmod.errors import InvalidBracketError, NoConvergenceError
from physmod.roots._error_fn import CheckedErrorFunction
from physmod.roots._types import Bracket, RootConfig, RootEstimate

logger = logging.getLogger(__name__)

# The iteration runs in Python floats whatever the configured JAX dtype
_FLOAT_EPS = float(np.finfo(float).eps)


def resolve_x_tol(config: RootConfig) -> float:
    """``config.x_tol``, or the machine epsilon of Python floats if unset."""
    return _FLOAT_EPS if config.x_tol is None else float(config.x_tol)


def tolerance(x: float, x_tol: float) -> float:
    """Half-width at which a bracket around ``x`` counts as converged."""
    return 2.0 * x_tol * max(abs(x), 1.0)


def sign_differs(f1: float, f2: float) -> bool:
    """True when a root lies between points with values ``f1`` and ``f2``."""
    return f1 == 0.0 or f2 == 0.0 or (f1 < 0.0) != (f2 < 0.0)


def solve_bracket(
    g: CheckedErrorFunction,
    bracket: Bracket,
    config: RootConfig,
) -> RootEstimate:
    """Run Brent's iteration on a bracket whose end values are already known.

    Args:
        g: Checked error function.
        bracket: Interval with a sign change and non-zero end values.
        config: Tolerances and iteration limit.

    Returns:
        RootEstimate: Converged estimate.

    Raises:
        NoConvergenceError: If ``config.max_iter`` iterations pass without
            meeting a tolerance.
    """
    x_tol = resolve_x_tol(config)
    a, fa = bracket.low, bracket.f_low
    b, fb = bracket.high, bracket.f_high
    c, fc = b, fb
    d = e = b - a
    iterations = 0

    while True:
        if (fb > 0.0) == (fc > 0.0):
            c, fc = a, fa
            d = e = b - a
        if abs(fc) < abs(fb):
            a, b, c = b, c, b
            fa, fb, fc = fb, fc, fb

        tol = tolerance(b, x_tol)
        m = 0.5 * (c - b)
        if abs(m) <= tol or abs(fb) <= config.f_tol:
            return RootEstimate(
                x=b, fx=fb, iterations=iterations, evaluations=g.calls, converged=True
            )
        if iterations >= config.max_iter:
            estimate = RootEstimate(
                x=b, fx=fb, iterations=iterations, evaluations=g.calls, converged=False
            )
            raise NoConvergenceError(estimate, config.max_iter)

        if abs(e) < tol or abs(fa) <= abs(fb):
            d = e = m
            kind = "bisection"
        else:
            s = fb / fa
            if a == c:
                p = 2.0 * m * s
                q = 1.0 - s
                kind = "secant"
            else:
                q = fa / fc
                r = fb / fc
                p = s * (2.0 * m * q * (q - r) - (b - a) * (r - 1.0))
                q = (q - 1.0) * (r - 1.0) * (s - 1.0)
                kind = "inverse quadratic"
            if p > 0.0:
                q = -q
            else:
                p = -p
            # Accept the interpolated step only if it stays inside the bracket
            # and is less than half the step before last
            if 2.0 * p < 3.0 * m * q - abs(tol * q) and p < abs(0.5 * e * q):
                e = d
                d = p / q
            else:
                d = e = m
                kind = "bisection"

        a, fa = b, fb
        b = b + d if abs(d) > tol else b + math.copysign(tol, m)
        fb = g(b)
        iterations += 1
        logger.debug("brent iteration %d (%s): x=%.17g f(x)=%g", iterations, kind, b, fb)


def brent(
    error_fn: Callable[[float], ArrayLike],
    low: float,
    high: float,
    config: RootConfig | None = None,
) -> RootEstimate:
    """Find a zero of ``error_fn`` inside ``[low, high]``.

    The ends may be given in either order. An end where the error function
    is exactly zero (or within ``f_tol``) is returned at once.

    Args:
        error_fn: Scalar function ``g(x) -> float``.
        low: One end of the bracket.
        high: The other end.
        config: Tolerances and limits. Uses default :class:`RootConfig` if
            ``None``.

    Returns:
        RootEstimate: Converged estimate.

    Raises:
        InvalidBracketError: If the ends coincide, are not finite, or the
            error function has the same sign at both.
        ErrorFunctionError: If ``error_fn`` raises or returns something
            other than a finite real scalar.
        NoConvergenceError: If the iteration limit is reached.

    Examples:
        ```python
        from physmod.roots import brent
        brent(lambda x: x**2 - 2*x - 3, 2.0, 4.0).x  # 3.0
        ```
    """
    if config is None:
        config = RootConfig()
    g = CheckedErrorFunction(error_fn)

    low, high = float(low), float(high)
    if not (math.isfinite(low) and math.isfinite(high)):
        raise InvalidBracketError(f"Bracket ends must be finite, got [{low}, {high}]", low, high)
    if low == high:
        raise InvalidBracketError(f"Bracket has zero width: [{low}, {high}]", low, high)
    if low > high:
        low, high = high, low

    f_low = g(low)
    if abs(f_low) <= config.f_tol:
        return RootEstimate(x=low, fx=f_low, iterations=0, evaluations=g.calls, converged=True)
    f_high = g(high)
    if abs(f_high) <= config.f_tol:
        return RootEstimate(x=high, fx=f_high, iterations=0, evaluations=g.calls, converged=True)

    if not sign_differs(f_low, f_high):
        raise InvalidBracketError(
            f"Error function has the same sign at both ends of [{low}, {high}]: "
            f"g(low)={f_low}, g(high)={f_high}",
            low,
            high,
            f_low,
            f_high,
        )

    return solve_bracket(g, Bracket(low, high, f_low, f_high), config)
