"""Scalar zero finding from an initial guess or a bracket (``fzero``).

Given a bracket, hands straight to :func:`~physmod.roots.brent`.  Given a
single guess ``x0``, first looks outward for a sign change with
:func:`find_bracket`: trial points ``x0 - dx`` and ``x0 + dx`` with ``dx``
starting at ``|x0| / 50`` and growing by ``sqrt(2)`` each round.  The
search can only find roots where the function actually crosses zero; a
double root such as ``x**2`` at 0 has no sign change and is not found.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence

import numpy as np
from jax.typing import ArrayLike

from physmod.errors import NoSignChangeFoundError
from physmod.roots._error_fn import CheckedErrorFunction
from physmod.roots._types import Bracket, RootConfig, RootEstimate
from physmod.roots.bracketing import (
    brent,
    resolve_x_tol,
    sign_differs,
    solve_bracket,
    tolerance,
)

logger = logging.getLogger(__name__)


def _search(
    g: CheckedErrorFunction,
    x0: float,
    fx0: float,
    config: RootConfig,
) -> Bracket:
    dx = abs(x0) * config.initial_fraction if x0 != 0.0 else config.initial_fraction
    low = high = x0
    for expansion in range(1, config.max_expansions + 1):
        low, high = x0 - dx, x0 + dx

        f_low = g(low)
        if sign_differs(f_low, fx0):
            logger.debug("Sign change in [%g, %g] after %d expansions", low, x0, expansion)
            return Bracket(low, x0, f_low, fx0)

        f_high = g(high)
        if sign_differs(fx0, f_high):
            logger.debug("Sign change in [%g, %g] after %d expansions", x0, high, expansion)
            return Bracket(x0, high, fx0, f_high)

        dx *= config.expansion_factor

    raise NoSignChangeFoundError(x0, low, high, config.max_expansions)


def find_bracket(
    error_fn: Callable[[float], ArrayLike],
    x0: float,
    config: RootConfig | None = None,
) -> Bracket:
    """Search outward from ``x0`` for an interval where ``error_fn`` changes sign.

    One end of the returned bracket is always ``x0`` itself.

    Args:
        error_fn: Scalar function ``g(x) -> float``.
        x0: Starting point.
        config: Search limits. Uses default :class:`RootConfig` if ``None``.

    Returns:
        Bracket: The first interval found with a sign change.

    Raises:
        NoSignChangeFoundError: If ``config.max_expansions`` expansions pass
            without a sign change.
        ErrorFunctionError: If ``error_fn`` fails at a trial point.

    Examples:
        ```python
        from physmod.roots import find_bracket
        find_bracket(lambda x: x**2 - 2*x - 3, 2.0)  # Bracket(low=2.0, high=..., ...)
        ```
    """
    if config is None:
        config = RootConfig()
    g = CheckedErrorFunction(error_fn)
    x0 = float(x0)
    if not math.isfinite(x0):
        raise ValueError(f"Initial guess must be finite, got {x0}")
    return _search(g, x0, g(x0), config)


def fzero(
    error_fn: Callable[[float], ArrayLike],
    x0: float | Sequence[float] | ArrayLike,
    config: RootConfig | None = None,
) -> RootEstimate:
    """Find a zero of a scalar function.

    Args:
        error_fn: Scalar function ``g(x) -> float``. Pass the function
            itself, e.g. ``fzero(g, 2.0)``, not ``fzero(g(2.0), ...)``.
        x0: Either an initial guess (scalar) or a bracket ``[low, high]``
            over which ``error_fn`` changes sign.
        config: Tolerances and limits. Uses default :class:`RootConfig` if
            ``None``.

    Returns:
        RootEstimate: Converged estimate. Restarting from a converged
        ``x`` returns it again after at most one iteration.

    Raises:
        InvalidBracketError: If a bracket without a sign change is given.
        NoSignChangeFoundError: If the search from a guess finds no sign
            change.
        ErrorFunctionError: If ``error_fn`` raises or returns something
            other than a finite real scalar.
        NoConvergenceError: If the iteration limit is reached.
        ValueError: If ``x0`` is neither a scalar nor a pair.

    Examples:
        ```python
        from physmod.roots import fzero
        def error_func(x):
            return x**2 - 2*x - 3
        fzero(error_func, [2.0, 4.0]).x  # 3.0
        fzero(error_func, 0.0).x         # -1.0
        ```
    """
    if config is None:
        config = RootConfig()

    shape = np.shape(x0)
    if shape == (2,):
        low, high = x0
        return brent(error_fn, low, high, config)
    if shape != ():
        raise ValueError(
            f"x0 must be a scalar guess or a [low, high] bracket, got shape {shape}"
        )

    g = CheckedErrorFunction(error_fn)
    x0 = float(x0)
    if not math.isfinite(x0):
        raise ValueError(f"Initial guess must be finite, got {x0}")

    fx0 = g(x0)
    if abs(fx0) <= config.f_tol:
        return RootEstimate(x=x0, fx=fx0, iterations=0, evaluations=g.calls, converged=True)

    # A sign change within the convergence tolerance of x0 means x0 is
    # already as good as the bracketing phase would return
    tol = tolerance(x0, resolve_x_tol(config))
    if sign_differs(g(x0 - 2.0 * tol), fx0) or sign_differs(fx0, g(x0 + 2.0 * tol)):
        return RootEstimate(x=x0, fx=fx0, iterations=1, evaluations=g.calls, converged=True)

    bracket = _search(g, x0, fx0, config)
    estimate = solve_bracket(g, bracket, config)
    logger.info(
        "fzero from x0=%g converged to x=%.17g in %d iterations (%d evaluations)",
        x0, estimate.x, estimate.iterations, estimate.evaluations,
    )
    return estimate
