"""Type definitions for the scalar root finder.

- :class:`RootConfig`: Tolerances and search limits.
- :class:`Bracket`: An interval known, by sign change, to contain a root.
- :class:`RootEstimate`: The solver's answer and how it got there.

Roots are located in Python floats: the error function is scalar, so the
iteration is all data-dependent branching with nothing to vectorize.
"""

from __future__ import annotations

import math
from typing import NamedTuple


class RootConfig(NamedTuple):
    """Configuration for :func:`~physmod.roots.fzero` and friends.

    Attributes:
        x_tol: Relative bracket tolerance. The solver stops once the root
            is bracketed within ``2 * x_tol * max(|x|, 1)`` of the estimate.
            ``None`` uses the machine epsilon of Python floats (float64),
            i.e. convergence to the limit of the precision the result
            carries, independent of the configured JAX dtype.
        f_tol: Stop as soon as ``|g(x)| <= f_tol``. The default ``0.0`` only
            stops early on an exact zero.
        max_iter: Iteration limit for the bracketing phase.
        max_expansions: How many times the outward search from an initial
            guess may widen its interval.
        expansion_factor: Growth of the search half-width per expansion.
        initial_fraction: First search half-width as a fraction of
            ``|x0|`` (an absolute width when ``x0 == 0``).
    """

    x_tol: float | None = None
    f_tol: float = 0.0
    max_iter: int = 500
    max_expansions: int = 100
    expansion_factor: float = math.sqrt(2.0)
    initial_fraction: float = 1.0 / 50.0


class Bracket(NamedTuple):
    """Interval ``[low, high]`` over which the error function changes sign.

    Attributes:
        low: Lower end.
        high: Upper end.
        f_low: Error function value at ``low``.
        f_high: Error function value at ``high``.
    """

    low: float
    high: float
    f_low: float
    f_high: float

    @property
    def width(self) -> float:
        """``high - low``."""
        return self.high - self.low


class RootEstimate(NamedTuple):
    """Result of a root search.

    Attributes:
        x: Root estimate.
        fx: Error function value at ``x``.
        iterations: Bracketing iterations performed (0 when a supplied
            point was already an exact root).
        evaluations: Total error function evaluations, search included.
        converged: ``True`` when a stopping tolerance was met. Only an
            estimate attached to :class:`~physmod.errors.NoConvergenceError`
            is unconverged.
    """

    x: float
    fx: float
    iterations: int
    evaluations: int
    converged: bool
