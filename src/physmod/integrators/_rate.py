"""Validation wrapper around caller-supplied rate functions.

The drivers never trust a rate function's output: every evaluation goes
through :class:`CheckedRate`, which turns exceptions, missing return values
and shape mismatches into :class:`~physmod.errors.RateFunctionError` with
the offending ``(t, state)`` attached.  It also counts evaluations for
:class:`~physmod.integrators.IntegrationStats`.

The wrapper inspects concrete values, so it is only used by the eager
drivers; the single-step functions stay traceable under ``jax.jit``.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from physmod.errors import RateFunctionError, StopSolver


class CheckedRate:
    """Callable that evaluates ``rate_fn(t, state)`` and validates the result.

    Args:
        rate_fn: Caller's rate function ``f(t, y) -> dy/dt``.
        shape: Required shape of the returned derivative (the state shape).
        dtype: Float dtype the derivative is cast to.
        require_finite: Also reject derivatives containing NaN or inf.

    Raises:
        TypeError: If ``rate_fn`` is not callable.
    """

    def __init__(
        self,
        rate_fn: Callable[[ArrayLike, ArrayLike], ArrayLike],
        shape: tuple[int, ...],
        dtype,
        require_finite: bool = False,
    ):
        if not callable(rate_fn):
            raise TypeError(
                f"rate_fn must be a callable f(t, y), got {type(rate_fn).__name__}. "
                f"Pass the function itself, not the result of calling it."
            )
        self.rate_fn = rate_fn
        self.shape = tuple(shape)
        self.dtype = dtype
        self.require_finite = require_finite
        self.calls = 0

    def __call__(self, t: ArrayLike, state: Array) -> Array:
        self.calls += 1
        try:
            value = self.rate_fn(t, state)
        except StopSolver:
            raise
        except Exception as exc:
            raise RateFunctionError(
                f"Rate function raised {type(exc).__name__}: {exc}", t, state
            ) from exc

        if value is None:
            raise RateFunctionError("Rate function returned no value", t, state)
        if jnp.iscomplexobj(value):
            raise RateFunctionError("Rate function returned a complex value", t, state)
        try:
            dx = jnp.asarray(value, dtype=self.dtype)
        except (TypeError, ValueError) as exc:
            raise RateFunctionError(
                f"Rate function returned a non-numeric {type(value).__name__}", t, state
            ) from exc

        if dx.shape != self.shape:
            raise RateFunctionError(
                f"Rate function returned shape {dx.shape}, expected {self.shape}",
                t,
                state,
            )
        if self.require_finite:
            self.ensure_finite(dx, t, state)
        return dx

    def ensure_finite(self, dx: Array, t: ArrayLike, state: Array) -> Array:
        """Raise :class:`RateFunctionError` if ``dx`` holds NaN or inf."""
        if not bool(jnp.all(jnp.isfinite(dx))):
            raise RateFunctionError("Rate function returned non-finite values", t, state)
        return dx
