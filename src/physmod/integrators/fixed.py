"""Fixed-step integration drivers.

Repeatedly applies a single-step rule (:func:`euler_step` or
:func:`rk4_step`) with a constant step size and collects the samples into a
:class:`~physmod.integrators.Trajectory`.  There is no adaptivity: the
caller controls accuracy through ``dt``.  The usual check is to halve
``dt`` and compare the two trajectories at common times; Euler's method is
first order, so the difference should roughly halve as well.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

import jax.numpy as jnp
from jax.typing import ArrayLike

from physmod.config import get_dtype
from physmod.errors import InvalidStepError, InvalidTimeSpanError
from physmod.integrators._rate import CheckedRate
from physmod.integrators._types import IntegrationStats, Trajectory
from physmod.integrators.forward_euler import euler_step
from physmod.integrators.rk4 import rk4_step

logger = logging.getLogger(__name__)

FIXED_STEP_METHODS = {
    "euler": euler_step,
    "rk4": rk4_step,
}


def _count_steps(t0: float, dt: float, n_steps: int | None, t_end: float | None) -> int:
    """Resolve the step plan to a number of steps."""
    if (n_steps is None) == (t_end is None):
        raise ValueError("Exactly one of n_steps or t_end must be given")

    if n_steps is not None:
        if int(n_steps) != n_steps or n_steps < 0:
            raise ValueError(f"n_steps must be a non-negative integer, got {n_steps!r}")
        return int(n_steps)

    t_end = float(t_end)
    if not math.isfinite(t_end) or t_end < t0:
        raise InvalidTimeSpanError(
            f"t_end must be finite and >= t0, got t0={t0!r}, t_end={t_end!r}",
            (t0, t_end),
        )

    ratio = (t_end - t0) / dt
    n = math.ceil(ratio)
    # (4.0 - 0.0) / 0.1 == 40.000000000000004 is still 40 steps
    if n > 0 and math.isclose(ratio, n - 1, rel_tol=1e-9):
        n -= 1
    return n


def integrate_fixed(
    rate_fn: Callable[[ArrayLike, ArrayLike], ArrayLike],
    t0: float,
    y0: ArrayLike,
    dt: float,
    n_steps: int | None = None,
    t_end: float | None = None,
    method: str = "euler",
) -> Trajectory:
    """Integrate an ODE with a fixed step size.

    Sample times are ``t0 + i * dt`` for ``i = 0 .. n``.  When the plan is
    given as ``t_end``, ``n = ceil((t_end - t0) / dt)``, so the last sample
    lands on or just past ``t_end``.

    Args:
        rate_fn: Rate function ``f(t, y) -> dy/dt`` returning the same
            shape as ``y``.
        t0: Initial time.
        y0: Initial state (scalar or array).
        dt: Step size. Must be positive and finite.
        n_steps: Number of steps to take.
        t_end: Time to integrate up to. Exactly one of ``n_steps`` and
            ``t_end`` must be given.
        method: ``"euler"`` or ``"rk4"``.

    Returns:
        Trajectory: ``n + 1`` samples starting with ``(t0, y0)``.

    Raises:
        InvalidStepError: If ``dt`` is not positive and finite, or is too
            small for the configured dtype to tell consecutive times apart.
        InvalidTimeSpanError: If ``t_end`` is before ``t0``.
        RateFunctionError: If ``rate_fn`` raises, returns nothing, returns
            the wrong shape, or returns non-finite values.
        ValueError: If the step plan or method is invalid.
    """
    try:
        step_fn = FIXED_STEP_METHODS[method]
    except KeyError:
        raise ValueError(
            f"Unknown fixed-step method {method!r}. "
            f"Choose from: {', '.join(sorted(FIXED_STEP_METHODS))}"
        ) from None

    dt = float(dt)
    if not (math.isfinite(dt) and dt > 0.0):
        raise InvalidStepError(dt)
    t0 = float(t0)
    n = _count_steps(t0, dt, n_steps, t_end)

    dtype = get_dtype()
    state = jnp.asarray(y0, dtype=dtype)
    f = CheckedRate(rate_fn, state.shape, dtype, require_finite=True)

    times = [t0 + i * dt for i in range(n + 1)]
    t_grid = jnp.asarray(times, dtype=dtype)
    if n > 0 and not bool(jnp.all(jnp.diff(t_grid) > 0.0)):
        raise InvalidStepError(
            dt,
            f"Step size dt={dt!r} is below the resolution of {jnp.dtype(dtype).name} "
            f"at t0={t0!r}; use a larger dt or set_dtype(jnp.float64)",
        )

    states = [state]
    for t_i in times[:-1]:
        state = step_fn(f, t_i, state, dt).state
        states.append(state)

    logger.info(
        "Integrated %d %s steps of dt=%g from t=%g to t=%g (%d evaluations)",
        n, method, dt, times[0], times[-1], f.calls,
    )

    return Trajectory(
        t=t_grid,
        y=jnp.stack(states),
        stats=IntegrationStats(n_steps=n, n_rejected=0, n_evaluations=f.calls),
    )


def euler(
    rate_fn: Callable[[ArrayLike, ArrayLike], ArrayLike],
    t0: float,
    y0: ArrayLike,
    dt: float,
    n_steps: int | None = None,
    t_end: float | None = None,
) -> Trajectory:
    """Integrate an ODE with Euler's method.

    Shorthand for ``integrate_fixed(..., method="euler")``.

    Examples:
        ```python
        from physmod.integrators import euler
        traj = euler(lambda t, y: 0.2 * y, 0.0, 5.0, dt=0.1, t_end=4.0)
        traj.final_state  # ~11.04, vs 5 * exp(0.8) = 11.13
        ```
    """
    return integrate_fixed(rate_fn, t0, y0, dt, n_steps=n_steps, t_end=t_end, method="euler")
