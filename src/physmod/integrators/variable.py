"""Adaptive-step integration driver (``ode45``).

Advances the solution across a time span with an embedded Runge-Kutta 4(5)
pair, choosing each step so that the local error estimate stays within
``abs_tol + rel_tol * |y|``.  Rejected steps are retried from the same
point with a smaller step; accepted steps grow the next one, capped at
``max_scale_factor``.

Two output modes, selected by the shape of ``t_span``:

- ``[t_start, t_end]``: every accepted step is recorded.
- ``[t_0, t_1, ..., t_n]`` with ``n >= 2``: steps are shortened to land
  exactly on each requested time, and only those times are recorded.

Either way the trajectory ends exactly at the last time of the span.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence

import jax.numpy as jnp
from jax.typing import ArrayLike

from physmod.config import get_dtype
from physmod.errors import InvalidStepError, InvalidTimeSpanError
from physmod.integrators._adaptive import adaptive_step, minimum_step, select_initial_step
from physmod.integrators._rate import CheckedRate
from physmod.integrators._types import AdaptiveConfig, IntegrationStats, Trajectory
from physmod.integrators.dp54 import DP54
from physmod.integrators.rkf45 import RKF45

logger = logging.getLogger(__name__)

ADAPTIVE_METHODS = {
    "dp54": DP54,
    "rkf45": RKF45,
}

# A step within this factor of the next output time is stretched to land on it
_LANDING_STRETCH = 1.1


def _time_grid(t_span: Sequence[float] | ArrayLike) -> list[float]:
    """Validate ``t_span`` and return it as a list of Python floats."""
    try:
        times = [float(t) for t in t_span]
    except TypeError:
        raise InvalidTimeSpanError(
            f"t_span must be a sequence of times, got {type(t_span).__name__}", t_span
        ) from None

    if len(times) < 2:
        raise InvalidTimeSpanError(
            f"t_span needs at least a start and an end time, got {len(times)}", t_span
        )
    if not all(math.isfinite(t) for t in times):
        raise InvalidTimeSpanError("t_span must contain only finite times", t_span)
    if any(b <= a for a, b in zip(times, times[1:])):
        raise InvalidTimeSpanError("t_span must be strictly increasing", t_span)

    for a, b in zip(times, times[1:]):
        h_min = minimum_step(max(abs(a), abs(b)))
        if b - a < h_min:
            raise InvalidTimeSpanError(
                f"t_span interval [{a!r}, {b!r}] is shorter than the smallest step "
                f"{h_min:.3e} that {jnp.dtype(get_dtype()).name} resolves there; "
                f"shift the time origin or set_dtype(jnp.float64)",
                t_span,
            )
    return times


def ode45(
    rate_fn: Callable[[ArrayLike, ArrayLike], ArrayLike],
    t_span: Sequence[float] | ArrayLike,
    y0: ArrayLike,
    config: AdaptiveConfig | None = None,
    method: str = "dp54",
) -> Trajectory:
    """Integrate an ODE with adaptive step-size control.

    Args:
        rate_fn: Rate function ``f(t, y) -> dy/dt`` returning the same
            shape as ``y``.
        t_span: ``[t_start, t_end]``, or a strictly increasing sequence of
            three or more output times.
        y0: Initial state at ``t_span[0]`` (scalar or array).
        config: Tolerances and step-size control. Uses default
            :class:`AdaptiveConfig` (``rel_tol=1e-3``, ``abs_tol=1e-6``) if
            ``None``.
        method: Embedded pair, ``"dp54"`` (Dormand-Prince) or ``"rkf45"``
            (Runge-Kutta-Fehlberg).

    Returns:
        Trajectory: Samples from ``t_span[0]`` to ``t_span[-1]`` with
        strictly increasing times.

    Raises:
        InvalidTimeSpanError: If ``t_span`` is too short, non-finite, not
            strictly increasing, or has an interval shorter than the smallest
            step the configured dtype resolves at that time.
        InvalidStepError: If ``config.max_step`` or ``config.initial_step``
            is not positive.
        RateFunctionError: If ``rate_fn`` raises, returns nothing, returns
            the wrong shape, or returns non-finite values at an accepted
            point.
        StepSizeUnderflowError: If the step needed to meet the tolerance
            falls below the smallest usable increment.
        ValueError: If ``method`` is unknown.

    Examples:
        ```python
        from physmod.integrators import ode45
        traj = ode45(lambda t, y: 0.2 * y, [0.0, 4.0], 5.0)
        traj.final_state  # ~5 * exp(0.8) = 11.128
        ```
    """
    if config is None:
        config = AdaptiveConfig()
    try:
        pair = ADAPTIVE_METHODS[method]
    except KeyError:
        raise ValueError(
            f"Unknown adaptive method {method!r}. "
            f"Choose from: {', '.join(sorted(ADAPTIVE_METHODS))}"
        ) from None

    times = _time_grid(t_span)
    record_every_step = len(times) == 2
    t_start, t_end = times[0], times[-1]

    dtype = get_dtype()
    state = jnp.asarray(y0, dtype=dtype)
    f = CheckedRate(rate_fn, state.shape, dtype)

    max_step = 0.1 * (t_end - t_start) if config.max_step is None else float(config.max_step)
    if not (math.isfinite(max_step) and max_step > 0.0):
        raise InvalidStepError(max_step)

    k0 = f.ensure_finite(f(t_start, state), t_start, state)
    if config.initial_step is None:
        h = select_initial_step(f, t_start, state, k0, pair.order, config, max_step)
    else:
        h = float(config.initial_step)
        if not (math.isfinite(h) and h > 0.0):
            raise InvalidStepError(h)

    out_t = [t_start]
    out_y = [state]
    n_steps = 0
    n_rejected = 0
    t = t_start
    target_index = 1

    while target_index < len(times):
        target = times[target_index]
        remaining = target - t
        h = min(h, max_step)
        landing = _LANDING_STRETCH * h >= remaining
        if landing:
            h = remaining

        result, k_last, rejected = adaptive_step(pair, f, t, state, h, k0, config)
        n_steps += 1
        n_rejected += rejected

        # A rejected landing attempt ends short of the target
        landed = landing and rejected == 0
        t = target if landed else t + result.dt_used
        state = result.state
        if k_last is None:
            k0 = f.ensure_finite(f(t, state), t, state)
        else:
            k0 = k_last

        if landed:
            target_index += 1
            out_t.append(t)
            out_y.append(state)
        elif record_every_step:
            out_t.append(t)
            out_y.append(state)

        h = result.dt_next

    stats = IntegrationStats(n_steps=n_steps, n_rejected=n_rejected, n_evaluations=f.calls)
    logger.info(
        "%s integrated t=%g to t=%g: %d steps, %d rejected, %d evaluations",
        pair.name, t_start, t_end, stats.n_steps, stats.n_rejected, stats.n_evaluations,
    )

    return Trajectory(
        t=jnp.asarray(out_t, dtype=dtype),
        y=jnp.stack(out_y),
        stats=stats,
    )
