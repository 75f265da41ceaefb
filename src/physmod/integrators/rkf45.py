"""Runge-Kutta-Fehlberg 4(5) embedded pair (RKF45).

The Fehlberg embedded Runge-Kutta method with a 5th-order solution for
propagation and a 4th-order solution for error estimation, 6 stages per
step. No stage is shared between steps, so every step costs 6 fresh
evaluations; selectable in ``ode45`` with ``method="rkf45"``.

The Butcher tableau coefficients are taken from the standard Fehlberg
formulation:

- Nodes (c): [0, 1/4, 3/8, 12/13, 1, 1/2]
- 5th-order weights (b_high): [16/135, 0, 6656/12825, 28561/56430, -9/50, 2/55]
- 4th-order weights (b_low): [25/216, 0, 1408/2565, 2197/4104, -1/5, 0]
"""

from __future__ import annotations

import math
from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from physmod.config import get_dtype
from physmod.errors import InvalidStepError
from physmod.integrators._adaptive import EmbeddedPair, adaptive_step, to_step_result
from physmod.integrators._rate import CheckedRate
from physmod.integrators._types import AdaptiveConfig, StepResult

# Nodes
_C = (0.0, 1.0 / 4.0, 3.0 / 8.0, 12.0 / 13.0, 1.0, 1.0 / 2.0)

# Coupling coefficients (lower-triangular rows)
_A1 = (1.0 / 4.0,)
_A2 = (3.0 / 32.0, 9.0 / 32.0)
_A3 = (1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0)
_A4 = (439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0)
_A5 = (-8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0)

# 5th-order weights (primary solution)
_B_HIGH = (16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0)

# 4th-order weights (error estimation)
_B_LOW = (25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0, 0.0)


def rkf45_attempt(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: Array,
    h: ArrayLike,
    k0: Array,
) -> tuple[Array, Array, None]:
    """Compute one RKF45 trial step of size ``h`` without accepting or rejecting it.

    Args:
        dynamics: ODE right-hand side function ``f(t, y) -> dy/dt``.
        t: Current time.
        state: Current state.
        h: Trial step size.
        k0: ``dynamics(t, state)``.

    Returns:
        tuple: ``(state_high, error_vec, None)``.
    """
    k1 = dynamics(t + _C[1] * h, state + h * _A1[0] * k0)
    k2 = dynamics(t + _C[2] * h, state + h * (_A2[0] * k0 + _A2[1] * k1))
    k3 = dynamics(t + _C[3] * h, state + h * (_A3[0] * k0 + _A3[1] * k1 + _A3[2] * k2))
    k4 = dynamics(
        t + _C[4] * h,
        state + h * (_A4[0] * k0 + _A4[1] * k1 + _A4[2] * k2 + _A4[3] * k3),
    )
    k5 = dynamics(
        t + _C[5] * h,
        state + h * (_A5[0] * k0 + _A5[1] * k1 + _A5[2] * k2 + _A5[3] * k3 + _A5[4] * k4),
    )

    # _B_HIGH[1] = 0
    state_high = state + h * (
        _B_HIGH[0] * k0
        + _B_HIGH[2] * k2
        + _B_HIGH[3] * k3
        + _B_HIGH[4] * k4
        + _B_HIGH[5] * k5
    )

    # _B_LOW[1] = _B_LOW[5] = 0
    state_low = state + h * (
        _B_LOW[0] * k0
        + _B_LOW[2] * k2
        + _B_LOW[3] * k3
        + _B_LOW[4] * k4
    )

    return state_high, state_high - state_low, None


RKF45 = EmbeddedPair(name="rkf45", order=4.0, attempt=rkf45_attempt)


def rkf45_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: float,
    state: ArrayLike,
    dt: float,
    config: AdaptiveConfig | None = None,
) -> StepResult:
    """Perform a single adaptive RKF45 integration step.

    Same contract as :func:`~physmod.integrators.dp54_step`, using the
    Fehlberg coefficients. Runs eagerly for the same reason; use
    :func:`rkf45_attempt` under ``jax.jit``.

    Args:
        dynamics: ODE right-hand side function ``f(t, y) -> dy/dt``.
        t: Current time.
        state: Current state.
        dt: Requested timestep. Must be positive.
        config: Adaptive step-size configuration. Uses default
            :class:`AdaptiveConfig` if ``None``.

    Returns:
        StepResult: The accepted step.

    Raises:
        InvalidStepError: If ``dt`` is not positive and finite.
        RateFunctionError: If ``dynamics`` fails or returns the wrong shape.
        StepSizeUnderflowError: If no acceptable step size exists.
    """
    if config is None:
        config = AdaptiveConfig()
    dt = float(dt)
    if not (math.isfinite(dt) and dt > 0.0):
        raise InvalidStepError(dt)

    dtype = get_dtype()
    t = float(t)
    state = jnp.asarray(state, dtype=dtype)
    f = CheckedRate(dynamics, state.shape, dtype)
    k0 = f.ensure_finite(f(t, state), t, state)

    result, _, _ = adaptive_step(RKF45, f, t, state, dt, k0, config)
    return to_step_result(result)
