"""Dormand-Prince 5(4) embedded pair (DP54), the ``ode45`` default.

Implements the Dormand-Prince embedded Runge-Kutta method with a 5th-order
solution for propagation and a 4th-order solution for error estimation. The
method uses 7 stages per step.

The Dormand-Prince method has the First-Same-As-Last (FSAL) property: the
7th stage is evaluated at the new point, so it is identical to the 1st stage
of the next step when the step is accepted. :func:`dp54_attempt` returns it
so the driver can reuse it, making each accepted step cost 6 evaluations.

The Butcher tableau coefficients are the standard Dormand-Prince values:

- Nodes (c): [0, 1/5, 3/10, 4/5, 8/9, 1, 1]
- 5th-order weights (b_high): [35/384, 0, 500/1113, 125/192, -2187/6784, 11/84, 0]
- 4th-order weights (b_low): [5179/57600, 0, 7571/16695, 393/640, -92097/339200,
  187/2100, 1/40]

:func:`dp54_step` runs its accept/reject loop in Python rather than
``jax.lax.while_loop``: it has to raise
:class:`~physmod.errors.StepSizeUnderflowError` with the concrete ``t`` and
state, which a traced loop cannot do.  It is therefore not ``jax.jit``
compatible.  :func:`dp54_attempt` is pure and can be jitted; wrapping a
traced loop around it with ``jax.experimental.checkify`` is the route to a
fully compiled step.
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
_C = (0.0, 1.0 / 5.0, 3.0 / 10.0, 4.0 / 5.0, 8.0 / 9.0, 1.0, 1.0)

# Coupling coefficients (lower-triangular rows)
_A1 = (1.0 / 5.0,)
_A2 = (3.0 / 40.0, 9.0 / 40.0)
_A3 = (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0)
_A4 = (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0)
_A5 = (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0, -5103.0 / 18656.0)

# 5th-order weights; also the coupling row of the FSAL stage
_B_HIGH = (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0, 0.0)

# Error weights: b_high - b_low
_E = (
    35.0 / 384.0 - 5179.0 / 57600.0,
    0.0,
    500.0 / 1113.0 - 7571.0 / 16695.0,
    125.0 / 192.0 - 393.0 / 640.0,
    -2187.0 / 6784.0 + 92097.0 / 339200.0,
    11.0 / 84.0 - 187.0 / 2100.0,
    -1.0 / 40.0,
)


def dp54_attempt(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: Array,
    h: ArrayLike,
    k0: Array,
) -> tuple[Array, Array, Array]:
    """Compute one DP54 trial step of size ``h`` without accepting or rejecting it.

    Args:
        dynamics: ODE right-hand side function ``f(t, y) -> dy/dt``.
        t: Current time.
        state: Current state.
        h: Trial step size.
        k0: ``dynamics(t, state)``.

    Returns:
        tuple: ``(state_high, error_vec, k_last)`` where ``state_high`` is the
        5th-order solution at ``t + h``, ``error_vec`` the difference to the
        4th-order solution and ``k_last`` the derivative at
        ``(t + h, state_high)``.
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

    # _B_HIGH[1] = _B_HIGH[6] = 0
    state_high = state + h * (
        _B_HIGH[0] * k0
        + _B_HIGH[2] * k2
        + _B_HIGH[3] * k3
        + _B_HIGH[4] * k4
        + _B_HIGH[5] * k5
    )
    k6 = dynamics(t + _C[6] * h, state_high)

    error_vec = h * (
        _E[0] * k0
        + _E[2] * k2
        + _E[3] * k3
        + _E[4] * k4
        + _E[5] * k5
        + _E[6] * k6
    )
    return state_high, error_vec, k6


DP54 = EmbeddedPair(name="dp54", order=4.0, attempt=dp54_attempt)


def dp54_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: float,
    state: ArrayLike,
    dt: float,
    config: AdaptiveConfig | None = None,
) -> StepResult:
    """Perform a single adaptive DP54 integration step.

    Advances the state from time ``t`` by up to ``dt``. If the error
    exceeds the tolerance, the step is rejected and retried with a smaller
    timestep until it is accepted.

    Runs eagerly: the accept/reject decision needs concrete values. Use
    :func:`dp54_attempt` for a traceable trial step.

    Args:
        dynamics: ODE right-hand side function ``f(t, y) -> dy/dt``.
        t: Current time.
        state: Current state.
        dt: Requested timestep. Must be positive.
        config: Adaptive step-size configuration. Uses default
            :class:`AdaptiveConfig` if ``None``.

    Returns:
        StepResult: Named tuple with fields:
            - ``state``: State at ``t + dt_used``.
            - ``dt_used``: Actual timestep taken (<= ``dt``).
            - ``error_estimate``: Normalized error of the accepted step (<= 1).
            - ``dt_next``: Suggested timestep for the next step.

    Raises:
        InvalidStepError: If ``dt`` is not positive and finite.
        RateFunctionError: If ``dynamics`` fails or returns the wrong shape.
        StepSizeUnderflowError: If no acceptable step size exists.

    Examples:
        ```python
        import jax.numpy as jnp
        from physmod.integrators import dp54_step
        def spring(t, y):
            return jnp.array([y[1], -y[0]])
        result = dp54_step(spring, 0.0, jnp.array([1.0, 0.0]), 0.1)
        result.state  # ~[cos(0.1), -sin(0.1)]
        ```
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

    result, _, _ = adaptive_step(DP54, f, t, state, dt, k0, config)
    return to_step_result(result)
