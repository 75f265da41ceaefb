"""Forward Euler integrator.

The simplest explicit method: follow the slope at the start of the step
for the whole step,

.. math::

    t_{i+1} = t_i + \\Delta t, \\qquad
    y_{i+1} = y_i + f(t_i, y_i)\\, \\Delta t

Euler's method is first order: the local truncation error is
:math:`O(\\Delta t^2)` and the global error is :math:`O(\\Delta t)`, so
halving the step roughly halves the error.  There is no error estimate;
accuracy is controlled entirely by the choice of ``dt``.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from physmod.config import get_dtype
from physmod.integrators._types import StepResult


def euler_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
) -> StepResult:
    """Perform a single forward Euler step.

    Compatible with ``jax.jit`` and ``jax.vmap``.

    Args:
        dynamics: ODE right-hand side function ``f(t, y) -> dy/dt``.
        t: Current time.
        state: Current state (scalar or array).
        dt: Timestep to take.

    Returns:
        StepResult: ``state`` at ``t + dt``, ``dt_used == dt_next == dt``
        and a zero ``error_estimate``.

    Examples:
        ```python
        from physmod.integrators import euler_step
        result = euler_step(lambda t, y: 0.2 * y, 0.0, 5.0, 0.1)
        result.state  # 5.1
        ```
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    state_new = state + dynamics(t, state) * dt

    return StepResult(
        state=state_new,
        dt_used=dt,
        error_estimate=jnp.asarray(0.0, dtype=dtype),
        dt_next=dt,
    )
