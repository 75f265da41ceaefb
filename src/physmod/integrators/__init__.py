"""Numerical ODE integrators.

Fixed-step drivers and an adaptive Runge-Kutta 4(5) driver, all taking a
rate function ``f(t, y) -> dy/dt`` and returning a :class:`Trajectory`:

- :func:`euler` -- Euler's method with a fixed step
- :func:`integrate_fixed` -- Fixed-step driver for ``"euler"`` or ``"rk4"``
- :func:`ode45` -- Adaptive step, Dormand-Prince 5(4) or Fehlberg 4(5)

The single-step functions share a common interface::

    result = step_fn(dynamics, t, state, dt)

returning a :class:`StepResult` named tuple. :func:`euler_step` and
:func:`rk4_step` are pure ``jax.numpy`` code and work under ``jax.jit``;
:func:`dp54_step` and :func:`rkf45_step` include the accept/reject loop and
run eagerly.
"""

from physmod.integrators._types import (
    AdaptiveConfig,
    IntegrationStats,
    StepResult,
    Trajectory,
)
from physmod.integrators.dp54 import dp54_attempt, dp54_step
from physmod.integrators.forward_euler import euler_step
from physmod.integrators.fixed import euler, integrate_fixed
from physmod.integrators.variable import ode45
from physmod.integrators.rk4 import rk4_step
from physmod.integrators.rkf45 import rkf45_attempt, rkf45_step

__all__ = [
    "AdaptiveConfig",
    "IntegrationStats",
    "StepResult",
    "Trajectory",
    "euler",
    "integrate_fixed",
    "ode45",
    "euler_step",
    "rk4_step",
    "dp54_attempt",
    "dp54_step",
    "rkf45_attempt",
    "rkf45_step",
]
