"""Adaptive step-size control utilities for embedded Runge-Kutta methods.

Provides the error-norm computation, step-size adjustment and the step
rejection loop shared by the DP54 and RKF45 integrators.  The algorithms
follow the standard embedded Runge-Kutta error control approach:

1. Compute a normalized error using mixed absolute/relative tolerances.
2. Accept the step if the normalized error is <= 1.0.
3. Otherwise shrink the step and retry from the same point.
4. Predict the next step size from the error and the method order.

The rejection loop inspects concrete error values, so it runs eagerly; the
per-method ``attempt`` functions it drives are plain ``jax.numpy`` code.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from physmod.config import get_dtype, get_machine_epsilon, get_smallest_normal
from physmod.errors import StepSizeUnderflowError
from physmod.integrators._types import AdaptiveConfig, StepResult

logger = logging.getLogger(__name__)


class EmbeddedPair(NamedTuple):
    """An embedded Runge-Kutta pair usable by the adaptive drivers.

    Attributes:
        name: Short method name (``"dp54"``, ``"rkf45"``).
        order: Order of the error estimator. The step-size exponent is
            ``1 / (order + 1)``.
        attempt: ``attempt(dynamics, t, state, h, k0)`` returning
            ``(state_high, error_vec, k_last)``. ``k_last`` is the derivative
            at the new point when the method has the FSAL property, else
            ``None``.
    """

    name: str
    order: float
    attempt: Callable[..., tuple[Array, Array, Array | None]]


def compute_error_norm(
    error_vec: ArrayLike,
    state_new: ArrayLike,
    state_old: ArrayLike,
    abs_tol: float,
    rel_tol: float,
) -> Array:
    """Compute the normalized error norm for adaptive step-size control.

    Uses a mixed absolute/relative tolerance per component with the infinity
    norm (maximum over components). The step is accepted when the returned
    value is <= 1.0.

    The per-component tolerance is:

    .. math::

        \\text{tol}_i = \\text{abs\\_tol} + \\text{rel\\_tol}
            \\cdot \\max(|y^{\\text{new}}_i|, |y^{\\text{old}}_i|)

    Args:
        error_vec: Difference between high-order and low-order solutions.
        state_new: High-order solution (accepted state).
        state_old: State at the beginning of the step.
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.

    Returns:
        jax.Array: Non-negative scalar normalized error. NaN if any
        component is NaN.
    """
    error_vec = jnp.asarray(error_vec, dtype=get_dtype())
    state_new = jnp.asarray(state_new, dtype=get_dtype())
    state_old = jnp.asarray(state_old, dtype=get_dtype())

    scale = abs_tol + rel_tol * jnp.maximum(jnp.abs(state_new), jnp.abs(state_old))
    return jnp.max(jnp.abs(error_vec) / scale)


def shrink_factor(error: float, order: float, config: AdaptiveConfig) -> float:
    """Step-size ratio to apply after a rejected step.

    ``max(min_scale_factor, safety * (1/error)^(1/(order+1)))``. Non-finite
    errors shrink by ``min_scale_factor``.
    """
    if not math.isfinite(error):
        return config.min_scale_factor
    scale = config.safety_factor * (1.0 / error) ** (1.0 / (order + 1.0))
    return max(config.min_scale_factor, min(scale, 1.0))


def growth_factor(
    error: float,
    order: float,
    config: AdaptiveConfig,
    after_rejection: bool = False,
) -> float:
    """Step-size ratio to apply after an accepted step.

    Uses the standard optimal step-size formula:

    .. math::

        h_{\\text{next}} = h \\cdot S \\cdot
            \\left(\\frac{1}{\\text{error}}\\right)^{1/(p+1)}

    clamped to ``[min_scale_factor, max_scale_factor]``. A step that
    followed a rejection is not allowed to grow.
    """
    if error > 0.0:
        scale = config.safety_factor * (1.0 / error) ** (1.0 / (order + 1.0))
    else:
        scale = config.max_scale_factor
    scale = min(max(scale, config.min_scale_factor), config.max_scale_factor)
    if after_rejection:
        scale = min(scale, 1.0)
    return scale


def minimum_step(t: float) -> float:
    """Smallest usable step at time ``t``: 16 ulps of ``t`` in the configured dtype."""
    return max(16.0 * get_machine_epsilon() * abs(t), get_smallest_normal())


def _rms_norm(x: Array) -> float:
    return float(jnp.sqrt(jnp.mean(jnp.square(x))))


def select_initial_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t0: float,
    state0: Array,
    k0: Array,
    order: float,
    config: AdaptiveConfig,
    max_step: float,
) -> float:
    """Estimate a first step size from the rate function at the initial point.

    Follows the starting-step algorithm of Hairer, Norsett & Wanner: take a
    tiny Euler step to estimate the second derivative, then pick the step
    whose local error would be about 1% of tolerance.

    Args:
        dynamics: Rate function ``f(t, y)``.
        t0: Initial time.
        state0: Initial state.
        k0: ``dynamics(t0, state0)``.
        order: Order of the error estimator.
        config: Tolerances.
        max_step: Upper bound on the returned step.

    Returns:
        float: A positive initial step size no larger than ``max_step``.

    References:
        E. Hairer, S. P. Norsett, G. Wanner, *Solving Ordinary Differential
        Equations I*, Sec. II.4, 1993.
    """
    scale = config.abs_tol + config.rel_tol * jnp.abs(state0)
    d0 = _rms_norm(state0 / scale)
    d1 = _rms_norm(k0 / scale)

    if d0 < 1e-5 or d1 < 1e-5:
        h0 = 1e-6
    else:
        h0 = 0.01 * d0 / d1
    h0 = min(h0, max_step)

    k1 = dynamics(t0 + h0, state0 + h0 * k0)
    d2 = _rms_norm((k1 - k0) / scale) / h0
    if not math.isfinite(d2):
        return h0

    if max(d1, d2) <= 1e-15:
        h1 = max(1e-6, h0 * 1e-3)
    else:
        h1 = (0.01 / max(d1, d2)) ** (1.0 / (order + 1.0))

    return min(100.0 * h0, h1, max_step)


def adaptive_step(
    pair: EmbeddedPair,
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: float,
    state: Array,
    h: float,
    k0: Array,
    config: AdaptiveConfig,
) -> tuple[StepResult, Array | None, int]:
    """Take one accepted step, retrying with smaller steps as needed.

    Rejected attempts restart from the same ``(t, state)``.

    Args:
        pair: The embedded pair to use.
        dynamics: Rate function ``f(t, y)``.
        t: Current time.
        state: Current state.
        h: Step size to try first. Must be positive.
        k0: ``dynamics(t, state)``.
        config: Tolerances and step-size factors.

    Returns:
        tuple: ``(result, k_last, n_rejected)``. ``result`` holds the
        accepted state with Python-float ``dt_used``, ``error_estimate`` and
        ``dt_next``; ``k_last`` is the FSAL derivative at the new point or
        ``None``.

    Raises:
        StepSizeUnderflowError: If the step falls below
            :func:`minimum_step` before the tolerance is met.
    """
    n_rejected = 0
    h_min = minimum_step(t)
    while True:
        if h < h_min:
            raise StepSizeUnderflowError(t, state, h, h_min)

        state_new, error_vec, k_last = pair.attempt(dynamics, t, state, h, k0)
        error = float(
            compute_error_norm(error_vec, state_new, state, config.abs_tol, config.rel_tol)
        )
        if error <= 1.0:
            break

        n_rejected += 1
        h_retry = h * shrink_factor(error, pair.order, config)
        logger.debug(
            "%s step rejected at t=%g: h=%g error=%g, retrying with h=%g",
            pair.name, t, h, error, h_retry,
        )
        h = h_retry

    dt_next = h * growth_factor(error, pair.order, config, after_rejection=n_rejected > 0)
    result = StepResult(state=state_new, dt_used=h, error_estimate=error, dt_next=dt_next)
    return result, k_last, n_rejected


def to_step_result(result: StepResult) -> StepResult:
    """Cast the scalar fields of an eager step result to arrays of the configured dtype."""
    dtype = get_dtype()
    return StepResult(
        state=result.state,
        dt_used=jnp.asarray(result.dt_used, dtype=dtype),
        error_estimate=jnp.asarray(result.error_estimate, dtype=dtype),
        dt_next=jnp.asarray(result.dt_next, dtype=dtype),
    )
