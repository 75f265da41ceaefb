"""Type definitions for numerical integrators.

Provides the core data types used across all integrator implementations:

- :class:`StepResult`: Output of every step function, containing the new state,
  actual timestep used, error estimate, and suggested next timestep.
- :class:`AdaptiveConfig`: Configuration for adaptive step-size control in
  ``ode45`` and the DP54/RKF45 step functions.
- :class:`IntegrationStats`: Step and evaluation counters for a whole run.
- :class:`Trajectory`: The sampled solution returned by every driver.

All are :class:`~typing.NamedTuple` instances, which JAX treats as pytrees
automatically, so the step functions' results can cross ``jax.jit``
boundaries.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single integrator step.

    For fixed-step methods (Euler, RK4), ``error_estimate`` is always 0.0 and
    ``dt_next`` equals ``dt_used``.

    Attributes:
        state: State vector at time ``t + dt_used``.
        dt_used: Actual timestep taken. For adaptive methods, this may be
            smaller than the requested ``dt`` if the step was rejected and
            retried.
        error_estimate: Normalized, non-negative error estimate. A value
            <= 1.0 means the step met the tolerance; adaptive steps are only
            returned once this holds. Always 0.0 for fixed-step methods.
        dt_next: Suggested timestep for the next step.
    """

    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array


class AdaptiveConfig(NamedTuple):
    """Configuration for adaptive step-size control.

    Defaults follow the conventional ``ode45`` settings.

    Attributes:
        abs_tol: Absolute error tolerance per component. Components with
            magnitude near zero are controlled by this tolerance.
        rel_tol: Relative error tolerance per component. Components with
            large magnitude are controlled by this tolerance.
        safety_factor: Multiplicative safety factor applied to step-size
            predictions. Values < 1.0 produce conservative step sizes.
        min_scale_factor: Minimum allowed ratio ``dt_next / dt_used``.
            Floors the shrink applied after a rejected step.
        max_scale_factor: Maximum allowed ratio ``dt_next / dt_used``.
            Caps the growth applied after an accepted step.
        max_step: Largest step the driver will attempt. ``None`` means a
            tenth of the integration span.
        initial_step: First step to attempt. ``None`` selects one
            automatically from the rate function at the initial point.
    """

    abs_tol: float = 1e-6
    rel_tol: float = 1e-3
    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 5.0
    max_step: float | None = None
    initial_step: float | None = None


class IntegrationStats(NamedTuple):
    """Counters collected over one integration run.

    Attributes:
        n_steps: Accepted steps.
        n_rejected: Rejected adaptive step attempts.
        n_evaluations: Rate function evaluations.
    """

    n_steps: int = 0
    n_rejected: int = 0
    n_evaluations: int = 0


class Trajectory(NamedTuple):
    """Ordered ``(time, state)`` samples produced by an integrator.

    Times are strictly increasing, and the first sample is the supplied
    initial condition exactly, after casting to the configured dtype (so
    ``y0=0.1`` reads back as ``0.10000000149011612`` under float32).

    Attributes:
        t: Sample times, shape ``(N,)``.
        y: Sampled states, shape ``(N, *state_shape)``.
        stats: Counters for the run that produced the samples.
    """

    t: Array
    y: Array
    stats: IntegrationStats = IntegrationStats()

    @property
    def final_time(self) -> Array:
        """Time of the last sample."""
        return self.t[-1]

    @property
    def final_state(self) -> Array:
        """State of the last sample."""
        return self.y[-1]
