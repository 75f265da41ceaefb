"""Tests for the adaptive-step driver (ode45)."""

import logging
import math

import jax.numpy as jnp
import pytest

from physmod.errors import (
    InvalidStepError,
    InvalidTimeSpanError,
    RateFunctionError,
    StepSizeUnderflowError,
    StopSolver,
)
from physmod.integrators import AdaptiveConfig, ode45


def _growth(t, y):
    return 0.2 * y


def _oscillator(t, y):
    return jnp.array([y[1], -y[0]])


def _blow_up(t, y):
    """dy/dt = y^2 with y(0) = 1 has the solution 1 / (1 - t), singular at t = 1."""
    return y**2


# ──────────────────────────────────────────────
# Two-point span
# ──────────────────────────────────────────────

class TestTwoPointSpan:
    def test_population_growth_accuracy(self):
        traj = ode45(_growth, [0.0, 4.0], 5.0)
        expected = 5.0 * jnp.exp(0.2 * traj.t)
        assert bool(jnp.all(jnp.abs(traj.y - expected) / expected < 1e-3))

    def test_endpoints(self):
        traj = ode45(_growth, [0.0, 4.0], 5.0)
        assert float(traj.t[0]) == 0.0
        assert float(traj.y[0]) == 5.0
        assert float(traj.t[-1]) == 4.0

    def test_times_strictly_increasing(self):
        traj = ode45(_oscillator, [0.0, 10.0], jnp.array([1.0, 0.0]))
        assert bool(jnp.all(jnp.diff(traj.t) > 0.0))

    def test_records_every_step(self):
        traj = ode45(_oscillator, [0.0, 10.0], jnp.array([1.0, 0.0]))
        assert traj.t.shape[0] == traj.stats.n_steps + 1
        assert traj.y.shape == (traj.t.shape[0], 2)

    def test_default_max_step_is_tenth_of_span(self):
        traj = ode45(_growth, [0.0, 4.0], 5.0)
        assert float(jnp.max(jnp.diff(traj.t))) <= 1.1 * 0.4 + 1e-12
        assert traj.t.shape[0] >= 11

    def test_custom_max_step(self):
        traj = ode45(_growth, [0.0, 1.0], 5.0, AdaptiveConfig(max_step=0.05))
        assert float(jnp.max(jnp.diff(traj.t))) <= 1.1 * 0.05 + 1e-12

    def test_nonzero_start_time(self):
        traj = ode45(_growth, [1.0, 3.0], 5.0)
        assert float(traj.t[0]) == 1.0
        assert float(traj.final_state) == pytest.approx(5.0 * math.exp(0.4), rel=1e-3)

    def test_tight_tolerance_oscillator(self):
        config = AdaptiveConfig(abs_tol=1e-10, rel_tol=1e-8)
        traj = ode45(_oscillator, [0.0, 2.0 * math.pi], jnp.array([1.0, 0.0]), config)
        assert jnp.allclose(traj.final_state, jnp.array([1.0, 0.0]), atol=1e-6)

    def test_tighter_tolerance_takes_more_steps(self):
        loose = ode45(_oscillator, [0.0, 10.0], jnp.array([1.0, 0.0]))
        tight = ode45(
            _oscillator, [0.0, 10.0], jnp.array([1.0, 0.0]),
            AdaptiveConfig(abs_tol=1e-12, rel_tol=1e-10),
        )
        assert tight.stats.n_steps > loose.stats.n_steps


# ──────────────────────────────────────────────
# Multi-point span
# ──────────────────────────────────────────────

class TestMultiPointSpan:
    def test_outputs_exactly_requested_times(self):
        t_span = [0.0, 1.0, 2.5, 3.0, 4.0]
        traj = ode45(_growth, t_span, 5.0)
        assert traj.t.tolist() == t_span

    def test_accuracy_at_requested_times(self):
        t_span = jnp.linspace(0.0, 4.0, 9)
        traj = ode45(_growth, t_span, 5.0)
        expected = 5.0 * jnp.exp(0.2 * t_span)
        assert jnp.allclose(traj.y, expected, rtol=1e-3)

    def test_closely_spaced_outputs(self):
        t_span = [0.0, 1e-3, 2e-3, 1.0]
        traj = ode45(_oscillator, t_span, jnp.array([1.0, 0.0]))
        assert traj.y.shape == (4, 2)
        assert jnp.allclose(traj.y[1], jnp.array([jnp.cos(1e-3), -jnp.sin(1e-3)]), atol=1e-6)


# ──────────────────────────────────────────────
# Methods and statistics
# ──────────────────────────────────────────────

class TestMethods:
    def test_rkf45(self):
        traj = ode45(_growth, [0.0, 4.0], 5.0, method="rkf45")
        assert float(traj.final_state) == pytest.approx(5.0 * math.exp(0.8), rel=1e-3)
        assert float(traj.t[-1]) == 4.0

    def test_methods_agree(self):
        config = AdaptiveConfig(abs_tol=1e-10, rel_tol=1e-10)
        dp = ode45(_oscillator, [0.0, 3.0], jnp.array([1.0, 0.0]), config, method="dp54")
        rkf = ode45(_oscillator, [0.0, 3.0], jnp.array([1.0, 0.0]), config, method="rkf45")
        assert jnp.allclose(dp.final_state, rkf.final_state, atol=1e-7)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown adaptive method"):
            ode45(_growth, [0.0, 1.0], 5.0, method="rk23")

    def test_stats(self):
        traj = ode45(_growth, [0.0, 4.0], 5.0)
        assert traj.stats.n_steps > 0
        assert traj.stats.n_rejected >= 0
        # Seven stages, first one shared with the previous step
        assert traj.stats.n_evaluations >= 6 * traj.stats.n_steps

    def test_initial_step(self):
        traj = ode45(_growth, [0.0, 1.0], 5.0, AdaptiveConfig(initial_step=1e-3))
        assert float(traj.t[1]) == pytest.approx(1e-3)

    def test_logs_summary(self, caplog):
        with caplog.at_level(logging.INFO, logger="physmod"):
            ode45(_growth, [0.0, 1.0], 5.0)
        assert any("dp54 integrated" in record.getMessage() for record in caplog.records)


# ──────────────────────────────────────────────
# Failures
# ──────────────────────────────────────────────

class TestFailures:
    def test_step_size_underflow_near_singularity(self):
        config = AdaptiveConfig(abs_tol=1e-9, rel_tol=1e-6)
        with pytest.raises(StepSizeUnderflowError) as exc_info:
            ode45(_blow_up, [0.0, 2.0], 1.0, config)

        err = exc_info.value
        assert isinstance(err, RuntimeError)
        assert 0.99 < err.t < 1.0
        assert err.dt < err.min_step
        assert float(err.state) > 100.0

    @pytest.mark.parametrize(
        "t_span",
        [
            [0.0],
            [],
            [1.0, 0.0],
            [0.0, 0.0],
            [0.0, 2.0, 1.0],
            [0.0, 1.0, 1.0],
            [0.0, float("nan")],
            [0.0, float("inf")],
        ],
    )
    def test_invalid_time_span(self, t_span):
        with pytest.raises(InvalidTimeSpanError):
            ode45(_growth, t_span, 5.0)

    def test_scalar_time_span(self):
        with pytest.raises(InvalidTimeSpanError):
            ode45(_growth, 4.0, 5.0)

    def test_invalid_max_step(self):
        with pytest.raises(InvalidStepError):
            ode45(_growth, [0.0, 1.0], 5.0, AdaptiveConfig(max_step=0.0))

    def test_invalid_initial_step(self):
        with pytest.raises(InvalidStepError):
            ode45(_growth, [0.0, 1.0], 5.0, AdaptiveConfig(initial_step=-0.1))

    def test_non_finite_initial_derivative(self):
        with pytest.raises(RateFunctionError, match="non-finite"):
            ode45(lambda t, y: jnp.inf * y, [0.0, 1.0], 5.0)

    def test_rate_function_raises(self):
        def rate(t, y):
            raise KeyError("missing parameter")

        with pytest.raises(RateFunctionError) as exc_info:
            ode45(rate, [0.0, 1.0], 5.0)
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert float(exc_info.value.t) == 0.0

    def test_wrong_shape(self):
        with pytest.raises(RateFunctionError, match="shape"):
            ode45(lambda t, y: jnp.zeros(3), [0.0, 1.0], jnp.array([1.0, 0.0]))

    def test_stop_solver_passes_through(self):
        def rate(t, y):
            if t > 0.5:
                raise StopSolver("event reached")
            return y

        with pytest.raises(StopSolver, match="event reached"):
            ode45(rate, [0.0, 1.0], 1.0)
