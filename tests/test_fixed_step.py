"""Tests for the fixed-step drivers (euler, integrate_fixed)."""

import jax.numpy as jnp
import pytest

from physmod.errors import (
    InvalidStepError,
    InvalidTimeSpanError,
    RateFunctionError,
    StopSolver,
)
from physmod.integrators import euler, integrate_fixed


def _growth(t, y):
    return 0.2 * y


def _oscillator(t, y):
    return jnp.array([y[1], -y[0]])


def _final_error(dt, n_steps, method="euler"):
    traj = integrate_fixed(_growth, 0.0, 5.0, dt, n_steps=n_steps, method=method)
    return abs(float(traj.y[-1]) - 5.0 * float(jnp.exp(0.8)))


# ──────────────────────────────────────────────
# Sample grid
# ──────────────────────────────────────────────

class TestSampleGrid:
    def test_n_steps_gives_n_plus_one_samples(self):
        traj = euler(_growth, 0.0, 5.0, dt=0.5, n_steps=4)
        assert traj.t.shape == (5,)
        assert traj.y.shape == (5,)
        assert jnp.allclose(traj.t, jnp.array([0.0, 0.5, 1.0, 1.5, 2.0]))

    def test_t_end_multiple_of_dt(self):
        """4.0 / 0.1 rounds to 40 steps, not 41."""
        traj = euler(_growth, 0.0, 5.0, dt=0.1, t_end=4.0)
        assert traj.t.shape == (41,)
        assert float(traj.t[-1]) == pytest.approx(4.0)

    def test_t_end_not_multiple_of_dt(self):
        """The last sample lands just past t_end."""
        traj = euler(_growth, 0.0, 5.0, dt=0.3, t_end=1.0)
        assert traj.t.shape == (5,)
        assert float(traj.t[-1]) == pytest.approx(1.2)

    def test_t_end_equal_to_t0(self):
        traj = euler(_growth, 1.0, 5.0, dt=0.1, t_end=1.0)
        assert traj.t.shape == (1,)
        assert float(traj.y[0]) == 5.0

    def test_zero_steps(self):
        traj = euler(_growth, 0.0, 5.0, dt=0.1, n_steps=0)
        assert traj.t.shape == (1,)
        assert traj.stats.n_steps == 0
        assert traj.stats.n_evaluations == 0

    def test_initial_sample(self):
        traj = euler(_growth, 2.0, 5.0, dt=0.1, n_steps=3)
        assert float(traj.t[0]) == 2.0
        assert float(traj.y[0]) == 5.0

    def test_times_strictly_increasing(self):
        traj = euler(_growth, 0.0, 5.0, dt=0.01, t_end=1.0)
        assert bool(jnp.all(jnp.diff(traj.t) > 0.0))

    def test_vector_state_shape(self):
        traj = euler(_oscillator, 0.0, jnp.array([1.0, 0.0]), dt=0.1, n_steps=10)
        assert traj.y.shape == (11, 2)

    def test_stats(self):
        traj = integrate_fixed(_growth, 0.0, 5.0, 0.1, n_steps=10, method="rk4")
        assert traj.stats.n_steps == 10
        assert traj.stats.n_rejected == 0
        assert traj.stats.n_evaluations == 40


# ──────────────────────────────────────────────
# Accuracy
# ──────────────────────────────────────────────

class TestAccuracy:
    def test_euler_recurrence(self):
        """Each sample is the previous one plus slope times dt."""
        traj = euler(_growth, 0.0, 5.0, dt=0.1, n_steps=3)
        expected = 5.0 * 1.02 ** jnp.arange(4)
        assert jnp.allclose(traj.y, expected)

    def test_euler_population_growth(self):
        traj = euler(_growth, 0.0, 5.0, dt=0.1, t_end=4.0)
        assert float(traj.final_state) == pytest.approx(5.0 * jnp.exp(0.8), rel=1e-2)

    def test_euler_first_order_convergence(self):
        """Halving dt roughly halves the global error."""
        ratio = _final_error(0.1, 40) / _final_error(0.05, 80)
        assert 1.8 < ratio < 2.2

    def test_rk4_fourth_order_convergence(self):
        """Halving dt cuts the RK4 error by about 16."""
        ratio = _final_error(0.2, 20, "rk4") / _final_error(0.1, 40, "rk4")
        assert 12.0 < ratio < 20.0

    def test_rk4_oscillator(self):
        traj = integrate_fixed(
            _oscillator, 0.0, jnp.array([1.0, 0.0]), 0.01, n_steps=100, method="rk4"
        )
        expected = jnp.array([jnp.cos(1.0), -jnp.sin(1.0)])
        assert jnp.allclose(traj.final_state, expected, atol=1e-9)


# ──────────────────────────────────────────────
# Input validation
# ──────────────────────────────────────────────

class TestValidation:
    @pytest.mark.parametrize("dt", [0.0, -0.1, float("nan"), float("inf")])
    def test_invalid_dt(self, dt):
        with pytest.raises(InvalidStepError):
            euler(_growth, 0.0, 5.0, dt=dt, n_steps=10)

    def test_invalid_dt_attribute(self):
        with pytest.raises(InvalidStepError) as exc_info:
            euler(_growth, 0.0, 5.0, dt=-0.5, n_steps=10)
        assert exc_info.value.dt == -0.5

    def test_invalid_dt_is_value_error(self):
        with pytest.raises(ValueError):
            euler(_growth, 0.0, 5.0, dt=-1.0, n_steps=10)

    def test_t_end_before_t0(self):
        with pytest.raises(InvalidTimeSpanError):
            euler(_growth, 1.0, 5.0, dt=0.1, t_end=0.0)

    def test_both_plans_given(self):
        with pytest.raises(ValueError, match="Exactly one"):
            euler(_growth, 0.0, 5.0, dt=0.1, n_steps=10, t_end=1.0)

    def test_no_plan_given(self):
        with pytest.raises(ValueError, match="Exactly one"):
            euler(_growth, 0.0, 5.0, dt=0.1)

    def test_negative_n_steps(self):
        with pytest.raises(ValueError, match="non-negative"):
            euler(_growth, 0.0, 5.0, dt=0.1, n_steps=-1)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown fixed-step method"):
            integrate_fixed(_growth, 0.0, 5.0, 0.1, n_steps=1, method="midpoint")

    def test_rate_fn_not_callable(self):
        with pytest.raises(TypeError, match="callable"):
            euler(_growth(0.0, 5.0), 0.0, 5.0, dt=0.1, n_steps=1)


# ──────────────────────────────────────────────
# Rate function failures
# ──────────────────────────────────────────────

class TestRateFunctionFailures:
    def test_returns_none(self):
        with pytest.raises(RateFunctionError, match="no value"):
            euler(lambda t, y: None, 0.0, 5.0, dt=0.1, n_steps=3)

    def test_wrong_shape(self):
        with pytest.raises(RateFunctionError, match="shape"):
            euler(lambda t, y: jnp.array([1.0, 2.0]), 0.0, 5.0, dt=0.1, n_steps=3)

    def test_non_finite(self):
        with pytest.raises(RateFunctionError, match="non-finite"):
            euler(lambda t, y: jnp.nan * y, 0.0, 5.0, dt=0.1, n_steps=3)

    def test_complex(self):
        with pytest.raises(RateFunctionError, match="complex"):
            euler(lambda t, y: 1j * y, 0.0, 5.0, dt=0.1, n_steps=3)

    def test_exception_is_wrapped_with_context(self):
        """The failing (t, y) is attached and the original error chained."""

        def rate(t, y):
            if t > 0.25:
                raise ZeroDivisionError("boom")
            return y

        with pytest.raises(RateFunctionError) as exc_info:
            euler(rate, 0.0, 1.0, dt=0.1, n_steps=10)

        err = exc_info.value
        assert isinstance(err.__cause__, ZeroDivisionError)
        assert float(err.t) == pytest.approx(0.3)
        assert float(err.state) == pytest.approx(1.1**3)

    def test_stop_solver_passes_through(self):
        def rate(t, y):
            if t > 0.5:
                raise StopSolver
            return y

        with pytest.raises(StopSolver):
            euler(rate, 0.0, 1.0, dt=0.1, n_steps=10)
