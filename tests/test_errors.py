"""Tests for the physmod.errors exception hierarchy."""

import pytest

import physmod
from physmod.errors import (
    ErrorFunctionError,
    InvalidBracketError,
    InvalidStepError,
    InvalidTimeSpanError,
    NoConvergenceError,
    NoSignChangeFoundError,
    PhysmodError,
    RateFunctionError,
    StepSizeUnderflowError,
    StopSolver,
)
from physmod.roots import RootEstimate


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            InvalidStepError,
            InvalidTimeSpanError,
            RateFunctionError,
            StepSizeUnderflowError,
            ErrorFunctionError,
            InvalidBracketError,
            NoSignChangeFoundError,
            NoConvergenceError,
        ],
    )
    def test_all_derive_from_physmod_error(self, cls):
        assert issubclass(cls, PhysmodError)

    @pytest.mark.parametrize("cls", [InvalidStepError, InvalidTimeSpanError, InvalidBracketError])
    def test_precondition_errors_are_value_errors(self, cls):
        assert issubclass(cls, ValueError)

    @pytest.mark.parametrize(
        "cls", [StepSizeUnderflowError, NoSignChangeFoundError, NoConvergenceError]
    )
    def test_method_failures_are_runtime_errors(self, cls):
        assert issubclass(cls, RuntimeError)

    def test_stop_solver_is_not_physmod_error(self):
        assert not issubclass(StopSolver, PhysmodError)

    def test_exported_at_top_level(self):
        assert physmod.PhysmodError is PhysmodError
        assert physmod.StopSolver is StopSolver


class TestAttributes:
    def test_invalid_step(self):
        err = InvalidStepError(-0.1)
        assert err.dt == -0.1
        assert "-0.1" in str(err)

    def test_invalid_step_custom_message(self):
        err = InvalidStepError(0.1, "dt below resolution")
        assert err.dt == 0.1
        assert str(err) == "dt below resolution"

    def test_invalid_time_span(self):
        err = InvalidTimeSpanError("t_span must be strictly increasing", [1.0, 0.0])
        assert err.t_span == [1.0, 0.0]
        assert str(err) == "t_span must be strictly increasing"

    def test_rate_function(self):
        err = RateFunctionError("Rate function returned no value", 0.5, 2.0)
        assert err.t == 0.5
        assert err.state == 2.0
        assert "t=0.5" in str(err)

    def test_step_size_underflow(self):
        err = StepSizeUnderflowError(0.999, 1e12, 1e-16, 3.5e-15)
        assert err.t == 0.999
        assert err.state == 1e12
        assert err.dt == 1e-16
        assert err.min_step == 3.5e-15
        assert "t=0.999" in str(err)

    def test_error_function(self):
        err = ErrorFunctionError("Error function returned nan", 1.5)
        assert err.x == 1.5
        assert "x=1.5" in str(err)

    def test_invalid_bracket(self):
        err = InvalidBracketError("same sign", 0.0, 1.0, -3.0, -4.0)
        assert (err.low, err.high, err.f_low, err.f_high) == (0.0, 1.0, -3.0, -4.0)

    def test_invalid_bracket_values_optional(self):
        err = InvalidBracketError("zero width", 2.0, 2.0)
        assert err.f_low is None
        assert err.f_high is None

    def test_no_sign_change_found(self):
        err = NoSignChangeFoundError(1.0, -5.0, 7.0, 10)
        assert err.x0 == 1.0
        assert err.low == -5.0
        assert err.high == 7.0
        assert err.expansions == 10

    def test_no_convergence(self):
        estimate = RootEstimate(x=2.9, fx=-0.39, iterations=2, evaluations=4, converged=False)
        err = NoConvergenceError(estimate, 2)
        assert err.estimate is estimate
        assert err.max_iter == 2
        assert "2 iterations" in str(err)
