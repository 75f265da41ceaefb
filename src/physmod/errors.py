"""Exception types.

Every failure raised by the solvers derives from :class:`PhysmodError` and
carries the offending inputs as attributes, so a caller can adjust the
parameters (smaller step, wider bracket, different guess) and retry.

Precondition failures also derive from :class:`ValueError`; failures of the
numerical method itself derive from :class:`RuntimeError`.  When a
caller-supplied rate or error function raises, the original exception is
chained as ``__cause__`` of the :class:`RateFunctionError` or
:class:`ErrorFunctionError`.

:class:`StopSolver` is the exception a rate or error function raises to end
a solve early; solvers let it through unchanged.
"""

from __future__ import annotations

from typing import Any


class PhysmodError(Exception):
    """Base class for all physmod errors."""


class StopSolver(Exception):
    """Raised by a caller's rate or error function to abort the solve.

    Not wrapped by the solvers: it reaches the caller unchanged.
    """


class InvalidStepError(PhysmodError, ValueError):
    """Fixed step size is not positive and finite, or too small to resolve in the configured dtype."""

    def __init__(self, dt: float, message: str | None = None):
        self.dt = dt
        if message is None:
            message = f"Step size must be positive and finite, got dt={dt!r}"
        super().__init__(message)


class InvalidTimeSpanError(PhysmodError, ValueError):
    """Requested time span is empty, reversed or not strictly increasing."""

    def __init__(self, message: str, t_span: Any = None):
        self.t_span = t_span
        super().__init__(message)


class RateFunctionError(PhysmodError):
    """Rate function raised or returned a value of the wrong shape.

    Attributes:
        t: Time at which the rate function was evaluated.
        state: State at which the rate function was evaluated.
    """

    def __init__(self, message: str, t: Any, state: Any):
        self.t = t
        self.state = state
        super().__init__(f"{message} (t={t!r}, state={state!r})")


class StepSizeUnderflowError(PhysmodError, RuntimeError):
    """Adaptive step size shrank below the smallest usable increment.

    Usually means the rate function is stiff, singular or discontinuous
    near ``t``.

    Attributes:
        t: Time of the last accepted sample.
        state: State of the last accepted sample.
        dt: Step size that fell below the minimum.
        min_step: The minimum step size at ``t``.
    """

    def __init__(self, t: float, state: Any, dt: float, min_step: float):
        self.t = t
        self.state = state
        self.dt = dt
        self.min_step = min_step
        super().__init__(
            f"Unable to meet integration tolerances without reducing the step "
            f"size below {min_step:.3e} at t={t!r} (dt={dt:.3e})"
        )


class ErrorFunctionError(PhysmodError):
    """Error function raised or returned something other than a real scalar.

    Attributes:
        x: Point at which the error function was evaluated.
    """

    def __init__(self, message: str, x: float):
        self.x = x
        super().__init__(f"{message} (x={x!r})")


class InvalidBracketError(PhysmodError, ValueError):
    """Supplied bracket has no sign change or zero width.

    Attributes:
        low: Lower end of the bracket.
        high: Upper end of the bracket.
        f_low: Error function value at ``low`` (``None`` if not evaluated).
        f_high: Error function value at ``high`` (``None`` if not evaluated).
    """

    def __init__(
        self,
        message: str,
        low: float,
        high: float,
        f_low: float | None = None,
        f_high: float | None = None,
    ):
        self.low = low
        self.high = high
        self.f_low = f_low
        self.f_high = f_high
        super().__init__(message)


class NoSignChangeFoundError(PhysmodError, RuntimeError):
    """Outward search from an initial guess never found a sign change.

    Attributes:
        x0: Initial guess.
        low: Lower end of the widest interval searched.
        high: Upper end of the widest interval searched.
        expansions: Number of expansion attempts made.
    """

    def __init__(self, x0: float, low: float, high: float, expansions: int):
        self.x0 = x0
        self.low = low
        self.high = high
        self.expansions = expansions
        super().__init__(
            f"No sign change found around x0={x0!r} after {expansions} "
            f"expansions (searched [{low!r}, {high!r}])"
        )


class NoConvergenceError(PhysmodError, RuntimeError):
    """Root finder hit its iteration limit.

    Attributes:
        estimate: The unconverged :class:`~physmod.roots.RootEstimate`
            at the point the solver gave up.
    """

    def __init__(self, estimate: Any, max_iter: int):
        self.estimate = estimate
        self.max_iter = max_iter
        super().__init__(
            f"Root finder did not converge in {max_iter} iterations "
            f"(last x={estimate.x!r}, f(x)={estimate.fx!r})"
        )
