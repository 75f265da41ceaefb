"""
physmod is a small library of ODE integrators and scalar root finders for physical modeling, implemented in JAX.
"""

from .config import set_dtype, get_dtype, get_machine_epsilon

from .errors import (
    PhysmodError,
    StopSolver,
    InvalidStepError,
    InvalidTimeSpanError,
    RateFunctionError,
    StepSizeUnderflowError,
    ErrorFunctionError,
    InvalidBracketError,
    NoSignChangeFoundError,
    NoConvergenceError,
)

from .integrators import (
    AdaptiveConfig,
    IntegrationStats,
    StepResult,
    Trajectory,
    euler,
    integrate_fixed,
    ode45,
    euler_step,
    rk4_step,
    dp54_step,
    rkf45_step,
)

from .roots import (
    Bracket,
    RootConfig,
    RootEstimate,
    brent,
    find_bracket,
    fzero,
)

__all__ = [
    # Config
    "set_dtype",
    "get_dtype",
    "get_machine_epsilon",
    # Errors
    "PhysmodError",
    "StopSolver",
    "InvalidStepError",
    "InvalidTimeSpanError",
    "RateFunctionError",
    "StepSizeUnderflowError",
    "ErrorFunctionError",
    "InvalidBracketError",
    "NoSignChangeFoundError",
    "NoConvergenceError",
    # Integrators
    "AdaptiveConfig",
    "IntegrationStats",
    "StepResult",
    "Trajectory",
    "euler",
    "integrate_fixed",
    "ode45",
    "euler_step",
    "rk4_step",
    "dp54_step",
    "rkf45_step",
    # Roots
    "Bracket",
    "RootConfig",
    "RootEstimate",
    "brent",
    "find_bracket",
    "fzero",
]
