"""Validation wrapper around caller-supplied error functions."""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np
from jax.typing import ArrayLike

from physmod.errors import ErrorFunctionError, StopSolver


class CheckedErrorFunction:
    """Callable that evaluates ``error_fn(x)`` and returns a finite Python float.

    Exceptions, missing return values, non-scalar, complex, boolean and
    non-finite results all become :class:`~physmod.errors.ErrorFunctionError`
    with ``x`` attached. :class:`~physmod.errors.StopSolver` passes through.

    Raises:
        TypeError: If ``error_fn`` is not callable.
    """

    def __init__(self, error_fn: Callable[[float], ArrayLike]):
        if not callable(error_fn):
            raise TypeError(
                f"error_fn must be a callable g(x), got {type(error_fn).__name__}. "
                f"Pass the function itself, not the result of calling it."
            )
        self.error_fn = error_fn
        self.calls = 0

    def __call__(self, x: float) -> float:
        self.calls += 1
        try:
            value = self.error_fn(x)
        except StopSolver:
            raise
        except Exception as exc:
            raise ErrorFunctionError(
                f"Error function raised {type(exc).__name__}: {exc}", x
            ) from exc

        if value is None:
            raise ErrorFunctionError("Error function returned no value", x)
        if np.iscomplexobj(value):
            raise ErrorFunctionError("Error function returned a complex value", x)
        try:
            arr = np.asarray(value)
        except (TypeError, ValueError) as exc:
            raise ErrorFunctionError(
                f"Error function returned a non-numeric {type(value).__name__}", x
            ) from exc

        # bool and str arrays are not np.number
        if not np.issubdtype(arr.dtype, np.number):
            raise ErrorFunctionError(
                f"Error function returned a non-numeric {type(value).__name__}", x
            )
        if arr.size != 1:
            raise ErrorFunctionError(
                f"Error function returned {arr.size} values, expected a scalar", x
            )

        fx = float(arr.reshape(()))
        if not math.isfinite(fx):
            raise ErrorFunctionError(f"Error function returned {fx}", x)
        return fx
