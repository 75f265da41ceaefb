"""Module-wide floating-point precision configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
for every state, trajectory and tolerance in physmod.  The default is
``jnp.float32``, matching JAX's own default.  Switching to ``jnp.float64``
automatically enables JAX's 64-bit mode (``jax_enable_x64``).

Call ``set_dtype`` **before** any JIT compilation, just like JAX's own
``jax.config.update("jax_enable_x64", True)``.  Under JIT, ``get_dtype()``
runs during tracing and its result is baked into the compiled program.

The integrators derive their precision limits from the configured dtype:
the adaptive minimum step scales with :func:`get_machine_epsilon`, and
both drivers reject time grids the dtype cannot resolve.  The root finder
iterates in Python floats and is not affected.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64)

_dtype = jnp.float32


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for physmod.

    Must be called **before** any ``jax.jit`` compilation.  In eager mode
    the change takes effect immediately.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is automatically
    enabled via ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32``,
            or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float32``).
    """
    return _dtype


def get_machine_epsilon() -> float:
    """Return the machine epsilon of the configured float dtype.

    - ``float64``:  ~2.2e-16
    - ``float32``:  ~1.2e-7
    - ``bfloat16``: ~7.8e-3
    - ``float16``:  ~9.8e-4

    Returns:
        float: Spacing between 1.0 and the next representable value.
    """
    return float(jnp.finfo(_dtype).eps)


def get_smallest_normal() -> float:
    """Return the smallest positive normal number of the configured dtype."""
    return float(jnp.finfo(_dtype).tiny)
