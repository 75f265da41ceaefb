import jax.numpy as jnp
import pytest

from physmod.config import set_dtype


@pytest.fixture(autouse=True)
def _solve_in_float64():
    """Run every solver test in float64.

    Accuracy assertions (root to 1e-12, RK4 convergence ratios, step-size
    underflow near a singularity) assume double precision. Worker processes
    start in float32, so the dtype is set per test; test_config.py switches
    back to float32 with its own autouse fixture.
    """
    set_dtype(jnp.float64)
