# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "physmod"]
#
# [tool.uv.sources]
# physmod = { path = ".." }
# ///
"""Compare Euler's method against ode45 on exponential population growth.

Integrates dy/dt = rate * y from y(0) = y0 and prints the fixed-step Euler
solution, the adaptive ode45 solution and the exact solution y0 * exp(rate * t)
side by side. Halving ``--dt`` should roughly halve the Euler error.

Requires physmod to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/population_growth.py [OPTIONS]

Examples:
    # Default: 5 individuals growing at 20% per unit time for 4 time units
    uv run examples/population_growth.py

    # Smaller Euler step, tighter ode45 tolerance
    uv run examples/population_growth.py --dt 0.01 --rel-tol 1e-8

    # Fehlberg pair instead of Dormand-Prince, with solver logging
    uv run examples/population_growth.py --method rkf45 --verbose
"""

import enum
import logging
import math
import time
from typing import Annotated

import jax.numpy as jnp
import typer

from physmod import AdaptiveConfig, euler, ode45, set_dtype

set_dtype(jnp.float64)


class Method(enum.StrEnum):
    """Embedded Runge-Kutta pair used by ode45."""

    dp54 = "dp54"
    rkf45 = "rkf45"


def main(
    y0: Annotated[float, typer.Option(help="Initial population")] = 5.0,
    rate: Annotated[float, typer.Option(help="Growth rate per unit time")] = 0.2,
    t_end: Annotated[float, typer.Option(help="Final time")] = 4.0,
    dt: Annotated[float, typer.Option(help="Euler step size")] = 0.1,
    rel_tol: Annotated[float, typer.Option(help="ode45 relative tolerance")] = 1e-3,
    abs_tol: Annotated[float, typer.Option(help="ode45 absolute tolerance")] = 1e-6,
    method: Annotated[Method, typer.Option(help="ode45 embedded pair")] = Method.dp54,
    verbose: Annotated[bool, typer.Option(help="Log solver progress")] = False,
) -> None:
    """Integrate exponential growth with euler and ode45 and report the errors."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    def growth(t, y):
        return rate * y

    def exact(t):
        return y0 * math.exp(rate * t)

    # ── Euler ────────────────────────────────────────────────────────────
    t0 = time.perf_counter()
    fixed = euler(growth, 0.0, y0, dt=dt, t_end=t_end)
    print(f"── Euler (dt={dt}) ── {time.perf_counter() - t0:.3f}s")
    print(f"  Samples: {fixed.t.shape[0]}, evaluations: {fixed.stats.n_evaluations}")
    t_last = float(fixed.final_time)
    y_last = float(fixed.final_state)
    print(f"  y({t_last:g}) = {y_last:.6f}  exact {exact(t_last):.6f}  "
          f"error {abs(y_last - exact(t_last)):.3e}")

    # ── ode45 ────────────────────────────────────────────────────────────
    config = AdaptiveConfig(abs_tol=abs_tol, rel_tol=rel_tol)
    t0 = time.perf_counter()
    adaptive = ode45(growth, [0.0, t_end], y0, config, method=method.value)
    print(f"\n── ode45 ({method.value}, rel_tol={rel_tol}, abs_tol={abs_tol}) ── "
          f"{time.perf_counter() - t0:.3f}s")
    stats = adaptive.stats
    print(f"  Steps: {stats.n_steps} ({stats.n_rejected} rejected), "
          f"evaluations: {stats.n_evaluations}")

    print(f"\n  {'t':>10}  {'y':>14}  {'exact':>14}  {'rel. error':>10}")
    for t_i, y_i in zip(adaptive.t.tolist(), adaptive.y.tolist()):
        y_exact = exact(t_i)
        print(f"  {t_i:10.5f}  {y_i:14.8f}  {y_exact:14.8f}  "
              f"{abs(y_i - y_exact) / abs(y_exact):10.2e}")


if __name__ == "__main__":
    typer.run(main)
