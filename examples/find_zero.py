# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "physmod"]
#
# [tool.uv.sources]
# physmod = { path = ".." }
# ///
"""Find the launch angle that lands a projectile at a given range.

Uses fzero on the error function ``range(angle) - target``, where the range
for each trial angle comes from integrating the projectile's equations of
motion with ode45 (quadratic air drag, so there is no closed form). This is
the shooting method: a root finder wrapped around an integrator.

Requires physmod to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/find_zero.py [OPTIONS]

Examples:
    # Default: 30 m/s launch, 50 m target, low-angle solution
    uv run examples/find_zero.py

    # High-angle solution for the same target
    uv run examples/find_zero.py --guess 60

    # Bracket the angle instead of starting from a guess
    uv run examples/find_zero.py --low 5 --high 40
"""

import logging
import math
import sys
from typing import Annotated

import jax.numpy as jnp
import typer

from physmod import (
    AdaptiveConfig,
    NoSignChangeFoundError,
    PhysmodError,
    RootConfig,
    fzero,
    ode45,
    set_dtype,
)

set_dtype(jnp.float64)

GRAVITY = 9.81  # [m/s^2]


def main(
    speed: Annotated[float, typer.Option(help="Launch speed [m/s]")] = 30.0,
    target: Annotated[float, typer.Option(help="Target range [m]")] = 50.0,
    drag: Annotated[float, typer.Option(help="Drag coefficient per unit mass [1/m]")] = 0.01,
    guess: Annotated[float, typer.Option(help="Initial angle guess [deg]")] = 20.0,
    low: Annotated[
        float | None, typer.Option(help="Lower bracket angle [deg] (use with --high)")
    ] = None,
    high: Annotated[
        float | None, typer.Option(help="Upper bracket angle [deg] (use with --low)")
    ] = None,
    verbose: Annotated[bool, typer.Option(help="Log solver progress")] = False,
) -> None:
    """Solve for the launch angle that hits the target range."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    def projectile(t, state):
        """State: [x, y, vx, vy]."""
        vx, vy = state[2], state[3]
        v = jnp.sqrt(vx**2 + vy**2)
        return jnp.array([vx, vy, -drag * v * vx, -GRAVITY - drag * v * vy])

    flight_time = 2.0 * speed / GRAVITY
    config = AdaptiveConfig(abs_tol=1e-9, rel_tol=1e-9)

    def landing_range(angle_deg):
        theta = math.radians(angle_deg)
        state0 = jnp.array([0.0, 0.0, speed * math.cos(theta), speed * math.sin(theta)])
        times = jnp.linspace(0.0, flight_time, 401)
        traj = ode45(projectile, times, state0, config)
        # Interpolate the x position where height crosses zero on the way down
        heights = traj.y[:, 1]
        below = jnp.nonzero(heights[1:] < 0.0)[0]
        i = int(below[0])
        frac = float(heights[i] / (heights[i] - heights[i + 1]))
        return float(traj.y[i, 0] + frac * (traj.y[i + 1, 0] - traj.y[i, 0]))

    def range_error(angle_deg):
        return landing_range(angle_deg) - target

    x0 = [low, high] if low is not None and high is not None else guess
    try:
        estimate = fzero(range_error, x0, RootConfig(x_tol=1e-10))
    except NoSignChangeFoundError as exc:
        print(f"ERROR: target {target} m is out of reach near {exc.x0} deg: {exc}")
        sys.exit(1)
    except PhysmodError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    print(f"Launch angle: {estimate.x:.6f} deg")
    print(f"  Range: {landing_range(estimate.x):.6f} m (target {target} m)")
    print(f"  Iterations: {estimate.iterations}, evaluations: {estimate.evaluations}")


if __name__ == "__main__":
    typer.run(main)
