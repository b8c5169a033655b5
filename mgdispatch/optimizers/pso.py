"""Particle Swarm Optimization with geometrically damped inertia.

Each particle carries a position, a velocity and its personal best.  The
update for particle ``i`` is

    v <- w * v + c1 * r1 * (pbest_i - x) + c2 * r2 * (gbest - x)
    v <- clip(v, -vel_max, vel_max)
    x <- clip(x + v, lower_bound, upper_bound)

with ``r1, r2`` drawn uniformly from ``[0, 1]^D`` per particle and step.
Personal and global bests are updated immediately after each evaluation, and
the inertia weight decays as ``w <- w * w_damp`` after every iteration.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np
from numpy.typing import NDArray

from mgdispatch.optimizers.base import (
    IterationFn,
    ObjectiveFn,
    OptimizationResult,
    PopulationOptimizer,
    RngLike,
    StopFn,
    _Run,
)
from mgdispatch.optimizers.options import PSOOptions

#: Initial velocities are drawn from ``[0, INITIAL_VELOCITY_FRACTION * (ub - lb)]``.
INITIAL_VELOCITY_FRACTION = 0.1


class ParticleSwarm(PopulationOptimizer[PSOOptions]):
    """Particle Swarm Optimizer.

    Options: ``max_iter``, ``n_particles``, ``w``, ``w_damp``, ``c1``,
    ``c2``, ``vel_max`` and optionally ``seed``.
    """

    name = "pso"
    options_model = PSOOptions

    def _search(
        self,
        run: _Run,
        should_stop: StopFn | None,
        on_iteration: IterationFn | None,
    ) -> OptimizationResult:
        opts = self.options
        n = opts.n_particles
        dim = run.dim

        positions = run.uniform(n)
        velocities = run.rng.random((n, dim)) * (INITIAL_VELOCITY_FRACTION * (run.ub - run.lb))

        pbest = positions.copy()
        pbest_cost = run.evaluate_all(positions)

        g = int(np.argmin(pbest_cost))
        gbest = pbest[g].copy()
        gbest_cost = float(pbest_cost[g])

        w = opts.w
        history: list[float] = []
        inertia: list[float] = []
        max_speed: list[float] = []
        cancelled = False

        for iteration in range(opts.max_iter):
            if should_stop is not None and should_stop():
                cancelled = True
                break

            for i in range(n):
                r1 = run.rng.random(dim)
                r2 = run.rng.random(dim)
                velocities[i] = (
                    w * velocities[i]
                    + opts.c1 * r1 * (pbest[i] - positions[i])
                    + opts.c2 * r2 * (gbest - positions[i])
                )
                velocities[i] = np.clip(velocities[i], -opts.vel_max, opts.vel_max)

                positions[i] = run.clip(positions[i] + velocities[i])
                cost = run.evaluate(positions[i])

                if cost < pbest_cost[i]:
                    pbest[i] = positions[i]
                    pbest_cost[i] = cost
                if cost < gbest_cost:
                    gbest = positions[i].copy()
                    gbest_cost = cost

            history.append(gbest_cost)
            inertia.append(w)
            max_speed.append(float(np.max(np.abs(velocities))))

            w *= opts.w_damp

            if on_iteration is not None:
                on_iteration(iteration + 1, gbest_cost)

        return OptimizationResult(
            best_position=gbest,
            best_cost=gbest_cost,
            history=np.asarray(history, dtype=np.float64),
            n_evaluations=run.n_evaluations,
            iterations=len(history),
            cancelled=cancelled,
            diagnostics={
                "inertia": np.asarray(inertia, dtype=np.float64),
                "max_abs_velocity": np.asarray(max_speed, dtype=np.float64),
            },
        )


def particle_swarm(
    objective: ObjectiveFn,
    lower_bound: NDArray[np.floating],
    upper_bound: NDArray[np.floating],
    options: PSOOptions | Mapping[str, Any],
    rng: RngLike = None,
) -> tuple[NDArray[np.float64], float]:
    """Run :class:`ParticleSwarm` and return ``(best_vector, best_cost)``."""
    optimizer = ParticleSwarm(options, rng=rng)
    return optimizer.optimize(objective, lower_bound, upper_bound).as_tuple()
