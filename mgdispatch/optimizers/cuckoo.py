"""Cuckoo Search metaheuristic with Lévy flights for continuous boxes.

Each iteration every nest lays a cuckoo egg: a candidate obtained by a
Lévy-flight step scaled by the nest's distance to the current best.  The egg
is dropped into a uniformly random host nest and survives only if it is
strictly better than the host.  Afterwards the worst quarter of the nests is
abandoned and rebuilt at random positions.

Two variants share the loop and differ in how the step scale ``alpha``
evolves:

* :class:`CuckooSearch` damps ``alpha`` geometrically every iteration.
* :class:`AdaptiveCuckooSearch` grows ``alpha`` by 20 % whenever the best
  cost stagnates (less than 5 % improvement over a look-back window run
  entirely at the current ``alpha``).  Growth is never undone: ``alpha`` is
  non-decreasing over a run.

Reference:
    Yang, X.-S., & Deb, S. (2009). Cuckoo search via Lévy flights.
    World Congress on Nature & Biologically Inspired Computing, 210–214.
"""

from __future__ import annotations

import logging
import math
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
from mgdispatch.optimizers.levy import levy_step
from mgdispatch.optimizers.options import AdaptiveCuckooOptions, CuckooOptions

logger = logging.getLogger(__name__)

#: Fraction of nests rebuilt every iteration (rounded down).
ABANDON_FRACTION = 0.25

#: Relative improvement below which the adaptive variant counts as stagnating.
STAGNATION_THRESHOLD = 0.05

#: Multiplier applied to ``alpha`` on stagnation.
ALPHA_GROWTH = 1.2


def abandon_count(n_nests: int) -> int:
    """Nests abandoned per iteration: ``floor(0.25 * n_nests)``."""
    return int(math.floor(ABANDON_FRACTION * n_nests))


class CuckooSearch(PopulationOptimizer[CuckooOptions]):
    """Cuckoo Search with a geometrically damped step scale.

    Options: ``max_iter``, ``n_nests``, ``alpha0``, ``alpha_damp`` and
    optionally ``beta`` (Lévy exponent, default 1.5) and ``seed``.
    """

    name = "cuckoo"
    options_model = CuckooOptions

    # ------------------------------------------------------------------
    # Step-scale control
    # ------------------------------------------------------------------

    def _next_alpha(
        self,
        alpha: float,
        iteration: int,
        history: list[float],
        held: int,
    ) -> float:
        """Step scale for the next iteration.

        ``held`` is the number of completed iterations run at ``alpha``.
        """
        return alpha * self.options.alpha_damp

    # ------------------------------------------------------------------
    # Search loop
    # ------------------------------------------------------------------

    def _search(
        self,
        run: _Run,
        should_stop: StopFn | None,
        on_iteration: IterationFn | None,
    ) -> OptimizationResult:
        opts = self.options
        n = opts.n_nests
        n_abandon = abandon_count(n)

        nests = run.uniform(n)
        fitness = run.evaluate_all(nests)

        best_idx = int(np.argmin(fitness))
        best_cost = float(fitness[best_idx])
        best = nests[best_idx].copy()

        alpha = opts.alpha0
        held = 0
        history: list[float] = []
        alphas: list[float] = []
        abandoned: list[int] = []
        cancelled = False

        for iteration in range(opts.max_iter):
            if should_stop is not None and should_stop():
                cancelled = True
                break

            # --- Phase 1: Lévy flight eggs dropped into random nests ---
            for i in range(n):
                step = levy_step(run.dim, opts.beta, run.rng)
                candidate = run.clip(nests[i] + alpha * step * (nests[i] - best))
                cost = run.evaluate(candidate)
                j = int(run.rng.integers(n))
                if cost < fitness[j]:
                    nests[j] = candidate
                    fitness[j] = cost

            # --- Phase 2: Abandon the worst nests ---
            if n_abandon:
                worst = np.argsort(-fitness, kind="stable")[:n_abandon]
                nests[worst] = run.uniform(n_abandon)
                fitness[worst] = run.evaluate_all(nests[worst])

            # --- Phase 3: Update global best ---
            current = int(np.argmin(fitness))
            if fitness[current] < best_cost:
                best_cost = float(fitness[current])
                best = nests[current].copy()
            history.append(best_cost)

            # --- Phase 4: Step-scale control ---
            held += 1
            next_alpha = self._next_alpha(alpha, iteration, history, held)
            if next_alpha != alpha:
                held = 0
            alpha = next_alpha
            alphas.append(alpha)
            abandoned.append(n_abandon)

            if on_iteration is not None:
                on_iteration(iteration + 1, best_cost)

        return OptimizationResult(
            best_position=best,
            best_cost=best_cost,
            history=np.asarray(history, dtype=np.float64),
            n_evaluations=run.n_evaluations,
            iterations=len(history),
            cancelled=cancelled,
            diagnostics={
                "alpha": np.asarray(alphas, dtype=np.float64),
                "abandoned": np.asarray(abandoned, dtype=np.int64),
            },
        )


class AdaptiveCuckooSearch(CuckooSearch):
    """Cuckoo Search whose step scale grows when progress stalls.

    Options: ``max_iter``, ``n_nests``, ``alpha0``, ``beta`` and optionally
    ``stagnation_window`` (default 10) and ``seed``.

    After iteration ``k`` (0-based), if ``k >= window``, the last ``window``
    iterations all ran at the current ``alpha``, and

        history[k - window] - best < 0.05 * history[k - window]

    then ``alpha`` is multiplied by 1.2.  There is no decay and no cap, but
    each growth has to be earned by a full window of stagnation at the grown
    value, so ``alpha`` rises at most once per window.
    """

    name = "cuckoo_adaptive"
    options_model = AdaptiveCuckooOptions

    def _next_alpha(
        self,
        alpha: float,
        iteration: int,
        history: list[float],
        held: int,
    ) -> float:
        window = self.options.stagnation_window
        if iteration < window or held < window:
            return alpha

        reference = history[iteration - window]
        if reference - history[iteration] < STAGNATION_THRESHOLD * reference:
            logger.debug(
                "Best cost stagnated over %d iterations; alpha %.4g -> %.4g",
                window,
                alpha,
                alpha * ALPHA_GROWTH,
                extra={
                    "optimizer": self.name,
                    "iteration": iteration + 1,
                    "alpha": alpha * ALPHA_GROWTH,
                },
            )
            return alpha * ALPHA_GROWTH
        return alpha


# ---------------------------------------------------------------------------
# Functional entry points
# ---------------------------------------------------------------------------


def cuckoo_search(
    objective: ObjectiveFn,
    lower_bound: NDArray[np.floating],
    upper_bound: NDArray[np.floating],
    options: CuckooOptions | Mapping[str, Any],
    rng: RngLike = None,
) -> tuple[NDArray[np.float64], float]:
    """Run :class:`CuckooSearch` and return ``(best_vector, best_cost)``."""
    optimizer = CuckooSearch(options, rng=rng)
    return optimizer.optimize(objective, lower_bound, upper_bound).as_tuple()


def cuckoo_search_adaptive(
    objective: ObjectiveFn,
    lower_bound: NDArray[np.floating],
    upper_bound: NDArray[np.floating],
    options: AdaptiveCuckooOptions | Mapping[str, Any],
    rng: RngLike = None,
) -> tuple[NDArray[np.float64], float]:
    """Run :class:`AdaptiveCuckooSearch` and return ``(best_vector, best_cost)``."""
    optimizer = AdaptiveCuckooSearch(options, rng=rng)
    return optimizer.optimize(objective, lower_bound, upper_bound).as_tuple()
