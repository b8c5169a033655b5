"""Dispatch planning orchestrator for a single forecast horizon.

``DispatchPlanner`` wires the problem data, the soft-constraint objective and
a chosen metaheuristic into one offline planning pass.  It builds the search
bounds, runs the optimizer, and turns the best decision vector back into
per-resource schedules with the matching SOC trajectory and cost breakdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import numpy as np
from numpy.typing import NDArray

from mgdispatch.battery.soc_simulator import simulate_battery
from mgdispatch.core.logging import optimizer_run
from mgdispatch.dispatch.evaluator import (
    CostBreakdown,
    DispatchObjective,
    power_balance_residual,
)
from mgdispatch.errors import InvalidConfiguration
from mgdispatch.optimizers import OPTIMIZERS, OptimizationResult
from mgdispatch.optimizers.base import RngLike, StopFn
from mgdispatch.problem import (
    PenaltyWeights,
    ProblemData,
    SystemParameters,
    build_bounds,
    split_decision_vector,
)

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str, float], None]


@dataclass
class DispatchPlan:
    """Best schedule found by one optimizer run."""

    method: str
    grid_kw: NDArray[np.float64]
    diesel_kw: NDArray[np.float64]
    battery_kw: NDArray[np.float64]
    soc: NDArray[np.float64]
    balance_residual_kw: NDArray[np.float64]
    breakdown: CostBreakdown
    result: OptimizationResult
    run_id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def best_cost(self) -> float:
        return self.result.best_cost

    @property
    def horizon(self) -> int:
        return int(self.grid_kw.shape[0])

    def to_dict(self) -> dict[str, Any]:
        """Plain-Python representation for serialization."""
        return {
            "method": self.method,
            "run_id": self.run_id,
            "best_cost": self.best_cost,
            "grid_kw": self.grid_kw.tolist(),
            "diesel_kw": self.diesel_kw.tolist(),
            "battery_kw": self.battery_kw.tolist(),
            "soc": self.soc.tolist(),
            "balance_residual_kw": self.balance_residual_kw.tolist(),
            "cost_breakdown": self.breakdown.as_dict(),
            "iterations": self.result.iterations,
            "n_evaluations": self.result.n_evaluations,
            "cancelled": self.result.cancelled,
            "history": self.result.history.tolist(),
            **self.metadata,
        }


class DispatchPlanner:
    """Plan the dispatch of grid, diesel and battery over one horizon.

    Parameters
    ----------
    data : ProblemData
        PV, wind and load series for the horizon.
    params : SystemParameters
        Cost coefficients, power limits and battery parameters.
    weights : PenaltyWeights or None
        Soft-constraint weights.  Defaults to the configured settings.
    allow_charging : bool
        Whether the battery block may go negative (charging).  Default True.
    progress_callback : callable or None
        ``progress_callback(step, fraction)`` for UI progress reporting.
    """

    def __init__(
        self,
        data: ProblemData,
        params: SystemParameters,
        weights: PenaltyWeights | None = None,
        allow_charging: bool = True,
        progress_callback: ProgressFn | None = None,
    ) -> None:
        self.data = data
        self.params = params
        self.objective = DispatchObjective(data, params, weights)
        self.allow_charging = allow_charging
        self._progress = progress_callback

        self.lower_bound, self.upper_bound = build_bounds(
            data.horizon, params, allow_charging=allow_charging
        )

    # ------------------------------------------------------------------
    # Progress reporting
    # ------------------------------------------------------------------

    def _report(self, step: str, fraction: float) -> None:
        """Fire the progress callback if one was provided."""
        if self._progress is not None:
            try:
                self._progress(step, fraction)
            except Exception:
                # A failing UI hook must not abort the planning pass.
                logger.warning("Progress callback failed at step %r", step, exc_info=True)
        logger.debug("Planning step: %s (%.0f %%)", step, fraction * 100)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(
        self,
        method: str,
        options: Mapping[str, Any],
        rng: RngLike = None,
        should_stop: StopFn | None = None,
    ) -> DispatchPlan:
        """Run optimizer ``method`` and return the resulting plan.

        Parameters
        ----------
        method : str
            One of ``"cuckoo_adaptive"``, ``"cuckoo"`` or ``"pso"``.
        options : mapping
            Optimizer options (validated before any evaluation).
        rng : Generator, int or None
            Random source overriding the ``seed`` option.
        should_stop : callable or None
            Cancellation hook polled at iteration boundaries.

        Raises
        ------
        InvalidConfiguration
            Unknown method or invalid options.
        """
        if method not in OPTIMIZERS:
            raise InvalidConfiguration(
                f"Unknown optimizer '{method}'. Choose from: {sorted(OPTIMIZERS)}"
            )
        optimizer = OPTIMIZERS[method](options, rng=rng)
        max_iter = optimizer.options.max_iter

        with optimizer_run() as run_id:
            self._report(f"Running {method}", 0.0)
            logger.info(
                "Planning %d-step horizon with %s (charging %s)",
                self.data.horizon,
                method,
                "enabled" if self.allow_charging else "disabled",
                extra={"optimizer": method},
            )

            def _on_iteration(iteration: int, best_cost: float) -> None:
                self._report(f"{method} iteration {iteration}", iteration / max_iter)

            result = optimizer.optimize(
                self.objective,
                self.lower_bound,
                self.upper_bound,
                should_stop=should_stop,
                on_iteration=_on_iteration,
            )

            plan = self._build_plan(method, result, run_id)
            self._report(f"{method} complete", 1.0)

        logger.info(
            "%s plan: cost %.2f (direct %.2f, penalty %.2f)",
            method,
            plan.breakdown.total,
            plan.breakdown.direct_cost,
            plan.breakdown.penalty,
            extra={"optimizer": method, "best_cost": plan.best_cost},
        )
        return plan

    def compare(
        self,
        runs: Mapping[str, Mapping[str, Any]],
        rng: int | None = None,
    ) -> dict[str, DispatchPlan]:
        """Plan the same horizon with several optimizers.

        ``runs`` maps optimizer name to its options.  Each run gets its own
        random stream derived from ``rng`` (or from its ``seed`` option).
        """
        plans: dict[str, DispatchPlan] = {}
        for method, options in runs.items():
            plans[method] = self.plan(method, options, rng=rng)

        if plans:
            best = min(plans.values(), key=lambda p: p.best_cost)
            logger.info(
                "Comparison: %s",
                ", ".join(f"{name}={plan.best_cost:.2f}" for name, plan in plans.items()),
                extra={"optimizer": best.method, "best_cost": best.best_cost},
            )
        return plans

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    def _build_plan(
        self,
        method: str,
        result: OptimizationResult,
        run_id: str,
    ) -> DispatchPlan:
        x = result.best_position
        grid, diesel, battery = split_decision_vector(x)
        return DispatchPlan(
            method=method,
            grid_kw=grid.copy(),
            diesel_kw=diesel.copy(),
            battery_kw=battery.copy(),
            soc=simulate_battery(battery, self.params.battery),
            balance_residual_kw=power_balance_residual(x, self.data),
            breakdown=self.objective.breakdown(x),
            result=result,
            run_id=run_id,
            metadata={"allow_charging": self.allow_charging},
        )
