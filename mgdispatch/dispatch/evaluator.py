"""Soft-constraint objective for hybrid microgrid dispatch.

The objective of a candidate schedule ``x = [P_grid | P_diesel | P_batt]`` is

    total = direct operating cost + penalty

Direct cost:

* Grid import energy charge ``C_grid * sum(max(P_grid, 0))``
* Diesel generation cost ``C_diesel * sum(max(P_diesel, 0))``
* Battery throughput (degradation) cost ``C_batt * sum(|P_batt|)``

Penalty (every term quadratic in the violation, never fatal):

* Power balance residual ``P_pv + P_wind + P_grid + P_diesel + P_batt - load``,
  weighted by ``weights.balance``.
* SOC excursions outside ``[min_soc, max_soc]`` as reported by the battery
  simulator's clamping, weighted by ``weights.bounds``.
* Power limit violations (negative grid or diesel output, battery power
  outside ``[-max_charge, max_discharge]``), weighted by ``weights.bounds``.
  Grid and diesel ceilings are enforced by the search bounds only.

Infeasible schedules are therefore priced rather than rejected, letting the
metaheuristics move through infeasible regions of the search space.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mgdispatch.battery.soc_simulator import simulate_battery_trajectory
from mgdispatch.errors import InvalidConfiguration
from mgdispatch.problem import (
    PenaltyWeights,
    ProblemData,
    SystemParameters,
    horizon_of,
    split_decision_vector,
)


@dataclass(frozen=True)
class CostBreakdown:
    """Itemised objective value of one dispatch schedule."""

    grid_cost: float
    diesel_cost: float
    battery_cost: float
    balance_penalty: float
    soc_penalty: float
    limit_penalty: float

    @property
    def direct_cost(self) -> float:
        return self.grid_cost + self.diesel_cost + self.battery_cost

    @property
    def penalty(self) -> float:
        return self.balance_penalty + self.soc_penalty + self.limit_penalty

    @property
    def total(self) -> float:
        return self.direct_cost + self.penalty

    def as_dict(self) -> dict[str, float]:
        return {
            "grid_cost": self.grid_cost,
            "diesel_cost": self.diesel_cost,
            "battery_cost": self.battery_cost,
            "balance_penalty": self.balance_penalty,
            "soc_penalty": self.soc_penalty,
            "limit_penalty": self.limit_penalty,
            "direct_cost": self.direct_cost,
            "penalty": self.penalty,
            "total": self.total,
        }


# ---------------------------------------------------------------------------
# Individual terms
# ---------------------------------------------------------------------------


def power_balance_residual(
    x: NDArray[np.floating],
    data: ProblemData,
) -> NDArray[np.float64]:
    """Per-step supply minus demand (kW); zero for a balanced schedule."""
    p_grid, p_diesel, p_batt = split_decision_vector(x)
    return data.pv_kw + data.wind_kw + p_grid + p_diesel + p_batt - data.load_kw


def _squared_excess(values: NDArray[np.float64], limit: float) -> float:
    """Sum of squared amounts by which ``values`` exceed ``limit``."""
    excess = np.maximum(values - limit, 0.0)
    return float(np.dot(excess, excess))


def _limit_violation(
    p_grid: NDArray[np.float64],
    p_diesel: NDArray[np.float64],
    p_batt: NDArray[np.float64],
    params: SystemParameters,
) -> float:
    batt = params.battery
    return (
        _squared_excess(-p_grid, 0.0)
        + _squared_excess(-p_diesel, 0.0)
        + _squared_excess(p_batt, batt.max_discharge_kw)
        + _squared_excess(-p_batt, batt.max_charge_kw)
    )


def _check_dimension(x: NDArray[np.float64], data: ProblemData) -> None:
    T = horizon_of(x)
    if x.ndim != 1 or T != data.horizon:
        raise InvalidConfiguration(
            f"decision vector of shape {x.shape} implies horizon {T}, "
            f"problem data has horizon {data.horizon}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def evaluate_breakdown(
    x: NDArray[np.floating],
    data: ProblemData,
    params: SystemParameters,
    weights: PenaltyWeights | None = None,
) -> CostBreakdown:
    """Evaluate a candidate schedule and return every cost/penalty term.

    Parameters
    ----------
    x : ndarray, shape (3T,)
        Decision vector ``[P_grid | P_diesel | P_batt]`` in kW.  Expected to be
        within the optimizer bounds already; no clamping is applied here.
    data : ProblemData
        PV, wind and load series of horizon ``T``.
    params : SystemParameters
        Cost coefficients, power limits and battery parameters.
    weights : PenaltyWeights or None
        Penalty multipliers.  Defaults to :meth:`PenaltyWeights.from_settings`.

    Returns
    -------
    CostBreakdown

    Raises
    ------
    InvalidConfiguration
        If ``len(x) // 3`` does not match the data horizon.
    """
    x = np.asarray(x, dtype=np.float64)
    _check_dimension(x, data)
    if weights is None:
        weights = PenaltyWeights.from_settings()

    p_grid, p_diesel, p_batt = split_decision_vector(x)
    costs = params.costs

    residual = power_balance_residual(x, data)
    trajectory = simulate_battery_trajectory(p_batt, params.battery)

    return CostBreakdown(
        grid_cost=costs.grid * float(np.sum(np.maximum(p_grid, 0.0))),
        diesel_cost=costs.diesel * float(np.sum(np.maximum(p_diesel, 0.0))),
        battery_cost=costs.battery * float(np.sum(np.abs(p_batt))),
        balance_penalty=weights.balance * float(np.dot(residual, residual)),
        soc_penalty=weights.bounds * float(np.dot(trajectory.clamped, trajectory.clamped)),
        limit_penalty=weights.bounds * _limit_violation(p_grid, p_diesel, p_batt, params),
    )


def evaluate(
    x: NDArray[np.floating],
    data: ProblemData,
    params: SystemParameters,
    weights: PenaltyWeights | None = None,
) -> float:
    """Total cost (direct cost + penalties) of a candidate schedule."""
    return evaluate_breakdown(x, data, params, weights).total


class DispatchObjective:
    """Objective function bound to one ``(data, params, weights)`` triple.

    Instances are plain callables ``objective(x) -> float`` and hold no
    mutable state, so the same object can be handed to any optimizer.
    """

    def __init__(
        self,
        data: ProblemData,
        params: SystemParameters,
        weights: PenaltyWeights | None = None,
    ) -> None:
        self.data = data
        self.params = params
        self.weights = weights if weights is not None else PenaltyWeights.from_settings()

    @property
    def dimension(self) -> int:
        return 3 * self.data.horizon

    def __call__(self, x: NDArray[np.floating]) -> float:
        return evaluate(x, self.data, self.params, self.weights)

    def breakdown(self, x: NDArray[np.floating]) -> CostBreakdown:
        return evaluate_breakdown(x, self.data, self.params, self.weights)

    def __repr__(self) -> str:
        return (
            f"DispatchObjective(horizon={self.data.horizon}, "
            f"weights=({self.weights.balance:g}, {self.weights.bounds:g}))"
        )


def make_objective(
    data: ProblemData,
    params: SystemParameters,
    weights: PenaltyWeights | None = None,
) -> DispatchObjective:
    """Bind problem data and parameters into an optimizer objective."""
    return DispatchObjective(data, params, weights)
