"""Tests for mgdispatch.dispatch -- cost and soft-constraint penalties."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from mgdispatch.dispatch import (
    DispatchObjective,
    evaluate,
    evaluate_breakdown,
    make_objective,
    power_balance_residual,
)
from mgdispatch.errors import InvalidConfiguration
from mgdispatch.problem import (
    CostCoefficients,
    PenaltyWeights,
    ProblemData,
    SystemParameters,
    build_bounds,
)

HORIZON = 24


def _schedule(grid=0.0, diesel=0.0, battery=0.0, horizon=HORIZON) -> np.ndarray:
    return np.concatenate([
        np.broadcast_to(np.asarray(grid, dtype=float), (horizon,)),
        np.broadcast_to(np.asarray(diesel, dtype=float), (horizon,)),
        np.broadcast_to(np.asarray(battery, dtype=float), (horizon,)),
    ])


class TestBalancedZeroSchedule:
    def test_total_cost_is_zero(self, balanced_data, system_params, weights):
        breakdown = evaluate_breakdown(_schedule(), balanced_data, system_params, weights)
        assert breakdown.direct_cost == 0.0
        assert breakdown.penalty == 0.0
        assert breakdown.total == 0.0

    def test_residual_is_zero(self, balanced_data):
        residual = power_balance_residual(_schedule(), balanced_data)
        np.testing.assert_array_equal(residual, np.zeros(HORIZON))


class TestDirectCost:
    def test_grid_cost(self, balanced_data, system_params, weights):
        b = evaluate_breakdown(_schedule(grid=10.0), balanced_data, system_params, weights)
        assert b.grid_cost == pytest.approx(0.05 * 10.0 * HORIZON)

    def test_battery_cost_uses_absolute_power(self, balanced_data, system_params, weights):
        b_dis = evaluate_breakdown(_schedule(battery=5.0), balanced_data, system_params, weights)
        b_chg = evaluate_breakdown(_schedule(battery=-5.0), balanced_data, system_params, weights)
        assert b_dis.battery_cost == pytest.approx(b_chg.battery_cost)
        assert b_dis.battery_cost == pytest.approx(0.10 * 5.0 * HORIZON)

    @pytest.mark.parametrize(
        "resource, schedule",
        [
            ("grid", {"grid": 7.0}),
            ("diesel", {"diesel": 7.0}),
            ("battery", {"battery": 7.0}),
        ],
    )
    def test_raising_coefficient_raises_direct_cost(
        self, resource, schedule, balanced_data, system_params, weights
    ):
        x = _schedule(**schedule)
        base = evaluate_breakdown(x, balanced_data, system_params, weights).direct_cost

        costs = replace(system_params.costs, **{resource: getattr(system_params.costs, resource) * 2})
        pricier = replace(system_params, costs=costs)
        raised = evaluate_breakdown(x, balanced_data, pricier, weights).direct_cost

        assert raised > base


class TestPenalties:
    def test_balance_penalty_is_weighted_squared_residual(
        self, balanced_data, system_params, weights
    ):
        # 2 kW oversupply from grid every step
        b = evaluate_breakdown(_schedule(grid=2.0), balanced_data, system_params, weights)
        assert b.balance_penalty == pytest.approx(1e3 * 4.0 * HORIZON)

    def test_negative_grid_penalised(self, balanced_data, system_params, weights):
        b = evaluate_breakdown(_schedule(grid=-1.0), balanced_data, system_params, weights)
        assert b.limit_penalty == pytest.approx(1e5 * 1.0 * HORIZON)
        assert b.grid_cost == 0.0

    def test_negative_diesel_penalised(self, balanced_data, system_params, weights):
        b = evaluate_breakdown(_schedule(diesel=-2.0), balanced_data, system_params, weights)
        assert b.limit_penalty == pytest.approx(1e5 * 4.0 * HORIZON)

    def test_battery_above_max_discharge_penalised(
        self, balanced_data, system_params, weights
    ):
        x = _schedule(battery=np.r_[60.0, np.zeros(HORIZON - 1)])
        b = evaluate_breakdown(x, balanced_data, system_params, weights)
        assert b.limit_penalty == pytest.approx(1e5 * 10.0 ** 2)

    def test_battery_below_max_charge_penalised(
        self, balanced_data, system_params, weights
    ):
        x = _schedule(battery=np.r_[-53.0, np.zeros(HORIZON - 1)])
        b = evaluate_breakdown(x, balanced_data, system_params, weights)
        assert b.limit_penalty == pytest.approx(1e5 * 3.0 ** 2)

    def test_grid_and_diesel_ceilings_left_to_bounds(
        self, balanced_data, system_params, weights
    ):
        x = _schedule(grid=600.0, diesel=700.0)
        b = evaluate_breakdown(x, balanced_data, system_params, weights)
        assert b.limit_penalty == 0.0

    def test_soc_excursion_is_penalised(self, balanced_data, system_params, weights):
        # Discharging at the limit every hour empties the battery well before
        # the end of the day; the simulator clamps and the penalty sees it.
        x = _schedule(battery=50.0)
        b = evaluate_breakdown(x, balanced_data, system_params, weights)
        assert b.soc_penalty > 0
        assert b.limit_penalty == 0.0

    def test_feasible_soc_not_penalised(self, balanced_data, system_params, weights):
        x = _schedule(battery=np.r_[10.0, -10.0, np.zeros(HORIZON - 2)])
        b = evaluate_breakdown(x, balanced_data, system_params, weights)
        assert b.soc_penalty == 0.0

    def test_weights_are_configurable(self, balanced_data, system_params):
        x = _schedule(grid=1.0)
        loose = evaluate(x, balanced_data, system_params, PenaltyWeights(balance=1.0, bounds=1.0))
        strict = evaluate(x, balanced_data, system_params, PenaltyWeights(balance=1e6, bounds=1.0))
        assert strict > loose

    def test_default_weights_from_settings(self, balanced_data, system_params):
        objective = DispatchObjective(balanced_data, system_params)
        assert objective.weights == PenaltyWeights.from_settings()


class TestEvaluatorContract:
    def test_total_equals_breakdown_total(self, sample_data, system_params, weights):
        rng = np.random.default_rng(3)
        lb, ub = build_bounds(HORIZON, system_params)
        x = lb + rng.random(3 * HORIZON) * (ub - lb)
        assert evaluate(x, sample_data, system_params, weights) == pytest.approx(
            evaluate_breakdown(x, sample_data, system_params, weights).total
        )

    def test_pure_and_repeatable(self, sample_data, system_params, weights):
        objective = make_objective(sample_data, system_params, weights)
        x = _schedule(grid=30.0, diesel=10.0, battery=-5.0)
        before = x.copy()
        first = objective(x)
        for _ in range(5):
            assert objective(x) == first
        np.testing.assert_array_equal(x, before)

    def test_finite_for_in_bounds_input(self, sample_data, system_params, weights):
        rng = np.random.default_rng(11)
        objective = make_objective(sample_data, system_params, weights)
        lb, ub = build_bounds(HORIZON, system_params)
        for _ in range(20):
            x = lb + rng.random(lb.shape[0]) * (ub - lb)
            assert np.isfinite(objective(x))

    def test_horizon_mismatch_raises(self, sample_data, system_params, weights):
        with pytest.raises(InvalidConfiguration, match="horizon"):
            evaluate(np.zeros(3 * 12), sample_data, system_params, weights)

    def test_objective_dimension(self, sample_data, system_params):
        assert make_objective(sample_data, system_params).dimension == 3 * HORIZON


class TestProblemData:
    def test_length_mismatch_rejected(self):
        with pytest.raises(InvalidConfiguration, match="equal length"):
            ProblemData(pv_kw=np.zeros(24), wind_kw=np.zeros(23), load_kw=np.zeros(24))

    def test_negative_pv_rejected(self):
        with pytest.raises(InvalidConfiguration, match="non-negative"):
            ProblemData(pv_kw=np.full(3, -1.0), wind_kw=np.zeros(3), load_kw=np.zeros(3))

    def test_nan_rejected(self):
        with pytest.raises(InvalidConfiguration, match="non-finite"):
            ProblemData(pv_kw=[0.0, np.nan], wind_kw=[0.0, 0.0], load_kw=[1.0, 1.0])

    def test_series_are_read_only(self, sample_data):
        with pytest.raises(ValueError):
            sample_data.load_kw[0] = 1.0

    def test_from_channels(self):
        from mgdispatch.problem import Channel

        data = ProblemData.from_channels(
            {Channel.PV: [1.0, 2.0], "wind": [0.0, 0.5], Channel.LOAD: [3.0, 3.0]}
        )
        assert data.horizon == 2
        np.testing.assert_array_equal(data.channel(Channel.WIND), [0.0, 0.5])

    def test_from_channels_missing(self):
        with pytest.raises(InvalidConfiguration, match="missing channels"):
            ProblemData.from_channels({"pv": [1.0], "load": [1.0]})


class TestBounds:
    def test_charging_enabled_by_default(self, system_params):
        lb, ub = build_bounds(4, system_params)
        np.testing.assert_array_equal(lb[8:], np.full(4, -50.0))
        np.testing.assert_array_equal(ub[:4], np.full(4, 500.0))
        np.testing.assert_array_equal(ub[8:], np.full(4, 50.0))

    def test_charging_disabled(self, system_params):
        lb, _ = build_bounds(4, system_params, allow_charging=False)
        np.testing.assert_array_equal(lb, np.zeros(12))

    def test_zero_horizon_rejected(self, system_params):
        with pytest.raises(InvalidConfiguration):
            build_bounds(0, system_params)

    def test_negative_cost_rejected(self):
        with pytest.raises(InvalidConfiguration, match="grid"):
            CostCoefficients(grid=-0.1)

    @pytest.mark.parametrize("name", ["max_grid_kw", "max_diesel_kw"])
    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_power_limit_rejected(self, name, value):
        with pytest.raises(InvalidConfiguration, match=name):
            SystemParameters(**{name: value})
