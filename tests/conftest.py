"""Shared test fixtures for the dispatch engine tests."""

from __future__ import annotations

import numpy as np
import pytest

from mgdispatch.problem import (
    BatteryParameters,
    CostCoefficients,
    PenaltyWeights,
    ProblemData,
    SystemParameters,
)

HORIZON = 24


# ======================================================================
# Parameter fixtures
# ======================================================================

@pytest.fixture
def battery_params() -> BatteryParameters:
    """500 kWh battery, 20-100 % SOC window, 90 % one-way efficiencies."""
    return BatteryParameters(
        capacity_kwh=500.0,
        initial_soc=0.5,
        min_soc=0.2,
        max_soc=1.0,
        charge_efficiency=0.9,
        discharge_efficiency=0.9,
        max_charge_kw=50.0,
        max_discharge_kw=50.0,
        dt_hours=1.0,
    )


@pytest.fixture
def system_params(battery_params) -> SystemParameters:
    return SystemParameters(
        costs=CostCoefficients(grid=0.05, diesel=0.15, battery=0.10),
        battery=battery_params,
        max_grid_kw=500.0,
        max_diesel_kw=500.0,
    )


@pytest.fixture
def weights() -> PenaltyWeights:
    return PenaltyWeights(balance=1e3, bounds=1e5)


# ======================================================================
# Problem data fixtures
# ======================================================================

@pytest.fixture
def balanced_data() -> ProblemData:
    """Renewables exactly cover the load at every step."""
    hours = np.arange(HORIZON, dtype=np.float64)
    pv = np.clip(40.0 * np.sin(np.pi * (hours - 6) / 12), 0.0, None)
    wind = np.full(HORIZON, 15.0)
    return ProblemData(pv_kw=pv, wind_kw=wind, load_kw=pv + wind)


@pytest.fixture
def sample_data() -> ProblemData:
    """Synthetic 24 h day: PV bell curve, gusty wind, evening-peaking load."""
    rng = np.random.default_rng(42)
    hours = np.arange(HORIZON, dtype=np.float64)

    pv = np.clip(60.0 * np.sin(np.pi * (hours - 6) / 12), 0.0, None)
    wind = 10.0 + rng.exponential(5.0, HORIZON)
    load = 80.0 + 30.0 * np.sin(2 * np.pi * (hours - 12) / 24) + rng.normal(0, 3, HORIZON)

    return ProblemData(pv_kw=pv, wind_kw=wind, load_kw=np.clip(load, 0.0, None))


# ======================================================================
# Optimizer option fixtures
# ======================================================================

@pytest.fixture
def cuckoo_options() -> dict:
    return {"max_iter": 30, "n_nests": 20, "alpha0": 1.0, "beta": 1.5}


@pytest.fixture
def pso_options() -> dict:
    return {
        "max_iter": 30,
        "n_particles": 20,
        "w": 0.8,
        "w_damp": 0.99,
        "c1": 2.0,
        "c2": 2.0,
        "vel_max": 0.1,
    }
