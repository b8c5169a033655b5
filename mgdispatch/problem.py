"""
Problem definition for the dispatch optimizer.

Holds the immutable inputs an optimization run is built from: the
renewable/load time series handed over by the forecasting side, the cost
coefficients and equipment limits of the microgrid, and the penalty weights
used by the soft-constraint objective.

Decision vector layout
----------------------
A candidate schedule is a flat vector of ``3 * T`` floats::

    [ P_grid(0..T-1) | P_diesel(0..T-1) | P_batt(0..T-1) ]

Battery power follows the generator convention: positive = discharge
(battery supplies the bus), negative = charge.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

import numpy as np
from numpy.typing import NDArray

from mgdispatch.config import settings
from mgdispatch.errors import InvalidConfiguration

# Number of controllable blocks in the decision vector (grid, diesel, battery).
N_BLOCKS = 3


# ======================================================================
# Parameters
# ======================================================================

@dataclass(frozen=True)
class CostCoefficients:
    """Operating cost per kWh for each controllable resource ($/kWh)."""

    grid: float = 0.05
    diesel: float = 0.15
    battery: float = 0.10  # throughput (degradation) cost

    def __post_init__(self) -> None:
        for name in ("grid", "diesel", "battery"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidConfiguration(
                    f"cost coefficient '{name}' must be finite and >= 0, got {value}"
                )


@dataclass(frozen=True)
class BatteryParameters:
    """Battery energy storage parameters.

    Parameters
    ----------
    capacity_kwh : float
        Usable energy capacity in kWh.
    initial_soc, min_soc, max_soc : float
        State-of-charge values as fractions of capacity.
    charge_efficiency, discharge_efficiency : float
        One-way efficiencies in (0, 1].
    max_charge_kw, max_discharge_kw : float
        Power limits, both given as positive magnitudes.
    dt_hours : float
        Duration of one dispatch step in hours.
    """

    capacity_kwh: float = 500.0
    initial_soc: float = 0.5
    min_soc: float = 0.2
    max_soc: float = 1.0
    charge_efficiency: float = 0.9
    discharge_efficiency: float = 0.9
    max_charge_kw: float = 50.0
    max_discharge_kw: float = 50.0
    dt_hours: float = 1.0

    def __post_init__(self) -> None:
        if not self.capacity_kwh > 0:
            raise InvalidConfiguration(
                f"capacity_kwh must be positive, got {self.capacity_kwh}"
            )
        if not 0 <= self.min_soc <= self.max_soc <= 1.0:
            raise InvalidConfiguration(
                f"Need 0 <= min_soc <= max_soc <= 1, got min_soc={self.min_soc}, "
                f"max_soc={self.max_soc}"
            )
        if not self.min_soc <= self.initial_soc <= self.max_soc:
            raise InvalidConfiguration(
                f"initial_soc must lie in [min_soc, max_soc], got {self.initial_soc}"
            )
        for name in ("charge_efficiency", "discharge_efficiency"):
            eff = getattr(self, name)
            if not 0 < eff <= 1.0:
                raise InvalidConfiguration(f"{name} must be in (0, 1], got {eff}")
        for name in ("max_charge_kw", "max_discharge_kw"):
            limit = getattr(self, name)
            if not math.isfinite(limit) or limit < 0:
                raise InvalidConfiguration(f"{name} must be finite and >= 0, got {limit}")
        if not self.dt_hours > 0:
            raise InvalidConfiguration(f"dt_hours must be positive, got {self.dt_hours}")


@dataclass(frozen=True)
class SystemParameters:
    """Cost coefficients and hard limits of the microgrid."""

    costs: CostCoefficients = field(default_factory=CostCoefficients)
    battery: BatteryParameters = field(default_factory=BatteryParameters)
    max_grid_kw: float = 500.0
    max_diesel_kw: float = 500.0

    def __post_init__(self) -> None:
        for name in ("max_grid_kw", "max_diesel_kw"):
            limit = getattr(self, name)
            if not math.isfinite(limit) or limit < 0:
                raise InvalidConfiguration(f"{name} must be finite and >= 0, got {limit}")


@dataclass(frozen=True)
class PenaltyWeights:
    """Multipliers turning constraint violations into additive cost."""

    balance: float = 1e3
    bounds: float = 1e5

    def __post_init__(self) -> None:
        if self.balance < 0 or self.bounds < 0:
            raise InvalidConfiguration("penalty weights must be >= 0")

    @classmethod
    def from_settings(cls) -> "PenaltyWeights":
        return cls(
            balance=settings.penalty_balance_weight,
            bounds=settings.penalty_bounds_weight,
        )


# ======================================================================
# Problem data
# ======================================================================

class Channel(str, Enum):
    """Time series handed over by the forecasting / physical-model side."""

    PV = "pv"
    WIND = "wind"
    LOAD = "load"


def _as_series(name: str, values) -> NDArray[np.float64]:
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1:
        raise InvalidConfiguration(f"{name} must be one-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidConfiguration(f"{name} contains non-finite values")
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class ProblemData:
    """Aligned per-step PV, wind and load power (kW) for one horizon."""

    pv_kw: NDArray[np.float64]
    wind_kw: NDArray[np.float64]
    load_kw: NDArray[np.float64]

    def __post_init__(self) -> None:
        pv = _as_series("pv_kw", self.pv_kw)
        wind = _as_series("wind_kw", self.wind_kw)
        load = _as_series("load_kw", self.load_kw)

        if not (len(pv) == len(wind) == len(load)):
            raise InvalidConfiguration(
                f"pv_kw, wind_kw and load_kw must have equal length, got "
                f"{len(pv)}, {len(wind)}, {len(load)}"
            )
        if len(load) == 0:
            raise InvalidConfiguration("problem data must cover at least one step")
        if np.any(pv < 0) or np.any(wind < 0):
            raise InvalidConfiguration("pv_kw and wind_kw must be non-negative")

        object.__setattr__(self, "pv_kw", pv)
        object.__setattr__(self, "wind_kw", wind)
        object.__setattr__(self, "load_kw", load)

    @classmethod
    def from_channels(cls, series: Mapping[Channel | str, object]) -> "ProblemData":
        """Build from a mapping keyed by :class:`Channel` (or its value)."""
        keyed = {Channel(key): value for key, value in series.items()}
        missing = [ch.value for ch in Channel if ch not in keyed]
        if missing:
            raise InvalidConfiguration(f"missing channels: {missing}")
        return cls(
            pv_kw=keyed[Channel.PV],
            wind_kw=keyed[Channel.WIND],
            load_kw=keyed[Channel.LOAD],
        )

    @property
    def horizon(self) -> int:
        return int(self.load_kw.shape[0])

    @property
    def renewable_kw(self) -> NDArray[np.float64]:
        return self.pv_kw + self.wind_kw

    def channel(self, ch: Channel) -> NDArray[np.float64]:
        if ch is Channel.PV:
            return self.pv_kw
        if ch is Channel.WIND:
            return self.wind_kw
        return self.load_kw


# ======================================================================
# Decision vector helpers
# ======================================================================

def horizon_of(x: NDArray[np.floating]) -> int:
    """Horizon implied by a decision vector (``floor(len / 3)``)."""
    return len(x) // N_BLOCKS


def split_decision_vector(
    x: NDArray[np.floating],
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Return views ``(P_grid, P_diesel, P_batt)`` of a decision vector."""
    x = np.asarray(x, dtype=np.float64)
    T = horizon_of(x)
    return x[:T], x[T:2 * T], x[2 * T:3 * T]


def build_bounds(
    horizon: int,
    params: SystemParameters,
    allow_charging: bool = True,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Search-domain bounds for a horizon of ``horizon`` steps.

    Grid and diesel blocks span ``[0, max]``. The battery block spans
    ``[-max_charge_kw, max_discharge_kw]``; with ``allow_charging=False`` its
    lower bound is 0, which forbids charging entirely.
    """
    if horizon < 1:
        raise InvalidConfiguration(f"horizon must be >= 1, got {horizon}")

    batt = params.battery
    batt_lower = -batt.max_charge_kw if allow_charging else 0.0

    lower = np.concatenate([
        np.zeros(horizon),
        np.zeros(horizon),
        np.full(horizon, batt_lower),
    ])
    upper = np.concatenate([
        np.full(horizon, params.max_grid_kw),
        np.full(horizon, params.max_diesel_kw),
        np.full(horizon, batt.max_discharge_kw),
    ])
    return lower, upper
