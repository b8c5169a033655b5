"""
State of Charge (SOC) simulation by energy counting.

Turns a battery power schedule into an SOC trajectory, applying separate
charge and discharge efficiencies and clamping the stored energy into the
allowed SOC window after every step.  The amount removed by clamping is
reported alongside the trajectory so callers can price an infeasible
schedule instead of silently accepting the clamped result.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mgdispatch.problem import BatteryParameters


@dataclass(frozen=True)
class SOCTrajectory:
    """Result of :func:`simulate_battery_trajectory`.

    Attributes
    ----------
    soc : ndarray, shape (T + 1,)
        SOC fraction; entry 0 is the initial SOC, entry ``t + 1`` the SOC
        at the end of step ``t``.  Always within ``[min_soc, max_soc]``.
    clamped : ndarray, shape (T + 1,)
        Signed SOC fraction removed by clamping at each step.  Positive when
        the unclamped value exceeded ``max_soc``, negative when it fell below
        ``min_soc``, zero otherwise.  Entry 0 is always zero.
    """

    soc: NDArray[np.float64]
    clamped: NDArray[np.float64]

    @property
    def shortfall(self) -> NDArray[np.float64]:
        """Per-step SOC deficit below ``min_soc`` (>= 0)."""
        return np.maximum(-self.clamped, 0.0)

    @property
    def overflow(self) -> NDArray[np.float64]:
        """Per-step SOC excess above ``max_soc`` (>= 0)."""
        return np.maximum(self.clamped, 0.0)

    @property
    def was_clamped(self) -> bool:
        return bool(np.any(self.clamped != 0.0))


def simulate_battery_trajectory(
    battery_power_kw: NDArray[np.floating],
    battery: BatteryParameters,
) -> SOCTrajectory:
    """Simulate the SOC trajectory for a battery power schedule.

    Sign convention:
        * ``power_kw >= 0`` => **discharging** (battery supplies the bus).
        * ``power_kw < 0``  => **charging**.

    Efficiency convention:

    * **Discharging** -- to deliver ``P`` kW for ``dt`` hours the battery
      releases ``P * dt / eta_discharge`` kWh internally.
    * **Charging** -- of ``|P| * dt`` kWh injected only
      ``|P| * dt * eta_charge`` is stored.

    Parameters
    ----------
    battery_power_kw : ndarray, shape (T,)
        Battery power per step in kW.
    battery : BatteryParameters
        Capacity, SOC window, efficiencies and step duration.

    Returns
    -------
    SOCTrajectory
        Clamped SOC fractions and the clamping applied at each step.
    """
    power = np.asarray(battery_power_kw, dtype=np.float64)
    n_steps = power.shape[0]

    capacity = battery.capacity_kwh
    dt = battery.dt_hours

    # Tracked as fractions of capacity so the SOC window and the initial
    # value are represented exactly.
    soc = np.empty(n_steps + 1, dtype=np.float64)
    clamped = np.zeros(n_steps + 1, dtype=np.float64)
    soc[0] = battery.initial_soc

    for t in range(n_steps):
        p = power[t]
        if p >= 0:
            energy_drawn = p * dt / battery.discharge_efficiency  # kWh
            unclamped = soc[t] - energy_drawn / capacity
        else:
            energy_stored = -p * dt * battery.charge_efficiency  # kWh
            unclamped = soc[t] + energy_stored / capacity

        if unclamped > battery.max_soc:
            soc[t + 1] = battery.max_soc
        elif unclamped < battery.min_soc:
            soc[t + 1] = battery.min_soc
        else:
            soc[t + 1] = unclamped
        clamped[t + 1] = unclamped - soc[t + 1]

    return SOCTrajectory(soc=soc, clamped=clamped)


def simulate_battery(
    battery_power_kw: NDArray[np.floating],
    battery: BatteryParameters,
) -> NDArray[np.float64]:
    """SOC fractions (length ``T + 1``) for a battery power schedule."""
    return simulate_battery_trajectory(battery_power_kw, battery).soc
