"""Battery storage engine -- SOC simulation for candidate dispatch schedules."""

from .soc_simulator import SOCTrajectory, simulate_battery, simulate_battery_trajectory

__all__ = [
    "SOCTrajectory",
    "simulate_battery",
    "simulate_battery_trajectory",
]
