"""Planning orchestration: problem data + objective + optimizer -> dispatch plan."""

from .planner import DispatchPlan, DispatchPlanner

__all__ = ["DispatchPlan", "DispatchPlanner"]
