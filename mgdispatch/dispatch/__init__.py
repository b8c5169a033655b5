"""Dispatch objective for the metaheuristic optimizers.

* **evaluate** -- total cost (operating cost + soft-constraint penalties).
* **evaluate_breakdown** -- the same value split into its terms.
* **make_objective** -- bind problem data into an ``objective(x)`` callable.
"""

from .evaluator import (
    CostBreakdown,
    DispatchObjective,
    evaluate,
    evaluate_breakdown,
    make_objective,
    power_balance_residual,
)

__all__ = [
    "CostBreakdown",
    "DispatchObjective",
    "evaluate",
    "evaluate_breakdown",
    "make_objective",
    "power_balance_residual",
]
