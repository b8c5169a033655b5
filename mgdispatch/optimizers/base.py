"""Shared machinery for the population-based optimizers.

Every optimizer consumes a black-box objective ``objective(x) -> float`` and a
box ``[lower_bound, upper_bound]``.  Options and bounds are validated before
the first evaluation; population state lives only for the duration of one
:meth:`PopulationOptimizer.optimize` call.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Generic, Mapping

import numpy as np
from numpy.typing import NDArray

from mgdispatch.config import settings
from mgdispatch.errors import InvalidConfiguration, NumericalError
from mgdispatch.optimizers.options import OptionsT, parse_options

logger = logging.getLogger(__name__)

ObjectiveFn = Callable[[NDArray[np.float64]], float]
StopFn = Callable[[], bool]
IterationFn = Callable[[int, float], None]
RngLike = np.random.Generator | int | None


@dataclass
class OptimizationResult:
    """Outcome of one optimizer run.

    Attributes
    ----------
    best_position : ndarray, shape (D,)
        Best decision vector found.
    best_cost : float
        Objective value of ``best_position``.
    history : ndarray, shape (iterations,)
        Best cost after each completed iteration.
    n_evaluations : int
        Number of objective calls, initialisation included.
    iterations : int
        Completed iterations (less than ``max_iter`` only when cancelled).
    cancelled : bool
        True if ``should_stop`` ended the run early.
    diagnostics : dict[str, ndarray]
        Per-iteration algorithm internals (step scale, inertia, ...).
    """

    best_position: NDArray[np.float64]
    best_cost: float
    history: NDArray[np.float64]
    n_evaluations: int
    iterations: int
    cancelled: bool = False
    diagnostics: dict[str, NDArray[np.float64]] = field(default_factory=dict)

    def as_tuple(self) -> tuple[NDArray[np.float64], float]:
        return self.best_position, self.best_cost


def validate_bounds(
    lower_bound: NDArray[np.floating],
    upper_bound: NDArray[np.floating],
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Return float copies of the bounds after checking they form a box."""
    lb = np.array(lower_bound, dtype=np.float64)
    ub = np.array(upper_bound, dtype=np.float64)
    if lb.ndim != 1 or ub.ndim != 1:
        raise InvalidConfiguration(
            f"bounds must be one-dimensional, got shapes {lb.shape} and {ub.shape}"
        )
    if lb.shape != ub.shape:
        raise InvalidConfiguration(
            f"lower_bound and upper_bound differ in length: {lb.shape[0]} vs {ub.shape[0]}"
        )
    if lb.shape[0] == 0:
        raise InvalidConfiguration("bounds must have at least one dimension")
    if not (np.all(np.isfinite(lb)) and np.all(np.isfinite(ub))):
        raise InvalidConfiguration("bounds must be finite")
    if np.any(lb > ub):
        raise InvalidConfiguration("lower_bound must not exceed upper_bound")
    return lb, ub


class _Run:
    """Per-run evaluation bookkeeping (objective, RNG, evaluation count)."""

    def __init__(
        self,
        objective: ObjectiveFn,
        lb: NDArray[np.float64],
        ub: NDArray[np.float64],
        rng: np.random.Generator,
    ) -> None:
        self.objective = objective
        self.lb = lb
        self.ub = ub
        self.rng = rng
        self.n_evaluations = 0

    @property
    def dim(self) -> int:
        return self.lb.shape[0]

    def clip(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.clip(x, self.lb, self.ub)

    def uniform(self, n: int) -> NDArray[np.float64]:
        """``n`` points sampled uniformly inside the box, shape (n, D)."""
        return self.lb + self.rng.random((n, self.dim)) * (self.ub - self.lb)

    def evaluate(self, x: NDArray[np.float64]) -> float:
        cost = float(self.objective(x))
        self.n_evaluations += 1
        if not math.isfinite(cost):
            raise NumericalError(
                f"objective returned a non-finite value ({cost}) at "
                f"evaluation {self.n_evaluations}",
                value=cost,
            )
        return cost

    def evaluate_all(self, population: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.array([self.evaluate(x) for x in population], dtype=np.float64)


class PopulationOptimizer(Generic[OptionsT]):
    """Base class: option validation, seeding, bounds checking, logging.

    Subclasses set :attr:`name` and :attr:`options_model` and implement
    :meth:`_search`.
    """

    name: ClassVar[str] = "population"
    options_model: ClassVar[type]

    def __init__(
        self,
        options: OptionsT | Mapping[str, Any],
        rng: RngLike = None,
    ) -> None:
        self.options: OptionsT = parse_options(self.options_model, options)
        self._rng_source = rng

    def _make_rng(self) -> np.random.Generator:
        if isinstance(self._rng_source, np.random.Generator):
            return self._rng_source
        if self._rng_source is not None:
            return np.random.default_rng(self._rng_source)
        seed = self.options.seed if self.options.seed is not None else settings.default_seed
        return np.random.default_rng(seed)

    def optimize(
        self,
        objective: ObjectiveFn,
        lower_bound: NDArray[np.floating],
        upper_bound: NDArray[np.floating],
        should_stop: StopFn | None = None,
        on_iteration: IterationFn | None = None,
    ) -> OptimizationResult:
        """Minimise ``objective`` over the box ``[lower_bound, upper_bound]``.

        Parameters
        ----------
        objective : callable
            ``objective(x) -> float``.  Called only with in-bounds vectors.
        lower_bound, upper_bound : array_like, shape (D,)
            Search domain.
        should_stop : callable or None
            Polled at every iteration boundary; returning True ends the run
            with the best solution found so far.
        on_iteration : callable or None
            ``on_iteration(iteration, best_cost)`` after each iteration.

        Raises
        ------
        InvalidConfiguration
            If the bounds are malformed (raised before any evaluation).
        NumericalError
            If the objective returns NaN or infinity.
        """
        lb, ub = validate_bounds(lower_bound, upper_bound)
        run = _Run(objective, lb, ub, self._make_rng())

        logger.info(
            "%s: starting search (dim=%d, max_iter=%d)",
            self.name,
            run.dim,
            self.options.max_iter,
            extra={"optimizer": self.name},
        )
        result = self._search(run, should_stop, on_iteration)
        logger.info(
            "%s: finished after %d iterations, %d evaluations, best cost %.6g%s",
            self.name,
            result.iterations,
            result.n_evaluations,
            result.best_cost,
            " (cancelled)" if result.cancelled else "",
            extra={
                "optimizer": self.name,
                "iteration": result.iterations,
                "best_cost": result.best_cost,
                "n_evaluations": result.n_evaluations,
            },
        )
        return result

    def _search(
        self,
        run: _Run,
        should_stop: StopFn | None,
        on_iteration: IterationFn | None,
    ) -> OptimizationResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.options!r})"
