"""Exception types raised by the dispatch engine."""

from __future__ import annotations


class MgDispatchError(Exception):
    """Base class for all engine errors."""


class InvalidConfiguration(MgDispatchError, ValueError):
    """Raised before any search begins when options, bounds or problem data
    are inconsistent (dimension mismatch, missing option, non-positive
    population size, and so on)."""


class NumericalError(MgDispatchError, ArithmeticError):
    """Raised when the objective returns a non-finite value."""

    def __init__(self, message: str, value: float | None = None) -> None:
        super().__init__(message)
        self.value = value
