"""Validated option sets for the population optimizers."""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, Field, ValidationError

from mgdispatch.errors import InvalidConfiguration


class _Options(BaseModel):
    model_config = {"extra": "forbid", "frozen": True, "strict": True}

    max_iter: int = Field(gt=0)
    seed: int | None = Field(default=None, ge=0)


class AdaptiveCuckooOptions(_Options):
    n_nests: int = Field(gt=0)
    alpha0: float = Field(gt=0)
    beta: float = Field(gt=0, le=2)
    stagnation_window: int = Field(default=10, gt=0)


class CuckooOptions(_Options):
    n_nests: int = Field(gt=0)
    alpha0: float = Field(gt=0)
    alpha_damp: float = Field(gt=0, le=1)
    beta: float = Field(default=1.5, gt=0, le=2)


class PSOOptions(_Options):
    n_particles: int = Field(gt=0)
    w: float = Field(ge=0)
    w_damp: float = Field(gt=0, le=1)
    c1: float = Field(ge=0)
    c2: float = Field(ge=0)
    vel_max: float = Field(gt=0)


OptionsT = TypeVar("OptionsT", bound=_Options)


def parse_options(
    model: type[OptionsT],
    options: OptionsT | Mapping[str, Any],
) -> OptionsT:
    """Validate ``options`` against ``model``.

    Raises
    ------
    InvalidConfiguration
        On unknown keys, missing required keys or out-of-range values.
    """
    if isinstance(options, model):
        return options
    if isinstance(options, BaseModel):
        options = options.model_dump()
    try:
        return model.model_validate(dict(options))
    except ValidationError as exc:
        raise InvalidConfiguration(
            f"invalid {model.__name__}: {exc.error_count()} error(s)\n{exc}"
        ) from exc
    except TypeError as exc:
        raise InvalidConfiguration(f"options must be a mapping, got {type(options).__name__}") from exc
