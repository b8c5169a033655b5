"""Lévy-flight step generation (Mantegna's method).

Lévy flights are random walks whose step lengths follow a heavy-tailed
power law: most steps are short, occasionally a very long jump occurs.
Mantegna's algorithm approximates a symmetric Lévy-stable variable from the
ratio of two normal samples:

.. math::

    s = \\frac{u}{|v|^{1/\\beta}}, \\qquad
    u \\sim N(0, \\sigma_u^2), \\quad v \\sim N(0, 1)

with

.. math::

    \\sigma_u = \\left(\\frac{\\Gamma(1+\\beta)\\,\\sin(\\pi\\beta/2)}
                {\\Gamma((1+\\beta)/2)}\\right)^{1/\\beta}

Larger ``beta`` gives shorter tails (steps closer to Gaussian); smaller
``beta`` gives more frequent long jumps.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray
from scipy.special import gamma as gamma_fn

from mgdispatch.errors import InvalidConfiguration


def mantegna_sigma(beta: float) -> float:
    """Scale ``sigma_u`` of the numerator sample for exponent ``beta``."""
    if not 0 < beta <= 2:
        raise InvalidConfiguration(f"beta must be in (0, 2], got {beta}")
    numerator = gamma_fn(1 + beta) * math.sin(math.pi * beta / 2)
    return float((numerator / gamma_fn((1 + beta) / 2)) ** (1 / beta))


def levy_step(
    dim: int,
    beta: float,
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """Draw one ``dim``-dimensional Lévy step.

    Parameters
    ----------
    dim : int
        Number of components (>= 1).
    beta : float
        Stability exponent in (0, 2]; typical values 1 < beta <= 2.
    rng : numpy.random.Generator
        Random source.  Two normal vectors are drawn per call (``u`` then
        ``v``), so a seeded generator reproduces the same sequence of steps.

    Returns
    -------
    ndarray, shape (dim,)
    """
    if dim < 1:
        raise InvalidConfiguration(f"dim must be >= 1, got {dim}")
    sigma_u = mantegna_sigma(beta)
    u = rng.normal(0.0, sigma_u, size=dim)
    v = rng.normal(0.0, 1.0, size=dim)
    return u / np.abs(v) ** (1.0 / beta)
