"""Population-based optimizers for box-constrained black-box objectives.

Available optimizers:

* **cuckoo_adaptive** -- Cuckoo Search with stagnation-driven step growth.
* **cuckoo** -- Cuckoo Search with a damped step scale.
* **pso** -- Particle Swarm Optimization with inertia damping.
"""

from .base import OptimizationResult, PopulationOptimizer, validate_bounds
from .cuckoo import (
    AdaptiveCuckooSearch,
    CuckooSearch,
    abandon_count,
    cuckoo_search,
    cuckoo_search_adaptive,
)
from .levy import levy_step, mantegna_sigma
from .options import AdaptiveCuckooOptions, CuckooOptions, PSOOptions, parse_options
from .pso import ParticleSwarm, particle_swarm

OPTIMIZERS: dict[str, type[PopulationOptimizer]] = {
    AdaptiveCuckooSearch.name: AdaptiveCuckooSearch,
    CuckooSearch.name: CuckooSearch,
    ParticleSwarm.name: ParticleSwarm,
}

__all__ = [
    "OPTIMIZERS",
    "AdaptiveCuckooOptions",
    "AdaptiveCuckooSearch",
    "CuckooOptions",
    "CuckooSearch",
    "OptimizationResult",
    "PSOOptions",
    "ParticleSwarm",
    "PopulationOptimizer",
    "abandon_count",
    "cuckoo_search",
    "cuckoo_search_adaptive",
    "levy_step",
    "mantegna_sigma",
    "parse_options",
    "particle_swarm",
    "validate_bounds",
]
