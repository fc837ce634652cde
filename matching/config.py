"""
matching/config.py
──────────────────
Tunable constants of the route discovery colony.

Every field has a default taken from the reference tuning, so
ColonyConfig() is a working configuration. Override only what you need:

    config = ColonyConfig(max_iterations=200, seed=7)

Out-of-range values fail at construction time with pydantic's
ValidationError, before any colony is built.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ColonyConfig(BaseModel):
    """
    Hyperparameters for RouteDiscovery.

    Selection weights:
        alpha, beta       → exponents on pheromone and on (cpu / cost).
                            beta > alpha: the greedy cost signal dominates
                            until the trails differentiate.
        random_factor     → probability an ant ignores both and picks an
                            unvisited city uniformly (exploration).

    Pheromone dynamics:
        initial_pheromone → value of every cell after a reset.
        remaining_factor  → fraction kept by evaporation each iteration.
        q                 → deposit numerator: an ant adds q / tour_length
                            to each edge of its closed tour.

    Run shape:
        max_iterations    → fixed iteration count of optimize().
        number_of_ants    → ants per iteration. None = one per city.
        seed              → seed for the engine's generator when no
                            generator is injected. None = fresh entropy.
        workers           → threads used to construct tours. 1 = sequential.
                            Results do not depend on this value.
    """
    model_config = ConfigDict(frozen=True)

    alpha: float = Field(1.0, ge=0.0, description="Pheromone exponent")
    beta: float = Field(5.0, ge=0.0, description="Cost-avoidance exponent")
    initial_pheromone: float = Field(
        1.0, ge=0.0,
        description="Uniform pheromone value after a reset"
    )
    remaining_factor: float = Field(
        0.5, gt=0.0, lt=1.0,
        description="Evaporation retention: tau *= remaining_factor"
    )
    q: float = Field(500.0, ge=0.0, description="Reinforcement scale Q")
    random_factor: float = Field(
        0.01, ge=0.0, le=1.0,
        description="Probability of a uniform exploratory move"
    )
    max_iterations: int = Field(1000, ge=1, description="Iterations per optimize() call")
    number_of_ants: Optional[int] = Field(
        None, ge=1,
        description="Ants per iteration. None = number of cities."
    )
    seed: Optional[int] = Field(
        None,
        description="Seed for numpy.random.default_rng when no generator is injected"
    )
    workers: int = Field(1, ge=1, description="Threads used for tour construction")
