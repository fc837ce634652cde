"""
route_discovery/ant.py
──────────────────────
One ant: builds one closed tour over every city (task).

What does an ant do?
─────────────────────
It starts on a random city and, one step at a time, moves to a city it
has not visited yet until every city is on its trail. The tour is then
closed by the implicit edge back to the start.

Each step is a stochastic decision:

  • With probability random_factor the ant explores: it picks uniformly
    among the unvisited cities and ignores everything it knows.

  • Otherwise it scores every unvisited city l from the current city c:

        desirability(l) = τ[c][l]^α × (cpu / cost[c][l])^β

    normalises the scores into a distribution (visited cities get 0) and
    samples one city with a roulette wheel.

Edge cases in the scoring
──────────────────────────
  cost[c][l] = 0   → infinitely desirable. Selection is uniform among the
                     zero-cost candidates.
  all scores = 0   → nothing to prefer (e.g. cpu = 0, or trails decayed
                     to zero). Selection is uniform among the unvisited.
  NaN scores       → ExhaustedSearchError. Facets are not finite.

State
─────
  trail        : int array, length n. trail[:trail_size] is the path so far.
  _visited     : bool array, length n. Membership data, owned by the ant.
  is_visited() : the predicate over _visited.
  tour_length  : closed-tour cost, set by compute_tour_length().

Ants are reusable: the colony keeps a fixed arena of them and calls
reset() at the start of every iteration instead of allocating new ones.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from matching.config import ColonyConfig
from matching.models import FacetsValue
from route_discovery.cost import tour_length as closed_tour_length
from route_discovery.errors import ExhaustedSearchError

logger = logging.getLogger(__name__)


class Ant:
    """
    Constructs one tour using pheromone + (cpu / cost) desirability.

    Lifecycle (driven by RouteDiscovery, once per iteration):
        1. reset(start_city)         → clear state, stand on start_city.
        2. select_next_city() + visit_city(), n − 1 times.
           construct_tour() does 1 and 2 in one call.
        3. compute_tour_length()     → tour_length becomes valid.

    Attributes:
        trail       (NDArray[intp]): visiting order; full once complete.
        trail_size  (int):           number of cities visited so far.
        tour_length (float):         closed-tour cost (valid after step 3).
    """

    def __init__(
        self,
        n_cities: int,
        facets: FacetsValue,
        config: ColonyConfig,
    ) -> None:
        """
        Args:
            n_cities: Number of cities in the run. Fixes the buffer sizes.
            facets:   Facet weighting shared by the colony's ants; its cpu
                      value scales the desirability term.
            config:   Supplies alpha, beta and random_factor.
        """
        self._n_cities = n_cities
        self._facets = facets
        self._alpha = config.alpha
        self._beta = config.beta
        self._random_factor = config.random_factor

        self.trail: NDArray[np.intp] = np.zeros(n_cities, dtype=np.intp)
        self._visited: NDArray[np.bool_] = np.zeros(n_cities, dtype=bool)
        self.trail_size: int = 0
        self.tour_length: float = 0.0

    # ── State management ───────────────────────────────────────────────────────

    def reset(self, start_city: int) -> None:
        """Forget the previous tour and stand on start_city."""
        self._visited.fill(False)
        self.trail_size = 0
        self.tour_length = 0.0
        self.visit_city(start_city)

    def visit_city(self, city: int) -> None:
        """
        Append city to the trail and mark it visited.

        Raises:
            ValueError: if the city was already visited or the trail is full.
                        Either would break the permutation invariant.
        """
        if self.trail_size >= self._n_cities:
            raise ValueError(f"Trail is full ({self._n_cities} cities)")
        if self._visited[city]:
            raise ValueError(f"City {city} already visited")
        self.trail[self.trail_size] = city
        self._visited[city] = True
        self.trail_size += 1

    def is_visited(self, city: int) -> bool:
        return bool(self._visited[city])

    def unvisited_cities(self) -> NDArray[np.intp]:
        """Indices of the cities not yet on the trail, ascending."""
        return np.flatnonzero(~self._visited)

    @property
    def current_city(self) -> int:
        if self.trail_size == 0:
            raise ValueError("Ant has not been placed on a start city")
        return int(self.trail[self.trail_size - 1])

    @property
    def is_complete(self) -> bool:
        return self.trail_size == self._n_cities

    @property
    def facets(self) -> FacetsValue:
        return self._facets

    # ── Desirability ───────────────────────────────────────────────────────────

    def _weights(
        self,
        current: int,
        candidates: NDArray[np.intp],
        pheromone: NDArray[np.float64],
        costs: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """
        Desirability of each candidate city, scaled so the largest is 1.0.

        Scores are built in log space,

            log w = α·log τ + β·(log cpu − log cost)

        and returned as exp(log w − max log w). The ratios between
        candidates are those of τ^α × (cpu / cost)^β, but tiny latencies or
        large cpu weights cannot overflow the product or its sum.

        NumPy operations:
            pheromone[current, candidates] → fancy indexing builds a new
                                             array, never a view, so the
                                             shared matrix is not touched.
            np.errstate(divide="ignore")   → log(0) = -inf without a warning;
                                             a zero trail scores exactly 0.
        """
        tau = pheromone[current, candidates]
        c = costs[current, candidates]
        cpu = self._facets.cpu

        if cpu == 0.0:
            return np.zeros_like(c)

        zero_cost = c == 0.0
        if zero_cost.any():
            return zero_cost.astype(np.float64)

        # 0 ** 0 == 1: a zero exponent drops its term instead of multiplying -inf
        log_w = np.zeros_like(c)
        with np.errstate(divide="ignore", invalid="ignore"):
            if self._alpha != 0.0:
                log_w += self._alpha * np.log(tau)
            if self._beta != 0.0:
                log_w += self._beta * (np.log(cpu) - np.log(c))

        if np.isnan(log_w).any():
            return np.full_like(c, np.nan)

        peak = log_w.max()
        if peak == -np.inf:
            return np.zeros_like(c)
        if peak == np.inf:
            return (log_w == np.inf).astype(np.float64)
        return np.exp(log_w - peak)

    def probabilities(
        self,
        pheromone: NDArray[np.float64],
        costs: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """
        Selection distribution over all n cities from the current city.

        Visited cities get probability 0.0. This is the distribution the
        roulette wheel in select_next_city() samples from, when the ant
        is not exploring.

        Raises:
            ExhaustedSearchError: if no city is unvisited or the
                                  desirabilities are not finite.
        """
        current = self.current_city
        candidates = self.unvisited_cities()
        if candidates.size == 0:
            raise ExhaustedSearchError(self._n_cities, current)

        weights = self._weights(current, candidates, pheromone, costs)
        total = float(weights.sum())
        if not np.isfinite(total):
            raise ExhaustedSearchError(self._n_cities, current)

        probs = np.zeros(self._n_cities, dtype=np.float64)
        if total == 0.0:
            probs[candidates] = 1.0 / candidates.size
        else:
            probs[candidates] = weights / total
        return probs

    # ── City selection ─────────────────────────────────────────────────────────

    def select_next_city(
        self,
        pheromone: NDArray[np.float64],
        costs: NDArray[np.float64],
        rng: np.random.Generator,
    ) -> int:
        """
        Pick the next unvisited city.

        Roulette wheel:
            cumulative = np.cumsum(weights)   e.g. [0.5, 0.5, 2.0, 3.0]
            r          = U[0, 1) × cumulative[-1]
            chosen     = first index with cumulative > r

        Drawing r against the unnormalised cumulative sum is the same as
        drawing U[0, 1) against the normalised one, without the rounding
        that can leave a normalised sum just under 1.0. side="right" skips
        zero-weight entries: a candidate with weight 0 can never be chosen.

        Raises:
            ExhaustedSearchError: if the wheel selects nothing. This is an
                                  invariant violation, not a retryable state.
        """
        current = self.current_city
        candidates = self.unvisited_cities()
        if candidates.size == 0:
            raise ExhaustedSearchError(self._n_cities, current)

        # Exploration: ignore pheromone and cost entirely
        if rng.random() < self._random_factor:
            return int(rng.choice(candidates))

        weights = self._weights(current, candidates, pheromone, costs)
        cumulative = np.cumsum(weights)
        total = float(cumulative[-1])

        if not np.isfinite(total):
            raise ExhaustedSearchError(self._n_cities, current)
        if total == 0.0:
            logger.debug(
                "All desirabilities are zero from city %d; choosing uniformly "
                "among %d unvisited cities.", current, candidates.size,
            )
            return int(rng.choice(candidates))

        r = rng.random() * total
        pos = int(np.searchsorted(cumulative, r, side="right"))
        if pos >= candidates.size:
            raise ExhaustedSearchError(self._n_cities, current)
        return int(candidates[pos])

    # ── Tour construction ──────────────────────────────────────────────────────

    def construct_tour(
        self,
        start_city: int,
        pheromone: NDArray[np.float64],
        costs: NDArray[np.float64],
        rng: np.random.Generator,
    ) -> None:
        """
        Reset onto start_city and walk until every city is on the trail.

        Reads pheromone and costs only; writes only this ant's own state.
        """
        self.reset(start_city)
        for _ in range(self._n_cities - 1):
            self.visit_city(self.select_next_city(pheromone, costs, rng))

    def compute_tour_length(self, costs: NDArray[np.float64]) -> float:
        """
        Sum the costs along the trail plus the closing edge back to the start.

        Raises:
            ValueError: if the tour is not complete yet.
        """
        if not self.is_complete:
            raise ValueError(
                f"Tour incomplete: {self.trail_size}/{self._n_cities} cities visited"
            )
        self.tour_length = closed_tour_length(self.trail, costs)
        return self.tour_length

    def __repr__(self) -> str:
        return (
            f"Ant(visited={self.trail_size}/{self._n_cities}, "
            f"tour_length={self.tour_length:.4f})"
        )
