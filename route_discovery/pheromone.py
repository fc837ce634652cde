"""
route_discovery/pheromone.py
────────────────────────────
The pheromone matrix: the colony's shared, learned memory of good edges.

What is pheromone here?
───────────────────────
  • "City"  = one task.
  • "Edge"  = dispatching task j right after task i (directed, i → j).
  • τ[i][j] = accumulated desirability of that edge.

Two forces balance each other:
  1. Evaporation  : every cell is multiplied by remaining_factor ∈ (0, 1).
                   Stale edges lose influence over time.
  2. Reinforcement: every ant adds Q / tour_length to each edge of its
                   closed tour. Shorter tours reinforce harder.

Ownership and the write barrier
───────────────────────────────
The colony owns exactly one PheromoneMatrix. Ants only ever read it,
through read_only_view(), while they build tours. All writes happen in
the colony's update phase, after every ant has finished, and complete
before the next construction phase starts. Nothing else mutates it.

Non-negativity
──────────────
Evaporation multiplies by a factor in (0, 1) and deposits are only made
for positive tour lengths with Q ≥ 0, so every cell stays ≥ 0 for as long
as the initial value is ≥ 0.

NumPy design choices
────────────────────
  • float64 throughout.
  • In-place operations (*=, np.add.at): no new arrays on the update path.
  • np.add.at for deposits: unbuffered, so a tour that repeats an edge
    (only possible for the 1-city self-loop) still accumulates correctly.
  • .copy() only in snapshot().
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray


class PheromoneMatrix:
    """
    A square numpy array τ[n_cities][n_cities] of pheromone levels.

    Used by:
        Ant.select_next_city()  → reads read_only_view().
        RouteDiscovery          → calls reset(), evaporate(), deposit_tour().
        Tests                   → calls snapshot() to inspect state.

    Thread safety:
        Not thread-safe for writes. Concurrent reads during tour
        construction are fine; the colony serialises all writes.
    """

    def __init__(self, n_cities: int, initial_pheromone: float = 1.0) -> None:
        """
        Allocate a uniform n_cities × n_cities matrix.

        Args:
            n_cities:          Number of cities. Must be ≥ 1.
            initial_pheromone: Value of every cell, here and after reset().

        Raises:
            ValueError: if n_cities < 1 or initial_pheromone < 0.
        """
        if n_cities < 1:
            raise ValueError(
                f"PheromoneMatrix requires n_cities≥1, got n_cities={n_cities}"
            )
        if initial_pheromone < 0.0:
            raise ValueError(
                f"initial_pheromone must be non-negative, got {initial_pheromone}"
            )
        self._n_cities = n_cities
        self._initial = float(initial_pheromone)
        self._matrix: NDArray[np.float64] = np.full(
            (n_cities, n_cities), self._initial, dtype=np.float64
        )

    # ── Core operations ────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Set every cell back to the initial pheromone value, in place."""
        self._matrix.fill(self._initial)

    def evaporate(self, remaining_factor: float) -> None:
        """
        Decay every cell in place: τ[i][j] *= remaining_factor.

        Args:
            remaining_factor: Fraction retained, in (0, 1).

        Raises:
            ValueError: if remaining_factor is outside (0, 1). A factor ≥ 1
                        would grow pheromone without reinforcement; a factor
                        ≤ 0 would wipe or negate the learned trails.
        """
        if not 0.0 < remaining_factor < 1.0:
            raise ValueError(
                f"remaining_factor must be in (0, 1), got {remaining_factor}"
            )
        self._matrix *= remaining_factor

    def deposit_tour(self, trail: Sequence[int], tour_length: float, q: float) -> float:
        """
        Reinforce every edge of one closed tour with q / tour_length.

        The edges are trail[0]→trail[1], …, trail[-2]→trail[-1] and the
        closing edge trail[-1]→trail[0].

        Args:
            trail:       City indices of a completed tour.
            tour_length: Total cost of the closed tour.
            q:           Reinforcement scale (≥ 0).

        Returns:
            The per-edge contribution that was added (0.0 when skipped).

        Guards:
            • tour_length ≤ 0 → skip. A zero-length tour (single city, or
              every latency 0) has no meaningful Q / L and would divide
              by zero.
            • empty trail → skip.
        """
        if tour_length <= 0.0 or len(trail) == 0:
            return 0.0

        contribution = q / tour_length
        sources = np.asarray(trail, dtype=np.intp)
        targets = np.roll(sources, -1)
        np.add.at(self._matrix, (sources, targets), contribution)
        return contribution

    def read_only_view(self) -> NDArray[np.float64]:
        """
        Return a non-writeable view of the live matrix.

        Handed to ants during construction. The view tracks later writes
        made by the colony, but any attempt to write through it raises
        ValueError, so an ant cannot corrupt the shared trails.
        """
        view = self._matrix.view()
        view.flags.writeable = False
        return view

    # ── Inspection & testing ───────────────────────────────────────────────────

    def snapshot(self) -> NDArray[np.float64]:
        """Deep copy of the current state. Mutating it does not touch the matrix."""
        return self._matrix.copy()

    @property
    def shape(self) -> tuple[int, int]:
        return (self._n_cities, self._n_cities)

    @property
    def n_cities(self) -> int:
        return self._n_cities

    @property
    def initial_pheromone(self) -> float:
        return self._initial

    def __repr__(self) -> str:
        return (
            f"PheromoneMatrix(n_cities={self._n_cities}, "
            f"min={self._matrix.min():.4f}, max={self._matrix.max():.4f}, "
            f"mean={self._matrix.mean():.4f})"
        )
