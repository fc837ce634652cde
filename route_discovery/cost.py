"""
route_discovery/cost.py
───────────────────────
The cost matrix: what it costs to move from one city (task) to the next.

Cost model
──────────
    cost[i][j] = latency(task_j)    for i ≠ j
    cost[i][i] = 0.0

The cost of an edge depends only on its destination. Reaching a task is
dominated by that task's own processing latency, not by any distance
between tasks. The matrix is therefore asymmetric whenever latencies
differ, and is deliberately left that way.

A consequence worth knowing: every closed tour visits every city exactly
once, so every tour of n ≥ 2 cities costs Σ latency. The colony still
learns, because the ants' desirability (cpu / cost) ** beta and the
pheromone trails shape the ORDER, which is what the priority map uses.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from matching.models import FacetsValue


def build_cost_matrix(facets: Sequence[FacetsValue]) -> NDArray[np.float64]:
    """
    Build the n × n destination-latency cost matrix.

    Args:
        facets: One FacetsValue per city, in city-index order.

    Returns:
        float64 array of shape (n, n) with a zero diagonal.

    NumPy operation:
        np.tile(latencies, (n, 1)) repeats the latency row for every source
        city, so column j holds latency(task_j) everywhere. The diagonal is
        then zeroed in place.
    """
    latencies = np.array([f.latency for f in facets], dtype=np.float64)
    n = latencies.shape[0]
    costs: NDArray[np.float64] = np.tile(latencies, (n, 1))
    np.fill_diagonal(costs, 0.0)
    return costs


def tour_length(trail: Sequence[int], costs: NDArray[np.float64]) -> float:
    """
    Total cost of a closed tour, including the edge back to the start.

    A single-city tour is the self-loop cost[c][c] = 0.0.
    """
    if len(trail) == 0:
        return 0.0
    sources = np.asarray(trail, dtype=np.intp)
    targets = np.roll(sources, -1)
    return float(costs[sources, targets].sum())
