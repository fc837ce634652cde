"""
route_discovery/priority.py
───────────────────────────
Turn the best tour into a dispatch ranking.

The tour is already the answer: the first city on the trail is dispatched
first. This module only translates city indices back to task identifiers
and numbers them 1..N.
"""

from __future__ import annotations

from typing import Sequence

from matching.models import PriorityMap, TaskID


def extract_priority_map(
    trail: Sequence[int],
    task_ids: Sequence[TaskID],
) -> PriorityMap:
    """
    Map each task identifier to its 1-based position in the trail.

    Pure: no randomness, no side effects; the same trail always yields the
    same map.

    Args:
        trail:    City indices of a complete tour (a permutation of 0..N−1).
        task_ids: task_ids[i] is the identifier of city i.

    Returns:
        {task_id: rank} with ranks exactly {1, …, N}.

    Raises:
        ValueError: if the trail is not a permutation of the cities.

    Example:
        trail = [1, 2, 0], task_ids = ["A", "B", "C"]
        → {"B": 1, "C": 2, "A": 3}
    """
    if len(trail) != len(task_ids):
        raise ValueError(
            f"Trail has {len(trail)} cities but there are {len(task_ids)} tasks"
        )

    priorities: PriorityMap = {
        task_ids[int(city)]: rank for rank, city in enumerate(trail, start=1)
    }

    if len(priorities) != len(task_ids):
        raise ValueError("Trail visits a city more than once")
    return priorities
