"""
matching/prioritizer.py
───────────────────────
The dispatcher-facing entry point: tasks in, priority map out.

prioritize_tasks() is what the matching service calls for each batch of
allocated tasks. It builds a fresh RouteDiscovery for the batch, runs it,
and hands back {task_id: rank}. Pheromone is not carried between calls:
each batch starts from a uniform matrix.

Error handling contract
────────────────────────
  InvalidInputError:    empty or malformed batch. The caller should reject
                        the batch; nothing was computed.
  ExhaustedSearchError: an internal invariant broke. Not retried here;
                        it propagates so the bug is visible.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np

from matching.config import ColonyConfig
from matching.models import PriorityMap
from route_discovery import RouteDiscovery
from route_discovery.colony import TaskRecord

logger = logging.getLogger(__name__)


def prioritize_tasks(
    tasks: Iterable[TaskRecord],
    config: Optional[ColonyConfig] = None,
    rng: Optional[np.random.Generator] = None,
    max_iterations: Optional[int] = None,
) -> PriorityMap:
    """
    Rank a batch of tasks for dispatch with the ant colony.

    Args:
        tasks:          AllocatedTask records (or mappings that validate
                        into one). Duplicate ids collapse to one entry.
        config:         Colony hyperparameters. None = defaults.
        rng:            Random generator; pass a seeded one for
                        reproducible rankings.
        max_iterations: Overrides config.max_iterations for this call.

    Returns:
        {task_id: rank}, ranks 1..N over the N distinct task ids.

    Raises:
        InvalidInputError:    empty or malformed batch, bad iteration count.
        ExhaustedSearchError: internal selection invariant violated.
    """
    engine = RouteDiscovery(tasks, config=config, rng=rng)
    engine.optimize(max_iterations)
    priorities = engine.best_priority_map()

    logger.info(
        "prioritize_tasks: ranked %d task(s), tour length %.4f (%.2fms)",
        len(priorities), engine.best_tour_length, engine.last_run_ms,
    )
    return priorities
