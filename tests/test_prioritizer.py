"""
tests/test_prioritizer.py
─────────────────────────
Tests for matching.prioritizer.prioritize_tasks: the dispatcher-facing call.

Test groups:
    Group 1: Output shape (ranks 1..N, duplicates collapsed)
    Group 2: Reproducibility and configuration
    Group 3: Error propagation and logging
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from matching.config import ColonyConfig
from matching.models import AllocatedTask, FacetsValue
from matching.prioritizer import prioritize_tasks
from route_discovery import InvalidInputError


def _task(task_id, latency: float, cpu: float = 1.0) -> AllocatedTask:
    return AllocatedTask(task_id=task_id, facets=FacetsValue(latency=latency, cpu=cpu))


@pytest.fixture
def batch():
    return [
        _task(101, latency=12.0),
        _task(102, latency=3.0),
        _task(103, latency=7.5),
        _task(104, latency=0.5),
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Group 1: Output shape
# ─────────────────────────────────────────────────────────────────────────────

class TestOutputShape:

    def test_every_task_ranked_once(self, batch):
        ranks = prioritize_tasks(batch, config=ColonyConfig(seed=1), max_iterations=20)
        assert set(ranks) == {101, 102, 103, 104}
        assert sorted(ranks.values()) == [1, 2, 3, 4]

    def test_duplicate_ids_ranked_once(self, batch):
        ranks = prioritize_tasks(
            batch + [_task(102, latency=99.0)],
            config=ColonyConfig(seed=1),
            max_iterations=10,
        )
        assert len(ranks) == 4

    def test_single_task(self):
        assert prioritize_tasks([_task("solo", 2.0)], max_iterations=1) == {"solo": 1}


# ─────────────────────────────────────────────────────────────────────────────
# Group 2: Reproducibility and configuration
# ─────────────────────────────────────────────────────────────────────────────

class TestReproducibility:

    def test_seeded_generator_reproduces_ranking(self, batch):
        first = prioritize_tasks(batch, rng=np.random.default_rng(7), max_iterations=25)
        second = prioritize_tasks(batch, rng=np.random.default_rng(7), max_iterations=25)
        assert first == second

    def test_config_iterations_used_when_not_overridden(self, batch):
        config = ColonyConfig(seed=3, max_iterations=5)
        assert prioritize_tasks(batch, config=config) == prioritize_tasks(
            batch, config=config, max_iterations=5
        )


# ─────────────────────────────────────────────────────────────────────────────
# Group 3: Errors and logging
# ─────────────────────────────────────────────────────────────────────────────

class TestErrorsAndLogging:

    def test_empty_batch_raises(self):
        with pytest.raises(InvalidInputError):
            prioritize_tasks([])

    def test_bad_iteration_count_raises(self, batch):
        with pytest.raises(InvalidInputError):
            prioritize_tasks(batch, max_iterations=0)

    def test_logs_summary(self, batch, caplog):
        with caplog.at_level(logging.INFO, logger="matching.prioritizer"):
            prioritize_tasks(batch, config=ColonyConfig(seed=2), max_iterations=3)
        assert "ranked 4 task(s)" in caplog.text
