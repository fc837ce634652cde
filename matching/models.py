"""
matching/models.py
──────────────────
Data structures shared by the route discovery engine and its callers.

Reading guide
-------------
Read top-to-bottom. FacetsValue describes one task's scheduling attributes,
AllocatedTask pairs it with an identifier, and the aliases at the bottom
name the engine's output.

Both models are frozen: the engine treats tasks as read-only input and
never writes back to them.
"""

from __future__ import annotations

from typing import Dict, Union

from pydantic import BaseModel, ConfigDict, Field


TaskID = Union[int, str]
"""Identifier of a task. Unique per city; duplicates collapse to one city."""


class FacetsValue(BaseModel):
    """
    The scheduling-relevant attributes of one task.

    Only two facets drive the optimisation:
        latency → cost of reaching this task from any other task.
        cpu     → the ant's desirability weight, (cpu / cost) ** beta.

    The rest travel with the task for the dispatcher's benefit.

    Ranges are not validated. Supplying finite, non-negative values is the
    caller's responsibility; pydantic only coerces the types.
    """
    model_config = ConfigDict(frozen=True)

    bandwidth: float = Field(0.0, description="Bandwidth the task needs")
    latency: float = Field(..., description="Processing latency; edge cost into this task")
    cpu: float = Field(1.0, description="CPU weight; scales ant desirability")
    retry_limit: int = Field(0, description="Retries allowed by the dispatcher")
    timeout: float = Field(0.0, description="Dispatch timeout")


class AllocatedTask(BaseModel):
    """
    One schedulable task, handed over by the task-origination services.

    The engine treats each distinct task_id as one "city" in the tour.
    """
    model_config = ConfigDict(frozen=True)

    task_id: TaskID = Field(..., description="Unique task identifier")
    facets: FacetsValue


# Maps task_id → 1-based dispatch rank (1 = dispatch first)
# e.g., {"task-b": 1, "task-c": 2, "task-a": 3}
PriorityMap = Dict[TaskID, int]
