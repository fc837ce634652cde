"""
matching: task models and colony configuration shared with route_discovery.

    AllocatedTask, FacetsValue : input records
    ColonyConfig               : colony hyperparameters

The prioritisation entry point lives in matching.prioritizer:

    from matching.prioritizer import prioritize_tasks
"""

from matching.config import ColonyConfig
from matching.models import AllocatedTask, FacetsValue, PriorityMap, TaskID

__all__ = [
    "AllocatedTask",
    "FacetsValue",
    "PriorityMap",
    "TaskID",
    "ColonyConfig",
]
