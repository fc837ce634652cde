"""
route_discovery: Ant Colony Optimisation over a task set.

Public API:
    RouteDiscovery       : run the colony, read the best tour / priority map
    extract_priority_map : best tour → {task_id: rank}
    InvalidInputError    : empty or malformed input
    NotReadyError        : result requested before it exists
    ExhaustedSearchError : internal selection invariant violated

Usage:
    from route_discovery import RouteDiscovery

    engine = RouteDiscovery(tasks)
    engine.optimize(100)
    ranks = engine.best_priority_map()   # Dict[task_id, rank]
"""

from route_discovery.colony import RouteDiscovery
from route_discovery.errors import (
    ExhaustedSearchError,
    InvalidInputError,
    NotReadyError,
    RouteDiscoveryError,
)
from route_discovery.priority import extract_priority_map

__all__ = [
    "RouteDiscovery",
    "extract_priority_map",
    "RouteDiscoveryError",
    "InvalidInputError",
    "NotReadyError",
    "ExhaustedSearchError",
]
