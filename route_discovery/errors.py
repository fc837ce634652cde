"""
route_discovery/errors.py
─────────────────────────
Exceptions raised by the route discovery engine.

    RouteDiscoveryError
    ├── InvalidInputError     (also a ValueError)   → caller supplied bad input
    ├── NotReadyError         (also a RuntimeError) → called out of order
    └── ExhaustedSearchError  (also a RuntimeError) → internal invariant broken

Caller contract:
    InvalidInputError and NotReadyError are recoverable: fix the input or
    call initialize() / optimize() first. ExhaustedSearchError signals a bug
    (or non-finite facets) and must not be retried.
"""

from __future__ import annotations

from typing import Optional


class RouteDiscoveryError(Exception):
    """Base class for every error raised by the engine."""


class InvalidInputError(RouteDiscoveryError, ValueError):
    """
    Raised when the task set (or a run parameter) cannot be used.

    When is this raised?
        • initialize() with an empty task set.
        • initialize() with a record that does not validate as a task.
        • optimize() with a non-positive iteration count.

    The engine's previous state is left untouched.
    """


class NotReadyError(RouteDiscoveryError, RuntimeError):
    """
    Raised when a result is requested before it exists.

    When is this raised?
        • optimize() before initialize().
        • best_priority_map() before one complete iteration.
    """


class ExhaustedSearchError(RouteDiscoveryError, RuntimeError):
    """
    Raised when an ant cannot pick its next city.

    With a correctly normalised distribution this never happens. Seeing it
    means the desirability values were not finite (e.g. NaN facets) or the
    ant was asked to move after visiting every city.

    Attributes:
        city_count:   Number of cities in the run.
        current_city: City the ant was standing on, if known.
    """

    def __init__(
        self,
        city_count: int,
        current_city: Optional[int] = None,
        message: str = "",
    ) -> None:
        self.city_count = city_count
        self.current_city = current_city
        default_msg = (
            f"No next city could be selected from city {current_city} "
            f"({city_count} cities): probability normalisation failed."
        )
        super().__init__(message or default_msg)
