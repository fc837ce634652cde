"""
route_discovery/colony.py
─────────────────────────
RouteDiscovery: runs the ant colony over the task set and keeps the best tour.

How the colony works
─────────────────────
  initialize(tasks)
    1. Collapse duplicate task ids. Each distinct id becomes one city; the
       first occurrence supplies its facets and its index.
    2. Build the destination-latency cost matrix (route_discovery.cost).
    3. Allocate the pheromone matrix and reset it to initial_pheromone.
    4. Allocate the ant arena: number_of_ants reusable Ant objects.

  optimize(max_iterations)
    Reset the pheromone matrix, then for every iteration:
      a. Setup        : every ant is reset onto a random start city.
      b. Construction : every ant walks n − 1 steps (Ant.select_next_city).
      c. Tour length  : every ant sums its closed tour.
      ── write barrier: all ants are done; nothing reads the matrix now ──
      d. Evaporation  : τ *= remaining_factor.
      e. Reinforcement: every ant adds Q / tour_length to its edges.
      f. Best update  : a strictly shorter tour replaces the best.

    The loop always runs the configured number of iterations. There is no
    convergence stop; callers who want one pass on_iteration and return
    True from it, or read best_length_history afterwards.

  best_priority_map()
    Rank the tasks by their position in the best tour.

Randomness
──────────
The generator is injected (or built from config.seed). Each iteration
draws one seed per ant from it, in ant order, and the ant draws its start
city and every decision from a child generator built on that seed. A
generator that has already been used elsewhere therefore yields different
tours from a fresh one with the same seed. The result therefore does not
depend on which worker runs which ant, and a seeded run is reproducible
for any value of config.workers.

Index management
─────────────────
The matrices and ants work with integer city indices. The colony keeps
_task_ids (index → task_id) and translates back only when producing the
priority map.
"""

from __future__ import annotations

import logging
import math
import numbers
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray
from pydantic import ValidationError

from matching.config import ColonyConfig
from matching.models import AllocatedTask, FacetsValue, PriorityMap, TaskID
from route_discovery.ant import Ant
from route_discovery.cost import build_cost_matrix
from route_discovery.errors import InvalidInputError, NotReadyError
from route_discovery.pheromone import PheromoneMatrix
from route_discovery.priority import extract_priority_map

logger = logging.getLogger(__name__)

TaskRecord = Union[AllocatedTask, dict]

IterationCallback = Callable[[int, float], Optional[bool]]
"""on_iteration(iteration_index, best_length) → truthy to stop the run."""


class RouteDiscovery:
    """
    Owns the cost matrix, the pheromone matrix, the ant arena and the best tour.

    Usage:
        engine = RouteDiscovery(tasks, config=ColonyConfig(seed=7))
        engine.optimize(200)
        ranks = engine.best_priority_map()   # Dict[task_id, rank]

    After optimize():
        engine.best_tour_length     → cost of the best tour so far.
        engine.best_length_history  → best cost after each iteration of the run.
        engine.last_run_ms          → wall-clock time of the last optimize().

    The best tour persists across optimize() calls on the same engine and
    is cleared by initialize(). Pheromone is reset at the start of every
    optimize() call.
    """

    def __init__(
        self,
        tasks: Optional[Iterable[TaskRecord]] = None,
        config: Optional[ColonyConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """
        Args:
            tasks:  Optional task records. If given, initialize(tasks) runs now.
            config: Hyperparameters. None = ColonyConfig() defaults.
            rng:    Random generator. None = np.random.default_rng(config.seed).

        Raises:
            InvalidInputError: from initialize(), if tasks is given and unusable.
        """
        self._config = config if config is not None else ColonyConfig()
        self._rng = rng if rng is not None else np.random.default_rng(self._config.seed)

        self._task_ids: List[TaskID] = []
        self._facets: List[FacetsValue] = []
        self._costs: Optional[NDArray[np.float64]] = None
        self._pheromone: Optional[PheromoneMatrix] = None
        self._ants: List[Ant] = []

        self._best_tour: Optional[NDArray[np.intp]] = None
        self._best_length: float = math.inf
        self._history: List[float] = []
        self._iterations_completed: int = 0

        self.last_run_ms: float = 0.0

        if tasks is not None:
            self.initialize(tasks)

    # ── Initialisation ─────────────────────────────────────────────────────────

    @staticmethod
    def _validate_tasks(tasks: Iterable[TaskRecord]) -> List[AllocatedTask]:
        """Coerce each record into an AllocatedTask, or raise InvalidInputError."""
        if tasks is None:
            raise InvalidInputError("RouteDiscovery requires a task set, got None.")

        try:
            records = list(tasks)
        except TypeError as exc:
            raise InvalidInputError(
                f"Task set must be an iterable of task records, got {type(tasks).__name__}."
            ) from exc

        validated: List[AllocatedTask] = []
        for position, record in enumerate(records):
            if isinstance(record, AllocatedTask):
                validated.append(record)
                continue
            try:
                validated.append(AllocatedTask.model_validate(record))
            except ValidationError as exc:
                raise InvalidInputError(
                    f"Malformed task record at position {position}: {exc}"
                ) from exc
        return validated

    def initialize(self, tasks: Iterable[TaskRecord]) -> None:
        """
        Build the city set, cost matrix, pheromone matrix and ant arena.

        Everything is built into locals first and assigned at the end, so a
        failure leaves the engine exactly as it was.

        Raises:
            InvalidInputError: empty task set or a malformed record.
        """
        records = self._validate_tasks(tasks)
        if not records:
            raise InvalidInputError("RouteDiscovery requires at least one task.")

        # Dedup by id; dict keeps first-occurrence order
        cities: Dict[TaskID, FacetsValue] = {}
        for task in records:
            cities.setdefault(task.task_id, task.facets)

        duplicates = len(records) - len(cities)
        if duplicates:
            logger.warning(
                "Collapsed %d duplicate task id(s); %d distinct cities remain.",
                duplicates, len(cities),
            )

        task_ids = list(cities.keys())
        facets = list(cities.values())
        n_cities = len(task_ids)

        costs = build_cost_matrix(facets)
        costs.flags.writeable = False

        pheromone = PheromoneMatrix(n_cities, self._config.initial_pheromone)

        # Every ant carries the same facet weighting: the first city's
        n_ants = self._config.number_of_ants or n_cities
        ants = [Ant(n_cities, facets[0], self._config) for _ in range(n_ants)]

        # ── Commit ──────────────────────────────────────────────────────────
        self._task_ids = task_ids
        self._facets = facets
        self._costs = costs
        self._pheromone = pheromone
        self._ants = ants
        self._best_tour = None
        self._best_length = math.inf
        self._history = []
        self._iterations_completed = 0

        logger.debug(
            "RouteDiscovery initialised: %d cities, %d ants.", n_cities, n_ants,
        )

    # ── Main loop ──────────────────────────────────────────────────────────────

    def optimize(
        self,
        max_iterations: Optional[int] = None,
        on_iteration: Optional[IterationCallback] = None,
    ) -> None:
        """
        Run the colony for a fixed number of iterations.

        Args:
            max_iterations: Iteration count. None = config.max_iterations.
            on_iteration:   Called after every completed iteration with
                            (iteration_index, best_length). A truthy return
                            stops the run at that iteration boundary.

        Raises:
            NotReadyError:        initialize() has not succeeded yet.
            InvalidInputError:    max_iterations is not a positive integer.
            ExhaustedSearchError: an ant's selection invariant broke. The run
                                  aborts; the best tour from earlier complete
                                  iterations is kept.
        """
        if self._pheromone is None:
            raise NotReadyError("optimize() called before initialize().")

        iterations = self._config.max_iterations if max_iterations is None else max_iterations
        if (
            isinstance(iterations, bool)
            or not isinstance(iterations, numbers.Integral)
            or iterations < 1
        ):
            raise InvalidInputError(
                f"max_iterations must be a positive integer, got {iterations!r}"
            )

        start = time.perf_counter()
        self._pheromone.reset()
        self._history = []
        try:
            if self._config.workers > 1 and len(self._ants) > 1:
                with ThreadPoolExecutor(max_workers=self._config.workers) as executor:
                    completed = self._iterate(int(iterations), on_iteration, executor)
            else:
                completed = self._iterate(int(iterations), on_iteration, None)
        finally:
            self.last_run_ms = (time.perf_counter() - start) * 1000.0

        logger.info(
            "RouteDiscovery: %d iteration(s) over %d cities, best tour %.4f (%.2fms)",
            completed, self.number_of_cities, self._best_length, self.last_run_ms,
        )

    def _iterate(
        self,
        iterations: int,
        on_iteration: Optional[IterationCallback],
        executor: Optional[ThreadPoolExecutor],
    ) -> int:
        """Run up to `iterations` iterations; return how many completed."""
        for iteration in range(iterations):
            self._run_iteration(executor)
            self._iterations_completed += 1
            self._history.append(self._best_length)

            logger.debug(
                "Iteration %d: best tour length %.4f", iteration, self._best_length,
            )

            if on_iteration is not None and on_iteration(iteration, self._best_length):
                logger.debug("Run stopped by on_iteration after iteration %d.", iteration)
                return iteration + 1
        return iterations

    def _run_iteration(self, executor: Optional[ThreadPoolExecutor]) -> None:
        """One full iteration: setup, construction, lengths, update, best."""
        costs = self._costs
        pheromone = self._pheromone.read_only_view()
        n_cities = self.number_of_cities

        # Setup: one independent stream per ant, seeded from the engine's
        # generator so its current position decides the iteration
        seeds = self._rng.integers(
            np.iinfo(np.int64).max, size=len(self._ants), dtype=np.int64
        )
        streams = [np.random.default_rng(int(seed)) for seed in seeds]
        starts = [int(stream.integers(n_cities)) for stream in streams]

        # Construction: ants only read pheromone/costs and write their own state
        if executor is None:
            for ant, start_city, stream in zip(self._ants, starts, streams):
                ant.construct_tour(start_city, pheromone, costs, stream)
        else:
            futures = [
                executor.submit(ant.construct_tour, start_city, pheromone, costs, stream)
                for ant, start_city, stream in zip(self._ants, starts, streams)
            ]
            # Join before the write barrier; re-raises any ant's error
            for future in futures:
                future.result()

        for ant in self._ants:
            ant.compute_tour_length(costs)

        self._update_trails()
        self._update_best()

    def _update_trails(self) -> None:
        """
        Evaporate, then reinforce every ant's closed tour.

        Deposits are applied one ant at a time, in arena order, so the
        summed contributions are identical on every run.
        """
        self._pheromone.evaporate(self._config.remaining_factor)
        for ant in self._ants:
            self._pheromone.deposit_tour(ant.trail, ant.tour_length, self._config.q)

    def _update_best(self) -> None:
        """Replace the best tour with any strictly shorter ant tour (deep copy)."""
        for ant in self._ants:
            if ant.tour_length < self._best_length:
                self._best_length = ant.tour_length
                self._best_tour = ant.trail.copy()

    # ── Results ────────────────────────────────────────────────────────────────

    def best_priority_map(self) -> PriorityMap:
        """
        Ranks 1..N for every distinct task, in best-tour order.

        Raises:
            NotReadyError: no iteration has completed yet.
        """
        if self._best_tour is None:
            raise NotReadyError(
                "best_priority_map() requires at least one completed iteration; "
                "call optimize() first."
            )
        return extract_priority_map(self._best_tour, self._task_ids)

    # ── Properties ─────────────────────────────────────────────────────────────

    @property
    def config(self) -> ColonyConfig:
        return self._config

    @property
    def number_of_cities(self) -> int:
        return len(self._task_ids)

    @property
    def number_of_ants(self) -> int:
        return len(self._ants)

    @property
    def task_ids(self) -> Sequence[TaskID]:
        """task_ids[i] is the identifier of city i."""
        return tuple(self._task_ids)

    @property
    def best_tour(self) -> Optional[List[int]]:
        """City indices of the best tour, or None before the first iteration."""
        if self._best_tour is None:
            return None
        return [int(city) for city in self._best_tour]

    @property
    def best_tour_ids(self) -> Optional[List[TaskID]]:
        if self._best_tour is None:
            return None
        return [self._task_ids[int(city)] for city in self._best_tour]

    @property
    def best_tour_length(self) -> float:
        """Cost of the best tour; math.inf before the first iteration."""
        return self._best_length

    @property
    def best_length_history(self) -> List[float]:
        """
        Best tour length after each completed iteration of the latest
        optimize() call, oldest first. Cleared when a new run starts;
        iterations_completed keeps counting across runs.
        """
        return list(self._history)

    @property
    def iterations_completed(self) -> int:
        return self._iterations_completed

    @property
    def ants(self) -> Sequence[Ant]:
        """The ant arena, holding the tours of the last iteration."""
        return tuple(self._ants)

    @property
    def cost_matrix(self) -> NDArray[np.float64]:
        if self._costs is None:
            raise NotReadyError("cost_matrix requested before initialize().")
        return self._costs.copy()

    @property
    def pheromone(self) -> NDArray[np.float64]:
        """Snapshot of the pheromone matrix."""
        if self._pheromone is None:
            raise NotReadyError("pheromone requested before initialize().")
        return self._pheromone.snapshot()

    def __repr__(self) -> str:
        return (
            f"RouteDiscovery(cities={self.number_of_cities}, ants={self.number_of_ants}, "
            f"iterations={self._iterations_completed}, best={self._best_length:.4f}, "
            f"last_run_ms={self.last_run_ms:.2f})"
        )
