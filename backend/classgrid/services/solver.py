from __future__ import annotations

import logging
import random
from time import perf_counter
from typing import Sequence

from classgrid.core.exceptions import SchedulerError
from classgrid.schemas.generator import SolverSettings, SolverStrategy
from classgrid.schemas.scheduling import ClassOffering, Room, SchedulingConstraints, SolverResult
from classgrid.services.backtracking import BacktrackingSolver
from classgrid.services.greedy import GreedyScheduler
from classgrid.services.memetic import MemeticScheduler
from classgrid.services.problem import build_problem

logger = logging.getLogger(__name__)

SOLVER_STRATEGIES: tuple[str, ...] = ("cp", "smart", "memetic", "greedy")


def solve(
    classes: Sequence[ClassOffering | dict],
    rooms: Sequence[Room | dict],
    time_slots: Sequence[str],
    constraints: SchedulingConstraints | dict | None = None,
    *,
    strategy: SolverStrategy = "smart",
    slot_minutes: int = 30,
    settings: SolverSettings | None = None,
    working_days: Sequence[str] | None = None,
    rng: random.Random | None = None,
    max_tasks: int | None = None,
) -> SolverResult:
    """Schedule every session of `classes` into `rooms` over the `time_slots` grid."""

    if strategy not in SOLVER_STRATEGIES:
        raise SchedulerError(
            message=f"Unknown solver strategy: {strategy}",
            details={"allowed": list(SOLVER_STRATEGIES)},
        )
    settings = settings or SolverSettings()

    problem = build_problem(
        classes,
        rooms,
        time_slots,
        constraints,
        slot_minutes=slot_minutes,
        weights=settings.weights,
        working_days=working_days,
    )
    if max_tasks is not None and len(problem.tasks) > max_tasks:
        raise SchedulerError(
            message=f"Too many sessions to schedule in one request ({len(problem.tasks)} > {max_tasks})",
            details={"task_count": len(problem.tasks), "max_tasks": max_tasks},
        )

    logger.info(
        "Solving %d tasks (%d schedulable) over %d rooms and %d slots with %s",
        len(problem.tasks),
        len(problem.schedulable),
        len(problem.rooms),
        len(problem.grid),
        strategy,
    )
    start = perf_counter()
    if strategy in ("cp", "smart"):
        result = BacktrackingSolver(problem, mode=strategy, settings=settings.backtracking).solve()
    elif strategy == "memetic":
        result = MemeticScheduler(problem, settings.memetic, rng=rng).run()
    else:
        result = GreedyScheduler(problem).run()

    logger.info(
        "Solver %s finished in %d ms (success=%s)",
        strategy,
        int((perf_counter() - start) * 1000),
        result.success,
    )
    return result
