from __future__ import annotations

import logging
from enum import Enum
from time import perf_counter
from typing import Callable, Iterator, Literal

from classgrid.schemas.generator import BacktrackingSettings
from classgrid.schemas.scheduling import SolverResult
from classgrid.services.constraints import Placement
from classgrid.services.problem import SchedulingProblem, failure
from classgrid.services.tasks import Task

logger = logging.getLogger(__name__)

BACKTRACK_FAILURE_REASON = "Could not find a valid slot during backtracking."

BacktrackingMode = Literal["cp", "smart"]


class SearchOutcome(str, Enum):
    succeeded = "succeeded"
    timed_out = "timed_out"
    exhausted = "exhausted"


class Deadline:
    """Cooperative wall-clock budget; `seconds=None` never expires."""

    def __init__(self, seconds: float | None, clock: Callable[[], float] = perf_counter) -> None:
        self.seconds = seconds
        self._clock = clock
        self._started = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def expired(self) -> bool:
        return self.seconds is not None and self.elapsed > self.seconds


class SearchState:
    """Placements by task position plus an undo log of assignment order."""

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = tasks
        self.placements: list[Placement | None] = [None] * len(tasks)
        self.assigned: list[int] = []

    def assign(self, position: int, placement: Placement) -> None:
        self.placements[position] = placement
        self.assigned.append(position)

    def undo(self) -> int:
        position = self.assigned.pop()
        self.placements[position] = None
        return position

    def accepted(self) -> Iterator[tuple[Task, Placement]]:
        for position in self.assigned:
            yield self.tasks[position], self.placements[position]

    def snapshot(self) -> list[tuple[Task, Placement]]:
        return list(self.accepted())


def mcv_order(tasks: list[Task]) -> list[Task]:
    """Most-constrained first: few rooms per slot of duration go early."""

    return sorted(tasks, key=lambda task: len(task.candidate_room_ids) / task.slots_needed)


class BacktrackingSolver:
    def __init__(
        self,
        problem: SchedulingProblem,
        *,
        mode: BacktrackingMode = "smart",
        settings: BacktrackingSettings | None = None,
        clock: Callable[[], float] = perf_counter,
    ) -> None:
        if mode not in ("cp", "smart"):
            raise ValueError(f"Unknown backtracking mode: {mode}")
        self.problem = problem
        self.mode = mode
        self.settings = settings or BacktrackingSettings()
        self.clock = clock
        self.tasks = mcv_order(problem.schedulable)
        self.outcome: SearchOutcome | None = None

    def _consistent(self, task: Task, state: SearchState) -> Iterator[Placement]:
        evaluator = self.problem.evaluator
        for placement in self.problem.candidate_placements(task):
            if evaluator.hard_conflict(task, placement, state.accepted()) is None:
                yield placement

    def _ranked(self, task: Task, state: SearchState) -> Iterator[Placement]:
        evaluator = self.problem.evaluator
        scored = [
            (evaluator.soft_score(task, placement, state.accepted()), order, placement)
            for order, placement in enumerate(self._consistent(task, state))
        ]
        scored.sort(key=lambda item: (-item[0], item[1]))
        return iter([placement for _, _, placement in scored])

    def _candidates(self, position: int, state: SearchState) -> Iterator[Placement]:
        task = self.tasks[position]
        if self.mode == "smart":
            return self._ranked(task, state)
        return self._consistent(task, state)

    def search(self) -> list[tuple[Task, Placement]]:
        """Run the search; returns the full or best partial assignment."""

        deadline = Deadline(self.settings.timeout_seconds, self.clock)
        state = SearchState(self.tasks)
        frames: list[Iterator[Placement]] = []
        best: list[tuple[Task, Placement]] = []
        best_depth = 0
        depth = 0

        while True:
            if deadline.expired():
                logger.warning(
                    "Backtracking (%s) timed out after %.1fs at depth %d/%d",
                    self.mode,
                    deadline.elapsed,
                    best_depth,
                    len(self.tasks),
                )
                self.outcome = SearchOutcome.timed_out
                return best

            if depth > best_depth:
                best_depth = depth
                best = state.snapshot()

            if depth == len(self.tasks):
                self.outcome = SearchOutcome.succeeded
                return state.snapshot()

            if len(frames) == depth:
                frames.append(self._candidates(depth, state))

            placement = next(frames[depth], None)
            if placement is None:
                frames.pop()
                if depth == 0:
                    self.outcome = SearchOutcome.exhausted
                    return best
                depth -= 1
                state.undo()
                continue

            state.assign(depth, placement)
            depth += 1

    def solve(self) -> SolverResult:
        assignment = self.search()
        placed_ids = {task.task_id for task, _ in assignment}
        entries = [self.problem.entry(task, placement) for task, placement in assignment]
        failed = self.problem.failures()
        failed.extend(
            failure(task, BACKTRACK_FAILURE_REASON) for task in self.tasks if task.task_id not in placed_ids
        )
        logger.info(
            "Backtracking (%s) %s: %d placed, %d failed",
            self.mode,
            self.outcome.value,
            len(entries),
            len(failed),
        )
        return SolverResult(
            success=not failed,
            scheduled_entries=entries,
            failed_classes=failed,
        )
