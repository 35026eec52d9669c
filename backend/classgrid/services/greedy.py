from __future__ import annotations

import logging

from classgrid.schemas.scheduling import SolverResult
from classgrid.services.constraints import Placement
from classgrid.services.problem import SchedulingProblem, failure
from classgrid.services.tasks import Task

logger = logging.getLogger(__name__)

GREEDY_FAILURE_REASON = "No available slot found that meets all constraints."


class GreedyScheduler:
    """First-fit baseline: longest sessions first, smallest adequate room first."""

    def __init__(self, problem: SchedulingProblem) -> None:
        self.problem = problem

    def _rooms_by_capacity(self, task: Task) -> list[str]:
        rooms = self.problem.rooms
        return sorted(task.candidate_room_ids, key=lambda room_id: rooms[room_id].capacity)

    def _first_fit(self, task: Task, accepted: list[tuple[Task, Placement]]) -> Placement | None:
        evaluator = self.problem.evaluator
        for room_id in self._rooms_by_capacity(task):
            for day in task.candidate_days:
                for start_index in self.problem.start_options[task.task_id]:
                    placement = self.problem.placement(task, room_id, day, start_index)
                    if evaluator.hard_conflict(task, placement, accepted) is None:
                        return placement
        return None

    def run(self) -> SolverResult:
        ordered = sorted(self.problem.schedulable, key=lambda task: task.slots_needed, reverse=True)
        accepted: list[tuple[Task, Placement]] = []
        failed = self.problem.failures()
        for task in ordered:
            placement = self._first_fit(task, accepted)
            if placement is None:
                failed.append(failure(task, GREEDY_FAILURE_REASON))
            else:
                accepted.append((task, placement))

        logger.info("Greedy scheduling placed %d of %d tasks", len(accepted), len(self.problem.tasks))
        return SolverResult(
            success=not failed,
            scheduled_entries=[self.problem.entry(task, placement) for task, placement in accepted],
            failed_classes=failed,
        )
