from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from classgrid.schemas.generator import SoftWeights
from classgrid.schemas.scheduling import (
    ClassOffering,
    FailedClass,
    Room,
    ScheduleEntry,
    SchedulingConstraints,
    minutes_to_time,
)
from classgrid.services.constraints import ConstraintEvaluator, Placement
from classgrid.services.tasks import Task, decompose_classes
from classgrid.services.time_grid import TimeGrid

logger = logging.getLogger(__name__)

NO_ROOM_REASON = "No eligible room satisfies the capacity, type and ownership rules."
NO_DAY_REASON = "No eligible day remains after applying excluded days."
NO_FIT_REASON = "Session does not fit in the daily time grid."

# Entry end times are HH:MM labels, so a session must end by 23:59.
LAST_MINUTE_OF_DAY = 24 * 60 - 1


@dataclass
class SchedulingProblem:
    """Everything a solver needs for one invocation."""

    tasks: list[Task]
    rooms: dict[str, Room]
    grid: TimeGrid
    constraints: SchedulingConstraints
    evaluator: ConstraintEvaluator
    start_options: dict[str, tuple[int, ...]] = field(default_factory=dict)
    schedulable: list[Task] = field(default_factory=list)
    unschedulable: list[tuple[Task, str]] = field(default_factory=list)

    def placement(self, task: Task, room_id: str, day: str, start_index: int) -> Placement:
        start = self.grid.minutes[start_index]
        return Placement(
            room_id=room_id,
            day=day,
            start=start,
            end=start + task.duration_minutes,
            start_index=start_index,
        )

    def candidate_placements(self, task: Task) -> Iterable[Placement]:
        """Every (room, day, start) combination in enumeration order."""

        for room_id in task.candidate_room_ids:
            for day in task.candidate_days:
                for start_index in self.start_options[task.task_id]:
                    yield self.placement(task, room_id, day, start_index)

    def entry(self, task: Task, placement: Placement) -> ScheduleEntry:
        return ScheduleEntry(
            task_id=task.task_id,
            class_id=task.class_id,
            room_id=placement.room_id,
            day=placement.day,
            start_time=minutes_to_time(placement.start),
            end_time=minutes_to_time(placement.end),
            session_type=task.session_type,
            hours=task.hours,
        )

    def failures(self) -> list[FailedClass]:
        return [failure(task, reason) for task, reason in self.unschedulable]


def failure(task: Task, reason: str) -> FailedClass:
    return FailedClass(class_label=task.label, reason=reason, task_id=task.task_id)


def _coerce(model: type, items: Sequence[Any]) -> list:
    return [item if isinstance(item, model) else model.model_validate(item) for item in items]


def build_problem(
    classes: Sequence[ClassOffering | dict],
    rooms: Sequence[Room | dict],
    time_slots: Sequence[str],
    constraints: SchedulingConstraints | dict | None = None,
    *,
    slot_minutes: int = 30,
    weights: SoftWeights | None = None,
    working_days: Sequence[str] | None = None,
) -> SchedulingProblem:
    offerings = _coerce(ClassOffering, classes)
    room_models = _coerce(Room, rooms)
    if constraints is None:
        constraints = SchedulingConstraints()
    elif not isinstance(constraints, SchedulingConstraints):
        constraints = SchedulingConstraints.model_validate(constraints)

    grid = TimeGrid.from_labels(time_slots, slot_minutes)
    tasks = decompose_classes(
        offerings,
        room_models,
        constraints,
        slot_minutes=slot_minutes,
        working_days=working_days,
    )
    room_map = {room.id: room for room in room_models}
    problem = SchedulingProblem(
        tasks=tasks,
        rooms=room_map,
        grid=grid,
        constraints=constraints,
        evaluator=ConstraintEvaluator(constraints, weights, room_map),
    )

    for task in tasks:
        starts = tuple(
            index
            for index in grid.start_indices(task.slots_needed)
            if grid.minutes[index] + task.duration_minutes <= LAST_MINUTE_OF_DAY
        )
        problem.start_options[task.task_id] = starts
        if not task.candidate_room_ids:
            problem.unschedulable.append((task, NO_ROOM_REASON))
        elif not task.candidate_days:
            problem.unschedulable.append((task, NO_DAY_REASON))
        elif not starts:
            problem.unschedulable.append((task, NO_FIT_REASON))
        else:
            problem.schedulable.append(task)

    if problem.unschedulable:
        logger.info(
            "%d of %d tasks have no candidate placement",
            len(problem.unschedulable),
            len(tasks),
        )
    return problem
