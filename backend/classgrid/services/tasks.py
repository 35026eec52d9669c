from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from classgrid.core.config import DEFAULT_WORKING_DAYS
from classgrid.schemas.scheduling import (
    ClassOffering,
    Room,
    ScheduleEntry,
    SchedulingConstraints,
    SessionType,
)

logger = logging.getLogger(__name__)

SPLIT_TASK_PATTERN = re.compile(r"_Lecture_([12])$")


@dataclass(frozen=True, eq=False)
class Task:
    task_id: str
    offering: ClassOffering
    session_type: SessionType
    hours: float
    duration_minutes: int
    slots_needed: int
    candidate_room_ids: tuple[str, ...]
    candidate_days: tuple[str, ...]
    split_index: int | None = None

    @property
    def class_id(self) -> str:
        return self.offering.id

    @property
    def instructor_id(self) -> str | None:
        return self.offering.instructor_id

    @property
    def block_id(self) -> str:
        return self.offering.block_id

    @property
    def label(self) -> str:
        if self.split_index is None:
            return f"{self.offering.label} ({self.session_type.value})"
        return f"{self.offering.label} ({self.session_type.value} {self.split_index}/2)"


def slots_needed_for(duration_minutes: int, slot_minutes: int) -> int:
    return -(-duration_minutes // slot_minutes)


def room_allowed(
    room: Room,
    offering: ClassOffering,
    session_type: SessionType,
    constraints: SchedulingConstraints,
) -> bool:
    if constraints.enforce_capacity and room.capacity < offering.estimated_students:
        return False
    if constraints.room_type_constraint == "strict" and room.type.value != session_type.value:
        return False
    if constraints.enforce_room_ownership:
        owned_elsewhere = room.owner_college_id is not None and room.owner_college_id != offering.college_id
        if owned_elsewhere and not room.is_general_use:
            return False
    return True


def candidate_rooms(
    rooms: Sequence[Room],
    offering: ClassOffering,
    session_type: SessionType,
    constraints: SchedulingConstraints,
) -> tuple[str, ...]:
    """Eligible room ids, best options first.

    Order: the priority room, then the offering's option rooms in the order
    they were listed, then (under soft room typing) rooms of the matching type,
    then everything else in input order.
    """

    preferences = offering.room_preferences
    priority = preferences.priority if preferences else None
    options = preferences.options if preferences else []
    soft_typing = constraints.room_type_constraint == "soft"

    def sort_key(item: tuple[int, Room]) -> tuple[int, int, int, int]:
        position, room = item
        option_rank = options.index(room.id) if room.id in options else len(options)
        type_rank = 1 if soft_typing and room.type.value != session_type.value else 0
        return (0 if room.id == priority else 1, option_rank, type_rank, position)

    eligible = [
        (position, room)
        for position, room in enumerate(rooms)
        if room_allowed(room, offering, session_type, constraints)
    ]
    return tuple(room.id for _, room in sorted(eligible, key=sort_key))


def working_days_for(constraints: SchedulingConstraints, working_days: Iterable[str] | None = None) -> tuple[str, ...]:
    days = list(working_days) if working_days is not None else list(DEFAULT_WORKING_DAYS)
    excluded = set(constraints.excluded_days)
    return tuple(day for day in days if day not in excluded)


def decompose_class(
    offering: ClassOffering,
    rooms: Sequence[Room],
    constraints: SchedulingConstraints,
    *,
    slot_minutes: int = 30,
    working_days: Iterable[str] | None = None,
) -> list[Task]:
    default_days = working_days_for(constraints, working_days)
    # An explicit lecture-day list is honoured as given, excluded days included.
    lecture_days = tuple(offering.lecture_days) if offering.lecture_days else default_days
    tasks: list[Task] = []

    lecture_hours = float(offering.subject.lecture_hours)
    if lecture_hours > 0:
        lecture_rooms = candidate_rooms(rooms, offering, SessionType.lecture, constraints)
        if offering.split_lecture:
            half = lecture_hours / 2
            half_minutes = round(half * 60)
            for split_index in (1, 2):
                tasks.append(
                    Task(
                        task_id=f"{offering.id}_Lecture_{split_index}",
                        offering=offering,
                        session_type=SessionType.lecture,
                        hours=half,
                        duration_minutes=half_minutes,
                        slots_needed=slots_needed_for(half_minutes, slot_minutes),
                        candidate_room_ids=lecture_rooms,
                        candidate_days=lecture_days,
                        split_index=split_index,
                    )
                )
        else:
            minutes = round(lecture_hours * 60)
            tasks.append(
                Task(
                    task_id=f"{offering.id}_Lecture",
                    offering=offering,
                    session_type=SessionType.lecture,
                    hours=lecture_hours,
                    duration_minutes=minutes,
                    slots_needed=slots_needed_for(minutes, slot_minutes),
                    candidate_room_ids=lecture_rooms,
                    candidate_days=lecture_days,
                )
            )

    lab_hours = float(offering.subject.lab_hours)
    if lab_hours > 0:
        minutes = round(lab_hours * 60)
        tasks.append(
            Task(
                task_id=f"{offering.id}_Lab",
                offering=offering,
                session_type=SessionType.lab,
                hours=lab_hours,
                duration_minutes=minutes,
                slots_needed=slots_needed_for(minutes, slot_minutes),
                candidate_room_ids=candidate_rooms(rooms, offering, SessionType.lab, constraints),
                candidate_days=default_days,
            )
        )
    return tasks


def decompose_classes(
    classes: Sequence[ClassOffering],
    rooms: Sequence[Room],
    constraints: SchedulingConstraints,
    *,
    slot_minutes: int = 30,
    working_days: Iterable[str] | None = None,
) -> list[Task]:
    days = list(working_days) if working_days is not None else None
    tasks: list[Task] = []
    for offering in classes:
        tasks.extend(
            decompose_class(offering, rooms, constraints, slot_minutes=slot_minutes, working_days=days)
        )
    logger.debug("Decomposed %d class offerings into %d tasks", len(classes), len(tasks))
    return tasks


def task_for_entry(entry: ScheduleEntry, offering: ClassOffering) -> Task:
    """Rebuild the task identity of an already scheduled entry."""

    match = SPLIT_TASK_PATTERN.search(entry.task_id)
    minutes = round(entry.hours * 60)
    return Task(
        task_id=entry.task_id,
        offering=offering,
        session_type=entry.session_type,
        hours=entry.hours,
        duration_minutes=minutes,
        slots_needed=0,
        candidate_room_ids=(),
        candidate_days=(),
        split_index=int(match.group(1)) if match and entry.session_type == SessionType.lecture else None,
    )
