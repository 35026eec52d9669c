from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Mapping

from classgrid.schemas.generator import SoftWeights
from classgrid.schemas.scheduling import Room, SchedulingConstraints
from classgrid.services.tasks import Task


class ConflictKind(IntEnum):
    # Lower value wins when a placement breaks several rules at once.
    break_time = 1
    split_same_day = 2
    lecture_lab_same_day = 3
    room_overlap = 4
    instructor_overlap = 5
    block_overlap = 6

    @property
    def description(self) -> str:
        return CONFLICT_DESCRIPTIONS[self]


CONFLICT_DESCRIPTIONS = {
    ConflictKind.break_time: "overlaps the break window",
    ConflictKind.split_same_day: "split lecture halves on the same day",
    ConflictKind.lecture_lab_same_day: "lecture and lab of the same class on the same day",
    ConflictKind.room_overlap: "room already booked",
    ConflictKind.instructor_overlap: "instructor already teaching",
    ConflictKind.block_overlap: "block already in class",
}


@dataclass(frozen=True)
class Placement:
    room_id: str
    day: str
    start: int
    end: int
    start_index: int = 0


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


class ConstraintEvaluator:
    """Hard-conflict checks and soft scoring shared by every solver."""

    def __init__(
        self,
        constraints: SchedulingConstraints,
        weights: SoftWeights | None = None,
        rooms: Mapping[str, Room] | None = None,
    ) -> None:
        self.constraints = constraints
        self.weights = weights or SoftWeights()
        self.rooms = dict(rooms or {})
        self.break_window = constraints.break_window

    def breaks_window(self, placement: Placement) -> bool:
        if self.break_window is None:
            return False
        return ranges_overlap(placement.start, placement.end, *self.break_window)

    def pair_violations(
        self,
        task: Task,
        placement: Placement,
        other: Task,
        other_placement: Placement,
    ) -> list[ConflictKind]:
        if placement.day != other_placement.day:
            return []

        violations: list[ConflictKind] = []
        same_class = task.class_id == other.class_id
        if (
            same_class
            and task.split_index is not None
            and other.split_index is not None
            and task.split_index != other.split_index
        ):
            violations.append(ConflictKind.split_same_day)
        if same_class and task.session_type != other.session_type:
            violations.append(ConflictKind.lecture_lab_same_day)

        if not ranges_overlap(placement.start, placement.end, other_placement.start, other_placement.end):
            return violations
        if placement.room_id == other_placement.room_id:
            violations.append(ConflictKind.room_overlap)
        if (
            self.constraints.enforce_instructor
            and task.instructor_id
            and task.instructor_id == other.instructor_id
        ):
            violations.append(ConflictKind.instructor_overlap)
        if self.constraints.enforce_block and task.block_id == other.block_id:
            violations.append(ConflictKind.block_overlap)
        return violations

    def hard_conflict(
        self,
        task: Task,
        placement: Placement,
        accepted: Iterable[tuple[Task, Placement]],
    ) -> ConflictKind | None:
        if self.breaks_window(placement):
            return ConflictKind.break_time

        found: ConflictKind | None = None
        for other, other_placement in accepted:
            violations = self.pair_violations(task, placement, other, other_placement)
            if not violations:
                continue
            worst = min(violations)
            if found is None or worst < found:
                found = worst
            if found == ConflictKind.split_same_day:
                break
        return found

    def room_preference_bonus(self, task: Task, room_id: str) -> float:
        preferences = task.offering.room_preferences
        if preferences is None:
            return 0.0
        if preferences.priority is not None and preferences.priority == room_id:
            return self.weights.preferred_room_bonus
        if room_id in preferences.options:
            return self.weights.option_room_bonus
        return 0.0

    def room_type_matches(self, task: Task, room_id: str) -> bool:
        room = self.rooms.get(room_id)
        return room is not None and room.type.value == task.session_type.value

    def room_type_bonus(self, task: Task, room_id: str) -> float:
        if self.constraints.room_type_constraint != "soft":
            return 0.0
        return self.weights.room_type_bonus if self.room_type_matches(task, room_id) else 0.0

    def is_soft_type_mismatch(self, task: Task, room_id: str) -> bool:
        return self.constraints.room_type_constraint == "soft" and not self.room_type_matches(task, room_id)

    def compactness_score(
        self,
        task: Task,
        placement: Placement,
        accepted: Iterable[tuple[Task, Placement]],
    ) -> float | None:
        """Reward back-to-back sessions of one block, penalize the gap otherwise.

        Returns None when the block has nothing else on that day.
        """

        min_gap: int | None = None
        for other, other_placement in accepted:
            if other is task or other.block_id != task.block_id or other_placement.day != placement.day:
                continue
            gap = max(0, placement.start - other_placement.end, other_placement.start - placement.end)
            if min_gap is None or gap < min_gap:
                min_gap = gap
        if min_gap is None:
            return None
        if min_gap == 0:
            return self.weights.adjacency_bonus
        return -self.weights.gap_penalty_per_minute * min_gap

    def soft_score(
        self,
        task: Task,
        placement: Placement,
        accepted: Iterable[tuple[Task, Placement]],
    ) -> float:
        score = self.room_preference_bonus(task, placement.room_id)
        score += self.room_type_bonus(task, placement.room_id)
        compactness = self.compactness_score(task, placement, accepted)
        if compactness is None:
            score -= self.weights.early_slot_penalty * placement.start_index
        else:
            score += compactness
        return score
