from collections import defaultdict
from typing import Dict, List, Sequence

from classgrid.schemas.conflict import ConflictDetail, ConflictReport, ResolutionAction
from classgrid.schemas.scheduling import (
    ClassOffering,
    ScheduleEntry,
    SchedulingConstraints,
    parse_time_to_minutes,
)
from classgrid.services.constraints import ConflictKind, ConstraintEvaluator, Placement
from classgrid.services.tasks import Task, task_for_entry

ID_PREFIXES = {
    ConflictKind.break_time: "break",
    ConflictKind.split_same_day: "split",
    ConflictKind.lecture_lab_same_day: "leclab",
    ConflictKind.room_overlap: "room",
    ConflictKind.instructor_overlap: "instr",
    ConflictKind.block_overlap: "block",
}

class ConflictService:
    """Audits a finished schedule against the hard rules."""

    def __init__(
        self,
        entries: Sequence[ScheduleEntry],
        classes: Sequence[ClassOffering],
        constraints: SchedulingConstraints,
    ):
        self.entries: List[ScheduleEntry] = list(entries)
        self.class_map: Dict[str, ClassOffering] = {item.id: item for item in classes}
        self.evaluator = ConstraintEvaluator(constraints)

    def detect_conflicts(self) -> ConflictReport:
        conflicts: List[ConflictDetail] = []

        by_day: Dict[str, List[tuple]] = defaultdict(list)
        for entry in self.entries:
            offering = self.class_map.get(entry.class_id)
            if offering is None:
                conflicts.append(ConflictDetail(
                    id=f"unknown-{entry.task_id}",
                    conflict_type="unknown_class",
                    description=f"Entry {entry.task_id} references unknown class {entry.class_id}",
                    severity="hard",
                    affected_entries=[entry.task_id],
                ))
                continue
            task = task_for_entry(entry, offering)
            placement = Placement(
                room_id=entry.room_id,
                day=entry.day,
                start=parse_time_to_minutes(entry.start_time),
                end=parse_time_to_minutes(entry.end_time),
            )
            if self.evaluator.breaks_window(placement):
                conflicts.append(ConflictDetail(
                    id=f"break-{entry.task_id}",
                    conflict_type="break_time",
                    description=f"{task.label} on {entry.day} {entry.start_time}-{entry.end_time} overlaps the break",
                    severity="hard",
                    affected_entries=[entry.task_id],
                ))
            by_day[entry.day].append((task, placement))

        # Only same-day pairs can clash
        for day, day_items in by_day.items():
            for i, (task_a, placement_a) in enumerate(day_items):
                for task_b, placement_b in day_items[i + 1:]:
                    for kind in self.evaluator.pair_violations(task_a, placement_a, task_b, placement_b):
                        conflicts.append(self._detail(kind, day, task_a, task_b))

        return ConflictReport(conflicts=conflicts, suggested_resolutions=[])

    def _detail(self, kind: ConflictKind, day: str, task_a: Task, task_b: Task) -> ConflictDetail:
        return ConflictDetail(
            id=f"{ID_PREFIXES[kind]}-{task_a.task_id}-{task_b.task_id}",
            conflict_type=kind.name,
            description=f"{task_a.label} and {task_b.label} on {day}: {kind.description}",
            severity="hard",
            affected_entries=[task_a.task_id, task_b.task_id],
        )

    def generate_resolutions(self, conflict: ConflictDetail) -> List[ResolutionAction]:
        resolutions = []
        target = conflict.affected_entries[-1]
        if conflict.conflict_type == "room_overlap":
            resolutions.append(ResolutionAction(
                action_type="change_room",
                description="Find another free room for this session",
                target_task_id=target,
            ))

        if conflict.conflict_type in ("instructor_overlap", "block_overlap", "break_time"):
            resolutions.append(ResolutionAction(
                action_type="move_slot",
                description="Move to a different time slot",
                target_task_id=target,
            ))

        if conflict.conflict_type in ("split_same_day", "lecture_lab_same_day"):
            resolutions.append(ResolutionAction(
                action_type="move_slot",
                description="Move to a different day",
                target_task_id=target,
                parameters={"avoid_day": True},
            ))

        if conflict.conflict_type == "unknown_class":
            resolutions.append(ResolutionAction(
                action_type="drop_entry",
                description="Remove the entry or add its class offering",
                target_task_id=target,
            ))

        return resolutions
