import pytest

from builders import make_class
from classgrid.schemas.scheduling import ScheduleEntry, SchedulingConstraints
from classgrid.services.conflict_service import ConflictService


def _entry(task_id, class_id, room_id, day, start, end, session_type="Lecture", hours=1.0):
    return ScheduleEntry(
        task_id=task_id,
        class_id=class_id,
        room_id=room_id,
        day=day,
        start_time=start,
        end_time=end,
        session_type=session_type,
        hours=hours,
    )


@pytest.fixture
def sample_classes():
    return [
        make_class("c1", code="C1", lecture_hours=1, lab_hours=1, instructor_id="f1", block_id="A"),
        make_class("c2", code="C2", lecture_hours=1, instructor_id="f2", block_id="B"),
        make_class("c3", code="C3", lecture_hours=2, split_lecture=True, instructor_id="f1", block_id="C"),
    ]


def test_detect_room_conflict(sample_classes):
    entries = [
        _entry("c1_Lecture", "c1", "r1", "Monday", "09:00", "10:00"),
        _entry("c2_Lecture", "c2", "r1", "Monday", "09:30", "10:30"),
    ]
    report = ConflictService(entries, sample_classes, SchedulingConstraints()).detect_conflicts()

    assert len(report.conflicts) == 1
    conflict = report.conflicts[0]
    assert conflict.conflict_type == "room_overlap"
    assert conflict.id == "room-c1_Lecture-c2_Lecture"
    assert "C1 (Lecture) and C2 (Lecture) on Monday" in conflict.description
    assert set(conflict.affected_entries) == {"c1_Lecture", "c2_Lecture"}


def test_back_to_back_entries_are_clean(sample_classes):
    entries = [
        _entry("c1_Lecture", "c1", "r1", "Monday", "09:00", "10:00"),
        _entry("c2_Lecture", "c2", "r1", "Monday", "10:00", "11:00"),
    ]
    report = ConflictService(entries, sample_classes, SchedulingConstraints()).detect_conflicts()
    assert report.conflicts == []


def test_detect_instructor_conflict_respects_toggle(sample_classes):
    entries = [
        _entry("c1_Lecture", "c1", "r1", "Tuesday", "09:00", "10:00"),
        _entry("c3_Lecture_1", "c3", "r2", "Tuesday", "09:00", "10:00"),
    ]
    enforced = ConflictService(entries, sample_classes, SchedulingConstraints()).detect_conflicts()
    relaxed = ConflictService(
        entries, sample_classes, SchedulingConstraints(enforce_instructor=False)
    ).detect_conflicts()

    assert [item.conflict_type for item in enforced.conflicts] == ["instructor_overlap"]
    assert relaxed.conflicts == []


def test_detect_same_day_rules(sample_classes):
    entries = [
        _entry("c1_Lecture", "c1", "r1", "Monday", "08:00", "09:00"),
        _entry("c1_Lab", "c1", "lab", "Monday", "13:00", "14:00", session_type="Lab"),
        _entry("c3_Lecture_1", "c3", "r2", "Wednesday", "08:00", "09:00"),
        _entry("c3_Lecture_2", "c3", "r2", "Wednesday", "10:00", "11:00"),
    ]
    report = ConflictService(entries, sample_classes, SchedulingConstraints()).detect_conflicts()

    kinds = sorted(item.conflict_type for item in report.conflicts)
    assert kinds == ["lecture_lab_same_day", "split_same_day"]


def test_detect_break_and_unknown_class(sample_classes):
    entries = [
        _entry("c2_Lecture", "c2", "r1", "Friday", "11:30", "12:30"),
        _entry("c9_Lecture", "c9", "r1", "Friday", "08:00", "09:00"),
    ]
    constraints = SchedulingConstraints(break_time="12:00-13:00")
    service = ConflictService(entries, sample_classes, constraints)
    report = service.detect_conflicts()

    kinds = {item.conflict_type: item for item in report.conflicts}
    assert set(kinds) == {"break_time", "unknown_class"}
    assert kinds["break_time"].id == "break-c2_Lecture"

    resolutions = service.generate_resolutions(kinds["unknown_class"])
    assert [item.action_type for item in resolutions] == ["drop_entry"]
    assert resolutions[0].target_task_id == "c9_Lecture"


def test_generate_resolutions_by_conflict_type(sample_classes):
    entries = [
        _entry("c1_Lecture", "c1", "r1", "Monday", "09:00", "10:00"),
        _entry("c2_Lecture", "c2", "r1", "Monday", "09:00", "10:00"),
        _entry("c3_Lecture_1", "c3", "r2", "Thursday", "08:00", "09:00"),
        _entry("c3_Lecture_2", "c3", "r3", "Thursday", "15:00", "16:00"),
    ]
    service = ConflictService(entries, sample_classes, SchedulingConstraints())
    report = service.detect_conflicts()
    by_type = {item.conflict_type: item for item in report.conflicts}

    room = service.generate_resolutions(by_type["room_overlap"])
    split = service.generate_resolutions(by_type["split_same_day"])

    assert room[0].action_type == "change_room"
    assert room[0].target_task_id == "c2_Lecture"
    assert split[0].action_type == "move_slot"
    assert split[0].parameters == {"avoid_day": True}
