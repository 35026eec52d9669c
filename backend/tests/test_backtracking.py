import itertools

import pytest

from builders import WEEK, make_class, make_room, relaxed_constraints
from classgrid.schemas.generator import BacktrackingSettings
from classgrid.services.backtracking import (
    BACKTRACK_FAILURE_REASON,
    BacktrackingSolver,
    Deadline,
    SearchOutcome,
    mcv_order,
)
from classgrid.services.problem import NO_DAY_REASON, NO_FIT_REASON, NO_ROOM_REASON, build_problem
from classgrid.schemas.scheduling import parse_time_to_minutes

SEVEN_SLOTS = ["08:00", "08:30", "09:00", "09:30", "10:00", "10:30", "11:00"]
NO_TIMEOUT = BacktrackingSettings(timeout_seconds=None)


def _solve(classes, rooms, slots, constraints=None, *, mode="smart", days=("Monday",), settings=NO_TIMEOUT):
    problem = build_problem(
        classes,
        rooms,
        slots,
        constraints or relaxed_constraints(),
        slot_minutes=30,
        working_days=list(days),
    )
    solver = BacktrackingSolver(problem, mode=mode, settings=settings)
    return solver, solver.solve()


@pytest.mark.parametrize("mode", ["cp", "smart"])
def test_single_lecture_fills_contiguous_slots_from_first_index(mode):
    _, result = _solve([make_class("A", lecture_hours=1.5)], [make_room("R1")], SEVEN_SLOTS, mode=mode)

    assert result.success
    (entry,) = result.scheduled_entries
    assert entry.start_time == "08:00"
    assert entry.end_time == "09:30"
    assert entry.hours == 1.5
    assert entry.day == "Monday"


@pytest.mark.parametrize("mode", ["cp", "smart"])
def test_shared_instructor_with_single_window_places_exactly_one(mode):
    classes = [
        make_class("A", lecture_hours=1, instructor_id="T1", block_id="B1"),
        make_class("B", lecture_hours=1, instructor_id="T1", block_id="B2"),
    ]
    solver, result = _solve(
        classes,
        [make_room("R1")],
        ["08:00", "08:30"],
        relaxed_constraints(enforceInstructor=True),
        mode=mode,
    )

    assert not result.success
    assert len(result.scheduled_entries) == 1
    assert len(result.failed_classes) == 1
    assert result.failed_classes[0].reason == BACKTRACK_FAILURE_REASON
    assert solver.outcome == SearchOutcome.exhausted


def test_shared_instructor_with_room_to_spare_never_overlaps():
    classes = [
        make_class("A", lecture_hours=1, instructor_id="T1", block_id="B1"),
        make_class("B", lecture_hours=1, instructor_id="T1", block_id="B2"),
    ]
    _, result = _solve(
        classes,
        [make_room("R1"), make_room("R2")],
        SEVEN_SLOTS,
        relaxed_constraints(enforceInstructor=True),
    )

    assert result.success
    first, second = sorted(result.scheduled_entries, key=lambda entry: entry.start_time)
    assert parse_time_to_minutes(first.end_time) <= parse_time_to_minutes(second.start_time)


@pytest.mark.parametrize("mode", ["cp", "smart"])
def test_split_lecture_halves_land_on_different_days(mode):
    offering = make_class("A", lecture_hours=3, split_lecture=True, lecture_days=["Monday", "Wednesday"])
    _, result = _solve([offering], [make_room("R1")], SEVEN_SLOTS, mode=mode, days=WEEK)

    assert result.success
    assert len(result.scheduled_entries) == 2
    assert all(entry.hours == 1.5 for entry in result.scheduled_entries)
    assert {entry.day for entry in result.scheduled_entries} == {"Monday", "Wednesday"}


def test_break_window_candidates_are_rejected():
    constraints = relaxed_constraints(breakTime="12:00-13:00")
    _, blocked = _solve([make_class("A", lecture_hours=1)], [make_room("R1")], ["11:30", "12:00", "12:30"], constraints)
    _, moved = _solve(
        [make_class("A", lecture_hours=1)],
        [make_room("R1")],
        ["11:30", "12:00", "12:30", "13:00", "13:30"],
        constraints,
    )

    assert not blocked.success
    assert blocked.scheduled_entries == []
    assert moved.success
    assert moved.scheduled_entries[0].start_time == "13:00"


def test_lecture_and_lab_are_separated_by_day():
    _, result = _solve(
        [make_class("A", lecture_hours=1, lab_hours=2)],
        [make_room("R1")],
        SEVEN_SLOTS,
        days=["Monday", "Tuesday"],
    )

    assert result.success
    first, second = result.scheduled_entries
    assert first.day != second.day


def test_cp_mode_is_deterministic():
    classes = [make_class(str(index), lecture_hours=1, block_id=f"B{index % 2}") for index in range(6)]
    rooms = [make_room("R1"), make_room("R2")]

    _, first = _solve(classes, rooms, SEVEN_SLOTS, mode="cp", days=WEEK)
    _, second = _solve(classes, rooms, SEVEN_SLOTS, mode="cp", days=WEEK)

    assert first.success
    assert first.model_dump() == second.model_dump()


def test_smart_mode_uses_priority_room():
    offering = make_class("A", lecture_hours=1, priority_room="R2")
    _, result = _solve([offering], [make_room("R1"), make_room("R2")], SEVEN_SLOTS)

    assert result.scheduled_entries[0].room_id == "R2"


def test_smart_mode_packs_block_sessions_back_to_back():
    classes = [
        make_class("A", lecture_hours=1, block_id="B1"),
        make_class("B", lecture_hours=1, block_id="B1"),
    ]
    _, result = _solve(classes, [make_room("R1"), make_room("R2")], SEVEN_SLOTS, relaxed_constraints(enforceBlock=True))

    first, second = sorted(result.scheduled_entries, key=lambda entry: entry.start_time)
    assert first.end_time == second.start_time


def test_timeout_returns_best_partial_assignment():
    counter = itertools.count()
    classes = [make_class(str(index), lecture_hours=0.5, block_id=f"B{index}") for index in range(5)]
    problem = build_problem(classes, [make_room("R1")], SEVEN_SLOTS, relaxed_constraints(), working_days=["Monday"])
    solver = BacktrackingSolver(
        problem,
        mode="smart",
        settings=BacktrackingSettings(timeout_seconds=3.5),
        clock=lambda: next(counter),
    )

    result = solver.solve()

    assert solver.outcome == SearchOutcome.timed_out
    assert len(result.scheduled_entries) == 2
    assert len(result.failed_classes) == 3
    assert {item.reason for item in result.failed_classes} == {BACKTRACK_FAILURE_REASON}


def test_unschedulable_tasks_are_reported_up_front():
    classes = [
        make_class("big", lecture_hours=1, students=100),
        make_class("long", lecture_hours=6, block_id="B2"),
        make_class("ok", lecture_hours=1, block_id="B3"),
    ]
    constraints = relaxed_constraints(enforceCapacity=True)
    problem = build_problem(classes, [make_room("R1", capacity=40)], SEVEN_SLOTS, constraints, working_days=["Monday"])

    assert [task.task_id for task in problem.schedulable] == ["ok_Lecture"]
    reasons = {task.task_id: reason for task, reason in problem.unschedulable}
    assert reasons == {"big_Lecture": NO_ROOM_REASON, "long_Lecture": NO_FIT_REASON}

    result = BacktrackingSolver(problem, settings=NO_TIMEOUT).solve()
    assert not result.success
    assert [entry.task_id for entry in result.scheduled_entries] == ["ok_Lecture"]
    assert {item.task_id for item in result.failed_classes} == {"big_Lecture", "long_Lecture"}


def test_no_day_left_after_exclusions():
    constraints = relaxed_constraints(excludedDays=["Monday"])
    problem = build_problem(
        [make_class("A", lab_hours=1)], [make_room("R1")], SEVEN_SLOTS, constraints, working_days=["Monday"]
    )
    assert problem.unschedulable[0][1] == NO_DAY_REASON


def test_mcv_order_puts_scarce_tasks_first():
    rooms = [make_room("R1"), make_room("R2"), make_room("R3", capacity=60)]
    classes = [
        make_class("wide", lecture_hours=1),
        make_class("narrow", lecture_hours=1, students=45, block_id="B2"),
    ]
    problem = build_problem(
        classes,
        rooms,
        SEVEN_SLOTS,
        relaxed_constraints(enforceCapacity=True),
        working_days=["Monday"],
    )
    assert [task.class_id for task in mcv_order(problem.schedulable)] == ["narrow", "wide"]


def test_deadline_without_budget_never_expires():
    counter = itertools.count(step=1000)
    deadline = Deadline(None, clock=lambda: next(counter))
    assert not deadline.expired()
    assert not deadline.expired()


def test_unknown_mode_rejected():
    problem = build_problem([], [make_room("R1")], SEVEN_SLOTS)
    with pytest.raises(ValueError):
        BacktrackingSolver(problem, mode="annealing")
