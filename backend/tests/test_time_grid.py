import pytest

from classgrid.core.exceptions import SchedulerError
from classgrid.services.time_grid import TimeGrid, build_time_slots, row_span


def test_build_time_slots_covers_half_open_range():
    slots = build_time_slots("08:00", "10:00", 30)
    assert slots == ["08:00", "08:30", "09:00", "09:30"]


def test_build_time_slots_leaves_hole_for_break():
    slots = build_time_slots("11:00", "14:00", 30, "12:00-13:00")
    assert slots == ["11:00", "11:30", "13:00", "13:30"]


def test_build_time_slots_accepts_parsed_break_window():
    slots = build_time_slots("11:00", "14:00", 60, (720, 780))
    assert slots == ["11:00", "13:00"]


@pytest.mark.parametrize(
    "start,end,minutes,break_time",
    [
        ("8:00", "10:00", 30, None),
        ("10:00", "08:00", 30, None),
        ("08:00", "10:00", 0, None),
        ("08:00", "10:00", 30, "lunch"),
    ],
)
def test_build_time_slots_rejects_bad_input(start, end, minutes, break_time):
    with pytest.raises(SchedulerError):
        build_time_slots(start, end, minutes, break_time)


def test_row_span():
    assert row_span("08:00", "09:30") == 3
    assert row_span("08:00", "08:45") == 2
    assert row_span("08:00", "08:00") == 1
    assert row_span("bad", "09:00") == 1


def test_time_grid_sorts_and_dedupes_labels():
    grid = TimeGrid.from_labels(["09:00", "08:00", "08:30", "08:30:00"], 30)
    assert grid.labels == ("08:00", "08:30", "09:00")
    assert grid.minutes == (480, 510, 540)
    assert len(grid) == 3


def test_start_indices_stay_inside_grid():
    grid = TimeGrid.from_labels(["08:00", "08:30", "09:00", "09:30"], 30)
    assert grid.start_indices(1) == (0, 1, 2, 3)
    assert grid.start_indices(3) == (0, 1)
    assert grid.start_indices(5) == ()


def test_start_indices_never_span_a_hole():
    grid = TimeGrid.from_labels(build_time_slots("11:00", "14:00", 30, "12:00-13:00"), 30)
    # 11:00, 11:30 | 13:00, 13:30
    assert grid.start_indices(2) == (0, 2)
    assert grid.start_indices(3) == ()


def test_time_grid_rejects_bad_label():
    with pytest.raises(SchedulerError):
        TimeGrid.from_labels(["25:00"], 30)
