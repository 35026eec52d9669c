from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from classgrid.core.exceptions import SchedulerError
from classgrid.schemas.scheduling import minutes_to_time, parse_break_window, parse_time_to_minutes


def _parse(value: str, field: str) -> int:
    try:
        return parse_time_to_minutes(value)
    except ValueError as exc:
        raise SchedulerError(message=f"Invalid {field}: {value!r}", details={"field": field}) from exc


def _resolve_break(break_window: str | tuple[int, int] | None) -> tuple[int, int] | None:
    if break_window is None or isinstance(break_window, tuple):
        return break_window
    try:
        return parse_break_window(break_window)
    except ValueError as exc:
        raise SchedulerError(message=str(exc), details={"field": "break_time"}) from exc


def build_time_slots(
    start_time: str,
    end_time: str,
    slot_minutes: int = 30,
    break_window: str | tuple[int, int] | None = None,
) -> list[str]:
    """Slot-start labels covering [start_time, end_time) every `slot_minutes`.

    Labels whose start falls inside the break window are left out, so the
    resulting grid has a hole where the break sits.
    """

    start = _parse(start_time, "start_time")
    end = _parse(end_time, "end_time")
    if slot_minutes <= 0:
        raise SchedulerError(message="slot_minutes must be positive", details={"slot_minutes": slot_minutes})
    if end <= start:
        raise SchedulerError(message="end_time must be after start_time")
    window = _resolve_break(break_window)

    labels: list[str] = []
    current = start
    while current < end:
        if window is None or not (window[0] <= current < window[1]):
            labels.append(minutes_to_time(current))
        current += slot_minutes
    return labels


def row_span(start_time: str, end_time: str, slot_minutes: int = 30) -> int:
    """Number of grid rows an entry occupies when rendered."""

    try:
        duration = parse_time_to_minutes(end_time) - parse_time_to_minutes(start_time)
    except ValueError:
        return 1
    if slot_minutes <= 0:
        return 1
    return max(1, math.ceil(duration / slot_minutes))


@dataclass(frozen=True)
class TimeGrid:
    labels: tuple[str, ...]
    minutes: tuple[int, ...]
    slot_minutes: int

    @classmethod
    def from_labels(cls, labels: Sequence[str], slot_minutes: int = 30) -> "TimeGrid":
        if slot_minutes <= 0:
            raise SchedulerError(message="slot_minutes must be positive", details={"slot_minutes": slot_minutes})
        values = sorted({_parse(label, "time slot") for label in labels})
        return cls(
            labels=tuple(minutes_to_time(value) for value in values),
            minutes=tuple(values),
            slot_minutes=slot_minutes,
        )

    def __len__(self) -> int:
        return len(self.minutes)

    def start_indices(self, slots_needed: int) -> tuple[int, ...]:
        if slots_needed <= 0:
            return ()
        valid: list[int] = []
        for index in range(len(self.minutes) - slots_needed + 1):
            covered = self.minutes[index : index + slots_needed]
            if all(b - a == self.slot_minutes for a, b in zip(covered, covered[1:])):
                valid.append(index)
        return tuple(valid)
