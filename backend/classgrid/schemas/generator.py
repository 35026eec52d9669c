from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from classgrid.schemas.scheduling import (
    TIME_PATTERN,
    ClassOffering,
    Room,
    SchedulingConstraints,
    SolverResult,
    parse_break_window,
    parse_time_to_minutes,
)


class SoftWeights(BaseModel):
    preferred_room_bonus: float = Field(default=100.0, ge=0, le=10_000)
    option_room_bonus: float = Field(default=25.0, ge=0, le=10_000)
    room_type_bonus: float = Field(default=50.0, ge=0, le=10_000)
    adjacency_bonus: float = Field(default=50.0, ge=0, le=10_000)
    gap_penalty_per_minute: float = Field(default=1.0, ge=0, le=1_000)
    early_slot_penalty: float = Field(default=1.0, ge=0, le=1_000)


SolverStrategy = Literal["cp", "smart", "memetic", "greedy"]


class BacktrackingSettings(BaseModel):
    # None disables the wall-clock budget.
    timeout_seconds: float | None = Field(default=15.0, gt=0, le=600)


class MemeticSettings(BaseModel):
    population_size: int = Field(default=50, ge=2, le=2000)
    generations: int = Field(default=50, ge=1, le=5000)
    mutation_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    elite_count: int = Field(default=2, ge=0, le=100)
    local_search_count: int = Field(default=5, ge=0, le=2000)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)
    hard_conflict_penalty: float = Field(default=1_000_000.0, gt=0)
    task_base_score: float = Field(default=1000.0, ge=0)
    soft_conflict_penalty: float = Field(default=10.0, ge=0)

    @model_validator(mode="after")
    def validate_relationships(self) -> "MemeticSettings":
        if self.elite_count >= self.population_size:
            raise ValueError("elite_count must be less than population_size")
        if self.local_search_count > self.population_size:
            raise ValueError("local_search_count cannot exceed population_size")
        return self


class SolverSettings(BaseModel):
    backtracking: BacktrackingSettings = Field(default_factory=BacktrackingSettings)
    memetic: MemeticSettings = Field(default_factory=MemeticSettings)
    weights: SoftWeights = Field(default_factory=SoftWeights)


class TimeGridRequest(BaseModel):
    start_time: str = "07:30"
    end_time: str = "17:00"
    slot_minutes: int = Field(default=30, ge=5, le=240)
    break_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value[:5]

    @field_validator("break_time")
    @classmethod
    def validate_break_time(cls, value: str | None) -> str | None:
        if parse_break_window(value) is None:
            return None
        return value.strip()

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeGridRequest":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class TimeGridResponse(BaseModel):
    time_slots: list[str]


class GenerateScheduleRequest(BaseModel):
    classes: list[ClassOffering] = Field(default_factory=list)
    rooms: list[Room] = Field(default_factory=list)
    time_slots: list[str] | None = None
    grid: TimeGridRequest | None = None
    slot_minutes: int | None = Field(default=None, ge=5, le=240)
    constraints: SchedulingConstraints = Field(default_factory=SchedulingConstraints)
    strategy: SolverStrategy | None = None
    settings_override: SolverSettings | None = None

    @field_validator("time_slots")
    @classmethod
    def validate_time_slots(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        invalid = [item for item in value if not TIME_PATTERN.match(item)]
        if invalid:
            raise ValueError(f"Invalid time slot label(s): {', '.join(invalid)}")
        return [item[:5] for item in value]

    @model_validator(mode="after")
    def validate_grid_source(self) -> "GenerateScheduleRequest":
        if self.time_slots is None and self.grid is None:
            raise ValueError("Either time_slots or grid is required")
        if self.time_slots is not None and self.grid is not None:
            raise ValueError("time_slots and grid cannot both be provided")
        return self


class GenerateScheduleResponse(BaseModel):
    result: SolverResult
    strategy: SolverStrategy
    runtime_ms: int
    task_count: int
    time_slots: list[str]
    settings_used: SolverSettings
