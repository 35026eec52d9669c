from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DAY_VALUES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

DAY_SHORT_MAP = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")
BREAK_PATTERN = re.compile(r"^\s*(\d{2}:\d{2})\s*-\s*(\d{2}:\d{2})\s*$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(value: int) -> str:
    hours = value // 60
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


def normalize_day(value: str) -> str:
    day = value.strip().capitalize()
    return DAY_SHORT_MAP.get(day, day)


def normalize_days(values: list[str]) -> list[str]:
    """Normalize day names, dropping unknown values and duplicates."""

    days: list[str] = []
    for value in values:
        if not isinstance(value, str):
            logger.warning("Ignoring non-string day value %r", value)
            continue
        day = normalize_day(value)
        if day not in DAY_VALUES:
            logger.warning("Ignoring unknown day value %r", value)
            continue
        if day not in days:
            days.append(day)
    return days


def parse_lecture_days(value: Any) -> list[str]:
    """Resolve a lecture-day preference into a list of day names.

    Storage layers have been seen returning the list itself, a JSON string, or a
    JSON string that itself holds a JSON string. Anything that does not decode to
    a list yields an empty list, which means "no explicit preference".
    """

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if not isinstance(value, str):
        return []

    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse lecture_days %r: %s", value, exc)
        return []

    if isinstance(parsed, str):
        try:
            parsed = json.loads(parsed)
        except json.JSONDecodeError:
            return []
    if not isinstance(parsed, list):
        return []
    return parsed


def parse_break_window(value: str | None) -> tuple[int, int] | None:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped or stripped.lower() == "none":
        return None
    match = BREAK_PATTERN.match(stripped)
    if not match:
        raise ValueError("Break time must look like HH:MM-HH:MM")
    start = parse_time_to_minutes(match.group(1))
    end = parse_time_to_minutes(match.group(2))
    if end <= start:
        raise ValueError("Break end time must be after start time")
    return start, end


class SessionType(str, Enum):
    lecture = "Lecture"
    lab = "Lab"


class RoomType(str, Enum):
    lecture = "Lecture"
    lab = "Lab"


RoomTypeConstraint = Literal["strict", "soft", "none"]


class SubjectRef(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    subject_code: str = Field(default="", max_length=50)
    lecture_hours: float = Field(default=0, ge=0, le=40)
    lab_hours: float = Field(default=0, ge=0, le=40)


class BlockRef(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    estimated_students: int = Field(default=0, ge=0)


class RoomPreferences(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    priority: str | None = None
    options: list[str] = Field(default_factory=list)

    @field_validator("options", mode="before")
    @classmethod
    def drop_empty_options(cls, value: Any) -> Any:
        if value is None:
            return []
        return value


class ClassOffering(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

    id: str
    subject: SubjectRef = Field(validation_alias=AliasChoices("subject", "subjects"))
    instructor_id: str | None = None
    block: BlockRef = Field(validation_alias=AliasChoices("block", "blocks"))
    split_lecture: bool = False
    lecture_days: list[str] = Field(default_factory=list)
    room_preferences: RoomPreferences | None = None
    college_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_flat_block(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "block" in data or "blocks" in data:
            return data
        if "block_id" in data:
            data = dict(data)
            data["block"] = {
                "id": data.pop("block_id"),
                "estimated_students": data.pop("estimated_students", 0) or 0,
            }
        return data

    @field_validator("instructor_id", mode="before")
    @classmethod
    def blank_instructor_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("lecture_days", mode="before")
    @classmethod
    def decode_lecture_days(cls, value: Any) -> list[str]:
        return normalize_days(parse_lecture_days(value))

    @property
    def block_id(self) -> str:
        return self.block.id

    @property
    def estimated_students(self) -> int:
        return self.block.estimated_students

    @property
    def label(self) -> str:
        return self.subject.subject_code or f"Class {self.id}"


class Room(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    room_name: str = ""
    capacity: int = Field(default=0, ge=0)
    type: RoomType = RoomType.lecture
    owner_college_id: str | None = None
    is_general_use: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value


class SchedulingConstraints(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enforce_capacity: bool = True
    room_type_constraint: RoomTypeConstraint = "soft"
    enforce_instructor: bool = True
    enforce_block: bool = True
    excluded_days: list[str] = Field(default_factory=list)
    break_time: str | None = None
    enforce_room_ownership: bool = False

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_room_type_flag(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "enforceRoomType" not in data:
            return data
        if "roomTypeConstraint" in data or "room_type_constraint" in data:
            return data
        data = dict(data)
        data["roomTypeConstraint"] = "strict" if data.pop("enforceRoomType") else "none"
        return data

    @field_validator("excluded_days", mode="before")
    @classmethod
    def normalize_excluded_days(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return normalize_days(list(value))

    @field_validator("break_time")
    @classmethod
    def validate_break_time(cls, value: str | None) -> str | None:
        if parse_break_window(value) is None:
            return None
        return value.strip()

    @property
    def break_window(self) -> tuple[int, int] | None:
        return parse_break_window(self.break_time)


class ScheduleEntry(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    task_id: str
    class_id: str
    room_id: str
    day: str
    start_time: str
    end_time: str
    session_type: SessionType
    hours: float = Field(ge=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value[:5]


class FailedClass(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_label: str = Field(alias="class")
    reason: str
    task_id: str | None = None


class SolverResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    scheduled_entries: list[ScheduleEntry] = Field(default_factory=list)
    failed_classes: list[FailedClass] = Field(default_factory=list)
