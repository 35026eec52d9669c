from pydantic import BaseModel, Field
from typing import Literal, List

from classgrid.schemas.scheduling import ClassOffering, ScheduleEntry, SchedulingConstraints

ConflictType = Literal[
    "break_time",
    "split_same_day",
    "lecture_lab_same_day",
    "room_overlap",
    "instructor_overlap",
    "block_overlap",
    "unknown_class",
]

class ConflictDetail(BaseModel):
    id: str
    conflict_type: ConflictType
    description: str
    severity: Literal["hard", "soft"]
    affected_entries: List[str]  # task ids of the entries involved

class ResolutionAction(BaseModel):
    action_type: Literal["move_slot", "change_room", "drop_entry"]
    description: str
    target_task_id: str
    parameters: dict = Field(default_factory=dict)

class ConflictReport(BaseModel):
    conflicts: List[ConflictDetail]
    suggested_resolutions: List[ResolutionAction]

class DetectConflictsRequest(BaseModel):
    entries: List[ScheduleEntry]
    classes: List[ClassOffering] = Field(default_factory=list)
    constraints: SchedulingConstraints = Field(default_factory=SchedulingConstraints)
