from classgrid.schemas.conflict import ConflictDetail, ConflictReport, ResolutionAction  # noqa: F401
from classgrid.schemas.generator import (  # noqa: F401
    BacktrackingSettings,
    GenerateScheduleRequest,
    GenerateScheduleResponse,
    MemeticSettings,
    SoftWeights,
    SolverSettings,
    SolverStrategy,
    TimeGridRequest,
)
from classgrid.schemas.scheduling import (  # noqa: F401
    ClassOffering,
    FailedClass,
    Room,
    RoomType,
    ScheduleEntry,
    SchedulingConstraints,
    SessionType,
    SolverResult,
)
