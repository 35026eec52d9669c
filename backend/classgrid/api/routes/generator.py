import logging
from time import perf_counter

from fastapi import APIRouter, Depends

from classgrid.core.config import Settings, get_settings
from classgrid.core.exceptions import SchedulerError
from classgrid.schemas.generator import (
    BacktrackingSettings,
    GenerateScheduleRequest,
    GenerateScheduleResponse,
    SolverSettings,
    TimeGridRequest,
    TimeGridResponse,
)
from classgrid.services.solver import SOLVER_STRATEGIES, solve
from classgrid.services.time_grid import build_time_slots

router = APIRouter()
logger = logging.getLogger(__name__)


def default_solver_settings(settings: Settings) -> SolverSettings:
    return SolverSettings(backtracking=BacktrackingSettings(timeout_seconds=settings.cp_timeout_seconds))


@router.post("/schedule/time-slots", response_model=TimeGridResponse)
def generate_time_slots(payload: TimeGridRequest) -> TimeGridResponse:
    slots = build_time_slots(payload.start_time, payload.end_time, payload.slot_minutes, payload.break_time)
    return TimeGridResponse(time_slots=slots)


@router.post("/schedule/generate", response_model=GenerateScheduleResponse)
def generate_schedule(
    payload: GenerateScheduleRequest,
    settings: Settings = Depends(get_settings),
) -> GenerateScheduleResponse:
    strategy = payload.strategy or settings.default_strategy
    if strategy not in SOLVER_STRATEGIES:
        raise SchedulerError(
            message=f"Unknown solver strategy: {strategy}",
            details={"allowed": list(SOLVER_STRATEGIES)},
        )

    if payload.grid is not None:
        time_slots = build_time_slots(
            payload.grid.start_time,
            payload.grid.end_time,
            payload.grid.slot_minutes,
            payload.grid.break_time,
        )
        slot_minutes = payload.slot_minutes or payload.grid.slot_minutes
    else:
        time_slots = payload.time_slots
        slot_minutes = payload.slot_minutes or settings.slot_minutes

    if not time_slots:
        raise SchedulerError(message="The time grid has no slots")
    if not payload.rooms:
        raise SchedulerError(message="No rooms available for generation")

    solver_settings = payload.settings_override or default_solver_settings(settings)
    start = perf_counter()
    result = solve(
        payload.classes,
        payload.rooms,
        time_slots,
        payload.constraints,
        strategy=strategy,
        slot_minutes=slot_minutes,
        settings=solver_settings,
        working_days=settings.working_days,
        max_tasks=settings.max_tasks_per_request,
    )
    runtime_ms = int((perf_counter() - start) * 1000)
    if not result.success:
        logger.info("Generation left %d sessions unplaced", len(result.failed_classes))

    return GenerateScheduleResponse(
        result=result,
        strategy=strategy,
        runtime_ms=runtime_ms,
        task_count=len(result.scheduled_entries) + len(result.failed_classes),
        time_slots=list(time_slots),
        settings_used=solver_settings,
    )
