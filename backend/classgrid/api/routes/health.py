from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from classgrid.core.config import get_settings
from classgrid.services.solver import SOLVER_STRATEGIES

router = APIRouter()

settings = get_settings()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "strategies": list(SOLVER_STRATEGIES),
        "default_strategy": settings.default_strategy,
    }
