from fastapi import APIRouter

from classgrid.schemas.conflict import ConflictReport, DetectConflictsRequest
from classgrid.services.conflict_service import ConflictService

router = APIRouter()


@router.post("/detect", response_model=ConflictReport)
def detect_conflicts(payload: DetectConflictsRequest):
    service = ConflictService(payload.entries, payload.classes, payload.constraints)
    report = service.detect_conflicts()

    # Generate resolutions for each conflict
    for conflict in report.conflicts:
        resolutions = service.generate_resolutions(conflict)
        report.suggested_resolutions.extend(resolutions)

    return report
