"""Closure and analysis endpoints.

``POST /api/closure/run`` is what the external scheduler calls every few
minutes. The per-lecture endpoints let a lecturer close a survey early or
re-run its analysis.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.exceptions import LectureNotFoundError
from app.logging_config import get_logger
from app.routes.dependencies import get_orchestrator
from app.schemas.closure import (
    AnalysisRequest,
    AnalysisResultResponse,
    CloseLectureRequest,
    CloseLectureResponse,
    CycleResultResponse,
)
from app.services.closure.orchestrator import ClosureOrchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


def _status_for(error_code: Optional[str]) -> int:
    """HTTP status for a failed precondition."""
    return 404 if error_code == LectureNotFoundError.code else 409


@router.post("/closure/run", response_model=CycleResultResponse)
def run_closure_cycle(
    orchestrator: ClosureOrchestrator = Depends(get_orchestrator),
) -> CycleResultResponse:
    """Run one scheduled closure cycle.

    Returns:
        CycleResultResponse: Counts and timing. A failed cycle still
        returns 200 with ``error`` set so the scheduler keeps firing.

    Example response:
        {
            "closedCount": 1,
            "analyzedCount": 1,
            "totalProcessingTimeMs": 85,
            "error": null,
            "skipped": false
        }
    """
    result = orchestrator.run_scheduled_cycle()
    return CycleResultResponse(
        closed_count=result.closed_count,
        analyzed_count=result.analyzed_count,
        total_processing_time_ms=result.total_processing_time_ms,
        error=result.error,
        skipped=result.skipped,
    )


@router.post("/lectures/{lecture_id}/close", response_model=CloseLectureResponse)
def close_lecture(
    lecture_id: int,
    body: Optional[CloseLectureRequest] = None,
    orchestrator: ClosureOrchestrator = Depends(get_orchestrator),
) -> CloseLectureResponse:
    """Close a lecture's survey before its deadline.

    Raises:
        HTTPException: 404 if the lecture does not exist, 409 if the survey
            is not active or its deadline has already passed
    """
    body = body or CloseLectureRequest()
    result = orchestrator.run_single_lecture_closure(
        lecture_id,
        trigger_analysis=body.trigger_analysis,
        user_id=body.user_id,
    )
    if not result.success:
        raise HTTPException(status_code=_status_for(result.error), detail=result.message)

    return CloseLectureResponse(
        success=True,
        lecture_id=lecture_id,
        message=result.message,
        analysis=AnalysisResultResponse.from_result(result.analysis) if result.analysis else None,
    )


@router.post("/lectures/{lecture_id}/analysis", response_model=AnalysisResultResponse)
def analyze_lecture(
    lecture_id: int,
    body: Optional[AnalysisRequest] = None,
    orchestrator: ClosureOrchestrator = Depends(get_orchestrator),
) -> AnalysisResultResponse:
    """Run analysis for a closed or analyzed lecture.

    Each call stores a new result set; earlier ones are kept.

    Raises:
        HTTPException: 404 if the lecture does not exist, 409 if the survey
            is still active
    """
    body = body or AnalysisRequest()
    result = orchestrator.run_manual_analysis(lecture_id, triggered_by=body.triggered_by)
    if not result.success:
        raise HTTPException(status_code=_status_for(result.error), detail=result.message)
    return AnalysisResultResponse.from_result(result)
