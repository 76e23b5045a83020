"""Public survey endpoints: availability check and response submission."""

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Request

from app.exceptions import (
    DuplicateResponseError,
    InvalidAnswerError,
    LectureNotFoundError,
    LectureStateError,
)
from app.logging_config import get_logger
from app.routes.dependencies import get_clock, get_response_intake
from app.schemas.submission import ResponseSubmission, ResponseSubmissionResult
from app.services.response_intake import ResponseIntake

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


@router.get("/lectures/{lecture_id}/availability")
def check_availability(
    lecture_id: int,
    intake: ResponseIntake = Depends(get_response_intake),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> dict:
    """Whether the lecture's survey currently accepts responses.

    Example response:
        {"available": false, "reason": "survey_expired"}
    """
    availability = intake.check_availability(lecture_id, clock())
    body = {"available": availability.available, "reason": availability.reason}
    if availability.available:
        lecture = availability.lecture
        body["lecture"] = {
            "id": lecture.id,
            "title": lecture.title,
            "lectureDate": lecture.lecture_date,
            "lectureTime": lecture.lecture_time,
            "description": lecture.description,
        }
    return body


@router.post(
    "/lectures/{lecture_id}/responses",
    response_model=ResponseSubmissionResult,
    status_code=201,
)
def submit_response(
    lecture_id: int,
    submission: ResponseSubmission,
    request: Request,
    intake: ResponseIntake = Depends(get_response_intake),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ResponseSubmissionResult:
    """Store a response to a lecture's survey.

    Raises:
        HTTPException: 404 unknown lecture, 409 survey closed or duplicate
            client, 422 answer outside the option domain
    """
    client_address = request.client.host if request.client else None
    try:
        response = intake.submit(
            lecture_id,
            submission,
            now=clock(),
            client_address=client_address,
            user_agent=request.headers.get("user-agent"),
        )
    except LectureNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (LectureStateError, DuplicateResponseError) as e:
        raise HTTPException(status_code=409, detail={"error": e.code, "message": str(e)})
    except InvalidAnswerError as e:
        raise HTTPException(status_code=422, detail={"error": e.code, "message": str(e)})

    return ResponseSubmissionResult(success=True, response_id=response.id)


@router.get("/lectures/{lecture_id}/responses/count")
def count_responses(
    lecture_id: int,
    intake: ResponseIntake = Depends(get_response_intake),
) -> dict:
    """Number of responses received for a lecture."""
    try:
        count = intake.count_responses(lecture_id)
    except LectureNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"lectureId": lecture_id, "count": count}
