"""Response intake: survey availability and response submission.

Responses are accepted only while a lecture's survey is active and its
deadline has not passed. Each client may answer a lecture once; clients are
recognized by the salted hash of their IP address.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.exceptions import (
    DuplicateResponseError,
    InvalidAnswerError,
    LectureNotFoundError,
    LectureStateError,
)
from app.logging_config import get_logger
from app.models.lecture import Lecture, SurveyStatus
from app.models.response import SurveyResponse
from app.schemas.question_set import QuestionSet
from app.schemas.submission import ResponseSubmission
from app.services.client_hasher import ClientHasher

logger = get_logger(__name__)


@dataclass
class Availability:
    """Whether a lecture currently accepts responses."""
    available: bool
    reason: Optional[str] = None
    lecture: Optional[Lecture] = None


class ResponseIntake:
    """Validates and stores survey responses for one session."""

    def __init__(self, db: Session, question_set: QuestionSet, tz: tzinfo):
        """Initialize intake service.

        Args:
            db: Database session
            question_set: Option domains for categorical answers
            tz: Timezone lecture deadlines are written in
        """
        self.db = db
        self.question_set = question_set
        self.tz = tz

    def check_availability(self, lecture_id: int, now: datetime) -> Availability:
        """Check whether a lecture's survey accepts responses at now.

        Args:
            lecture_id: Lecture to check
            now: Aware current time

        Returns:
            Availability with a reason code when unavailable
        """
        lecture = self.db.get(Lecture, lecture_id)
        if lecture is None:
            return Availability(False, reason=LectureNotFoundError.code)

        if lecture.status != SurveyStatus.ACTIVE:
            return Availability(False, reason="survey_not_active", lecture=lecture)

        try:
            deadline = lecture.deadline(self.tz)
        except ValueError:
            return Availability(False, reason="invalid_deadline", lecture=lecture)

        if now > deadline:
            return Availability(False, reason="survey_expired", lecture=lecture)

        return Availability(True, lecture=lecture)

    def canonical_option(self, dimension_code: str, value: str) -> str:
        """Map a submitted value to the declared option code.

        Matching ignores case and surrounding whitespace.

        Raises:
            InvalidAnswerError: If the value is not an option
        """
        dimension = self.question_set.get_dimension(dimension_code)
        options = dimension.options if dimension else []
        wanted = value.strip().lower()
        for option in options:
            if option.lower() == wanted:
                return option
        raise InvalidAnswerError(dimension_code, value, options)

    def submit(
        self,
        lecture_id: int,
        submission: ResponseSubmission,
        now: datetime,
        client_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SurveyResponse:
        """Validate and store a response.

        Args:
            lecture_id: Lecture being answered
            submission: Validated request body
            now: Aware current time
            client_address: Client IP (hashed before storage)
            user_agent: Client user agent

        Returns:
            SurveyResponse: The stored response

        Raises:
            LectureNotFoundError: If the lecture does not exist
            LectureStateError: If the survey is closed or past its deadline
            InvalidAnswerError: If a categorical answer is not an option
            DuplicateResponseError: If this client already answered
        """
        availability = self.check_availability(lecture_id, now)
        if availability.reason == LectureNotFoundError.code:
            raise LectureNotFoundError(lecture_id)
        if not availability.available:
            raise LectureStateError(lecture_id, f"Survey is not accepting responses: {availability.reason}")

        gender = self.canonical_option("gender", submission.gender)
        age_group = self.canonical_option("ageGroup", submission.age_group)

        client_hash = ClientHasher.hash_client(client_address)
        if client_hash is not None and self._has_response_from(lecture_id, client_hash):
            logger.info(
                f"Duplicate response from {ClientHasher.truncate_for_logging(client_hash)}",
                extra={"lecture_id": lecture_id},
            )
            raise DuplicateResponseError(lecture_id)

        response = SurveyResponse(
            lecture_id=lecture_id,
            gender=gender,
            age_group=age_group,
            understanding=submission.understanding,
            satisfaction=submission.satisfaction,
            free_comment=submission.free_comment,
            client_hash=client_hash,
            user_agent=user_agent[:500] if user_agent else None,
            response_time_seconds=submission.response_time,
            created_at=now,
        )
        self.db.add(response)
        self.db.commit()

        logger.info(
            f"Stored response {response.id} for lecture {lecture_id}",
            extra={"lecture_id": lecture_id},
        )
        return response

    def count_responses(self, lecture_id: int) -> int:
        """Number of stored responses for a lecture.

        Raises:
            LectureNotFoundError: If the lecture does not exist
        """
        if self.db.get(Lecture, lecture_id) is None:
            raise LectureNotFoundError(lecture_id)
        stmt = select(func.count(SurveyResponse.id)).where(SurveyResponse.lecture_id == lecture_id)
        return self.db.execute(stmt).scalar_one()

    def _has_response_from(self, lecture_id: int, client_hash: str) -> bool:
        stmt = select(SurveyResponse.id).where(
            SurveyResponse.lecture_id == lecture_id,
            SurveyResponse.client_hash == client_hash,
        )
        return self.db.execute(stmt).first() is not None
