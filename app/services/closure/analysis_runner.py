"""Analysis run for one lecture: normalize, aggregate, persist, flip status.

A run writes one result set header followed by three independently committed
fact batches (simple, cross, summary). Only after all three succeed does a
``closed`` lecture move to ``analyzed``, with ``analyzed_at`` equal to the
result set's snapshot time. If anything fails before the flip the lecture
stays ``closed`` and the next scheduled cycle runs the analysis again; facts
already written by the failed run remain as unreferenced history.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from app.exceptions import LectureNotFoundError, LectureStateError, PreconditionError
from app.logging_config import get_logger
from app.models.lecture import SurveyStatus
from app.models.result import TriggerType
from app.schemas.question_set import QuestionSet
from app.services.analysis.normalizer import normalize_responses
from app.services.analysis.pipeline import build_analysis_facts
from app.services.closure.stores import (
    LectureStoreProtocol,
    ResponseStoreProtocol,
    ResultStoreProtocol,
)

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnalysisRunResult:
    """Outcome of one analysis run.

    Attributes:
        success: Whether the run stored results
        lecture_id: Analyzed lecture
        result_set_id: Id of the new result set
        execution_time_ms: Wall time spent in the run
        total_responses: Normalized responses analyzed
        results_count: Facts written per type
        error: Machine-readable error code on failure
        message: Human-readable description
    """
    success: bool
    lecture_id: int
    result_set_id: Optional[int] = None
    execution_time_ms: Optional[int] = None
    total_responses: Optional[int] = None
    results_count: Optional[Dict[str, int]] = None
    error: Optional[str] = None
    message: Optional[str] = None


class AnalysisRunner:
    """Runs the analysis pipeline for a single lecture."""

    def __init__(
        self,
        lectures: LectureStoreProtocol,
        responses: ResponseStoreProtocol,
        results: ResultStoreProtocol,
        question_set: QuestionSet,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize runner.

        Args:
            lectures: Lecture store
            responses: Response store
            results: Result store
            question_set: Option domains and analysis plan
            clock: Returns the current aware time (defaults to UTC now)
        """
        self.lectures = lectures
        self.responses = responses
        self.results = results
        self.question_set = question_set
        self.clock = clock or utc_now

    def run(
        self,
        lecture_id: int,
        triggered_by: Optional[str] = None,
        trigger_type: TriggerType = TriggerType.AUTO,
    ) -> AnalysisRunResult:
        """Analyze a lecture and store the results.

        Args:
            lecture_id: Lecture to analyze
            triggered_by: Requesting user for manual runs
            trigger_type: auto (scheduled) or manual

        Returns:
            AnalysisRunResult; precondition failures come back with
            success=False instead of raising

        Raises:
            ContractViolationError: If the question set's plan is inconsistent
                with the calculators
            SQLAlchemyError: On database failures (caller rolls back)
        """
        started = time.perf_counter()
        trigger_type = TriggerType(trigger_type)
        log_extra = {"lecture_id": lecture_id}

        logger.info(
            f"Analysis started for lecture {lecture_id} ({trigger_type.value})",
            extra=log_extra,
        )

        try:
            lecture = self.lectures.get(lecture_id)
            if lecture is None:
                raise LectureNotFoundError(lecture_id)
            if lecture.status == SurveyStatus.ACTIVE:
                raise LectureStateError(
                    lecture_id, "Survey must be closed before it can be analyzed"
                )

            raw = self.responses.find_by_lecture(lecture_id)
            rows = normalize_responses(raw, self.question_set)
            if not rows:
                logger.warning(
                    f"No analyzable responses for lecture {lecture_id} "
                    f"({len(raw)} raw)",
                    extra=log_extra,
                )

            facts = build_analysis_facts(rows, self.question_set)
            calculated_at = self.clock()

            result_set_id = self.results.create_result_set(
                lecture_id=lecture_id,
                closed_at=calculated_at,
                total_responses=len(rows),
                trigger_type=trigger_type,
                triggered_by=triggered_by,
            )
            self.results.append_simple_facts(result_set_id, lecture_id, facts.simple, calculated_at)
            self.results.append_cross_facts(result_set_id, lecture_id, facts.cross, calculated_at)
            self.results.append_summary_facts(result_set_id, lecture_id, facts.summary, calculated_at)

            # Re-analysis of an analyzed lecture keeps its original analyzed_at
            if lecture.status == SurveyStatus.CLOSED:
                self.lectures.set_status(lecture_id, SurveyStatus.ANALYZED, calculated_at)

        except PreconditionError as e:
            elapsed = int((time.perf_counter() - started) * 1000)
            logger.warning(f"Analysis skipped for lecture {lecture_id}: {e}", extra=log_extra)
            return AnalysisRunResult(
                success=False,
                lecture_id=lecture_id,
                execution_time_ms=elapsed,
                error=e.code,
                message=str(e),
            )

        elapsed = int((time.perf_counter() - started) * 1000)
        counts = facts.counts()
        logger.info(
            f"Analysis completed for lecture {lecture_id}: result_set={result_set_id}, "
            f"responses={len(rows)}, simple={counts['simple']}, cross={counts['cross']}, "
            f"summary={counts['summary']}, {elapsed}ms",
            extra={**log_extra, "result_set_id": result_set_id},
        )
        return AnalysisRunResult(
            success=True,
            lecture_id=lecture_id,
            result_set_id=result_set_id,
            execution_time_ms=elapsed,
            total_responses=len(rows),
            results_count=counts,
            message="Analysis completed",
        )
