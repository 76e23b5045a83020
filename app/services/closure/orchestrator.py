"""Closure orchestrator: the batch entry point of the survey pipeline.

A scheduled cycle runs two phases in order:

1. Closure phase: active lectures whose deadline has passed become closed.
2. Analysis phase: every closed lecture is analyzed and becomes analyzed.

Each lecture is processed in its own try/except. A failure is rolled back,
logged, written to operation_logs, and the loop moves on; the lecture stays
eligible for the next cycle. Contract violations are programming errors and
always propagate. Anything else that breaks the cycle as a whole is reported
in ``CycleResult.error`` with zero counts.

Overlapping invocations are guarded by a named lease: a cycle that cannot
take the lease returns immediately with ``skipped=True``.
"""

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.config import get_settings
from app.exceptions import ContractViolationError, LectureNotFoundError, PreconditionError
from app.logging_config import get_logger
from app.models.lecture import SurveyStatus
from app.models.result import TriggerType
from app.schemas.question_set import QuestionSet
from app.services.closure.analysis_runner import AnalysisRunResult, AnalysisRunner, utc_now
from app.services.closure.lifecycle import is_closable
from app.services.closure.planning import (
    CycleMetrics,
    ItemOutcome,
    aggregate_outcomes,
    format_summary,
    plan_analyses,
    plan_closures,
)
from app.services.closure.stores import (
    CycleLeaseStore,
    LectureStore,
    LectureStoreProtocol,
    OperationLogStore,
    OperationLogStoreProtocol,
    ResponseStore,
    ResultStore,
)
from app.services.question_set_loader import get_active_question_set

logger = get_logger(__name__)

LEASE_NAME = "scheduled_closure"


@dataclass
class CycleResult:
    """Outcome of a scheduled cycle."""
    closed_count: int
    analyzed_count: int
    total_processing_time_ms: int
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class ClosureResult:
    """Outcome of a manual closure."""
    success: bool
    lecture_id: int
    message: Optional[str] = None
    error: Optional[str] = None
    analysis: Optional[AnalysisRunResult] = None


class ClosureOrchestrator:
    """Runs scheduled cycles and manual closures over the lecture stores."""

    def __init__(
        self,
        lectures: LectureStoreProtocol,
        runner: AnalysisRunner,
        operation_logs: OperationLogStoreProtocol,
        leases: CycleLeaseStore,
        tz: tzinfo,
        lease_seconds: int = 600,
        clock: Optional[Callable[[], datetime]] = None,
        rollback: Optional[Callable[[], None]] = None,
    ):
        """Initialize orchestrator.

        Args:
            lectures: Lecture store
            runner: Analysis runner for the analysis phase
            operation_logs: Where per-item outcomes are recorded
            leases: Lease store guarding scheduled cycles
            tz: Timezone lecture deadlines are written in
            lease_seconds: Lifetime of a cycle lease
            clock: Returns the current aware time (defaults to UTC now)
            rollback: Discards pending writes after a failed item
        """
        self.lectures = lectures
        self.runner = runner
        self.operation_logs = operation_logs
        self.leases = leases
        self.tz = tz
        self.lease_seconds = lease_seconds
        self.clock = clock or utc_now
        self.rollback = rollback or (lambda: None)

    @classmethod
    def from_session(
        cls,
        db: Session,
        question_set: Optional[QuestionSet] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "ClosureOrchestrator":
        """Build an orchestrator backed by SQLAlchemy stores on one session.

        Args:
            db: Database session
            question_set: Defaults to the configured question set
            clock: Optional clock override

        Returns:
            ClosureOrchestrator
        """
        settings = get_settings()
        question_set = question_set or get_active_question_set()
        lectures = LectureStore(db)
        runner = AnalysisRunner(
            lectures=lectures,
            responses=ResponseStore(db),
            results=ResultStore(db),
            question_set=question_set,
            clock=clock,
        )
        return cls(
            lectures=lectures,
            runner=runner,
            operation_logs=OperationLogStore(db),
            leases=CycleLeaseStore(db),
            tz=settings.tzinfo,
            lease_seconds=settings.cycle_lease_seconds,
            clock=clock,
            rollback=db.rollback,
        )

    # Scheduled cycle

    def run_scheduled_cycle(self) -> CycleResult:
        """Close expired surveys, then analyze every closed survey.

        Returns:
            CycleResult with counts and timing; error is set only when the
            cycle as a whole failed

        Raises:
            ContractViolationError: Never absorbed by the cycle
        """
        started = time.perf_counter()
        run_id = uuid.uuid4().hex[:12]
        log_extra = {"run_id": run_id}
        now = self.clock()

        try:
            acquired = self.leases.acquire(LEASE_NAME, run_id, now, self.lease_seconds)
        except ContractViolationError:
            raise
        except Exception as e:
            self.rollback()
            logger.error(f"Could not acquire cycle lease: {e}", exc_info=True, extra=log_extra)
            return CycleResult(0, 0, self._elapsed_ms(started), error=str(e))

        if not acquired:
            logger.info("Closure cycle skipped: another cycle holds the lease", extra=log_extra)
            return CycleResult(0, 0, self._elapsed_ms(started), skipped=True)

        logger.info(f"Closure cycle started at {now.isoformat()}", extra=log_extra)

        try:
            closure = aggregate_outcomes(self._run_closure_phase(now, run_id))
            analysis = aggregate_outcomes(self._run_analysis_phase(run_id))

            metrics = CycleMetrics(
                closure=closure,
                analysis=analysis,
                total_processing_time_ms=self._elapsed_ms(started),
            )
            logger.info(f"Closure cycle finished: {format_summary(metrics)}", extra=log_extra)
            if closure.failed or analysis.failed:
                logger.warning(
                    f"Closure cycle had failures: closure={closure.failed_ids}, "
                    f"analysis={analysis.failed_ids}",
                    extra=log_extra,
                )

            return CycleResult(
                closed_count=closure.succeeded,
                analyzed_count=analysis.succeeded,
                total_processing_time_ms=metrics.total_processing_time_ms,
            )

        except ContractViolationError:
            self.rollback()
            raise
        except Exception as e:
            self.rollback()
            logger.error(f"Closure cycle failed: {e}", exc_info=True, extra=log_extra)
            return CycleResult(0, 0, self._elapsed_ms(started), error=str(e))

        finally:
            self._release_lease(run_id)

    def _run_closure_phase(self, now: datetime, run_id: str) -> List[ItemOutcome]:
        candidates = self.lectures.find_active_with_deadline_before(now, self.tz)
        plan = plan_closures(candidates, now, self.tz)

        for item in plan.invalid:
            logger.warning(
                f"Lecture {item.lecture_id} has an unreadable deadline; not closed",
                extra={"run_id": run_id, "lecture_id": item.lecture_id},
            )

        logger.info(f"Closure phase: {len(plan.due)} lectures due", extra={"run_id": run_id})

        outcomes = []
        for item in plan.due:
            extra = {"run_id": run_id, "lecture_id": item.lecture_id}
            try:
                self.lectures.set_status(item.lecture_id, SurveyStatus.CLOSED, now)
                self.operation_logs.record(
                    "close_survey",
                    lecture_id=item.lecture_id,
                    trigger="scheduled",
                    run_id=run_id,
                    closed_at=now.isoformat(),
                )
                logger.info(f"Closed lecture {item.lecture_id} ({item.title})", extra=extra)
                outcomes.append(ItemOutcome(item.lecture_id, True))
            except ContractViolationError:
                raise
            except Exception as e:
                self._record_failure("close_survey_failed", item.lecture_id, e, run_id=run_id)
                outcomes.append(ItemOutcome(item.lecture_id, False, str(e)))
        return outcomes

    def _run_analysis_phase(self, run_id: str) -> List[ItemOutcome]:
        plan = plan_analyses(self.lectures.find_closed_unanalyzed())
        logger.info(f"Analysis phase: {len(plan)} lectures pending", extra={"run_id": run_id})

        outcomes = []
        for item in plan:
            try:
                result = self.runner.run(item.lecture_id, trigger_type=TriggerType.AUTO)
                if not result.success:
                    raise PreconditionError(result.message or result.error or "analysis failed")
                self.operation_logs.record(
                    "analyze",
                    lecture_id=item.lecture_id,
                    trigger="scheduled",
                    run_id=run_id,
                    result_set_id=result.result_set_id,
                    total_responses=result.total_responses,
                )
                outcomes.append(ItemOutcome(item.lecture_id, True))
            except ContractViolationError:
                raise
            except Exception as e:
                self._record_failure("analyze_failed", item.lecture_id, e, run_id=run_id)
                outcomes.append(ItemOutcome(item.lecture_id, False, str(e)))
        return outcomes

    # Manual operations

    def run_single_lecture_closure(
        self,
        lecture_id: int,
        trigger_analysis: bool = False,
        user_id: Optional[str] = None,
    ) -> ClosureResult:
        """Close one lecture on request, optionally analyzing it right away.

        The lecture must be active and its deadline must not have passed.

        Args:
            lecture_id: Lecture to close
            trigger_analysis: Run the analysis synchronously after closing
            user_id: Requesting user

        Returns:
            ClosureResult; precondition failures come back with success=False.
            A failed analysis after a successful close keeps success=True and
            is described in ``analysis``.

        Raises:
            ContractViolationError: On an invalid status transition
        """
        now = self.clock()
        extra = {"lecture_id": lecture_id}

        try:
            lecture = self.lectures.get(lecture_id)
            if lecture is None:
                raise LectureNotFoundError(lecture_id)

            try:
                deadline = lecture.deadline(self.tz)
            except ValueError:
                return self._manual_failure(
                    lecture_id, user_id, "invalid_deadline",
                    f"Lecture {lecture_id} has an unreadable survey deadline",
                )

            if not is_closable(lecture.status, deadline, now):
                return self._manual_failure(
                    lecture_id, user_id, "not_closable",
                    f"Survey cannot be closed: status is {lecture.survey_status} "
                    f"and the deadline is {deadline.isoformat()}",
                )

            self.lectures.set_status(lecture_id, SurveyStatus.CLOSED, now)
            self.operation_logs.record(
                "close_survey",
                lecture_id=lecture_id,
                user_id=user_id,
                trigger="manual",
                closed_at=now.isoformat(),
            )
            logger.info(f"Lecture {lecture_id} closed manually", extra=extra)

        except PreconditionError as e:
            self.rollback()
            return self._manual_failure(lecture_id, user_id, e.code, str(e))

        if not trigger_analysis:
            return ClosureResult(success=True, lecture_id=lecture_id, message="Survey closed")

        # The close is already committed; an analysis failure is reported, not raised
        try:
            analysis = self.run_manual_analysis(lecture_id, triggered_by=user_id)
        except ContractViolationError:
            raise
        except Exception as e:
            analysis = AnalysisRunResult(
                success=False,
                lecture_id=lecture_id,
                error="analysis_error",
                message=str(e),
            )
        message = "Survey closed and analyzed" if analysis.success else (
            f"Survey closed; analysis failed: {analysis.message}"
        )
        return ClosureResult(
            success=True,
            lecture_id=lecture_id,
            message=message,
            analysis=analysis,
        )

    def run_manual_analysis(
        self,
        lecture_id: int,
        triggered_by: Optional[str] = None,
    ) -> AnalysisRunResult:
        """Run analysis on request; allowed for closed and analyzed lectures.

        Args:
            lecture_id: Lecture to analyze
            triggered_by: Requesting user

        Returns:
            AnalysisRunResult from the runner
        """
        try:
            result = self.runner.run(
                lecture_id, triggered_by=triggered_by, trigger_type=TriggerType.MANUAL
            )
        except ContractViolationError:
            self.rollback()
            raise
        except Exception as e:
            self._record_failure("analyze_failed", lecture_id, e, user_id=triggered_by)
            raise

        if result.success:
            self.operation_logs.record(
                "analyze",
                lecture_id=lecture_id,
                user_id=triggered_by,
                trigger="manual",
                result_set_id=result.result_set_id,
                total_responses=result.total_responses,
            )
        elif result.error != LectureNotFoundError.code:
            self.operation_logs.record(
                "analyze_failed",
                lecture_id=lecture_id,
                user_id=triggered_by,
                trigger="manual",
                error=result.message,
            )
        return result

    # Helpers

    def _manual_failure(
        self,
        lecture_id: int,
        user_id: Optional[str],
        code: str,
        message: str,
    ) -> ClosureResult:
        logger.warning(f"Manual closure refused: {message}", extra={"lecture_id": lecture_id})
        if code != LectureNotFoundError.code:
            self.operation_logs.record(
                "close_survey_failed",
                lecture_id=lecture_id,
                user_id=user_id,
                trigger="manual",
                error=message,
            )
        return ClosureResult(success=False, lecture_id=lecture_id, message=message, error=code)

    def _record_failure(
        self,
        action: str,
        lecture_id: int,
        error: Exception,
        run_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Roll back, log and record a failed item."""
        self.rollback()
        extra = {"lecture_id": lecture_id}
        if run_id:
            extra["run_id"] = run_id
        logger.error(f"{action} for lecture {lecture_id}: {error}", extra=extra)

        try:
            self.operation_logs.record(
                action,
                lecture_id=lecture_id,
                user_id=user_id,
                run_id=run_id,
                error=str(error),
                error_type=type(error).__name__,
            )
        except Exception as log_error:
            self.rollback()
            logger.error(
                f"Could not record {action} for lecture {lecture_id}: {log_error}",
                extra=extra,
            )

    def _release_lease(self, run_id: str) -> None:
        try:
            self.leases.release(LEASE_NAME, run_id, self.clock())
        except Exception as e:
            self.rollback()
            logger.error(f"Could not release cycle lease: {e}", extra={"run_id": run_id})

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
