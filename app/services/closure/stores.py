"""Data-access collaborators for the closure and analysis pipeline.

The orchestrator and analysis runner only talk to the four store contracts
below. The ``*Protocol`` classes describe those contracts so tests can hand
in fakes; the concrete classes implement them over one SQLAlchemy session.

Every write method commits. Fact batches in particular are committed one at
a time, so a failure part way through an analysis run leaves earlier batches
in place and the lecture in ``closed``; the next cycle repeats the run.
"""

from datetime import datetime, tzinfo
from typing import Iterable, List, Optional, Protocol, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import (
    DuplicateResultSetError,
    LectureNotFoundError,
    LectureStateError,
)
from app.logging_config import get_logger
from app.models.cycle_lease import CycleLease
from app.models.lecture import Lecture, SurveyStatus
from app.models.operation_log import OperationLog
from app.models.response import SurveyResponse
from app.models.result import ResultFact, ResultSet, StatType, TriggerType
from app.services.analysis.cross_tabulation import CrossResult
from app.services.analysis.distribution import DistributionResult
from app.services.analysis.normalizer import RawResponse
from app.services.analysis.summary import SummaryResult
from app.services.closure.lifecycle import ensure_transition

logger = get_logger(__name__)


class LectureStoreProtocol(Protocol):
    def get(self, lecture_id: int) -> Optional[Lecture]: ...

    def find_active_with_deadline_before(self, now: datetime, tz: tzinfo) -> List[Lecture]: ...

    def find_closed_unanalyzed(self) -> List[Lecture]: ...

    def set_status(self, lecture_id: int, status: SurveyStatus, timestamp: datetime) -> Lecture: ...


class ResponseStoreProtocol(Protocol):
    def find_by_lecture(self, lecture_id: int) -> List[RawResponse]: ...


class ResultStoreProtocol(Protocol):
    def create_result_set(
        self,
        lecture_id: int,
        closed_at: datetime,
        total_responses: int,
        trigger_type: TriggerType = TriggerType.AUTO,
        triggered_by: Optional[str] = None,
    ) -> int: ...

    def append_simple_facts(
        self, result_set_id: int, lecture_id: int,
        facts: Sequence[DistributionResult], calculated_at: datetime,
    ) -> int: ...

    def append_cross_facts(
        self, result_set_id: int, lecture_id: int,
        facts: Sequence[CrossResult], calculated_at: datetime,
    ) -> int: ...

    def append_summary_facts(
        self, result_set_id: int, lecture_id: int,
        facts: Sequence[SummaryResult], calculated_at: datetime,
    ) -> int: ...


class OperationLogStoreProtocol(Protocol):
    def record(self, action: str, lecture_id: Optional[int] = None,
               user_id: Optional[str] = None, **details) -> None: ...


class LectureStore:
    """Lecture lookups and lifecycle writes."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, lecture_id: int) -> Optional[Lecture]:
        return self.db.get(Lecture, lecture_id)

    def find_active_with_deadline_before(self, now: datetime, tz: tzinfo) -> List[Lecture]:
        """Active lectures whose local deadline is at or before now.

        Deadlines are stored as local ``YYYY-MM-DD`` / ``HH:MM`` strings, which
        sort the same way as the instants they denote, so the comparison runs
        in SQL against now converted to the survey timezone.

        Args:
            now: Aware current time
            tz: Timezone the deadlines were entered in

        Returns:
            Matching lectures ordered by id
        """
        local_now = now.astimezone(tz)
        today = local_now.strftime("%Y-%m-%d")
        clock = local_now.strftime("%H:%M")

        stmt = (
            select(Lecture)
            .where(
                Lecture.survey_status == SurveyStatus.ACTIVE.value,
                or_(
                    Lecture.survey_close_date < today,
                    and_(
                        Lecture.survey_close_date == today,
                        Lecture.survey_close_time <= clock,
                    ),
                ),
            )
            .order_by(Lecture.id)
        )
        return list(self.db.execute(stmt).scalars())

    def find_closed_unanalyzed(self) -> List[Lecture]:
        stmt = (
            select(Lecture)
            .where(Lecture.survey_status == SurveyStatus.CLOSED.value)
            .order_by(Lecture.id)
        )
        return list(self.db.execute(stmt).scalars())

    def set_status(self, lecture_id: int, status: SurveyStatus, timestamp: datetime) -> Lecture:
        """Move a lecture forward and commit.

        Setting the status a lecture already has is a no-op.

        Raises:
            LectureNotFoundError: If the lecture does not exist
            LectureStateError: If analyzed is requested for a lecture that is not closed
            InvalidStatusTransitionError: If the status would move backwards
        """
        status = SurveyStatus(status)
        lecture = self.get(lecture_id)
        if lecture is None:
            raise LectureNotFoundError(lecture_id)

        if lecture.status == status:
            return lecture

        if status == SurveyStatus.ANALYZED:
            lecture.mark_analyzed(timestamp)
        else:
            ensure_transition(lecture.status, status)
            lecture.mark_closed(timestamp)

        self.db.commit()
        logger.info(
            f"Lecture {lecture_id} status set to {status.value}",
            extra={"lecture_id": lecture_id},
        )
        return lecture


class ResponseStore:
    """Read-only access to stored responses."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_lecture(self, lecture_id: int) -> List[RawResponse]:
        stmt = (
            select(SurveyResponse)
            .where(SurveyResponse.lecture_id == lecture_id)
            .order_by(SurveyResponse.id)
        )
        return [RawResponse.from_model(r) for r in self.db.execute(stmt).scalars()]


class ResultStore:
    """Append-only writes of result sets and facts."""

    def __init__(self, db: Session):
        self.db = db

    def create_result_set(
        self,
        lecture_id: int,
        closed_at: datetime,
        total_responses: int,
        trigger_type: TriggerType = TriggerType.AUTO,
        triggered_by: Optional[str] = None,
    ) -> int:
        """Insert a result set header and commit.

        Args:
            lecture_id: Analyzed lecture
            closed_at: Snapshot timestamp shared by the run's facts
            total_responses: Normalized responses in the run
            trigger_type: auto or manual
            triggered_by: Requesting user for manual runs

        Returns:
            int: New result set id

        Raises:
            LectureNotFoundError: If the lecture does not exist
            LectureStateError: If the lecture is still active
            DuplicateResultSetError: If a set with the same snapshot exists
        """
        lecture = self.db.get(Lecture, lecture_id)
        if lecture is None:
            raise LectureNotFoundError(lecture_id)
        if lecture.status not in (SurveyStatus.CLOSED, SurveyStatus.ANALYZED):
            raise LectureStateError(
                lecture_id,
                f"Results can only be stored for closed or analyzed lectures: "
                f"survey_status={lecture.survey_status}",
            )

        existing = self._find_result_set(lecture_id, closed_at)
        if existing is not None:
            raise DuplicateResultSetError(lecture_id, existing.id)

        result_set = ResultSet(
            lecture_id=lecture_id,
            closed_at=closed_at,
            total_responses=total_responses,
            trigger_type=TriggerType(trigger_type).value,
            triggered_by=triggered_by,
            created_at=closed_at,
        )
        self.db.add(result_set)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self._find_result_set(lecture_id, closed_at)
            raise DuplicateResultSetError(lecture_id, existing.id if existing else 0)

        logger.info(
            f"Created result set {result_set.id} for lecture {lecture_id} "
            f"({total_responses} responses)",
            extra={"lecture_id": lecture_id, "result_set_id": result_set.id},
        )
        return result_set.id

    def _find_result_set(self, lecture_id: int, closed_at: datetime) -> Optional[ResultSet]:
        stmt = select(ResultSet).where(
            ResultSet.lecture_id == lecture_id,
            ResultSet.closed_at == closed_at,
        )
        return self.db.execute(stmt).scalars().first()

    def _append(self, facts: Iterable[ResultFact]) -> int:
        facts = list(facts)
        self.db.add_all(facts)
        self.db.commit()
        return len(facts)

    def append_simple_facts(
        self,
        result_set_id: int,
        lecture_id: int,
        facts: Sequence[DistributionResult],
        calculated_at: datetime,
    ) -> int:
        """Append distribution facts as one committed batch."""
        return self._append(
            ResultFact(
                result_set_id=result_set_id,
                lecture_id=lecture_id,
                stat_type=StatType.SIMPLE.value,
                dim1_code=f.dimension_code,
                dim1_option=f.option_code,
                n=f.n,
                base_n=f.base_n,
                pct=f.pct,
                created_at=calculated_at,
            )
            for f in facts
        )

    def append_cross_facts(
        self,
        result_set_id: int,
        lecture_id: int,
        facts: Sequence[CrossResult],
        calculated_at: datetime,
    ) -> int:
        """Append cross-tabulation facts as one committed batch."""
        return self._append(
            ResultFact(
                result_set_id=result_set_id,
                lecture_id=lecture_id,
                stat_type=StatType.CROSS.value,
                dim1_code=f.dim1_code,
                dim1_option=f.dim1_option,
                dim2_code=f.dim2_code,
                dim2_option=f.dim2_option,
                n=f.n,
                row_pct=f.row_pct,
                row_base_n=f.row_base_n,
                col_pct=f.col_pct,
                col_base_n=f.col_base_n,
                total_pct=f.total_pct,
                total_base_n=f.total_base_n,
                created_at=calculated_at,
            )
            for f in facts
        )

    def append_summary_facts(
        self,
        result_set_id: int,
        lecture_id: int,
        facts: Sequence[SummaryResult],
        calculated_at: datetime,
    ) -> int:
        """Append summary facts as one committed batch."""
        return self._append(
            ResultFact(
                result_set_id=result_set_id,
                lecture_id=lecture_id,
                stat_type=StatType.SUMMARY.value,
                dim1_code=f.group_code,
                dim1_option=f.group_option,
                target_code=f.target_code,
                avg_score=f.avg_score,
                base_n=f.base_n,
                created_at=calculated_at,
            )
            for f in facts
        )

    def latest_for_lecture(self, lecture_id: int) -> Optional[ResultSet]:
        """Most recent result set for a lecture, facts loaded lazily."""
        stmt = (
            select(ResultSet)
            .where(ResultSet.lecture_id == lecture_id)
            .order_by(ResultSet.closed_at.desc(), ResultSet.id.desc())
        )
        return self.db.execute(stmt).scalars().first()


class OperationLogStore:
    """Records pipeline actions in operation_logs."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: str,
        lecture_id: Optional[int] = None,
        user_id: Optional[str] = None,
        **details,
    ) -> None:
        OperationLog.record(self.db, action, lecture_id=lecture_id, user_id=user_id, **details)
        self.db.commit()


class CycleLeaseStore:
    """Acquire and release the named lease guarding a scheduled cycle."""

    def __init__(self, db: Session):
        self.db = db

    def acquire(self, name: str, holder: str, now: datetime, ttl_seconds: int) -> bool:
        return CycleLease.acquire(self.db, name, holder, now, ttl_seconds)

    def release(self, name: str, holder: str, now: datetime) -> bool:
        return CycleLease.release(self.db, name, holder, now)
