"""Pure planning and bookkeeping for a scheduled closure cycle.

Selecting which lectures to touch and summarizing what happened are kept
apart from the code that performs the writes. Nothing here does I/O, so the
decision logic is tested without a database.
"""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional

from app.models.lecture import Lecture, SurveyStatus
from app.services.closure.lifecycle import is_past_deadline


@dataclass(frozen=True)
class PlannedItem:
    """A lecture selected for one phase of the cycle."""
    lecture_id: int
    title: str


@dataclass
class ClosurePlan:
    """Lectures to close, plus those skipped because their deadline is unreadable."""
    due: List[PlannedItem] = field(default_factory=list)
    invalid: List[PlannedItem] = field(default_factory=list)


def plan_closures(lectures: Iterable[Lecture], now: datetime, tz: tzinfo) -> ClosurePlan:
    """Select active lectures whose deadline has passed.

    Args:
        lectures: Candidate lectures (normally pre-filtered by the store)
        now: Aware current time
        tz: Timezone the deadlines were entered in

    Returns:
        ClosurePlan with due lectures in input order
    """
    plan = ClosurePlan()
    for lecture in lectures:
        if lecture.status != SurveyStatus.ACTIVE:
            continue
        item = PlannedItem(lecture_id=lecture.id, title=lecture.title)
        try:
            deadline = lecture.deadline(tz)
        except ValueError:
            plan.invalid.append(item)
            continue
        if is_past_deadline(deadline, now):
            plan.due.append(item)
    return plan


def plan_analyses(lectures: Iterable[Lecture]) -> List[PlannedItem]:
    """Select closed lectures that still need analysis."""
    return [
        PlannedItem(lecture_id=lecture.id, title=lecture.title)
        for lecture in lectures
        if lecture.status == SurveyStatus.CLOSED
    ]


@dataclass(frozen=True)
class ItemOutcome:
    """Result of processing one lecture in one phase."""
    lecture_id: int
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PhaseStats:
    """Success and failure counts for one phase."""
    attempted: int
    succeeded: int
    failed_ids: List[int]

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


def aggregate_outcomes(outcomes: Iterable[ItemOutcome]) -> PhaseStats:
    outcomes = list(outcomes)
    return PhaseStats(
        attempted=len(outcomes),
        succeeded=sum(1 for o in outcomes if o.success),
        failed_ids=[o.lecture_id for o in outcomes if not o.success],
    )


@dataclass(frozen=True)
class CycleMetrics:
    """What a scheduled cycle did."""
    closure: PhaseStats
    analysis: PhaseStats
    total_processing_time_ms: int


def format_summary(metrics: CycleMetrics) -> str:
    """One-line summary for the cycle log.

    Example:
        >>> format_summary(metrics)
        'closure 2/3, analysis 1/1, 120ms'
    """
    return (
        f"closure {metrics.closure.succeeded}/{metrics.closure.attempted}, "
        f"analysis {metrics.analysis.succeeded}/{metrics.analysis.attempted}, "
        f"{metrics.total_processing_time_ms}ms"
    )
