"""Unit tests for closure cycle planning and bookkeeping."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from app.models.lecture import Lecture
from app.services.closure.planning import (
    CycleMetrics,
    ItemOutcome,
    PlannedItem,
    aggregate_outcomes,
    format_summary,
    plan_analyses,
    plan_closures,
)

TOKYO = ZoneInfo("Asia/Tokyo")
NOW = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)  # 12:00 Tokyo


def _lecture(lecture_id, close_date="2026-10-17", close_time="11:00", status="active"):
    return Lecture(
        id=lecture_id,
        title=f"Lecture {lecture_id}",
        lecture_date="2026-10-17",
        lecture_time="09:00",
        survey_close_date=close_date,
        survey_close_time=close_time,
        survey_status=status,
    )


class TestPlanClosures:
    """Tests for plan_closures."""

    def test_selects_past_deadlines_in_order(self):
        lectures = [
            _lecture(1, close_time="11:00"),
            _lecture(2, close_time="13:00"),
            _lecture(3, close_time="12:00"),
        ]

        plan = plan_closures(lectures, NOW, TOKYO)

        assert plan.due == [PlannedItem(1, "Lecture 1"), PlannedItem(3, "Lecture 3")]
        assert plan.invalid == []

    def test_deadline_is_interpreted_in_survey_timezone(self):
        """11:00 Tokyo is past at 03:00 UTC; 11:00 UTC is not."""
        lecture = _lecture(1)

        assert plan_closures([lecture], NOW, TOKYO).due
        assert not plan_closures([lecture], NOW, timezone.utc).due

    def test_skips_non_active(self):
        lectures = [_lecture(1, status="closed"), _lecture(2, status="analyzed")]

        assert plan_closures(lectures, NOW, TOKYO).due == []

    def test_unreadable_deadline_is_reported(self):
        lectures = [_lecture(1, close_time="25:99"), _lecture(2, close_date="17/10/2026")]

        plan = plan_closures(lectures, NOW, TOKYO)

        assert plan.due == []
        assert [item.lecture_id for item in plan.invalid] == [1, 2]


def test_plan_analyses_selects_closed_only():
    lectures = [_lecture(1, status="closed"), _lecture(2), _lecture(3, status="analyzed")]

    assert plan_analyses(lectures) == [PlannedItem(1, "Lecture 1")]


class TestOutcomes:
    """Tests for aggregate_outcomes and format_summary."""

    def test_aggregate(self):
        stats = aggregate_outcomes([
            ItemOutcome(1, True),
            ItemOutcome(2, False, "invalid_state"),
            ItemOutcome(3, True),
        ])

        assert stats.attempted == 3
        assert stats.succeeded == 2
        assert stats.failed == 1
        assert stats.failed_ids == [2]

    def test_aggregate_empty(self):
        stats = aggregate_outcomes([])

        assert (stats.attempted, stats.succeeded, stats.failed) == (0, 0, 0)

    def test_format_summary(self):
        metrics = CycleMetrics(
            closure=aggregate_outcomes([ItemOutcome(1, True), ItemOutcome(2, True), ItemOutcome(3, False)]),
            analysis=aggregate_outcomes([ItemOutcome(1, True)]),
            total_processing_time_ms=120,
        )

        assert format_summary(metrics) == "closure 2/3, analysis 1/1, 120ms"
