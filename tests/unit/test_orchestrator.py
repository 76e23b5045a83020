"""Unit tests for ClosureOrchestrator using in-memory fakes for the stores."""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from app.exceptions import InvalidStatusTransitionError, LectureStateError, UnknownDimensionError
from app.models.lecture import Lecture, SurveyStatus
from app.models.result import TriggerType
from app.services.closure.analysis_runner import AnalysisRunResult
from app.services.closure.orchestrator import LEASE_NAME, ClosureOrchestrator

NOW = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)  # 12:00 Tokyo


def _lecture(lecture_id, status="active", close_time="11:00"):
    return Lecture(
        id=lecture_id,
        title=f"Lecture {lecture_id}",
        lecture_date="2026-10-17",
        lecture_time="09:00",
        survey_close_date="2026-10-17",
        survey_close_time=close_time,
        survey_status=status,
    )


def _success(lecture_id):
    return AnalysisRunResult(
        success=True, lecture_id=lecture_id, result_set_id=100 + lecture_id, total_responses=3
    )


@pytest.fixture
def lectures():
    store = MagicMock()
    store.find_active_with_deadline_before.return_value = []
    store.find_closed_unanalyzed.return_value = []
    return store


@pytest.fixture
def runner():
    runner = MagicMock()
    runner.run.side_effect = lambda lecture_id, **kwargs: _success(lecture_id)
    return runner


@pytest.fixture
def operation_logs():
    return MagicMock()


@pytest.fixture
def leases():
    leases = MagicMock()
    leases.acquire.return_value = True
    return leases


@pytest.fixture
def rollback():
    return MagicMock()


@pytest.fixture
def orchestrator(lectures, runner, operation_logs, leases, rollback):
    return ClosureOrchestrator(
        lectures=lectures,
        runner=runner,
        operation_logs=operation_logs,
        leases=leases,
        tz=ZoneInfo("Asia/Tokyo"),
        lease_seconds=60,
        clock=lambda: NOW,
        rollback=rollback,
    )


def _actions(operation_logs):
    return [(c.args[0], c.kwargs.get("lecture_id")) for c in operation_logs.record.call_args_list]


class TestScheduledCycle:
    """Tests for run_scheduled_cycle."""

    def test_closes_then_analyzes(self, orchestrator, lectures, runner, operation_logs):
        """Closure phase runs before the analysis phase."""
        lectures.find_active_with_deadline_before.return_value = [_lecture(1), _lecture(2)]
        lectures.find_closed_unanalyzed.return_value = [
            _lecture(1, "closed"), _lecture(2, "closed"), _lecture(3, "closed"),
        ]

        result = orchestrator.run_scheduled_cycle()

        assert result.closed_count == 2
        assert result.analyzed_count == 3
        assert result.error is None
        assert result.skipped is False
        assert [c.args[0] for c in lectures.set_status.call_args_list] == [1, 2]
        assert all(c.args[1] == SurveyStatus.CLOSED for c in lectures.set_status.call_args_list)
        assert [c.args[0] for c in runner.run.call_args_list] == [1, 2, 3]
        assert runner.run.call_args.kwargs["trigger_type"] == TriggerType.AUTO
        assert _actions(operation_logs) == [
            ("close_survey", 1), ("close_survey", 2),
            ("analyze", 1), ("analyze", 2), ("analyze", 3),
        ]

    def test_future_deadline_not_closed(self, orchestrator, lectures):
        """Candidates are rechecked against the deadline before closing."""
        lectures.find_active_with_deadline_before.return_value = [_lecture(1, close_time="13:00")]

        result = orchestrator.run_scheduled_cycle()

        assert result.closed_count == 0
        lectures.set_status.assert_not_called()

    def test_unreadable_deadline_is_skipped(self, orchestrator, lectures):
        lectures.find_active_with_deadline_before.return_value = [
            _lecture(1, close_time="xx:yy"), _lecture(2),
        ]

        result = orchestrator.run_scheduled_cycle()

        assert result.closed_count == 1
        assert lectures.set_status.call_args.args[0] == 2

    def test_closure_failure_is_isolated(self, orchestrator, lectures, operation_logs, rollback):
        """One failing lecture does not stop the others."""
        lectures.find_active_with_deadline_before.return_value = [
            _lecture(1), _lecture(2), _lecture(3),
        ]

        def set_status(lecture_id, status, timestamp):
            if lecture_id == 2:
                raise RuntimeError("database is locked")

        lectures.set_status.side_effect = set_status

        result = orchestrator.run_scheduled_cycle()

        assert result.closed_count == 2
        assert result.error is None
        rollback.assert_called()
        assert ("close_survey_failed", 2) in _actions(operation_logs)
        failure = next(
            c for c in operation_logs.record.call_args_list if c.args[0] == "close_survey_failed"
        )
        assert failure.kwargs["error"] == "database is locked"
        assert failure.kwargs["error_type"] == "RuntimeError"

    def test_analysis_failure_is_recorded(self, orchestrator, lectures, runner, operation_logs):
        """A run that reports failure counts as failed and is logged."""
        lectures.find_closed_unanalyzed.return_value = [_lecture(1, "closed"), _lecture(2, "closed")]
        runner.run.side_effect = lambda lecture_id, **kwargs: (
            _success(lecture_id) if lecture_id == 2 else AnalysisRunResult(
                success=False, lecture_id=lecture_id,
                error="duplicate_result_set", message="already exists",
            )
        )

        result = orchestrator.run_scheduled_cycle()

        assert result.analyzed_count == 1
        assert _actions(operation_logs) == [("analyze_failed", 1), ("analyze", 2)]

    def test_analysis_exception_is_isolated(self, orchestrator, lectures, runner, operation_logs):
        lectures.find_closed_unanalyzed.return_value = [_lecture(1, "closed"), _lecture(2, "closed")]

        def run(lecture_id, **kwargs):
            if lecture_id == 1:
                raise RuntimeError("disk full")
            return _success(lecture_id)

        runner.run.side_effect = run

        result = orchestrator.run_scheduled_cycle()

        assert result.analyzed_count == 1
        assert ("analyze_failed", 1) in _actions(operation_logs)

    def test_contract_violation_propagates(self, orchestrator, lectures, runner, leases):
        """Programming errors are never absorbed by the loop."""
        lectures.find_closed_unanalyzed.return_value = [_lecture(1, "closed")]
        runner.run.side_effect = UnknownDimensionError("region")

        with pytest.raises(UnknownDimensionError):
            orchestrator.run_scheduled_cycle()

        leases.release.assert_called_once()

    def test_invalid_transition_propagates(self, orchestrator, lectures):
        lectures.find_active_with_deadline_before.return_value = [_lecture(1)]
        lectures.set_status.side_effect = InvalidStatusTransitionError("closed", "active")

        with pytest.raises(InvalidStatusTransitionError):
            orchestrator.run_scheduled_cycle()

    def test_systemic_failure_returns_error(self, orchestrator, lectures, leases):
        """A failure outside any item zeroes the counts and sets error."""
        lectures.find_active_with_deadline_before.side_effect = RuntimeError("connection refused")

        result = orchestrator.run_scheduled_cycle()

        assert result.closed_count == 0
        assert result.analyzed_count == 0
        assert result.error == "connection refused"
        leases.release.assert_called_once()

    def test_skipped_when_lease_held(self, orchestrator, lectures, leases):
        leases.acquire.return_value = False

        result = orchestrator.run_scheduled_cycle()

        assert result.skipped is True
        assert result.error is None
        lectures.find_active_with_deadline_before.assert_not_called()
        leases.release.assert_not_called()

    def test_lease_acquire_failure(self, orchestrator, lectures, leases, rollback):
        leases.acquire.side_effect = RuntimeError("no such table: cycle_leases")

        result = orchestrator.run_scheduled_cycle()

        assert result.error == "no such table: cycle_leases"
        rollback.assert_called_once()
        lectures.find_active_with_deadline_before.assert_not_called()

    def test_lease_taken_and_released_by_same_run(self, orchestrator, leases):
        orchestrator.run_scheduled_cycle()

        name, holder, now, ttl = leases.acquire.call_args.args
        assert name == LEASE_NAME
        assert now == NOW
        assert ttl == 60
        assert leases.release.call_args.args[:2] == (LEASE_NAME, holder)


class TestManualClosure:
    """Tests for run_single_lecture_closure."""

    def test_close_before_deadline(self, orchestrator, lectures, operation_logs, runner):
        lectures.get.return_value = _lecture(5, close_time="13:00")

        result = orchestrator.run_single_lecture_closure(5, user_id="lecturer-1")

        assert result.success is True
        assert result.analysis is None
        lectures.set_status.assert_called_once_with(5, SurveyStatus.CLOSED, NOW)
        record = operation_logs.record.call_args
        assert record.args[0] == "close_survey"
        assert record.kwargs["user_id"] == "lecturer-1"
        runner.run.assert_not_called()

    def test_close_after_deadline_refused(self, orchestrator, lectures, operation_logs):
        """Past-deadline lectures are left to the scheduled cycle."""
        lectures.get.return_value = _lecture(5, close_time="11:00")

        result = orchestrator.run_single_lecture_closure(5)

        assert result.success is False
        assert result.error == "not_closable"
        lectures.set_status.assert_not_called()
        assert _actions(operation_logs) == [("close_survey_failed", 5)]

    def test_close_non_active_refused(self, orchestrator, lectures):
        lectures.get.return_value = _lecture(5, "closed", close_time="13:00")

        result = orchestrator.run_single_lecture_closure(5)

        assert result.error == "not_closable"

    def test_not_found(self, orchestrator, lectures, operation_logs):
        lectures.get.return_value = None

        result = orchestrator.run_single_lecture_closure(404)

        assert result.success is False
        assert result.error == "lecture_not_found"
        operation_logs.record.assert_not_called()

    def test_invalid_deadline(self, orchestrator, lectures):
        lectures.get.return_value = _lecture(5, close_time="later")

        result = orchestrator.run_single_lecture_closure(5)

        assert result.error == "invalid_deadline"

    def test_state_error_while_closing(self, orchestrator, lectures, rollback):
        lectures.get.return_value = _lecture(5, close_time="13:00")
        lectures.set_status.side_effect = LectureStateError(5, "Lecture is not active")

        result = orchestrator.run_single_lecture_closure(5)

        assert result.success is False
        assert result.error == "invalid_state"
        rollback.assert_called_once()

    def test_close_with_analysis(self, orchestrator, lectures, runner, operation_logs):
        lectures.get.return_value = _lecture(5, close_time="13:00")

        result = orchestrator.run_single_lecture_closure(5, trigger_analysis=True, user_id="u1")

        assert result.success is True
        assert result.analysis.success is True
        assert result.message == "Survey closed and analyzed"
        runner.run.assert_called_once_with(5, triggered_by="u1", trigger_type=TriggerType.MANUAL)
        assert _actions(operation_logs) == [("close_survey", 5), ("analyze", 5)]

    def test_close_succeeds_when_analysis_fails(self, orchestrator, lectures, runner):
        lectures.get.return_value = _lecture(5, close_time="13:00")
        runner.run.side_effect = lambda lecture_id, **kwargs: AnalysisRunResult(
            success=False, lecture_id=lecture_id, error="invalid_state", message="boom"
        )

        result = orchestrator.run_single_lecture_closure(5, trigger_analysis=True)

        assert result.success is True
        assert result.analysis.success is False
        assert "analysis failed" in result.message


class TestManualAnalysis:
    """Tests for run_manual_analysis."""

    def test_success_is_logged(self, orchestrator, runner, operation_logs):
        result = orchestrator.run_manual_analysis(9, triggered_by="admin")

        assert result.success is True
        record = operation_logs.record.call_args
        assert record.args[0] == "analyze"
        assert record.kwargs["trigger"] == "manual"
        assert record.kwargs["result_set_id"] == 109

    def test_failure_is_logged(self, orchestrator, runner, operation_logs):
        runner.run.side_effect = lambda lecture_id, **kwargs: AnalysisRunResult(
            success=False, lecture_id=lecture_id, error="invalid_state", message="still active"
        )

        result = orchestrator.run_manual_analysis(9)

        assert result.error == "invalid_state"
        assert _actions(operation_logs) == [("analyze_failed", 9)]

    def test_not_found_is_not_logged(self, orchestrator, runner, operation_logs):
        runner.run.side_effect = lambda lecture_id, **kwargs: AnalysisRunResult(
            success=False, lecture_id=lecture_id, error="lecture_not_found", message="missing"
        )

        orchestrator.run_manual_analysis(9)

        operation_logs.record.assert_not_called()

    def test_unexpected_error_is_recorded_and_raised(self, orchestrator, runner, operation_logs, rollback):
        runner.run.side_effect = RuntimeError("connection reset")

        with pytest.raises(RuntimeError):
            orchestrator.run_manual_analysis(9)

        rollback.assert_called()
        assert _actions(operation_logs) == [("analyze_failed", 9)]
