"""Shared FastAPI dependencies for the API routes.

Tests override these with ``app.dependency_overrides`` to inject a fixed
clock or a different question set.
"""

from datetime import datetime
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.database import get_db
from app.schemas.question_set import QuestionSet
from app.services.closure.analysis_runner import utc_now
from app.services.closure.orchestrator import ClosureOrchestrator
from app.services.question_set_loader import get_active_question_set
from app.services.response_intake import ResponseIntake


def get_clock() -> Callable[[], datetime]:
    """Clock used by request handlers."""
    return utc_now


def get_question_set() -> QuestionSet:
    """Question set configured for the pipeline."""
    return get_active_question_set()


def get_orchestrator(
    db: Session = Depends(get_db),
    question_set: QuestionSet = Depends(get_question_set),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ClosureOrchestrator:
    """Closure orchestrator bound to the request's session."""
    return ClosureOrchestrator.from_session(db, question_set=question_set, clock=clock)


def get_response_intake(
    db: Session = Depends(get_db),
    question_set: QuestionSet = Depends(get_question_set),
) -> ResponseIntake:
    """Response intake service bound to the request's session."""
    return ResponseIntake(db, question_set, get_settings().tzinfo)
