"""Survey lifecycle rules.

Pure functions deciding whether a lecture may change status. They take plain
values so the scheduled cycle, the manual endpoints and the tests all apply
the same rules.
"""

from datetime import datetime
from typing import Union

from app.exceptions import InvalidStatusTransitionError
from app.models.lecture import SurveyStatus

StatusLike = Union[SurveyStatus, str]


def _as_status(value: StatusLike) -> SurveyStatus:
    return value if isinstance(value, SurveyStatus) else SurveyStatus(value)


def is_valid_status_transition(current: StatusLike, requested: StatusLike) -> bool:
    """Check a transition requested through the closure operations.

    Only ``active -> closed`` is a real transition here; staying in the same
    status is allowed so retries are harmless. Analysis flips
    ``closed -> analyzed`` through Lecture.mark_analyzed instead.

    Args:
        current: Current status
        requested: Requested status

    Returns:
        True if the transition is allowed
    """
    current = _as_status(current)
    requested = _as_status(requested)

    if current == requested:
        return True
    return current == SurveyStatus.ACTIVE and requested == SurveyStatus.CLOSED


def ensure_transition(current: StatusLike, requested: StatusLike) -> None:
    """Raise InvalidStatusTransitionError unless the transition is allowed."""
    if not is_valid_status_transition(current, requested):
        raise InvalidStatusTransitionError(_as_status(current).value, _as_status(requested).value)


def is_closable(status: StatusLike, deadline: datetime, now: datetime) -> bool:
    """Whether a survey may be closed manually.

    A survey is closable only while it is active and its deadline has not
    passed yet. Once the deadline passes, closing is left to the scheduled
    cycle.

    Args:
        status: Current survey status
        deadline: Aware deadline datetime
        now: Aware current time

    Returns:
        True if a manual close is allowed
    """
    if _as_status(status) != SurveyStatus.ACTIVE:
        return False
    return now <= deadline


def is_past_deadline(deadline: datetime, now: datetime) -> bool:
    """Whether the scheduled cycle should close a survey with this deadline."""
    return deadline <= now
