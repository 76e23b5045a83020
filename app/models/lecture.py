"""Lecture model and survey lifecycle state.

A lecture owns one feedback survey. The survey moves strictly forward through
``active -> closed -> analyzed``; the closure pipeline is the only writer of
the later two states.
"""

import re
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Text,
    DateTime,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.exceptions import LectureStateError
from app.models.database import Base


class SurveyStatus(str, Enum):
    """Survey lifecycle states, in the only order they may be visited."""
    ACTIVE = "active"
    CLOSED = "closed"
    ANALYZED = "analyzed"

    @property
    def rank(self) -> int:
        """Position of the status in the lifecycle."""
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [SurveyStatus.ACTIVE, SurveyStatus.CLOSED, SurveyStatus.ANALYZED]

DEADLINE_FORMAT = "%Y-%m-%d %H:%M"

# Zero-padded so the stored strings order the same way as the times they hold
DEADLINE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}")


class Lecture(Base):
    """Model for a lecture and the state of its feedback survey.

    Attributes:
        id: Primary key
        title: Lecture title
        lecture_date: Date of the lecture (YYYY-MM-DD)
        lecture_time: Start time of the lecture (HH:MM)
        description: Optional free-text description
        survey_close_date: Survey deadline date (YYYY-MM-DD, local wall clock)
        survey_close_time: Survey deadline time (HH:MM, local wall clock)
        survey_status: active, closed, or analyzed
        closed_at: When the survey was closed
        analyzed_at: When the latest analysis run completed the lifecycle
        created_by: Identifier of the owning user
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "lectures"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Lecture title"
    )
    lecture_date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Lecture date (YYYY-MM-DD)"
    )
    lecture_time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        comment="Lecture start time (HH:MM)"
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Lecture description"
    )

    # Survey Deadline
    survey_close_date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Survey close date (YYYY-MM-DD)"
    )
    survey_close_time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        comment="Survey close time (HH:MM)"
    )

    # Lifecycle
    survey_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SurveyStatus.ACTIVE.value,
        server_default=text("'active'"),
        comment="Survey lifecycle status"
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the survey was closed"
    )
    analyzed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When analysis results were produced"
    )

    # Ownership
    created_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Owning user identifier"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Creation timestamp"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
        comment="Last update timestamp"
    )

    responses: Mapped[list["SurveyResponse"]] = relationship(
        "SurveyResponse",
        back_populates="lecture",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_lectures_survey_status", "survey_status"),
        Index("idx_lectures_created_by", "created_by"),
    )

    @property
    def status(self) -> SurveyStatus:
        """Survey status as an enum member."""
        return SurveyStatus(self.survey_status)

    def deadline(self, tz: tzinfo) -> datetime:
        """Survey deadline as an aware datetime.

        Args:
            tz: Timezone in which the close date/time were entered

        Returns:
            Timezone-aware deadline

        Raises:
            ValueError: If the stored date or time is malformed or not zero-padded
        """
        value = f"{self.survey_close_date} {self.survey_close_time}"
        if not DEADLINE_PATTERN.fullmatch(value):
            raise ValueError(f"Deadline must be YYYY-MM-DD HH:MM, got {value!r}")
        naive = datetime.strptime(value, DEADLINE_FORMAT)
        return naive.replace(tzinfo=tz)

    def mark_closed(self, closed_at: datetime) -> None:
        """Close the survey.

        Args:
            closed_at: Closure timestamp

        Raises:
            LectureStateError: If the survey is not active
        """
        if self.status != SurveyStatus.ACTIVE:
            raise LectureStateError(
                self.id, f"Lecture is not active: survey_status={self.survey_status}"
            )
        self.survey_status = SurveyStatus.CLOSED.value
        self.closed_at = closed_at
        self.updated_at = closed_at

    def mark_analyzed(self, analyzed_at: datetime) -> None:
        """Record that analysis results exist for the closed survey.

        Args:
            analyzed_at: Timestamp shared with the result set of the run

        Raises:
            LectureStateError: If the survey is not closed
        """
        if self.status != SurveyStatus.CLOSED:
            raise LectureStateError(
                self.id, f"Lecture is not closed: survey_status={self.survey_status}"
            )
        self.survey_status = SurveyStatus.ANALYZED.value
        self.analyzed_at = analyzed_at
        self.updated_at = analyzed_at

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Lecture(id={self.id}, "
            f"title={self.title!r}, "
            f"survey_status={self.survey_status}, "
            f"deadline={self.survey_close_date} {self.survey_close_time})>"
        )
