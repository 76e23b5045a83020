"""SurveyResponse model for storing raw survey submissions.

Each row is one respondent's answers to a lecture's feedback survey. Rows are
written once by the submission endpoint and only ever read afterwards; the
analysis pipeline filters and normalizes them in memory.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Text,
    Integer,
    Float,
    DateTime,
    ForeignKey,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base


class SurveyResponse(Base):
    """Model for storing one respondent's survey submission.

    Attributes:
        id: Primary key
        lecture_id: Foreign key to lectures table
        gender: Gender option code as submitted
        age_group: Age group option code as submitted
        understanding: Understanding rating (1-5)
        satisfaction: Satisfaction rating (1-5)
        free_comment: Optional free-text comment
        client_hash: Salted hash of the client IP (never plaintext)
        user_agent: Client user agent string
        response_time_seconds: Seconds the respondent spent on the form
        created_at: When the response was submitted
        lecture: Relationship to parent Lecture
    """

    __tablename__ = "survey_responses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    lecture_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lectures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to lectures table"
    )

    # Answers
    gender: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Gender option code"
    )
    age_group: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Age group option code"
    )
    understanding: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Understanding rating (1-5)"
    )
    satisfaction: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Satisfaction rating (1-5)"
    )
    free_comment: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free-text comment"
    )

    # Metadata
    client_hash: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="SHA-256 hash of client IP for privacy"
    )
    user_agent: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Client user agent"
    )
    response_time_seconds: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Seconds spent answering"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the response was submitted"
    )

    lecture: Mapped["Lecture"] = relationship(
        "Lecture",
        back_populates="responses",
    )

    __table_args__ = (
        Index("idx_responses_client_hash", "client_hash"),
        Index("idx_responses_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<SurveyResponse(id={self.id}, "
            f"lecture_id={self.lecture_id}, "
            f"gender={self.gender}, "
            f"age_group={self.age_group}, "
            f"understanding={self.understanding}, "
            f"satisfaction={self.satisfaction})>"
        )
