"""OperationLog model for recording lifecycle actions.

Every closure and analysis attempt made by the pipeline, successful or not,
leaves one row here. Failed items are therefore visible after the fact even
though the batch loop absorbs their exceptions.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Index,
    String,
    Integer,
    DateTime,
    JSON,
    text,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column, Session

from app.models.database import Base


class OperationLog(Base):
    """Model for an auditable pipeline action.

    Attributes:
        id: Primary key
        lecture_id: Lecture the action targeted (no FK so logs outlive lectures)
        user_id: User who requested the action, if any
        action: Action name (close_survey, analyze, ..._failed)
        details: JSON payload with action-specific data
        created_at: When the action was recorded
    """

    __tablename__ = "operation_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    lecture_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Lecture the action targeted"
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="User who requested the action"
    )
    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Action name"
    )
    details: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Action-specific details"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the action was recorded"
    )

    __table_args__ = (
        Index("idx_operation_logs_lecture", "lecture_id"),
        Index("idx_operation_logs_action", "action"),
    )

    @classmethod
    def record(
        cls,
        db: Session,
        action: str,
        lecture_id: Optional[int] = None,
        user_id: Optional[str] = None,
        **details: Any,
    ) -> "OperationLog":
        """Add an operation log entry to the session.

        Args:
            db: Database session
            action: Action name
            lecture_id: Targeted lecture
            user_id: Requesting user
            **details: Stored in the JSON details column

        Returns:
            OperationLog: The pending log entry (caller commits)
        """
        entry = cls(
            lecture_id=lecture_id,
            user_id=user_id,
            action=action,
            details=details,
        )
        db.add(entry)
        return entry

    @classmethod
    def for_lecture(cls, db: Session, lecture_id: int) -> list["OperationLog"]:
        """Return all log entries for a lecture, oldest first."""
        return list(
            db.execute(
                select(cls).where(cls.lecture_id == lecture_id).order_by(cls.id)
            ).scalars()
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<OperationLog(id={self.id}, "
            f"action={self.action}, "
            f"lecture_id={self.lecture_id})>"
        )
