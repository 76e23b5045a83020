"""ResultSet and ResultFact models for persisted analysis output.

One analysis run produces exactly one ``ResultSet`` header and any number of
``ResultFact`` rows. Both are append-only: a re-analysis inserts a new header
and new facts instead of touching earlier ones, so consumers read the newest
result set for a lecture.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Integer,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base


class StatType(str, Enum):
    """Kinds of statistic stored in result_facts."""
    SIMPLE = "simple"
    CROSS = "cross"
    SUMMARY = "summary"


class TriggerType(str, Enum):
    """What started an analysis run."""
    AUTO = "auto"
    MANUAL = "manual"


class ResultSet(Base):
    """Header row for one analysis run of a lecture.

    Attributes:
        id: Primary key
        lecture_id: Foreign key to lectures table
        closed_at: Snapshot timestamp shared by every fact of the run
        total_responses: Number of normalized responses analyzed
        trigger_type: auto (scheduled) or manual
        triggered_by: User who requested a manual run
        created_at: Equal to closed_at
        facts: Relationship to the run's ResultFact rows
    """

    __tablename__ = "result_sets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    lecture_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lectures.id", ondelete="CASCADE"),
        nullable=False,
        comment="Foreign key to lectures table"
    )
    closed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Snapshot timestamp of the analysis run"
    )
    total_responses: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Normalized responses included in the run"
    )
    trigger_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TriggerType.AUTO.value,
        comment="auto or manual"
    )
    triggered_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="User who triggered a manual run"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Creation timestamp (same as closed_at)"
    )

    facts: Mapped[list["ResultFact"]] = relationship(
        "ResultFact",
        back_populates="result_set",
        cascade="all, delete-orphan",
        order_by="ResultFact.id",
    )

    __table_args__ = (
        UniqueConstraint("lecture_id", "closed_at", name="uq_result_sets_lecture_closed_at"),
        Index("idx_result_sets_lecture_closed_at", "lecture_id", "closed_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<ResultSet(id={self.id}, "
            f"lecture_id={self.lecture_id}, "
            f"closed_at={self.closed_at}, "
            f"total_responses={self.total_responses})>"
        )


class ResultFact(Base):
    """One computed statistic belonging to a ResultSet.

    Simple distributions fill dim1/n/base_n/pct, cross tabulations fill both
    dimensions and the row/col/total measures, summaries fill dim1 (the
    grouping), target_code, avg_score and base_n.
    """

    __tablename__ = "result_facts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    result_set_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("result_sets.id", ondelete="CASCADE"),
        nullable=False,
        comment="Foreign key to result_sets table"
    )
    lecture_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Lecture the fact describes"
    )
    stat_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="simple, cross or summary"
    )

    # Dimensions
    dim1_code: Mapped[str] = mapped_column(String(50), nullable=False)
    dim1_option: Mapped[str] = mapped_column(String(50), nullable=False)
    dim2_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    dim2_option: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    target_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Measures
    n: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    base_n: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    row_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    row_base_n: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    col_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    col_base_n: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_base_n: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="calculated_at of the owning run"
    )

    result_set: Mapped[ResultSet] = relationship(
        "ResultSet",
        back_populates="facts",
    )

    __table_args__ = (
        Index("idx_result_facts_set_type_dim1", "result_set_id", "stat_type", "dim1_code"),
        Index("idx_result_facts_lecture", "lecture_id"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<ResultFact(id={self.id}, "
            f"result_set_id={self.result_set_id}, "
            f"stat_type={self.stat_type}, "
            f"dim1={self.dim1_code}:{self.dim1_option})>"
        )
