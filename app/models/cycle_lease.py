"""CycleLease model guarding scheduled closure cycles against overlap.

The external scheduler may double-fire. Before doing any work a cycle takes a
named lease with a compare-and-swap update; a second invocation that finds an
unexpired lease returns without touching any lecture.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, mapped_column, Session

from app.models.database import Base


class CycleLease(Base):
    """Named, expiring lease on the scheduled closure cycle.

    Attributes:
        name: Lease name (primary key)
        holder: Run identifier currently holding the lease
        expires_at: When the lease lapses (NULL when released)
        last_started_at: Start of the most recent run that took the lease
        last_finished_at: End of the most recent run that released it
    """

    __tablename__ = "cycle_leases"

    name: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="Lease name"
    )
    holder: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Run identifier holding the lease"
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the lease lapses"
    )
    last_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Start of the latest run"
    )
    last_finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="End of the latest run"
    )

    @classmethod
    def acquire(
        cls,
        db: Session,
        name: str,
        holder: str,
        now: datetime,
        ttl_seconds: int,
    ) -> bool:
        """Try to take the lease.

        Args:
            db: Database session
            name: Lease name
            holder: Identifier of the run taking the lease
            now: Current time
            ttl_seconds: Lease lifetime

        Returns:
            bool: True if this holder now owns the lease

        Note:
            Commits on success. The UPDATE only matches a released or expired
            row, so two concurrent callers cannot both see rowcount == 1.
        """
        expires_at = now + timedelta(seconds=ttl_seconds)

        result = db.execute(
            update(cls)
            .where(
                cls.name == name,
                (cls.expires_at.is_(None)) | (cls.expires_at <= now),
            )
            .values(holder=holder, expires_at=expires_at, last_started_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            db.commit()
            return True

        exists = db.execute(select(cls.name).where(cls.name == name)).first()
        if exists is not None:
            db.rollback()
            return False

        # First use of this lease name
        db.add(cls(name=name, holder=holder, expires_at=expires_at, last_started_at=now))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return False
        return True

    @classmethod
    def release(cls, db: Session, name: str, holder: str, now: datetime) -> bool:
        """Release the lease if this holder still owns it.

        Returns:
            bool: True if the lease was released by this call
        """
        result = db.execute(
            update(cls)
            .where(cls.name == name, cls.holder == holder)
            .values(holder=None, expires_at=None, last_finished_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<CycleLease(name={self.name}, "
            f"holder={self.holder}, "
            f"expires_at={self.expires_at})>"
        )
