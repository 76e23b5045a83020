"""Health check endpoint for monitoring and deployment verification.

Reports database connectivity and when the scheduled closure cycle last ran,
so a stalled external scheduler shows up in monitoring.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.cycle_lease import CycleLease
from app.models.database import get_db
from app.logging_config import get_logger
from app.services.closure.orchestrator import LEASE_NAME

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    """Health check endpoint.

    Verifies that:
    1. The application is running
    2. Database connection is working

    Returns:
        dict: Health status and the last closure cycle timestamps

    Raises:
        HTTPException: If database connection fails (503 Service Unavailable)

    Example response:
        {
            "status": "healthy",
            "database": "connected",
            "last_cycle_started_at": "2026-10-17T03:00:00+00:00",
            "last_cycle_finished_at": "2026-10-17T03:00:01+00:00"
        }
    """
    try:
        db.execute(text("SELECT 1"))
        lease = db.get(CycleLease, LEASE_NAME)
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=503,
            detail="Service unavailable - database connection failed"
        )

    logger.debug("Health check passed")

    return {
        "status": "healthy",
        "database": "connected",
        "last_cycle_started_at": lease.last_started_at.isoformat() if lease and lease.last_started_at else None,
        "last_cycle_finished_at": lease.last_finished_at.isoformat() if lease and lease.last_finished_at else None,
    }
