"""Database models and session management.

This package contains all SQLAlchemy ORM models and database utilities.
"""

from app.models.database import Base, engine, SessionLocal, get_db
from app.models.lecture import Lecture, SurveyStatus
from app.models.response import SurveyResponse
from app.models.result import ResultSet, ResultFact, StatType, TriggerType
from app.models.operation_log import OperationLog
from app.models.cycle_lease import CycleLease

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "Lecture",
    "SurveyStatus",
    "SurveyResponse",
    "ResultSet",
    "ResultFact",
    "StatType",
    "TriggerType",
    "OperationLog",
    "CycleLease",
]
