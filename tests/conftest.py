"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = Path(__file__).parent.parent

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CLIENT_HASH_SALT", "test_salt_for_hashing_clients")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SURVEY_TIMEZONE", "Asia/Tokyo")
os.environ.setdefault("QUESTION_SETS_DIR", str(PROJECT_ROOT / "question_sets"))

from app.models.database import Base
from app.models.lecture import Lecture
from app.models.response import SurveyResponse
from app.schemas.question_set import QuestionSet
from app.services.question_set_loader import QuestionSetLoader

# 2026-10-17 12:00 in Asia/Tokyo
FIXED_NOW = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        StaticPool keeps the single in-memory database visible to the
        TestClient's worker thread.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,  # Set to True for SQL debugging
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session.

    Args:
        db_engine: Test database engine fixture

    Yields:
        Session: SQLAlchemy session for testing
    """
    TestSessionLocal = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )

    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture(scope="session")
def question_set() -> QuestionSet:
    """The shipped lecture_evaluation question set."""
    return QuestionSetLoader(PROJECT_ROOT / "question_sets").load_question_set("lecture_evaluation")


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed current time used by clocks in tests."""
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now) -> Callable[[], datetime]:
    """Clock returning fixed_now."""
    return lambda: fixed_now


@pytest.fixture
def make_lecture(db_session) -> Callable[..., Lecture]:
    """Factory creating and committing a lecture.

    Defaults to an active survey whose deadline (11:00 Tokyo) is one hour
    before fixed_now.
    """
    def _make(**overrides) -> Lecture:
        values = {
            "title": "Intro to Statistics",
            "lecture_date": "2026-10-17",
            "lecture_time": "09:00",
            "survey_close_date": "2026-10-17",
            "survey_close_time": "11:00",
            "survey_status": "active",
            "created_by": "lecturer-1",
        }
        values.update(overrides)
        lecture = Lecture(**values)
        db_session.add(lecture)
        db_session.commit()
        return lecture

    return _make


@pytest.fixture
def add_responses(db_session) -> Callable[..., list]:
    """Factory adding responses given (gender, age_group, understanding, satisfaction) tuples."""
    def _add(lecture: Lecture, answers) -> list:
        responses = [
            SurveyResponse(
                lecture_id=lecture.id,
                gender=gender,
                age_group=age_group,
                understanding=understanding,
                satisfaction=satisfaction,
            )
            for gender, age_group, understanding, satisfaction in answers
        ]
        db_session.add_all(responses)
        db_session.commit()
        return responses

    return _add


@pytest.fixture
def sample_answers() -> list:
    """Three responses: two male 20s, one female 30s."""
    return [
        ("male", "20s", 4, 5),
        ("female", "30s", 3, 4),
        ("male", "20s", 5, 5),
    ]
