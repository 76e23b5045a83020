"""Application configuration management using Pydantic Settings.

This module loads and validates environment variables using Pydantic Settings.
All configuration is loaded from environment variables or a .env file.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string
        database_pool_size: Number of connections to maintain in pool
        database_max_overflow: Maximum overflow connections beyond pool_size
        environment: Application environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        question_sets_dir: Path to directory containing question set YAML files
        question_set_id: Question set used by the analysis pipeline
        survey_timezone: IANA zone in which lecture deadlines are written
        closure_interval_minutes: Cadence at which the external trigger fires
        cycle_lease_seconds: Lifetime of a scheduled-cycle run lease
        client_hash_salt: Salt for one-way hashing of respondent IP addresses
    """

    # Database Configuration
    database_url: str = Field(
        description="SQLAlchemy database connection string"
    )
    database_pool_size: int = Field(
        default=5,
        description="Number of database connections in pool"
    )
    database_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections beyond pool size"
    )

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    question_sets_dir: str = Field(
        default="./question_sets",
        description="Path to question set directory"
    )
    question_set_id: str = Field(
        default="lecture_evaluation",
        description="Question set used for analysis"
    )

    # Closure Configuration
    survey_timezone: str = Field(
        default="Asia/Tokyo",
        description="Timezone of survey close date/time values"
    )
    closure_interval_minutes: int = Field(
        default=5,
        ge=1,
        description="Interval at which the scheduler triggers a closure cycle"
    )
    cycle_lease_seconds: int = Field(
        default=600,
        ge=1,
        description="Seconds before an unreleased cycle lease is considered stale"
    )

    # Security Configuration
    client_hash_salt: str = Field(
        description="Salt for one-way client IP hashing (must be kept secret)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("survey_timezone")
    @classmethod
    def validate_survey_timezone(cls, v: str) -> str:
        """Validate the timezone is a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for interpreting lecture deadlines."""
        return ZoneInfo(self.survey_timezone)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton

    Note:
        Uses lru_cache to ensure settings are only loaded once
        and shared across the application.
    """
    return Settings()
