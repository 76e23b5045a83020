"""Pydantic schema for survey response submissions.

Ratings are range-checked here. Categorical values are checked against the
question set's option domains in the route, since the allowed options come
from configuration rather than from this schema.
"""

from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from app.schemas.closure import CamelModel


class ResponseSubmission(CamelModel):
    """A respondent's answers to a lecture survey.

    Example:
        {
            "gender": "female",
            "ageGroup": "30s",
            "understanding": 4,
            "satisfaction": 5,
            "freeComment": "Clear examples",
            "responseTime": 95
        }
    """
    gender: str = Field(..., min_length=1, max_length=50)
    age_group: str = Field(..., min_length=1, max_length=50)
    understanding: int = Field(..., ge=1, le=5, description="Understanding rating (1-5)")
    satisfaction: int = Field(..., ge=1, le=5, description="Satisfaction rating (1-5)")
    free_comment: Optional[str] = Field(None, max_length=1000)
    response_time: Optional[int] = Field(None, ge=0, description="Seconds spent answering")

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("free_comment")
    @classmethod
    def blank_comment_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty comment as no comment."""
        if v is not None and not v.strip():
            return None
        return v


class ResponseSubmissionResult(CamelModel):
    """Acknowledgement of a stored response."""
    success: bool
    response_id: int
