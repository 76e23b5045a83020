"""Pydantic schemas for the closure and analysis endpoints.

Field names are camelCase on the wire (``closedCount``, ``resultSetId``) to
match what the dashboard consumes; Python code uses snake_case.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing snake_case fields as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CycleResultResponse(CamelModel):
    """Result of a scheduled closure cycle.

    Example:
        {
            "closedCount": 2,
            "analyzedCount": 2,
            "totalProcessingTimeMs": 120,
            "error": null,
            "skipped": false
        }
    """
    closed_count: int = Field(..., ge=0, description="Lectures closed in this cycle")
    analyzed_count: int = Field(..., ge=0, description="Lectures analyzed in this cycle")
    total_processing_time_ms: int = Field(..., ge=0, description="Cycle wall time")
    error: Optional[str] = Field(None, description="Set only when the whole cycle failed")
    skipped: bool = Field(False, description="True when another cycle held the lease")


class CloseLectureRequest(CamelModel):
    """Manual closure request.

    Attributes:
        trigger_analysis: Analyze immediately after closing
        user_id: Requesting user
    """
    trigger_analysis: bool = Field(False, description="Run analysis after closing")
    user_id: Optional[str] = Field(None, max_length=100, description="Requesting user")


class AnalysisRequest(CamelModel):
    """Manual analysis request."""
    triggered_by: Optional[str] = Field(None, max_length=100, description="Requesting user")


class AnalysisResultResponse(CamelModel):
    """Outcome of an analysis run."""
    success: bool
    lecture_id: int
    result_set_id: Optional[int] = None
    execution_time: Optional[int] = Field(None, description="Milliseconds spent")
    total_responses: Optional[int] = None
    results_count: Optional[Dict[str, int]] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_result(cls, result) -> "AnalysisResultResponse":
        """Build from an AnalysisRunResult."""
        return cls(
            success=result.success,
            lecture_id=result.lecture_id,
            result_set_id=result.result_set_id,
            execution_time=result.execution_time_ms,
            total_responses=result.total_responses,
            results_count=result.results_count,
            error=result.error,
            message=result.message,
        )


class CloseLectureResponse(CamelModel):
    """Outcome of a manual closure."""
    success: bool
    lecture_id: int
    message: Optional[str] = None
    analysis: Optional[AnalysisResultResponse] = None
