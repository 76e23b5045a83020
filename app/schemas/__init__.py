"""Pydantic schemas for data validation.

This package contains the question set definition schemas and the request
and response models of the HTTP API.
"""

from app.schemas.question_set import (
    TOTAL_GROUP,
    DimensionFamily,
    Dimension,
    RatingBounds,
    NormalizationRules,
    CrossPair,
    SummarySpec,
    AnalysisPlan,
    QuestionSetMetadata,
    QuestionSet,
)
from app.schemas.closure import (
    CycleResultResponse,
    CloseLectureRequest,
    CloseLectureResponse,
    AnalysisRequest,
    AnalysisResultResponse,
)
from app.schemas.results import ResultFactSchema, ResultHighlightsSchema, ResultSetSchema
from app.schemas.submission import ResponseSubmission, ResponseSubmissionResult

__all__ = [
    "TOTAL_GROUP",
    "DimensionFamily",
    "Dimension",
    "RatingBounds",
    "NormalizationRules",
    "CrossPair",
    "SummarySpec",
    "AnalysisPlan",
    "QuestionSetMetadata",
    "QuestionSet",
    "CycleResultResponse",
    "CloseLectureRequest",
    "CloseLectureResponse",
    "AnalysisRequest",
    "AnalysisResultResponse",
    "ResultFactSchema",
    "ResultSetSchema",
    "ResultHighlightsSchema",
    "ResponseSubmission",
    "ResponseSubmissionResult",
]
