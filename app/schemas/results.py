"""Pydantic schemas for reading stored analysis results."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from app.schemas.closure import CamelModel


class ResultFactSchema(CamelModel):
    """One stored statistic."""
    model_config = ConfigDict(from_attributes=True)

    stat_type: str
    dim1_code: str
    dim1_option: str
    dim2_code: Optional[str] = None
    dim2_option: Optional[str] = None
    target_code: Optional[str] = None
    n: Optional[int] = None
    base_n: Optional[int] = None
    pct: Optional[float] = None
    row_pct: Optional[float] = None
    row_base_n: Optional[int] = None
    col_pct: Optional[float] = None
    col_base_n: Optional[int] = None
    total_pct: Optional[float] = None
    total_base_n: Optional[int] = None
    avg_score: Optional[float] = None


class ResultSetSchema(CamelModel):
    """A result set header with its facts."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    lecture_id: int
    closed_at: datetime
    total_responses: int
    trigger_type: str
    triggered_by: Optional[str] = None
    facts: list[ResultFactSchema] = Field(default_factory=list)


class OptionShareSchema(CamelModel):
    """Count and share of one option."""
    model_config = ConfigDict(from_attributes=True)

    option_code: str
    n: int
    pct: float


class DistributionHighlightSchema(CamelModel):
    """Most chosen options of one dimension."""
    model_config = ConfigDict(from_attributes=True)

    dimension_code: str
    top_options: list[OptionShareSchema]
    options_above_threshold: list[OptionShareSchema]


class CrossTableStatsSchema(CamelModel):
    """Shape of one cross table."""
    total_cells: int
    non_zero_cells: int
    max_count: int
    avg_count: float
    total_responses: int


class CrossHighlightSchema(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    dim1_code: str
    dim2_code: str
    stats: CrossTableStatsSchema


class GroupScoreSchema(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    group_option: str
    avg_score: float
    base_n: int


class GroupComparisonSchema(CamelModel):
    """Best and worst group for one grouped summary."""
    model_config = ConfigDict(from_attributes=True)

    group_code: str
    target_code: str
    best_group: GroupScoreSchema
    worst_group: GroupScoreSchema
    average_score: float
    score_range: float


class ResultHighlightsSchema(CamelModel):
    """Highlights of the newest result set of a lecture."""
    model_config = ConfigDict(from_attributes=True)

    result_set_id: int
    lecture_id: int
    closed_at: datetime
    distributions: list[DistributionHighlightSchema] = Field(default_factory=list)
    crosses: list[CrossHighlightSchema] = Field(default_factory=list)
    comparisons: list[GroupComparisonSchema] = Field(default_factory=list)
