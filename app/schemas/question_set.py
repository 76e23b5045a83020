"""Pydantic schemas for question set YAML definitions.

A question set declares the dimensions a lecture survey collects, the fixed
option domain of each dimension, the normalization rules applied to raw
responses, and the analysis plan the pipeline executes. The aggregation
engine receives a validated ``QuestionSet`` instead of reading module-level
constants.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

TOTAL_GROUP = "_total"


class DimensionFamily(str, Enum):
    """How a dimension's values are interpreted."""
    CATEGORICAL = "categorical"
    NUMERIC = "numeric"


class Dimension(BaseModel):
    """A single survey dimension and its fixed option domain.

    Attributes:
        code: Dimension code used in facts (e.g., "gender", "understanding")
        label: Human-readable label
        family: categorical or numeric
        field: Attribute name on a normalized row (defaults to the code)
        options: Ordered canonical option codes
    """
    code: str = Field(..., min_length=1, description="Dimension code")
    label: Optional[str] = Field(None, description="Display label")
    family: DimensionFamily = Field(..., description="Dimension family")
    field: Optional[str] = Field(None, description="Normalized row attribute")
    options: list[str] = Field(..., min_length=1, description="Ordered option codes")

    @field_validator("options", mode="before")
    @classmethod
    def options_as_strings(cls, v):
        """Coerce YAML scalars (e.g., bare 1..5) to strings."""
        if isinstance(v, list):
            return [str(item) for item in v]
        return v

    @model_validator(mode="after")
    def validate_options(self):
        """Ensure options are unique and numeric options parse as numbers."""
        if len(set(self.options)) != len(self.options):
            raise ValueError(f"Dimension '{self.code}' has duplicate options")

        if self.family == DimensionFamily.NUMERIC:
            for option in self.options:
                try:
                    float(option)
                except ValueError:
                    raise ValueError(
                        f"Numeric dimension '{self.code}' has non-numeric option '{option}'"
                    )
        return self

    @property
    def attribute(self) -> str:
        """Attribute name holding this dimension's value on a normalized row."""
        return self.field or self.code

    @property
    def is_numeric(self) -> bool:
        return self.family == DimensionFamily.NUMERIC


class RatingBounds(BaseModel):
    """Inclusive range for numeric ratings.

    Attributes:
        min: Lowest accepted rating
        max: Highest accepted rating
    """
    min: float = Field(default=1, description="Minimum rating")
    max: float = Field(default=5, description="Maximum rating")

    @model_validator(mode="after")
    def max_not_below_min(self):
        """Ensure max >= min."""
        if self.max < self.min:
            raise ValueError("rating max must be >= min")
        return self


class NormalizationRules(BaseModel):
    """Rules applied when turning raw responses into analysis rows.

    Attributes:
        rating_bounds: Rows with a rating outside these bounds are dropped
        excluded_options: Per-dimension option codes whose rows are dropped
            (matched case-insensitively)
        decimals: Rounding precision for ratings
    """
    rating_bounds: RatingBounds = Field(default_factory=RatingBounds)
    excluded_options: dict[str, list[str]] = Field(default_factory=dict)
    decimals: int = Field(default=2, ge=0, le=6)

    @field_validator("excluded_options")
    @classmethod
    def excluded_lowercase(cls, v):
        """Store excluded options lower-cased for comparison."""
        return {code: [opt.strip().lower() for opt in opts] for code, opts in v.items()}


class CrossPair(BaseModel):
    """Two dimensions to cross-tabulate (dim1 rows, dim2 columns)."""
    dim1: str = Field(..., min_length=1)
    dim2: str = Field(..., min_length=1)


class SummarySpec(BaseModel):
    """A numeric target and the groupings to average it by.

    Attributes:
        target: Numeric dimension to average
        group_by: Categorical dimensions to group by; "_total" for ungrouped
    """
    target: str = Field(..., min_length=1)
    group_by: list[str] = Field(default_factory=lambda: [TOTAL_GROUP])


class AnalysisPlan(BaseModel):
    """Which statistics the pipeline computes for each lecture.

    Attributes:
        distributions: Dimensions to compute simple distributions for
        cross_pairs: Dimension pairs to cross-tabulate
        summaries: Numeric targets and their groupings
    """
    distributions: list[str] = Field(default_factory=list)
    cross_pairs: list[CrossPair] = Field(default_factory=list)
    summaries: list[SummarySpec] = Field(default_factory=list)


class QuestionSetMetadata(BaseModel):
    """Question set identification.

    Attributes:
        id: Question set identifier (matches YAML filename)
        name: Human-readable name
        version: Semantic version
    """
    id: str = Field(..., min_length=1, description="Question set identifier")
    name: str = Field(..., min_length=1, description="Question set name")
    description: Optional[str] = Field(None, description="Question set description")
    version: str = Field(..., pattern=r'^\d+\.\d+\.\d+$', description="Semantic version")

    @field_validator('id')
    @classmethod
    def id_alphanumeric(cls, v):
        """Ensure ID is alphanumeric with underscores/hyphens only."""
        if not v.replace('_', '').replace('-', '').isalnum():
            raise ValueError('Question set ID must be alphanumeric with underscores/hyphens')
        return v


class QuestionSet(BaseModel):
    """Complete question set definition.

    Root schema for question set YAML files.

    Attributes:
        metadata: Identification and metadata
        dimensions: Dimensions with their option domains
        normalization: Response normalization rules
        analysis: Analysis plan run by the pipeline
    """
    metadata: QuestionSetMetadata
    dimensions: list[Dimension] = Field(..., min_length=1)
    normalization: NormalizationRules = Field(default_factory=NormalizationRules)
    analysis: AnalysisPlan = Field(default_factory=AnalysisPlan)

    @model_validator(mode="after")
    def validate_references(self):
        """Validate dimension codes are unique and the plan references them correctly."""
        codes = [d.code for d in self.dimensions]
        if len(set(codes)) != len(codes):
            raise ValueError("Dimension codes must be unique")

        by_code = {d.code: d for d in self.dimensions}

        for code in self.normalization.excluded_options:
            if code not in by_code:
                raise ValueError(f"Excluded options reference unknown dimension '{code}'")

        for code in self.analysis.distributions:
            if code not in by_code:
                raise ValueError(f"Distribution references unknown dimension '{code}'")

        for pair in self.analysis.cross_pairs:
            for code in (pair.dim1, pair.dim2):
                if code not in by_code:
                    raise ValueError(f"Cross pair references unknown dimension '{code}'")
            if pair.dim1 == pair.dim2:
                raise ValueError(f"Cross pair must use two different dimensions: {pair.dim1}")

        for summary in self.analysis.summaries:
            target = by_code.get(summary.target)
            if target is None or not target.is_numeric:
                raise ValueError(f"Summary target '{summary.target}' must be a numeric dimension")
            for group in summary.group_by:
                if group == TOTAL_GROUP:
                    continue
                dim = by_code.get(group)
                if dim is None or dim.is_numeric:
                    raise ValueError(
                        f"Summary group '{group}' must be a categorical dimension or '{TOTAL_GROUP}'"
                    )

        return self

    def get_dimension(self, code: str) -> Optional[Dimension]:
        """Get a dimension by code.

        Args:
            code: Dimension code

        Returns:
            Dimension if found, None otherwise
        """
        for dimension in self.dimensions:
            if dimension.code == code:
                return dimension
        return None

    @property
    def dimension_codes(self) -> list[str]:
        return [d.code for d in self.dimensions]

    @property
    def categorical_codes(self) -> list[str]:
        return [d.code for d in self.dimensions if not d.is_numeric]

    @property
    def numeric_codes(self) -> list[str]:
        return [d.code for d in self.dimensions if d.is_numeric]
