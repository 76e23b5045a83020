"""Response normalizer: turns stored responses into analysis rows.

Normalization is pure and order-preserving. A raw response is dropped when:

- gender or age group is missing or blank
- understanding or satisfaction is not a number within the rating bounds
- a categorical value is one of the question set's excluded options
  (``preferNotToSay`` for gender in the shipped question set)

Surviving rows have trimmed, lower-cased categoricals and ratings rounded to
the configured precision.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from app.exceptions import UnknownDimensionError
from app.schemas.question_set import QuestionSet
from app.services.analysis.statistics import is_valid_number, round_half_up


@dataclass(frozen=True)
class RawResponse:
    """A stored survey response as read from the response store."""
    gender: Optional[str]
    age_group: Optional[str]
    understanding: Optional[float]
    satisfaction: Optional[float]
    free_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    user_agent: Optional[str] = None
    response_time_seconds: Optional[int] = None

    @classmethod
    def from_model(cls, response) -> "RawResponse":
        """Build from a SurveyResponse ORM instance."""
        return cls(
            gender=response.gender,
            age_group=response.age_group,
            understanding=response.understanding,
            satisfaction=response.satisfaction,
            free_comment=response.free_comment,
            created_at=response.created_at,
            user_agent=response.user_agent,
            response_time_seconds=response.response_time_seconds,
        )


@dataclass(frozen=True)
class AnalysisRow:
    """Normalized projection of a response used by the calculators."""
    gender: str
    age_group: str
    understanding: float
    satisfaction: float

    def value(self, question_set: QuestionSet, dimension_code: str) -> Any:
        """Value of a dimension on this row.

        Raises:
            UnknownDimensionError: If the question set has no such dimension
        """
        dimension = question_set.get_dimension(dimension_code)
        if dimension is None:
            raise UnknownDimensionError(dimension_code, question_set.dimension_codes)
        return getattr(self, dimension.attribute, None)


def option_key(value: Any) -> str:
    """Canonical option key for a row value.

    Integral numbers render without a fractional part so a rating of 4.0
    matches option "4". Strings are trimmed and lower-cased.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return str(value).strip().lower()


def _clean_categorical(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip().lower()
    return cleaned or None


def _rating_in_bounds(value: Any, question_set: QuestionSet) -> bool:
    bounds = question_set.normalization.rating_bounds
    return is_valid_number(value) and bounds.min <= value <= bounds.max


def normalize_response(raw: RawResponse, question_set: QuestionSet) -> Optional[AnalysisRow]:
    """Normalize a single response.

    Args:
        raw: Stored response
        question_set: Supplies rating bounds, exclusions and precision

    Returns:
        AnalysisRow, or None if the response is excluded
    """
    gender = _clean_categorical(raw.gender)
    age_group = _clean_categorical(raw.age_group)
    if gender is None or age_group is None:
        return None

    if not _rating_in_bounds(raw.understanding, question_set):
        return None
    if not _rating_in_bounds(raw.satisfaction, question_set):
        return None

    rules = question_set.normalization
    row = AnalysisRow(
        gender=gender,
        age_group=age_group,
        understanding=round_half_up(raw.understanding, rules.decimals),
        satisfaction=round_half_up(raw.satisfaction, rules.decimals),
    )

    for code, excluded in rules.excluded_options.items():
        if option_key(row.value(question_set, code)) in excluded:
            return None

    return row


def normalize_responses(
    responses: Iterable[RawResponse],
    question_set: QuestionSet,
) -> List[AnalysisRow]:
    """Normalize a batch of responses, preserving order.

    Args:
        responses: Stored responses
        question_set: Normalization rules

    Returns:
        Rows that survived filtering, in input order

    Example:
        >>> rows = normalize_responses(
        ...     [RawResponse(" Male ", "20s", 4, 5), RawResponse("male", "20s", 6, 5)],
        ...     question_set,
        ... )
        >>> [(r.gender, r.understanding) for r in rows]
        [('male', 4.0)]
    """
    rows = []
    for raw in responses:
        row = normalize_response(raw, question_set)
        if row is not None:
            rows.append(row)
    return rows
