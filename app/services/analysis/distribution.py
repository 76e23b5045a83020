"""Distribution calculator: frequency and percentage of one dimension.

Every option of the dimension's fixed domain appears in the output, including
options nobody chose (``n = 0``), so charts always show the full scale.
"""

from dataclasses import dataclass
from typing import List, Sequence

from app.exceptions import UnknownDimensionError
from app.schemas.question_set import Dimension, QuestionSet
from app.services.analysis.normalizer import AnalysisRow, option_key
from app.services.analysis.statistics import count_occurrences, percentage


@dataclass(frozen=True)
class DistributionResult:
    """Frequency of one option within one dimension."""
    dimension_code: str
    option_code: str
    n: int
    base_n: int
    pct: float


def resolve_dimension(question_set: QuestionSet, dimension_code: str) -> Dimension:
    """Look up a dimension or raise UnknownDimensionError."""
    dimension = question_set.get_dimension(dimension_code)
    if dimension is None:
        raise UnknownDimensionError(dimension_code, question_set.dimension_codes)
    return dimension


def calculate_distribution(
    rows: Sequence[AnalysisRow],
    dimension_code: str,
    question_set: QuestionSet,
) -> List[DistributionResult]:
    """Compute the simple distribution of a dimension.

    Args:
        rows: Normalized analysis rows
        dimension_code: Dimension to count
        question_set: Supplies the dimension's option domain

    Returns:
        One result per option in domain order, or [] when rows is empty

    Raises:
        UnknownDimensionError: If the dimension is not defined

    Example:
        >>> [(r.option_code, r.n, r.pct) for r in calculate_distribution(rows, "gender", qs)]
        [('male', 2, 66.67), ('female', 1, 33.33), ('other', 0, 0.0), ('preferNotToSay', 0, 0.0)]
    """
    dimension = resolve_dimension(question_set, dimension_code)

    if not rows:
        return []

    base_n = len(rows)
    occurrences = count_occurrences(
        option_key(getattr(row, dimension.attribute, None)) for row in rows
    )

    return [
        DistributionResult(
            dimension_code=dimension.code,
            option_code=option,
            n=occurrences.get(option_key(option), 0),
            base_n=base_n,
            pct=percentage(occurrences.get(option_key(option), 0), base_n),
        )
        for option in dimension.options
    ]


def top_options(results: Sequence[DistributionResult], limit: int = 5) -> List[DistributionResult]:
    """Most frequent options with at least one response, highest first."""
    chosen = [r for r in results if r.n > 0]
    return sorted(chosen, key=lambda r: r.n, reverse=True)[:limit]


def options_above_threshold(
    results: Sequence[DistributionResult],
    threshold_pct: float = 5.0,
) -> List[DistributionResult]:
    """Options whose percentage is at least threshold_pct."""
    return [r for r in results if r.pct >= threshold_pct]
