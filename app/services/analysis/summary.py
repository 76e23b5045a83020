"""Summary calculator: mean of a numeric dimension, optionally grouped.

Empty input behaves differently per mode. Ungrouped summaries always return
a single ``_total`` row (``avg_score = 0, base_n = 0`` when there is no data)
while grouped summaries return ``[]`` because no group exists.

An explicit ``_total`` group code is the ungrouped mode, not a group: it
yields the ``_total/_total`` row, including the zero row on empty input,
so the analysis plan can list ``_total`` next to real groups.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from app.exceptions import InvalidDimensionPairError
from app.schemas.question_set import TOTAL_GROUP, QuestionSet
from app.services.analysis.distribution import resolve_dimension
from app.services.analysis.normalizer import AnalysisRow, option_key
from app.services.analysis.statistics import is_valid_number, mean, round_half_up

UNKNOWN_GROUP = "unknown"


@dataclass(frozen=True)
class SummaryResult:
    """Average of a target dimension within one group."""
    group_code: str
    group_option: str
    target_code: str
    avg_score: float
    base_n: int


def _group_metrics(values: List) -> tuple:
    valid = [v for v in values if is_valid_number(v)]
    if not valid:
        return 0.0, 0
    return round_half_up(mean(valid)), len(valid)


def calculate_summary(
    rows: Sequence[AnalysisRow],
    target_code: str,
    question_set: QuestionSet,
    group_code: Optional[str] = None,
) -> List[SummaryResult]:
    """Average a numeric dimension overall or per group.

    Args:
        rows: Normalized analysis rows
        target_code: Numeric dimension to average
        question_set: Supplies dimension families
        group_code: Categorical dimension to group by; None or "_total"
            for a single overall row

    Returns:
        Summary rows; groups appear in order of first appearance

    Raises:
        UnknownDimensionError: If a dimension is not defined
        InvalidDimensionPairError: If the target is not numeric or the
            group is not categorical
    """
    target = resolve_dimension(question_set, target_code)
    if not target.is_numeric:
        raise InvalidDimensionPairError(
            target_code, group_code or TOTAL_GROUP, "summary target must be numeric"
        )

    if group_code is None or group_code == TOTAL_GROUP:
        avg_score, base_n = _group_metrics(
            [getattr(row, target.attribute, None) for row in rows]
        )
        return [
            SummaryResult(
                group_code=TOTAL_GROUP,
                group_option=TOTAL_GROUP,
                target_code=target.code,
                avg_score=avg_score,
                base_n=base_n,
            )
        ]

    group = resolve_dimension(question_set, group_code)
    if group.is_numeric:
        raise InvalidDimensionPairError(
            target_code, group_code, "summary group must be categorical"
        )

    if not rows:
        return []

    grouped: Dict[str, List] = {}
    for row in rows:
        key = option_key(getattr(row, group.attribute, None)) or UNKNOWN_GROUP
        grouped.setdefault(key, []).append(getattr(row, target.attribute, None))

    results = []
    for key, values in grouped.items():
        avg_score, base_n = _group_metrics(values)
        results.append(
            SummaryResult(
                group_code=group.code,
                group_option=key,
                target_code=target.code,
                avg_score=avg_score,
                base_n=base_n,
            )
        )
    return results


def compare_groups(results: Sequence[SummaryResult]) -> dict:
    """Compare grouped summary rows.

    Args:
        results: Output of calculate_summary for one target

    Returns:
        dict with best_group, worst_group, average_score and score_range

    Raises:
        ValueError: If results is empty
    """
    if not results:
        raise ValueError("No groups to compare")

    best = max(results, key=lambda r: r.avg_score)
    worst = min(results, key=lambda r: r.avg_score)
    scores = [r.avg_score for r in results]

    return {
        "best_group": best,
        "worst_group": worst,
        "average_score": round_half_up(mean(scores)),
        "score_range": round_half_up(max(scores) - min(scores)),
    }
