"""Highlights derived from a stored result set.

Facts are read back into calculator results and passed through the ranking
helpers: top options per distribution, one summary per cross table, and a
group comparison per grouped summary. Ungrouped (``_total``) summaries have
nothing to compare and are skipped.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Tuple

from app.models.result import ResultSet, StatType
from app.schemas.question_set import TOTAL_GROUP
from app.services.analysis.cross_tabulation import CrossResult, cross_summary_stats
from app.services.analysis.distribution import (
    DistributionResult,
    options_above_threshold,
    top_options,
)
from app.services.analysis.summary import SummaryResult, compare_groups


@dataclass
class DistributionHighlight:
    dimension_code: str
    top_options: List[DistributionResult]
    options_above_threshold: List[DistributionResult]


@dataclass
class CrossHighlight:
    dim1_code: str
    dim2_code: str
    stats: dict


@dataclass
class GroupComparison:
    group_code: str
    target_code: str
    best_group: SummaryResult
    worst_group: SummaryResult
    average_score: float
    score_range: float


@dataclass
class ResultHighlights:
    """Highlights for one result set, in the order the facts were stored."""
    result_set_id: int
    lecture_id: int
    closed_at: datetime
    distributions: List[DistributionHighlight] = field(default_factory=list)
    crosses: List[CrossHighlight] = field(default_factory=list)
    comparisons: List[GroupComparison] = field(default_factory=list)


def build_highlights(
    result_set: ResultSet,
    top_limit: int = 3,
    threshold_pct: float = 5.0,
) -> ResultHighlights:
    """Compute highlights from stored facts.

    Args:
        result_set: Stored result set with its facts
        top_limit: Maximum number of top options per dimension
        threshold_pct: Minimum share for options_above_threshold

    Returns:
        ResultHighlights
    """
    distributions: Dict[str, List[DistributionResult]] = {}
    crosses: Dict[Tuple[str, str], List[CrossResult]] = {}
    summaries: Dict[Tuple[str, str], List[SummaryResult]] = {}

    for fact in result_set.facts:
        if fact.stat_type == StatType.SIMPLE.value:
            distributions.setdefault(fact.dim1_code, []).append(
                DistributionResult(
                    dimension_code=fact.dim1_code,
                    option_code=fact.dim1_option,
                    n=fact.n,
                    base_n=fact.base_n,
                    pct=fact.pct,
                )
            )
        elif fact.stat_type == StatType.CROSS.value:
            crosses.setdefault((fact.dim1_code, fact.dim2_code), []).append(
                CrossResult(
                    dim1_code=fact.dim1_code,
                    dim1_option=fact.dim1_option,
                    dim2_code=fact.dim2_code,
                    dim2_option=fact.dim2_option,
                    n=fact.n,
                    row_pct=fact.row_pct,
                    row_base_n=fact.row_base_n,
                    col_pct=fact.col_pct,
                    col_base_n=fact.col_base_n,
                    total_pct=fact.total_pct,
                    total_base_n=fact.total_base_n,
                )
            )
        elif fact.stat_type == StatType.SUMMARY.value and fact.dim1_code != TOTAL_GROUP:
            summaries.setdefault((fact.dim1_code, fact.target_code), []).append(
                SummaryResult(
                    group_code=fact.dim1_code,
                    group_option=fact.dim1_option,
                    target_code=fact.target_code,
                    avg_score=fact.avg_score,
                    base_n=fact.base_n,
                )
            )

    highlights = ResultHighlights(
        result_set_id=result_set.id,
        lecture_id=result_set.lecture_id,
        closed_at=result_set.closed_at,
    )
    for code, results in distributions.items():
        highlights.distributions.append(
            DistributionHighlight(
                dimension_code=code,
                top_options=top_options(results, top_limit),
                options_above_threshold=options_above_threshold(results, threshold_pct),
            )
        )
    for (dim1_code, dim2_code), results in crosses.items():
        highlights.crosses.append(
            CrossHighlight(dim1_code, dim2_code, cross_summary_stats(results))
        )
    for (group_code, target_code), results in summaries.items():
        comparison = compare_groups(results)
        highlights.comparisons.append(
            GroupComparison(group_code=group_code, target_code=target_code, **comparison)
        )
    return highlights
