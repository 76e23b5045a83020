"""Cross-tabulation calculator for two dimensions.

The matrix is initialized with every (dim1 option, dim2 option) cell set to
zero, so the output always has ``len(dim1.options) * len(dim2.options)``
entries. Row, column and grand totals are summed from the matrix; a row
value that matches no declared option is not counted anywhere.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from app.exceptions import InvalidDimensionPairError
from app.schemas.question_set import QuestionSet
from app.services.analysis.distribution import resolve_dimension
from app.services.analysis.normalizer import AnalysisRow, option_key
from app.services.analysis.statistics import percentage, round_half_up


@dataclass(frozen=True)
class CrossResult:
    """One cell of a cross table with its row, column and grand percentages."""
    dim1_code: str
    dim1_option: str
    dim2_code: str
    dim2_option: str
    n: int
    row_pct: float
    row_base_n: int
    col_pct: float
    col_base_n: int
    total_pct: float
    total_base_n: int


def calculate_cross_analysis(
    rows: Sequence[AnalysisRow],
    dim1_code: str,
    dim2_code: str,
    question_set: QuestionSet,
) -> List[CrossResult]:
    """Cross-tabulate two dimensions.

    Args:
        rows: Normalized analysis rows
        dim1_code: Row dimension
        dim2_code: Column dimension
        question_set: Supplies both option domains

    Returns:
        One result per matrix cell (dim1-major order), or [] when rows is empty

    Raises:
        InvalidDimensionPairError: If both codes are the same
        UnknownDimensionError: If either dimension is not defined
    """
    if dim1_code == dim2_code:
        raise InvalidDimensionPairError(dim1_code, dim2_code, "dimensions must differ")

    dim1 = resolve_dimension(question_set, dim1_code)
    dim2 = resolve_dimension(question_set, dim2_code)

    if not rows:
        return []

    # Keys are canonical option keys; output uses the declared option codes
    matrix: Dict[str, Dict[str, int]] = {
        option_key(o1): {option_key(o2): 0 for o2 in dim2.options}
        for o1 in dim1.options
    }

    for row in rows:
        key1 = option_key(getattr(row, dim1.attribute, None))
        key2 = option_key(getattr(row, dim2.attribute, None))
        if key1 in matrix and key2 in matrix[key1]:
            matrix[key1][key2] += 1

    row_totals = {k1: sum(cols.values()) for k1, cols in matrix.items()}
    col_totals = {
        option_key(o2): sum(matrix[option_key(o1)][option_key(o2)] for o1 in dim1.options)
        for o2 in dim2.options
    }
    grand_total = sum(row_totals.values())

    results = []
    for o1 in dim1.options:
        k1 = option_key(o1)
        for o2 in dim2.options:
            k2 = option_key(o2)
            n = matrix[k1][k2]
            results.append(
                CrossResult(
                    dim1_code=dim1.code,
                    dim1_option=o1,
                    dim2_code=dim2.code,
                    dim2_option=o2,
                    n=n,
                    row_pct=percentage(n, row_totals[k1]),
                    row_base_n=row_totals[k1],
                    col_pct=percentage(n, col_totals[k2]),
                    col_base_n=col_totals[k2],
                    total_pct=percentage(n, grand_total),
                    total_base_n=grand_total,
                )
            )
    return results


def cross_summary_stats(results: Sequence[CrossResult]) -> dict:
    """Summarize a cross table.

    Returns:
        dict with total_cells, non_zero_cells, max_count, avg_count
        (rounded to 2 decimals) and total_responses
    """
    if not results:
        return {
            "total_cells": 0,
            "non_zero_cells": 0,
            "max_count": 0,
            "avg_count": 0.0,
            "total_responses": 0,
        }

    counts = [r.n for r in results]
    return {
        "total_cells": len(results),
        "non_zero_cells": sum(1 for n in counts if n > 0),
        "max_count": max(counts),
        "avg_count": round_half_up(sum(counts) / len(counts)),
        "total_responses": results[0].total_base_n,
    }
