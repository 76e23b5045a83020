"""Run a question set's analysis plan over normalized rows."""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from app.schemas.question_set import QuestionSet
from app.services.analysis.cross_tabulation import CrossResult, calculate_cross_analysis
from app.services.analysis.distribution import DistributionResult, calculate_distribution
from app.services.analysis.normalizer import AnalysisRow
from app.services.analysis.summary import SummaryResult, calculate_summary


@dataclass
class AnalysisFacts:
    """All statistics computed for one lecture, grouped by fact type."""
    simple: List[DistributionResult] = field(default_factory=list)
    cross: List[CrossResult] = field(default_factory=list)
    summary: List[SummaryResult] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "simple": len(self.simple),
            "cross": len(self.cross),
            "summary": len(self.summary),
        }


def build_analysis_facts(rows: Sequence[AnalysisRow], question_set: QuestionSet) -> AnalysisFacts:
    """Compute every distribution, cross table and summary in the plan.

    Args:
        rows: Normalized analysis rows
        question_set: Option domains and analysis plan

    Returns:
        AnalysisFacts in plan order
    """
    plan = question_set.analysis
    facts = AnalysisFacts()

    for code in plan.distributions:
        facts.simple.extend(calculate_distribution(rows, code, question_set))

    for pair in plan.cross_pairs:
        facts.cross.extend(calculate_cross_analysis(rows, pair.dim1, pair.dim2, question_set))

    for spec in plan.summaries:
        for group in spec.group_by:
            facts.summary.extend(calculate_summary(rows, spec.target, question_set, group))

    return facts
