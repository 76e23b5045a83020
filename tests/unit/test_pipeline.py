"""Unit tests for building the full set of analysis facts."""

from app.services.analysis.normalizer import AnalysisRow
from app.services.analysis.pipeline import build_analysis_facts


def test_fact_counts_for_sample_rows(question_set):
    """Three rows over two genders and two age groups."""
    rows = [
        AnalysisRow("male", "20s", 4.0, 5.0),
        AnalysisRow("female", "30s", 3.0, 4.0),
        AnalysisRow("male", "20s", 5.0, 5.0),
    ]

    facts = build_analysis_facts(rows, question_set)

    # 4 + 7 + 5 + 5 options; 5x4 + 5x7 cells per rating
    assert facts.counts() == {"simple": 21, "cross": 110, "summary": 10}


def test_summary_rows_follow_plan_order(question_set):
    rows = [AnalysisRow("male", "20s", 4.0, 5.0)]

    facts = build_analysis_facts(rows, question_set)

    assert [(s.target_code, s.group_code) for s in facts.summary] == [
        ("understanding", "_total"),
        ("understanding", "gender"),
        ("understanding", "ageGroup"),
        ("satisfaction", "_total"),
        ("satisfaction", "gender"),
        ("satisfaction", "ageGroup"),
    ]


def test_empty_rows_keep_only_total_summaries(question_set):
    """No responses still yields one zero _total row per target."""
    facts = build_analysis_facts([], question_set)

    assert facts.counts() == {"simple": 0, "cross": 0, "summary": 2}
    assert all(s.base_n == 0 and s.avg_score == 0.0 for s in facts.summary)
