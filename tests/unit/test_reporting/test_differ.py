"""
Tests for record diffs, metric comparisons and thresholds.
"""

import pytest

from ciwatch.models.config import ThresholdConfig
from ciwatch.models.records import placeholder_record
from ciwatch.models.results import AnalysisResult
from ciwatch.reporting import compare_metrics, diff_records, evaluate_thresholds


@pytest.mark.unit
class TestDiffRecords:
    """Test cases for diff_records."""

    def test_added_and_removed(self, test_utils):
        old = test_utils.make_record("old warning")
        kept = test_utils.make_record("kept warning")
        new = test_utils.make_record("new warning")

        diff = diff_records([old, kept], [kept, new])

        assert diff.added == [new]
        assert diff.removed == [old]
        assert diff.unchanged_count == 1
        assert diff.has_changes

    def test_multiset_semantics(self, test_utils):
        record = test_utils.make_record("duplicate")

        diff = diff_records([record], [record, record])

        assert diff.added == [record]
        assert diff.removed == []
        assert diff.unchanged_count == 1

    def test_moved_line_is_unchanged(self, test_utils):
        before = test_utils.make_record("unused variable", line=10, column=5)
        after = test_utils.make_record("unused variable", line=42, column=1)

        diff = diff_records([before], [after])

        assert not diff.has_changes
        assert diff.unchanged_count == 1

    def test_same_message_in_another_file_is_new(self, test_utils):
        diff = diff_records(
            [test_utils.make_record("x", file="a.swift")],
            [test_utils.make_record("x", file="b.swift")],
        )

        assert len(diff.added) == 1
        assert len(diff.removed) == 1

    def test_placeholders_are_ignored(self, test_utils):
        placeholder = placeholder_record("warning", "Build log not found or empty: build.log")

        diff = diff_records([], [placeholder])

        assert not diff.has_changes
        assert diff.unchanged_count == 0

    def test_first_run(self, test_utils):
        records = [test_utils.make_record("a"), test_utils.make_record("b")]

        diff = diff_records([], records)

        assert diff.added == records


@pytest.mark.unit
class TestCompareMetrics:
    """Test cases for compare_metrics."""

    def test_limit_is_exclusive(self):
        at_limit = compare_metrics({"total_size_kb": 100}, {"total_size_kb": 105}, 5.0)[0]
        over_limit = compare_metrics({"total_size_kb": 100}, {"total_size_kb": 105.1}, 5.0)[0]

        assert at_limit.percent_change == 5.0
        assert not at_limit.regressed
        assert over_limit.regressed

    def test_improvement_never_regresses(self):
        comparison = compare_metrics({"warning_count": 10}, {"warning_count": 2}, 0.0)[0]

        assert comparison.delta == -8
        assert comparison.percent_change == -80.0
        assert not comparison.regressed

    def test_growth_from_zero(self):
        flagged = compare_metrics({"warning_count": 0}, {"warning_count": 1}, 10.0)[0]
        unflagged = compare_metrics({"warning_count": 0}, {"warning_count": 1}, None)[0]

        assert flagged.percent_change is None
        assert flagged.regressed
        assert not unflagged.regressed

    def test_higher_is_better(self):
        comparison = compare_metrics({"fully_compatible": 10}, {"fully_compatible": 8}, 5.0)[0]

        assert comparison.regressed

    def test_neutral_metrics(self):
        comparison = compare_metrics({"dependency_count": 10}, {"dependency_count": 20}, 0.0)[0]

        assert not comparison.regressed

    def test_new_metric_and_ordering(self):
        comparisons = compare_metrics({}, {"b": 1.0, "a": 2.0}, 1.0)

        assert [c.name for c in comparisons] == ["a", "b"]
        assert comparisons[0].previous is None
        assert comparisons[0].delta is None


@pytest.mark.unit
class TestEvaluateThresholds:
    """Test cases for evaluate_thresholds."""

    def test_no_thresholds(self, test_utils):
        job = test_utils.make_job()
        analysis = AnalysisResult(records=[test_utils.make_record()])

        assert evaluate_thresholds(job, analysis, []) == []

    def test_max_count_counts_warnings_and_errors(self, test_utils):
        job = test_utils.make_job(thresholds=ThresholdConfig(max_count=1))
        analysis = AnalysisResult(records=[
            test_utils.make_record("a"),
            test_utils.make_record("b", severity="error"),
            test_utils.make_record("c", severity="info"),
            placeholder_record("warning", "missing"),
        ])

        assert evaluate_thresholds(job, analysis, []) == ["2 findings exceed the limit of 1"]

    def test_max_size(self, test_utils):
        job = test_utils.make_job(kind="sizes", thresholds=ThresholdConfig(max_size_kb=100))
        analysis = AnalysisResult(records=[
            test_utils.make_record("app", kind="size", value=150.0, file="build/App"),
            test_utils.make_record("lib", kind="size", value=50.0, file="build/Lib"),
        ])

        violations = evaluate_thresholds(job, analysis, [])

        assert violations == ["app is 150 KB, above the limit of 100 KB"]

    def test_fail_on_codes(self, test_utils):
        job = test_utils.make_job(kind="lint", thresholds=ThresholdConfig(fail_on_codes=["MD001", "MD040"]))
        analysis = AnalysisResult(records=[
            test_utils.make_record("heading", kind="lint", code="MD001"),
            test_utils.make_record("fence", kind="lint", code="MD040"),
            test_utils.make_record("length", kind="lint", code="MD013"),
        ])

        violations = evaluate_thresholds(job, analysis, [])

        assert violations == ["2 findings with critical codes: MD001, MD040"]

    def test_regressions(self, test_utils):
        job = test_utils.make_job(thresholds=ThresholdConfig(max_regression_percent=10.0))
        comparisons = compare_metrics({"warning_count": 10}, {"warning_count": 12}, 10.0)

        violations = evaluate_thresholds(job, AnalysisResult(), comparisons)

        assert violations == ["warning_count regressed +20.0% (10 -> 12), limit 10%"]
