"""
Tests for markdown reports and trend charts.
"""

from pathlib import Path
from unittest.mock import patch

import polars as pl
import pytest

from ciwatch.models.records import placeholder_record
from ciwatch.models.results import AnalysisResult, JobReport, MetricComparison, RecordDiff
from ciwatch.models.runtime import BuildResult
from ciwatch.reporting import (
    create_trend_figure,
    render_ascii_chart,
    render_job_report,
    render_pipeline_summary,
    render_trend_chart,
    summarize_counts,
    trend_points,
)
from ciwatch.storage import TREND_SCHEMA


@pytest.fixture
def trend():
    return pl.DataFrame(
        {
            "run_id": ["r1", "r1", "r2", "r2"],
            "timestamp": ["2024-01-01", "2024-01-01", "2024-01-02", "2024-01-02"],
            "commit": ["aaa", "aaa", "bbb", "bbb"],
            "metric": ["warning_count", "error_count", "warning_count", "error_count"],
            "value": [4.0, 0.0, 2.0, 1.0],
        },
        schema=TREND_SCHEMA,
    )


@pytest.fixture
def report(test_utils):
    warning = test_utils.make_record("unused variable", file="Sources/App/View.swift", line=3)
    resolved = test_utils.make_record("deprecated call", file="Sources/App/Old.swift")
    return JobReport(
        job_name="compiler-warnings",
        kind="warnings",
        status="warning",
        build_result=BuildResult("swift build", 0, 12.34, Path("build.log"), attempts=2),
        analysis=AnalysisResult(
            records=[warning],
            metrics={"warning_count": 1.0},
            environment={"swift --version": "Swift version 5.9"},
            notes=["Slowest file: View.swift"],
        ),
        diff=RecordDiff(added=[warning], removed=[resolved], unchanged_count=0),
        comparisons=[MetricComparison("warning_count", 2.0, 1.0, -1.0, -50.0, False)],
        violations=["warning_count regressed"],
    )


@pytest.mark.unit
class TestJobReport:
    """Test cases for render_job_report."""

    def test_sections(self, report, trend):
        text = render_job_report(report, trend)

        assert text.startswith("## ⚠️ compiler-warnings (warnings)")
        assert "**Status:** warning" in text
        assert "| `swift --version` | Swift version 5.9 |" in text
        assert "Build: exit code 0 after 12.3s (2 attempt(s))" in text
        assert "| warning_count | 2 | 1 | -1 (-50.0%) |" in text
        assert "- ❌ warning_count regressed" in text
        assert "### By File" in text
        assert "| Sources/App/View.swift | 1 |" in text
        assert "### New (1)" in text
        assert "Sources/App/View.swift:3:1: warning: unused variable" in text
        assert "### Resolved (1)" in text
        assert "Slowest file: View.swift" in text
        assert "### History: warning_count (last 2 runs)" in text

    def test_section_order(self, report):
        text = render_job_report(report)

        order = ["### Environment", "Build:", "### Summary", "### Threshold Violations",
                 "### By File", "### New", "### Resolved"]
        positions = [text.index(marker) for marker in order]
        assert positions == sorted(positions)

    def test_skipped(self):
        report = JobReport("lint", "lint", "skipped", skipped_reason="no changed file matches")

        text = render_job_report(report)

        assert text == "## ⏭️ lint (lint)\n\n_Skipped: no changed file matches_\n"

    def test_placeholder_is_quoted(self):
        report = JobReport(
            "lint", "lint", "success",
            analysis=AnalysisResult(records=[placeholder_record("lint", "Build log not found or empty: build.log")]),
        )

        text = render_job_report(report)

        assert "> N/A:0:0: lint: Build log not found or empty: build.log" in text
        assert "### By File" not in text

    def test_long_record_lists_are_capped(self, test_utils):
        records = [test_utils.make_record(f"warning {i}") for i in range(55)]
        report = JobReport("w", "warnings", "warning", diff=RecordDiff(added=records))

        text = render_job_report(report)

        assert "### New (55)" in text
        assert "... and 5 more" in text


@pytest.mark.unit
class TestSummaryAndCharts:
    """Test cases for the pipeline summary, outputs and charts."""

    def test_pipeline_summary(self, report):
        skipped = JobReport("lint", "lint", "skipped", skipped_reason="not triggered")
        report.markdown = "JOB MARKDOWN"

        text = render_pipeline_summary([report, skipped])

        assert text.startswith("# CI Report")
        assert "| compiler-warnings | warnings | ⚠️ warning | 1 | +1 / -1 | 1 |" in text
        assert "| lint | lint | ⏭️ skipped | - | +0 / -0 | 0 |" in text
        assert "JOB MARKDOWN" in text

    def test_summarize_counts(self, report):
        outputs = summarize_counts(report)

        assert outputs == {
            "status": "warning",
            "findings": "1",
            "added": "1",
            "removed": "1",
            "violations": "1",
            "warning_count": "1",
        }

    def test_ascii_chart(self):
        lines = render_ascii_chart([("a", 1.0), ("b", 2.0)], width=4)

        assert lines == [
            "a                     1.000 ##",
            "b                     2.000 ####",
        ]
        assert render_ascii_chart([]) == []

    def test_trend_points(self, trend):
        assert trend_points(trend, "warning_count") == [("2024-01-01", 4.0), ("2024-01-02", 2.0)]
        assert trend_points(trend, "warning_count", last=1) == [("2024-01-02", 2.0)]
        assert trend_points(None, "warning_count") == []

    def test_trend_figure(self, trend):
        fig = create_trend_figure(trend, "compiler-warnings")

        assert [t.name for t in fig.data] == ["warning_count", "error_count"]
        assert list(fig.data[0].y) == [4.0, 2.0]

    def test_render_trend_chart(self, trend, temp_dir):
        with patch("plotly.graph_objects.Figure.write_image", side_effect=RuntimeError("no kaleido")):
            path = render_trend_chart(trend, "compiler-warnings", temp_dir, metrics=["warning_count"])

        assert path == temp_dir / "compiler-warnings_trend.html"
        assert path.exists()

    def test_render_trend_chart_without_history(self, temp_dir):
        assert render_trend_chart(pl.DataFrame(schema=TREND_SCHEMA), "x", temp_dir) is None
