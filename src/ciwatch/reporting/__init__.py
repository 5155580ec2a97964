"""
Diffing, threshold evaluation and report rendering.
"""

from .differ import compare_metrics, counted_records, diff_records, evaluate_thresholds
from .markdown import (
    PRIMARY_METRIC,
    render_ascii_chart,
    render_job_report,
    render_pipeline_summary,
    summarize_counts,
    trend_points,
)
from .plotter import create_trend_figure, render_trend_chart

__all__ = [
    "PRIMARY_METRIC",
    "compare_metrics",
    "counted_records",
    "create_trend_figure",
    "diff_records",
    "evaluate_thresholds",
    "render_ascii_chart",
    "render_job_report",
    "render_pipeline_summary",
    "render_trend_chart",
    "summarize_counts",
    "trend_points",
]
