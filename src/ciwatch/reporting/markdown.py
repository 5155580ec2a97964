"""
Markdown rendering of job reports and the pipeline summary.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import polars as pl

from ..models.records import LogRecord, format_record
from ..models.results import (
    STATUS_FAILURE,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    STATUS_WARNING,
    JobReport,
    MetricComparison,
)
from ..parsing import group_counts

STATUS_EMOJI = {
    STATUS_SUCCESS: "✅",
    STATUS_WARNING: "⚠️",
    STATUS_FAILURE: "❌",
    STATUS_SKIPPED: "⏭️",
}

# Metric plotted in the history chart of each job kind.
PRIMARY_METRIC = {
    "warnings": "warning_count",
    "timings": "total_build_seconds",
    "sizes": "total_size_kb",
    "dependencies": "vulnerability_count",
    "lint": "issue_count",
    "shaders": "shaders_with_issues",
    "freshness": "oldest_age_days",
}

# Kinds whose records get "by file" / "by type" tables.
GROUPED_KINDS = ("warnings", "lint", "shaders")
MAX_LISTED_RECORDS = 50
MAX_GROUP_ROWS = 20
HISTORY_RUNS = 10
CHART_WIDTH = 40


def _table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> List[str]:
    lines = ["| " + " | ".join(headers) + " |", "|" + "|".join("---" for _ in headers) + "|"]
    for row in rows:
        lines.append("| " + " | ".join(str(cell).replace("|", "\\|") for cell in row) + " |")
    return lines


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    if float(value).is_integer():
        return f"{int(value)}"
    return f"{value:.3f}"


def _change(comparison: MetricComparison) -> str:
    if comparison.previous is None:
        return "new"
    if comparison.percent_change is None:
        return f"{comparison.delta:+g}"
    marker = " 🔺" if comparison.regressed else ""
    return f"{comparison.delta:+g} ({comparison.percent_change:+.1f}%){marker}"


def render_ascii_chart(points: Sequence[Tuple[str, float]], width: int = CHART_WIDTH) -> List[str]:
    """
    Horizontal bar chart, one line per point.

    Args:
        points: (label, value) pairs, oldest first
        width: Length of the longest bar

    Returns:
        Chart lines (without code fences)
    """
    if not points:
        return []
    peak = max(abs(v) for _, v in points) or 1.0
    lines = []
    for label, value in points:
        bar = "#" * int(round(abs(value) / peak * width))
        lines.append(f"{label[:16]:<16} {value:>10.3f} {bar}")
    return lines


def trend_points(trend: Optional[pl.DataFrame], metric: str, last: int = HISTORY_RUNS) -> List[Tuple[str, float]]:
    if trend is None or trend.is_empty():
        return []
    rows = trend.filter(pl.col("metric") == metric).tail(last)
    labels = rows.get_column("timestamp").to_list()
    values = rows.get_column("value").to_list()
    return [(str(label), float(value)) for label, value in zip(labels, values) if value is not None]


def _record_list(title: str, records: List[LogRecord]) -> List[str]:
    if not records:
        return []
    lines = [f"### {title} ({len(records)})", "", "```"]
    lines += [format_record(r) for r in records[:MAX_LISTED_RECORDS]]
    if len(records) > MAX_LISTED_RECORDS:
        lines.append(f"... and {len(records) - MAX_LISTED_RECORDS} more")
    lines += ["```", ""]
    return lines


def render_job_report(report: JobReport, trend: Optional[pl.DataFrame] = None) -> str:
    """
    Render one job's report.

    Args:
        report: The job report
        trend: The job's trend table including this run, if recorded

    Returns:
        Markdown text
    """
    emoji = STATUS_EMOJI.get(report.status, "ℹ️")
    lines = [f"## {emoji} {report.job_name} ({report.kind})", ""]

    if report.status == STATUS_SKIPPED:
        lines += [f"_Skipped: {report.skipped_reason}_", ""]
        return "\n".join(lines)

    lines += [f"**Status:** {report.status}", ""]
    if report.skipped_reason:
        lines += [f"_{report.skipped_reason}_", ""]

    analysis = report.analysis
    if analysis.environment:
        lines += ["### Environment", ""]
        lines += _table(["Tool", "Version"], [(f"`{k}`", v) for k, v in analysis.environment.items()])
        lines.append("")

    build = report.build_result
    if build is not None:
        state = "timed out" if build.timed_out else f"exit code {build.exit_code}"
        lines += [
            f"Build: {state} after {build.duration_seconds:.1f}s ({build.attempts} attempt(s))",
            "",
        ]

    placeholders = [r for r in analysis.records if r.placeholder]
    for record in placeholders:
        lines.append(f"> {format_record(record)}")
    if placeholders:
        lines.append("")

    if report.comparisons:
        lines += ["### Summary", ""]
        lines += _table(
            ["Metric", "Previous", "Current", "Change"],
            [(c.name, _fmt(c.previous), _fmt(c.current), _change(c)) for c in report.comparisons],
        )
        lines.append("")

    if report.violations:
        lines += ["### Threshold Violations", ""]
        lines += [f"- ❌ {v}" for v in report.violations]
        lines.append("")

    real = analysis.real_records
    if report.kind in GROUPED_KINDS and real:
        lines += ["### By File", ""]
        lines += _table(["File", "Count"], group_counts(real, lambda r: r.file or "(none)")[:MAX_GROUP_ROWS])
        lines += ["", "### By Type", ""]
        lines += _table(["Type", "Count"], group_counts(real, "message")[:MAX_GROUP_ROWS])
        lines.append("")

    diff = report.diff
    lines += _record_list("New", diff.added)
    lines += _record_list("Resolved", diff.removed)
    if diff.unchanged_count:
        lines += [f"{diff.unchanged_count} findings unchanged since the previous run.", ""]

    if analysis.notes:
        lines += analysis.notes
        lines.append("")

    metric = PRIMARY_METRIC.get(report.kind)
    chart = render_ascii_chart(trend_points(trend, metric)) if metric else []
    if chart:
        lines += [f"### History: {metric} (last {len(chart)} runs)", "", "```"]
        lines += chart
        lines += ["```", ""]

    return "\n".join(lines)


def render_pipeline_summary(reports: List[JobReport], title: str = "CI Report") -> str:
    """Overview table of all jobs followed by each job's report."""
    lines = [f"# {title}", ""]
    rows = []
    for report in reports:
        findings = len(report.analysis.real_records) if report.status != STATUS_SKIPPED else "-"
        rows.append(
            (
                report.job_name,
                report.kind,
                f"{STATUS_EMOJI.get(report.status, '')} {report.status}",
                findings,
                f"+{len(report.diff.added)} / -{len(report.diff.removed)}",
                len(report.violations),
            )
        )
    lines += _table(["Job", "Kind", "Status", "Findings", "New / Resolved", "Violations"], rows)
    lines.append("")
    for report in reports:
        if report.markdown:
            lines += [report.markdown, ""]
    return "\n".join(lines)


def summarize_counts(report: JobReport) -> Dict[str, str]:
    """Flat key/value outputs describing a job (for CI step outputs)."""
    outputs = {
        "status": report.status,
        "findings": str(len(report.analysis.real_records)),
        "added": str(len(report.diff.added)),
        "removed": str(len(report.diff.removed)),
        "violations": str(len(report.violations)),
    }
    for name, value in report.analysis.metrics.items():
        outputs[name.replace(":", "_")] = _fmt(value)
    return outputs
