"""
Comparison of a run with the previous recorded run.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from ..models.config import JobConfig
from ..models.records import LogRecord
from ..models.results import AnalysisResult, MetricComparison, RecordDiff

logger = logging.getLogger(__name__)

# Metrics where a drop, not a rise, is the bad direction.
HIGHER_IS_BETTER = frozenset({"fully_compatible"})
# Inventory style metrics that are reported but never count as regressions.
NEUTRAL_METRICS = frozenset({
    "dependency_count",
    "shader_count",
    "artifact_count",
    "initial_artifact_count",
    "regenerated",
    "oldest_age_days",
})
# Severities that count towards thresholds.max_count.
COUNTED_SEVERITIES = ("warning", "error")


def diff_records(previous: Iterable[LogRecord], current: Iterable[LogRecord]) -> RecordDiff:
    """
    Multiset difference of two record lists by identity.

    A finding reported twice now and once before shows up once in
    ``added``. Placeholder records never appear in the diff.

    Args:
        previous: Records of the previous run
        current: Records of this run

    Returns:
        RecordDiff with added, removed and the unchanged count
    """
    prev = [r for r in previous if not r.placeholder]
    curr = [r for r in current if not r.placeholder]

    prev_counts = Counter(r.identity for r in prev)
    curr_counts = Counter(r.identity for r in curr)

    added: List[LogRecord] = []
    budget = Counter(prev_counts)
    for record in curr:
        if budget[record.identity] > 0:
            budget[record.identity] -= 1
        else:
            added.append(record)

    removed: List[LogRecord] = []
    budget = Counter(curr_counts)
    for record in prev:
        if budget[record.identity] > 0:
            budget[record.identity] -= 1
        else:
            removed.append(record)

    unchanged = sum((prev_counts & curr_counts).values())
    return RecordDiff(added=added, removed=removed, unchanged_count=unchanged)


def compare_metrics(
    previous: Dict[str, float],
    current: Dict[str, float],
    max_regression_percent: Optional[float] = None,
) -> List[MetricComparison]:
    """
    Compare this run's metrics with the previous run's.

    A change is a regression only when it moves in the bad direction by
    strictly more than ``max_regression_percent``. A metric that grows from
    zero has no percentage and is a regression whenever a limit is set.

    Args:
        previous: Metrics of the previous run (may be empty)
        current: Metrics of this run
        max_regression_percent: Allowed change in percent, None to never flag

    Returns:
        One comparison per current metric, sorted by name
    """
    comparisons = []
    for name in sorted(current):
        value = current[name]
        prev = previous.get(name)
        if prev is None:
            comparisons.append(MetricComparison(name=name, previous=None, current=value))
            continue

        delta = value - prev
        percent = round(delta / prev * 100.0, 6) if prev != 0 else None

        regressed = False
        if max_regression_percent is not None and name not in NEUTRAL_METRICS:
            bad_delta = -delta if name in HIGHER_IS_BETTER else delta
            if percent is None:
                regressed = bad_delta > 0
            else:
                bad_percent = -percent if name in HIGHER_IS_BETTER else percent
                regressed = bad_percent > max_regression_percent

        comparisons.append(
            MetricComparison(
                name=name,
                previous=prev,
                current=value,
                delta=delta,
                percent_change=percent,
                regressed=regressed,
            )
        )
    return comparisons


def counted_records(records: Iterable[LogRecord]) -> List[LogRecord]:
    return [r for r in records if not r.placeholder and r.severity in COUNTED_SEVERITIES]


def evaluate_thresholds(
    job: JobConfig,
    analysis: AnalysisResult,
    comparisons: List[MetricComparison],
) -> List[str]:
    """
    Check a job's results against its configured thresholds.

    Returns:
        Human readable violations, empty when everything is within limits
    """
    thresholds = job.thresholds
    violations = []

    if thresholds.max_count is not None:
        count = len(counted_records(analysis.records))
        if count > thresholds.max_count:
            violations.append(f"{count} findings exceed the limit of {thresholds.max_count}")

    if thresholds.max_size_kb is not None:
        for record in analysis.records:
            if record.kind == "size" and record.value is not None and record.value > thresholds.max_size_kb:
                violations.append(
                    f"{record.message} is {record.value:.0f} KB, above the limit of {thresholds.max_size_kb} KB"
                )

    if thresholds.fail_on_codes:
        codes = set(thresholds.fail_on_codes)
        critical = [r for r in analysis.records if not r.placeholder and r.code in codes]
        if critical:
            found = sorted({r.code for r in critical})
            violations.append(f"{len(critical)} findings with critical codes: {', '.join(found)}")

    for comparison in comparisons:
        if comparison.regressed:
            change = (
                f"{comparison.percent_change:+.1f}%"
                if comparison.percent_change is not None
                else "from zero"
            )
            violations.append(
                f"{comparison.name} regressed {change} ({comparison.previous:g} -> {comparison.current:g}), "
                f"limit {thresholds.max_regression_percent:g}%"
            )

    if violations:
        logger.warning(f"[{job.name}] {len(violations)} threshold violations")
    return violations
