"""
Pipeline results data models.

This module defines the data structures produced while a job is analyzed,
compared with history and reported, plus the aggregated outcome of a whole
pipeline run.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .records import LogRecord
from .runtime import BuildResult

STATUS_SUCCESS = "success"
STATUS_WARNING = "warning"
STATUS_FAILURE = "failure"
STATUS_SKIPPED = "skipped"


@dataclass
class AnalysisResult:
    """
    What an analyzer extracted from a job's output.
    """

    records: List[LogRecord] = field(default_factory=list)
    # Numeric metrics recorded in the trend history.
    metrics: Dict[str, float] = field(default_factory=dict)
    # Tool name -> version line.
    environment: Dict[str, str] = field(default_factory=dict)
    # Free-form lines shown in the report (e.g. slowest functions).
    notes: List[str] = field(default_factory=list)
    # Extra files written by the analyzer.
    artifacts: List[str] = field(default_factory=list)

    @property
    def real_records(self) -> List[LogRecord]:
        """Records excluding placeholders."""
        return [r for r in self.records if not r.placeholder]


@dataclass
class RecordDiff:
    """Records that appeared or disappeared since the previous run."""

    added: List[LogRecord] = field(default_factory=list)
    removed: List[LogRecord] = field(default_factory=list)
    unchanged_count: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class MetricComparison:
    """A metric compared with its value in the previous recorded run."""

    name: str
    previous: Optional[float]
    current: float
    delta: Optional[float] = None
    percent_change: Optional[float] = None
    regressed: bool = False


@dataclass
class JobReport:
    """
    Everything known about one job after the pipeline processed it.
    """

    job_name: str
    kind: str
    status: str
    build_result: Optional[BuildResult] = None
    analysis: AnalysisResult = field(default_factory=AnalysisResult)
    diff: RecordDiff = field(default_factory=RecordDiff)
    comparisons: List[MetricComparison] = field(default_factory=list)
    violations: List[str] = field(default_factory=list)
    markdown: str = ""
    skipped_reason: str = ""


@dataclass
class PipelineOutcome:
    """All job reports of a run and the resulting process exit code."""

    reports: List[JobReport] = field(default_factory=list)
    exit_code: int = 0

    def report_for(self, job_name: str) -> Optional[JobReport]:
        for report in self.reports:
            if report.job_name == job_name:
                return report
        return None
