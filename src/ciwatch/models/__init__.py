"""
Data models for the ciwatch package.

This module contains all data structures used throughout the application,
organized by their purpose and scope.
"""

# Configuration models
from .config import (
    AppConfig,
    FreshnessConfig,
    JobConfig,
    LabelRule,
    LabelsConfig,
    NotificationConfig,
    PipelineConfig,
    RuleConfig,
    SizeLabelConfig,
    ThresholdConfig,
)

# Record models
from .records import (
    ChangedFile,
    ChangeSet,
    LogRecord,
    format_record,
    placeholder_record,
)

# Runtime models
from .runtime import (
    BuildResult,
    EventContext,
    RunContext,
    RunPaths,
)

# Result models
from .results import (
    AnalysisResult,
    JobReport,
    MetricComparison,
    PipelineOutcome,
    RecordDiff,
)

__all__ = [
    # Configuration models
    "AppConfig",
    "FreshnessConfig",
    "JobConfig",
    "LabelRule",
    "LabelsConfig",
    "NotificationConfig",
    "PipelineConfig",
    "RuleConfig",
    "SizeLabelConfig",
    "ThresholdConfig",
    # Record models
    "ChangedFile",
    "ChangeSet",
    "LogRecord",
    "format_record",
    "placeholder_record",
    # Runtime models
    "BuildResult",
    "EventContext",
    "RunContext",
    "RunPaths",
    # Result models
    "AnalysisResult",
    "JobReport",
    "MetricComparison",
    "PipelineOutcome",
    "RecordDiff",
]
