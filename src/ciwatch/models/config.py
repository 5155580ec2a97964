"""
Configuration data models.

This module contains all configuration-related data structures for the
pipeline settings, jobs, log parsing rules, PR labels and the aggregated
application configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config.storage_config import StorageConfig

JOB_KINDS = ["warnings", "timings", "sizes", "dependencies", "lint", "shaders", "freshness"]
NOTIFY_CHANNELS = ["summary", "pr_comment", "issue", "slack"]
MATCH_TYPES = ["regex", "contains", "prefix"]
SEVERITIES = ["info", "warning", "error"]


@dataclass
class NotificationConfig:
    """
    Settings for external notification channels, loaded from
    `[pipeline.notifications]`. Secrets are never stored in the config file,
    only the names of the environment variables holding them.
    """

    enabled: bool = True
    slack_webhook_env: str = "SLACK_WEBHOOK_URL"
    slack_channel: str = ""
    github_token_env: str = "GITHUB_TOKEN"
    github_api_url: str = "https://api.github.com"
    # "owner/name"; falls back to GITHUB_REPOSITORY when empty.
    repository: str = ""


@dataclass
class PipelineConfig:
    """
    Global pipeline behavior, loaded from `config.toml`.
    """

    # [pipeline.general]
    workspace_dir: Path
    output_root_dir: Path
    history_dir: Path
    max_history_runs: int = 50
    parse_cache_size: int = 4096
    default_branch: str = "main"
    record_history_on: List[str] = field(
        default_factory=lambda: ["push", "schedule", "workflow_dispatch"]
    )
    publish_branch: str = ""

    # [pipeline.execution]
    default_timeout_seconds: int = 1800
    max_attempts: int = 1
    retry_delay_seconds: float = 3.0
    graceful_shutdown_timeout: float = 5.0

    # [pipeline.storage]
    storage: StorageConfig = field(default_factory=StorageConfig)

    # [pipeline.notifications]
    notifications: NotificationConfig = field(default_factory=NotificationConfig)


@dataclass
class FreshnessConfig:
    """Staleness settings for jobs that regenerate reference artifacts."""

    directory: str = ""
    pattern: str = "*"
    max_age_days: int = 30
    publish_branch: str = ""


@dataclass
class ThresholdConfig:
    """Limits that turn a job's findings into a failing exit code."""

    max_count: Optional[int] = None
    max_size_kb: Optional[int] = None
    max_regression_percent: Optional[float] = None
    fail_on_codes: List[str] = field(default_factory=list)


@dataclass
class JobConfig:
    """
    Configuration for a single analysis job, loaded from `jobs.toml`.
    """

    # A unique name for the job (e.g., "compiler-warnings").
    name: str
    # Which analyzer processes the job's output.
    kind: str
    # Directory the commands run in, relative to the workspace.
    dir: str = "."
    # The command producing the log to analyze. May contain {source},
    # {target}, {output} and {workspace} placeholders.
    build_command: str = ""
    # An optional command to run before the build (e.g., 'pod install').
    setup_command: str = ""
    # An optional command run before the build to start from a clean state.
    clean_command: str = ""
    # Commands whose first output line describes the tool environment.
    environment_commands: List[str] = field(default_factory=list)
    # Events that trigger the job; empty means every event.
    triggers: List[str] = field(default_factory=list)
    paths: List[str] = field(default_factory=list)
    paths_ignore: List[str] = field(default_factory=list)
    # Regexes matched against added diff lines.
    content_patterns: List[str] = field(default_factory=list)
    timeout_seconds: Optional[int] = None
    max_attempts: Optional[int] = None
    # A failed build still produces a report when True.
    allow_failure: bool = True
    # Paths measured by size jobs; "name=path" or a bare path.
    artifacts: List[str] = field(default_factory=list)
    lockfiles: List[str] = field(default_factory=list)
    # Run once per dependency with {package} and {version} placeholders.
    scanner_command: str = ""
    # Glob patterns of files to compile per target (shader jobs).
    sources: List[str] = field(default_factory=list)
    targets: List[str] = field(default_factory=list)
    freshness: FreshnessConfig = field(default_factory=FreshnessConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    notify: List[str] = field(default_factory=lambda: ["summary"])


@dataclass
class RuleConfig:
    """
    Configuration for a log parsing rule, loaded from `rules.toml`.
    """

    # Priority level for the rule (higher numbers processed first).
    priority: int
    # Rule name, used in logs and reports.
    name: str
    # The record kind this rule produces ('warning', 'timing', 'lint', ...).
    record_kind: str
    # Category written onto produced records.
    category: str
    # The type of match to perform ('regex', 'contains', 'prefix').
    match_type: str
    # Regex rules may use the named groups file, line, column, code,
    # message and value.
    pattern: str
    severity: str = "warning"
    # Job kinds the rule applies to; empty means every kind.
    job_kinds: List[str] = field(default_factory=list)
    # Optional comment describing the rule.
    comment: str = ""


@dataclass
class LabelRule:
    """
    One area label, loaded from `labels.toml`.

    A file matches when any of `patterns` matches and, if `require_patterns`
    is non-empty, one of those matches too.
    """

    name: str
    description: str = ""
    patterns: List[str] = field(default_factory=list)
    require_patterns: List[str] = field(default_factory=list)


@dataclass
class SizeLabelConfig:
    """File-count bounds for the size labels."""

    medium: int = 10
    large: int = 30


@dataclass
class LabelsConfig:
    """All PR labeling settings."""

    rules: List[LabelRule] = field(default_factory=list)
    sizes: SizeLabelConfig = field(default_factory=SizeLabelConfig)


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    # The global pipeline configuration.
    pipeline: PipelineConfig
    # All configured jobs, in file order.
    jobs: List[JobConfig]
    # All parsing rules, sorted by priority.
    rules: List[RuleConfig]
    labels: LabelsConfig = field(default_factory=LabelsConfig)

    def get_job(self, name: str) -> Optional[JobConfig]:
        """Return the job called ``name`` or None."""
        for job in self.jobs:
            if job.name == name:
                return job
        return None
