"""
ciwatch: CI orchestration and reporting pipeline.

This package runs configured analysis jobs around a project's build, turns
their output into structured records, compares each run with the previous
one and reports the results to the CI, GitHub and Slack.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Command execution, process trees and git
- changes: Change detection and PR labeling
- execution: Build execution with timeouts and retries
- parsing: Rule-driven log parsing, lock files and sizes
- analysis: One analyzer per job kind
- storage: Job history (records and metric trends)
- reporting: Diffs, thresholds, markdown and charts
- notify: Step summaries, GitHub, Slack and branch publishing
- orchestration: The per-job pipeline
- cli: Command-line interface

Usage:
    From command line:
        ciwatch run --event pull_request --base origin/main

    Programmatically:
        from ciwatch import PipelineRunner, EventContext, get_config
        runner = PipelineRunner(get_config(), EventContext.from_environment(), Path("reports/run"))
        outcome = runner.run()
"""

# Main interfaces (config must be imported before the models)
from .config import get_config, clear_config_cache, set_config_path
from .orchestration import PipelineRunner
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    EventContext,
    JobConfig,
    JobReport,
    LogRecord,
    PipelineConfig,
    PipelineOutcome,
    RuleConfig,
)

# Validation utilities
from .validation import (
    PipelineError,
    ValidationError,
    validate_enum_choice,
    validate_positive_integer,
    validate_regex_pattern,
)

# Parsing and change detection
from .changes import compute_labels, match_path, should_run_job
from .parsing import LogParser

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "PipelineRunner",
    "main_cli",
    # Models
    "AppConfig",
    "EventContext",
    "JobConfig",
    "JobReport",
    "LogRecord",
    "PipelineConfig",
    "PipelineOutcome",
    "RuleConfig",
    # Validation
    "PipelineError",
    "ValidationError",
    "validate_enum_choice",
    "validate_positive_integer",
    "validate_regex_pattern",
    # Parsing and change detection
    "LogParser",
    "compute_labels",
    "match_path",
    "should_run_job",
]
