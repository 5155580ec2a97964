"""
Configuration validation utilities.

This module provides specialized validation functions for the different
configuration documents: pipeline settings, jobs, parsing rules and labels.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.config import (
    JOB_KINDS,
    MATCH_TYPES,
    NOTIFY_CHANNELS,
    SEVERITIES,
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
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_command,
    validate_enum_choice,
    validate_job_name,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)

KNOWN_EVENTS = [
    "push",
    "pull_request",
    "pull_request_target",
    "schedule",
    "workflow_dispatch",
    "local",
]


def _resolve_dir(value: Any, base_dir: Optional[Path], field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty path", field_name=field_name, value=value
        )
    path = Path(value.strip()).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def validate_pipeline_config(
    pipeline_data: Dict[str, Any], base_dir: Optional[Path] = None
) -> PipelineConfig:
    """
    Validate and create a PipelineConfig from raw configuration data.

    Relative directories are resolved against ``base_dir`` (the directory
    holding config.toml).

    Args:
        pipeline_data: Raw ``[pipeline]`` table from TOML
        base_dir: Directory relative paths are resolved against

    Returns:
        Validated PipelineConfig instance

    Raises:
        ValidationError: If validation fails
    """
    general = pipeline_data.get("general", {})
    execution = pipeline_data.get("execution", {})
    notifications = pipeline_data.get("notifications", {})

    try:
        workspace_dir = _resolve_dir(
            general.get("workspace_dir", "."), base_dir, "pipeline.general.workspace_dir"
        )
        output_root_dir = _resolve_dir(
            general.get("output_root_dir", "reports"), base_dir, "pipeline.general.output_root_dir"
        )
        history_dir = _resolve_dir(
            general.get("history_dir", "history"), base_dir, "pipeline.general.history_dir"
        )

        max_history_runs = validate_positive_integer(
            general.get("max_history_runs", 50),
            min_value=1,
            max_value=10000,
            field_name="pipeline.general.max_history_runs",
        )
        parse_cache_size = validate_positive_integer(
            general.get("parse_cache_size", 4096),
            min_value=0,
            max_value=1_000_000,
            field_name="pipeline.general.parse_cache_size",
        )

        record_history_on = validate_string_list(
            general.get("record_history_on", ["push", "schedule", "workflow_dispatch"]),
            field_name="pipeline.general.record_history_on",
        )
        for event in record_history_on:
            validate_enum_choice(
                event, KNOWN_EVENTS, field_name="pipeline.general.record_history_on"
            )

        default_timeout_seconds = validate_positive_integer(
            execution.get("default_timeout_seconds", 1800),
            min_value=1,
            max_value=86400,
            field_name="pipeline.execution.default_timeout_seconds",
        )
        max_attempts = validate_positive_integer(
            execution.get("max_attempts", 1),
            min_value=1,
            max_value=10,
            field_name="pipeline.execution.max_attempts",
        )
        retry_delay_seconds = validate_positive_float(
            execution.get("retry_delay_seconds", 3.0),
            min_value=0.0,
            max_value=600.0,
            field_name="pipeline.execution.retry_delay_seconds",
        )
        graceful_shutdown_timeout = validate_positive_float(
            execution.get("graceful_shutdown_timeout", 5.0),
            min_value=0.1,
            max_value=300.0,
            field_name="pipeline.execution.graceful_shutdown_timeout",
        )

        try:
            storage = StorageConfig.from_dict(pipeline_data.get("storage", {}))
        except ValueError as e:
            raise ValidationError(str(e), field_name="pipeline.storage")

        notification_config = NotificationConfig(
            enabled=validate_boolean(
                notifications.get("enabled", True), field_name="pipeline.notifications.enabled"
            ),
            slack_webhook_env=str(notifications.get("slack_webhook_env", "SLACK_WEBHOOK_URL")),
            slack_channel=str(notifications.get("slack_channel", "")),
            github_token_env=str(notifications.get("github_token_env", "GITHUB_TOKEN")),
            github_api_url=str(
                notifications.get("github_api_url", "https://api.github.com")
            ).rstrip("/"),
            repository=str(notifications.get("repository", "")),
        )

        return PipelineConfig(
            workspace_dir=workspace_dir,
            output_root_dir=output_root_dir,
            history_dir=history_dir,
            max_history_runs=max_history_runs,
            parse_cache_size=parse_cache_size,
            default_branch=str(general.get("default_branch", "main")),
            record_history_on=record_history_on,
            publish_branch=str(general.get("publish_branch", "")),
            default_timeout_seconds=default_timeout_seconds,
            max_attempts=max_attempts,
            retry_delay_seconds=retry_delay_seconds,
            graceful_shutdown_timeout=graceful_shutdown_timeout,
            storage=storage,
            notifications=notification_config,
        )

    except ValidationError as e:
        logger.error(f"Pipeline configuration validation failed: {e}")
        raise


def _validate_thresholds(data: Dict[str, Any], prefix: str) -> ThresholdConfig:
    max_count = data.get("max_count")
    if max_count is not None:
        max_count = validate_positive_integer(
            max_count, min_value=0, field_name=f"{prefix}.max_count"
        )
    max_size_kb = data.get("max_size_kb")
    if max_size_kb is not None:
        max_size_kb = validate_positive_integer(
            max_size_kb, min_value=1, field_name=f"{prefix}.max_size_kb"
        )
    max_regression = data.get("max_regression_percent")
    if max_regression is not None:
        max_regression = validate_positive_float(
            max_regression, min_value=0.0, field_name=f"{prefix}.max_regression_percent"
        )
    return ThresholdConfig(
        max_count=max_count,
        max_size_kb=max_size_kb,
        max_regression_percent=max_regression,
        fail_on_codes=validate_string_list(
            data.get("fail_on_codes", []), field_name=f"{prefix}.fail_on_codes"
        ),
    )


def _validate_freshness(data: Dict[str, Any], prefix: str) -> FreshnessConfig:
    return FreshnessConfig(
        directory=str(data.get("directory", "")),
        pattern=str(data.get("pattern", "*")) or "*",
        max_age_days=validate_positive_integer(
            data.get("max_age_days", 30), min_value=0, field_name=f"{prefix}.max_age_days"
        ),
        publish_branch=str(data.get("publish_branch", "")),
    )


def validate_jobs_config(jobs_data: List[Dict[str, Any]]) -> List[JobConfig]:
    """
    Validate and create JobConfig instances from raw configuration data.

    Args:
        jobs_data: List of raw job configurations from TOML

    Returns:
        List of validated JobConfig instances, in file order

    Raises:
        ValidationError: If validation fails
    """
    jobs_config = []
    existing_job_names: List[str] = []

    for i, job_data in enumerate(jobs_data):
        prefix = f"jobs[{i}]"
        try:
            name = validate_job_name(
                job_data.get("name", ""),
                existing_names=existing_job_names,
                field_name=f"{prefix}.name",
            )
            existing_job_names.append(name)

            kind = validate_enum_choice(
                job_data.get("kind", ""), JOB_KINDS, field_name=f"{prefix}.kind"
            )

            job_dir = str(job_data.get("dir", ".")).strip() or "."

            build_command = job_data.get("build_command", "")
            if build_command:
                build_command = validate_command(build_command, field_name=f"{prefix}.build_command")
            elif kind in ("warnings", "timings", "lint", "shaders"):
                raise ValidationError(
                    f"{prefix}.build_command is required for '{kind}' jobs",
                    field_name=f"{prefix}.build_command",
                )

            setup_command = job_data.get("setup_command", "")
            if setup_command:
                setup_command = validate_command(setup_command, field_name=f"{prefix}.setup_command")
            clean_command = job_data.get("clean_command", "")
            if clean_command:
                clean_command = validate_command(clean_command, field_name=f"{prefix}.clean_command")

            triggers = validate_string_list(job_data.get("triggers", []), field_name=f"{prefix}.triggers")
            for event in triggers:
                validate_enum_choice(event, KNOWN_EVENTS, field_name=f"{prefix}.triggers")

            content_patterns = validate_string_list(
                job_data.get("content_patterns", []), field_name=f"{prefix}.content_patterns"
            )
            for pattern in content_patterns:
                validate_regex_pattern(pattern, field_name=f"{prefix}.content_patterns")

            timeout_seconds = job_data.get("timeout_seconds")
            if timeout_seconds is not None:
                timeout_seconds = validate_positive_integer(
                    timeout_seconds, min_value=1, max_value=86400, field_name=f"{prefix}.timeout_seconds"
                )
            max_attempts = job_data.get("max_attempts")
            if max_attempts is not None:
                max_attempts = validate_positive_integer(
                    max_attempts, min_value=1, max_value=10, field_name=f"{prefix}.max_attempts"
                )

            notify = validate_string_list(
                job_data.get("notify", ["summary"]), field_name=f"{prefix}.notify"
            )
            for channel in notify:
                validate_enum_choice(channel, NOTIFY_CHANNELS, field_name=f"{prefix}.notify")

            job = JobConfig(
                name=name,
                kind=kind,
                dir=job_dir,
                build_command=build_command,
                setup_command=setup_command,
                clean_command=clean_command,
                environment_commands=validate_string_list(
                    job_data.get("environment_commands", []),
                    field_name=f"{prefix}.environment_commands",
                ),
                triggers=triggers,
                paths=validate_string_list(job_data.get("paths", []), field_name=f"{prefix}.paths"),
                paths_ignore=validate_string_list(
                    job_data.get("paths_ignore", []), field_name=f"{prefix}.paths_ignore"
                ),
                content_patterns=content_patterns,
                timeout_seconds=timeout_seconds,
                max_attempts=max_attempts,
                allow_failure=validate_boolean(
                    job_data.get("allow_failure", True), field_name=f"{prefix}.allow_failure"
                ),
                artifacts=validate_string_list(
                    job_data.get("artifacts", []), field_name=f"{prefix}.artifacts"
                ),
                lockfiles=validate_string_list(
                    job_data.get("lockfiles", []), field_name=f"{prefix}.lockfiles"
                ),
                scanner_command=str(job_data.get("scanner_command", "")).strip(),
                sources=validate_string_list(job_data.get("sources", []), field_name=f"{prefix}.sources"),
                targets=validate_string_list(job_data.get("targets", []), field_name=f"{prefix}.targets"),
                freshness=_validate_freshness(job_data.get("freshness", {}), f"{prefix}.freshness"),
                thresholds=_validate_thresholds(job_data.get("thresholds", {}), f"{prefix}.thresholds"),
                notify=notify,
            )

            if kind == "sizes" and not job.artifacts:
                raise ValidationError(
                    f"{prefix}.artifacts cannot be empty for 'sizes' jobs",
                    field_name=f"{prefix}.artifacts",
                )
            if kind == "dependencies" and not job.lockfiles:
                raise ValidationError(
                    f"{prefix}.lockfiles cannot be empty for 'dependencies' jobs",
                    field_name=f"{prefix}.lockfiles",
                )
            if kind == "shaders" and not (job.sources and job.targets):
                raise ValidationError(
                    f"{prefix}: 'shaders' jobs need both sources and targets",
                    field_name=f"{prefix}.targets",
                )
            if kind == "freshness" and not job.freshness.directory:
                raise ValidationError(
                    f"{prefix}.freshness.directory cannot be empty for 'freshness' jobs",
                    field_name=f"{prefix}.freshness.directory",
                )

            jobs_config.append(job)

        except ValidationError as e:
            logger.error(f"Job configuration validation failed: {e}")
            raise

    if not jobs_config:
        raise ValidationError("No valid jobs found in configuration")

    return jobs_config


def validate_rules_config(rules_data: List[Dict[str, Any]]) -> List[RuleConfig]:
    """
    Validate and create RuleConfig instances from raw configuration data.

    Args:
        rules_data: List of raw rule configurations from TOML

    Returns:
        List of validated RuleConfig instances, sorted by priority (highest first)

    Raises:
        ValidationError: If validation fails
    """
    rules_config = []

    for i, rule_data in enumerate(rules_data):
        prefix = f"rules[{i}]"
        try:
            priority = validate_positive_integer(
                rule_data.get("priority", 0),
                min_value=1,
                max_value=10000,
                field_name=f"{prefix}.priority",
            )

            name = str(rule_data.get("name", "")).strip() or f"rule-{i}"

            record_kind = str(rule_data.get("record_kind", "")).strip()
            if not record_kind:
                raise ValidationError(f"{prefix}.record_kind cannot be empty")

            category = str(rule_data.get("category", "")).strip()
            if not category:
                raise ValidationError(f"{prefix}.category cannot be empty")

            match_type = validate_enum_choice(
                rule_data.get("match_type", ""),
                valid_choices=MATCH_TYPES,
                field_name=f"{prefix}.match_type",
            )

            pattern = rule_data.get("pattern")
            if not isinstance(pattern, str) or not pattern:
                raise ValidationError(
                    f"{prefix}: match_type '{match_type}' requires a non-empty string pattern"
                )
            if match_type == "regex":
                validate_regex_pattern(pattern, field_name=f"{prefix}.pattern")

            severity = validate_enum_choice(
                rule_data.get("severity", "warning"),
                valid_choices=SEVERITIES,
                field_name=f"{prefix}.severity",
            )

            job_kinds = validate_string_list(
                rule_data.get("job_kinds", []), field_name=f"{prefix}.job_kinds"
            )
            for job_kind in job_kinds:
                validate_enum_choice(job_kind, JOB_KINDS, field_name=f"{prefix}.job_kinds")

            rules_config.append(
                RuleConfig(
                    priority=priority,
                    name=name,
                    record_kind=record_kind,
                    category=category,
                    match_type=match_type,
                    pattern=pattern,
                    severity=severity,
                    job_kinds=job_kinds,
                    comment=str(rule_data.get("comment", "")),
                )
            )

        except ValidationError as e:
            logger.error(f"Rule configuration validation failed: {e}")
            raise

    # Sort rules by priority (highest first); sorted() is stable so equal
    # priorities keep file order.
    rules_config = sorted(rules_config, key=lambda r: r.priority, reverse=True)
    return rules_config


def validate_labels_config(labels_data: Dict[str, Any]) -> LabelsConfig:
    """
    Validate the PR labeling configuration.

    Args:
        labels_data: Parsed labels.toml document

    Returns:
        Validated LabelsConfig instance

    Raises:
        ValidationError: If validation fails
    """
    rules = []
    existing_names: List[str] = []

    for i, label_data in enumerate(labels_data.get("labels", [])):
        prefix = f"labels[{i}]"
        name = str(label_data.get("name", "")).strip()
        if not name:
            raise ValidationError(f"{prefix}.name cannot be empty", field_name=f"{prefix}.name")
        if name in existing_names:
            raise ValidationError(
                f"{prefix}.name must be unique, '{name}' already exists",
                field_name=f"{prefix}.name",
                value=name,
            )
        existing_names.append(name)
        rules.append(
            LabelRule(
                name=name,
                description=str(label_data.get("description", "")),
                patterns=validate_string_list(
                    label_data.get("patterns", []), field_name=f"{prefix}.patterns", allow_empty=False
                ),
                require_patterns=validate_string_list(
                    label_data.get("require_patterns", []), field_name=f"{prefix}.require_patterns"
                ),
            )
        )

    sizes_data = labels_data.get("sizes", {})
    medium = validate_positive_integer(
        sizes_data.get("medium", 10), min_value=1, field_name="sizes.medium"
    )
    large = validate_positive_integer(
        sizes_data.get("large", 30), min_value=1, field_name="sizes.large"
    )
    if large <= medium:
        raise ValidationError(
            f"sizes.large ({large}) must be greater than sizes.medium ({medium})",
            field_name="sizes.large",
            value=large,
        )

    return LabelsConfig(rules=rules, sizes=SizeLabelConfig(medium=medium, large=large))
