"""
Validation and error handling for the ciwatch package.

This module provides input validation for configuration files and CLI
arguments, plus consistent error reporting across the pipeline.
"""

from .exceptions import (
    ErrorSeverity,
    NotificationError,
    PipelineError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_notification_error,
    handle_subprocess_error,
)

from .strategies import simple_retry

from .validators import (
    validate_boolean,
    validate_command,
    validate_enum_choice,
    validate_job_name,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)

__all__ = [
    # Exceptions and handlers
    "ErrorSeverity",
    "NotificationError",
    "PipelineError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_notification_error",
    "handle_subprocess_error",
    # Retry
    "simple_retry",
    # Validators
    "validate_boolean",
    "validate_command",
    "validate_enum_choice",
    "validate_job_name",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_regex_pattern",
    "validate_string_list",
]
