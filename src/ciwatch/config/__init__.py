"""
Configuration management for the ciwatch package.

This module provides a clean interface for loading, validating, and accessing
configuration data from TOML files with singleton pattern management.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import (
    get_config_paths,
    load_jobs_config,
    load_labels_config,
    load_main_config,
    load_rules_config,
    load_toml_file,
)
from .validators import (
    validate_jobs_config,
    validate_labels_config,
    validate_pipeline_config,
    validate_rules_config,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "load_jobs_config",
    "load_rules_config",
    "load_labels_config",
    "get_config_paths",
    "validate_pipeline_config",
    "validate_jobs_config",
    "validate_rules_config",
    "validate_labels_config",
]
