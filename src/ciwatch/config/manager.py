"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
implementing a singleton pattern to ensure configuration is loaded only once.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig, LabelsConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import (
    get_config_paths,
    load_jobs_config,
    load_labels_config,
    load_main_config,
    load_rules_config,
)
from .validators import (
    validate_jobs_config,
    validate_labels_config,
    validate_pipeline_config,
    validate_rules_config,
)

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

_CONFIG: Optional[AppConfig] = None

# Default location of the main configuration file: <repo>/conf/config.toml.
# Overridden by the CLI's --config option and by tests.
_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path.

    Args:
        config_path: Path to the main config.toml file

    Note:
        Any cached configuration is dropped so the next get_config()
        call loads from the new path.
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def clear_config_cache() -> None:
    """
    Clear the cached configuration, forcing a reload on next access.
    """
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(config_path: Path) -> AppConfig:
    """
    Load the complete application configuration from TOML files.

    Args:
        config_path: Path to the main config.toml file

    Returns:
        Fully validated AppConfig instance

    Raises:
        FileNotFoundError: If configuration files are missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If TOML files are malformed
        KeyError: If required configuration keys are missing
    """
    try:
        main_config_data = load_main_config(config_path)
        config_dir = config_path.parent

        config_paths = get_config_paths(main_config_data, config_dir)

        pipeline_config = validate_pipeline_config(
            main_config_data.get("pipeline", {}), base_dir=config_dir
        )

        jobs_config = validate_jobs_config(load_jobs_config(config_paths["jobs"]))
        rules_config = validate_rules_config(load_rules_config(config_paths["rules"]))

        if "labels" in config_paths:
            labels_config = validate_labels_config(load_labels_config(config_paths["labels"]))
        else:
            labels_config = LabelsConfig()

        app_config = AppConfig(
            pipeline=pipeline_config,
            jobs=jobs_config,
            rules=rules_config,
            labels=labels_config,
        )

        logger.info(
            f"Successfully loaded configuration with {len(jobs_config)} jobs, "
            f"{len(rules_config)} rules and {len(labels_config.rules)} labels"
        )
        return app_config

    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> AppConfig:
    """
    Get the global application configuration, loading it if necessary.

    Returns:
        The singleton AppConfig instance

    Raises:
        FileNotFoundError: If configuration files are missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If TOML files are malformed
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    """Check if configuration has been loaded and cached."""
    return _CONFIG is not None


def get_config_info() -> dict:
    """
    Get information about the current configuration state.

    Returns:
        Dictionary with configuration metadata
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "jobs_count": len(_CONFIG.jobs) if _CONFIG else 0,
        "rules_count": len(_CONFIG.rules) if _CONFIG else 0,
        "labels_count": len(_CONFIG.labels.rules) if _CONFIG else 0,
    }
