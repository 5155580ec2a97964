"""
Pytest configuration and shared fixtures for the ciwatch test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the ciwatch project.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import List

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_pipeline_data():
    """Sample [pipeline] table for testing."""
    return {
        "general": {
            "workspace_dir": "workspace",
            "output_root_dir": "reports",
            "history_dir": "history",
            "max_history_runs": 5,
            "parse_cache_size": 128,
            "record_history_on": ["push", "schedule"],
        },
        "execution": {
            "default_timeout_seconds": 60,
            "max_attempts": 1,
            "retry_delay_seconds": 0.0,
            "graceful_shutdown_timeout": 1.0,
        },
        "storage": {"format": "parquet", "compression": "snappy"},
        "notifications": {
            "enabled": True,
            "repository": "octo/app",
            "slack_channel": "ci-alerts",
        },
    }


@pytest.fixture
def sample_jobs_config():
    """Sample jobs for testing."""
    return [
        {
            "name": "compiler-warnings",
            "kind": "warnings",
            "build_command": "printf 'Sources/App/View.swift:10:5: warning: unused variable x\\n'",
            "triggers": ["push", "pull_request"],
            "paths": ["**.swift"],
            "notify": ["summary"],
        },
        {
            "name": "markdown-lint",
            "kind": "lint",
            "build_command": "printf 'README.md:3 MD001/heading-increment Heading levels\\n'",
            "thresholds": {"fail_on_codes": ["MD001"]},
        },
        {
            "name": "binary-size",
            "kind": "sizes",
            "artifacts": ["app=build/App"],
            "thresholds": {"max_size_kb": 100},
        },
    ]


@pytest.fixture
def sample_rules_config():
    """Sample parsing rules for testing."""
    return [
        {
            "priority": 190,
            "name": "swift-warning",
            "record_kind": "warning",
            "category": "compiler",
            "match_type": "regex",
            "pattern": r"^(?P<file>[^:\s][^:]*\.swift):(?P<line>\d+):(?P<column>\d+): warning: (?P<message>.+)$",
            "severity": "warning",
            "job_kinds": ["warnings"],
        },
        {
            "priority": 200,
            "name": "swift-error",
            "record_kind": "error",
            "category": "compiler",
            "match_type": "regex",
            "pattern": r"^(?P<file>[^:\s][^:]*\.swift):(?P<line>\d+):(?P<column>\d+): error: (?P<message>.+)$",
            "severity": "error",
            "job_kinds": ["warnings"],
        },
        {
            "priority": 150,
            "name": "markdownlint",
            "record_kind": "lint",
            "category": "markdown",
            "match_type": "regex",
            "pattern": r"^(?P<file>[^:]+):(?P<line>\d+)(?::(?P<column>\d+))? (?P<code>MD\d+)/\S+ (?P<message>.*)$",
            "job_kinds": ["lint"],
        },
    ]


@pytest.fixture
def sample_labels_config():
    """Sample labels.toml document for testing."""
    return {
        "sizes": {"medium": 10, "large": 30},
        "labels": [
            {
                "name": "area/ui",
                "description": "UI changes that might require visual review",
                "patterns": ["*/ui/*", "*/view/*"],
                "require_patterns": ["*.swift"],
            },
            {
                "name": "area/documentation",
                "description": "Documentation updates",
                "patterns": ["*.md", "*/docs/*"],
            },
        ],
    }


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config_files(
    temp_dir, sample_pipeline_data, sample_jobs_config, sample_rules_config, sample_labels_config
):
    """Create temporary configuration files for testing."""
    import toml

    (temp_dir / "workspace").mkdir()

    config_file = temp_dir / "config.toml"
    config_data = {
        "paths": {
            "jobs_config": str(temp_dir / "jobs.toml"),
            "rules_config": str(temp_dir / "rules.toml"),
            "labels_config": str(temp_dir / "labels.toml"),
        },
        "pipeline": sample_pipeline_data,
    }
    with open(config_file, "w") as f:
        toml.dump(config_data, f)

    jobs_file = temp_dir / "jobs.toml"
    with open(jobs_file, "w") as f:
        toml.dump({"jobs": sample_jobs_config}, f)

    rules_file = temp_dir / "rules.toml"
    with open(rules_file, "w") as f:
        toml.dump({"rules": sample_rules_config}, f)

    labels_file = temp_dir / "labels.toml"
    with open(labels_file, "w") as f:
        toml.dump(sample_labels_config, f)

    return {
        "config": config_file,
        "jobs": jobs_file,
        "rules": rules_file,
        "labels": labels_file,
        "dir": temp_dir,
        "workspace": temp_dir / "workspace",
    }


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def make_record(message: str = "unused variable", file: str = "Sources/App/View.swift", **kwargs):
        """Create a LogRecord with sensible defaults."""
        from ciwatch.models.records import LogRecord

        fields = {"kind": "warning", "category": "compiler", "line": 1, "column": 1}
        fields.update(kwargs)
        return LogRecord(message=message, file=file, **fields)

    @staticmethod
    def make_job(name: str = "job", kind: str = "warnings", **kwargs):
        """Create a JobConfig."""
        from ciwatch.models.config import JobConfig

        return JobConfig(name=name, kind=kind, **kwargs)

    @staticmethod
    def make_rules(raw_rules: List[dict]):
        """Validate raw rule dicts into RuleConfig objects."""
        from ciwatch.config.validators import validate_rules_config

        return validate_rules_config(raw_rules)


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield

    from ciwatch.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)
