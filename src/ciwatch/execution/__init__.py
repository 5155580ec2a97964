"""
Build execution for pipeline jobs.
"""

from .runner import BuildExecutor, capture_environment, run_clean_command

__all__ = [
    "BuildExecutor",
    "capture_environment",
    "run_clean_command",
]
