"""
System interaction utilities.

This module provides the pipeline's interface to the operating system:

- Command execution with proper error handling and logging
- Build command preparation (placeholders and setup commands)
- Process tree termination for timed out or interrupted builds
- git helpers used by change detection and publishing
"""

# Command execution
from .commands import (
    prepare_build_command,
    prepare_command_with_setup,
    run_command,
    substitute,
)

# git
from .git import current_commit, parse_name_status, revision_range, run_git

# Process management
from .processes import terminate_process_tree

__all__ = [
    # Commands
    "prepare_build_command",
    "prepare_command_with_setup",
    "run_command",
    "substitute",
    # git
    "current_commit",
    "parse_name_status",
    "revision_range",
    "run_git",
    # Processes
    "terminate_process_tree",
]
