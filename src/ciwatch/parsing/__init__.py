"""
Extraction of structured data from logs, lock files and the file system.
"""

from .aggregate import group_counts, sum_by, top_values
from .lockfiles import (
    Dependency,
    parse_lockfile,
    parse_package_resolved,
    parse_podfile_lock,
)
from .rules import LogParser
from .sizes import format_size, measure_path_size, parse_artifact_spec

__all__ = [
    "Dependency",
    "LogParser",
    "format_size",
    "group_counts",
    "measure_path_size",
    "parse_artifact_spec",
    "parse_lockfile",
    "parse_package_resolved",
    "parse_podfile_lock",
    "sum_by",
    "top_values",
]
