"""
Change detection and PR labeling.
"""

from .detector import (
    JobDecision,
    collect_changes,
    match_path,
    matches_filters,
    should_run_job,
)
from .labeler import compute_labels, render_label_comment, size_label

__all__ = [
    "JobDecision",
    "collect_changes",
    "match_path",
    "matches_filters",
    "should_run_job",
    "compute_labels",
    "render_label_comment",
    "size_label",
]
