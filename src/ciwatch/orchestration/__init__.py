"""
Pipeline orchestration.

The PipelineRunner coordinates change detection, builds, analysis, history,
reporting and notifications for every configured job.
"""

from .artifacts import ArtifactWriter
from .notifications import NotificationDispatcher
from .pipeline import PipelineRunner

__all__ = [
    "ArtifactWriter",
    "NotificationDispatcher",
    "PipelineRunner",
]
