"""
Runtime data models.

This module contains data structures used during the execution of a pipeline
run: the triggering event, generated paths, per-job context and the outcome
of the external build.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .config import JobConfig

logger = logging.getLogger(__name__)


@dataclass
class EventContext:
    """
    Describes what triggered the run (push, pull_request, schedule, ...).
    """

    event_name: str = "local"
    sha: str = ""
    ref_name: str = ""
    pr_number: Optional[int] = None
    repository: str = ""

    @property
    def is_pull_request(self) -> bool:
        return self.pr_number is not None

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "EventContext":
        """
        Build the context from the variables a GitHub Actions runner exports.

        The pull request number is read from the event payload file
        (``GITHUB_EVENT_PATH``) when present, otherwise from a
        ``refs/pull/<n>/merge`` ref.

        Args:
            env: Environment mapping, defaults to ``os.environ``

        Returns:
            EventContext, with ``event_name`` "local" outside of CI
        """
        env = os.environ if env is None else env
        pr_number = None

        event_path = env.get("GITHUB_EVENT_PATH")
        if event_path and os.path.isfile(event_path):
            try:
                with open(event_path, "r", encoding="utf-8") as f:
                    payload: Dict[str, Any] = json.load(f)
                pr = payload.get("pull_request") or {}
                number = pr.get("number") or payload.get("number")
                if number is not None:
                    pr_number = int(number)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read event payload {event_path}: {e}")

        ref = env.get("GITHUB_REF", "")
        if pr_number is None and ref.startswith("refs/pull/"):
            parts = ref.split("/")
            if len(parts) > 2 and parts[2].isdigit():
                pr_number = int(parts[2])

        return cls(
            event_name=env.get("GITHUB_EVENT_NAME", "local"),
            sha=env.get("GITHUB_SHA", ""),
            ref_name=env.get("GITHUB_REF_NAME", ""),
            pr_number=pr_number,
            repository=env.get("GITHUB_REPOSITORY", ""),
        )


@dataclass
class RunPaths:
    """
    A container for all generated file paths for a single job run.
    """

    # Directory holding everything the job produced.
    output_dir: Path
    # Combined stdout/stderr of the build command.
    build_log: Path
    # The rendered markdown report.
    report_markdown: Path
    # Records extracted in this run (JSON).
    records_file: Path
    # Environment and run metadata (JSON).
    metadata_file: Path

    @classmethod
    def for_job(cls, output_dir: Path) -> "RunPaths":
        return cls(
            output_dir=output_dir,
            build_log=output_dir / "build.log",
            report_markdown=output_dir / "report.md",
            records_file=output_dir / "records.json",
            metadata_file=output_dir / "metadata.json",
        )


@dataclass
class RunContext:
    """
    Encapsulates everything a single job run needs.
    """

    job: JobConfig
    run_id: str
    timestamp_str: str
    # Directory the job's commands run in.
    workspace: Path
    event: EventContext
    paths: RunPaths
    placeholders: Dict[str, str] = field(default_factory=dict)


@dataclass
class BuildResult:
    """Outcome of running a job's build command."""

    command: str
    exit_code: int
    duration_seconds: float
    log_path: Path
    attempts: int = 1
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out
