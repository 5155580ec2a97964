"""
Change detection: decide whether a job has anything to look at.

A job runs when the triggering event is one of its triggers and the diff
between base and head touches its paths (and, optionally, adds a line
matching one of its content patterns). Scheduled and manually dispatched
runs skip the path filters entirely.
"""

import functools
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..models.config import JobConfig
from ..models.records import ChangeSet
from ..models.runtime import EventContext
from ..system.git import parse_name_status, revision_range, run_git

logger = logging.getLogger(__name__)

# Events that always run every triggered job regardless of what changed.
UNFILTERED_EVENTS = ("schedule", "workflow_dispatch")


@dataclass
class JobDecision:
    """Whether a job runs, and why."""

    run: bool
    reason: str

    def __bool__(self) -> bool:
        return self.run


def collect_changes(base: str, head: str, cwd: Path) -> ChangeSet:
    """
    Read the changed files and the zero-context diff between two revisions.

    Errors (no repository, unknown revision, missing git) are logged and an
    empty change set is returned.

    Args:
        base: Base revision (e.g. ``origin/main``)
        head: Head revision (e.g. ``HEAD``)
        cwd: Repository directory

    Returns:
        ChangeSet with files and diff text
    """
    rev_range = revision_range(base, head)

    code, out, err = run_git(["diff", "--name-status", rev_range], cwd)
    if code != 0:
        logger.warning(f"Could not list changes for {rev_range}: {err.strip() or 'git failed'}")
        return ChangeSet(base=base, head=head)
    files = parse_name_status(out)

    code, diff_text, err = run_git(["diff", "--unified=0", rev_range], cwd)
    if code != 0:
        logger.warning(f"Could not read diff for {rev_range}: {err.strip() or 'git failed'}")
        diff_text = ""

    logger.info(f"{len(files)} files changed in {rev_range}")
    return ChangeSet(files=files, diff_text=diff_text, base=base, head=head)


@functools.lru_cache(maxsize=512)
def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """
    Translate a CI path filter into a compiled regex.

    ``*`` matches within one path segment, ``**`` matches across segments
    and a leading or inner ``**/`` also matches zero directories.
    """
    i = 0
    out = []
    n = len(pattern)
    while i < n:
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        elif pattern[i] == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(pattern[i]))
                i += 1
            else:
                body = pattern[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def match_path(path: str, pattern: str) -> bool:
    """
    Check a repository-relative path against a CI path filter.

    Examples:
        >>> match_path("Sources/App/View.swift", "**.swift")
        True
        >>> match_path("docs/x/y.md", "docs/*.md")
        False
    """
    return _glob_to_regex(pattern).match(path) is not None


def matches_filters(path: str, patterns: List[str]) -> bool:
    """
    Evaluate an ordered filter list where ``!pattern`` entries exclude.

    The last matching entry decides.
    """
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if match_path(path, pattern[1:]):
                matched = False
        elif match_path(path, pattern):
            matched = True
    return matched


def _path_selected(path: str, job: JobConfig) -> bool:
    if job.paths and not matches_filters(path, job.paths):
        return False
    if job.paths_ignore and matches_filters(path, job.paths_ignore):
        return False
    return True


def should_run_job(
    job: JobConfig,
    event: EventContext,
    changes: Optional[ChangeSet],
    force: bool = False,
) -> JobDecision:
    """
    Decide whether ``job`` runs for this event and change set.

    Args:
        job: The job configuration
        event: The triggering event
        changes: Changes between base and head, None when unknown
        force: Run regardless of triggers and filters

    Returns:
        JobDecision with a human readable reason
    """
    if force:
        return JobDecision(True, "forced")

    if job.triggers and event.event_name not in job.triggers:
        return JobDecision(False, f"event '{event.event_name}' is not a trigger ({', '.join(job.triggers)})")

    if event.event_name in UNFILTERED_EVENTS:
        return JobDecision(True, f"'{event.event_name}' runs bypass path filters")

    has_filters = bool(job.paths or job.paths_ignore or job.content_patterns)
    if changes is None:
        return JobDecision(True, "no change information available")
    if not has_filters:
        return JobDecision(True, "job has no path filters")

    selected = [p for p in changes.paths if _path_selected(p, job)]
    if not selected:
        return JobDecision(False, "no changed file matches the job's paths")

    if job.content_patterns:
        regexes = [re.compile(p) for p in job.content_patterns]
        for line in changes.added_lines():
            if any(r.search(line) for r in regexes):
                return JobDecision(True, f"{len(selected)} matching files with matching content")
        return JobDecision(False, "no added line matches the job's content patterns")

    return JobDecision(True, f"{len(selected)} changed files match the job's paths")
