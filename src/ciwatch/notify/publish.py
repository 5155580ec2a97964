"""
Committing generated files to an auxiliary branch.

A temporary detached worktree keeps the user's checkout untouched: the
files are copied into it, committed as the Actions bot and force-pushed to
the branch.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from ..system.git import run_git
from ..validation import NotificationError

logger = logging.getLogger(__name__)

BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "github-actions[bot]@users.noreply.github.com"


def _git(args: List[str], cwd: Path) -> str:
    code, out, err = run_git(args, cwd)
    if code != 0:
        raise NotificationError(f"git {' '.join(args)} failed: {err.strip() or out.strip()}")
    return out


def publish_to_branch(
    paths: List[Path],
    branch: str,
    message: str,
    cwd: Path,
    push: bool = True,
    remote: str = "origin",
) -> Optional[str]:
    """
    Commit ``paths`` (relative layout kept under ``cwd``) to ``branch``.

    Args:
        paths: Files or directories to publish
        branch: Target branch name
        message: Commit message
        cwd: Repository root
        push: Push the commit to ``remote``
        remote: Remote name

    Returns:
        The new commit sha, or None when there was nothing to commit

    Raises:
        NotificationError: If a git step fails
    """
    cwd = Path(cwd).resolve()
    worktree = Path(tempfile.mkdtemp(prefix="ciwatch-publish-"))
    # git refuses to add a worktree into an existing directory with content
    worktree.rmdir()
    _git(["worktree", "add", "--detach", str(worktree)], cwd)
    try:
        for path in paths:
            source = Path(path)
            if not source.is_absolute():
                source = cwd / source
            if not source.exists():
                logger.warning(f"Nothing to publish at {source}")
                continue
            try:
                relative = source.resolve().relative_to(cwd)
            except ValueError:
                relative = Path(source.name)
            target = worktree / relative
            if source.is_dir():
                shutil.copytree(source, target, dirs_exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
            _git(["add", "--", str(relative)], worktree)

        if not _git(["status", "--porcelain"], worktree).strip():
            logger.info(f"No changes to publish to {branch}")
            return None

        _git(["-c", f"user.name={BOT_NAME}", "-c", f"user.email={BOT_EMAIL}", "commit", "-m", message], worktree)
        sha = _git(["rev-parse", "HEAD"], worktree).strip()
        if push:
            _git(["push", "-f", remote, f"HEAD:refs/heads/{branch}"], worktree)
            logger.info(f"Published {sha[:8]} to {remote}/{branch}")
        return sha
    finally:
        code, _, err = run_git(["worktree", "remove", "--force", str(worktree)], cwd)
        if code != 0:
            logger.warning(f"Could not remove worktree {worktree}: {err.strip()}")
