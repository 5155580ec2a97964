"""
Thin wrappers around the git command line.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..models.records import ChangedFile
from .commands import run_command

logger = logging.getLogger(__name__)


def run_git(args: List[str], cwd: Path, timeout: Optional[float] = 120) -> Tuple[int, str, str]:
    """Run ``git <args>`` in ``cwd`` and return (code, stdout, stderr)."""
    return run_command(["git"] + list(args), cwd=cwd, timeout=timeout)


def revision_range(base: str, head: str) -> str:
    """The three-dot range used for PR style diffs (changes on head since the merge base)."""
    return f"{base}...{head}"


def parse_name_status(output: str) -> List[ChangedFile]:
    """
    Parse ``git diff --name-status`` output.

    Renames and copies (``R100\\told\\tnew``) are reported under their new
    path.

    Args:
        output: Raw command output

    Returns:
        Changed files in output order
    """
    files = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 2:
            logger.debug(f"Ignoring malformed name-status line: {line!r}")
            continue
        status = parts[0][:1]
        files.append(ChangedFile(status=status, path=parts[-1]))
    return files


def current_commit(cwd: Path) -> str:
    """Return the HEAD commit SHA, or an empty string outside a repository."""
    code, out, err = run_git(["rev-parse", "HEAD"], cwd)
    if code != 0:
        logger.debug(f"git rev-parse HEAD failed: {err.strip()}")
        return ""
    return out.strip()
