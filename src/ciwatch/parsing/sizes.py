"""
On-disk size measurement for build artifacts.
"""

import logging
import math
import os
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def _file_kb(path: str) -> int:
    return math.ceil(os.lstat(path).st_size / 1024)


def measure_path_size(path: Path) -> Optional[int]:
    """
    Measure a file or directory in kilobytes, like ``du -sk``.

    Each file is rounded up to a whole kilobyte; directories are summed
    recursively without following symlinks.

    Args:
        path: File or directory (an app bundle, a framework, ...)

    Returns:
        Size in KB, or None if the path does not exist
    """
    if not os.path.lexists(path):
        return None
    if not path.is_dir() or path.is_symlink():
        return _file_kb(str(path))

    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += _file_kb(os.path.join(root, name))
            except OSError as e:
                logger.debug(f"Cannot stat {os.path.join(root, name)}: {e}")
    return total


def parse_artifact_spec(spec: str) -> Tuple[str, str]:
    """
    Split an artifact entry into (name, path).

    ``"app=build/App.app"`` names the artifact explicitly; a bare path is
    named after its last component.
    """
    if "=" in spec:
        name, path = spec.split("=", 1)
        return name.strip(), path.strip()
    return Path(spec).name or spec, spec


def format_size(size_kb: float) -> str:
    """Human readable size: ``512 KB``, ``1.5 MB``, ``2.00 GB``."""
    if size_kb >= 1024 * 1024:
        return f"{size_kb / (1024 * 1024):.2f} GB"
    if size_kb >= 1024:
        return f"{size_kb / 1024:.1f} MB"
    return f"{size_kb:.0f} KB"
