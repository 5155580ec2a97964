"""
PR labeling from changed file paths.

Label patterns use shell ``case`` semantics: ``*`` also matches ``/``, so
``*/ui/*`` selects any file below a ``ui`` directory at any depth.
"""

import logging
from fnmatch import fnmatchcase
from typing import Dict, List, Optional, Sequence, Union

from ..models.config import LabelRule, SizeLabelConfig
from ..models.records import ChangeSet

logger = logging.getLogger(__name__)

SIZE_DESCRIPTIONS = {
    "size/small": "Small PR with limited scope",
    "size/medium": "Medium sized PR with broader changes",
    "size/large": "Large PR with significant changes",
}


def size_label(file_count: int, sizes: Optional[SizeLabelConfig] = None) -> str:
    """Pick the size label: more than ``medium`` files is medium, more than ``large`` is large."""
    sizes = sizes or SizeLabelConfig()
    if file_count > sizes.large:
        return "size/large"
    if file_count > sizes.medium:
        return "size/medium"
    return "size/small"


def rule_matches(rule: LabelRule, path: str) -> bool:
    if not any(fnmatchcase(path, p) for p in rule.patterns):
        return False
    if rule.require_patterns and not any(fnmatchcase(path, p) for p in rule.require_patterns):
        return False
    return True


def compute_labels(
    changes: Union[ChangeSet, Sequence[str]],
    rules: List[LabelRule],
    sizes: Optional[SizeLabelConfig] = None,
) -> List[str]:
    """
    Compute the labels for a set of changed files.

    Args:
        changes: The change set, or its changed file paths
        rules: Area label rules, in the order labels are emitted
        sizes: File count bounds for the size label

    Returns:
        The size label followed by every area label matching at least one file
    """
    paths = changes.paths if isinstance(changes, ChangeSet) else list(changes)
    labels = [size_label(len(paths), sizes)]
    for rule in rules:
        if any(rule_matches(rule, path) for path in paths):
            labels.append(rule.name)
    logger.info(f"Computed labels for {len(paths)} files: {labels}")
    return labels


def render_label_comment(labels: List[str], rules: List[LabelRule]) -> str:
    """Render the PR comment explaining the applied labels."""
    descriptions: Dict[str, str] = dict(SIZE_DESCRIPTIONS)
    descriptions.update({r.name: r.description for r in rules if r.description})

    lines = [
        "## PR Analysis",
        "",
        "This PR has been automatically labeled based on file changes:",
        "",
    ]
    for label in labels:
        lines.append(f"- **{label}**: {descriptions.get(label, 'No description available')}")
    lines += [
        "",
        "*Note: This is an automated analysis. Please verify the labels are correct.*",
    ]
    return "\n".join(lines) + "\n"
