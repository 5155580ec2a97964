"""
Grouping helpers for report tables.
"""

from collections import Counter
from typing import Callable, Iterable, List, Tuple, Union

from ..models.records import LogRecord

KeyFunc = Union[str, Callable[[LogRecord], str]]


def group_counts(records: Iterable[LogRecord], key: KeyFunc) -> List[Tuple[str, int]]:
    """
    Count records per key.

    Args:
        records: Records to group (placeholders are skipped)
        key: Attribute name (``"file"``, ``"message"``, ...) or a function

    Returns:
        (value, count) pairs, most frequent first, ties by value
    """
    getter = key if callable(key) else (lambda r: getattr(r, key))
    counts = Counter(getter(r) for r in records if not r.placeholder)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def top_values(records: Iterable[LogRecord], limit: int) -> List[LogRecord]:
    """The ``limit`` records with the highest value (records without one are skipped)."""
    valued = [r for r in records if r.value is not None and not r.placeholder]
    return sorted(valued, key=lambda r: r.value, reverse=True)[:limit]


def sum_by(records: Iterable[LogRecord], key: KeyFunc) -> List[Tuple[str, float]]:
    """Sum record values per key, highest total first."""
    getter = key if callable(key) else (lambda r: getattr(r, key))
    totals: Counter = Counter()
    for record in records:
        if record.value is not None and not record.placeholder:
            totals[getter(record)] += record.value
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))
