"""
Rule driven extraction of structured records from tool output.

Each line of a log is matched against the configured rules in priority order;
the first matching rule turns the line into a LogRecord. Regex rules fill the
record from the named groups ``file``, ``line``, ``column``, ``code``,
``message`` and ``value``.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.config import RuleConfig
from ..models.records import LogRecord

logger = logging.getLogger(__name__)

# Compiler output routinely carries ANSI colour codes.
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


class LogParser:
    """
    Applies parsing rules to log lines, with a bounded per-line cache.

    Build logs repeat the same diagnostics many times (one per architecture
    or per incremental step), so results are cached by (job kind, line) until
    ``cache_size`` entries are stored.
    """

    def __init__(self, rules: List[RuleConfig], cache_size: int = 4096):
        """
        Args:
            rules: Parsing rules; sorted by priority here, highest first
            cache_size: Maximum number of cached lines, 0 disables the cache
        """
        self.rules = sorted(rules, key=lambda r: r.priority, reverse=True)
        self.cache_size = cache_size
        self._compiled: Dict[int, "re.Pattern[str]"] = {}
        self._cache: Dict[Tuple[str, str], Optional[LogRecord]] = {}
        for index, rule in enumerate(self.rules):
            if rule.match_type == "regex":
                self._compiled[index] = re.compile(rule.pattern)

    def rules_for(self, job_kind: Optional[str]) -> List[Tuple[int, RuleConfig]]:
        """Rules applicable to ``job_kind`` (all rules when None)."""
        return [
            (i, rule)
            for i, rule in enumerate(self.rules)
            if job_kind is None or not rule.job_kinds or job_kind in rule.job_kinds
        ]

    def parse_line(self, line: str, job_kind: Optional[str] = None) -> Optional[LogRecord]:
        """
        Turn one log line into a record.

        Args:
            line: Raw log line
            job_kind: Only rules for this job kind are applied

        Returns:
            The record from the first matching rule, None if nothing matched
        """
        text = _ANSI_ESCAPE.sub("", line).rstrip("\r\n")
        if not text.strip():
            return None

        cache_key = (job_kind or "", text)
        if cache_key in self._cache:
            return self._cache[cache_key]

        result = None
        for index, rule in self.rules_for(job_kind):
            record = self._apply_rule(index, rule, text)
            if record is not None:
                result = record
                break

        if len(self._cache) < self.cache_size:
            self._cache[cache_key] = result
        return result

    def _apply_rule(self, index: int, rule: RuleConfig, text: str) -> Optional[LogRecord]:
        if rule.match_type == "contains":
            if rule.pattern not in text:
                return None
            return self._record(rule, message=text.strip())
        if rule.match_type == "prefix":
            stripped = text.lstrip()
            if not stripped.startswith(rule.pattern):
                return None
            return self._record(rule, message=stripped[len(rule.pattern):].strip() or stripped)

        match = self._compiled[index].search(text)
        if match is None:
            return None
        groups = match.groupdict()
        return self._record(
            rule,
            message=(groups.get("message") or text).strip(),
            file=(groups.get("file") or "").strip(),
            line=_to_int(groups.get("line")),
            column=_to_int(groups.get("column")),
            code=(groups.get("code") or "").strip(),
            value=_to_float(groups.get("value")),
        )

    @staticmethod
    def _record(rule: RuleConfig, message: str, **fields) -> LogRecord:
        return LogRecord(
            kind=rule.record_kind,
            category=rule.category,
            message=message,
            severity=rule.severity,
            **fields,
        )

    def parse_lines(self, lines: Iterable[str], job_kind: Optional[str] = None) -> List[LogRecord]:
        """Parse every line, keeping records in log order."""
        records = []
        for line in lines:
            record = self.parse_line(line, job_kind)
            if record is not None:
                records.append(record)
        return records

    def parse_file(self, path: Path, job_kind: Optional[str] = None) -> List[LogRecord]:
        """
        Parse a log file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            records = self.parse_lines(f, job_kind)
        logger.info(f"Extracted {len(records)} records from {path}")
        return records

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> Dict[str, int]:
        return {
            "cache_entries": len(self._cache),
            "cache_size": self.cache_size,
        }
