"""
Record data models.

Records are the structured lines extracted from build output (warnings,
timings, lint findings, sizes, ...) together with the change set a run is
evaluated against.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PLACEHOLDER_FILE = "N/A"


@dataclass(frozen=True)
class LogRecord:
    """
    A single structured record extracted from tool output.

    Two records describe the same finding when their ``identity`` matches;
    line and column are left out of it so that code moving inside a file is
    not reported as a new finding.
    """

    kind: str
    category: str
    message: str
    file: str = ""
    line: int = 0
    column: int = 0
    code: str = ""
    severity: str = "warning"
    value: Optional[float] = None
    placeholder: bool = False

    @property
    def identity(self) -> Tuple[str, str, str, str, str]:
        return (self.kind, self.category, self.file, self.code, self.message)

    @property
    def location(self) -> str:
        """``file:line:column`` as compilers print it."""
        if not self.file:
            return ""
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogRecord":
        value = data.get("value")
        return cls(
            kind=str(data.get("kind", "")),
            category=str(data.get("category", "")),
            message=str(data.get("message", "")),
            file=str(data.get("file") or ""),
            line=int(data.get("line") or 0),
            column=int(data.get("column") or 0),
            code=str(data.get("code") or ""),
            severity=str(data.get("severity") or "warning"),
            value=float(value) if value is not None else None,
            placeholder=bool(data.get("placeholder", False)),
        )


def placeholder_record(kind: str, message: str) -> LogRecord:
    """
    Build the record that stands in for a missing input.

    It renders as ``N/A:0:0: <kind>: <message>`` so that downstream reports
    always have something to show.
    """
    return LogRecord(
        kind=kind,
        category="missing-input",
        message=message,
        file=PLACEHOLDER_FILE,
        severity="info",
        placeholder=True,
    )


def format_record(record: LogRecord) -> str:
    """Render a record the way a compiler diagnostic line looks."""
    prefix = f"{record.location}: " if record.location else ""
    code = f" [{record.code}]" if record.code else ""
    return f"{prefix}{record.kind}: {record.message}{code}"


@dataclass
class ChangedFile:
    """One entry of ``git diff --name-status``."""

    # Single letter status (A, M, D, R, ...).
    status: str
    path: str


@dataclass
class ChangeSet:
    """The files and added lines between two revisions."""

    files: List[ChangedFile] = field(default_factory=list)
    diff_text: str = ""
    base: str = ""
    head: str = ""

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    def added_lines(self) -> List[str]:
        """Lines added by the diff, without the leading ``+``."""
        lines = []
        for line in self.diff_text.splitlines():
            if line.startswith("+") and not line.startswith("+++"):
                lines.append(line[1:])
        return lines

    def is_empty(self) -> bool:
        return not self.files
