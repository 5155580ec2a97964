"""
Report artifacts of a job run.

This module writes the files a job leaves in its output directory: the
extracted records, run metadata and the rendered report.
"""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..models.results import JobReport
from ..models.runtime import RunContext

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class ArtifactWriter:
    """
    Writes the per-job output files described by ``RunContext.paths``.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx
        self.ctx.paths.output_dir.mkdir(parents=True, exist_ok=True)

    def write_metadata(self, extra: Dict[str, Any]) -> Path:
        """Write the run context plus ``extra`` fields as JSON."""
        metadata = {
            "job": _jsonable(dataclasses.asdict(self.ctx.job)),
            "run_id": self.ctx.run_id,
            "timestamp": self.ctx.timestamp_str,
            "workspace": str(self.ctx.workspace),
            "event": dataclasses.asdict(self.ctx.event),
        }
        metadata.update(_jsonable(extra))
        path = self.ctx.paths.metadata_file
        with open(path, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2)
        return path

    def write_records(self, report: JobReport) -> Path:
        path = self.ctx.paths.records_file
        with open(path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "job": report.job_name,
                    "status": report.status,
                    "metrics": report.analysis.metrics,
                    "records": [r.to_dict() for r in report.analysis.records],
                    "added": [r.to_dict() for r in report.diff.added],
                    "removed": [r.to_dict() for r in report.diff.removed],
                    "violations": report.violations,
                },
                f,
                indent=2,
            )
        return path

    def write_report(self, markdown: str) -> Path:
        path = self.ctx.paths.report_markdown
        path.write_text(markdown, encoding="utf-8")
        logger.info(f"Report for '{self.ctx.job.name}' written to {path}")
        return path
