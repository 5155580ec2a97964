"""
Reporting through the GitHub Actions runner files and workflow commands.
"""

import logging
import os
import sys
import uuid
from typing import Iterable, Mapping, Optional, TextIO

from ..models.records import LogRecord

logger = logging.getLogger(__name__)

ANNOTATION_LEVELS = {"error": "error", "warning": "warning", "info": "notice"}


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


class ActionsReporter:
    """
    Writes step summaries, step outputs and annotations.

    Outside of a runner (no ``GITHUB_STEP_SUMMARY`` / ``GITHUB_OUTPUT``) the
    summary and outputs are only logged.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None, stream: Optional[TextIO] = None):
        env = os.environ if env is None else env
        self.summary_path = env.get("GITHUB_STEP_SUMMARY") or None
        self.output_path = env.get("GITHUB_OUTPUT") or None
        self.stream = stream

    def write_summary(self, markdown: str) -> bool:
        """Append markdown to the step summary. Returns True if written."""
        if not self.summary_path:
            logger.info("GITHUB_STEP_SUMMARY not set, summary only logged")
            logger.debug(markdown)
            return False
        with open(self.summary_path, "a", encoding="utf-8") as f:
            f.write(markdown)
            if not markdown.endswith("\n"):
                f.write("\n")
        return True

    def set_output(self, name: str, value: str) -> bool:
        """
        Set a step output. Multi-line values use the heredoc form.

        Returns:
            True if the output file was written
        """
        if not self.output_path:
            logger.info(f"Output {name}={value!r} (GITHUB_OUTPUT not set)")
            return False
        with open(self.output_path, "a", encoding="utf-8") as f:
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                f.write(f"{name}={value}\n")
        return True

    def annotate(
        self,
        message: str,
        level: str = "warning",
        file: str = "",
        line: int = 0,
        column: int = 0,
        title: str = "",
    ) -> str:
        """Emit a workflow command annotation and return it."""
        props = []
        if file:
            props.append(f"file={_escape_property(file)}")
            if line:
                props.append(f"line={line}")
            if column:
                props.append(f"col={column}")
        if title:
            props.append(f"title={_escape_property(title)}")
        command = f"::{level}"
        if props:
            command += " " + ",".join(props)
        command += f"::{_escape_data(message)}"

        stream = self.stream or sys.stdout
        stream.write(command + "\n")
        return command

    def annotate_records(self, records: Iterable[LogRecord], title: str = "") -> int:
        """Annotate every real record. Returns the number of annotations."""
        count = 0
        for record in records:
            if record.placeholder:
                continue
            message = f"{record.code}: {record.message}" if record.code else record.message
            self.annotate(
                message,
                level=ANNOTATION_LEVELS.get(record.severity, "warning"),
                file=record.file,
                line=record.line,
                column=record.column,
                title=title,
            )
            count += 1
        return count
