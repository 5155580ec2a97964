"""
Tests for GitHub Actions summaries, outputs and annotations.
"""

import io

import pytest

from ciwatch.models.records import placeholder_record
from ciwatch.notify import ActionsReporter


@pytest.fixture
def runner_files(temp_dir):
    return {
        "GITHUB_STEP_SUMMARY": str(temp_dir / "summary.md"),
        "GITHUB_OUTPUT": str(temp_dir / "output.txt"),
    }


@pytest.mark.unit
class TestActionsReporter:
    """Test cases for ActionsReporter."""

    def test_summary_is_appended(self, runner_files, temp_dir):
        reporter = ActionsReporter(env=runner_files)

        assert reporter.write_summary("# One")
        assert reporter.write_summary("# Two\n")

        assert (temp_dir / "summary.md").read_text() == "# One\n# Two\n"

    def test_outside_runner(self):
        reporter = ActionsReporter(env={})

        assert reporter.write_summary("# Report") is False
        assert reporter.set_output("status", "success") is False

    def test_outputs(self, runner_files, temp_dir):
        reporter = ActionsReporter(env=runner_files)

        reporter.set_output("status", "failure")
        reporter.set_output("labels", "size/small\narea/ui")

        lines = (temp_dir / "output.txt").read_text().splitlines()
        assert lines[0] == "status=failure"
        assert lines[1].startswith("labels<<ghadelimiter_")
        delimiter = lines[1].split("<<", 1)[1]
        assert lines[2:] == ["size/small", "area/ui", delimiter]

    def test_annotation_format(self):
        stream = io.StringIO()
        reporter = ActionsReporter(env={}, stream=stream)

        command = reporter.annotate(
            "50% done\nnext", level="error", file="a,b.swift", line=3, column=4, title="Build: x"
        )

        assert command == "::error file=a%2Cb.swift,line=3,col=4,title=Build%3A x::50%25 done%0Anext"
        assert stream.getvalue() == command + "\n"

    def test_annotation_without_location(self):
        reporter = ActionsReporter(env={}, stream=io.StringIO())

        assert reporter.annotate("plain", line=5) == "::warning::plain"

    def test_annotate_records(self, test_utils):
        stream = io.StringIO()
        reporter = ActionsReporter(env={}, stream=stream)
        records = [
            test_utils.make_record("heading", kind="lint", code="MD001", line=2, column=0),
            test_utils.make_record("timing", severity="info", file=""),
            placeholder_record("lint", "missing"),
        ]

        count = reporter.annotate_records(records, title="markdown-lint")

        assert count == 2
        assert stream.getvalue().splitlines() == [
            "::warning file=Sources/App/View.swift,line=2,title=markdown-lint::MD001: heading",
            "::notice title=markdown-lint::timing",
        ]
