"""
Tests for path filters and the job run decision.
"""

import subprocess

import pytest

from ciwatch.changes import collect_changes, match_path, matches_filters, should_run_job
from ciwatch.models.records import ChangedFile, ChangeSet
from ciwatch.models.runtime import EventContext
from ciwatch.system.git import parse_name_status


def _changes(*paths, diff_text=""):
    return ChangeSet(files=[ChangedFile("M", p) for p in paths], diff_text=diff_text)


@pytest.mark.unit
class TestMatchPath:
    """Test cases for CI path filter matching."""

    @pytest.mark.parametrize(
        "path,pattern,expected",
        [
            ("a/b/c.swift", "**.swift", True),
            ("c.swift", "**.swift", True),
            ("src/x.md", "src/*.md", True),
            ("src/x/y.md", "src/*.md", False),
            ("Sources/Metal/Shaders.metal", "**/Metal/**", True),
            ("Metal/Shaders.metal", "**/Metal/**", True),
            ("Package.swift", "Package.swift", True),
            ("Sources/Package.swift", "Package.swift", False),
            ("file1.txt", "file?.txt", True),
            ("fileA.txt", "file[0-9].txt", False),
        ],
    )
    def test_patterns(self, path, pattern, expected):
        assert match_path(path, pattern) is expected

    def test_negation_last_match_wins(self):
        patterns = ["docs/**", "!docs/generated/**"]

        assert matches_filters("docs/guide.md", patterns)
        assert not matches_filters("docs/generated/api.md", patterns)

    def test_reinclusion_after_negation(self):
        patterns = ["**.md", "!docs/**", "docs/keep.md"]

        assert matches_filters("docs/keep.md", patterns)
        assert not matches_filters("docs/other.md", patterns)


@pytest.mark.unit
class TestShouldRunJob:
    """Test cases for should_run_job."""

    def test_force_always_runs(self, test_utils):
        job = test_utils.make_job(triggers=["schedule"])

        decision = should_run_job(job, EventContext(event_name="push"), _changes(), force=True)

        assert decision
        assert decision.reason == "forced"

    def test_event_not_a_trigger(self, test_utils):
        job = test_utils.make_job(triggers=["push"])

        decision = should_run_job(job, EventContext(event_name="pull_request"), _changes("a.swift"))

        assert not decision
        assert "not a trigger" in decision.reason

    def test_schedule_bypasses_path_filters(self, test_utils):
        job = test_utils.make_job(paths=["**.swift"])

        assert should_run_job(job, EventContext(event_name="schedule"), _changes("README.md"))

    def test_path_filters(self, test_utils):
        job = test_utils.make_job(paths=["**.swift"])
        event = EventContext(event_name="pull_request", pr_number=3)

        assert should_run_job(job, event, _changes("Sources/App/View.swift"))
        assert not should_run_job(job, event, _changes("README.md"))

    def test_paths_ignore(self, test_utils):
        job = test_utils.make_job(paths_ignore=["docs/**"])
        event = EventContext(event_name="push")

        assert not should_run_job(job, event, _changes("docs/a.md", "docs/b.md"))
        assert should_run_job(job, event, _changes("docs/a.md", "Sources/x.swift"))

    def test_unknown_changes_run(self, test_utils):
        job = test_utils.make_job(paths=["**.swift"])

        decision = should_run_job(job, EventContext(event_name="push"), None)

        assert decision
        assert "no change information" in decision.reason

    def test_content_patterns(self, test_utils):
        job = test_utils.make_job(paths=["**.swift"], content_patterns=[r"@available\("])
        event = EventContext(event_name="push")
        diff = "+++ b/a.swift\n+@available(iOS 15, *)\n-removed line\n"

        assert should_run_job(job, event, _changes("a.swift", diff_text=diff))
        assert not should_run_job(
            job, event, _changes("a.swift", diff_text="+++ b/a.swift\n+let x = 1\n")
        )

    def test_removed_lines_do_not_match_content(self, test_utils):
        job = test_utils.make_job(content_patterns=["TODO"])
        diff = "--- a/a.swift\n-// TODO remove\n"

        assert not should_run_job(job, EventContext(event_name="push"), _changes("a.swift", diff_text=diff))


@pytest.mark.unit
class TestGitHelpers:
    """Test cases for git output parsing and change collection."""

    def test_parse_name_status(self):
        output = "M\tSources/a.swift\nR100\told.md\tnew.md\nA\tPackage.resolved\n\nbogus\n"

        files = parse_name_status(output)

        assert [(f.status, f.path) for f in files] == [
            ("M", "Sources/a.swift"),
            ("R", "new.md"),
            ("A", "Package.resolved"),
        ]

    def test_collect_changes_outside_repository(self, temp_dir):
        changes = collect_changes("main", "HEAD", temp_dir)

        assert changes.is_empty()
        assert changes.base == "main"

    def test_collect_changes_from_repository(self, temp_dir):
        def git(*args):
            subprocess.run(
                ["git", "-c", "user.name=t", "-c", "user.email=t@example.com", *args],
                cwd=temp_dir, check=True, capture_output=True,
            )

        git("init", "-q")
        (temp_dir / "README.md").write_text("# Title\n")
        git("add", ".")
        git("commit", "-q", "-m", "base")
        git("tag", "base")
        (temp_dir / "App.swift").write_text("let x = 1\n")
        git("add", ".")
        git("commit", "-q", "-m", "head")

        changes = collect_changes("base", "HEAD", temp_dir)

        assert changes.paths == ["App.swift"]
        assert "let x = 1" in changes.added_lines()
