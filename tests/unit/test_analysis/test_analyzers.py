"""
Tests for the per-kind job analyzers.
"""

import json
import os
import time
from pathlib import Path

import pytest

from ciwatch.analysis import get_analyzer
from ciwatch.models.config import FreshnessConfig, ThresholdConfig
from ciwatch.models.runtime import BuildResult, EventContext, RunContext, RunPaths
from ciwatch.parsing import LogParser


@pytest.fixture
def parser(test_utils, sample_rules_config):
    timing_rule = {
        "priority": 150,
        "name": "function-body-time",
        "record_kind": "timing",
        "category": "function",
        "match_type": "regex",
        "pattern": r"^\s*(?P<value>\d+(?:\.\d+)?)ms\s+(?P<file>[^:\s]+\.swift):(?P<line>\d+):(?P<column>\d+)\s+(?P<message>.+)$",
        "severity": "info",
        "job_kinds": ["timings"],
    }
    return LogParser(test_utils.make_rules(sample_rules_config + [timing_rule]))


@pytest.fixture
def make_context(temp_dir):
    def _make(job):
        workspace = temp_dir / "workspace"
        workspace.mkdir(exist_ok=True)
        output_dir = temp_dir / "out" / job.name
        output_dir.mkdir(parents=True, exist_ok=True)
        return RunContext(
            job=job,
            run_id="20240101_000000",
            timestamp_str="20240101_000000",
            workspace=workspace,
            event=EventContext(),
            paths=RunPaths.for_job(output_dir),
        )
    return _make


def _no_build(command, append):
    raise AssertionError("build should not run")


@pytest.mark.unit
class TestLogAnalyzers:
    """Test cases for analyzers reading the build log."""

    def test_missing_log_gives_placeholder(self, parser, make_context, test_utils):
        ctx = make_context(test_utils.make_job())

        result = get_analyzer("warnings", parser).analyze(ctx, None, _no_build)

        assert len(result.records) == 1
        assert result.records[0].placeholder
        assert result.records[0].message == "Build log not found or empty: build.log"
        assert result.metrics == {"warning_count": 0.0, "error_count": 0.0}

    def test_warnings(self, parser, make_context, test_utils):
        ctx = make_context(test_utils.make_job())
        ctx.paths.build_log.write_text(
            "Compiling\n"
            "Sources/A.swift:1:2: warning: unused\n"
            "Sources/B.swift:3:4: error: missing\n"
            "Sources/A.swift:5:6: warning: deprecated\n"
        )

        result = get_analyzer("warnings", parser).analyze(ctx, None, _no_build)

        assert len(result.records) == 3
        assert result.metrics == {"warning_count": 2.0, "error_count": 1.0}

    def test_timings(self, parser, make_context, test_utils):
        ctx = make_context(test_utils.make_job(kind="timings"))
        ctx.paths.build_log.write_text(
            "12.5ms  Sources/A.swift:10:5  func a()\n"
            "40.0ms  Sources/B.swift:1:1  func b()\n"
            "0.1ms  Sources/A.swift:1:1  scope entry\n"
        )
        build = BuildResult("swift build", 0, 3.14159, ctx.paths.build_log)

        result = get_analyzer("timings", parser).analyze(ctx, build, _no_build)

        assert result.metrics["total_build_seconds"] == 3.142
        assert result.metrics["slowest_ms"] == 40.0
        assert "### Slowest Files to Compile" in result.notes
        assert "| `Sources/B.swift` | 40.0 |" in result.notes
        assert not any("scope entry" in note for note in result.notes)

    def test_lint_empty_log_is_clean(self, parser, make_context, test_utils):
        ctx = make_context(test_utils.make_job(kind="lint"))
        ctx.paths.build_log.write_text("")

        result = get_analyzer("lint", parser).analyze(ctx, None, _no_build)

        assert result.records == []
        assert result.metrics == {"issue_count": 0.0, "critical_count": 0.0}

    def test_lint_critical_codes(self, parser, make_context, test_utils):
        job = test_utils.make_job(kind="lint", thresholds=ThresholdConfig(fail_on_codes=["MD001"]))
        ctx = make_context(job)
        ctx.paths.build_log.write_text(
            "README.md:3 MD001/heading-increment Heading levels\n"
            "README.md:9:80 MD013/line-length Line length\n"
        )

        result = get_analyzer("lint", parser).analyze(ctx, None, _no_build)

        assert result.metrics == {"issue_count": 2.0, "critical_count": 1.0}


@pytest.mark.unit
class TestWorkspaceAnalyzers:
    """Test cases for analyzers inspecting the workspace."""

    def test_sizes(self, parser, make_context, test_utils):
        ctx = make_context(test_utils.make_job(kind="sizes", artifacts=["app=build/App", "build/Missing"]))
        (ctx.workspace / "build").mkdir()
        (ctx.workspace / "build" / "App").write_bytes(b"x" * 3000)

        result = get_analyzer("sizes", parser).analyze(ctx, None, _no_build)

        assert result.metrics == {"size_kb:app": 3.0, "total_size_kb": 3.0}
        assert result.records[0].value == 3.0
        assert result.records[1].placeholder
        assert result.records[1].message == "Artifact not found: build/Missing"
        assert "| app | 3 KB |" in result.notes
        assert result.notes[-1] == "| **Total** | 3 KB |"

    def test_dependencies_with_scanner(self, parser, make_context, test_utils):
        job = test_utils.make_job(
            kind="dependencies",
            lockfiles=["Package.resolved", "Podfile.lock"],
            scanner_command="test {package} = swift-log && echo 'GHSA-1234 vulnerability found' || echo 'No known vulnerabilities'",
        )
        ctx = make_context(job)
        (ctx.workspace / "Package.resolved").write_text(json.dumps({
            "pins": [
                {"identity": "swift-log", "state": {"version": "1.0.0"}},
                {"identity": "swift-nio", "state": {"version": "2.0.0"}},
            ],
            "version": 2,
        }))

        result = get_analyzer("dependencies", parser).analyze(ctx, None, _no_build)

        assert result.metrics == {"dependency_count": 2.0, "vulnerability_count": 1.0}
        vulnerabilities = [r for r in result.records if r.kind == "vulnerability"]
        assert [r.message for r in vulnerabilities] == ["swift-log 1.0.0: GHSA-1234 vulnerability found"]
        assert vulnerabilities[0].severity == "error"
        assert result.notes == ["⚠️ Vulnerabilities found!"]
        assert "--- scan swift-nio 2.0.0" in ctx.paths.build_log.read_text()

    def test_dependencies_without_lockfiles(self, parser, make_context, test_utils):
        ctx = make_context(test_utils.make_job(kind="dependencies", lockfiles=["Podfile.lock"]))

        result = get_analyzer("dependencies", parser).analyze(ctx, None, _no_build)

        assert len(result.records) == 1
        assert result.records[0].placeholder

    def test_shaders(self, parser, make_context, test_utils):
        job = test_utils.make_job(
            kind="shaders",
            build_command="grep -q {target} {source} && touch {output} || { echo \"error: {target} unsupported\"; exit 1; }",
            sources=["Shaders/*.metal"],
            targets=["metal2", "metal3"],
        )
        ctx = make_context(job)
        (ctx.workspace / "Shaders").mkdir()
        (ctx.workspace / "Shaders" / "Blur.metal").write_text("// metal2 metal3\n")
        (ctx.workspace / "Shaders" / "Glow.metal").write_text("// metal3\n")

        analyzer = get_analyzer("shaders", parser)
        result = analyzer.analyze(ctx, None, _no_build)

        assert analyzer.builds_first is False
        assert result.metrics == {"shader_count": 2.0, "fully_compatible": 1.0, "shaders_with_issues": 1.0}
        compat = [r for r in result.records if r.kind == "compat"]
        assert [(r.file, r.code, r.message) for r in compat] == [
            ("Shaders/Glow.metal", "metal2", "error: metal2 unsupported"),
        ]
        assert (ctx.paths.output_dir / "compiled" / "Shaders_Blur-metal3.air").exists()

    def test_shader_paths_with_spaces(self, parser, make_context, test_utils):
        job = test_utils.make_job(
            kind="shaders",
            build_command="test -f {source} && touch {output}",
            sources=["Shaders/*.metal"],
            targets=["metal3"],
        )
        ctx = make_context(job)
        (ctx.workspace / "Shaders").mkdir()
        (ctx.workspace / "Shaders" / "Tone Map.metal").write_text("// metal3\n")

        result = get_analyzer("shaders", parser).analyze(ctx, None, _no_build)

        assert result.metrics == {"shader_count": 1.0, "fully_compatible": 1.0, "shaders_with_issues": 0.0}
        assert (ctx.paths.output_dir / "compiled" / "Shaders_Tone Map-metal3.air").exists()

    def test_same_shader_name_in_different_directories(self, parser, make_context, test_utils):
        job = test_utils.make_job(
            kind="shaders",
            build_command="cp {source} {output}",
            sources=["Sources/*/*.metal"],
            targets=["m"],
        )
        ctx = make_context(job)
        for module in ("A", "B"):
            (ctx.workspace / "Sources" / module).mkdir(parents=True)
            (ctx.workspace / "Sources" / module / "Blur.metal").write_text(f"// {module}\n")

        result = get_analyzer("shaders", parser).analyze(ctx, None, _no_build)

        compiled = ctx.paths.output_dir / "compiled"
        assert result.metrics["fully_compatible"] == 2.0
        assert (compiled / "Sources_A_Blur-m.air").read_text() == "// A\n"
        assert (compiled / "Sources_B_Blur-m.air").read_text() == "// B\n"

    def test_shaders_without_sources(self, parser, make_context, test_utils):
        job = test_utils.make_job(kind="shaders", build_command="true", sources=["*.metal"], targets=["m"])

        result = get_analyzer("shaders", parser).analyze(make_context(job), None, _no_build)

        assert result.records[0].placeholder
        assert result.metrics["shader_count"] == 0.0


@pytest.mark.unit
class TestFreshnessAnalyzer:
    """Test cases for reference artifact freshness."""

    def _job(self, test_utils, build_command="mkdir -p Refs && touch Refs/a.png"):
        return test_utils.make_job(
            kind="freshness",
            build_command=build_command,
            freshness=FreshnessConfig(directory="Refs", pattern="*.png", max_age_days=30),
        )

    @staticmethod
    def _run_build(ctx):
        from ciwatch.execution import BuildExecutor

        def run_build(command, append):
            return BuildExecutor(command, ctx.workspace, ctx.paths.build_log, append=append).run()
        return run_build

    def test_fresh_artifacts_are_kept(self, parser, make_context, test_utils):
        ctx = make_context(self._job(test_utils))
        (ctx.workspace / "Refs").mkdir()
        (ctx.workspace / "Refs" / "a.png").write_bytes(b"png")

        result = get_analyzer("freshness", parser).analyze(ctx, None, _no_build)

        assert result.metrics["regenerated"] == 0.0
        assert result.metrics["artifact_count"] == 1.0
        assert result.notes[0] == "Update needed: no"
        assert result.artifacts == []

    def test_missing_artifacts_are_generated(self, parser, make_context, test_utils):
        ctx = make_context(self._job(test_utils))

        result = get_analyzer("freshness", parser).analyze(ctx, None, self._run_build(ctx))

        assert result.metrics["regenerated"] == 1.0
        assert result.metrics["initial_artifact_count"] == 0.0
        assert result.metrics["artifact_count"] == 1.0
        assert result.notes[0] == "Update needed: yes (no existing artifacts)"
        assert result.artifacts == ["Refs"]

    def test_stale_artifacts_are_regenerated(self, parser, make_context, test_utils):
        ctx = make_context(self._job(test_utils))
        (ctx.workspace / "Refs").mkdir()
        image = ctx.workspace / "Refs" / "a.png"
        image.write_bytes(b"png")
        old = time.time() - 40 * 86400
        os.utime(image, (old, old))

        result = get_analyzer("freshness", parser).analyze(ctx, None, self._run_build(ctx))

        assert result.metrics["regenerated"] == 1.0
        assert "oldest artifact is 40 days old (max 30)" in result.notes[0]
        assert result.metrics["oldest_age_days"] < 1

    def test_failed_regeneration(self, parser, make_context, test_utils):
        ctx = make_context(self._job(test_utils, build_command="exit 4"))

        result = get_analyzer("freshness", parser).analyze(ctx, None, self._run_build(ctx), force=True)

        assert result.metrics["regenerated"] == 0.0
        assert result.records[0].message == "Regeneration failed with exit code 4"
        assert result.records[-1].placeholder
        assert "forced update" in result.notes[0]


@pytest.mark.unit
def test_unknown_kind(parser):
    with pytest.raises(KeyError, match="No analyzer for job kind"):
        get_analyzer("coverage", parser)
