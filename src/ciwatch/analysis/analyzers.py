"""
Job analyzers.

One analyzer per job kind turns the output of a job (build log, lock files,
artifacts on disk, ...) into records and metrics. Analyzers never raise for
missing inputs; they emit a placeholder record instead so the report still
has something to show.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type

from ..models.records import LogRecord, placeholder_record
from ..models.results import AnalysisResult
from ..models.runtime import BuildResult, RunContext
from ..parsing import (
    LogParser,
    format_size,
    measure_path_size,
    parse_artifact_spec,
    parse_lockfile,
    sum_by,
    top_values,
)
from ..system import prepare_build_command, run_command, substitute

logger = logging.getLogger(__name__)

# (command, append_to_log) -> BuildResult; provided by the orchestrator so
# that analyzers share its timeout, retry and shutdown handling.
BuildFunc = Callable[[str, bool], BuildResult]

SLOWEST_FILES_LIMIT = 10
SLOWEST_FUNCTIONS_LIMIT = 20
SCANNER_TIMEOUT_SECONDS = 300
COMPILE_TIMEOUT_SECONDS = 600


class Analyzer:
    """Base class; subclasses set ``kind`` and implement ``analyze``."""

    kind = ""
    # Whether the orchestrator runs the job's build command before analyze().
    builds_first = True

    def __init__(self, parser: LogParser):
        self.parser = parser

    def analyze(
        self,
        ctx: RunContext,
        build: Optional[BuildResult],
        run_build: BuildFunc,
        force: bool = False,
    ) -> AnalysisResult:
        raise NotImplementedError

    def _parse_log(self, ctx: RunContext) -> List[LogRecord]:
        log_path = ctx.paths.build_log
        if not log_path.is_file() or log_path.stat().st_size == 0:
            logger.warning(f"[{ctx.job.name}] build log missing or empty: {log_path}")
            return [placeholder_record(self.kind, f"Build log not found or empty: {log_path.name}")]
        return self.parser.parse_file(log_path, self.kind)


class WarningsAnalyzer(Analyzer):
    """Compiler warnings and errors from the build log."""

    kind = "warnings"

    def analyze(self, ctx, build, run_build, force=False):
        records = self._parse_log(ctx)
        real = [r for r in records if not r.placeholder]
        return AnalysisResult(
            records=records,
            metrics={
                "warning_count": float(sum(1 for r in real if r.kind == "warning")),
                "error_count": float(sum(1 for r in real if r.kind == "error")),
            },
        )


class TimingsAnalyzer(Analyzer):
    """Per-function and per-file compile times (``NN.NNms`` lines)."""

    kind = "timings"

    def analyze(self, ctx, build, run_build, force=False):
        records = self._parse_log(ctx)
        timed = [r for r in records if r.value is not None and not r.placeholder]
        functions = [
            r for r in timed
            if r.category == "function" and "scope entry" not in r.message and "scope exit" not in r.message
        ]

        metrics: Dict[str, float] = {}
        if build is not None:
            metrics["total_build_seconds"] = round(build.duration_seconds, 3)
        if timed:
            metrics["slowest_ms"] = max(r.value for r in timed)

        notes = []
        slowest_files = sum_by([r for r in timed if r.file], "file")[:SLOWEST_FILES_LIMIT]
        if slowest_files:
            notes += ["### Slowest Files to Compile", "", "| File | Time (ms) |", "|------|-----------|"]
            notes += [f"| `{name}` | {total:.1f} |" for name, total in slowest_files]
            notes.append("")
        slowest_functions = top_values(functions, SLOWEST_FUNCTIONS_LIMIT)
        if slowest_functions:
            notes += ["### Slowest Individual Functions", "", "```"]
            notes += [f"{r.value:.1f}ms\t{r.location}\t{r.message}" for r in slowest_functions]
            notes += ["```", ""]

        return AnalysisResult(records=records, metrics=metrics, notes=notes)


class LintAnalyzer(Analyzer):
    """Linter findings; ``thresholds.fail_on_codes`` marks critical rules."""

    kind = "lint"

    def analyze(self, ctx, build, run_build, force=False):
        records = self._parse_log(ctx)
        # An empty log means the linter found nothing.
        if all(r.placeholder for r in records) and ctx.paths.build_log.is_file():
            records = []
        critical_codes = set(ctx.job.thresholds.fail_on_codes)
        real = [r for r in records if not r.placeholder]
        critical = [r for r in real if r.code in critical_codes]
        return AnalysisResult(
            records=records,
            metrics={
                "issue_count": float(len(real)),
                "critical_count": float(len(critical)),
            },
        )


class SizesAnalyzer(Analyzer):
    """On-disk size of each configured artifact."""

    kind = "sizes"

    def analyze(self, ctx, build, run_build, force=False):
        records: List[LogRecord] = []
        metrics: Dict[str, float] = {}
        total = 0
        for spec in ctx.job.artifacts:
            name, rel_path = parse_artifact_spec(spec)
            size_kb = measure_path_size(ctx.workspace / rel_path)
            if size_kb is None:
                logger.warning(f"[{ctx.job.name}] artifact not found: {rel_path}")
                records.append(placeholder_record("size", f"Artifact not found: {rel_path}"))
                continue
            records.append(
                LogRecord(
                    kind="size",
                    category="artifact",
                    message=name,
                    file=rel_path,
                    severity="info",
                    value=float(size_kb),
                )
            )
            metrics[f"size_kb:{name}"] = float(size_kb)
            total += size_kb
        metrics["total_size_kb"] = float(total)

        notes = []
        sized = [r for r in records if not r.placeholder]
        if sized:
            notes += ["### Artifact Sizes", "", "| Artifact | Size |", "|---|---|"]
            notes += [f"| {r.message} | {format_size(r.value)} |" for r in sized]
            notes.append(f"| **Total** | {format_size(total)} |")
        return AnalysisResult(records=records, metrics=metrics, notes=notes)


def _is_vulnerability_report(output: str) -> bool:
    lowered = output.lower()
    if "no known vulnerabilities" in lowered or "no vulnerabilities" in lowered:
        return False
    return "vulnerab" in lowered


class DependenciesAnalyzer(Analyzer):
    """Resolved dependencies from lock files, checked with a scanner command."""

    kind = "dependencies"

    def analyze(self, ctx, build, run_build, force=False):
        records: List[LogRecord] = []
        dependency_count = 0
        vulnerability_count = 0

        for rel_path in ctx.job.lockfiles:
            path = ctx.workspace / rel_path
            if not path.is_file():
                logger.info(f"[{ctx.job.name}] lock file not present: {rel_path}")
                continue
            try:
                dependencies = parse_lockfile(path)
            except (ValueError, OSError) as e:
                logger.error(f"[{ctx.job.name}] cannot read {rel_path}: {e}")
                records.append(
                    LogRecord(kind="dependency", category="lockfile", message=f"Unreadable lock file: {e}",
                              file=rel_path, severity="error")
                )
                continue

            for dep in dependencies:
                dependency_count += 1
                records.append(
                    LogRecord(
                        kind="dependency",
                        category=dep.manager,
                        message=f"{dep.name} {dep.version}",
                        file=rel_path,
                        code=dep.name,
                        severity="info",
                    )
                )
                finding = self._scan(ctx, dep.name, dep.version)
                if finding:
                    vulnerability_count += 1
                    records.append(
                        LogRecord(
                            kind="vulnerability",
                            category=dep.manager,
                            message=f"{dep.name} {dep.version}: {finding}",
                            file=rel_path,
                            code=dep.name,
                            severity="error",
                        )
                    )

        if dependency_count == 0 and not records:
            records.append(placeholder_record("dependency", "No lock files found"))

        notes = []
        if vulnerability_count:
            notes.append("⚠️ Vulnerabilities found!")
        return AnalysisResult(
            records=records,
            metrics={
                "dependency_count": float(dependency_count),
                "vulnerability_count": float(vulnerability_count),
            },
            notes=notes,
        )

    def _scan(self, ctx: RunContext, name: str, version: str) -> str:
        """Run the scanner for one package; return the finding line or ''."""
        if not ctx.job.scanner_command:
            return ""
        command = substitute(ctx.job.scanner_command, {"package": name, "version": version})
        code, stdout, stderr = run_command(command, cwd=ctx.workspace, shell=True, timeout=SCANNER_TIMEOUT_SECONDS)
        output = stdout + stderr
        with open(ctx.paths.build_log, "a", encoding="utf-8") as log:
            log.write(f"--- scan {name} {version} (exit {code})\n{output}\n")
        if not _is_vulnerability_report(output):
            return ""
        for line in output.splitlines():
            if "vulnerab" in line.lower():
                return line.strip()
        return "vulnerability reported"


class ShadersAnalyzer(Analyzer):
    """Compiles every shader source for every target and records failures."""

    kind = "shaders"
    builds_first = False

    def analyze(self, ctx, build, run_build, force=False):
        sources = self._find_sources(ctx)
        if not sources:
            return AnalysisResult(
                records=[placeholder_record("compat", "No shader sources found")],
                metrics={"shader_count": 0.0, "fully_compatible": 0.0, "shaders_with_issues": 0.0},
            )

        output_dir = ctx.paths.output_dir / "compiled"
        output_dir.mkdir(parents=True, exist_ok=True)
        ctx.paths.build_log.write_text("", encoding="utf-8")

        records: List[LogRecord] = []
        with_issues = set()
        for source in sources:
            rel = source.relative_to(ctx.workspace).as_posix()
            stem = Path(rel).with_suffix("").as_posix().replace("/", "_")
            for target in ctx.job.targets:
                output = output_dir / f"{stem}-{target}.air"
                command, executable = prepare_build_command(
                    ctx.job.build_command,
                    ctx.job.setup_command or None,
                    source=str(source),
                    target=target,
                    output=str(output),
                    workspace=str(ctx.workspace),
                )
                code, stdout, stderr = run_command(
                    command, cwd=ctx.workspace, shell=True, executable_shell=executable,
                    timeout=ctx.job.timeout_seconds or COMPILE_TIMEOUT_SECONDS,
                )
                text = stdout + stderr
                with open(ctx.paths.build_log, "a", encoding="utf-8") as log:
                    log.write(f"--- {rel} [{target}] exit {code}\n{text}\n")
                records.extend(self.parser.parse_lines(text.splitlines(), self.kind))
                if code != 0:
                    with_issues.add(rel)
                    first_error = next(
                        (line.strip() for line in text.splitlines() if "error" in line.lower()),
                        f"compilation failed with exit code {code}",
                    )
                    records.append(
                        LogRecord(kind="compat", category=target, message=first_error, file=rel,
                                  code=target, severity="error")
                    )

        return AnalysisResult(
            records=records,
            metrics={
                "shader_count": float(len(sources)),
                "fully_compatible": float(len(sources) - len(with_issues)),
                "shaders_with_issues": float(len(with_issues)),
            },
        )

    @staticmethod
    def _find_sources(ctx: RunContext) -> List[Path]:
        found = set()
        for pattern in ctx.job.sources:
            found.update(p for p in ctx.workspace.glob(pattern) if p.is_file())
        return sorted(found)


class FreshnessAnalyzer(Analyzer):
    """Checks reference artifacts for staleness and regenerates them."""

    kind = "freshness"
    builds_first = False

    def _inventory(self, ctx: RunContext):
        directory = ctx.workspace / ctx.job.freshness.directory
        if not directory.is_dir():
            return [], None
        files = [p for p in directory.glob(ctx.job.freshness.pattern) if p.is_file()]
        if not files:
            return [], None
        oldest = min(p.stat().st_mtime for p in files)
        return files, (time.time() - oldest) / 86400.0

    def analyze(self, ctx, build, run_build, force=False):
        settings = ctx.job.freshness
        files, oldest_age = self._inventory(ctx)
        initial_count = len(files)

        reasons = []
        if not files:
            reasons.append("no existing artifacts")
        if force:
            reasons.append("forced update")
        if oldest_age is not None and oldest_age > settings.max_age_days:
            reasons.append(f"oldest artifact is {oldest_age:.0f} days old (max {settings.max_age_days})")

        records: List[LogRecord] = []
        notes: List[str] = []
        regenerated = False
        if reasons and ctx.job.build_command:
            logger.info(f"[{ctx.job.name}] regenerating artifacts: {', '.join(reasons)}")
            result = run_build(ctx.job.build_command, False)
            if result.succeeded:
                regenerated = True
                files, oldest_age = self._inventory(ctx)
            else:
                records.append(
                    LogRecord(kind="freshness", category="regeneration",
                              message=f"Regeneration failed with exit code {result.exit_code}", severity="error")
                )
        elif reasons:
            notes.append("Update needed but no build_command is configured.")

        if not files:
            records.append(placeholder_record("freshness", f"No artifacts in {settings.directory}"))

        notes.insert(0, f"Update needed: {'yes (' + ', '.join(reasons) + ')' if reasons else 'no'}")
        metrics = {
            "artifact_count": float(len(files)),
            "initial_artifact_count": float(initial_count),
            "regenerated": 1.0 if regenerated else 0.0,
        }
        if oldest_age is not None:
            metrics["oldest_age_days"] = round(oldest_age, 2)
        return AnalysisResult(
            records=records,
            metrics=metrics,
            notes=notes,
            artifacts=[settings.directory] if regenerated else [],
        )


ANALYZERS: Dict[str, Type[Analyzer]] = {
    cls.kind: cls
    for cls in (
        WarningsAnalyzer,
        TimingsAnalyzer,
        LintAnalyzer,
        SizesAnalyzer,
        DependenciesAnalyzer,
        ShadersAnalyzer,
        FreshnessAnalyzer,
    )
}


def get_analyzer(kind: str, parser: LogParser) -> Analyzer:
    """
    Create the analyzer for a job kind.

    Raises:
        KeyError: If the kind has no analyzer
    """
    try:
        return ANALYZERS[kind](parser)
    except KeyError:
        raise KeyError(f"No analyzer for job kind '{kind}'. Known kinds: {sorted(ANALYZERS)}")
