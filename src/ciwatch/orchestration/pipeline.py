"""
The per-job pipeline.

For every selected job the runner decides whether it runs, builds, analyzes
the output, compares it with the previous recorded run, evaluates the
thresholds, writes the report, persists history and notifies. Jobs run one
after another; a job that raises is reported as failed and the run carries
on with the next one.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import List, Mapping, Optional, Set

from ..analysis import get_analyzer
from ..changes import collect_changes, should_run_job
from ..execution import BuildExecutor, capture_environment, run_clean_command
from ..models.config import AppConfig, JobConfig
from ..models.records import ChangeSet
from ..models.results import (
    STATUS_FAILURE,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    STATUS_WARNING,
    JobReport,
    PipelineOutcome,
)
from ..models.runtime import BuildResult, EventContext, RunContext, RunPaths
from ..notify import ActionsReporter, publish_to_branch
from ..parsing import LogParser
from ..reporting import (
    compare_metrics,
    counted_records,
    diff_records,
    evaluate_thresholds,
    render_job_report,
    render_pipeline_summary,
    render_trend_chart,
    summarize_counts,
)
from ..storage import HistoryStore
from ..system import current_commit, prepare_build_command
from ..validation import handle_notification_error
from .artifacts import ArtifactWriter
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class PipelineRunner:
    """
    Runs configured jobs for one triggering event.
    """

    def __init__(
        self,
        app_config: AppConfig,
        event: EventContext,
        output_dir: Path,
        notify: bool = True,
        env: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            app_config: Loaded application configuration
            event: What triggered this run
            output_dir: Directory receiving one sub-directory per job
            notify: Deliver reports to external channels
            env: Environment used for CI files and secrets (os.environ by default)
        """
        self.config = app_config
        self.pipeline = app_config.pipeline
        self.event = event
        self.output_dir = Path(output_dir)
        self.notify = notify
        self.env = os.environ if env is None else env

        self.run_id = time.strftime("%Y%m%d_%H%M%S")
        self.workspace = self.pipeline.workspace_dir
        self.parser = LogParser(app_config.rules, self.pipeline.parse_cache_size)
        self.history = HistoryStore(
            self.pipeline.history_dir, self.pipeline.storage, self.pipeline.max_history_runs
        )
        self.actions = ActionsReporter(self.env)
        self.dispatcher = NotificationDispatcher(
            self.pipeline.notifications, event, self.actions, self.env
        )
        self.shutdown_event = threading.Event()
        self._commit: Optional[str] = None
        self._errored: Set[str] = set()

    # --- Control ---

    def request_shutdown(self) -> None:
        """Stop after the running build has been terminated."""
        if not self.shutdown_event.is_set():
            logger.info("Shutdown requested, the current build will be terminated")
        self.shutdown_event.set()

    @property
    def records_history(self) -> bool:
        return self.event.event_name in self.pipeline.record_history_on

    @property
    def commit(self) -> str:
        if self._commit is None:
            self._commit = self.event.sha or current_commit(self.workspace)
        return self._commit

    def select_jobs(self, names: Optional[List[str]] = None) -> List[JobConfig]:
        """
        Resolve job names to configurations, keeping configuration order.

        Raises:
            ValueError: If a name is not configured
        """
        if not names:
            return list(self.config.jobs)
        unknown = [n for n in names if self.config.get_job(n) is None]
        if unknown:
            available = ", ".join(j.name for j in self.config.jobs)
            raise ValueError(f"Unknown jobs: {', '.join(unknown)}. Available: {available}")
        return [j for j in self.config.jobs if j.name in names]

    # --- Pipeline ---

    def run(
        self,
        jobs: Optional[List[str]] = None,
        base: Optional[str] = None,
        head: Optional[str] = None,
        force: bool = False,
    ) -> PipelineOutcome:
        """
        Run the selected jobs.

        Args:
            jobs: Job names, all configured jobs when None
            base: Base revision for change detection
            head: Head revision (defaults to HEAD when ``base`` is given)
            force: Run jobs regardless of triggers and filters

        Returns:
            PipelineOutcome with all reports and the exit code
        """
        selected = self.select_jobs(jobs)
        changes: Optional[ChangeSet] = None
        if base:
            changes = collect_changes(base, head or "HEAD", self.workspace)

        logger.info(
            f"Running {len(selected)} jobs for event '{self.event.event_name}' "
            f"(run {self.run_id}, outputs in {self.output_dir})"
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)

        reports: List[JobReport] = []
        for job in selected:
            if self.shutdown_event.is_set():
                logger.warning(f"Shutdown requested, skipping job '{job.name}'")
                reports.append(JobReport(job.name, job.kind, STATUS_SKIPPED, skipped_reason="shutdown requested"))
                continue

            logger.info(f">>> Starting job: {job.name} ({job.kind})")
            try:
                report = self.run_job(job, changes, force)
            except Exception as e:
                logger.error(f"Job '{job.name}' failed with {type(e).__name__}: {e}", exc_info=True)
                self._errored.add(job.name)
                report = JobReport(
                    job.name, job.kind, STATUS_FAILURE, skipped_reason=f"Job error: {type(e).__name__}: {e}"
                )
                report.markdown = render_job_report(report)
            reports.append(report)
            logger.info(f"<<< Finished job: {job.name} -> {report.status}")

        exit_code = 1 if any(self._is_failing(r, self.config.get_job(r.job_name)) for r in reports) else 0
        summary = render_pipeline_summary(reports)
        summary_path = self.output_dir / "summary.md"
        summary_path.write_text(summary, encoding="utf-8")
        logger.info(f"Pipeline summary written to {summary_path}")

        if self.notify:
            self.dispatcher.write_summary(summary)
            self.dispatcher.set_outputs({"exit_code": str(exit_code), "summary": summary})
            self._publish_history()

        return PipelineOutcome(reports=reports, exit_code=exit_code)

    def _is_failing(self, report: JobReport, job: Optional[JobConfig]) -> bool:
        if report.job_name in self._errored or report.violations:
            return True
        build = report.build_result
        if build is not None and not build.succeeded:
            return job is None or not job.allow_failure
        return False

    def run_job(self, job: JobConfig, changes: Optional[ChangeSet], force: bool = False) -> JobReport:
        """Run every pipeline step for one job."""
        decision = should_run_job(job, self.event, changes, force)
        if not decision:
            logger.info(f"[{job.name}] skipped: {decision.reason}")
            report = JobReport(job.name, job.kind, STATUS_SKIPPED, skipped_reason=decision.reason)
            report.markdown = render_job_report(report)
            return report
        logger.info(f"[{job.name}] running: {decision.reason}")

        ctx = self._create_run_context(job)
        writer = ArtifactWriter(ctx)
        analyzer = get_analyzer(job.kind, self.parser)

        if job.clean_command:
            run_clean_command(job.clean_command, ctx.workspace, ctx.paths.output_dir / "clean.log")

        build: Optional[BuildResult] = None
        if analyzer.builds_first and job.build_command:
            build = self._run_build(ctx, job.build_command, append=False)
            if not build.succeeded:
                level = logging.WARNING if job.allow_failure else logging.ERROR
                logger.log(level, f"[{job.name}] build failed with exit code {build.exit_code}")

        environment = capture_environment(job.environment_commands, ctx.workspace)
        analysis = analyzer.analyze(
            ctx, build, lambda command, append: self._run_build(ctx, command, append), force
        )
        for key, value in environment.items():
            analysis.environment.setdefault(key, value)

        previous_records = self.history.load_previous_records(job.name)
        previous_metrics = self.history.latest_metrics(job.name)
        diff = diff_records(previous_records, analysis.records)
        comparisons = compare_metrics(previous_metrics, analysis.metrics, job.thresholds.max_regression_percent)
        violations = evaluate_thresholds(job, analysis, comparisons)

        report = JobReport(
            job_name=job.name,
            kind=job.kind,
            status=self._status(job, build, analysis, violations),
            build_result=build,
            analysis=analysis,
            diff=diff,
            comparisons=comparisons,
            violations=violations,
        )

        if self.records_history:
            self.history.save_records(job.name, self.run_id, analysis.records)
            trend = self.history.append_trend(
                job.name, self.run_id, self.commit, analysis.metrics, timestamp=ctx.timestamp_str
            )
        else:
            logger.info(f"[{job.name}] event '{self.event.event_name}' does not record history")
            trend = self.history.load_trend(job.name)

        report.markdown = render_job_report(report, trend)
        writer.write_report(report.markdown)
        writer.write_records(report)
        writer.write_metadata({
            "decision": decision.reason,
            "commit": self.commit,
            "recorded": self.records_history,
            "environment": analysis.environment,
        })
        if not trend.is_empty():
            render_trend_chart(trend, job.name, ctx.paths.output_dir)

        if self.notify:
            self._annotate(job, report)
            self.dispatcher.notify_job(job, report)
            self._publish_artifacts(ctx, report)
        return report

    # --- Steps ---

    def _create_run_context(self, job: JobConfig) -> RunContext:
        output_dir = self.output_dir / job.name
        output_dir.mkdir(parents=True, exist_ok=True)
        workspace = (self.workspace / job.dir).resolve()
        return RunContext(
            job=job,
            run_id=self.run_id,
            timestamp_str=time.strftime("%Y-%m-%dT%H:%M:%S"),
            workspace=workspace,
            event=self.event,
            paths=RunPaths.for_job(output_dir),
            placeholders={"workspace": str(workspace), "output": str(output_dir)},
        )

    def _run_build(self, ctx: RunContext, command: str, append: bool) -> BuildResult:
        job = ctx.job
        final_command, executable = prepare_build_command(
            command, job.setup_command or None, **ctx.placeholders
        )
        executor = BuildExecutor(
            command=final_command,
            cwd=ctx.workspace,
            log_path=ctx.paths.build_log,
            timeout_seconds=job.timeout_seconds or self.pipeline.default_timeout_seconds,
            max_attempts=job.max_attempts or self.pipeline.max_attempts,
            retry_delay_seconds=self.pipeline.retry_delay_seconds,
            executable=executable,
            shutdown_event=self.shutdown_event,
            graceful_shutdown_timeout=self.pipeline.graceful_shutdown_timeout,
            append=append,
        )
        return executor.run()

    @staticmethod
    def _status(job: JobConfig, build: Optional[BuildResult], analysis, violations: List[str]) -> str:
        build_failed = build is not None and not build.succeeded
        if violations or (build_failed and not job.allow_failure):
            return STATUS_FAILURE
        if build_failed or counted_records(analysis.records):
            return STATUS_WARNING
        return STATUS_SUCCESS

    def _annotate(self, job: JobConfig, report: JobReport) -> None:
        if "summary" not in job.notify:
            return
        if job.kind == "lint":
            records = report.analysis.real_records
        else:
            records = [r for r in report.diff.added if r.file and r.severity != "info"]
        count = self.actions.annotate_records(records, title=job.name)
        if count:
            logger.debug(f"[{job.name}] emitted {count} annotations")
        for name, value in summarize_counts(report).items():
            self.dispatcher.set_outputs({f"{job.name}_{name}": value})

    def _publish_artifacts(self, ctx: RunContext, report: JobReport) -> None:
        branch = ctx.job.freshness.publish_branch
        if not branch or not report.analysis.artifacts:
            return
        paths = [ctx.workspace / a for a in report.analysis.artifacts]
        message = f"Update {ctx.job.name} artifacts ({self.run_id})"
        try:
            publish_to_branch(paths, branch, message, cwd=self.workspace)
        except Exception as e:
            handle_notification_error(e, f"branch '{branch}'", logger=logger)

    def _publish_history(self) -> None:
        branch = self.pipeline.publish_branch
        if not branch or not self.records_history or not self.pipeline.history_dir.exists():
            return
        try:
            publish_to_branch(
                [self.pipeline.history_dir], branch, f"Update CI history ({self.run_id})", cwd=self.workspace
            )
        except Exception as e:
            handle_notification_error(e, f"branch '{branch}'", logger=logger)
