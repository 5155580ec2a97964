"""
Command-line interface for the ciwatch application.

This module provides the ``ciwatch`` entry point with three sub-commands:

- ``run``: run the configured jobs for the current event
- ``labels``: compute (and optionally apply) PR labels from the changed files
- ``history``: show a job's recorded metric trend
"""

import argparse
import logging
import signal
import sys
import time
import tomllib
from pathlib import Path
from typing import List, Optional

from ..changes import collect_changes, compute_labels, render_label_comment
from ..config import get_config, set_config_path
from ..config.validators import KNOWN_EVENTS
from ..models.config import AppConfig
from ..models.runtime import EventContext
from ..notify import ActionsReporter
from ..orchestration import NotificationDispatcher, PipelineRunner
from ..reporting import PRIMARY_METRIC, render_ascii_chart, render_trend_chart
from ..storage import HistoryStore
from ..validation import (
    ValidationError,
    handle_cli_error,
    validate_enum_choice,
    validate_job_name,
    validate_positive_integer,
)

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

CONFIG_ERROR_EXIT_CODE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciwatch",
        description="Run CI analysis jobs, compare them with history and report the results.",
    )
    parser.add_argument("--config", type=Path, help="Path to the main config.toml file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run analysis jobs.")
    run.add_argument(
        "--job", action="append", dest="jobs", metavar="NAME",
        help="Job to run (repeatable). Defaults to every configured job.",
    )
    run.add_argument("--event", help="Triggering event. Defaults to GITHUB_EVENT_NAME or 'local'.")
    run.add_argument("--base", help="Base revision for change detection (e.g. origin/main).")
    run.add_argument("--head", help="Head revision for change detection. Defaults to HEAD.")
    run.add_argument("--force", action="store_true", help="Run jobs regardless of triggers and path filters.")
    run.add_argument("--no-notify", action="store_true", help="Do not deliver reports to external channels.")

    labels = subparsers.add_parser("labels", help="Compute PR labels from the changed files.")
    labels.add_argument("--base", help="Base revision. Defaults to origin/<default_branch>.")
    labels.add_argument("--head", default="HEAD", help="Head revision. Defaults to HEAD.")
    labels.add_argument("--apply", action="store_true", help="Apply the labels and comment on the pull request.")

    history = subparsers.add_parser("history", help="Show the recorded trend of a job.")
    history.add_argument("--job", required=True, help="Job name.")
    history.add_argument("--last", type=int, default=10, help="Number of runs to show (default: 10).")
    history.add_argument("--metric", help="Metric to show. Defaults to the job kind's main metric.")
    history.add_argument("--plot", action="store_true", help="Also write an interactive HTML chart.")
    return parser


def _load_config(config_path: Optional[Path]) -> AppConfig:
    if config_path is not None:
        set_config_path(config_path)
    try:
        return get_config()
    except (FileNotFoundError, KeyError, ValidationError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=CONFIG_ERROR_EXIT_CODE,
            logger=logger,
        )


def _event_context(event_name: Optional[str]) -> EventContext:
    event = EventContext.from_environment()
    if event_name:
        try:
            event.event_name = validate_enum_choice(event_name, KNOWN_EVENTS, field_name="--event argument")
        except ValidationError as e:
            handle_cli_error(error=e, context="event validation", exit_code=CONFIG_ERROR_EXIT_CODE, logger=logger)
    return event


def cmd_run(args: argparse.Namespace, app_config: AppConfig) -> int:
    for name in args.jobs or []:
        try:
            validate_job_name(name, field_name="--job argument")
        except ValidationError as e:
            handle_cli_error(error=e, context="job name validation", exit_code=CONFIG_ERROR_EXIT_CODE, logger=logger)

    event = _event_context(args.event)
    run_timestamp = time.strftime("%Y%m%d_%H%M%S")
    output_dir = app_config.pipeline.output_root_dir / f"run_{run_timestamp}"
    logger.info(f"Reports will be saved in: {output_dir}")

    runner = PipelineRunner(app_config, event, output_dir, notify=not args.no_notify)

    def signal_handler(signum, frame):
        if runner.shutdown_event.is_set():
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info(f"Signal {signal.strsignal(signum)} received. Initiating graceful shutdown...")
        runner.request_shutdown()

    previous_handlers = {
        signal.SIGINT: signal.signal(signal.SIGINT, signal_handler),
        signal.SIGTERM: signal.signal(signal.SIGTERM, signal_handler),
    }

    try:
        outcome = runner.run(jobs=args.jobs, base=args.base, head=args.head, force=args.force)
    except ValueError as e:
        handle_cli_error(error=e, context="job selection", exit_code=CONFIG_ERROR_EXIT_CODE, logger=logger)
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    for report in outcome.reports:
        logger.info(f"{report.job_name}: {report.status}" + (f" ({report.skipped_reason})" if report.skipped_reason else ""))
    if outcome.exit_code:
        logger.error("Pipeline failed: threshold violations or build failures, see the summary")
    else:
        logger.info("Pipeline completed successfully.")
    return outcome.exit_code


def cmd_labels(args: argparse.Namespace, app_config: AppConfig) -> int:
    pipeline = app_config.pipeline
    base = args.base or f"origin/{pipeline.default_branch}"
    changes = collect_changes(base, args.head, pipeline.workspace_dir)
    labels = compute_labels(changes, app_config.labels.rules, app_config.labels.sizes)
    comment = render_label_comment(labels, app_config.labels.rules)
    print(comment)

    event = EventContext.from_environment()
    actions = ActionsReporter()
    dispatcher = NotificationDispatcher(pipeline.notifications, event, actions)
    dispatcher.set_outputs({"labels": ",".join(labels)})
    if args.apply:
        dispatcher.apply_labels(labels, comment)
    return 0


def cmd_history(args: argparse.Namespace, app_config: AppConfig) -> int:
    pipeline = app_config.pipeline
    try:
        last = validate_positive_integer(args.last, min_value=1, max_value=pipeline.max_history_runs,
                                         field_name="--last argument")
    except ValidationError as e:
        handle_cli_error(error=e, context="history length validation", exit_code=CONFIG_ERROR_EXIT_CODE, logger=logger)

    job = app_config.get_job(args.job)
    if job is None:
        logger.error(f"Job '{args.job}' not found in configuration.")
        logger.info(f"Available jobs: {', '.join(j.name for j in app_config.jobs)}")
        return 1

    store = HistoryStore(pipeline.history_dir, pipeline.storage, pipeline.max_history_runs)
    metric = args.metric or PRIMARY_METRIC.get(job.kind, "")
    series = store.metric_series(job.name, metric, last=last)
    if not series:
        print(f"No history recorded for '{job.name}' ({metric}).")
        return 0

    print(f"{job.name}: {metric} (last {len(series)} runs)")
    for line in render_ascii_chart([(str(row["timestamp"]), float(row["value"])) for row in series]):
        print(line)

    if args.plot:
        trend = store.load_trend(job.name)
        chart = render_trend_chart(trend, job.name, pipeline.output_root_dir / "history")
        if chart:
            print(f"Chart written to {chart}")
    return 0


COMMANDS = {
    "run": cmd_run,
    "labels": cmd_labels,
    "history": cmd_history,
}


def main_cli(argv: Optional[List[str]] = None) -> int:
    """
    Main command-line interface for the ciwatch application.

    Args:
        argv: Arguments without the program name, sys.argv when None

    Returns:
        The process exit code: 0 on success, 1 when a job failed its
        thresholds or a non-tolerated build failed, 2 on usage or
        configuration errors.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    app_config = _load_config(args.config)
    return COMMANDS[args.command](args, app_config)


if __name__ == "__main__":
    sys.exit(main_cli())
