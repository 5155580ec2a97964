"""
Dispatch of job reports to the configured notification channels.

Every delivery failure is logged and swallowed here, so notifications can
never change the outcome of a pipeline run.
"""

import logging
import os
from typing import Callable, List, Mapping, Optional

from ..models.config import JobConfig, NotificationConfig
from ..models.results import STATUS_FAILURE, JobReport
from ..models.runtime import EventContext
from ..notify import ActionsReporter, GitHubClient, SlackNotifier
from ..validation import handle_notification_error

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Sends job reports to the channels listed in each job's ``notify``.
    """

    def __init__(
        self,
        settings: NotificationConfig,
        event: EventContext,
        actions: ActionsReporter,
        env: Optional[Mapping[str, str]] = None,
    ):
        self.settings = settings
        self.event = event
        self.actions = actions
        self.env = os.environ if env is None else env
        self._github: Optional[GitHubClient] = None
        self._slack: Optional[SlackNotifier] = None

    @property
    def repository(self) -> str:
        return self.settings.repository or self.event.repository or self.env.get("GITHUB_REPOSITORY", "")

    def github(self) -> GitHubClient:
        """The GitHub client; raises ValueError when token or repository is missing."""
        if self._github is None:
            token = self.env.get(self.settings.github_token_env, "")
            self._github = GitHubClient(token, self.repository, self.settings.github_api_url)
        return self._github

    def slack(self) -> SlackNotifier:
        if self._slack is None:
            webhook = self.env.get(self.settings.slack_webhook_env, "")
            self._slack = SlackNotifier(webhook, self.settings.slack_channel)
        return self._slack

    def _deliver(self, channel: str, send: Callable[[], object]) -> bool:
        try:
            send()
            return True
        except Exception as e:
            handle_notification_error(e, channel, logger=logger)
            return False

    def notify_job(self, job: JobConfig, report: JobReport) -> List[str]:
        """
        Deliver one job's report.

        Returns:
            The channels that were delivered successfully
        """
        if not self.settings.enabled:
            return []

        delivered = []
        for channel in job.notify:
            if channel == "summary":
                # The pipeline writes one combined step summary.
                continue
            if channel == "pr_comment":
                if not self.event.is_pull_request:
                    logger.debug(f"[{job.name}] not a pull request, skipping PR comment")
                    continue
                ok = self._deliver(
                    channel, lambda: self.github().create_comment(self.event.pr_number, report.markdown)
                )
            elif channel == "issue":
                if report.status != STATUS_FAILURE:
                    continue
                title = f"CI job '{job.name}' failed"
                if self.event.sha:
                    title += f" at {self.event.sha[:8]}"
                ok = self._deliver(
                    channel, lambda: self.github().create_issue(title, report.markdown, labels=["ci", job.kind])
                )
            elif channel == "slack":
                ok = self._deliver(
                    channel,
                    lambda: self.slack().send(report.status, f"{job.name} ({job.kind})", self._slack_text(report)),
                )
            else:
                logger.warning(f"[{job.name}] unknown notification channel '{channel}'")
                continue
            if ok:
                delivered.append(channel)
        return delivered

    def _slack_text(self, report: JobReport) -> str:
        lines = [
            f"Status: {report.status}",
            f"Findings: {len(report.analysis.real_records)} "
            f"(+{len(report.diff.added)} / -{len(report.diff.removed)})",
        ]
        lines += [f"• {v}" for v in report.violations]
        if self.repository:
            lines.append(f"Repository: {self.repository}")
        return "\n".join(lines)

    def write_summary(self, markdown: str) -> bool:
        return self._deliver("step summary", lambda: self.actions.write_summary(markdown))

    def set_outputs(self, outputs: Mapping[str, str]) -> None:
        for name, value in outputs.items():
            self._deliver("step output", lambda: self.actions.set_output(name, value))

    def apply_labels(self, labels: List[str], comment: str) -> bool:
        """Label the current pull request and explain the labels in a comment."""
        if not self.event.is_pull_request:
            logger.info("Not a pull request, labels are only reported")
            return False
        number = self.event.pr_number
        labeled = self._deliver("labels", lambda: self.github().add_labels(number, labels))
        commented = self._deliver("pr_comment", lambda: self.github().create_comment(number, comment))
        return labeled and commented
