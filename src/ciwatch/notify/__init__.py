"""
Delivery of reports to CI, GitHub, Slack and auxiliary branches.
"""

from .actions import ActionsReporter
from .github import GitHubAPIError, GitHubClient
from .publish import publish_to_branch
from .slack import SlackNotifier

__all__ = [
    "ActionsReporter",
    "GitHubAPIError",
    "GitHubClient",
    "SlackNotifier",
    "publish_to_branch",
]
