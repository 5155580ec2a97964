"""
GitHub REST API client for PR comments, labels and issues.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..validation import NotificationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubAPIError(NotificationError):
    """GitHub API related errors."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_data: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class GitHubClient:
    """
    Minimal GitHub client for the write operations reports need.

    Transient failures (429 and 5xx) are retried by the session adapter.
    """

    def __init__(self, token: str, repository: str, base_url: str = DEFAULT_API_URL, timeout: float = 30.0):
        """
        Args:
            token: Token with permission to write issues and pull requests
            repository: "owner/name"
            base_url: API base URL (GitHub Enterprise uses a different one)
            timeout: Per request timeout in seconds
        """
        if not token:
            raise ValueError("GitHub token is required")
        if not repository or repository.count("/") != 1:
            raise ValueError(f"Repository must be 'owner/name', got {repository!r}")
        self.token = token
        self.repository = repository
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST", "PATCH"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "ciwatch",
        })
        return session

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            GitHubAPIError: On transport errors or non-2xx responses
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise GitHubAPIError(f"Request failed: {e}") from e

        if not response.ok:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {}
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} - {error_data.get('message', 'Unknown error')}",
                status_code=response.status_code,
                response_data=error_data,
            )
        return response.json() if response.content else {}

    def create_comment(self, issue_number: int, body: str) -> Dict:
        """Comment on an issue or pull request."""
        logger.info(f"Commenting on {self.repository}#{issue_number}")
        return self._make_request(
            "POST", f"/repos/{self.repository}/issues/{issue_number}/comments", json={"body": body}
        )

    def add_labels(self, issue_number: int, labels: List[str]) -> List[Dict]:
        """Add labels to an issue or pull request; unknown labels are created by GitHub."""
        if not labels:
            return []
        logger.info(f"Adding labels {labels} to {self.repository}#{issue_number}")
        return self._make_request(
            "POST", f"/repos/{self.repository}/issues/{issue_number}/labels", json={"labels": labels}
        )

    def create_issue(self, title: str, body: str, labels: Optional[List[str]] = None) -> Dict:
        """Open an issue and return the API representation."""
        logger.info(f"Creating issue '{title}' in {self.repository}")
        payload: Dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels
        return self._make_request("POST", f"/repos/{self.repository}/issues", json=payload)
