"""
Tests for the GitHub REST client.
"""

from unittest.mock import MagicMock

import pytest
import requests

from ciwatch.notify import GitHubAPIError, GitHubClient
from ciwatch.validation import NotificationError


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    return response


@pytest.fixture
def client():
    client = GitHubClient("secret", "octo/app", base_url="https://api.example.com/")
    client.session.request = MagicMock(return_value=_response(201, {"id": 1}))
    return client


@pytest.mark.unit
class TestGitHubClient:
    """Test cases for GitHubClient."""

    def test_requires_token_and_repository(self):
        with pytest.raises(ValueError, match="token"):
            GitHubClient("", "octo/app")
        with pytest.raises(ValueError, match="owner/name"):
            GitHubClient("t", "octo")

    def test_session_headers(self, client):
        assert client.session.headers["Authorization"] == "token secret"
        assert client.base_url == "https://api.example.com"

    def test_create_comment(self, client):
        assert client.create_comment(12, "hello") == {"id": 1}

        client.session.request.assert_called_once_with(
            "POST",
            "https://api.example.com/repos/octo/app/issues/12/comments",
            timeout=30.0,
            json={"body": "hello"},
        )

    def test_add_labels(self, client):
        client.add_labels(3, ["size/small"])

        args, kwargs = client.session.request.call_args
        assert args[1].endswith("/repos/octo/app/issues/3/labels")
        assert kwargs["json"] == {"labels": ["size/small"]}

    def test_add_no_labels_makes_no_request(self, client):
        assert client.add_labels(3, []) == []
        client.session.request.assert_not_called()

    def test_create_issue(self, client):
        client.create_issue("Job failed", "details", labels=["ci"])

        args, kwargs = client.session.request.call_args
        assert args[1].endswith("/repos/octo/app/issues")
        assert kwargs["json"] == {"title": "Job failed", "body": "details", "labels": ["ci"]}

    def test_error_response(self, client):
        client.session.request.return_value = _response(403, {"message": "Resource not accessible"})

        with pytest.raises(GitHubAPIError) as exc_info:
            client.create_comment(1, "x")

        assert exc_info.value.status_code == 403
        assert "Resource not accessible" in str(exc_info.value)
        assert isinstance(exc_info.value, NotificationError)

    def test_transport_error(self, client):
        client.session.request.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(GitHubAPIError, match="Request failed"):
            client.create_issue("t", "b")

    def test_empty_body(self, client):
        client.session.request.return_value = _response(204)

        assert client.create_comment(1, "x") == {}
