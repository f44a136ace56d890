"""Tests for publishing the digest issue."""

from datetime import date
from unittest.mock import Mock

import pytest

from repo_digest.github_api import GitHubAPIError, GitHubClient
from repo_digest.publisher import digest_title, publish_digest

DIGEST_REPO = "user/digest"
MARKDOWN = "# Daily Digest\n\nTest body content"
LABEL = "digest"
ISSUE_URL = "https://github.com/user/digest/issues/42"
TODAY = date(2025, 6, 15)


@pytest.fixture
def client():
    mock = Mock(spec=GitHubClient)
    mock.get_label.return_value = {"name": LABEL}
    mock.create_issue.return_value = {"html_url": ISSUE_URL}
    return mock


class TestPublishDigest:
    def test_creates_missing_label(self, client):
        client.get_label.return_value = None

        url = publish_digest(client, DIGEST_REPO, MARKDOWN, LABEL, today=TODAY)

        client.get_label.assert_called_once_with("user", "digest", LABEL)
        client.create_label.assert_called_once_with(
            "user",
            "digest",
            name=LABEL,
            color="0075ca",
            description="Daily digest report",
        )
        assert url == ISSUE_URL

    def test_existing_label_is_reused(self, client):
        publish_digest(client, DIGEST_REPO, MARKDOWN, LABEL, today=TODAY)
        client.create_label.assert_not_called()

    def test_label_lookup_errors_propagate(self, client):
        client.get_label.side_effect = GitHubAPIError("Server Error", status=500)
        with pytest.raises(GitHubAPIError, match="Server Error"):
            publish_digest(client, DIGEST_REPO, MARKDOWN, LABEL, today=TODAY)
        client.create_label.assert_not_called()
        client.create_issue.assert_not_called()

    def test_issue_title_body_and_label(self, client):
        publish_digest(client, DIGEST_REPO, MARKDOWN, LABEL, today=TODAY)
        client.create_issue.assert_called_once_with(
            "user",
            "digest",
            title="Daily Digest: 2025-06-15",
            body=MARKDOWN,
            labels=[LABEL],
        )

    @pytest.mark.parametrize("repo", ["invalid-no-slash", "/digest", "user/", "a/b/c"])
    def test_invalid_digest_repo(self, client, repo):
        with pytest.raises(ValueError, match="Invalid digest repo format"):
            publish_digest(client, repo, MARKDOWN, LABEL)


def test_digest_title():
    assert digest_title(TODAY) == "Daily Digest: 2025-06-15"
