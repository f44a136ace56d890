"""Publishes a rendered digest as a labelled issue in the digest repository."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from .config import DIGEST_LABEL_COLOR, DIGEST_LABEL_DESCRIPTION, DIGEST_TITLE_PREFIX
from .github_api import GitHubClient

logger = logging.getLogger(__name__)


def digest_title(today: date) -> str:
    return f"{DIGEST_TITLE_PREFIX}: {today.isoformat()}"


def ensure_label(client: GitHubClient, owner: str, repo: str, label: str) -> None:
    # get_label returns None on 404; other errors propagate.
    if client.get_label(owner, repo, label) is not None:
        return
    logger.info("Creating label '%s' on %s/%s", label, owner, repo)
    client.create_label(
        owner,
        repo,
        name=label,
        color=DIGEST_LABEL_COLOR,
        description=DIGEST_LABEL_DESCRIPTION,
    )


def publish_digest(
    client: GitHubClient,
    digest_repo: str,
    markdown: str,
    label: str,
    today: date | None = None,
) -> str:
    """Create the digest issue and return its URL."""
    owner, _, repo = digest_repo.partition("/")
    if not owner or not repo or "/" in repo:
        raise ValueError(f'Invalid digest repo format "{digest_repo}". Expected "owner/repo".')

    ensure_label(client, owner, repo, label)

    today = today or datetime.now(timezone.utc).date()
    issue = client.create_issue(
        owner,
        repo,
        title=digest_title(today),
        body=markdown,
        labels=[label],
    )
    return issue["html_url"]
