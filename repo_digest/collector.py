"""Collects per-repository activity (CI runs, PRs, issues) for one lookback window."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable

from .config import DigestConfig
from .github_api import GitHubClient
from .models import (
    Issue,
    PullRequest,
    RepoActivity,
    RepoInfo,
    SkippedRepo,
    WorkflowRun,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class WindowFilter(Enum):
    NATIVE = "native"  # GitHub applies the boundary through a query parameter
    LOCAL = "local"  # the boundary is checked here on the fetched records


# The pulls endpoint has no "updated since" parameter, the others do.
WINDOW_POLICY: dict[str, WindowFilter] = {
    "workflow_runs": WindowFilter.NATIVE,
    "pull_requests": WindowFilter.LOCAL,
    "issues": WindowFilter.NATIVE,
}

DECISIVE_REVIEW_STATES = ("APPROVED", "CHANGES_REQUESTED")


def split_full_name(full_name: str) -> tuple[str, str]:
    if "/" not in full_name:
        raise ValueError(f"Repository '{full_name}' must use owner/repo format.")
    owner, repo = full_name.split("/", maxsplit=1)
    return owner.strip(), repo.strip()


def derive_review_decision(reviews: Iterable[dict[str, Any]]) -> str | None:
    """Reduce a chronological list of reviews to one decision.

    The last APPROVED / CHANGES_REQUESTED review wins. Reviews that only
    comment leave the PR at REVIEW_REQUIRED; no reviews at all gives None.
    """
    decision = None
    seen_any = False
    for review in reviews:
        seen_any = True
        state = (review.get("state") or "").upper()
        if state in DECISIVE_REVIEW_STATES:
            decision = state
    if decision is None and seen_any:
        return "REVIEW_REQUIRED"
    return decision


def _login(payload: dict[str, Any] | None) -> str:
    return (payload or {}).get("login", "") or ""


def _to_repo_info(payload: dict[str, Any]) -> RepoInfo:
    updated_at = payload.get("updated_at")
    return RepoInfo(
        name=payload["name"],
        full_name=payload["full_name"],
        owner=_login(payload.get("owner")),
        default_branch=payload.get("default_branch", ""),
        has_issues=bool(payload.get("has_issues", False)),
        updated_at=parse_timestamp(updated_at) if updated_at else None,
    )


def _to_workflow_run(payload: dict[str, Any]) -> WorkflowRun:
    return WorkflowRun(
        name=payload.get("name") or "",
        status=payload.get("status") or "",
        conclusion=payload.get("conclusion"),
        url=payload.get("html_url", ""),
        created_at=parse_timestamp(payload["created_at"]),
        head_branch=payload.get("head_branch"),
    )


def _to_pull_request(payload: dict[str, Any]) -> PullRequest:
    return PullRequest(
        number=int(payload["number"]),
        title=payload.get("title", ""),
        state=payload.get("state", ""),
        author=_login(payload.get("user")),
        url=payload.get("html_url", ""),
        updated_at=parse_timestamp(payload["updated_at"]),
        is_draft=bool(payload.get("draft", False)),
    )


def _to_issue(payload: dict[str, Any]) -> Issue:
    labels = frozenset(
        label["name"] if isinstance(label, dict) else str(label)
        for label in payload.get("labels") or []
    )
    return Issue(
        number=int(payload["number"]),
        title=payload.get("title", ""),
        state=payload.get("state", ""),
        author=_login(payload.get("user")),
        url=payload.get("html_url", ""),
        created_at=parse_timestamp(payload["created_at"]),
        labels=labels,
    )


def window_start(now: datetime, lookback_hours: int) -> datetime:
    """Start of the lookback window, in UTC and whole seconds.

    Native filters only take whole-second timestamps, so the local filter
    uses the same truncated boundary. A naive ``now`` is taken as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    since = now.astimezone(timezone.utc) - timedelta(hours=lookback_hours)
    return since.replace(microsecond=0)


def _apply_window(resource: str, records: list, since: datetime, attribute: str) -> list:
    if WINDOW_POLICY[resource] is WindowFilter.NATIVE:
        return records
    return [record for record in records if getattr(record, attribute) >= since]


class ActivityCollector:
    """Fetches activity for every owned repository, isolating per-repo failures."""

    def __init__(self, client: GitHubClient, config: DigestConfig) -> None:
        self.client = client
        self.config = config
        self.skipped: list[SkippedRepo] = []

    def list_owned_repos(self) -> list[RepoInfo]:
        return [_to_repo_info(item) for item in self.client.list_owned_repos()]

    def fetch_workflow_runs(self, full_name: str, since: datetime) -> list[WorkflowRun]:
        owner, repo = split_full_name(full_name)
        payload = self.client.list_workflow_runs(owner, repo, format_timestamp(since))
        runs = [_to_workflow_run(item) for item in payload or []]
        return _apply_window("workflow_runs", runs, since, "created_at")

    def fetch_recent_pull_requests(self, full_name: str, since: datetime) -> list[PullRequest]:
        owner, repo = split_full_name(full_name)
        payload = self.client.list_pull_requests(owner, repo, format_timestamp(since))
        pulls = [_to_pull_request(item) for item in payload or []]
        recent = _apply_window("pull_requests", pulls, since, "updated_at")
        return [
            replace(pull, review_decision=self._review_decision(owner, repo, pull.number))
            for pull in recent
        ]

    def _review_decision(self, owner: str, repo: str, number: int) -> str | None:
        try:
            reviews = self.client.list_reviews(owner, repo, number)
        except Exception as error:
            logger.warning("Reviews unavailable for %s/%s#%d: %s", owner, repo, number, error)
            return None
        return derive_review_decision(reviews or [])

    def fetch_recent_issues(self, full_name: str, since: datetime) -> list[Issue]:
        owner, repo = split_full_name(full_name)
        payload = self.client.list_issues(owner, repo, format_timestamp(since))
        # The issues endpoint also lists pull requests.
        issues = [_to_issue(item) for item in payload or [] if not item.get("pull_request")]
        return _apply_window("issues", issues, since, "created_at")

    def collect_repo(self, repo: RepoInfo, since: datetime) -> RepoActivity | SkippedRepo | None:
        try:
            activity = RepoActivity(
                repo_name=repo.name,
                full_name=repo.full_name,
                workflow_runs=tuple(self.fetch_workflow_runs(repo.full_name, since)),
                pull_requests=tuple(self.fetch_recent_pull_requests(repo.full_name, since)),
                issues=tuple(self.fetch_recent_issues(repo.full_name, since)),
            )
        except Exception as error:
            return SkippedRepo(full_name=repo.full_name, reason=str(error) or type(error).__name__)
        if not activity.has_activity:
            return None
        return activity

    def collect_all(self, now: datetime | None = None) -> list[RepoActivity]:
        self.skipped = []
        since = window_start(now or datetime.now(timezone.utc), self.config.lookback_hours)

        repos = [
            repo for repo in self.list_owned_repos()
            if repo.full_name not in self.config.exclude_repos
        ]
        logger.info(
            "Collecting activity since %s across %d repositories",
            format_timestamp(since), len(repos),
        )

        workers = max(1, min(self.config.concurrency, len(repos) or 1))
        if workers == 1:
            results = [self.collect_repo(repo, since) for repo in repos]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(lambda repo: self.collect_repo(repo, since), repos))

        activities: list[RepoActivity] = []
        for result in results:
            if isinstance(result, SkippedRepo):
                logger.warning("Skipping %s: %s", result.full_name, result.reason)
                self.skipped.append(result)
            elif result is not None:
                activities.append(result)
        return activities


def collect_all(
    client: GitHubClient,
    config: DigestConfig,
    now: datetime | None = None,
) -> list[RepoActivity]:
    return ActivityCollector(client, config).collect_all(now=now)
