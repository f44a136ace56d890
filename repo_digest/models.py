from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (frozenset, set)):
        return sorted(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class RepoInfo:
    name: str
    full_name: str
    owner: str
    default_branch: str
    has_issues: bool
    updated_at: datetime | None


@dataclass(frozen=True)
class WorkflowRun:
    name: str
    status: str
    conclusion: str | None
    url: str
    created_at: datetime
    head_branch: str | None


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str
    state: str
    author: str
    url: str
    updated_at: datetime
    is_draft: bool
    review_decision: str | None = None
    repo_full_name: str | None = None


@dataclass(frozen=True)
class Issue:
    number: int
    title: str
    state: str
    author: str
    url: str
    created_at: datetime
    labels: frozenset[str] = frozenset()
    repo_full_name: str | None = None


@dataclass(frozen=True)
class RepoActivity:
    repo_name: str
    full_name: str
    workflow_runs: tuple[WorkflowRun, ...] = ()
    pull_requests: tuple[PullRequest, ...] = ()
    issues: tuple[Issue, ...] = ()

    @property
    def has_activity(self) -> bool:
        return bool(self.workflow_runs or self.pull_requests or self.issues)


@dataclass(frozen=True)
class SkippedRepo:
    """A repository whose activity could not be fetched this run."""

    full_name: str
    reason: str


@dataclass(frozen=True)
class CIFailure:
    repo: str
    workflow_name: str
    url: str
    failed_at: datetime


@dataclass(frozen=True)
class ActivitySummary:
    repos_with_activity: int = 0
    total_workflow_runs: int = 0
    total_prs: int = 0
    total_issues: int = 0


@dataclass(frozen=True)
class DigestReport:
    ci_failures: tuple[CIFailure, ...] = ()
    prs_awaiting_review: tuple[PullRequest, ...] = ()
    new_issues: tuple[Issue, ...] = ()
    activity_summary: ActivitySummary = field(default_factory=ActivitySummary)
    repos_without_ci: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))
