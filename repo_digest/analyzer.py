"""Derives the digest report from collected repository activity.

Everything here is pure: no I/O, inputs are never mutated, and each
derivation keeps the input repository order.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from .models import (
    ActivitySummary,
    CIFailure,
    DigestReport,
    Issue,
    PullRequest,
    RepoActivity,
    WorkflowRun,
)


def latest_runs_by_workflow(runs: Sequence[WorkflowRun]) -> dict[str, WorkflowRun]:
    """Latest run per workflow name. On equal created_at the first run seen wins."""
    latest: dict[str, WorkflowRun] = {}
    for run in runs:
        current = latest.get(run.name)
        if current is None or run.created_at > current.created_at:
            latest[run.name] = run
    return latest


def detect_ci_failures(activities: Sequence[RepoActivity]) -> list[CIFailure]:
    failures: list[CIFailure] = []
    for activity in activities:
        for run in latest_runs_by_workflow(activity.workflow_runs).values():
            if run.conclusion == "failure":
                failures.append(
                    CIFailure(
                        repo=activity.full_name,
                        workflow_name=run.name,
                        url=run.url,
                        failed_at=run.created_at,
                    )
                )
    return failures


def is_awaiting_review(pull: PullRequest) -> bool:
    return pull.state == "open" and not pull.is_draft and pull.review_decision != "APPROVED"


def find_prs_awaiting_review(activities: Sequence[RepoActivity]) -> list[PullRequest]:
    return [
        replace(pull, repo_full_name=activity.full_name)
        for activity in activities
        for pull in activity.pull_requests
        if is_awaiting_review(pull)
    ]


def find_new_issues(activities: Sequence[RepoActivity]) -> list[Issue]:
    # The collector already bounded issues by update time; no created_at re-check.
    return [
        replace(issue, repo_full_name=activity.full_name)
        for activity in activities
        for issue in activity.issues
    ]


def summarize_activity(activities: Sequence[RepoActivity]) -> ActivitySummary:
    return ActivitySummary(
        repos_with_activity=len(activities),
        total_workflow_runs=sum(len(a.workflow_runs) for a in activities),
        total_prs=sum(len(a.pull_requests) for a in activities),
        total_issues=sum(len(a.issues) for a in activities),
    )


def find_repos_without_ci(activities: Sequence[RepoActivity]) -> list[str]:
    return [a.full_name for a in activities if not a.workflow_runs]


def analyze(activities: Sequence[RepoActivity]) -> DigestReport:
    return DigestReport(
        ci_failures=tuple(detect_ci_failures(activities)),
        prs_awaiting_review=tuple(find_prs_awaiting_review(activities)),
        new_issues=tuple(find_new_issues(activities)),
        activity_summary=summarize_activity(activities),
        repos_without_ci=tuple(find_repos_without_ci(activities)),
    )
