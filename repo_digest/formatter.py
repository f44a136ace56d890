"""Markdown rendering of a DigestReport."""

from __future__ import annotations

from datetime import datetime

from .config import DIGEST_TITLE_PREFIX
from .models import DigestReport, format_timestamp

NONE_LINE = "_None._"


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _summary_section(report: DigestReport) -> list[str]:
    summary = report.activity_summary
    return [
        "## Summary",
        "",
        "| Metric | Count |",
        "| --- | ---: |",
        f"| Repos with activity | {summary.repos_with_activity} |",
        f"| Workflow runs | {summary.total_workflow_runs} |",
        f"| Pull requests | {summary.total_prs} |",
        f"| Issues | {summary.total_issues} |",
        f"| CI failures | {len(report.ci_failures)} |",
        f"| PRs awaiting review | {len(report.prs_awaiting_review)} |",
    ]


def _ci_section(report: DigestReport) -> list[str]:
    lines = ["## CI Failures", ""]
    if not report.ci_failures:
        return lines + [NONE_LINE]
    lines += ["| Repository | Workflow | Failed at |", "| --- | --- | --- |"]
    for failure in report.ci_failures:
        lines.append(
            f"| {failure.repo} | [{_cell(failure.workflow_name)}]({failure.url}) "
            f"| {format_timestamp(failure.failed_at)} |"
        )
    return lines


def _pr_section(report: DigestReport) -> list[str]:
    lines = ["## PRs Awaiting Review", ""]
    if not report.prs_awaiting_review:
        return lines + [NONE_LINE]
    lines += ["| Repository | PR | Author | Review |", "| --- | --- | --- | --- |"]
    for pull in report.prs_awaiting_review:
        decision = pull.review_decision or "NONE"
        lines.append(
            f"| {pull.repo_full_name} | [#{pull.number} {_cell(pull.title)}]({pull.url}) "
            f"| @{pull.author} | {decision} |"
        )
    return lines


def _issue_section(report: DigestReport) -> list[str]:
    lines = ["## New Issues", ""]
    if not report.new_issues:
        return lines + [NONE_LINE]
    lines += ["| Repository | Issue | Author | Labels |", "| --- | --- | --- | --- |"]
    for issue in report.new_issues:
        labels = ", ".join(f"`{label}`" for label in sorted(issue.labels)) or "-"
        lines.append(
            f"| {issue.repo_full_name} | [#{issue.number} {_cell(issue.title)}]({issue.url}) "
            f"| @{issue.author} | {labels} |"
        )
    return lines


def _no_ci_section(report: DigestReport) -> list[str]:
    lines = ["## Repos Without CI", ""]
    if not report.repos_without_ci:
        return lines + [NONE_LINE]
    return lines + [f"- {name}" for name in report.repos_without_ci]


def format_digest(report: DigestReport, generated_at: datetime) -> str:
    sections = [
        [f"# {DIGEST_TITLE_PREFIX}: {generated_at.strftime('%Y-%m-%d')}", ""],
        _summary_section(report),
        _ci_section(report),
        _pr_section(report),
        _issue_section(report),
        _no_ci_section(report),
        [f"_Generated at {format_timestamp(generated_at)}._"],
    ]
    return "\n\n".join("\n".join(section).rstrip() for section in sections) + "\n"
