"""Rich terminal output for a digest report."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import DigestReport, SkippedRepo, format_timestamp

console = Console()


def display_summary(report: DigestReport):
    summary = report.activity_summary
    info_table = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
    info_table.add_column("Key", style="bold", width=24)
    info_table.add_column("Value", justify="right")

    info_table.add_row("Repos with activity", str(summary.repos_with_activity))
    info_table.add_row("Workflow runs", str(summary.total_workflow_runs))
    info_table.add_row("Pull requests", str(summary.total_prs))
    info_table.add_row("Issues", str(summary.total_issues))
    failures = len(report.ci_failures)
    info_table.add_row("CI failures", Text(str(failures), style="bold red" if failures else "green"))

    console.print()
    console.print(Panel(info_table, title="Daily Digest", box=box.DOUBLE))


def display_report(report: DigestReport, skipped: list[SkippedRepo] | None = None):
    """Print every section of the report as tables."""
    display_summary(report)

    if report.ci_failures:
        table = Table(title="CI Failures", box=box.ROUNDED)
        table.add_column("Repository", style="cyan")
        table.add_column("Workflow")
        table.add_column("Failed at")
        table.add_column("URL", style="dim")
        for failure in report.ci_failures:
            table.add_row(failure.repo, failure.workflow_name, format_timestamp(failure.failed_at), failure.url)
        console.print(table)

    if report.prs_awaiting_review:
        table = Table(title="PRs Awaiting Review", box=box.ROUNDED)
        table.add_column("Repository", style="cyan", max_width=30)
        table.add_column("PR", max_width=50)
        table.add_column("Author")
        table.add_column("Review", width=18)
        for pull in report.prs_awaiting_review:
            decision = pull.review_decision or "-"
            style = "yellow" if decision == "CHANGES_REQUESTED" else ""
            table.add_row(
                pull.repo_full_name or "",
                f"#{pull.number}: {pull.title[:45]}",
                pull.author,
                Text(decision, style=style),
            )
        console.print(table)

    if report.new_issues:
        table = Table(title="New Issues", box=box.ROUNDED)
        table.add_column("Repository", style="cyan", max_width=30)
        table.add_column("Issue", max_width=50)
        table.add_column("Author")
        table.add_column("Labels")
        for issue in report.new_issues:
            table.add_row(
                issue.repo_full_name or "",
                f"#{issue.number}: {issue.title[:45]}",
                issue.author,
                ", ".join(sorted(issue.labels)),
            )
        console.print(table)

    if report.repos_without_ci:
        console.print(Text("Repos without CI:", style="bold underline"))
        for name in report.repos_without_ci:
            console.print(f"  - {name}", style="yellow")

    if skipped:
        console.print()
        console.print(Text("Skipped repositories:", style="bold red"))
        for entry in skipped:
            console.print(f"  - {entry.full_name}: {entry.reason}", style="red")
