from __future__ import annotations

import argparse
import logging
import os
from datetime import datetime, timezone

from rich.logging import RichHandler

from .analyzer import analyze
from .collector import ActivityCollector
from .config import ConfigError, load_config
from .display import console, display_report
from .formatter import format_digest
from .github_api import GitHubAPIError, GitHubClient
from .output import write_json, write_markdown
from .publisher import publish_digest

logger = logging.getLogger(__name__)


def _environment(args: argparse.Namespace) -> dict[str, str]:
    """Environment with command-line flags layered on top."""
    env = dict(os.environ)
    if args.token:
        env["GITHUB_TOKEN"] = args.token
    if args.digest_repo:
        env["DIGEST_REPO"] = args.digest_repo
    if args.lookback_hours is not None:
        env["LOOKBACK_HOURS"] = str(args.lookback_hours)
    if args.label:
        env["DIGEST_LABEL"] = args.label
    if args.concurrency is not None:
        env["DIGEST_CONCURRENCY"] = str(args.concurrency)
    if args.exclude:
        existing = env.get("EXCLUDE_REPOS", "")
        env["EXCLUDE_REPOS"] = ",".join([existing, *args.exclude])
    return env


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Collect CI runs, pull requests and issues across your repositories"
            " and publish a daily digest issue."
        )
    )
    parser.add_argument("--token", default=None, help="GitHub token (default: GITHUB_TOKEN).")
    parser.add_argument(
        "--digest-repo",
        default=None,
        help="owner/repo that receives the digest issue (default: DIGEST_REPO).",
    )
    parser.add_argument(
        "--lookback-hours",
        type=int,
        default=None,
        help="Size of the activity window in hours (default: LOOKBACK_HOURS or 24).",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="owner/repo to skip. Repeatable, or comma-separated.",
    )
    parser.add_argument("--label", default=None, help="Label applied to the digest issue.")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Repositories fetched in parallel (default: 4).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the report instead of publishing it.",
    )
    parser.add_argument("--json-out", default=None, help="Write the report as JSON to this path.")
    parser.add_argument("--markdown-out", default=None, help="Write the rendered digest to this path.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(_environment(args), require_digest_repo=not args.dry_run)
        client = GitHubClient(config.github_token)
        collector = ActivityCollector(client, config)

        remaining, limit = client.check_rate_limit()
        logger.info("GitHub API quota: %d/%d remaining", remaining, limit)
        logger.info("Collecting activity from the last %d hours...", config.lookback_hours)
        activities = collector.collect_all()
        logger.info("Found activity in %d repos.", len(activities))

        report = analyze(activities)
        generated_at = datetime.now(timezone.utc)
        markdown = format_digest(report, generated_at)

        if args.json_out:
            write_json(args.json_out, report)
            console.print(f"[green]Saved to {args.json_out}[/green]")
        if args.markdown_out:
            write_markdown(args.markdown_out, markdown)
            console.print(f"[green]Saved to {args.markdown_out}[/green]")

        if args.dry_run:
            display_report(report, collector.skipped)
            return 0

        logger.info("Publishing digest to %s...", config.digest_repo)
        issue_url = publish_digest(
            client,
            config.digest_repo,
            markdown,
            config.digest_label,
            today=generated_at.date(),
        )
    except (ConfigError, GitHubAPIError, ValueError) as error:
        console.print(f"[red]Error: {error}[/red]")
        return 1

    console.print(f"[green]Digest published: {issue_url}[/green]")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
