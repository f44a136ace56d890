"""Configuration constants and environment loading for the digest."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

DEFAULT_LOOKBACK_HOURS = 24
DEFAULT_DIGEST_LABEL = "digest"
DEFAULT_CONCURRENCY = 4

# Label created on the digest repo the first time a digest is published
DIGEST_LABEL_COLOR = "0075ca"
DIGEST_LABEL_DESCRIPTION = "Daily digest report"
DIGEST_TITLE_PREFIX = "Daily Digest"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class DigestConfig:
    github_token: str
    digest_repo: str
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS
    exclude_repos: frozenset[str] = field(default_factory=frozenset)
    digest_label: str = DEFAULT_DIGEST_LABEL
    concurrency: int = DEFAULT_CONCURRENCY


def parse_repo_list(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def _parse_positive_int(name: str, raw: str | None, default: int) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a positive integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be a positive integer, got {raw!r}")
    return value


def load_config(
    environ: Mapping[str, str] | None = None,
    *,
    require_digest_repo: bool = True,
) -> DigestConfig:
    """Build a DigestConfig from environment variables.

    ``require_digest_repo`` is relaxed for dry runs, which never publish.
    """
    env = os.environ if environ is None else environ

    token = env.get("GITHUB_TOKEN") or env.get("GH_TOKEN")
    if not token:
        raise ConfigError("GITHUB_TOKEN environment variable is required")

    digest_repo = (env.get("DIGEST_REPO") or "").strip()
    if not digest_repo and require_digest_repo:
        raise ConfigError("DIGEST_REPO environment variable is required")
    if digest_repo:
        owner, _, repo = digest_repo.partition("/")
        if not owner.strip() or not repo.strip() or "/" in repo:
            raise ConfigError(f"DIGEST_REPO '{digest_repo}' must use owner/repo format.")

    return DigestConfig(
        github_token=token,
        digest_repo=digest_repo,
        lookback_hours=_parse_positive_int(
            "LOOKBACK_HOURS", env.get("LOOKBACK_HOURS"), DEFAULT_LOOKBACK_HOURS
        ),
        exclude_repos=parse_repo_list(env.get("EXCLUDE_REPOS")),
        digest_label=(env.get("DIGEST_LABEL") or "").strip() or DEFAULT_DIGEST_LABEL,
        concurrency=_parse_positive_int(
            "DIGEST_CONCURRENCY", env.get("DIGEST_CONCURRENCY"), DEFAULT_CONCURRENCY
        ),
    )
