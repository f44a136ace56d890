"""GitHub API client with rate limiting and pagination support."""

import os
import time
import logging
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 100
RATE_LIMIT_BUFFER = 10
BACKOFF_MULTIPLIER = 1.5
REQUEST_TIMEOUT = 30


class GitHubAPIError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitExceeded(GitHubAPIError):
    pass


class GitHubClient:
    """Handles all communication with the GitHub REST API."""

    BASE_URL = "https://api.github.com"

    def __init__(self, token: Optional[str] = None):
        self.token = token or os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")
        if not self.token:
            raise GitHubAPIError("No GitHub token found. Set GITHUB_TOKEN or pass --token.")
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repo-digest",
        })
        self._requests_remaining = None
        self._reset_time = None

    def _update_rate_limit(self, response: requests.Response):
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is not None:
            self._requests_remaining = int(remaining)
        if reset is not None:
            self._reset_time = int(reset)

    def _wait_for_rate_limit(self):
        if self._requests_remaining is not None and self._requests_remaining < RATE_LIMIT_BUFFER:
            if self._reset_time:
                wait_seconds = max(0, self._reset_time - int(time.time())) + 5
                logger.warning(
                    "Rate limit low (%d remaining). Waiting %d seconds.",
                    self._requests_remaining, wait_seconds
                )
                time.sleep(wait_seconds)

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        self._wait_for_rate_limit()
        url = f"{self.BASE_URL}{endpoint}" if endpoint.startswith("/") else endpoint
        retries = 3
        backoff = 2.0

        for attempt in range(retries + 1):
            try:
                response = self.session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
            except requests.exceptions.RequestException as e:
                if attempt < retries:
                    logger.warning("Request failed (%s). Retrying in %.1f seconds.", e, backoff)
                    time.sleep(backoff)
                    backoff *= BACKOFF_MULTIPLIER
                    continue
                raise GitHubAPIError(f"Request failed after {retries} retries: {e}")

            self._update_rate_limit(response)

            if response.status_code in (403, 429) and "rate limit" in response.text.lower():
                if attempt < retries:
                    wait = max(backoff, self._reset_time - time.time() + 5) if self._reset_time else backoff
                    logger.warning("Rate limited. Retrying in %.1f seconds.", wait)
                    time.sleep(wait)
                    backoff *= BACKOFF_MULTIPLIER
                    continue
                raise RateLimitExceeded("GitHub API rate limit exceeded", status=response.status_code)

            if response.status_code >= 500 and attempt < retries:
                logger.warning(
                    "GitHub returned %d for %s. Retrying in %.1f seconds.",
                    response.status_code, endpoint, backoff
                )
                time.sleep(backoff)
                backoff *= BACKOFF_MULTIPLIER
                continue

            if response.status_code == 404:
                return response

            if response.status_code >= 400:
                raise GitHubAPIError(
                    f"GitHub API error {response.status_code} for {method} {endpoint}: {response.text[:300]}",
                    status=response.status_code,
                )
            return response

        raise GitHubAPIError("Max retries exceeded")

    def get(self, endpoint: str, params: Optional[dict] = None) -> Optional[dict]:
        response = self._request("GET", endpoint, params=params)
        if response.status_code == 404:
            return None
        return response.json()

    def post(self, endpoint: str, payload: dict) -> dict:
        response = self._request("POST", endpoint, json=payload)
        if response.status_code == 404:
            raise GitHubAPIError(f"Not found: POST {endpoint}", status=404)
        return response.json()

    def get_paginated(self, endpoint: str, params: Optional[dict] = None,
                      items_key: Optional[str] = None,
                      max_pages: Optional[int] = None,
                      stop_after: Optional[Callable[[list], bool]] = None) -> list:
        """Fetch pages of a paginated endpoint until a short page comes back.

        ``items_key`` names the list inside an object payload (e.g. the
        ``workflow_runs`` envelope of the Actions API). ``max_pages`` of None
        means no page cap. ``stop_after`` is called with each full page and
        ends pagination early when it returns True.
        """
        params = dict(params or {})
        per_page = params.setdefault("per_page", DEFAULT_PER_PAGE)
        all_items = []
        page = 1

        while max_pages is None or page <= max_pages:
            response = self._request("GET", endpoint, params={**params, "page": page})
            if response.status_code == 404:
                break
            payload = response.json()
            items = payload.get(items_key, []) if items_key else payload
            if not isinstance(items, list):
                raise GitHubAPIError(f"Expected list for paginated endpoint {endpoint}, got {type(items)}")
            all_items.extend(items)
            if len(items) < per_page:
                break
            if stop_after is not None and stop_after(items):
                break
            page += 1

        return all_items

    # ── Repositories ────────────────────────────────────────────

    def list_owned_repos(self) -> list:
        return self.get_paginated(
            "/user/repos",
            params={"affiliation": "owner", "sort": "updated"},
        )

    # ── Activity ────────────────────────────────────────────────

    def list_workflow_runs(self, owner: str, repo: str, created_since: str) -> list:
        return self.get_paginated(
            f"/repos/{owner}/{repo}/actions/runs",
            params={"created": f">={created_since}"},
            items_key="workflow_runs",
        )

    def list_pull_requests(self, owner: str, repo: str, updated_since: Optional[str] = None) -> list:
        """List PRs newest-updated first.

        The endpoint has no ``since`` filter. With ``updated_since`` paging
        stops after the first page that ends before it; older PRs on that
        last page are still returned and must be filtered by the caller.
        """
        stop_after = None
        if updated_since:
            # GitHub timestamps share one fixed ISO format, so they order as strings.
            def stop_after(items: list) -> bool:
                return (items[-1].get("updated_at") or "") < updated_since

        return self.get_paginated(
            f"/repos/{owner}/{repo}/pulls",
            params={"state": "all", "sort": "updated", "direction": "desc"},
            stop_after=stop_after,
        )

    def list_reviews(self, owner: str, repo: str, pr_number: int) -> list:
        return self.get_paginated(f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews")

    def list_issues(self, owner: str, repo: str, since: str) -> list:
        return self.get_paginated(
            f"/repos/{owner}/{repo}/issues",
            params={"state": "all", "since": since},
        )

    # ── Publishing ──────────────────────────────────────────────

    def get_label(self, owner: str, repo: str, name: str) -> Optional[dict]:
        return self.get(f"/repos/{owner}/{repo}/labels/{name}")

    def create_label(self, owner: str, repo: str, name: str, color: str, description: str) -> dict:
        return self.post(
            f"/repos/{owner}/{repo}/labels",
            {"name": name, "color": color, "description": description},
        )

    def create_issue(self, owner: str, repo: str, title: str, body: str, labels: list) -> dict:
        return self.post(
            f"/repos/{owner}/{repo}/issues",
            {"title": title, "body": body, "labels": labels},
        )

    def get_rate_limit(self) -> Optional[dict]:
        return self.get("/rate_limit")

    def check_rate_limit(self) -> tuple[int, int]:
        """Returns (remaining, limit) for core API."""
        data = self.get_rate_limit() or {}
        core = data.get("resources", {}).get("core", {})
        return core.get("remaining", 0), core.get("limit", 0)
