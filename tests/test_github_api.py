"""Unit tests for the GitHub REST client: retries, pagination and error mapping."""

from unittest.mock import Mock, patch

import pytest
import requests

from repo_digest.github_api import GitHubAPIError, GitHubClient, RateLimitExceeded


def response(status_code=200, payload=None, text="", headers=None):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.text = text
    resp.headers = headers or {}
    return resp


@pytest.fixture
def client():
    return GitHubClient(token="fake_github_token")


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("repo_digest.github_api.time.sleep") as sleep:
        yield sleep


class TestClientConstruction:
    def test_missing_token_raises(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GH_TOKEN", raising=False)
        with pytest.raises(GitHubAPIError):
            GitHubClient()

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env_token")
        assert GitHubClient().session.headers["Authorization"] == "Bearer env_token"


class TestRequest:
    def test_404_returns_none(self, client):
        with patch.object(client.session, "request", return_value=response(404)):
            assert client.get("/repos/user/alpha/labels/digest") is None

    def test_client_error_carries_status(self, client):
        with patch.object(client.session, "request", return_value=response(403, text="Forbidden")):
            with pytest.raises(GitHubAPIError) as excinfo:
                client.get("/repos/user/alpha/actions/runs")
        assert excinfo.value.status == 403

    def test_server_error_is_retried(self, client, no_sleep):
        responses = [response(502, text="Bad Gateway"), response(200, payload={"ok": True})]
        with patch.object(client.session, "request", side_effect=responses) as request:
            assert client.get("/rate_limit") == {"ok": True}
        assert request.call_count == 2
        assert no_sleep.call_count == 1

    def test_transport_error_wrapped_after_retries(self, client):
        with patch.object(
            client.session, "request", side_effect=requests.exceptions.ConnectionError("boom")
        ) as request:
            with pytest.raises(GitHubAPIError, match="after 3 retries"):
                client.get("/rate_limit")
        assert request.call_count == 4

    def test_rate_limit_exhaustion(self, client):
        limited = response(403, text="API rate limit exceeded for user")
        with patch.object(client.session, "request", return_value=limited):
            with pytest.raises(RateLimitExceeded):
                client.get("/user/repos")

    def test_low_remaining_waits_for_reset(self, client, no_sleep):
        headers = {"X-RateLimit-Remaining": "2", "X-RateLimit-Reset": "1"}
        with patch.object(client.session, "request", return_value=response(200, payload={}, headers=headers)):
            client.get("/rate_limit")
            client.get("/rate_limit")
        no_sleep.assert_called_once_with(5)


class TestPagination:
    def test_stops_on_short_page(self, client):
        pages = [
            response(200, payload=[{"id": i} for i in range(100)]),
            response(200, payload=[{"id": 100}]),
        ]
        with patch.object(client.session, "request", side_effect=pages) as request:
            items = client.get_paginated("/user/repos")
        assert len(items) == 101
        assert request.call_args_list[1].kwargs["params"]["page"] == 2

    def test_envelope_key(self, client):
        payload = {"total_count": 1, "workflow_runs": [{"name": "CI"}]}
        with patch.object(client.session, "request", return_value=response(200, payload=payload)):
            runs = client.list_workflow_runs("user", "alpha", "2025-06-14T12:00:00Z")
        assert runs == [{"name": "CI"}]

    def test_workflow_runs_created_filter(self, client):
        with patch.object(client.session, "request", return_value=response(200, payload={"workflow_runs": []})) as request:
            client.list_workflow_runs("user", "alpha", "2025-06-14T12:00:00Z")
        params = request.call_args.kwargs["params"]
        assert params["created"] == ">=2025-06-14T12:00:00Z"
        assert params["per_page"] == 100

    def test_missing_resource_yields_empty_list(self, client):
        with patch.object(client.session, "request", return_value=response(404)):
            assert client.list_workflow_runs("user", "alpha", "2025-06-14T12:00:00Z") == []

    def test_owned_repos_params(self, client):
        with patch.object(client.session, "request", return_value=response(200, payload=[])) as request:
            client.list_owned_repos()
        params = request.call_args.kwargs["params"]
        assert params["affiliation"] == "owner"
        assert params["sort"] == "updated"

    def test_pull_requests_stop_paging_past_the_window(self, client):
        def page(updated_at):
            return response(200, payload=[{"number": i, "updated_at": updated_at} for i in range(100)])

        pages = [page("2025-06-15T10:00:00Z"), page("2025-06-13T10:00:00Z"), page("2025-06-01T00:00:00Z")]
        with patch.object(client.session, "request", side_effect=pages) as request:
            pulls = client.list_pull_requests("user", "alpha", "2025-06-14T12:00:00Z")

        assert request.call_count == 2
        assert len(pulls) == 200
        params = request.call_args.kwargs["params"]
        assert params["sort"] == "updated"
        assert params["direction"] == "desc"

    def test_pull_requests_without_window_read_every_page(self, client):
        pages = [
            response(200, payload=[{"number": i, "updated_at": "2020-01-01T00:00:00Z"} for i in range(100)]),
            response(200, payload=[]),
        ]
        with patch.object(client.session, "request", side_effect=pages) as request:
            client.list_pull_requests("user", "alpha")
        assert request.call_count == 2


class TestRateLimitQuota:
    def test_reads_core_quota(self, client):
        payload = {"resources": {"core": {"remaining": 42, "limit": 5000}}}
        with patch.object(client.session, "request", return_value=response(200, payload=payload)) as request:
            assert client.check_rate_limit() == (42, 5000)
        assert request.call_args.args[1].endswith("/rate_limit")

    def test_missing_endpoint_reports_zero(self, client):
        with patch.object(client.session, "request", return_value=response(404)):
            assert client.check_rate_limit() == (0, 0)
