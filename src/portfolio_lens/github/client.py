"""Async client for the GitHub REST and GraphQL APIs.

REST docs: https://docs.github.com/en/rest
Only the handful of endpoints needed to profile a user are wrapped here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote as urlquote

import httpx

from portfolio_lens.config import DEFAULT_GITHUB_API_URL
from portfolio_lens.errors import (
    ConfigurationError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UpstreamError,
)
from portfolio_lens.models import CommitActivity, PinnedRepository, Repository, User

logger = logging.getLogger(__name__)

REPOS_PER_PAGE = 100
REPO_PAGES = 2
PINNED_LIMIT = 6

_PINNED_QUERY = """
query($login: String!) {
  user(login: $login) {
    pinnedItems(first: %d, types: REPOSITORY) {
      nodes {
        ... on Repository {
          name
          description
          stargazerCount
          forkCount
          primaryLanguage { name }
          url
        }
      }
    }
  }
}
""" % PINNED_LIMIT

_RATE_LIMIT_MESSAGE = "GitHub API rate limit exceeded. Please try again later."


class GitHubClient:
    """Adapter for GitHubClientPort — holds httpx client and auth token.

    Also tracks the rate-limit window advertised by GitHub: once a response
    reports zero remaining quota, requests against that quota (REST or
    GraphQL) fail fast with RateLimitedError until the advertised reset time.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        *,
        api_url: str = DEFAULT_GITHUB_API_URL,
    ) -> None:
        self._http = http_client
        self._token = token
        self._api_url = api_url.rstrip("/")
        # GitHub meters REST ("core") and GraphQL quotas separately.
        self._rate_limit_resets: dict[str, float] = {}
        self._logged_rate_limit_hint = False

    # ── Public API ───────────────────────────────────────────────

    async def fetch_user(self, username: str) -> User:
        data = await self._get_json(f"/users/{urlquote(username, safe='')}")
        return _parse_user(data)

    async def fetch_repositories(self, username: str) -> list[Repository]:
        """Fetch up to ``REPO_PAGES * REPOS_PER_PAGE`` repos, most recently updated first."""
        path = f"/users/{urlquote(username, safe='')}/repos"
        pages = await asyncio.gather(
            *(
                self._get_json(
                    path,
                    params={"per_page": REPOS_PER_PAGE, "sort": "updated", "page": page},
                )
                for page in range(1, REPO_PAGES + 1)
            )
        )
        repos = [_parse_repository(raw) for page in pages for raw in page]
        return repos[: REPO_PAGES * REPOS_PER_PAGE]

    async def fetch_pinned_repositories(self, username: str) -> list[PinnedRepository]:
        """Fetch pinned repositories via GraphQL.

        Non-2xx responses and GraphQL-level errors return an empty list;
        transport failures raise UpstreamError.
        """
        response = await self._request(
            "POST",
            "/graphql",
            json={"query": _PINNED_QUERY, "variables": {"login": username}},
            resource="graphql",
        )
        if not response.is_success:
            logger.warning(
                "Pinned repository query for '%s' failed with status %s",
                username,
                response.status_code,
            )
            return []

        payload = _decode_json(response)
        if not isinstance(payload, dict):
            logger.warning("Pinned repository query for '%s' returned no object", username)
            return []
        user = (payload.get("data") or {}).get("user")
        if payload.get("errors") or not user:
            logger.warning("Pinned repository query for '%s' returned no user", username)
            return []

        nodes = (user.get("pinnedItems") or {}).get("nodes") or []
        return [_parse_pinned(node) for node in nodes if node]

    async def fetch_readme(self, owner: str, repo: str) -> str | None:
        """Return raw README text, or None if the repository has no README."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/readme",
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        if response.status_code == 404:
            return None
        _raise_for_status(response)
        return response.text

    async def fetch_commit_activity(
        self,
        owner: str,
        repo: str,
        branch: str,
        since: datetime,
    ) -> CommitActivity:
        """Summarize commits on ``branch`` since ``since`` (first page only, max 100)."""
        commits = await self._get_json(
            f"/repos/{owner}/{repo}/commits",
            params={
                "sha": branch,
                "since": since.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "per_page": 100,
            },
        )
        if not isinstance(commits, list):
            raise UpstreamError(
                f"GitHub API returned unexpected commit payload for {owner}/{repo}."
            )
        return _summarize_commits(commits)

    # ── HTTP plumbing ────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise ConfigurationError("Missing GITHUB_TOKEN in environment variables.")
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
        }

    def _is_rate_limited(self, resource: str) -> bool:
        return time.monotonic() < self._rate_limit_resets.get(resource, 0.0)

    def _check_rate_limit(self, resource: str, response: httpx.Response) -> None:
        """Update the local rate-limit gate and emit a single warning."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining != "0":
            return
        try:
            reset_epoch = int(response.headers.get("X-RateLimit-Reset", "0"))
        except ValueError:
            reset_epoch = 0
        wait = max(0.0, reset_epoch - time.time())
        self._rate_limit_resets[resource] = time.monotonic() + wait

        if not self._logged_rate_limit_hint:
            logger.warning(
                "GitHub %s rate limit exhausted; requests blocked until reset.", resource
            )
            self._logged_rate_limit_hint = True

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        resource: str = "core",
    ) -> httpx.Response:
        request_headers = self._headers()
        if headers:
            request_headers.update(headers)

        if self._is_rate_limited(resource):
            raise RateLimitedError(_RATE_LIMIT_MESSAGE, status=403)

        try:
            response = await self._http.request(
                method,
                f"{self._api_url}{path}",
                headers=request_headers,
                params=params,
                json=json,
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GitHub API request failed: {exc}") from exc

        self._check_rate_limit(resource, response)
        return response

    async def _get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        _raise_for_status(response)
        return _decode_json(response)


def _raise_for_status(response: httpx.Response) -> None:
    """Map a non-2xx GitHub response onto the error taxonomy."""
    status = response.status_code
    if response.is_success:
        return
    if status == 404:
        raise NotFoundError("GitHub user or resource not found.", status=404)
    if status == 403:
        if response.headers.get("X-RateLimit-Remaining") == "0":
            raise RateLimitedError(_RATE_LIMIT_MESSAGE, status=403)
        raise ForbiddenError(
            "GitHub API access forbidden. Check token permissions.", status=403
        )
    body = response.text
    raise UpstreamError(f"GitHub API error: {status} {body}", status=status, body=body)


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(
            f"GitHub API returned invalid JSON: {exc}",
            status=response.status_code,
            body=response.text[:200],
        ) from exc


# ── Parsing helpers ──────────────────────────────────────────


def _parse_user(raw: dict) -> User:
    return User(
        login=raw.get("login", ""),
        name=raw.get("name"),
        avatar_url=raw.get("avatar_url", ""),
        html_url=raw.get("html_url", ""),
        followers=raw.get("followers") or 0,
        public_repos=raw.get("public_repos") or 0,
        bio=raw.get("bio"),
        company=raw.get("company"),
        location=raw.get("location"),
    )


def _parse_repository(raw: dict) -> Repository:
    return Repository(
        id=raw.get("id", 0),
        name=raw.get("name", ""),
        full_name=raw.get("full_name", ""),
        html_url=raw.get("html_url", ""),
        description=raw.get("description"),
        stargazers_count=raw.get("stargazers_count") or 0,
        forks_count=raw.get("forks_count") or 0,
        open_issues_count=raw.get("open_issues_count") or 0,
        language=raw.get("language"),
        topics=tuple(raw.get("topics") or ()),
        archived=bool(raw.get("archived", False)),
        disabled=bool(raw.get("disabled", False)),
        size=raw.get("size") or 0,
        default_branch=raw.get("default_branch") or "main",
        created_at=raw.get("created_at", ""),
        updated_at=raw.get("updated_at", ""),
    )


def _parse_pinned(node: dict) -> PinnedRepository:
    language = node.get("primaryLanguage")
    return PinnedRepository(
        name=node.get("name", ""),
        description=node.get("description"),
        stargazer_count=node.get("stargazerCount") or 0,
        fork_count=node.get("forkCount") or 0,
        primary_language=language.get("name") if isinstance(language, dict) else None,
        url=node.get("url", ""),
    )


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None


def _summarize_commits(commits: list[dict]) -> CommitActivity:
    """Count commits and find the newest author date and the months touched."""
    last_raw: str | None = None
    last_dt: datetime | None = None
    months: set[str] = set()

    for commit in commits:
        raw_date = ((commit.get("commit") or {}).get("author") or {}).get("date")
        when = _parse_timestamp(raw_date) if raw_date else None
        if when is None:
            continue
        months.add(f"{when.year:04d}-{when.month:02d}")
        if last_dt is None or when > last_dt:
            last_dt = when
            last_raw = raw_date

    return CommitActivity(
        count=len(commits),
        last_commit_date=last_raw,
        active_months=frozenset(months),
    )
