"""PortfolioAggregator -- concurrent collection of a user's GitHub signals."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from portfolio_lens.cache import TTLCache
from portfolio_lens.config import GITHUB_CACHE_TTL_SECONDS
from portfolio_lens.errors import UpstreamError
from portfolio_lens.github.base import GitHubClientPort
from portfolio_lens.github.readme import analyze_readme
from portfolio_lens.models import (
    CommitActivity,
    PinnedRepository,
    PortfolioMetrics,
    Repository,
    RepositoryAnalysis,
    User,
)

logger = logging.getLogger(__name__)

ACTIVITY_WINDOW_DAYS = 90


def normalize_username(raw: str) -> str:
    """Strip whitespace and a leading ``@`` from a GitHub handle."""
    return raw.strip().removeprefix("@").strip()


@dataclass
class PortfolioAggregator:
    """Builds a PortfolioMetrics snapshot for one GitHub user.

    Profile, repository list and pinned list are cached per username in
    separate caches. README and commit data are always fetched fresh.

    Args:
        github: The GitHub client adapter.
        cache_ttl_seconds: Lifetime of the per-username caches.
        max_concurrency: Upper bound on repositories processed at once
            (``None`` for no bound).
        clock: Monotonic time source shared by the caches.
    """

    github: GitHubClientPort
    cache_ttl_seconds: float = GITHUB_CACHE_TTL_SECONDS
    max_concurrency: int | None = 8
    clock: Callable[[], float] = time.monotonic
    user_cache: TTLCache[User] = field(init=False, repr=False)
    repos_cache: TTLCache[list[Repository]] = field(init=False, repr=False)
    pinned_cache: TTLCache[list[PinnedRepository]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.user_cache = TTLCache(self.cache_ttl_seconds, clock=self.clock)
        self.repos_cache = TTLCache(self.cache_ttl_seconds, clock=self.clock)
        self.pinned_cache = TTLCache(self.cache_ttl_seconds, clock=self.clock)

    async def analyze(self, username: str) -> PortfolioMetrics:
        """Collect profile, repositories and per-repository signals.

        Raises:
            NotFoundError, RateLimitedError, ForbiddenError, UpstreamError:
                when the profile or repository listing cannot be fetched.
            ConfigurationError: when no GitHub token is configured.
        """
        username = normalize_username(username)
        generated_at = datetime.now(tz=UTC)
        since = generated_at - timedelta(days=ACTIVITY_WINDOW_DAYS)

        results = await asyncio.gather(
            self._user(username),
            self._repositories(username),
            self._pinned(username),
            return_exceptions=True,
        )
        # Every sibling is collected; the profile error wins over the listing error.
        for result in results:
            if isinstance(result, BaseException):
                raise result
        user, repos, pinned = results

        analyses = await self._analyze_all(user.login, repos, since)

        total_commits = sum(a.commit_count_90d for a in analyses)
        # Coarse proxy: repositories with any commit in the window, not calendar months.
        active_months = sum(1 for a in analyses if a.commit_count_90d > 0)

        return PortfolioMetrics(
            user=user,
            repositories=tuple(analyses),
            pinned_repositories=tuple(pinned),
            total_commits_90d=total_commits,
            active_months_count=active_months,
            generated_at=generated_at,
        )

    # ── Top-level fetches (cached) ───────────────────────────────

    async def _user(self, username: str) -> User:
        cached = self.user_cache.get(username)
        if cached is not None:
            logger.debug("User cache hit for '%s'", username)
            return cached
        user = await self.github.fetch_user(username)
        self.user_cache.set(username, user)
        return user

    async def _repositories(self, username: str) -> list[Repository]:
        cached = self.repos_cache.get(username)
        if cached is not None:
            logger.debug("Repository cache hit for '%s'", username)
            return cached
        repos = await self.github.fetch_repositories(username)
        self.repos_cache.set(username, repos)
        return repos

    async def _pinned(self, username: str) -> list[PinnedRepository]:
        """Pinned repositories are best-effort: any upstream failure yields []."""
        cached = self.pinned_cache.get(username)
        if cached is not None:
            return cached
        try:
            pinned = await self.github.fetch_pinned_repositories(username)
        except UpstreamError as exc:
            logger.warning("Pinned repositories unavailable for '%s': %s", username, exc)
            return []
        self.pinned_cache.set(username, pinned)
        return pinned

    # ── Per-repository fetches (never cached) ────────────────────

    async def _analyze_all(
        self,
        owner: str,
        repos: list[Repository],
        since: datetime,
    ) -> list[RepositoryAnalysis]:
        sem = asyncio.Semaphore(self.max_concurrency or max(len(repos), 1))

        async def _limited(repo: Repository) -> RepositoryAnalysis:
            async with sem:
                return await self._analyze_repository(owner, repo, since)

        return list(await asyncio.gather(*(_limited(repo) for repo in repos)))

    async def _analyze_repository(
        self,
        owner: str,
        repo: Repository,
        since: datetime,
    ) -> RepositoryAnalysis:
        readme_text, activity = await asyncio.gather(
            self._readme_or_none(owner, repo),
            self._activity_or_empty(owner, repo, since),
        )
        readme = analyze_readme(readme_text)

        return RepositoryAnalysis(
            repository=repo,
            readme_present=readme.present,
            readme_length=readme.length,
            has_installation_section=readme.has_installation_section,
            has_usage_section=readme.has_usage_section,
            has_features_section=readme.has_features_section,
            has_screenshots_section=readme.has_screenshots_section,
            has_badges=readme.has_badges,
            commit_count_90d=activity.count,
            last_commit_date=activity.last_commit_date,
            languages=(repo.language,) if repo.language else (),
        )

    async def _readme_or_none(self, owner: str, repo: Repository) -> str | None:
        """A README that cannot be fetched is treated as absent."""
        try:
            return await self.github.fetch_readme(owner, repo.name)
        except UpstreamError as exc:
            logger.warning("README fetch failed for %s/%s: %s", owner, repo.name, exc)
            return None

    async def _activity_or_empty(
        self,
        owner: str,
        repo: Repository,
        since: datetime,
    ) -> CommitActivity:
        """Commit history that cannot be fetched (e.g. empty repo) counts as zero."""
        try:
            return await self.github.fetch_commit_activity(
                owner, repo.name, repo.default_branch, since
            )
        except UpstreamError as exc:
            logger.warning("Commit fetch failed for %s/%s: %s", owner, repo.name, exc)
            return CommitActivity()
