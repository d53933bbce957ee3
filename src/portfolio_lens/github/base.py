"""Port: GitHub data source."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from portfolio_lens.models import CommitActivity, PinnedRepository, Repository, User


class GitHubClientPort(Protocol):
    """Port for reading public profile data from GitHub."""

    async def fetch_user(self, username: str) -> User:
        """Fetch the user profile. Raises NotFoundError for unknown users."""
        ...

    async def fetch_repositories(self, username: str) -> list[Repository]:
        """Fetch the user's public repositories."""
        ...

    async def fetch_pinned_repositories(self, username: str) -> list[PinnedRepository]:
        """Fetch repositories pinned on the user's profile."""
        ...

    async def fetch_readme(self, owner: str, repo: str) -> str | None:
        """Fetch raw README text, or None when the repository has none."""
        ...

    async def fetch_commit_activity(
        self,
        owner: str,
        repo: str,
        branch: str,
        since: datetime,
    ) -> CommitActivity:
        """Summarize commits on ``branch`` newer than ``since``."""
        ...
