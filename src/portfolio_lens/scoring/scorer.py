"""Compute the portfolio score from an aggregated metrics snapshot."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

from portfolio_lens.models import (
    Band,
    PortfolioMetrics,
    PortfolioScore,
    RepositoryAnalysis,
    ScoreBreakdown,
)

RECENT_WINDOW = timedelta(days=90)

SMALL_REPO_KB = 50
LARGE_REPO_KB = 1000

# Per-repository documentation maximum: base 10 + length 5 + sections 6 + badges 2
_DOC_MAX_PER_REPO = 23
# Per-repository structure maximum: name 3 + description 2 + stack keyword 3
_STRUCTURE_MAX_PER_REPO = 8

_STRUCTURE_KEYWORDS = (
    "next.js",
    "react",
    "node",
    "express",
    "django",
    "fastapi",
    "nest",
    "kubernetes",
    "microservice",
)

_ADVANCED_KEYWORDS = (
    "machine learning",
    "deep learning",
    "ai",
    "llm",
    "graphql",
    "kubernetes",
    "docker",
    "cloud",
    "aws",
    "gcp",
    "azure",
    "microservice",
)

_BAND_THRESHOLDS = (
    (85, Band.RECRUITER_READY),
    (70, Band.STRONG),
    (50, Band.NEEDS_OPTIMIZATION),
)


def _clamp(value: float, low: float, high: float) -> float:
    return float(max(low, min(high, value)))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp. Returns None on failure."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _is_active(analysis: RepositoryAnalysis) -> bool:
    repo = analysis.repository
    return not (repo.archived or repo.disabled)


def _description(analysis: RepositoryAnalysis) -> str:
    return (analysis.repository.description or "").lower()


def _mentions_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


# ─── Sub-scores ───────────────────────────────────────────────


def documentation_score(metrics: PortfolioMetrics) -> float:
    """README coverage and quality (0-20)."""
    repos = metrics.repositories
    if not repos:
        return 0.0

    points = 0.0
    for analysis in repos:
        if not analysis.readme_present:
            continue
        points += 10
        if analysis.readme_length > 300:
            points += 5
        points += min(analysis.section_count * 1.5, 6)
        if analysis.has_badges:
            points += 2

    return _clamp(points / (len(repos) * _DOC_MAX_PER_REPO) * 20, 0, 20)


def code_structure_score(metrics: PortfolioMetrics) -> float:
    """Naming, description and stack signals of substantial repositories (0-20).

    Repositories under 50 KB, archived or disabled are ignored entirely.
    """
    points = 0
    considered = 0

    for analysis in metrics.repositories:
        repo = analysis.repository
        if repo.size < SMALL_REPO_KB or not _is_active(analysis):
            continue
        considered += 1

        name = repo.name.lower()
        if not name.startswith("test-") and not name.startswith("playground"):
            points += 3
        if repo.description and len(repo.description) > 40:
            points += 2
        if _mentions_any(_description(analysis), _STRUCTURE_KEYWORDS):
            points += 3

    if considered == 0:
        return 0.0
    return _clamp(points / (considered * _STRUCTURE_MAX_PER_REPO) * 20, 0, 20)


def activity_score(metrics: PortfolioMetrics) -> float:
    """Commit volume in the last 90 days plus breadth of recent work (0-20)."""
    if not metrics.repositories:
        return 0.0

    commits = metrics.total_commits_90d
    if commits == 0:
        score = 0
    elif commits < 20:
        score = 6
    elif commits < 60:
        score = 10
    elif commits < 150:
        score = 15
    else:
        score = 18

    cutoff = metrics.generated_at - RECENT_WINDOW
    recently_touched = 0
    for analysis in metrics.repositories:
        last = _parse_iso(analysis.last_commit_date)
        if last is not None and last >= cutoff:
            recently_touched += 1
    if recently_touched >= 3:
        score += 2

    return _clamp(score, 0, 20)


def technical_depth_score(metrics: PortfolioMetrics) -> float:
    """Language diversity, project size and advanced-stack mentions (0-15)."""
    if not metrics.repositories:
        return 0.0

    languages: set[str] = set()
    large_projects = 0
    advanced_stacks = 0

    for analysis in metrics.repositories:
        if not _is_active(analysis):
            continue
        repo = analysis.repository
        if repo.language:
            languages.add(repo.language)
        if repo.size > LARGE_REPO_KB:
            large_projects += 1
        if _mentions_any(_description(analysis), _ADVANCED_KEYWORDS):
            advanced_stacks += 1

    score = 0
    if len(languages) >= 1:
        score += 4
    if len(languages) >= 3:
        score += 3
    if large_projects >= 1:
        score += 4
    if large_projects >= 3:
        score += 2
    if advanced_stacks >= 1:
        score += 2
    if advanced_stacks >= 3:
        score += 2

    return _clamp(score, 0, 15)


def impact_score(metrics: PortfolioMetrics) -> float:
    """Stars and forks, minus a penalty for a large open-issue backlog (0-15)."""
    if not metrics.repositories:
        return 0.0

    stars = sum(a.repository.stargazers_count for a in metrics.repositories)
    forks = sum(a.repository.forks_count for a in metrics.repositories)
    issues = sum(a.repository.open_issues_count for a in metrics.repositories)

    score = 0
    if stars > 0:
        score += 4
    if stars > 10:
        score += 3
    if stars > 50:
        score += 3
    if forks > 0:
        score += 2
    if forks > 10:
        score += 2
    if issues > 20:
        score -= 2

    return _clamp(score, 0, 15)


def organization_score(metrics: PortfolioMetrics) -> float:
    """Pinned showcase, complete repositories and archived clutter (0-10)."""
    if not metrics.repositories:
        return 0.0

    score = 0
    pinned = len(metrics.pinned_repositories)
    if pinned >= 1:
        score += 4
    if pinned >= 3:
        score += 2

    complete = sum(1 for a in metrics.repositories if a.readme_present and _is_active(a))
    if complete >= 3:
        score += 3
    if complete >= 5:
        score += 1

    archived_small = sum(
        1
        for a in metrics.repositories
        if a.repository.archived and a.repository.size < SMALL_REPO_KB
    )
    if archived_small >= 3:
        score += 2

    return _clamp(score, 0, 10)


# ─── Aggregate ────────────────────────────────────────────────


def band_for(total: int) -> Band:
    """Map a total score onto its band (inclusive lower bounds)."""
    for threshold, band in _BAND_THRESHOLDS:
        if total >= threshold:
            return band
    return Band.MAJOR_IMPROVEMENTS


def score_portfolio(metrics: PortfolioMetrics) -> PortfolioScore:
    """Compute the 0-100 portfolio score.

    Scoring components (each normalized to its own maximum):
    - documentation: up to 20
    - code structure: up to 20
    - activity: up to 20
    - technical depth: up to 15
    - impact: up to 15
    - organization: up to 10

    Band thresholds:
    - Recruiter Ready: >= 85
    - Strong but Improvable: >= 70
    - Needs Optimization: >= 50
    - Major Improvements Needed: < 50

    Pure and deterministic: recency is measured against
    ``metrics.generated_at`` rather than the current time.
    """
    breakdown = ScoreBreakdown(
        documentation=documentation_score(metrics),
        code_structure=code_structure_score(metrics),
        activity=activity_score(metrics),
        technical_depth=technical_depth_score(metrics),
        impact=impact_score(metrics),
        organization=organization_score(metrics),
    )

    total = int(_clamp(_round_half_up(sum(breakdown.values())), 0, 100))

    return PortfolioScore(total=total, breakdown=breakdown, band=band_for(total))
