"""Domain models for portfolio-lens. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import ClassVar

# ─── Enumerations ─────────────────────────────────────────────


class Band(StrEnum):
    RECRUITER_READY = "Recruiter Ready"
    STRONG = "Strong but Improvable"
    NEEDS_OPTIMIZATION = "Needs Optimization"
    MAJOR_IMPROVEMENTS = "Major Improvements Needed"


# ─── GitHub Models ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class User:
    """A GitHub account as returned by the users endpoint."""

    login: str
    name: str | None = None
    avatar_url: str = ""
    html_url: str = ""
    followers: int = 0
    public_repos: int = 0
    bio: str | None = None
    company: str | None = None
    location: str | None = None


@dataclass(frozen=True, slots=True)
class Repository:
    """A repository from the user's public listing."""

    id: int
    name: str
    full_name: str = ""
    html_url: str = ""
    description: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    language: str | None = None
    topics: tuple[str, ...] = ()
    archived: bool = False
    disabled: bool = False
    size: int = 0  # KB
    default_branch: str = "main"
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True, slots=True)
class PinnedRepository:
    """A pinned item from the GraphQL profile query. Independent of Repository."""

    name: str
    description: str | None = None
    stargazer_count: int = 0
    fork_count: int = 0
    primary_language: str | None = None
    url: str = ""


@dataclass(frozen=True, slots=True)
class CommitActivity:
    """Commits on the default branch inside the lookback window."""

    count: int = 0
    last_commit_date: str | None = None
    active_months: frozenset[str] = frozenset()  # "YYYY-MM"


@dataclass(frozen=True, slots=True)
class ReadmeSignals:
    """Heuristics extracted from README text."""

    present: bool = False
    length: int = 0
    has_installation_section: bool = False
    has_usage_section: bool = False
    has_features_section: bool = False
    has_screenshots_section: bool = False
    has_badges: bool = False


@dataclass(frozen=True, slots=True)
class RepositoryAnalysis:
    """One repository plus its README heuristics and recent commit activity."""

    repository: Repository
    readme_present: bool = False
    readme_length: int = 0
    has_installation_section: bool = False
    has_usage_section: bool = False
    has_features_section: bool = False
    has_screenshots_section: bool = False
    has_badges: bool = False
    commit_count_90d: int = 0
    last_commit_date: str | None = None
    languages: tuple[str, ...] = ()

    @property
    def section_count(self) -> int:
        return sum(
            (
                self.has_installation_section,
                self.has_usage_section,
                self.has_features_section,
                self.has_screenshots_section,
            )
        )


@dataclass(frozen=True, slots=True)
class PortfolioMetrics:
    """Aggregated snapshot of a profile. The sole input to scoring.

    ``generated_at`` is the instant the snapshot was assembled and serves as
    "now" for recency checks, so scoring never reads the wall clock.
    """

    user: User
    repositories: tuple[RepositoryAnalysis, ...] = ()
    pinned_repositories: tuple[PinnedRepository, ...] = ()
    total_commits_90d: int = 0
    active_months_count: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


# ─── Scoring Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    documentation: float = 0.0
    code_structure: float = 0.0
    activity: float = 0.0
    technical_depth: float = 0.0
    impact: float = 0.0
    organization: float = 0.0

    MAXIMA: ClassVar[dict[str, float]] = {
        "documentation": 20.0,
        "code_structure": 20.0,
        "activity": 20.0,
        "technical_depth": 15.0,
        "impact": 15.0,
        "organization": 10.0,
    }

    def values(self) -> tuple[float, ...]:
        return (
            self.documentation,
            self.code_structure,
            self.activity,
            self.technical_depth,
            self.impact,
            self.organization,
        )


@dataclass(frozen=True, slots=True)
class PortfolioScore:
    total: int
    breakdown: ScoreBreakdown
    band: Band


# ─── Feedback Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Feedback:
    """Narrative produced by the generative model (or the degraded fallback)."""

    summary: str = ""
    strengths: tuple[str, ...] = ()
    red_flags: tuple[str, ...] = ()
    action_items: tuple[str, ...] = ()


# ─── Tool Return Models ───────────────────────────────────────


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    metrics: PortfolioMetrics
    score: PortfolioScore
    feedback: Feedback

    def to_dict(self) -> dict[str, object]:
        metrics = asdict(self.metrics)
        metrics["generated_at"] = self.metrics.generated_at.isoformat()
        return {
            "metrics": metrics,
            "score": {
                "total": self.score.total,
                "band": str(self.score.band),
                "breakdown": asdict(self.score.breakdown),
            },
            "feedback": asdict(self.feedback),
        }
