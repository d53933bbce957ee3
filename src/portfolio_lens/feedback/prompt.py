"""Prompt construction for recruiter-style portfolio feedback."""

from __future__ import annotations

import json

from portfolio_lens.models import PortfolioMetrics, PortfolioScore, RepositoryAnalysis

TOP_REPOSITORY_LIMIT = 5

SYSTEM_PROMPT = (
    "You are a senior technical recruiter reviewing GitHub portfolios. "
    "Be specific, concise and candid, but constructive. "
    "You care about real-world readiness, clarity and consistency."
)

_TASK = """\
TASK:
1. Write a short recruiter-style summary (3-5 sentences) of how this profile would read in a hiring pipeline.
2. List 3-5 specific strengths as short bullet points.
3. List 3-7 concrete red flags or weaknesses a hiring manager would notice.
4. List 3-7 prioritized action items. Each starts with a verb and takes less than a week.

Constraints:
- Refer to the metrics above; avoid generic advice.
- Name the patterns you see (for example "most repositories lack a README" or "stars are concentrated in one toy project").
- Keep the tone professional and direct.

Respond with JSON of exactly this shape:
{
  "summary": "string",
  "strengths": ["..."],
  "redFlags": ["..."],
  "actionItems": ["..."]
}
"""


def top_repositories(
    metrics: PortfolioMetrics,
    limit: int = TOP_REPOSITORY_LIMIT,
) -> list[RepositoryAnalysis]:
    """Most-starred repositories first; ties keep listing order."""
    ranked = sorted(
        metrics.repositories,
        key=lambda a: a.repository.stargazers_count,
        reverse=True,
    )
    return ranked[:limit]


def _repository_summary(analysis: RepositoryAnalysis) -> dict[str, object]:
    repo = analysis.repository
    return {
        "name": repo.name,
        "description": repo.description,
        "stars": repo.stargazers_count,
        "forks": repo.forks_count,
        "language": repo.language,
        "readme": {
            "hasReadme": analysis.readme_present,
            "length": analysis.readme_length,
            "hasInstallation": analysis.has_installation_section,
            "hasUsage": analysis.has_usage_section,
            "hasFeatures": analysis.has_features_section,
            "hasScreenshots": analysis.has_screenshots_section,
            "hasBadges": analysis.has_badges,
        },
        "activity90d": analysis.commit_count_90d,
        "lastCommitDate": analysis.last_commit_date,
    }


def build_user_prompt(metrics: PortfolioMetrics, score: PortfolioScore) -> str:
    b = score.breakdown
    top = [_repository_summary(a) for a in top_repositories(metrics)]
    lines = [
        "GitHub portfolio snapshot:",
        f"- Username: {metrics.user.login}",
        f"- Followers: {metrics.user.followers}",
        f"- Public repos: {metrics.user.public_repos}",
        "",
        "Score breakdown (0-100 total):",
        f"- Documentation Quality (20): {b.documentation:.1f}",
        f"- Code Structure & Best Practices (20): {b.code_structure:.1f}",
        f"- Activity Consistency (20): {b.activity:.1f}",
        f"- Technical Depth (15): {b.technical_depth:.1f}",
        f"- Impact & Relevance (15): {b.impact:.1f}",
        f"- Repository Organization (10): {b.organization:.1f}",
        f"- Total Score: {score.total} / 100",
        f"- Rating Band: {score.band}",
        "",
        f"Top repositories (max {TOP_REPOSITORY_LIMIT}):",
        json.dumps(top, indent=2),
        "",
        _TASK,
    ]
    return "\n".join(lines)


def build_messages(metrics: PortfolioMetrics, score: PortfolioScore) -> list[dict[str, str]]:
    """Conversation payload: system persona plus one user turn."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(metrics, score)},
    ]
