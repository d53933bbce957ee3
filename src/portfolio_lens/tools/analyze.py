"""analyze_profile tool -- score a GitHub profile and narrate the result."""

from __future__ import annotations

from mcp.server.fastmcp import Context

from portfolio_lens.errors import PortfolioLensError
from portfolio_lens.github.aggregator import normalize_username
from portfolio_lens.tools._helpers import get_analyzer


async def analyze_profile(
    username: str,
    ctx: Context,
) -> dict[str, object]:
    """Analyze a public GitHub profile and return a 0-100 portfolio score.

    Fetches the user's repositories, README quality signals and the last
    90 days of commit activity, scores six dimensions (documentation,
    code structure, activity, technical depth, impact, organization) and
    adds recruiter-style feedback.

    Args:
        username: GitHub handle, with or without a leading "@".

    Returns:
        Dict with: success, metrics, score (total, band, breakdown) and
        feedback (summary, strengths, red_flags, action_items); or
        success=False with a human-readable error.
    """
    handle = normalize_username(username)
    if not handle:
        return {"success": False, "error": "Missing GitHub username."}

    try:
        result = await get_analyzer(ctx).analyze(handle)
        return {"success": True, **result.to_dict()}
    except PortfolioLensError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in analyze_profile: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
