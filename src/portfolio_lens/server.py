"""MCP server that scores GitHub portfolios."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from portfolio_lens.config import Settings
from portfolio_lens.feedback.generator import FeedbackGenerator
from portfolio_lens.feedback.openai_model import OpenAIChatModel
from portfolio_lens.github.aggregator import PortfolioAggregator
from portfolio_lens.github.client import GitHubClient
from portfolio_lens.pipeline import PortfolioAnalyzer
from portfolio_lens.tools.analyze import analyze_profile


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state across all tool invocations.

    The caches live inside the aggregator and the feedback generator, so
    they survive for the lifetime of the server process.
    """

    http_client: httpx.AsyncClient
    settings: Settings
    analyzer: PortfolioAnalyzer


def build_analyzer(http_client: httpx.AsyncClient, settings: Settings) -> PortfolioAnalyzer:
    """Wire GitHub client, aggregator, model adapter and feedback generator."""
    github = GitHubClient(
        http_client,
        settings.github_token,
        api_url=settings.github_api_url,
    )
    aggregator = PortfolioAggregator(
        github=github,
        cache_ttl_seconds=settings.github_cache_ttl_seconds,
        max_concurrency=settings.repo_fetch_concurrency,
    )
    feedback = FeedbackGenerator(
        model=OpenAIChatModel(settings.openai_api_key),
        models=settings.feedback_models,
        cache_ttl_seconds=settings.feedback_cache_ttl_seconds,
    )
    return PortfolioAnalyzer(aggregator=aggregator, feedback=feedback)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage shared adapter lifecycle — the composition root."""
    settings = Settings.from_env()
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=10.0),
        follow_redirects=True,
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        transport=httpx.AsyncHTTPTransport(retries=3),
    ) as http_client:
        yield AppContext(
            http_client=http_client,
            settings=settings,
            analyzer=build_analyzer(http_client, settings),
        )


mcp = FastMCP(
    "portfolio-lens",
    instructions=(
        "portfolio-lens scores a public GitHub profile from 0 to 100 the way a "
        "technical recruiter would skim it.\n\n"
        "Use analyze_profile with a GitHub username. The result contains:\n"
        "- score.total and score.band (Recruiter Ready, Strong but Improvable, "
        "Needs Optimization, Major Improvements Needed)\n"
        "- score.breakdown: documentation (20), code_structure (20), activity (20), "
        "technical_depth (15), impact (15), organization (10)\n"
        "- feedback: summary, strengths, red_flags, action_items\n"
        "- metrics: the raw per-repository signals behind the score\n\n"
        "When presenting results, lead with the total and band, then the weakest "
        "dimensions and the action items. If feedback.strengths, red_flags and "
        "action_items are all empty, the narrative service was unavailable; explain "
        "the score from the breakdown and metrics instead."
    ),
    lifespan=app_lifespan,
)

mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))(analyze_profile)
