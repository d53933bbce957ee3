"""Resolve shared server state from a FastMCP tool Context."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

if TYPE_CHECKING:
    from portfolio_lens.pipeline import PortfolioAnalyzer


def get_analyzer(ctx: Context) -> PortfolioAnalyzer:
    """Return the PortfolioAnalyzer built by ``app_lifespan``.

    Raises TypeError when the server was started without that lifespan,
    since every tool depends on the caches it owns.
    """
    from portfolio_lens.server import AppContext

    state = ctx.request_context.lifespan_context
    if isinstance(state, AppContext):
        return state.analyzer
    raise TypeError(
        f"lifespan_context holds {type(state).__name__}, not AppContext; "
        "start the server through portfolio_lens.server.mcp."
    )
