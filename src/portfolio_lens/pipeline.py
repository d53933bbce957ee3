"""Sequence aggregation, scoring and feedback for one profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from portfolio_lens.feedback.generator import FeedbackGenerator
from portfolio_lens.github.aggregator import PortfolioAggregator, normalize_username
from portfolio_lens.models import AnalysisResult
from portfolio_lens.scoring.scorer import score_portfolio

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PortfolioAnalyzer:
    """aggregate -> score -> feedback.

    Aggregation errors propagate unchanged; feedback never fails.
    """

    aggregator: PortfolioAggregator
    feedback: FeedbackGenerator

    async def analyze(self, username: str) -> AnalysisResult:
        username = normalize_username(username)
        logger.info("Starting analysis for '%s'", username)

        metrics = await self.aggregator.analyze(username)
        score = score_portfolio(metrics)
        feedback = await self.feedback.generate_feedback(metrics, score)

        logger.info(
            "Completed analysis for '%s': score=%d band=%s",
            username,
            score.total,
            score.band,
        )
        return AnalysisResult(metrics=metrics, score=score, feedback=feedback)
