"""FeedbackGenerator -- cached, coalesced, fault-tolerant model narration."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from portfolio_lens.cache import TTLCache
from portfolio_lens.config import DEFAULT_FEEDBACK_MODELS, FEEDBACK_CACHE_TTL_SECONDS
from portfolio_lens.errors import EmptyResponseError, FeedbackError, ModelNotFoundError
from portfolio_lens.feedback.base import ChatModelPort
from portfolio_lens.feedback.prompt import build_messages
from portfolio_lens.feedback.response import extract_text, parse_feedback
from portfolio_lens.models import Feedback, PortfolioMetrics, PortfolioScore

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = Feedback(
    summary=(
        "AI feedback generation is temporarily unavailable. You can still use the "
        "numeric scores to understand documentation, structure, activity, impact, "
        "and organization."
    ),
)


def feedback_cache_key(metrics: PortfolioMetrics, score: PortfolioScore) -> str:
    """Deterministic key covering everything that shapes the prompt's scores."""
    b = score.breakdown
    return "|".join(
        (
            metrics.user.login.lower(),
            str(score.total),
            f"{b.documentation:.2f}",
            f"{b.code_structure:.2f}",
            f"{b.activity:.2f}",
            f"{b.technical_depth:.2f}",
            f"{b.impact:.2f}",
            f"{b.organization:.2f}",
            str(len(metrics.repositories)),
        )
    )


@dataclass
class FeedbackGenerator:
    """Narrates a portfolio score with a generative model.

    ``generate_feedback`` never raises: any failure yields FALLBACK_FEEDBACK.
    Concurrent calls with the same cache key share one upstream request.

    Args:
        model: The chat model adapter.
        models: Model identifiers tried in order; the next one is used only
            when the current one is reported as not found.
        cache_ttl_seconds: Lifetime of successful feedback.
        clock: Monotonic time source for the cache.
    """

    model: ChatModelPort
    models: tuple[str, ...] = DEFAULT_FEEDBACK_MODELS
    cache_ttl_seconds: float = FEEDBACK_CACHE_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    cache: TTLCache[Feedback] = field(init=False, repr=False)
    _in_flight: dict[str, asyncio.Task[Feedback]] = field(
        default_factory=dict,
        init=False,
        repr=False,
    )

    def __post_init__(self) -> None:
        self.cache = TTLCache(self.cache_ttl_seconds, clock=self.clock)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def generate_feedback(
        self,
        metrics: PortfolioMetrics,
        score: PortfolioScore,
    ) -> Feedback:
        key = feedback_cache_key(metrics, score)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Feedback cache hit for %s", key)
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._generate(key, metrics, score))
            self._in_flight[key] = task
        else:
            logger.debug("Joining in-flight feedback request for %s", key)
        # A cancelled waiter must not cancel the request its peers share.
        return await asyncio.shield(task)

    async def _generate(
        self,
        key: str,
        metrics: PortfolioMetrics,
        score: PortfolioScore,
    ) -> Feedback:
        try:
            response = await self._complete_with_fallback(build_messages(metrics, score))
            text = extract_text(response)
            if not text:
                raise EmptyResponseError("Empty response from model")
            feedback = parse_feedback(text)
            self.cache.set(key, feedback)
            return feedback
        except Exception as exc:
            logger.error(
                "Feedback generation failed for '%s': %s", metrics.user.login, exc
            )
            return FALLBACK_FEEDBACK
        finally:
            self._in_flight.pop(key, None)

    async def _complete_with_fallback(
        self,
        messages: list[dict[str, str]],
    ) -> Mapping[str, Any]:
        """Try each model in order, advancing only on ModelNotFoundError."""
        last_error: ModelNotFoundError | None = None
        for model_name in self.models:
            try:
                return await self.model.complete(model=model_name, messages=messages)
            except ModelNotFoundError as exc:
                logger.info("Model '%s' unavailable, trying next: %s", model_name, exc)
                last_error = exc
        if last_error is not None:
            raise last_error
        raise FeedbackError("No model identifiers configured.")
