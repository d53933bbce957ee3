"""Tests for FeedbackGenerator (feedback/generator.py)."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

from portfolio_lens.errors import ModelNotFoundError, UpstreamError
from portfolio_lens.feedback.generator import (
    FALLBACK_FEEDBACK,
    FeedbackGenerator,
    feedback_cache_key,
)
from portfolio_lens.models import (
    Band,
    Feedback,
    PortfolioMetrics,
    PortfolioScore,
    Repository,
    RepositoryAnalysis,
    ScoreBreakdown,
    User,
)

MODELS = ("model-a", "model-b", "model-c")

# ── Helpers ───────────────────────────────────────────────────────


def _metrics(login: str = "octo", repos: int = 2) -> PortfolioMetrics:
    return PortfolioMetrics(
        user=User(login=login),
        repositories=tuple(
            RepositoryAnalysis(repository=Repository(id=i, name=f"r{i}")) for i in range(repos)
        ),
    )


def _score(total: int = 72, documentation: float = 14.7826) -> PortfolioScore:
    return PortfolioScore(
        total=total,
        breakdown=ScoreBreakdown(
            documentation=documentation,
            code_structure=15,
            activity=10,
            technical_depth=13,
            impact=9,
            organization=10,
        ),
        band=Band.STRONG,
    )


def _completion(payload: dict | str) -> dict:
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


GOOD = _completion(
    {
        "summary": "Promising.",
        "strengths": ["Active"],
        "redFlags": ["Sparse docs"],
        "actionItems": ["Write READMEs"],
    }
)


def _generator(model: AsyncMock, clock=None) -> FeedbackGenerator:
    if clock is None:
        return FeedbackGenerator(model=model, models=MODELS)
    return FeedbackGenerator(model=model, models=MODELS, clock=clock)


def _model(*results: object) -> AsyncMock:
    model = AsyncMock()
    model.complete = AsyncMock(side_effect=list(results))
    return model


# ═══════════════════════════════════════════════════════════════════
# Cache key
# ═══════════════════════════════════════════════════════════════════


class TestFeedbackCacheKey:
    def test_format(self) -> None:
        key = feedback_cache_key(_metrics("Octo"), _score())
        assert key == "octo|72|14.78|15.00|10.00|13.00|9.00|10.00|2"

    def test_changes_with_breakdown(self) -> None:
        a = feedback_cache_key(_metrics(), _score(documentation=14.78))
        b = feedback_cache_key(_metrics(), _score(documentation=14.79))
        assert a != b

    def test_changes_with_repository_count(self) -> None:
        assert feedback_cache_key(_metrics(repos=2), _score()) != feedback_cache_key(
            _metrics(repos=3), _score()
        )

    def test_case_insensitive_login(self) -> None:
        assert feedback_cache_key(_metrics("OCTO"), _score()) == feedback_cache_key(
            _metrics("octo"), _score()
        )


# ═══════════════════════════════════════════════════════════════════
# generate_feedback
# ═══════════════════════════════════════════════════════════════════


class TestGenerateFeedback:
    async def test_success(self) -> None:
        model = _model(GOOD)
        feedback = await _generator(model).generate_feedback(_metrics(), _score())

        assert feedback == Feedback(
            summary="Promising.",
            strengths=("Active",),
            red_flags=("Sparse docs",),
            action_items=("Write READMEs",),
        )
        kwargs = model.complete.await_args.kwargs
        assert kwargs["model"] == "model-a"
        assert kwargs["messages"][0]["role"] == "system"

    async def test_success_is_cached(self, clock) -> None:
        model = _model(GOOD, GOOD)
        generator = _generator(model, clock)

        first = await generator.generate_feedback(_metrics(), _score())
        second = await generator.generate_feedback(_metrics(), _score())

        assert first is second
        assert model.complete.await_count == 1

    async def test_cache_expires_after_fifteen_minutes(self, clock) -> None:
        model = _model(GOOD, GOOD)
        generator = _generator(model, clock)

        await generator.generate_feedback(_metrics(), _score())
        clock.advance(900)
        await generator.generate_feedback(_metrics(), _score())

        assert model.complete.await_count == 2

    async def test_distinct_scores_are_not_shared(self) -> None:
        model = _model(GOOD, GOOD)
        generator = _generator(model)

        await generator.generate_feedback(_metrics(), _score(total=72))
        await generator.generate_feedback(_metrics(), _score(total=73))

        assert model.complete.await_count == 2


class TestModelFallback:
    async def test_advances_on_model_not_found(self) -> None:
        model = _model(ModelNotFoundError("model-a"), ModelNotFoundError("model-b"), GOOD)
        feedback = await _generator(model).generate_feedback(_metrics(), _score())

        assert feedback.summary == "Promising."
        tried = [c.kwargs["model"] for c in model.complete.await_args_list]
        assert tried == ["model-a", "model-b", "model-c"]

    async def test_other_error_aborts_chain_with_fallback(self) -> None:
        model = _model(UpstreamError("Model API error: 500", status=500), GOOD)
        feedback = await _generator(model).generate_feedback(_metrics(), _score())

        assert feedback == FALLBACK_FEEDBACK
        assert feedback.strengths == ()
        assert feedback.red_flags == ()
        assert feedback.action_items == ()
        assert model.complete.await_count == 1

    async def test_all_models_missing_yields_fallback(self) -> None:
        model = _model(*(ModelNotFoundError(m) for m in MODELS))
        feedback = await _generator(model).generate_feedback(_metrics(), _score())

        assert feedback == FALLBACK_FEEDBACK
        assert model.complete.await_count == 3

    async def test_no_models_configured_yields_fallback(self) -> None:
        model = _model()
        generator = FeedbackGenerator(model=model, models=())
        assert await generator.generate_feedback(_metrics(), _score()) == FALLBACK_FEEDBACK


class TestDegradedMode:
    async def test_empty_response(self) -> None:
        model = _model({"choices": [{"message": {"content": None}}]})
        assert await _generator(model).generate_feedback(_metrics(), _score()) == FALLBACK_FEEDBACK

    async def test_unparseable_response(self) -> None:
        model = _model(_completion("I cannot help with that."))
        assert await _generator(model).generate_feedback(_metrics(), _score()) == FALLBACK_FEEDBACK

    async def test_fallback_is_not_cached(self) -> None:
        model = _model(UpstreamError("boom"), GOOD)
        generator = _generator(model)

        assert await generator.generate_feedback(_metrics(), _score()) == FALLBACK_FEEDBACK
        feedback = await generator.generate_feedback(_metrics(), _score())

        assert feedback.summary == "Promising."
        assert model.complete.await_count == 2

    async def test_fenced_payload_accepted(self) -> None:
        fenced = "```json\n" + GOOD["choices"][0]["message"]["content"] + "\n```"
        model = _model(_completion(fenced))
        feedback = await _generator(model).generate_feedback(_metrics(), _score())
        assert feedback.summary == "Promising."


class TestRequestCoalescing:
    async def test_concurrent_identical_requests_share_one_call(self) -> None:
        release = asyncio.Event()
        calls = 0

        async def _slow_complete(*, model: str, messages: list) -> dict:
            nonlocal calls
            calls += 1
            await release.wait()
            return GOOD

        model = AsyncMock()
        model.complete = AsyncMock(side_effect=_slow_complete)
        generator = _generator(model)

        first = asyncio.ensure_future(generator.generate_feedback(_metrics(), _score()))
        second = asyncio.ensure_future(generator.generate_feedback(_metrics(), _score()))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert generator.in_flight_count == 1

        release.set()
        results = await asyncio.gather(first, second)

        assert calls == 1
        assert results[0] is results[1]
        assert generator.in_flight_count == 0

    async def test_in_flight_cleared_after_failure(self) -> None:
        model = _model(UpstreamError("boom"), GOOD)
        generator = _generator(model)

        await generator.generate_feedback(_metrics(), _score())
        assert generator.in_flight_count == 0

        feedback = await generator.generate_feedback(_metrics(), _score())
        assert feedback.summary == "Promising."

    async def test_different_keys_run_separately(self) -> None:
        model = _model(GOOD, GOOD)
        generator = _generator(model)

        await asyncio.gather(
            generator.generate_feedback(_metrics("octo"), _score()),
            generator.generate_feedback(_metrics("hubot"), _score()),
        )
        assert model.complete.await_count == 2

    async def test_cancelled_waiter_does_not_cancel_peers(self) -> None:
        release = asyncio.Event()

        async def _slow_complete(*, model: str, messages: list) -> dict:
            await release.wait()
            return GOOD

        model = AsyncMock()
        model.complete = AsyncMock(side_effect=_slow_complete)
        generator = _generator(model)

        first = asyncio.ensure_future(generator.generate_feedback(_metrics(), _score()))
        second = asyncio.ensure_future(generator.generate_feedback(_metrics(), _score()))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        first.cancel()
        await asyncio.sleep(0)
        release.set()

        feedback = await second
        assert feedback.summary == "Promising."
        assert first.cancelled()
        assert model.complete.await_count == 1
        assert generator.in_flight_count == 0
