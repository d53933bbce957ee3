"""OpenAI chat-completions adapter for ChatModelPort."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import openai
from openai import AsyncOpenAI

from portfolio_lens.errors import ConfigurationError, ModelNotFoundError, UpstreamError

logger = logging.getLogger(__name__)


class OpenAIChatModel:
    """Adapter for ChatModelPort — lazily builds an AsyncOpenAI client.

    The client is created on first use so a missing OPENAI_API_KEY only
    affects feedback generation, never GitHub aggregation or scoring.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 120.0,
        temperature: float = 0.3,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._temperature = temperature
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError("Missing OPENAI_API_KEY in environment variables.")
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
    ) -> Mapping[str, Any]:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self._temperature,
                response_format={"type": "json_object"},
            )
        except openai.NotFoundError as exc:
            raise ModelNotFoundError(model, exc.message) from exc
        except openai.APIStatusError as exc:
            if "not found" in str(exc.message).lower():
                raise ModelNotFoundError(model, exc.message) from exc
            raise UpstreamError(
                f"Model API error: {exc.status_code} {exc.message}",
                status=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise UpstreamError(f"Model API request failed: {exc}") from exc

        logger.debug("Model %s answered (id=%s)", model, getattr(response, "id", None))
        return response.model_dump()
