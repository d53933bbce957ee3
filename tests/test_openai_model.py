"""Tests for the OpenAI chat adapter (feedback/openai_model.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from portfolio_lens.errors import ConfigurationError, ModelNotFoundError, UpstreamError
from portfolio_lens.feedback.openai_model import OpenAIChatModel

MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

# --- Helpers ---------------------------------------------------------------


def _client(result: object) -> MagicMock:
    client = MagicMock()
    if isinstance(result, Exception):
        client.chat.completions.create = AsyncMock(side_effect=result)
    else:
        client.chat.completions.create = AsyncMock(return_value=result)
    return client


def _status_error(cls: type[openai.APIStatusError], status: int, message: str):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


def _completion(content: str) -> MagicMock:
    response = MagicMock()
    response.id = "chatcmpl-1"
    response.model_dump.return_value = {"choices": [{"message": {"content": content}}]}
    return response


# === complete ==============================================================


class TestComplete:
    async def test_returns_plain_mapping(self) -> None:
        client = _client(_completion('{"summary": "ok"}'))
        model = OpenAIChatModel("sk-test", client=client)

        result = await model.complete(model="gpt-4o-mini", messages=MESSAGES)

        assert result == {"choices": [{"message": {"content": '{"summary": "ok"}'}}]}
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == MESSAGES
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.3

    async def test_not_found_maps_to_model_not_found(self) -> None:
        error = _status_error(openai.NotFoundError, 404, "The model does not exist")
        model = OpenAIChatModel("sk-test", client=_client(error))

        with pytest.raises(ModelNotFoundError) as exc_info:
            await model.complete(model="gpt-legacy", messages=MESSAGES)
        assert exc_info.value.model == "gpt-legacy"

    async def test_not_found_message_maps_to_model_not_found(self) -> None:
        error = _status_error(openai.BadRequestError, 400, "Model gpt-x not found")
        model = OpenAIChatModel("sk-test", client=_client(error))

        with pytest.raises(ModelNotFoundError):
            await model.complete(model="gpt-x", messages=MESSAGES)

    async def test_other_status_maps_to_upstream_error(self) -> None:
        error = _status_error(openai.InternalServerError, 500, "overloaded")
        model = OpenAIChatModel("sk-test", client=_client(error))

        with pytest.raises(UpstreamError) as exc_info:
            await model.complete(model="gpt-4o-mini", messages=MESSAGES)
        assert not isinstance(exc_info.value, ModelNotFoundError)
        assert exc_info.value.status == 500

    async def test_connection_error_maps_to_upstream_error(self) -> None:
        error = openai.APIConnectionError(request=_REQUEST)
        model = OpenAIChatModel("sk-test", client=_client(error))

        with pytest.raises(UpstreamError) as exc_info:
            await model.complete(model="gpt-4o-mini", messages=MESSAGES)
        assert exc_info.value.status is None


class TestClientConstruction:
    async def test_missing_key_is_configuration_error(self) -> None:
        model = OpenAIChatModel("")
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            await model.complete(model="gpt-4o-mini", messages=MESSAGES)

    def test_construction_does_not_require_key(self) -> None:
        OpenAIChatModel("")
