"""Turn a raw model response into a Feedback object.

Providers (and SDK versions) put the generated text in different places.
Three encodings are recognised, tried in order:

1. top-level text -- ``{"text": ...}`` or ``{"output_text": ...}``
2. nested response text -- ``{"response": {"text": ...}}``
3. content parts -- ``choices[].message.content`` (a string or a list of
   ``{"text": ...}`` parts) and ``output[].content[].text``; all parts are
   concatenated with newlines.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from typing import Any

from portfolio_lens.errors import ParseError
from portfolio_lens.models import Feedback

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")


# ─── Text extraction ──────────────────────────────────────────


def _top_level_text(payload: Mapping[str, Any]) -> str | None:
    for key in ("text", "output_text"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _nested_response_text(payload: Mapping[str, Any]) -> str | None:
    nested = payload.get("response")
    if isinstance(nested, Mapping):
        value = nested.get("text")
        if isinstance(value, str) and value:
            return value
    return None


def _part_texts(content: Any) -> list[str]:
    if isinstance(content, str):
        return [content] if content else []
    if isinstance(content, list):
        return [
            part["text"]
            for part in content
            if isinstance(part, Mapping) and isinstance(part.get("text"), str)
        ]
    return []


def _content_parts_text(payload: Mapping[str, Any]) -> str | None:
    texts: list[str] = []
    for choice in payload.get("choices") or []:
        if isinstance(choice, Mapping):
            message = choice.get("message") or {}
            if isinstance(message, Mapping):
                texts.extend(_part_texts(message.get("content")))
    for item in payload.get("output") or []:
        if isinstance(item, Mapping):
            texts.extend(_part_texts(item.get("content")))
    joined = "\n".join(t for t in texts if t)
    return joined or None


_EXTRACTORS: tuple[Callable[[Mapping[str, Any]], str | None], ...] = (
    _top_level_text,
    _nested_response_text,
    _content_parts_text,
)


def extract_text(payload: Mapping[str, Any]) -> str | None:
    """Return the first populated text encoding, or None."""
    for extractor in _EXTRACTORS:
        text = extractor(payload)
        if text:
            return text
    return None


# ─── Payload parsing ──────────────────────────────────────────


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if any."""
    trimmed = text.strip()
    if not trimmed.startswith("```"):
        return trimmed
    return _FENCE_END_RE.sub("", _FENCE_START_RE.sub("", trimmed))


def _string_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)


def parse_feedback(text: str) -> Feedback:
    """Parse model text into Feedback.

    Missing or wrongly typed fields default to empty values. Only text
    that is not a JSON object raises ParseError.
    """
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")

    summary = data.get("summary")
    return Feedback(
        summary=summary if isinstance(summary, str) else "",
        strengths=_string_list(data.get("strengths")),
        red_flags=_string_list(data.get("redFlags", data.get("red_flags"))),
        action_items=_string_list(data.get("actionItems", data.get("action_items"))),
    )
