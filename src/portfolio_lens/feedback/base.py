"""Port: generative chat model used to narrate scores."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class ChatModelPort(Protocol):
    """Port for one JSON-mode completion against a named model."""

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
    ) -> Mapping[str, Any]:
        """Run one completion and return the raw response payload.

        Raises ModelNotFoundError when ``model`` is unknown to the provider,
        so callers can fall back to the next identifier.
        """
        ...
