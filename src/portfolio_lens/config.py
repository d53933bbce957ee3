"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from portfolio_lens.errors import ConfigurationError

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_FEEDBACK_MODELS = ("gpt-4o-mini", "gpt-4.1-mini", "gpt-4o")

GITHUB_CACHE_TTL_SECONDS = 600  # 10 minutes
FEEDBACK_CACHE_TTL_SECONDS = 900  # 15 minutes


@dataclass(frozen=True, slots=True)
class Settings:
    """Process configuration.

    Credentials may be empty here; each adapter raises ConfigurationError
    when it actually needs a credential that is missing.
    """

    github_token: str = ""
    openai_api_key: str = ""
    github_api_url: str = DEFAULT_GITHUB_API_URL
    feedback_models: tuple[str, ...] = DEFAULT_FEEDBACK_MODELS
    repo_fetch_concurrency: int = 8
    github_cache_ttl_seconds: float = GITHUB_CACHE_TTL_SECONDS
    feedback_cache_ttl_seconds: float = FEEDBACK_CACHE_TTL_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        models_raw = env.get("PORTFOLIO_LENS_MODELS", "")
        models = tuple(m.strip() for m in models_raw.split(",") if m.strip())

        return cls(
            github_token=env.get("GITHUB_TOKEN", "").strip(),
            openai_api_key=env.get("OPENAI_API_KEY", "").strip(),
            github_api_url=(
                env.get("PORTFOLIO_LENS_GITHUB_API_URL", "").strip().rstrip("/")
                or DEFAULT_GITHUB_API_URL
            ),
            feedback_models=models or DEFAULT_FEEDBACK_MODELS,
            repo_fetch_concurrency=_positive_int(
                env, "PORTFOLIO_LENS_REPO_CONCURRENCY", default=8
            ),
        )


def _positive_int(env: Mapping[str, str], name: str, *, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'.") from None
    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {value}.")
    return value
