"""Exception hierarchy for portfolio-lens.

All exceptions inherit from PortfolioLensError (single catch point).
Messages are shown to the caller verbatim -- keep them short and actionable.
"""

from __future__ import annotations


class PortfolioLensError(Exception):
    """Base exception for all portfolio-lens errors."""


class ConfigurationError(PortfolioLensError):
    """A required credential or setting is missing or malformed."""


class UpstreamError(PortfolioLensError):
    """An upstream API call failed (non-2xx status or network failure)."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class NotFoundError(UpstreamError):
    """The requested GitHub user or resource does not exist."""


class RateLimitedError(UpstreamError):
    """The GitHub API quota for the current token is exhausted."""


class ForbiddenError(UpstreamError):
    """GitHub refused the request for a reason other than rate limiting."""


class FeedbackError(PortfolioLensError):
    """Error producing narrative feedback from the generative model."""


class ModelNotFoundError(FeedbackError):
    """The requested model identifier is unknown to the provider."""

    def __init__(self, model: str, detail: str = "") -> None:
        super().__init__(f"Model '{model}' not found{': ' + detail if detail else ''}")
        self.model = model


class EmptyResponseError(FeedbackError):
    """The model answered without any text payload."""


class ParseError(FeedbackError):
    """The model text could not be parsed as a feedback object."""
