"""Extract documentation-quality signals from README text."""

from __future__ import annotations

import re

from portfolio_lens.models import ReadmeSignals

# Markdown badge: an image link wrapped in a link, e.g. [![CI](badge.svg)](actions)
_BADGE_RE = re.compile(r"\[!\[.*\]\(.*\)\]")


def analyze_readme(text: str | None) -> ReadmeSignals:
    """Compute README heuristics. ``None`` or empty text means no README."""
    if not text:
        return ReadmeSignals()

    lower = text.lower()
    return ReadmeSignals(
        present=True,
        length=len(text),
        has_installation_section="installation" in lower,
        has_usage_section="usage" in lower,
        has_features_section="features" in lower or "highlights" in lower,
        has_screenshots_section="screenshot" in lower,
        has_badges=_BADGE_RE.search(text) is not None,
    )
