"""Rule-based relevance classifier.

Decides whether an item is market-relevant, which topics it belongs to
and a 0–100 relevance score.  Pure and deterministic: the same text
always produces the same :class:`Classification`.

Scoring:
    - noise without market context (or noise + a celebrity name) → reject
    - each topic keyword hit                       +10
    - each generic market/asset keyword            +15
    - each ``$TICKER`` cashtag (original case)     +10
    - each named large-cap company                 +20
    - clamp to [0, 100]
"""

from __future__ import annotations

import logging

from .common_types import Classification, MarketTopic
from .topics import (
    ASSET_POINTS,
    CASHTAG_POINTS,
    CASHTAG_RE,
    CELEBRITY_PATTERNS,
    COMPANY_POINTS,
    LARGE_CAP_COMPANIES,
    MARKET_ASSET_KEYWORDS,
    MARKET_CONTEXT_KEYWORDS,
    NOISE_KEYWORDS,
    TOPIC_KEYWORDS,
    TOPIC_POINTS,
    compile_terms,
    topic_label,
)

logger = logging.getLogger(__name__)

_TOPIC_MATCHERS = tuple((topic, compile_terms(kws)) for topic, kws in TOPIC_KEYWORDS)
_NOISE = compile_terms(NOISE_KEYWORDS)
_CELEBRITY = compile_terms(CELEBRITY_PATTERNS)
_CONTEXT = compile_terms(MARKET_CONTEXT_KEYWORDS)
_ASSETS = compile_terms(MARKET_ASSET_KEYWORDS)
_COMPANIES = compile_terms(LARGE_CAP_COMPANIES)

MIN_RELEVANT_SCORE = 10


def _hits(text: str, matchers) -> list[str]:
    return [term for term, rx in matchers if rx.search(text)]


def classify(text: str) -> Classification:
    """Classify a block of text (title + summary + keywords)."""
    text = text or ""

    noise = _hits(text, _NOISE)
    if noise:
        if _hits(text, _CELEBRITY):
            return Classification.irrelevant("Celebrity/entertainment content")
        if not _hits(text, _CONTEXT):
            return Classification.irrelevant(f"Non-market content ({noise[0]})")

    topics: list[MarketTopic] = []
    reasons: list[str] = []
    score = 0

    for topic, matchers in _TOPIC_MATCHERS:
        matched = _hits(text, matchers)
        if not matched:
            continue
        topics.append(topic)
        score += TOPIC_POINTS * len(matched)
        reasons.append(f"{topic_label(topic)}: {', '.join(matched[:3])}")

    assets = _hits(text, _ASSETS)
    if assets:
        score += ASSET_POINTS * len(assets)
        reasons.append(f"Market assets: {', '.join(assets[:3])}")

    cashtags = list(dict.fromkeys(CASHTAG_RE.findall(text)))
    if cashtags:
        score += CASHTAG_POINTS * len(cashtags)
        reasons.append(f"Tickers: {', '.join(cashtags[:3])}")

    companies = _hits(text, _COMPANIES)
    if companies:
        score += COMPANY_POINTS * len(companies)
        reasons.append(f"Major companies: {', '.join(companies[:3])}")

    score = max(0, min(100, score))
    is_relevant = score >= MIN_RELEVANT_SCORE or bool(topics) or bool(assets or cashtags or companies)

    if not is_relevant:
        return Classification.irrelevant("No market-relevant keywords")

    return Classification(is_relevant=True, topics=topics, score=score, reasons=reasons)


def classify_article(title: str, summary: str = "", keywords: list[str] | None = None) -> Classification:
    """Convenience wrapper over :func:`classify` for article parts."""
    parts = [title or "", summary or "", " ".join(keywords or [])]
    return classify(" ".join(p for p in parts if p))


class RuleBasedClassifier:
    """Object form of :func:`classify`; always answers."""

    name = "rules"

    def classify(self, text: str) -> Classification:
        return classify(text)
