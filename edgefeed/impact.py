"""EdgeScore: additive 0–100 market-impact score.

Four bounded sub-scores are computed independently and summed:

=================  ====  ===============================================
Sub-score          Max   Driven by
=================  ====  ===============================================
source_weight       30   source authority tier, else source_quality
surprise_factor     25   surprise vocabulary, else sentiment direction
cross_asset_effect  25   first matching macro pattern
portfolio_overlap   20   portfolio tickers mentioned (plus sector hits)
=================  ====  ===============================================

The result is a pure function of the item text, sentiment, source,
source_quality and the portfolio tickers.  Band thresholds: ≥80
critical, ≥60 high, ≥40 medium, else low.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .common_types import (
    CrossAssetScore,
    MarketImpact,
    NewsItem,
    PortfolioScore,
    ScoreBreakdown,
    SubScore,
)
from .topics import term_pattern

SOURCE_MAX = 30
SURPRISE_MAX = 25
CROSS_ASSET_MAX = 25
PORTFOLIO_MAX = 20

# ── Source authority ────────────────────────────────────────────

# (domain, tier, label) – tier 1 is most authoritative.
SOURCE_TIERS: tuple[tuple[str, int, str], ...] = (
    ("federalreserve.gov", 1, "Federal Reserve"),
    ("sec.gov", 1, "SEC Official"),
    ("treasury.gov", 1, "US Treasury"),
    ("ecb.europa.eu", 1, "European Central Bank"),
    ("bls.gov", 1, "Bureau of Labor Statistics"),
    ("bloomberg.com", 2, "Bloomberg"),
    ("reuters.com", 2, "Reuters"),
    ("wsj.com", 2, "Wall Street Journal"),
    ("ft.com", 2, "Financial Times"),
    ("cnbc.com", 2, "CNBC"),
    ("marketwatch.com", 3, "MarketWatch"),
    ("barrons.com", 3, "Barron's"),
    ("investopedia.com", 3, "Investopedia"),
    ("seekingalpha.com", 3, "Seeking Alpha"),
    ("zerohedge.com", 3, "ZeroHedge"),
    ("coindesk.com", 3, "CoinDesk"),
    ("theblock.co", 3, "The Block"),
    ("nytimes.com", 4, "NY Times"),
    ("washingtonpost.com", 4, "Washington Post"),
    ("bbc.com", 4, "BBC"),
    ("cnn.com", 4, "CNN"),
    ("theguardian.com", 4, "The Guardian"),
)

_TIER_POINTS: dict[int, tuple[int, str]] = {
    1: (30, "Official government/central bank source - highest authority"),
    2: (25, "Top-tier financial news - highly reliable"),
    3: (18, "Quality financial source - trusted analysis"),
    4: (12, "Major news outlet with financial coverage"),
}

# (min source_quality, points, description)
_QUALITY_FALLBACK: tuple[tuple[int, int, str], ...] = (
    (95, 28, "Very high quality source"),
    (85, 20, "High quality source"),
    (70, 12, "Moderate quality source"),
    (0, 5, "Lower tier source"),
)

# Assumed quality when none is known.
DEFAULT_SOURCE_QUALITY = 60

# Source names match on the domain stem ("bloomberg") or the label ("Federal Reserve").
_TIER_MATCHERS = tuple(
    (domain, tier, label, (term_pattern(domain.split(".")[0]), term_pattern(label)))
    for domain, tier, label in SOURCE_TIERS
)

# ── Surprise ────────────────────────────────────────────────────

STRONG_SURPRISE: tuple[str, ...] = (
    "unexpected", "unexpectedly", "surprise", "surprises", "surprising",
    "shock", "shocks", "beats", "misses", "exceeds", "falls short",
    "contrary", "reversal", "u-turn", "pivot", "dramatic", "unprecedented",
)
MILD_SURPRISE: tuple[str, ...] = (
    "better than expected", "worse than expected", "above forecast",
    "below forecast", "ahead of", "behind",
)

_STRONG_RE = tuple(term_pattern(t) for t in STRONG_SURPRISE)
_MILD_RE = tuple(term_pattern(t) for t in MILD_SURPRISE)

# ── Cross-asset ─────────────────────────────────────────────────


@dataclass(frozen=True)
class CrossAssetPattern:
    name: str
    pattern: re.Pattern[str]
    points: int
    label: str
    assets: tuple[str, ...]
    historical_move: str


_MULTI = (25, "Multi-Asset Impact")
_SECTOR = (18, "Sector-Wide Impact")
_RELATED = (12, "Related Assets")

# First match wins.
CROSS_ASSET_PATTERNS: tuple[CrossAssetPattern, ...] = (
    CrossAssetPattern(
        "fed", re.compile(r"\b(fed|federal reserve|fomc|powell)\b", re.I), *_MULTI,
        ("USD", "Bonds", "Gold", "Stocks"),
        "Fed decisions historically move SPY 1-3% and DXY 0.5-1%",
    ),
    CrossAssetPattern(
        "rate", re.compile(r"\b(rates?|interest|yields?)\b", re.I), *_SECTOR,
        ("Bonds", "REITs", "Banks", "USD"),
        "Rate changes typically move TLT 2-5% and bank stocks 3-5%",
    ),
    CrossAssetPattern(
        "inflation", re.compile(r"\b(inflation|cpi|pce)\b", re.I), *_SECTOR,
        ("Gold", "TIPS", "Commodities"),
        "CPI surprises historically move gold 1-2% same day",
    ),
    CrossAssetPattern(
        "oil", re.compile(r"\b(oil|opec\+?|crude|petroleum)\b", re.I), *_MULTI,
        ("XLE", "Airlines", "Transport", "USD/CAD"),
        "Oil shocks move energy stocks 3-7% on average",
    ),
    CrossAssetPattern(
        "china", re.compile(r"\b(china|chinese|beijing)\b", re.I), *_SECTOR,
        ("FXI", "Copper", "AUD", "Semis"),
        "China news typically moves FXI 2-4% and copper 1-2%",
    ),
    CrossAssetPattern(
        "earnings", re.compile(r"\b(earnings|quarterly|q[1-4])\b", re.I), *_RELATED,
        ("Stock", "Sector ETF", "Options"),
        "Earnings beats/misses move stocks 5-15% on average",
    ),
    CrossAssetPattern(
        "crypto", re.compile(r"\b(bitcoin|crypto|cryptocurrency|ethereum)\b", re.I), *_SECTOR,
        ("BTC", "ETH", "Altcoins", "COIN"),
        "Major crypto news moves BTC 3-10% within hours",
    ),
    CrossAssetPattern(
        "war", re.compile(r"\b(war|military|invasion|conflict)\b", re.I), *_MULTI,
        ("Oil", "Gold", "Defense", "VIX"),
        "Geopolitical events spike VIX 10-30% and gold 1-3%",
    ),
    CrossAssetPattern(
        "tariff", re.compile(r"\b(tariffs?|trade war|imports?|exports?)\b", re.I), *_RELATED,
        ("Affected sectors", "FX pairs", "Importers"),
        "Tariff announcements move affected sectors 2-5%",
    ),
)

_DEFAULT_ASSETS = ("Related sector",)
_DEFAULT_NOTE = "Market impact varies"

# ── Portfolio overlap ───────────────────────────────────────────

# A sector word in the text counts as a mention of these holdings.
SECTOR_TICKERS: tuple[tuple[str, frozenset[str]], ...] = (
    ("tech", frozenset({"AAPL", "MSFT", "GOOGL", "META", "NVDA", "AMD", "INTC", "QQQ"})),
    ("finance", frozenset({"JPM", "BAC", "GS", "MS", "XLF"})),
    ("energy", frozenset({"XOM", "CVX", "XLE", "OIL"})),
    ("crypto", frozenset({"BTC", "ETH", "COIN", "MSTR"})),
)
_SECTOR_RE = tuple((term_pattern(s), tickers) for s, tickers in SECTOR_TICKERS)

# ── Bands ───────────────────────────────────────────────────────

# (min score, level, description, colour name)
IMPACT_BANDS: tuple[tuple[int, str, str, str], ...] = (
    (80, "critical", "Critical market-moving event", "red"),
    (60, "high", "High market impact expected", "orange"),
    (40, "medium", "Moderate market impact", "yellow"),
    (0, "low", "Low market impact", "blue"),
)

_BADGES = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🔵"}


def _color(name: str) -> dict[str, str]:
    return {
        "bg": f"bg-{name}-500/10",
        "text": f"text-{name}-500",
        "border": f"border-{name}-500/30",
    }


# ── Sub-scores ──────────────────────────────────────────────────


def _url_host(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def source_weight(source: str, url: str = "", source_quality: int | None = None) -> SubScore:
    host = _url_host(url) if url else ""
    for domain, tier, label, patterns in _TIER_MATCHERS:
        by_name = any(rx.search(source or "") for rx in patterns)
        if by_name or (host and (host == domain or host.endswith("." + domain))):
            points, desc = _TIER_POINTS[tier]
            return SubScore(points, SOURCE_MAX, label, desc)

    quality = source_quality or DEFAULT_SOURCE_QUALITY
    for floor, points, desc in _QUALITY_FALLBACK:
        if quality >= floor:
            return SubScore(points, SOURCE_MAX, "General News", desc)
    return SubScore(5, SOURCE_MAX, "General News", "Lower tier source")


def surprise_factor(text: str, sentiment: str = "neutral") -> SubScore:
    if any(rx.search(text) for rx in _STRONG_RE):
        return SubScore(25, SURPRISE_MAX, "High Surprise",
                        "Significant deviation from consensus expectations")
    if any(rx.search(text) for rx in _MILD_RE):
        return SubScore(15, SURPRISE_MAX, "Moderate Surprise",
                        "Differs from market expectations")
    if sentiment in ("bullish", "bearish"):
        return SubScore(10, SURPRISE_MAX, "Directional",
                        "Clear directional signal in the news")
    return SubScore(5, SURPRISE_MAX, "Neutral", "No significant surprise element")


def match_cross_asset(text: str, category: str = "") -> CrossAssetPattern | None:
    for p in CROSS_ASSET_PATTERNS:
        if p.pattern.search(text) or (p.name == "crypto" and category == "crypto"):
            return p
    return None


def cross_asset_effect(text: str, category: str = "") -> CrossAssetScore:
    p = match_cross_asset(text, category)
    if p is None:
        return CrossAssetScore(
            5, CROSS_ASSET_MAX, "Single Asset", "Primarily affects single asset",
            historical_note=_DEFAULT_NOTE, affected_assets=list(_DEFAULT_ASSETS),
        )
    if p.points == _MULTI[0]:
        desc = f"Affects {len(p.assets)}+ asset classes simultaneously"
    elif p.points == _SECTOR[0]:
        desc = "Ripple effects across related markets"
    else:
        desc = "May impact correlated instruments"
    return CrossAssetScore(
        p.points, CROSS_ASSET_MAX, p.label, desc,
        historical_note=p.historical_move, affected_assets=list(p.assets),
    )


def portfolio_overlap(text: str, portfolio_tickers: list[str] | None) -> PortfolioScore:
    if not portfolio_tickers:
        return PortfolioScore(5, PORTFOLIO_MAX, "Unknown", "Add portfolio to see overlap")

    overlap: list[str] = []
    for ticker in portfolio_tickers:
        t = re.escape(ticker.strip())
        if t and re.search(rf"(\${t}\b|\b{t}\b)", text, re.I):
            overlap.append(ticker)

    for rx, sector_tickers in _SECTOR_RE:
        if rx.search(text):
            overlap.extend(t for t in portfolio_tickers if t.upper() in sector_tickers)

    overlap = list(dict.fromkeys(overlap))
    n = len(overlap)
    if n >= 3:
        return PortfolioScore(20, PORTFOLIO_MAX, "High Overlap",
                              f"Directly impacts {n} of your holdings", overlapping_assets=overlap)
    if n >= 1:
        return PortfolioScore(12, PORTFOLIO_MAX, "Some Overlap",
                              f"Related to {n} of your positions", overlapping_assets=overlap)
    return PortfolioScore(3, PORTFOLIO_MAX, "No Overlap", "No direct portfolio impact detected")


# ── Public API ──────────────────────────────────────────────────


def impact_band(score: int) -> tuple[str, str, dict[str, str]]:
    """``(level, description, color)`` for a total score."""
    for floor, level, desc, colour in IMPACT_BANDS:
        if score >= floor:
            return level, desc, _color(colour)
    return "low", "Low market impact", _color("blue")


def score_text(
    text: str,
    *,
    sentiment: str = "neutral",
    source: str = "",
    url: str = "",
    source_quality: int | None = None,
    category: str = "",
    portfolio_tickers: list[str] | None = None,
) -> MarketImpact:
    breakdown = ScoreBreakdown(
        source_weight=source_weight(source, url, source_quality),
        surprise_factor=surprise_factor(text, sentiment),
        cross_asset_effect=cross_asset_effect(text, category),
        portfolio_overlap=portfolio_overlap(text, portfolio_tickers),
    )
    total = max(0, min(100, breakdown.total))
    level, desc, color = impact_band(total)
    return MarketImpact(level=level, score=total, description=desc, color=color, breakdown=breakdown)


def score_impact(item: NewsItem, portfolio_tickers: list[str] | None = None) -> MarketImpact:
    """EdgeScore for a news item against an optional portfolio."""
    return score_text(
        f"{item.title} {item.summary}",
        sentiment=item.sentiment,
        source=item.source,
        url=item.url,
        source_quality=item.source_quality,
        category=item.category,
        portfolio_tickers=portfolio_tickers,
    )


def impact_badge(level: str) -> str:
    return _BADGES.get(level, _BADGES["low"])
