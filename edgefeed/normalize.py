"""Normalisation functions: raw provider payloads → NewsItem.

Each provider has its own normaliser.  The functions are **schema-
tolerant**: they try several field names so that minor API changes
don't silently drop data.  The *primary* field names match the real
API responses.

FMP (/stable/news/stock-latest):
    symbol, publishedDate, publisher, title, image, site, text, url

EODHD (/api/news):
    date, title, content, link, symbols[], tags[], sentiment{polarity,neg,neu,pos}

Neither provider has a stable ``id`` field, so ids are derived from the
URL (or title + date when the URL is missing).
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import timezone
from typing import Any
from urllib.parse import urlsplit

from dateutil import parser as dtparser

from .common_types import NewsItem
from .source_quality import UNKNOWN_SOURCE_RATING, source_rating
from .topics import compile_terms

logger = logging.getLogger(__name__)

# Summaries are trimmed to this many characters.
_MAX_SUMMARY = 1000

# Minimum length for a date string to be considered valid.
# Shorter strings like "5" are ambiguously parsed by dateutil.
_MIN_DATE_LEN = 8


def _to_epoch(s: Any) -> float:
    """Parse a date/time string to epoch seconds.

    Returns ``0.0`` for empty, too-short, or unparseable strings.
    Naive datetimes are assumed UTC.
    """
    if not s:
        return 0.0
    s_stripped = str(s).strip()
    if len(s_stripped) < _MIN_DATE_LEN:
        logger.warning("Date string too short (%d chars): %r – returning epoch 0.", len(s_stripped), s_stripped)
        return 0.0
    try:
        dt = dtparser.parse(s_stripped)
    except (ValueError, OverflowError):
        logger.warning("Unparseable date %r – returning epoch 0.", s_stripped[:80])
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def article_id(url: str, title: str, published: str) -> str:
    """Deterministic id: same article → same id across refreshes."""
    basis = url if url and url != "#" else f"{title}-{published}"
    return "art-" + hashlib.sha1(basis.encode("utf-8")).hexdigest()[:12]


def extract_source(url: str) -> str:
    """Host stem of *url* (``https://www.reuters.com/x`` → ``reuters``)."""
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host.split(".")[0] if host else ""


def _tags_text(tags: Any) -> str:
    if isinstance(tags, (list, tuple)):
        return " ".join(str(t) for t in tags).lower()
    return str(tags or "").lower()


# Checked in order; the first category with a whole-word hit wins.
_CATEGORY_TERMS = (
    ("crypto", compile_terms(("crypto", "cryptocurrency", "cryptocurrencies", "bitcoin", "ethereum"))),
    ("technology", compile_terms(("tech", "technology"))),
    ("stocks", compile_terms(("stock", "stocks", "equity", "equities", "market", "markets"))),
    ("war", compile_terms(("war", "wars", "conflict", "conflicts"))),
    ("politics", compile_terms(("politics", "political"))),
)


def map_category(tags: Any) -> str:
    """Feed category from provider tags (or a bare symbol)."""
    s = _tags_text(tags)
    for category, terms in _CATEGORY_TERMS:
        if any(rx.search(s) for _term, rx in terms):
            return category
    return "all"


def extract_keywords(tags: Any) -> list[str]:
    if not tags:
        return []
    if isinstance(tags, (list, tuple)):
        parts = [str(t).strip() for t in tags]
    else:
        parts = [t.strip() for t in str(tags).split(",")]
    return [t for t in parts if len(t) > 2]


# ── Sentiment ───────────────────────────────────────────────────

_BULLISH_KEYWORDS: frozenset[str] = frozenset({
    "upgrade", "upgrades", "upgraded", "beat", "beats", "beating",
    "raise", "raises", "raised", "record", "bullish", "outperform",
    "rally", "rallies", "surge", "surges", "surging", "growth", "profit",
    "strong", "positive", "exceeds", "exceeded", "higher", "upbeat",
    "boost", "boosted", "breakout", "approval", "approved", "gains", "soars",
})

_BEARISH_KEYWORDS: frozenset[str] = frozenset({
    "downgrade", "downgrades", "downgraded", "miss", "misses", "missed",
    "decline", "declined", "declining", "loss", "losses", "selloff",
    "bearish", "underperform", "warning", "warns", "weak", "layoffs",
    "lawsuit", "recall", "fraud", "investigation", "negative", "lower",
    "disappointing", "fails", "failed", "bankruptcy", "plunge", "plunges",
    "slump", "tumbles", "crash",
})

_WORD_RE = re.compile(r"\b[a-z]+\b")


def keyword_sentiment(title: str, content: str = "") -> str:
    """Directional sentiment from keywords; title words count double."""
    title_words = set(_WORD_RE.findall((title or "").lower()))
    content_words = set(_WORD_RE.findall((content or "")[:800].lower()))

    bull = len(title_words & _BULLISH_KEYWORDS) * 2 + len(content_words & _BULLISH_KEYWORDS)
    bear = len(title_words & _BEARISH_KEYWORDS) * 2 + len(content_words & _BEARISH_KEYWORDS)
    total = bull + bear
    if total == 0:
        return "neutral"

    net = (bull - bear) / total
    if net > 0.15:
        return "bullish"
    if net < -0.15:
        return "bearish"
    return "neutral"


def map_sentiment(raw: Any, title: str = "", content: str = "") -> str:
    """Provider sentiment → bullish/bearish/neutral.

    Accepts label strings ("Bullish", "positive"), EODHD polarity dicts,
    or nothing, in which case keywords decide.
    """
    if isinstance(raw, dict):
        try:
            polarity = float(raw.get("polarity", 0.0))
        except (TypeError, ValueError):
            polarity = 0.0
        if polarity > 0.1:
            return "bullish"
        if polarity < -0.1:
            return "bearish"
        return "neutral"
    if raw:
        s = str(raw).lower()
        if "bull" in s or "positive" in s:
            return "bullish"
        if "bear" in s or "negative" in s:
            return "bearish"
        return "neutral"
    return keyword_sentiment(title, content)


def _quality_for(source: str, url: str) -> int:
    rating = source_rating(source)
    if rating == UNKNOWN_SOURCE_RATING and url:
        try:
            host = (urlsplit(url).hostname or "").lower()
        except ValueError:
            host = ""
        if host:
            rating = source_rating(host)
    return rating


# ── FMP ─────────────────────────────────────────────────────────

def normalize_fmp(it: dict[str, Any]) -> NewsItem:
    """Normalise one raw FMP stock-news item."""
    title = str(it.get("title") or it.get("headline") or "").strip()
    summary = str(it.get("text") or it.get("content") or it.get("snippet") or "").strip()
    url = str(it.get("url") or it.get("link") or "").strip()
    source = str(it.get("site") or it.get("publisher") or it.get("source") or "").strip()
    source = source or extract_source(url) or "News"
    published = str(it.get("publishedDate") or it.get("date") or "").strip()
    symbol = str(it.get("symbol") or "").strip().upper()
    tags = it.get("tags") or symbol

    return NewsItem(
        id=article_id(url, title, published),
        title=title,
        summary=summary[:_MAX_SUMMARY],
        source=source,
        timestamp=_to_epoch(published),
        url=url or "#",
        category=map_category(tags),
        sentiment=map_sentiment(it.get("sentiment"), title, summary),
        source_quality=_quality_for(source, url),
        keywords=[symbol] if symbol else [],
        provider="fmp",
        is_us=True,
    )


# ── EODHD ───────────────────────────────────────────────────────

def normalize_eodhd(it: dict[str, Any]) -> NewsItem:
    """Normalise one raw EODHD news item."""
    title = str(it.get("title") or it.get("headline") or "").strip()
    summary = str(
        it.get("content") or it.get("text") or it.get("description") or it.get("summary") or ""
    ).strip()
    url = str(it.get("link") or it.get("url") or it.get("source_url") or "").strip()
    source = str(it.get("source") or it.get("site") or "").strip()
    source = source or extract_source(url) or "News"
    published = str(it.get("date") or it.get("published_at") or it.get("publishedDate") or "").strip()

    symbols = it.get("symbols") or []
    if isinstance(symbols, str):
        symbols = [s.strip() for s in symbols.split(",") if s.strip()]
    symbols = [str(s).upper() for s in symbols]
    tags = it.get("tags") or it.get("tag") or it.get("categories") or ""

    return NewsItem(
        id=article_id(url, title, published),
        title=title,
        summary=summary[:_MAX_SUMMARY],
        source=source,
        timestamp=_to_epoch(published),
        url=url or "#",
        category=map_category(tags or (symbols[0] if symbols else "")),
        sentiment=map_sentiment(it.get("sentiment"), title, summary),
        source_quality=_quality_for(source, url),
        keywords=extract_keywords(tags),
        provider="eodhd",
        is_us=any(s.endswith(".US") for s in symbols),
    )
