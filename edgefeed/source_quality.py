"""Publisher quality ratings (0–100) and their tiers."""

from __future__ import annotations

from dataclasses import dataclass

SOURCE_RATINGS: dict[str, int] = {
    # Premium (95-100)
    "Bloomberg": 98,
    "Reuters": 97,
    "Financial Times": 97,
    "The Wall Street Journal": 96,
    "Associated Press": 96,
    "The Economist": 95,
    # Highly reliable (85-94)
    "CNBC": 92,
    "CNN Business": 90,
    "BBC News": 92,
    "The New York Times": 91,
    "Washington Post": 90,
    "Fortune": 89,
    "Forbes": 88,
    "MarketWatch": 88,
    "Barron's": 90,
    "CoinDesk": 87,
    "TechCrunch": 86,
    "The Verge": 85,
    # Reliable (70-84)
    "Business Insider": 82,
    "Yahoo Finance": 80,
    "Investopedia": 78,
    "Decrypt": 76,
    "CryptoSlate": 75,
    "Cointelegraph": 74,
}

UNKNOWN_SOURCE_RATING = 60

# Provider "site" values and bare host stems seen in feeds.
_ALIASES: dict[str, str] = {
    "bloomberg.com": "Bloomberg",
    "reuters.com": "Reuters",
    "ft.com": "Financial Times",
    "wsj.com": "The Wall Street Journal",
    "wsj": "The Wall Street Journal",
    "apnews.com": "Associated Press",
    "economist.com": "The Economist",
    "cnbc.com": "CNBC",
    "bbc.com": "BBC News",
    "bbc.co.uk": "BBC News",
    "nytimes.com": "The New York Times",
    "nytimes": "The New York Times",
    "washingtonpost.com": "Washington Post",
    "washingtonpost": "Washington Post",
    "fortune.com": "Fortune",
    "forbes.com": "Forbes",
    "marketwatch.com": "MarketWatch",
    "barrons.com": "Barron's",
    "coindesk.com": "CoinDesk",
    "techcrunch.com": "TechCrunch",
    "theverge.com": "The Verge",
    "businessinsider.com": "Business Insider",
    "finance.yahoo.com": "Yahoo Finance",
    "investopedia.com": "Investopedia",
    "decrypt.co": "Decrypt",
    "cryptoslate.com": "CryptoSlate",
    "cointelegraph.com": "Cointelegraph",
}

_LOOKUP: dict[str, int] = {name.lower(): score for name, score in SOURCE_RATINGS.items()}
_LOOKUP.update({alias: SOURCE_RATINGS[name] for alias, name in _ALIASES.items()})


@dataclass(frozen=True)
class SourceQuality:
    score: int
    tier: str  # "premium" | "reliable" | "standard" | "unverified"
    description: str


def source_rating(source_name: str) -> int:
    key = (source_name or "").strip().lower()
    if key.startswith("www."):
        key = key[4:]
    return _LOOKUP.get(key, UNKNOWN_SOURCE_RATING)


def source_quality(source_name: str) -> SourceQuality:
    score = source_rating(source_name)
    if score >= 95:
        return SourceQuality(score, "premium", "Premium verified source")
    if score >= 85:
        return SourceQuality(score, "reliable", "Highly reliable source")
    if score >= 70:
        return SourceQuality(score, "standard", "Standard source")
    return SourceQuality(score, "unverified", "Unverified source")
