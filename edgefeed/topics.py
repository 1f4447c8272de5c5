"""Market-topic taxonomy tables.

Pure data plus the helper that turns a keyword into a word-boundary
regex.  Evaluation lives in :mod:`edgefeed.classifier`; keeping the
tables here lets them be extended and tested on their own.
"""

from __future__ import annotations

import re

from .common_types import MarketTopic


def term_pattern(term: str) -> re.Pattern[str]:
    """Case-insensitive regex for *term* bounded by non-alphanumerics.

    ``\\b`` alone misbehaves around ``&`` and ``$`` ("m&a", "s&p 500"),
    so explicit look-arounds are used instead.
    """
    body = r"\s+".join(re.escape(part) for part in term.split())
    return re.compile(rf"(?<![A-Za-z0-9]){body}(?![A-Za-z0-9])", re.IGNORECASE)


def compile_terms(terms: tuple[str, ...]) -> tuple[tuple[str, re.Pattern[str]], ...]:
    return tuple((t, term_pattern(t)) for t in terms)


# ── Topic keywords (evaluation order = output order) ────────────

TOPIC_KEYWORDS: tuple[tuple[MarketTopic, tuple[str, ...]], ...] = (
    (MarketTopic.RATES_CENTRAL_BANKS, (
        "fed", "federal reserve", "ecb", "european central bank", "boe",
        "bank of england", "boj", "bank of japan", "rate decision", "rate hike",
        "rate cut", "fomc", "monetary policy", "interest rate", "powell",
        "lagarde", "central bank",
    )),
    (MarketTopic.INFLATION_MACRO, (
        "cpi", "inflation", "pce", "gdp", "unemployment", "jobs report",
        "nonfarm payrolls", "retail sales", "pmi", "ism", "manufacturing",
        "economic data", "jobless claims", "consumer spending", "wage growth",
    )),
    (MarketTopic.REGULATION_POLICY, (
        "sec", "cftc", "regulation", "regulatory", "antitrust",
        "government policy", "legislation", "compliance", "etf approval",
        "etf denial", "crypto ban", "kyc", "aml", "tax policy", "securities law",
    )),
    (MarketTopic.EARNINGS_FINANCIALS, (
        "earnings", "eps", "revenue", "profit", "quarterly results",
        "earnings beat", "earnings miss", "guidance", "profit warning", "margin",
        "balance sheet", "cash flow", "dividend", "revenue growth",
        "earnings call", "q1", "q2", "q3", "q4", "quarterly", "fiscal year",
        "financial results", "analyst", "rating", "price target",
    )),
    (MarketTopic.MA_CORPORATE_ACTIONS, (
        "merger", "acquisition", "takeover", "buyout", "partnership",
        "joint venture", "stock split", "reverse split", "share buyback", "m&a",
        "strategic alliance", "token burn", "tokenomics", "ipo",
        "initial public offering", "direct listing", "spac", "going public",
        "secondary offering", "capital raise", "funding round", "series a",
        "series b", "venture capital", "investment",
    )),
    (MarketTopic.TECH_PRODUCT, (
        "product launch", "new product", "ai initiative",
        "artificial intelligence", "machine learning", "mainnet", "l2 launch",
        "layer 2", "protocol launch", "upgrade", "software release",
        "hardware release", "consensus change",
    )),
    (MarketTopic.SECURITY_INCIDENT, (
        "hack", "breach", "exploit", "vulnerability", "cyberattack",
        "data breach", "security incident", "fraud", "scam", "rug pull",
        "smart contract bug", "outage", "system failure", "chain halt",
    )),
    (MarketTopic.ETFS_FLOWS, (
        "etf", "fund flow", "institutional", "treasury", "corporate buy",
        "whale", "large holder", "spot etf", "bitcoin etf", "ethereum etf",
        "fund launch", "inflow", "outflow", "grayscale", "blackrock",
    )),
    (MarketTopic.LEGAL_ENFORCEMENT, (
        "lawsuit", "litigation", "class action", "settlement", "doj",
        "department of justice", "enforcement action", "indictment",
        "investigation", "legal action", "court", "sanctions", "fine", "penalty",
    )),
    (MarketTopic.GEOPOLITICS_CRISIS, (
        "war", "conflict", "sanctions", "tariff", "trade war", "geopolitical",
        "crisis", "military", "political instability", "coup", "pandemic",
        "natural disaster", "supply chain", "commodities", "oil shock",
    )),
)

TOPIC_LABELS: dict[MarketTopic, str] = {
    MarketTopic.RATES_CENTRAL_BANKS: "Rates & Central Banks",
    MarketTopic.INFLATION_MACRO: "Inflation & Macro",
    MarketTopic.REGULATION_POLICY: "Regulation & Policy",
    MarketTopic.EARNINGS_FINANCIALS: "Earnings & Financials",
    MarketTopic.MA_CORPORATE_ACTIONS: "M&A & Corporate Actions",
    MarketTopic.TECH_PRODUCT: "Tech & Product",
    MarketTopic.SECURITY_INCIDENT: "Security Incident",
    MarketTopic.ETFS_FLOWS: "ETFs & Flows",
    MarketTopic.LEGAL_ENFORCEMENT: "Legal & Enforcement",
    MarketTopic.GEOPOLITICS_CRISIS: "Geopolitics & Crisis",
}


def topic_label(topic: MarketTopic) -> str:
    return TOPIC_LABELS[topic]


# ── Noise / relevance gates ─────────────────────────────────────

NOISE_KEYWORDS: tuple[str, ...] = (
    "celebrity", "gossip", "concert", "movie", "fashion", "recipe", "lifestyle",
    "travel guide", "horoscope", "astrology", "beauty tips", "dating advice",
    "sports score", "game recap", "entertainment", "red carpet", "weight loss",
    "diet", "kardashian", "osbourne", "reality tv", "tv show", "awards show",
    "grammy", "oscar", "emmy", "golden globe", "billboard", "music video",
    "hollywood", "animal cafe", "animal cafes", "pet cafe", "cute trend",
    "viral trend", "tiktok trend", "instagram trend", "social media trend",
    "petting zoo", "cute animals", "adorable", "heartwarming story",
    "feel-good story", "human interest", "photography tips", "photo tutorial",
    "andromeda galaxy", "space photography", "amateur astronomy",
)

CELEBRITY_PATTERNS: tuple[str, ...] = (
    "kardashian", "jenner", "osbourne", "bieber", "swift", "beyonce",
    "rihanna", "drake", "kanye", "kim k", "kylie", "kendall",
)

# Any of these rescues a noisy-looking item from the noise filter.
MARKET_CONTEXT_KEYWORDS: tuple[str, ...] = (
    "stock", "stocks", "market", "markets", "trading", "earnings", "ipo",
    "revenue", "profit", "investor", "investors", "economy", "economic",
    "company", "business", "finance", "bank", "crypto", "bitcoin", "federal",
    "inflation", "rate", "rates",
)

# ── Bonus vocabularies ──────────────────────────────────────────

MARKET_ASSET_KEYWORDS: tuple[str, ...] = (
    "stock", "stocks", "equity", "equities", "crypto", "cryptocurrency",
    "bitcoin", "btc", "ethereum", "eth", "nasdaq", "s&p 500", "dow", "market",
    "trading", "trader", "investor", "portfolio", "shares", "share price",
    "market cap", "valuation", "publicly traded", "exchange", "nyse",
    "wall street", "financial", "finance",
)

LARGE_CAP_COMPANIES: tuple[str, ...] = (
    "apple", "microsoft", "tesla", "google", "amazon", "meta", "nvidia", "amd",
    "intel", "spacex", "oracle", "salesforce", "netflix",
)

# ``$AAPL`` / ``$BTC`` – matched against the original-case text.
CASHTAG_RE = re.compile(r"\$[A-Z]{2,5}\b")

ASSET_POINTS = 15
CASHTAG_POINTS = 10
COMPANY_POINTS = 20
TOPIC_POINTS = 10

# ── Calendar titles → topic (first match wins) ──────────────────

CALENDAR_TOPIC_PATTERNS: tuple[tuple[MarketTopic, re.Pattern[str]], ...] = (
    (MarketTopic.RATES_CENTRAL_BANKS, re.compile(
        r"\b(fomc|fed rate|federal reserve|ecb rate|boe rate|boj rate|central bank|"
        r"monetary policy|interest rate decision)\b", re.I)),
    (MarketTopic.INFLATION_MACRO, re.compile(
        r"\b(cpi|inflation|pce|gdp|unemployment|jobs report|nonfarm payrolls|retail sales|"
        r"pmi|ism|manufacturing|economic data)\b", re.I)),
    (MarketTopic.EARNINGS_FINANCIALS, re.compile(
        r"\b(earnings|revenue|eps|quarterly|guidance|profit|financial results)\b", re.I)),
    (MarketTopic.REGULATION_POLICY, re.compile(
        r"\b(sec|regulation|regulatory|antitrust|government policy|legislation|"
        r"etf approval|etf denial|crypto ban)\b", re.I)),
    (MarketTopic.MA_CORPORATE_ACTIONS, re.compile(
        r"(\bmerger\b|\bacquisition\b|\bm&a\b|\btakeover\b|\bbuyout\b|\bstock split\b|"
        r"\bbuyback\b|\btoken burn\b|\bipo\b|\binitial public offering\b)", re.I)),
    (MarketTopic.TECH_PRODUCT, re.compile(
        r"\b(product launch|ai|artificial intelligence|mainnet|l2|layer 2|protocol|"
        r"upgrade|software|hardware)\b", re.I)),
    (MarketTopic.SECURITY_INCIDENT, re.compile(
        r"\b(hack|breach|exploit|security incident|outage|system failure)\b", re.I)),
    (MarketTopic.ETFS_FLOWS, re.compile(
        r"\b(etf|fund flow|institutional|treasury|whale|spot etf|bitcoin etf|ethereum etf)\b", re.I)),
    (MarketTopic.LEGAL_ENFORCEMENT, re.compile(
        r"\b(lawsuit|litigation|doj|department of justice|enforcement|investigation|"
        r"settlement|fine|penalty)\b", re.I)),
    (MarketTopic.GEOPOLITICS_CRISIS, re.compile(
        r"\b(war|conflict|sanctions|tariff|trade war|geopolitical|crisis|military|"
        r"pandemic|supply chain)\b", re.I)),
)

# Most economic-calendar releases are macro prints.
DEFAULT_CALENDAR_TOPIC = MarketTopic.INFLATION_MACRO
