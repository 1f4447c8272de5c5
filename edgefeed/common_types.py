"""Unified internal schema shared across all providers and stages.

Every adapter (FMP, EODHD, Finnhub, …) normalises its raw payload into a
``NewsItem`` or ``CalendarEvent`` before entering the pipeline.  The
classifier, scorer and matcher then fill in their fields on a copy.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class MarketTopic(str, Enum):
    """Closed taxonomy the classifiers output against."""

    RATES_CENTRAL_BANKS = "RATES_CENTRAL_BANKS"
    INFLATION_MACRO = "INFLATION_MACRO"
    REGULATION_POLICY = "REGULATION_POLICY"
    EARNINGS_FINANCIALS = "EARNINGS_FINANCIALS"
    MA_CORPORATE_ACTIONS = "MA_CORPORATE_ACTIONS"
    TECH_PRODUCT = "TECH_PRODUCT"
    SECURITY_INCIDENT = "SECURITY_INCIDENT"
    ETFS_FLOWS = "ETFS_FLOWS"
    LEGAL_ENFORCEMENT = "LEGAL_ENFORCEMENT"
    GEOPOLITICS_CRISIS = "GEOPOLITICS_CRISIS"

    @classmethod
    def parse(cls, value: Any) -> MarketTopic | None:
        """Lenient lookup: accepts the enum value in any case, else ``None``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class SessionBucket(str, Enum):
    PRE_MARKET = "pre-market"
    REGULAR_HOURS = "regular-hours"
    AFTER_HOURS = "after-hours"
    MARKET_CLOSED = "market-closed"


SENTIMENTS = ("bullish", "bearish", "neutral")
IMPORTANCE_LEVELS = ("high", "medium", "low")


# ── Classification ──────────────────────────────────────────────


@dataclass
class Classification:
    """Output contract shared by the rule-based and LLM classifiers."""

    is_relevant: bool
    topics: list[MarketTopic]
    score: int  # 0-100
    reasons: list[str]
    trading_signal: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "isRelevant": self.is_relevant,
            "topics": [t.value for t in self.topics],
            "score": self.score,
            "reasons": list(self.reasons),
            "tradingSignal": self.trading_signal,
        }

    @classmethod
    def irrelevant(cls, reason: str) -> Classification:
        return cls(is_relevant=False, topics=[], score=0, reasons=[reason])


# ── Impact ──────────────────────────────────────────────────────


@dataclass
class SubScore:
    score: int
    max_score: int
    label: str
    description: str


@dataclass
class CrossAssetScore(SubScore):
    historical_note: str | None = None
    affected_assets: list[str] = field(default_factory=list)


@dataclass
class PortfolioScore(SubScore):
    overlapping_assets: list[str] = field(default_factory=list)


@dataclass
class ScoreBreakdown:
    source_weight: SubScore
    surprise_factor: SubScore
    cross_asset_effect: CrossAssetScore
    portfolio_overlap: PortfolioScore

    @property
    def parts(self) -> tuple[SubScore, ...]:
        return (
            self.source_weight,
            self.surprise_factor,
            self.cross_asset_effect,
            self.portfolio_overlap,
        )

    @property
    def total(self) -> int:
        return sum(p.score for p in self.parts)


@dataclass
class MarketImpact:
    level: str  # "low" | "medium" | "high" | "critical"
    score: int  # 0-100, always breakdown.total
    description: str
    color: dict[str, str]
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MarketImpact:
        b = d["breakdown"]
        return cls(
            level=d["level"],
            score=int(d["score"]),
            description=d["description"],
            color=dict(d["color"]),
            breakdown=ScoreBreakdown(
                source_weight=SubScore(**b["source_weight"]),
                surprise_factor=SubScore(**b["surprise_factor"]),
                cross_asset_effect=CrossAssetScore(**b["cross_asset_effect"]),
                portfolio_overlap=PortfolioScore(**b["portfolio_overlap"]),
            ),
        )


# ── News ────────────────────────────────────────────────────────


@dataclass
class NewsItem:
    """Provider-agnostic news record."""

    id: str
    title: str
    summary: str
    source: str
    timestamp: float  # epoch seconds, 0.0 when unknown
    url: str
    category: str = "all"
    sentiment: str = "neutral"  # "bullish" | "bearish" | "neutral"
    relevance_score: int = 0
    trading_signal: str | None = None
    source_quality: int | None = None
    keywords: list[str] = field(default_factory=list)
    topics: list[MarketTopic] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    provider: str = ""
    is_us: bool = False
    impact: MarketImpact | None = None
    portfolio_matches: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Minimal sanity check before pipeline accepts the item."""
        return bool(self.id and self.title.strip())

    @property
    def text(self) -> str:
        """Title + summary + keywords, the classifier's input."""
        return " ".join(p for p in (self.title, self.summary, " ".join(self.keywords)) if p)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["topics"] = [t.value for t in self.topics]
        d["impact"] = self.impact.to_dict() if self.impact is not None else None
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NewsItem:
        data = dict(d)
        data["topics"] = [t for t in (MarketTopic.parse(x) for x in data.get("topics") or []) if t]
        impact = data.get("impact")
        data["impact"] = MarketImpact.from_dict(impact) if impact else None
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in known})


# ── Calendar ────────────────────────────────────────────────────


@dataclass
class CalendarEvent:
    id: str
    title: str
    time: str  # exchange-local "HH:MM" or DEFAULT_DISPLAY_TIME
    date: str  # display label: "Today" | "Tomorrow" | "Nov 26"
    date_key: str  # YYYY-MM-DD (exchange-local calendar date)
    type: str = "economic"  # "economic" | "crypto"
    importance: str = "medium"  # "high" | "medium" | "low"
    actual: str | None = None
    forecast: str | None = None
    currency: str | None = None
    country: str | None = None
    ticker: str | None = None
    market_hours: SessionBucket | None = None
    is_us: bool = False
    topic: MarketTopic = MarketTopic.INFLATION_MACRO
    event_ts: float | None = None
    provider: str = ""

    @property
    def has_occurred(self) -> bool:
        return self.actual is not None and str(self.actual).strip() != ""

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["market_hours"] = self.market_hours.value if self.market_hours else None
        d["topic"] = self.topic.value
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CalendarEvent:
        data = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        mh = data.get("market_hours")
        data["market_hours"] = SessionBucket(mh) if mh else None
        data["topic"] = MarketTopic.parse(data.get("topic")) or MarketTopic.INFLATION_MACRO
        return cls(**data)


# ── Portfolio ───────────────────────────────────────────────────


@dataclass(frozen=True)
class PortfolioAsset:
    symbol: str
    type: str = "stock"  # "stock" | "crypto"
