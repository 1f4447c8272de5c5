"""Portfolio relevance matching and cashtag detection.

An item matches a portfolio when, for any held symbol:

1. ``$SYM`` appears (any case) or ``SYM`` appears as a standalone
   upper-case word,
2. one of the symbol's company-name aliases appears as a word, or
3. the generic ``$TICKER`` detector finds the symbol.

Every test is word-bounded, so "solution" never matches ``SOL``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .common_types import PortfolioAsset
from .topics import term_pattern

COMPANY_NAME_MAP: dict[str, tuple[str, ...]] = {
    "AAPL": ("apple", "apple inc", "apple computer"),
    "MSFT": ("microsoft", "msft"),
    "GOOGL": ("google", "alphabet"),
    "GOOG": ("google", "alphabet"),
    "AMZN": ("amazon",),
    "TSLA": ("tesla", "tesla motors"),
    "META": ("facebook", "meta platforms", "meta"),
    "NVDA": ("nvidia",),
    "AMD": ("advanced micro devices", "amd"),
    "INTC": ("intel",),
    "BTC": ("bitcoin",),
    "ETH": ("ethereum",),
    "SOL": ("solana",),
    "BNB": ("binance", "binance coin"),
    "XRP": ("ripple", "xrp"),
    "ADA": ("cardano",),
    "DOGE": ("dogecoin", "doge"),
    "MATIC": ("polygon", "matic"),
    "DOT": ("polkadot",),
    "AVAX": ("avalanche",),
}

_ALIAS_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    sym: tuple(term_pattern(name) for name in names)
    for sym, names in COMPANY_NAME_MAP.items()
}

CRYPTO_TICKERS: frozenset[str] = frozenset({
    "BTC", "ETH", "SOL", "ADA", "DOT", "DOGE", "SHIB", "XRP", "MATIC", "AVAX",
    "LINK", "UNI", "AAVE", "ATOM", "ALGO", "FTM", "NEAR", "APT", "ARB", "OP",
})

_CASHTAG_RE = re.compile(r"\$([A-Z]{1,5})\b")


@dataclass(frozen=True)
class Ticker:
    symbol: str
    type: str  # "crypto" | "stock"
    full_match: str


def detect_tickers(text: str) -> list[Ticker]:
    """All ``$TICKER`` tokens in *text*, in order of appearance."""
    return [
        Ticker(
            symbol=m.group(1),
            type="crypto" if m.group(1) in CRYPTO_TICKERS else "stock",
            full_match=m.group(0),
        )
        for m in _CASHTAG_RE.finditer(text or "")
    ]


def _direct_match(text: str, symbol: str) -> bool:
    sym = re.escape(symbol)
    if re.search(rf"\${sym}(?![A-Za-z0-9])", text, re.IGNORECASE):
        return True
    return re.search(rf"(?<![A-Za-z0-9$]){sym}(?![A-Za-z0-9])", text) is not None


def _alias_match(text: str, symbol: str) -> bool:
    return any(rx.search(text) for rx in _ALIAS_PATTERNS.get(symbol, ()))


def _symbols(assets: Iterable[PortfolioAsset | str]) -> list[str]:
    out: list[str] = []
    for a in assets:
        sym = (a.symbol if isinstance(a, PortfolioAsset) else str(a)).strip().upper()
        if sym and sym not in out:
            out.append(sym)
    return out


def matching_symbols(text: str, assets: Iterable[PortfolioAsset | str]) -> list[str]:
    """Portfolio symbols mentioned in *text*, in portfolio order."""
    text = text or ""
    detected = {t.symbol for t in detect_tickers(text)}
    return [
        sym for sym in _symbols(assets)
        if _direct_match(text, sym) or _alias_match(text, sym) or sym in detected
    ]


def matches(text: str, assets: Iterable[PortfolioAsset | str]) -> bool:
    """True if *text* mentions any held asset."""
    text = text or ""
    symbols = _symbols(assets)
    if not symbols:
        return False
    for sym in symbols:
        if _direct_match(text, sym) or _alias_match(text, sym):
            return True
    detected = {t.symbol for t in detect_tickers(text)}
    return any(sym in detected for sym in symbols)

