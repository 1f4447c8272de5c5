"""Global configuration for the edgefeed pipeline.

All tunables can be overridden via environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_float(key: str, default: float) -> float:
    """Read an env var as float, returning *default* on parse failure."""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def _env_int(key: str, default: int) -> int:
    """Read an env var as int, returning *default* on parse failure."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def _env_flag(key: str, default: bool) -> bool:
    return os.getenv(key, "1" if default else "0") == "1"


@dataclass(frozen=True)
class Config:
    """Central configuration – one instance per pipeline.

    Environment variables are read at **instantiation** time (not module
    import time) so callers can set them programmatically before
    creating a ``Config``.
    """

    # ── Provider credentials (repr=False to prevent accidental logging)
    fmp_api_key: str = field(default_factory=lambda: os.getenv("FMP_API_KEY", ""), repr=False)
    eodhd_api_key: str = field(default_factory=lambda: os.getenv("EODHD_API_KEY", ""), repr=False)
    finnhub_api_key: str = field(default_factory=lambda: os.getenv("FINNHUB_API_KEY", ""), repr=False)
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""), repr=False)

    # ── LLM classifier ──────────────────────────────────────────
    enable_llm_classifier: bool = field(default_factory=lambda: _env_flag("ENABLE_LLM_CLASSIFIER", False))
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"))
    llm_base_url: str = field(default_factory=lambda: os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"))
    llm_timeout_s: float = field(default_factory=lambda: _env_float("LLM_TIMEOUT_S", 8.0))
    classify_workers: int = field(default_factory=lambda: _env_int("CLASSIFY_WORKERS", 8))

    # ── Upstream fetches ────────────────────────────────────────
    source_timeout_s: float = field(default_factory=lambda: _env_float("SOURCE_TIMEOUT_S", 15.0))
    news_page_size: int = field(default_factory=lambda: _env_int("NEWS_PAGE_SIZE", 50))
    news_max_age_days: int = field(default_factory=lambda: _env_int("NEWS_MAX_AGE_DAYS", 7))

    # ── Market session / calendar ───────────────────────────────
    exchange_tz: str = field(default_factory=lambda: os.getenv("EXCHANGE_TZ", "America/New_York"))
    calendar_window_days: int = field(default_factory=lambda: _env_int("CALENDAR_WINDOW_DAYS", 7))
    # Same-day releases are treated as stale once exchange-local time
    # reaches this hour.
    same_day_cutoff_hour: int = field(default_factory=lambda: _env_int("SAME_DAY_CUTOFF_HOUR", 12))
    calendar_us_only: bool = field(default_factory=lambda: _env_flag("CALENDAR_US_ONLY", True))

    # ── Cache ───────────────────────────────────────────────────
    cache_path: str = field(default_factory=lambda: os.getenv("CACHE_PATH", "edgefeed/cache.db"))
    news_cache_ttl_s: float = field(default_factory=lambda: _env_float("NEWS_CACHE_TTL_S", 60.0))
    today_cache_ttl_s: float = field(default_factory=lambda: _env_float("TODAY_CACHE_TTL_S", 300.0))
    calendar_cache_ttl_s: float = field(default_factory=lambda: _env_float("CALENDAR_CACHE_TTL_S", 300.0))

    # ── Export / loop ───────────────────────────────────────────
    export_path: str = field(default_factory=lambda: os.getenv("EXPORT_PATH", "artifacts/edgefeed/feed.json"))
    poll_interval_s: float = field(default_factory=lambda: _env_float("POLL_INTERVAL_S", 60.0))

    # ── Derived helpers ─────────────────────────────────────────

    @property
    def llm_enabled(self) -> bool:
        return self.enable_llm_classifier and bool(self.openai_api_key)

    @property
    def active_sources(self) -> list[str]:
        """List of enabled source labels for export metadata."""
        sources: list[str] = []
        if self.fmp_api_key:
            sources.extend(["fmp_news", "fmp_calendar"])
        if self.eodhd_api_key:
            sources.append("eodhd_news")
        if self.finnhub_api_key:
            sources.append("finnhub_calendar")
        return sources
