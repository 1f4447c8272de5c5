"""Feed orchestration: providers → classify → cache → score → sort.

News::

    cache hit? ──yes──► re-filter by time range
        │no
    fetch_all(FMP, EODHD) → merge/dedupe → classify (drop irrelevant)
        → category + time-range filter → cache (TTL 60 s, 300 s for "today")
    ...then, per request: EdgeScore + portfolio flags → sort

The cached list is classified but not impact-scored: scoring depends on
the caller's portfolio, so it runs after every cache read.  When every
source fails the last cached list is served (flagged ``stale``) if one
exists.

Calendar::

    fetch_all(FMP, Finnhub) → merge/dedupe → importance screen → cache
        → actual/window/cutoff/US filters → sort → day groups
    all sources failed → static upcoming events

Use :class:`FeedPipeline` for one configuration; dependencies (store,
classifier, fetchers) can be injected for tests.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

from .aggregate import (
    TIME_RANGES,
    AggregateResult,
    calendar_window,
    fetch_all,
    filter_calendar,
    filter_time_range,
    group_by_day,
    merge_calendar,
    merge_news,
    sort_calendar,
    sort_news,
)
from .calendar_events import mock_upcoming_events, passes_importance_screen, relabel
from .classification_cache import ClassificationCache, classification_key
from .classifier import RuleBasedClassifier
from .common_types import CalendarEvent, NewsItem, PortfolioAsset
from .config import Config
from .errors import ConfigError
from .impact import score_impact
from .llm_classifier import FallbackClassifier, LLMClassifier
from .portfolio import matching_symbols
from .sessions import exchange_today
from .store_sqlite import SqliteCacheStore, cache_key

logger = logging.getLogger(__name__)

NewsFetcher = Callable[[int, int], list[NewsItem]]
CalendarFetcher = Callable[[date, date, datetime], list[CalendarEvent]]


@dataclass
class FeedResult:
    items: list[NewsItem]
    failed_sources: list[str] = field(default_factory=list)
    all_failed: bool = False
    from_cache: bool = False
    stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [it.to_dict() for it in self.items],
            "failed_sources": list(self.failed_sources),
            "all_failed": self.all_failed,
            "from_cache": self.from_cache,
            "stale": self.stale,
        }


@dataclass
class CalendarResult:
    events: list[CalendarEvent]
    groups: list[tuple[str, list[CalendarEvent]]] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)
    all_failed: bool = False
    used_fallback: bool = False
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [ev.to_dict() for ev in self.events],
            "groups": [{"key": k, "ids": [ev.id for ev in evs]} for k, evs in self.groups],
            "failed_sources": list(self.failed_sources),
            "all_failed": self.all_failed,
            "used_fallback": self.used_fallback,
            "from_cache": self.from_cache,
        }


def _now_ts(now: datetime | float | None) -> float:
    if now is None:
        return datetime.now(timezone.utc).timestamp()
    return now.timestamp() if isinstance(now, datetime) else float(now)


class FeedPipeline:
    """One configured news + calendar pipeline."""

    def __init__(
        self,
        cfg: Config | None = None,
        *,
        store: SqliteCacheStore | None = None,
        classifier: FallbackClassifier | None = None,
        news_fetchers: list[tuple[str, NewsFetcher]] | None = None,
        calendar_fetchers: list[tuple[str, CalendarFetcher]] | None = None,
    ) -> None:
        self.cfg = cfg or Config()
        self._closers: list[Callable[[], None]] = []

        if store is None:
            os.makedirs(os.path.dirname(self.cfg.cache_path) or ".", exist_ok=True)
            store = SqliteCacheStore(self.cfg.cache_path)
            self._closers.append(store.close)
        self.store = store

        if classifier is None:
            classifier = self._default_classifier()
            self._closers.append(classifier.close)
        self.classifier = classifier

        if news_fetchers is None or calendar_fetchers is None:
            default_news, default_cal = self._default_fetchers()
            news_fetchers = default_news if news_fetchers is None else news_fetchers
            calendar_fetchers = default_cal if calendar_fetchers is None else calendar_fetchers
        self.news_fetchers = news_fetchers
        self.calendar_fetchers = calendar_fetchers

    # ── Wiring ──────────────────────────────────────────────────

    def _default_classifier(self) -> FallbackClassifier:
        cfg = self.cfg
        primary = None
        if cfg.llm_enabled:
            primary = LLMClassifier(
                cfg.openai_api_key,
                model=cfg.llm_model,
                base_url=cfg.llm_base_url,
                timeout_s=cfg.llm_timeout_s,
            )
            logger.info("LLM classifier enabled (%s)", cfg.llm_model)
        return FallbackClassifier(primary, RuleBasedClassifier(), ClassificationCache())

    def _default_fetchers(self) -> tuple[list[tuple[str, NewsFetcher]], list[tuple[str, CalendarFetcher]]]:
        cfg = self.cfg
        tz = cfg.exchange_tz
        news: list[tuple[str, NewsFetcher]] = []
        cal: list[tuple[str, CalendarFetcher]] = []

        if cfg.fmp_api_key:
            from .ingest_fmp import FmpAdapter
            fmp = FmpAdapter(cfg.fmp_api_key)
            self._closers.append(fmp.close)
            news.append(("fmp_news", lambda page, limit: fmp.fetch_news(page=page, limit=limit)))
            cal.append((
                "fmp_calendar",
                lambda start, end, now: fmp.fetch_economic_calendar(start, end, now=now, tz=tz),
            ))
        if cfg.eodhd_api_key:
            from .ingest_eodhd import EodhdAdapter
            eodhd = EodhdAdapter(cfg.eodhd_api_key)
            self._closers.append(eodhd.close)
            news.append(("eodhd_news", lambda page, limit: eodhd.fetch_news(limit=limit, offset=page * limit)))
        if cfg.finnhub_api_key:
            from .ingest_finnhub import FinnhubAdapter
            finnhub = FinnhubAdapter(cfg.finnhub_api_key)
            self._closers.append(finnhub.close)
            cal.append((
                "finnhub_calendar",
                lambda start, end, now: finnhub.fetch_economic_calendar(start, end, now=now, tz=tz),
            ))

        if not news:
            logger.warning("No news API keys configured (FMP_API_KEY / EODHD_API_KEY)")
        if not cal:
            logger.warning("No calendar API keys configured (FMP_API_KEY / FINNHUB_API_KEY)")
        return news, cal

    # ── Cache helpers (cache trouble is never fatal) ────────────

    def _cache_get(self, key: str, now_ts: float):
        try:
            return self.store.get(key, now=now_ts)
        except sqlite3.Error as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    def _cache_peek(self, key: str):
        try:
            return self.store.peek(key)
        except sqlite3.Error as exc:
            logger.warning("Cache peek failed for %s: %s", key, exc)
            return None

    def _cache_delete(self, key: str) -> None:
        try:
            self.store.delete(key)
        except sqlite3.Error as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    def _cache_set(self, key: str, payload: Any, ttl_s: float, now_ts: float) -> None:
        try:
            self.store.set(key, payload, ttl_s, now=now_ts)
            self.store.delete_expired(now=now_ts)
        except (sqlite3.Error, ValueError) as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    # ── Classification ──────────────────────────────────────────

    def _classify_one(self, item: NewsItem) -> NewsItem | None:
        key = classification_key(item.title, item.url)
        c = self.classifier.classify(item.text, cache_key=key)
        if not c.is_relevant:
            logger.debug("Dropped irrelevant item %s: %s", item.id, "; ".join(c.reasons))
            return None
        return dataclasses.replace(
            item,
            topics=list(c.topics),
            relevance_score=c.score,
            reasons=list(c.reasons),
            trading_signal=c.trading_signal,
        )

    def classify_items(self, items: list[NewsItem]) -> list[NewsItem]:
        """Classify *items* (LLM calls in parallel when enabled), dropping irrelevant ones."""
        if self.classifier.primary is not None and len(items) > 1:
            workers = max(1, min(self.cfg.classify_workers, len(items)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="edgefeed-classify") as pool:
                classified = list(pool.map(self._classify_one, items))
        else:
            classified = [self._classify_one(it) for it in items]
        return [it for it in classified if it is not None]

    # ── News ────────────────────────────────────────────────────

    def _ttl_for(self, time_range: str) -> float:
        return self.cfg.today_cache_ttl_s if time_range == "today" else self.cfg.news_cache_ttl_s

    def _fetch_news(self, page: int) -> AggregateResult[NewsItem]:
        limit = self.cfg.news_page_size
        fetchers = [(name, (lambda fn=fn: fn(page, limit))) for name, fn in self.news_fetchers]
        results = fetch_all(fetchers, timeout_s=self.cfg.source_timeout_s)
        return merge_news(results)

    def news_feed(
        self,
        category: str = "all",
        page: int = 0,
        time_range: str = "all",
        portfolio: list[PortfolioAsset] | None = None,
        *,
        bust_cache: bool = False,
        now: datetime | float | None = None,
    ) -> FeedResult:
        """Served news feed for one (category, page, time range)."""
        if time_range not in TIME_RANGES:
            raise ConfigError(f"unknown time range {time_range!r}; expected one of {TIME_RANGES}")

        now_ts = _now_ts(now)
        key = cache_key(category, page, time_range)
        window = dict(now=now_ts, max_age_days=self.cfg.news_max_age_days, tz=self.cfg.exchange_tz)

        result: FeedResult | None = None
        if not bust_cache:
            entry = self._cache_get(key, now_ts)
            if entry is not None:
                cached = filter_time_range(
                    (NewsItem.from_dict(d) for d in entry.payload), time_range, **window,
                )
                if cached:
                    logger.debug("Cache hit %s (%d items)", key, len(cached))
                    result = FeedResult(items=cached, from_cache=True)
                else:
                    logger.info("Cache entry %s held only stale items – refetching", key)
                    self._cache_delete(key)

        if result is None:
            agg = self._fetch_news(page)
            if agg.all_failed or not self.news_fetchers:
                result = self._stale_news(key, agg)
            else:
                items = self.classify_items(agg.items)
                if category != "all":
                    items = [it for it in items if it.category == category]
                items = filter_time_range(items, time_range, **window)
                if items:
                    self._cache_set(key, [it.to_dict() for it in items], self._ttl_for(time_range), now_ts)
                result = FeedResult(items=items, failed_sources=agg.failed_sources)

        result.items = self._score(result.items, portfolio)
        return result

    def _stale_news(self, key: str, agg: AggregateResult[NewsItem]) -> FeedResult:
        entry = self._cache_peek(key)
        if entry is not None and entry.payload:
            logger.warning("All news sources failed – serving stale cache %s (age %.0fs)", key, entry.age_s)
            return FeedResult(
                items=[NewsItem.from_dict(d) for d in entry.payload],
                failed_sources=agg.failed_sources,
                all_failed=True,
                from_cache=True,
                stale=True,
            )
        return FeedResult(items=[], failed_sources=agg.failed_sources, all_failed=True)

    def _score(self, items: list[NewsItem], portfolio: list[PortfolioAsset] | None) -> list[NewsItem]:
        tickers = [a.symbol for a in portfolio] if portfolio else None
        scored: list[NewsItem] = []
        for it in items:
            it = dataclasses.replace(
                it,
                impact=score_impact(it, tickers),
                portfolio_matches=matching_symbols(it.text, portfolio) if portfolio else [],
            )
            scored.append(it)
        return sort_news(scored)

    # ── Calendar ────────────────────────────────────────────────

    def calendar(
        self,
        now: datetime | float | None = None,
        us_only: bool | None = None,
        *,
        bust_cache: bool = False,
    ) -> CalendarResult:
        """Forward-looking economic calendar grouped by day."""
        cfg = self.cfg
        now_ts = _now_ts(now)
        now_dt = datetime.fromtimestamp(now_ts, tz=timezone.utc)
        us_only = cfg.calendar_us_only if us_only is None else us_only
        start, end = calendar_window(now_dt, cfg.calendar_window_days, cfg.exchange_tz)
        key = f"calendar:{start.isoformat()}-{end.isoformat()}"

        events: list[CalendarEvent] | None = None
        from_cache = False
        failed: list[str] = []
        all_failed = False

        if not bust_cache:
            entry = self._cache_get(key, now_ts)
            if entry is not None:
                events = [CalendarEvent.from_dict(d) for d in entry.payload]
                from_cache = True

        if events is None:
            fetchers = [
                (name, (lambda fn=fn: fn(start, end, now_dt))) for name, fn in self.calendar_fetchers
            ]
            agg = merge_calendar(fetch_all(fetchers, timeout_s=cfg.source_timeout_s))
            failed = agg.failed_sources
            all_failed = agg.all_failed or not self.calendar_fetchers
            events = [
                ev for ev in agg.items
                if passes_importance_screen(ev.country, ev.currency, ev.importance)
            ]
            if not all_failed:
                self._cache_set(key, [ev.to_dict() for ev in events], cfg.calendar_cache_ttl_s, now_ts)

        if all_failed:
            logger.warning("All calendar sources failed – using static upcoming events")
            upcoming = sort_calendar(mock_upcoming_events(now_dt, cfg.exchange_tz))
            return self._calendar_result(upcoming, now_dt, failed, all_failed=True, used_fallback=True)

        upcoming = filter_calendar(
            relabel(events, now_dt, cfg.exchange_tz),
            from_date=start,
            to_date=end,
            now=now_dt,
            cutoff_hour=cfg.same_day_cutoff_hour,
            us_only=us_only,
            tz=cfg.exchange_tz,
        )
        return self._calendar_result(sort_calendar(upcoming), now_dt, failed, from_cache=from_cache)

    def _calendar_result(
        self,
        events: list[CalendarEvent],
        now: datetime,
        failed: list[str],
        *,
        all_failed: bool = False,
        used_fallback: bool = False,
        from_cache: bool = False,
    ) -> CalendarResult:
        today = exchange_today(now, self.cfg.exchange_tz)
        groups = group_by_day(events, today, today + timedelta(days=1))
        return CalendarResult(
            events=events,
            groups=groups,
            failed_sources=failed,
            all_failed=all_failed,
            used_fallback=used_fallback,
            from_cache=from_cache,
        )

    # ── Lifecycle ───────────────────────────────────────────────

    def close(self) -> None:
        for close in reversed(self._closers):
            try:
                close()
            except Exception as exc:
                logger.debug("close() failed: %s", exc)
        self._closers.clear()
