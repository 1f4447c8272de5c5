"""Synchronous FMP ingestion adapter.

Polls two endpoints:
 1. /stable/news/stock-latest       (latest stock news)
 2. /stable/economic-calendar       (economic releases, primary calendar)

Uses httpx synchronously; concurrency is handled by the aggregator's
thread pool.  Failures raise :class:`UpstreamUnavailable` or
:class:`MalformedPayload` so the caller can skip this source.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import httpx

from ._http import _as_list, _json_body, _request_with_retry
from .calendar_events import normalize_fmp_calendar
from .common_types import CalendarEvent, NewsItem
from .errors import ConfigError
from .normalize import normalize_fmp
from .sessions import DEFAULT_EXCHANGE_TZ

logger = logging.getLogger(__name__)

FMP_BASE = "https://financialmodelingprep.com/stable"


class FmpAdapter:
    """Adapter for FMP stock-news and economic-calendar endpoints."""

    def __init__(self, api_key: str, *, timeout_s: float = 10.0, client: httpx.Client | None = None) -> None:
        if not api_key:
            raise ConfigError("FMP_API_KEY missing")
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout_s)

    def fetch_news(self, page: int = 0, limit: int = 50) -> list[NewsItem]:
        """GET /stable/news/stock-latest?page=…&limit=…"""
        url = f"{FMP_BASE}/news/stock-latest"
        r = _request_with_retry(
            self.client, url, {"page": page, "limit": limit, "apikey": self.api_key}, source="fmp_news",
        )
        rows = _as_list(_json_body(r, source="fmp_news"), source="fmp_news")
        items = [normalize_fmp(it) for it in rows]
        return [it for it in items if it.is_valid]

    def fetch_economic_calendar(
        self,
        from_date: date,
        to_date: date,
        *,
        now: datetime | float | None = None,
        tz: str = DEFAULT_EXCHANGE_TZ,
    ) -> list[CalendarEvent]:
        """GET /stable/economic-calendar?from=…&to=…"""
        url = f"{FMP_BASE}/economic-calendar"
        params = {"from": from_date.isoformat(), "to": to_date.isoformat(), "apikey": self.api_key}
        r = _request_with_retry(self.client, url, params, source="fmp_calendar")
        rows = _as_list(_json_body(r, source="fmp_calendar"), source="fmp_calendar")
        events = [normalize_fmp_calendar(it, now=now, tz=tz) for it in rows]
        out = [ev for ev in events if ev is not None]
        if len(out) < len(rows):
            logger.debug("fmp_calendar: dropped %d rows without title/date", len(rows) - len(out))
        return out

    def close(self) -> None:
        self.client.close()
