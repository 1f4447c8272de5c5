"""Synchronous Finnhub economic-calendar adapter (secondary calendar source).

Endpoint: /api/v1/calendar/economic?from=…&to=…
Response: ``{"economicCalendar": [{event, time, country, actual, estimate, impact, unit}, …]}``
"""

from __future__ import annotations

from datetime import date, datetime

import httpx

from ._http import _as_list, _json_body, _request_with_retry
from .calendar_events import normalize_finnhub_calendar
from .common_types import CalendarEvent
from .errors import ConfigError
from .sessions import DEFAULT_EXCHANGE_TZ

FINNHUB_BASE = "https://finnhub.io/api/v1"


class FinnhubAdapter:
    def __init__(self, api_key: str, *, timeout_s: float = 10.0, client: httpx.Client | None = None) -> None:
        if not api_key:
            raise ConfigError("FINNHUB_API_KEY missing")
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout_s)

    def fetch_economic_calendar(
        self,
        from_date: date,
        to_date: date,
        *,
        now: datetime | float | None = None,
        tz: str = DEFAULT_EXCHANGE_TZ,
    ) -> list[CalendarEvent]:
        params = {"from": from_date.isoformat(), "to": to_date.isoformat(), "token": self.api_key}
        r = _request_with_retry(
            self.client, f"{FINNHUB_BASE}/calendar/economic", params, source="finnhub_calendar",
        )
        rows = _as_list(
            _json_body(r, source="finnhub_calendar"),
            source="finnhub_calendar",
            wrapper_keys=("economicCalendar",),
        )
        events = [normalize_finnhub_calendar(it, now=now, tz=tz) for it in rows]
        return [ev for ev in events if ev is not None]

    def close(self) -> None:
        self.client.close()
