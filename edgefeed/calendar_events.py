"""Economic-calendar normalisation, topic mapping and static fallback.

Raw provider rows become :class:`CalendarEvent` values carrying an
exchange-local ``HH:MM`` time, a ``YYYY-MM-DD`` date key, a display
label relative to "today", the market session of the release and a
:class:`MarketTopic`.

Provider shapes:

FMP (/stable/economic-calendar):
    event, date ("2024-11-26 13:30:00", UTC), country, currency,
    actual, previous, estimate, impact ("High" | "Medium" | "Low")

Finnhub (/api/v1/calendar/economic → ``economicCalendar``):
    event, time ("2024-11-26 13:30:00", UTC), country, actual,
    estimate, prev, impact ("high" | "medium" | "low"), unit
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from dateutil import parser as dtparser

from .common_types import CalendarEvent, MarketTopic
from .sessions import (
    DEFAULT_DISPLAY_TIME,
    DEFAULT_EXCHANGE_TZ,
    display_label,
    exchange_today,
    parse_date_key,
    resolve_session,
    to_exchange_time,
)
from .topics import CALENDAR_TOPIC_PATTERNS, DEFAULT_CALENDAR_TOPIC

logger = logging.getLogger(__name__)

# Medium-impact releases from these countries survive the importance screen.
MAJOR_ECONOMIES: frozenset[str] = frozenset({"EU", "CN", "GB", "JP", "CA", "AU"})

_IMPORTANCE = {"high": "high", "medium": "medium", "low": "low", "3": "high", "2": "medium", "1": "low"}

_DATE_ONLY_RE = re.compile(r"^\s*\d{4}-\d{2}-\d{2}\s*$")


def map_event_to_topic(title: str) -> MarketTopic:
    """First matching topic pattern for an event title."""
    for topic, rx in CALENDAR_TOPIC_PATTERNS:
        if rx.search(title or ""):
            return topic
    return DEFAULT_CALENDAR_TOPIC


def normalize_importance(raw: Any) -> str:
    return _IMPORTANCE.get(str(raw or "").strip().lower(), "medium")


def is_us_event(country: str | None, currency: str | None) -> bool:
    return (country or "").upper() == "US" or (currency or "").upper() == "USD"


def passes_importance_screen(country: str | None, currency: str | None, importance: str) -> bool:
    """US high/medium, any high, or medium from a major economy."""
    if importance == "high":
        return True
    if importance != "medium":
        return False
    return is_us_event(country, currency) or (country or "").upper() in MAJOR_ECONOMIES


def _value(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _event_id(provider: str, title: str, date_key: str, hhmm: str) -> str:
    digest = hashlib.sha1(f"{title}|{date_key}|{hhmm}".encode("utf-8")).hexdigest()[:10]
    return f"{provider}-{digest}"


def build_calendar_event(
    *,
    provider: str,
    title: str,
    when: str,
    country: str | None = None,
    currency: str | None = None,
    impact: Any = None,
    actual: Any = None,
    estimate: Any = None,
    ticker: str | None = None,
    now: datetime | float | None = None,
    tz: str = DEFAULT_EXCHANGE_TZ,
) -> CalendarEvent | None:
    """Build one event; ``None`` when title or date is missing or unparseable.

    Date-only values keep their calendar date as the key, get the
    ``TBD`` display time and no session bucket.  Timestamps without a
    zone are read as UTC.
    """
    title = (title or "").strip()
    when = (when or "").strip()
    if not title or not when:
        return None

    today = exchange_today(now, tz)
    tomorrow = today + timedelta(days=1)

    event_ts: float | None
    if _DATE_ONLY_RE.match(when):
        day = parse_date_key(when)
        if day is None:
            return None
        hhmm = DEFAULT_DISPLAY_TIME
        market_hours = None
        event_ts = None
    else:
        try:
            dt = dtparser.parse(when)
        except (ValueError, OverflowError):
            logger.debug("Skipping %s event with unparseable date %r", provider, when[:40])
            return None
        local = to_exchange_time(dt, tz)
        day = local.date()
        hhmm = local.strftime("%H:%M")
        market_hours = resolve_session(local, tz)
        event_ts = local.timestamp()

    currency = _value(currency) or _value(country)
    return CalendarEvent(
        id=_event_id(provider, title, day.isoformat(), hhmm),
        title=title,
        time=hhmm,
        date=display_label(day, today, tomorrow),
        date_key=day.isoformat(),
        type="economic",
        importance=normalize_importance(impact),
        actual=_value(actual),
        forecast=_value(estimate),
        currency=currency,
        country=_value(country),
        ticker=ticker,
        market_hours=market_hours,
        is_us=is_us_event(country, currency),
        topic=map_event_to_topic(title),
        event_ts=event_ts,
        provider=provider,
    )


def normalize_fmp_calendar(it: dict[str, Any], *, now=None, tz: str = DEFAULT_EXCHANGE_TZ) -> CalendarEvent | None:
    return build_calendar_event(
        provider="fmp",
        title=str(it.get("event") or it.get("title") or ""),
        when=str(it.get("date") or ""),
        country=_value(it.get("country")),
        currency=_value(it.get("currency")),
        impact=it.get("impact"),
        actual=it.get("actual"),
        estimate=it.get("estimate") if it.get("estimate") is not None else it.get("consensus"),
        now=now,
        tz=tz,
    )


def normalize_finnhub_calendar(it: dict[str, Any], *, now=None, tz: str = DEFAULT_EXCHANGE_TZ) -> CalendarEvent | None:
    return build_calendar_event(
        provider="finnhub",
        title=str(it.get("event") or ""),
        when=str(it.get("time") or it.get("date") or ""),
        country=_value(it.get("country")),
        currency=_value(it.get("currency")),
        impact=it.get("impact"),
        actual=it.get("actual"),
        estimate=it.get("estimate"),
        now=now,
        tz=tz,
    )


def relabel(events: list[CalendarEvent], now: datetime | float | None = None,
            tz: str = DEFAULT_EXCHANGE_TZ) -> list[CalendarEvent]:
    """Recompute display labels against the current exchange date.

    Cached events were labelled when fetched; "Tomorrow" becomes
    "Today" at midnight.
    """
    today = exchange_today(now, tz)
    tomorrow = today + timedelta(days=1)
    for ev in events:
        day = parse_date_key(ev.date_key)
        if day is not None:
            ev.date = display_label(day, today, tomorrow)
    return events


# ── Static fallback ─────────────────────────────────────────────

# (title, day offset, hour, minute, currency, ticker, forecast, is_us)
_MOCK_EVENTS: tuple[tuple[str, int, int, int, str | None, str | None, str | None, bool], ...] = (
    ("US CPI Data Release", 0, 8, 30, "USD", None, "3.2%", True),
    ("FOMC Rate Decision", 1, 14, 0, "USD", None, None, True),
    ("NVIDIA Earnings", 1, 16, 0, None, "NVDA", None, True),
    ("US Jobs Report (Nonfarm Payrolls)", 2, 8, 30, "USD", None, "200K", True),
    ("ECB Interest Rate Decision", 2, 8, 15, "EUR", None, None, False),
)


def mock_upcoming_events(now: datetime | float | None = None, tz: str = DEFAULT_EXCHANGE_TZ) -> list[CalendarEvent]:
    """Static high-importance events dated relative to the exchange-local today.

    Used by callers when every calendar source failed.
    """
    zone = ZoneInfo(tz)
    today = exchange_today(now, tz)
    tomorrow = today + timedelta(days=1)

    events: list[CalendarEvent] = []
    for i, (title, offset, hour, minute, currency, ticker, forecast, is_us) in enumerate(_MOCK_EVENTS, 1):
        day: date = today + timedelta(days=offset)
        local = datetime.combine(day, time(hour, minute), tzinfo=zone)
        events.append(CalendarEvent(
            id=f"mock-{i}",
            title=title,
            time=local.strftime("%H:%M"),
            date=display_label(day, today, tomorrow),
            date_key=day.isoformat(),
            type="economic",
            importance="high",
            forecast=forecast,
            currency=currency,
            ticker=ticker,
            market_hours=resolve_session(local, tz),
            is_us=is_us,
            topic=map_event_to_topic(title),
            event_ts=local.timestamp(),
            provider="mock",
        ))
    return events
