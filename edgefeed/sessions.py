"""Market-session resolution and exchange-local calendar dates.

Session windows (exchange-local, minute of day):

- Pre-market:   04:00 – 09:30  ``[240, 570)``
- Regular:      09:30 – 16:00  ``[570, 960)``
- After-hours:  16:00 – 20:00  ``[960, 1200)``
- Closed:       everything else, and all of Saturday/Sunday

Calendar dates are plain ``datetime.date`` values.  A ``YYYY-MM-DD`` key
is always read as local calendar components and never routed through a
UTC instant, so "2024-11-26" stays the 26th in every timezone.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from .common_types import SessionBucket

DEFAULT_EXCHANGE_TZ = "America/New_York"

PRE_MARKET_START = 4 * 60
REGULAR_START = 9 * 60 + 30
REGULAR_END = 16 * 60
AFTER_HOURS_END = 20 * 60

# Shown for events that carry a date but no release time.
DEFAULT_DISPLAY_TIME = "TBD"

_DATE_KEY_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})")


def _zone(tz: str | ZoneInfo) -> ZoneInfo:
    return tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)


def to_exchange_time(when: datetime | float, tz: str | ZoneInfo = DEFAULT_EXCHANGE_TZ) -> datetime:
    """Convert an instant to exchange-local time.

    Accepts epoch seconds or a ``datetime``; naive datetimes are assumed
    UTC so results never depend on the server timezone.
    """
    if isinstance(when, datetime):
        dt = when if when.tzinfo is not None else when.replace(tzinfo=timezone.utc)
    else:
        dt = datetime.fromtimestamp(float(when), tz=timezone.utc)
    return dt.astimezone(_zone(tz))


def resolve_session(when: datetime | float, tz: str | ZoneInfo = DEFAULT_EXCHANGE_TZ) -> SessionBucket:
    """Bucket an instant into pre-market / regular / after-hours / closed."""
    local = to_exchange_time(when, tz)
    if local.weekday() >= 5:
        return SessionBucket.MARKET_CLOSED

    minute_of_day = local.hour * 60 + local.minute
    if PRE_MARKET_START <= minute_of_day < REGULAR_START:
        return SessionBucket.PRE_MARKET
    if REGULAR_START <= minute_of_day < REGULAR_END:
        return SessionBucket.REGULAR_HOURS
    if REGULAR_END <= minute_of_day < AFTER_HOURS_END:
        return SessionBucket.AFTER_HOURS
    return SessionBucket.MARKET_CLOSED


def session_time(when: datetime | float, tz: str | ZoneInfo = DEFAULT_EXCHANGE_TZ) -> str:
    """Exchange-local ``HH:MM`` for display."""
    return to_exchange_time(when, tz).strftime("%H:%M")


def parse_date_key(value: str | None) -> date | None:
    """Read the leading ``YYYY-MM-DD`` of *value* as calendar components.

    Returns ``None`` for empty or non-matching input, or impossible dates
    such as ``2024-02-30``.
    """
    if not value:
        return None
    m = _DATE_KEY_RE.match(value)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def exchange_today(now: datetime | float | None = None, tz: str | ZoneInfo = DEFAULT_EXCHANGE_TZ) -> date:
    if now is None:
        now = datetime.now(timezone.utc)
    return to_exchange_time(now, tz).date()


def exchange_tomorrow(now: datetime | float | None = None, tz: str | ZoneInfo = DEFAULT_EXCHANGE_TZ) -> date:
    return exchange_today(now, tz) + timedelta(days=1)


def short_date(day: date) -> str:
    """``Nov 26`` / ``Dec 1`` – month abbreviation, unpadded day."""
    return f"{day.strftime('%b')} {day.day}"


def display_label(day: date, today: date, tomorrow: date) -> str:
    """``Today`` / ``Tomorrow`` / ``Mon D`` by calendar-date equality."""
    if day.isoformat() == today.isoformat():
        return "Today"
    if day.isoformat() == tomorrow.isoformat():
        return "Tomorrow"
    return short_date(day)
