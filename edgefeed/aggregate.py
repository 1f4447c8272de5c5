"""Multi-source aggregation: concurrent fetch → merge → dedupe → filter → sort.

Sources are fetched in parallel on a thread pool.  A source that raises,
times out or returns a malformed payload is skipped and reported in
``failed_sources``; the others are merged in provider order.  When every
source fails the result is empty and flagged ``all_failed`` so that the
caller can choose a fallback.
"""

from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Generic, Iterable, TypeVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ._http import log_fetch_warning
from .common_types import CalendarEvent, NewsItem
from .errors import EdgeFeedError, UpstreamUnavailable
from .sessions import DEFAULT_EXCHANGE_TZ, exchange_today, parse_date_key, to_exchange_time

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Query parameters that never change the article a URL points at.
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "fbclid", "gclid", "mc_cid", "mc_eid", "cmpid", "ref", "ref_src", "src", "guccounter",
})

# Fed and named central banks sort ahead of other releases.
CENTRAL_BANK_RE = re.compile(
    r"\b(FOMC|Fed|Federal Reserve|Fed Rate|ECB|BoE|BoJ|central bank)\b", re.IGNORECASE,
)

IMPORTANCE_RANK = {"high": 0, "medium": 1, "low": 2}

TIME_RANGES = ("today", "24h", "7d", "all")


# ── Fetch ───────────────────────────────────────────────────────


@dataclass
class SourceResult(Generic[T]):
    name: str
    items: list[T] = field(default_factory=list)
    error: str | None = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AggregateResult(Generic[T]):
    items: list[T]
    failed_sources: list[str]
    all_failed: bool

    @property
    def sources_ok(self) -> bool:
        return not self.failed_sources


def _run(name: str, fn: Callable[[], list[T]]) -> SourceResult[T]:
    t0 = time.monotonic()
    try:
        items = fn()
    except EdgeFeedError as exc:
        log_fetch_warning(name, exc)
        return SourceResult(name, error=str(exc), elapsed_s=time.monotonic() - t0)
    except Exception as exc:
        # Unexpected adapter bug: keep the other sources alive.
        logger.warning("%s fetch raised %s", name, type(exc).__name__, exc_info=True)
        return SourceResult(name, error=f"{type(exc).__name__}: {exc}", elapsed_s=time.monotonic() - t0)
    if not isinstance(items, list):
        logger.warning("%s returned %s instead of list – skipped", name, type(items).__name__)
        return SourceResult(name, error="non-list result", elapsed_s=time.monotonic() - t0)
    return SourceResult(name, items=items, elapsed_s=time.monotonic() - t0)


def fetch_all(
    fetchers: list[tuple[str, Callable[[], list[T]]]],
    timeout_s: float = 15.0,
    max_workers: int | None = None,
) -> list[SourceResult[T]]:
    """Run every fetcher concurrently; results come back in *fetchers* order.

    Fetchers still running after *timeout_s* are reported as failed and
    abandoned; they never hold up the others.
    """
    if not fetchers:
        return []

    pool = ThreadPoolExecutor(max_workers=max_workers or len(fetchers), thread_name_prefix="edgefeed-fetch")
    try:
        futures = [pool.submit(_run, name, fn) for name, fn in fetchers]
        done, _ = wait(futures, timeout=timeout_s)
        results: list[SourceResult[T]] = []
        for (name, _fn), fut in zip(fetchers, futures):
            if fut in done:
                results.append(fut.result())
            else:
                log_fetch_warning(name, UpstreamUnavailable(f"timed out after {timeout_s:.1f}s", source=name))
                results.append(SourceResult(name, error="timeout", elapsed_s=timeout_s))
        return results
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


# ── Dedup ───────────────────────────────────────────────────────


def canonical_url(url: str | None) -> str:
    """Lower-case scheme/host, drop fragment, tracking params and trailing slash.

    Returns ``""`` for missing or placeholder URLs.
    """
    url = (url or "").strip()
    if not url or url == "#":
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.netloc:
        return url
    query = [
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in _TRACKING_PARAMS
    ]
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), ""))


def normalize_title(title: str | None) -> str:
    s = re.sub(r"[^\w\s]", "", (title or "").lower())
    return re.sub(r"\s+", " ", s).strip()


def dedupe_key(item: NewsItem | CalendarEvent) -> str:
    if isinstance(item, CalendarEvent):
        return f"cal:{normalize_title(item.title)}|{item.date_key}|{item.time}"
    url = canonical_url(item.url)
    if url:
        return f"url:{url}"
    return f"title:{normalize_title(item.title)}"


def dedupe(items: Iterable[T], key: Callable[[T], str] = dedupe_key) -> list[T]:
    """Keep the first occurrence of each key, preserving order."""
    seen: set[str] = set()
    out: list[T] = []
    for it in items:
        k = key(it)
        if k in seen:
            continue
        seen.add(k)
        out.append(it)
    return out


_FINGERPRINT_STOPWORDS = frozenset({
    "this", "that", "with", "from", "have", "been", "will", "more", "than",
})


def _fingerprint_words(text: str) -> str:
    words = [
        w for w in re.sub(r"[^\w\s]", "", (text or "").lower()).split()
        if len(w) > 3 and w not in _FINGERPRINT_STOPWORDS
    ]
    return " ".join(sorted(words[:10]))


def story_fingerprint(item: NewsItem) -> str:
    """Order-independent key for syndicated copies of one story.

    First ten meaningful words of the title, plus the first 100
    characters of the same reduction of the summary.  Returns ``""``
    when neither has a meaningful word.
    """
    title = _fingerprint_words(item.title)
    summary = _fingerprint_words(item.summary)[:100]
    if not title and not summary:
        return ""
    return f"{title}|{summary}"


def dedupe_stories(items: Iterable[NewsItem]) -> list[NewsItem]:
    """Collapse items sharing a :func:`story_fingerprint`; first occurrence wins."""
    seen: set[str] = set()
    out: list[NewsItem] = []
    for it in items:
        fp = story_fingerprint(it)
        if fp:
            if fp in seen:
                continue
            seen.add(fp)
        out.append(it)
    return out


def merge(results: list[SourceResult[T]]) -> AggregateResult[T]:
    """Concatenate successful sources in order and dedupe."""
    failed = [r.name for r in results if not r.ok]
    combined: list[Any] = []
    for r in results:
        if r.ok:
            combined.extend(r.items)
    all_failed = bool(results) and len(failed) == len(results)
    if all_failed:
        logger.warning("All sources failed: %s", ", ".join(failed))
    return AggregateResult(items=dedupe(combined), failed_sources=failed, all_failed=all_failed)


def merge_news(results: list[SourceResult[NewsItem]]) -> AggregateResult[NewsItem]:
    agg = merge(results)
    agg.items = dedupe_stories(it for it in agg.items if it.is_valid)
    return agg


def merge_calendar(results: list[SourceResult[CalendarEvent]]) -> AggregateResult[CalendarEvent]:
    return merge(results)


# ── Filters ─────────────────────────────────────────────────────


def filter_calendar(
    events: Iterable[CalendarEvent],
    *,
    from_date: date,
    to_date: date,
    now: datetime | float | None = None,
    cutoff_hour: int = 12,
    us_only: bool = False,
    tz: str = DEFAULT_EXCHANGE_TZ,
) -> list[CalendarEvent]:
    """Forward-looking calendar filter.

    Applied in order: drop released events (``actual`` set), drop events
    outside ``[from_date, to_date]``, drop today's events once
    exchange-local time reaches *cutoff_hour*, then (optionally) keep
    only US / USD events.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    local_now = to_exchange_time(now, tz)
    today = local_now.date()
    past_cutoff = local_now.hour >= cutoff_hour

    out: list[CalendarEvent] = []
    for ev in events:
        if ev.has_occurred:
            continue
        day = parse_date_key(ev.date_key)
        if day is None or day < from_date or day > to_date:
            continue
        if day == today and past_cutoff:
            continue
        if us_only and not (ev.is_us or (ev.currency or "").upper() == "USD"):
            continue
        out.append(ev)
    return out


def filter_time_range(
    items: Iterable[NewsItem],
    time_range: str = "all",
    *,
    now: datetime | float | None = None,
    max_age_days: int = 7,
    tz: str = DEFAULT_EXCHANGE_TZ,
) -> list[NewsItem]:
    """Drop undated items and items outside *time_range*.

    ``today`` keeps the exchange-local calendar day, ``24h`` / ``7d``
    are rolling windows and ``all`` applies the *max_age_days* cap.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    now_ts = now.timestamp() if isinstance(now, datetime) else float(now)

    if time_range == "24h":
        floor = now_ts - 86400
    elif time_range == "7d":
        floor = now_ts - 7 * 86400
    else:
        floor = now_ts - max_age_days * 86400

    today = exchange_today(now, tz) if time_range == "today" else None
    out: list[NewsItem] = []
    for it in items:
        if it.timestamp <= 0 or it.timestamp < floor:
            continue
        if today is not None and to_exchange_time(it.timestamp, tz).date() != today:
            continue
        out.append(it)
    return out


# ── Sorting / grouping ──────────────────────────────────────────


def _is_us_calendar(ev: CalendarEvent) -> bool:
    return ev.is_us or (ev.currency or "").upper() == "USD"


def calendar_sort_key(ev: CalendarEvent) -> tuple:
    return (
        not _is_us_calendar(ev),
        not CENTRAL_BANK_RE.search(ev.title),
        IMPORTANCE_RANK.get(ev.importance, 2),
        ev.date_key,
        ev.time,
        ev.title,
    )


def sort_calendar(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    return sorted(events, key=calendar_sort_key)


def news_sort_key(it: NewsItem) -> tuple:
    impact = it.impact.score if it.impact is not None else it.relevance_score
    return (
        not it.is_us,
        not CENTRAL_BANK_RE.search(f"{it.title} {it.summary}"),
        -impact,
        -it.timestamp,
        it.id,
    )


def sort_news(items: Iterable[NewsItem]) -> list[NewsItem]:
    return sorted(items, key=news_sort_key)


def group_by_day(
    events: Iterable[CalendarEvent],
    today: date,
    tomorrow: date,
) -> list[tuple[str, list[CalendarEvent]]]:
    """Bucket events by date key (or display label when the key is empty).

    Order: today, tomorrow, remaining dates chronologically, then
    buckets whose key is not a date.  Event order within a bucket is
    preserved.
    """
    groups: dict[str, list[CalendarEvent]] = {}
    for ev in events:
        groups.setdefault(ev.date_key or ev.date, []).append(ev)

    def order(key: str) -> tuple:
        day = parse_date_key(key)
        label = groups[key][0].date
        if day == today or (day is None and label == "Today"):
            return (0, "")
        if day == tomorrow or (day is None and label == "Tomorrow"):
            return (1, "")
        if day is not None:
            return (2, day.isoformat())
        return (3, key)

    return [(k, groups[k]) for k in sorted(groups, key=order)]


def calendar_window(now: datetime | float | None = None, days: int = 7,
                    tz: str = DEFAULT_EXCHANGE_TZ) -> tuple[date, date]:
    """``(today, today + days)`` in exchange-local dates."""
    today = exchange_today(now, tz)
    return today, today + timedelta(days=days)
