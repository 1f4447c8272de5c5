"""Tests for edgefeed.aggregate — concurrent fetch, dedup, filters, ordering."""

from __future__ import annotations

import threading
import unittest
from datetime import date, datetime, timezone


def _news(id_, title, url="", **kw):
    from edgefeed.common_types import NewsItem

    defaults = dict(summary="", source="x", timestamp=1_732_626_000.0)
    defaults.update(kw)
    return NewsItem(id=id_, title=title, url=url, **defaults)


def _event(title, date_key, **kw):
    from edgefeed.common_types import CalendarEvent

    defaults = dict(id=f"ev-{title}", time="08:30", date=date_key)
    defaults.update(kw)
    return CalendarEvent(title=title, date_key=date_key, **defaults)


# ── fetch_all ───────────────────────────────────────────────────


class TestFetchAll(unittest.TestCase):

    def test_failures_are_isolated_and_order_kept(self):
        from edgefeed.aggregate import fetch_all
        from edgefeed.errors import UpstreamUnavailable

        def down():
            raise UpstreamUnavailable("HTTP 503", source="a")

        def bug():
            raise KeyError("field")

        results = fetch_all([
            ("a", down),
            ("b", lambda: [1, 2]),
            ("c", bug),
            ("d", lambda: {"not": "a list"}),
        ])
        self.assertEqual([r.name for r in results], ["a", "b", "c", "d"])
        self.assertEqual([r.ok for r in results], [False, True, False, False])
        self.assertEqual(results[1].items, [1, 2])
        self.assertEqual(results[3].error, "non-list result")

    def test_slow_source_times_out_without_blocking_others(self):
        from edgefeed.aggregate import fetch_all

        release = threading.Event()

        def slow():
            release.wait(5)
            return ["late"]

        try:
            results = fetch_all([("slow", slow), ("fast", lambda: ["ok"])], timeout_s=0.2)
        finally:
            release.set()
        self.assertEqual(results[0].error, "timeout")
        self.assertEqual(results[1].items, ["ok"])

    def test_no_fetchers(self):
        from edgefeed.aggregate import fetch_all

        self.assertEqual(fetch_all([]), [])


class TestMerge(unittest.TestCase):

    def test_partial_failure(self):
        from edgefeed.aggregate import SourceResult, merge

        agg = merge([
            SourceResult("a", items=[_news("1", "Fed holds", "https://a.com/1")]),
            SourceResult("b", error="boom"),
        ])
        self.assertEqual(agg.failed_sources, ["b"])
        self.assertFalse(agg.all_failed)
        self.assertEqual([it.id for it in agg.items], ["1"])

    def test_all_failed(self):
        from edgefeed.aggregate import SourceResult, merge

        agg = merge([SourceResult("a", error="x"), SourceResult("b", error="y")])
        self.assertTrue(agg.all_failed)
        self.assertEqual(agg.items, [])

    def test_merge_news_drops_invalid(self):
        from edgefeed.aggregate import SourceResult, merge_news

        agg = merge_news([SourceResult("a", items=[_news("1", "  "), _news("2", "Fed holds")])])
        self.assertEqual([it.id for it in agg.items], ["2"])


# ── Dedup ───────────────────────────────────────────────────────


class TestDedup(unittest.TestCase):

    def test_canonical_url(self):
        from edgefeed.aggregate import canonical_url

        self.assertEqual(
            canonical_url("HTTPS://Example.com/a/b/?utm_source=x&id=3#frag"),
            "https://example.com/a/b?id=3",
        )
        self.assertEqual(canonical_url("#"), "")
        self.assertEqual(canonical_url(None), "")

    def test_placeholder_url_falls_back_to_title(self):
        from edgefeed.aggregate import dedupe_key

        a = _news("1", "Fed Holds Rates!", "#")
        b = _news("2", "fed holds  rates", "")
        self.assertEqual(dedupe_key(a), dedupe_key(b))
        self.assertTrue(dedupe_key(a).startswith("title:"))

    def test_first_occurrence_wins(self):
        from edgefeed.aggregate import dedupe

        first = _news("fmp-1", "Fed holds", "https://www.bloomberg.com/fed", provider="fmp")
        second = _news("eod-1", "Fed holds rates", "https://www.bloomberg.com/fed/?utm_source=tw",
                       provider="eodhd")
        out = dedupe([first, second])
        self.assertEqual([it.id for it in out], ["fmp-1"])

    def test_idempotent(self):
        from edgefeed.aggregate import dedupe

        items = [
            _news("1", "A", "https://a.com/x"),
            _news("2", "B", "https://a.com/x#top"),
            _news("3", "C", "#"),
            _news("4", "c", ""),
            _news("5", "D", "https://d.com/"),
        ]
        once = dedupe(items)
        self.assertEqual([it.id for it in once], ["1", "3", "5"])
        self.assertEqual(dedupe(once), once)

    def test_syndicated_copies_collapse_across_providers(self):
        from edgefeed.aggregate import SourceResult, merge_news

        fmp = _news("fmp-1", "Oil Prices Jump as OPEC Agrees Deeper Output Cuts",
                    "https://www.reuters.com/markets/oil-opec",
                    summary="Crude futures climbed after producers agreed deeper cuts.",
                    provider="fmp")
        eod = _news("eod-1", "oil prices jump as OPEC agrees deeper output cuts!",
                    "https://finance.yahoo.com/news/oil-opec-123.html",
                    summary="Crude futures climbed, after producers agreed deeper cuts",
                    provider="eodhd")
        other = _news("eod-2", "Oil prices slip as inventories build",
                      "https://finance.yahoo.com/news/oil-slip.html", provider="eodhd")

        agg = merge_news([SourceResult("fmp", items=[fmp]), SourceResult("eodhd", items=[eod, other])])
        self.assertEqual([it.id for it in agg.items], ["fmp-1", "eod-2"])

    def test_story_fingerprint_is_word_order_independent(self):
        from edgefeed.aggregate import story_fingerprint

        a = _news("1", "Apple shares rally after earnings beat", "https://a.com/1")
        b = _news("2", "After earnings beat, Apple shares rally", "https://b.com/2")
        self.assertEqual(story_fingerprint(a), story_fingerprint(b))

    def test_short_word_titles_are_not_collapsed(self):
        from edgefeed.aggregate import dedupe_stories, story_fingerprint

        a = _news("1", "Fed up", "https://a.com/1")
        b = _news("2", "GDP at 3%", "https://b.com/2")
        self.assertEqual(story_fingerprint(a), "")
        self.assertEqual([it.id for it in dedupe_stories([a, b])], ["1", "2"])

    def test_calendar_key(self):
        from edgefeed.aggregate import dedupe

        a = _event("FOMC Rate Decision", "2024-11-27", currency="USD", provider="fmp")
        b = _event("FOMC rate decision", "2024-11-27", currency="usd", provider="finnhub")
        c = _event("FOMC Rate Decision", "2024-12-18", currency="USD")
        self.assertEqual(len(dedupe([a, b, c])), 2)


# ── Filters ─────────────────────────────────────────────────────


class TestFilterCalendar(unittest.TestCase):
    # 2024-11-26 08:00 in New York
    NOW = datetime(2024, 11, 26, 13, 0, tzinfo=timezone.utc)
    START, END = date(2024, 11, 26), date(2024, 12, 3)

    def _filter(self, events, **kw):
        from edgefeed.aggregate import filter_calendar

        params = dict(from_date=self.START, to_date=self.END, now=self.NOW)
        params.update(kw)
        return filter_calendar(events, **params)

    def test_released_event_excluded(self):
        released = _event("GDP Growth Rate", "2024-11-26", actual="2.9%", currency="USD")
        pending = _event("Core PCE", "2024-11-26", currency="USD")
        self.assertEqual([e.title for e in self._filter([released, pending])], ["Core PCE"])

    def test_window(self):
        inside = _event("A", "2024-12-03")
        outside = _event("B", "2024-12-10")
        past = _event("C", "2024-11-25")
        undated = _event("D", "")
        self.assertEqual([e.title for e in self._filter([inside, outside, past, undated])], ["A"])

    def test_same_day_cutoff(self):
        today = _event("Today", "2024-11-26")
        tomorrow = _event("Tomorrow", "2024-11-27")
        noon = datetime(2024, 11, 26, 17, 0, tzinfo=timezone.utc)  # 12:00 EST
        self.assertEqual([e.title for e in self._filter([today, tomorrow], now=noon)], ["Tomorrow"])
        self.assertEqual(len(self._filter([today, tomorrow])), 2)

    def test_us_only(self):
        eur = _event("ECB", "2024-11-27", currency="EUR")
        usd = _event("Jobless", "2024-11-27", currency="USD")
        us = _event("Claims", "2024-11-27", is_us=True)
        kept = self._filter([eur, usd, us], us_only=True)
        self.assertEqual([e.title for e in kept], ["Jobless", "Claims"])
        self.assertEqual(len(self._filter([eur, usd, us])), 3)


class TestFilterTimeRange(unittest.TestCase):
    NOW = 1_732_626_000.0  # 2024-11-26 13:00 UTC

    def test_ranges(self):
        from edgefeed.aggregate import filter_time_range

        hour_old = _news("h", "a", timestamp=self.NOW - 3600)
        two_days = _news("d", "b", timestamp=self.NOW - 2 * 86400)
        ten_days = _news("t", "c", timestamp=self.NOW - 10 * 86400)
        undated = _news("u", "d", timestamp=0.0)
        items = [hour_old, two_days, ten_days, undated]

        def ids(rng):
            return [it.id for it in filter_time_range(items, rng, now=self.NOW)]

        self.assertEqual(ids("24h"), ["h"])
        self.assertEqual(ids("7d"), ["h", "d"])
        self.assertEqual(ids("all"), ["h", "d"])
        self.assertEqual(ids("today"), ["h"])


# ── Ordering ────────────────────────────────────────────────────


class TestOrdering(unittest.TestCase):

    def test_calendar_sort(self):
        from edgefeed.aggregate import sort_calendar

        events = [
            _event("ECB Interest Rate Decision", "2024-11-28", currency="EUR", importance="high"),
            _event("Initial Jobless Claims", "2024-11-27", currency="USD", importance="low"),
            _event("CPI", "2024-11-27", currency="USD", importance="high"),
            _event("FOMC Minutes", "2024-11-28", currency="USD", importance="medium"),
        ]
        self.assertEqual(
            [e.title for e in sort_calendar(events)],
            ["FOMC Minutes", "CPI", "Initial Jobless Claims", "ECB Interest Rate Decision"],
        )

    def test_news_sort(self):
        from edgefeed.aggregate import sort_news

        items = [
            _news("intl", "Markets rally in Europe", relevance_score=90),
            _news("us-low", "Apple releases update", is_us=True, relevance_score=20),
            _news("us-fed", "Fed holds rates", is_us=True, relevance_score=10),
            _news("us-high", "Tesla jumps", is_us=True, relevance_score=60),
        ]
        self.assertEqual(
            [it.id for it in sort_news(items)],
            ["us-fed", "us-high", "us-low", "intl"],
        )

    def test_group_by_day(self):
        from edgefeed.aggregate import group_by_day

        events = [
            _event("c", "2024-11-28"),
            _event("a", "2024-11-26"),
            _event("b", "2024-11-27"),
            _event("a2", "2024-11-26"),
            _event("x", "", date="TBD-week"),
        ]
        groups = group_by_day(events, date(2024, 11, 26), date(2024, 11, 27))
        self.assertEqual([k for k, _ in groups], ["2024-11-26", "2024-11-27", "2024-11-28", "TBD-week"])
        self.assertEqual([e.title for e in groups[0][1]], ["a", "a2"])

    def test_calendar_window(self):
        from edgefeed.aggregate import calendar_window

        now = datetime(2024, 11, 27, 3, 0, tzinfo=timezone.utc)
        self.assertEqual(calendar_window(now, 7), (date(2024, 11, 26), date(2024, 12, 3)))


if __name__ == "__main__":
    unittest.main()
