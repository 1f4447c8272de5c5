"""Tests for edgefeed.calendar_events — normalisation, topics, fallback events."""

from __future__ import annotations

import unittest
from datetime import datetime, timezone

# 2024-11-26 07:00 in New York (Tuesday)
NOW = datetime(2024, 11, 26, 12, 0, tzinfo=timezone.utc)


# ── Topic mapping ───────────────────────────────────────────────


class TestMapEventToTopic(unittest.TestCase):

    def test_first_match_wins(self):
        from edgefeed.calendar_events import map_event_to_topic
        from edgefeed.common_types import MarketTopic

        cases = {
            "FOMC Rate Decision": MarketTopic.RATES_CENTRAL_BANKS,
            "Fed Rate Decision": MarketTopic.RATES_CENTRAL_BANKS,
            "CPI m/m": MarketTopic.INFLATION_MACRO,
            "NVIDIA Earnings": MarketTopic.EARNINGS_FINANCIALS,
            "Crude Oil Inventories": MarketTopic.INFLATION_MACRO,
            "": MarketTopic.INFLATION_MACRO,
        }
        for title, topic in cases.items():
            with self.subTest(title=title):
                self.assertEqual(map_event_to_topic(title), topic)


# ── Importance ──────────────────────────────────────────────────


class TestImportanceScreen(unittest.TestCase):

    def test_normalize_importance(self):
        from edgefeed.calendar_events import normalize_importance

        self.assertEqual(normalize_importance("High"), "high")
        self.assertEqual(normalize_importance(3), "high")
        self.assertEqual(normalize_importance("1"), "low")
        self.assertEqual(normalize_importance(None), "medium")

    def test_screen(self):
        from edgefeed.calendar_events import passes_importance_screen

        self.assertTrue(passes_importance_screen("US", "USD", "medium"))
        self.assertTrue(passes_importance_screen("BR", "BRL", "high"))
        self.assertTrue(passes_importance_screen("JP", "JPY", "medium"))
        self.assertFalse(passes_importance_screen("DE", "EUR", "medium"))
        self.assertFalse(passes_importance_screen("US", "USD", "low"))


# ── build_calendar_event ────────────────────────────────────────


class TestBuildCalendarEvent(unittest.TestCase):

    def test_fmp_row(self):
        from edgefeed.calendar_events import normalize_fmp_calendar
        from edgefeed.common_types import MarketTopic, SessionBucket

        ev = normalize_fmp_calendar({
            "event": "CPI y/y", "date": "2024-11-26 13:30:00", "country": "US",
            "currency": "USD", "impact": "High", "actual": None, "estimate": 3.2,
        }, now=NOW)
        self.assertEqual(ev.time, "08:30")
        self.assertEqual(ev.date, "Today")
        self.assertEqual(ev.date_key, "2024-11-26")
        self.assertEqual(ev.market_hours, SessionBucket.PRE_MARKET)
        self.assertEqual(ev.importance, "high")
        self.assertEqual(ev.forecast, "3.2")
        self.assertIsNone(ev.actual)
        self.assertTrue(ev.is_us)
        self.assertEqual(ev.topic, MarketTopic.INFLATION_MACRO)
        self.assertTrue(ev.id.startswith("fmp-"))

    def test_date_key_is_exchange_local(self):
        from edgefeed.calendar_events import build_calendar_event

        # 03:00 UTC on the 27th is 22:00 on the 26th in New York.
        ev = build_calendar_event(provider="fmp", title="API Crude Stocks",
                                  when="2024-11-27 03:00:00", country="US", now=NOW)
        self.assertEqual(ev.date_key, "2024-11-26")
        self.assertEqual(ev.time, "22:00")

    def test_date_only(self):
        from edgefeed.calendar_events import build_calendar_event

        ev = build_calendar_event(provider="finnhub", title="Thanksgiving", when="2024-11-27", now=NOW)
        self.assertEqual(ev.time, "TBD")
        self.assertEqual(ev.date, "Tomorrow")
        self.assertIsNone(ev.market_hours)
        self.assertIsNone(ev.event_ts)

    def test_currency_defaults_to_country(self):
        from edgefeed.calendar_events import normalize_finnhub_calendar

        ev = normalize_finnhub_calendar({
            "event": "Initial Jobless Claims", "time": "2024-11-27 13:30:00",
            "country": "US", "impact": "medium", "estimate": 215,
        }, now=NOW)
        self.assertEqual(ev.currency, "US")
        self.assertEqual(ev.country, "US")
        self.assertTrue(ev.is_us)
        self.assertEqual(ev.provider, "finnhub")

    def test_missing_title_or_date(self):
        from edgefeed.calendar_events import build_calendar_event

        self.assertIsNone(build_calendar_event(provider="fmp", title="", when="2024-11-26", now=NOW))
        self.assertIsNone(build_calendar_event(provider="fmp", title="CPI", when="", now=NOW))
        self.assertIsNone(build_calendar_event(provider="fmp", title="CPI", when="2024-02-30", now=NOW))
        self.assertIsNone(build_calendar_event(provider="fmp", title="CPI", when="soon-ish", now=NOW))

    def test_relabel_moves_tomorrow_to_today(self):
        from edgefeed.calendar_events import build_calendar_event, relabel

        ev = build_calendar_event(provider="fmp", title="GDP", when="2024-11-27 13:30:00", now=NOW)
        self.assertEqual(ev.date, "Tomorrow")
        next_morning = datetime(2024, 11, 27, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(relabel([ev], next_morning)[0].date, "Today")


# ── Static fallback ─────────────────────────────────────────────


class TestMockUpcomingEvents(unittest.TestCase):

    def test_events_relative_to_today(self):
        from edgefeed.calendar_events import mock_upcoming_events
        from edgefeed.common_types import SessionBucket

        events = mock_upcoming_events(NOW)
        self.assertEqual(len(events), 5)
        self.assertTrue(all(ev.importance == "high" for ev in events))

        cpi, fomc, nvda, jobs, ecb = events
        self.assertEqual((cpi.date, cpi.time, cpi.forecast), ("Today", "08:30", "3.2%"))
        self.assertEqual(cpi.market_hours, SessionBucket.PRE_MARKET)
        self.assertEqual((fomc.date, fomc.time), ("Tomorrow", "14:00"))
        self.assertEqual(fomc.market_hours, SessionBucket.REGULAR_HOURS)
        self.assertEqual(nvda.ticker, "NVDA")
        self.assertEqual(nvda.market_hours, SessionBucket.AFTER_HOURS)
        self.assertEqual(jobs.date, "Nov 28")
        self.assertEqual(jobs.forecast, "200K")
        self.assertFalse(ecb.is_us)
        self.assertEqual(ecb.currency, "EUR")

    def test_round_trips_through_dict(self):
        from edgefeed.calendar_events import mock_upcoming_events
        from edgefeed.common_types import CalendarEvent

        for ev in mock_upcoming_events(NOW):
            self.assertEqual(CalendarEvent.from_dict(ev.to_dict()), ev)


if __name__ == "__main__":
    unittest.main()
