"""Tests for edgefeed.normalize and edgefeed.source_quality."""

from __future__ import annotations

import unittest
from datetime import datetime, timezone

FMP_ROW = {
    "symbol": "aapl",
    "publishedDate": "2024-11-26 10:00:00",
    "publisher": "Reuters",
    "title": "Apple beats quarterly estimates",
    "image": "https://img.example.com/a.png",
    "site": "reuters.com",
    "text": "iPhone revenue grew faster than analysts expected.",
    "url": "https://www.reuters.com/technology/apple-q4",
}

EODHD_ROW = {
    "date": "2024-11-26T10:00:00+00:00",
    "title": "Bitcoin slides below $90K",
    "content": "Crypto markets retreated overnight.",
    "link": "https://www.coindesk.com/markets/btc-slides",
    "symbols": ["BTC-USD.CC"],
    "tags": ["crypto", "bitcoin", "ai"],
    "sentiment": {"polarity": -0.6, "neg": 0.3, "neu": 0.6, "pos": 0.1},
}


# ── FMP ─────────────────────────────────────────────────────────


class TestNormalizeFmp(unittest.TestCase):

    def test_fields(self):
        from edgefeed.normalize import normalize_fmp

        it = normalize_fmp(FMP_ROW)
        self.assertTrue(it.id.startswith("art-"))
        self.assertEqual(it.provider, "fmp")
        self.assertTrue(it.is_us)
        self.assertEqual(it.source, "reuters.com")
        self.assertEqual(it.source_quality, 97)
        self.assertEqual(it.keywords, ["AAPL"])
        self.assertEqual(it.sentiment, "bullish")
        self.assertEqual(
            it.timestamp,
            datetime(2024, 11, 26, 10, 0, tzinfo=timezone.utc).timestamp(),
        )

    def test_id_is_deterministic(self):
        from edgefeed.normalize import normalize_fmp

        self.assertEqual(normalize_fmp(FMP_ROW).id, normalize_fmp(dict(FMP_ROW)).id)

    def test_missing_url_uses_placeholder(self):
        from edgefeed.normalize import normalize_fmp

        row = dict(FMP_ROW, url="", site="", publisher="")
        it = normalize_fmp(row)
        self.assertEqual(it.url, "#")
        self.assertEqual(it.source, "News")
        self.assertNotEqual(it.id, normalize_fmp(FMP_ROW).id)


# ── EODHD ───────────────────────────────────────────────────────


class TestNormalizeEodhd(unittest.TestCase):

    def test_fields(self):
        from edgefeed.normalize import normalize_eodhd

        it = normalize_eodhd(EODHD_ROW)
        self.assertEqual(it.provider, "eodhd")
        self.assertEqual(it.category, "crypto")
        self.assertEqual(it.sentiment, "bearish")
        self.assertFalse(it.is_us)
        self.assertEqual(it.source, "coindesk")
        self.assertEqual(it.source_quality, 87)
        # Tags of two characters or fewer are dropped.
        self.assertEqual(it.keywords, ["crypto", "bitcoin"])

    def test_us_symbols(self):
        from edgefeed.normalize import normalize_eodhd

        it = normalize_eodhd(dict(EODHD_ROW, symbols="AAPL.US, MSFT.US"))
        self.assertTrue(it.is_us)


# ── Helpers ─────────────────────────────────────────────────────


class TestHelpers(unittest.TestCase):

    def test_to_epoch_rejects_short_and_garbage(self):
        from edgefeed.normalize import _to_epoch

        self.assertEqual(_to_epoch(""), 0.0)
        self.assertEqual(_to_epoch(None), 0.0)
        self.assertEqual(_to_epoch("5"), 0.0)
        self.assertEqual(_to_epoch("not a date at all"), 0.0)

    def test_to_epoch_naive_is_utc(self):
        from edgefeed.normalize import _to_epoch

        self.assertEqual(_to_epoch("2024-11-26 10:00:00"), _to_epoch("2024-11-26T10:00:00Z"))

    def test_map_sentiment(self):
        from edgefeed.normalize import map_sentiment

        self.assertEqual(map_sentiment("Bullish"), "bullish")
        self.assertEqual(map_sentiment("negative"), "bearish")
        self.assertEqual(map_sentiment("mixed"), "neutral")
        self.assertEqual(map_sentiment({"polarity": 0.05}), "neutral")
        self.assertEqual(map_sentiment(None, "Shares plunge after warning"), "bearish")
        self.assertEqual(map_sentiment(None, "Board meets on Tuesday"), "neutral")

    def test_map_category(self):
        from edgefeed.normalize import map_category

        self.assertEqual(map_category(["Ethereum", "defi"]), "crypto")
        self.assertEqual(map_category("Technology"), "technology")
        self.assertEqual(map_category(["stock market"]), "stocks")
        self.assertEqual(map_category(""), "all")

    def test_map_category_matches_whole_words(self):
        from edgefeed.normalize import map_category

        self.assertEqual(map_category(["software", "earnings"]), "all")
        self.assertEqual(map_category(["hardware", "award"]), "all")
        self.assertEqual(map_category(["Ukraine war"]), "war")
        self.assertEqual(map_category(["political risk"]), "politics")

    def test_extract_source(self):
        from edgefeed.normalize import extract_source

        self.assertEqual(extract_source("https://www.reuters.com/x"), "reuters")
        self.assertEqual(extract_source(""), "")


class TestSourceQuality(unittest.TestCase):

    def test_tiers(self):
        from edgefeed.source_quality import source_quality

        self.assertEqual(source_quality("Bloomberg").tier, "premium")
        self.assertEqual(source_quality("CNBC").tier, "reliable")
        self.assertEqual(source_quality("Yahoo Finance").tier, "standard")
        unknown = source_quality("Random Blog")
        self.assertEqual((unknown.score, unknown.tier), (60, "unverified"))

    def test_hosts_and_case(self):
        from edgefeed.source_quality import source_rating

        self.assertEqual(source_rating("www.bloomberg.com"), 98)
        self.assertEqual(source_rating("REUTERS"), 97)
        self.assertEqual(source_rating(""), 60)


if __name__ == "__main__":
    unittest.main()
