"""Tests for edgefeed.classifier — rule-based relevance and topics."""

from __future__ import annotations

import unittest

SAMPLES = [
    "Fed signals unexpected rate hike",
    "Kardashian spotted at red carpet gala",
    "Heartwarming story: adorable animal cafes are the new cute trend",
    "Movie studio stock surges after record box office",
    "Whether you like it or not, summer is here",
    "$AAPL and $MSFT rally into the close",
    "Nvidia unveils new chip",
    "Oil prices climb as OPEC trims output",
    "",
]


# ── Noise gate ──────────────────────────────────────────────────


class TestNoiseRejection(unittest.TestCase):

    def test_celebrity_noise_rejected(self):
        from edgefeed.classifier import classify

        c = classify("Kardashian spotted at red carpet gala")
        self.assertFalse(c.is_relevant)
        self.assertEqual(c.score, 0)
        self.assertEqual(c.topics, [])
        self.assertEqual(c.reasons, ["Celebrity/entertainment content"])

    def test_noise_without_market_context_rejected(self):
        from edgefeed.classifier import classify

        c = classify("Heartwarming story: adorable animal cafes are the new cute trend")
        self.assertFalse(c.is_relevant)
        self.assertTrue(c.reasons[0].startswith("Non-market content"))

    def test_noise_with_market_context_survives(self):
        from edgefeed.classifier import classify

        c = classify("Movie studio stock surges after record box office")
        self.assertTrue(c.is_relevant)
        self.assertGreaterEqual(c.score, 10)


# ── Topics and bonuses ──────────────────────────────────────────


class TestTopicsAndScore(unittest.TestCase):

    def test_central_bank_headline(self):
        from edgefeed.classifier import classify
        from edgefeed.common_types import MarketTopic

        c = classify("Fed signals unexpected rate hike")
        self.assertTrue(c.is_relevant)
        self.assertEqual(c.topics, [MarketTopic.RATES_CENTRAL_BANKS])
        # "fed" + "rate hike"
        self.assertEqual(c.score, 20)
        self.assertTrue(c.reasons[0].startswith("Rates & Central Banks:"))

    def test_keywords_are_word_bounded(self):
        from edgefeed.classifier import classify

        c = classify("Whether you like it or not, summer is here")
        self.assertFalse(c.is_relevant)
        self.assertEqual(c.reasons, ["No market-relevant keywords"])

    def test_standalone_eth_is_an_asset(self):
        from edgefeed.classifier import classify

        c = classify("ETH price jumps overnight")
        self.assertTrue(c.is_relevant)
        self.assertEqual(c.score, 15)

    def test_cashtags_counted_once_each(self):
        from edgefeed.classifier import classify

        c = classify("$AAPL and $MSFT rally into the close")
        self.assertTrue(c.is_relevant)
        self.assertEqual(c.score, 20)
        self.assertIn("Tickers: $AAPL, $MSFT", c.reasons)

        self.assertEqual(classify("$AAPL $AAPL $AAPL").score, 10)

    def test_cashtags_require_upper_case(self):
        from edgefeed.classifier import classify

        self.assertFalse(classify("$aapl and $msft rally into the close").is_relevant)

    def test_company_bonus_without_topic(self):
        from edgefeed.classifier import classify

        c = classify("Nvidia unveils new chip")
        self.assertTrue(c.is_relevant)
        self.assertEqual(c.topics, [])
        self.assertEqual(c.score, 20)

    def test_score_clamped_to_100(self):
        from edgefeed.classifier import classify

        text = (
            "Fed FOMC Powell rate hike inflation CPI GDP earnings revenue profit "
            "merger acquisition stocks nasdaq Apple Microsoft Tesla $AAPL $MSFT"
        )
        c = classify(text)
        self.assertEqual(c.score, 100)
        self.assertGreaterEqual(len(c.topics), 4)

    def test_topics_follow_taxonomy_order(self):
        from edgefeed.classifier import classify
        from edgefeed.common_types import MarketTopic

        c = classify("Apple earnings beat as inflation cools; Fed on hold")
        self.assertEqual(
            c.topics[:3],
            [
                MarketTopic.RATES_CENTRAL_BANKS,
                MarketTopic.INFLATION_MACRO,
                MarketTopic.EARNINGS_FINANCIALS,
            ],
        )


# ── Invariants ──────────────────────────────────────────────────


class TestClassificationInvariants(unittest.TestCase):

    def test_irrelevant_means_zero_and_no_topics(self):
        from edgefeed.classifier import classify

        for text in SAMPLES:
            with self.subTest(text=text):
                c = classify(text)
                self.assertTrue(0 <= c.score <= 100)
                if not c.is_relevant:
                    self.assertEqual(c.score, 0)
                    self.assertEqual(c.topics, [])
                if c.topics:
                    self.assertTrue(c.is_relevant)

    def test_deterministic(self):
        from edgefeed.classifier import classify

        for text in SAMPLES:
            self.assertEqual(classify(text), classify(text))

    def test_classify_article_joins_parts(self):
        from edgefeed.classifier import classify, classify_article

        self.assertEqual(
            classify_article("Apple results", "Quarterly numbers", ["AAPL"]),
            classify("Apple results Quarterly numbers AAPL"),
        )

    def test_to_dict_uses_wire_names(self):
        from edgefeed.classifier import RuleBasedClassifier

        d = RuleBasedClassifier().classify("Fed signals unexpected rate hike").to_dict()
        self.assertEqual(set(d), {"isRelevant", "topics", "score", "reasons", "tradingSignal"})
        self.assertEqual(d["topics"], ["RATES_CENTRAL_BANKS"])


if __name__ == "__main__":
    unittest.main()
