"""Tests for edgefeed.store_sqlite — TTL cache semantics."""

from __future__ import annotations

import os
import tempfile
import threading
import unittest


class TestSqliteCacheStore(unittest.TestCase):

    def setUp(self):
        from edgefeed.store_sqlite import SqliteCacheStore

        self.store = SqliteCacheStore(":memory:")

    def tearDown(self):
        self.store.close()

    def test_set_then_get(self):
        self.store.set("k", [{"id": "a"}], ttl_s=60, now=1000.0)
        entry = self.store.get("k", now=1010.0)
        self.assertIsNotNone(entry)
        self.assertEqual(entry.payload, [{"id": "a"}])
        self.assertEqual(entry.expires_at, 1060.0)

    def test_upsert_replaces_payload_and_expiry(self):
        self.store.set("k", ["old"], ttl_s=60, now=1000.0)
        self.store.set("k", ["new"], ttl_s=300, now=1030.0)
        entry = self.store.get("k", now=1100.0)
        self.assertEqual(entry.payload, ["new"])
        self.assertEqual(entry.expires_at, 1330.0)

    def test_expired_entries_hidden_from_get_but_not_peek(self):
        self.store.set("k", ["v"], ttl_s=60, now=1000.0)
        self.assertIsNone(self.store.get("k", now=1060.1))
        peeked = self.store.peek("k")
        self.assertEqual(peeked.payload, ["v"])
        self.assertTrue(peeked.is_expired(1060.1))

    def test_entry_readable_at_exact_expiry(self):
        self.store.set("k", ["v"], ttl_s=60, now=1000.0)
        entry = self.store.get("k", now=1060.0)
        self.assertIsNotNone(entry)
        self.assertFalse(entry.is_expired(1060.0))

    def test_delete_expired(self):
        self.store.set("old", [1], ttl_s=10, now=1000.0)
        self.store.set("fresh", [2], ttl_s=1000, now=1000.0)
        self.assertEqual(self.store.delete_expired(now=1500.0), 1)
        self.assertIsNone(self.store.peek("old"))
        self.assertIsNotNone(self.store.peek("fresh"))

    def test_delete_expired_keeps_entry_at_exact_expiry(self):
        self.store.set("k", [1], ttl_s=60, now=1000.0)
        self.assertEqual(self.store.delete_expired(now=1060.0), 0)
        self.assertEqual(self.store.delete_expired(now=1060.5), 1)
        self.assertIsNone(self.store.peek("k"))

    def test_delete_and_clear(self):
        self.store.set("a", [1], ttl_s=60)
        self.store.set("b", [2], ttl_s=60)
        self.store.delete("a")
        self.assertIsNone(self.store.peek("a"))
        self.store.clear()
        self.assertIsNone(self.store.peek("b"))

    def test_miss(self):
        self.assertIsNone(self.store.get("missing"))

    def test_concurrent_writers_same_key(self):
        def writer(n):
            for i in range(20):
                self.store.set("shared", {"writer": n, "i": i}, ttl_s=60)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        entry = self.store.get("shared")
        self.assertEqual(entry.payload["i"], 19)
        self.assertIn(entry.payload["writer"], range(6))


class TestCacheKey(unittest.TestCase):

    def test_format(self):
        from edgefeed.store_sqlite import cache_key

        self.assertEqual(cache_key("crypto", 2, "24h"), "news:crypto-2-24h")


class TestFileBackedStore(unittest.TestCase):

    def test_survives_reopen(self):
        from edgefeed.store_sqlite import SqliteCacheStore

        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "cache.db")
            s1 = SqliteCacheStore(path)
            s1.set("k", {"x": 1}, ttl_s=3600)
            s1.close()
            s2 = SqliteCacheStore(path)
            try:
                self.assertEqual(s2.get("k").payload, {"x": 1})
            finally:
                s2.close()


if __name__ == "__main__":
    unittest.main()
