"""SQLite-backed TTL cache for served feeds.

One row per key with JSON payload and absolute expiry.  Writes are
UPSERTs, so the last writer wins per key.  Uses WAL mode + NORMAL
synchronous; a lock serialises access to the shared connection so the
store can be used from the aggregator's worker threads.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS cache (
  k TEXT PRIMARY KEY,
  payload TEXT NOT NULL,
  created_at REAL NOT NULL,
  expires_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON cache(expires_at);
"""


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float | None = None) -> bool:
        return (time.time() if now is None else now) > self.expires_at

    @property
    def age_s(self) -> float:
        return max(0.0, time.time() - self.created_at)


def cache_key(category: str, page: int, time_range: str) -> str:
    """``news:<category>-<page>-<time_range>``"""
    return f"news:{category}-{page}-{time_range}"


class SqliteCacheStore:
    """Key → JSON payload store with per-entry TTL."""

    def __init__(self, path: str = ":memory:") -> None:
        self._lock = threading.Lock()
        self.conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA synchronous=NORMAL;")
        self.conn.execute("PRAGMA busy_timeout=5000;")
        self.conn.executescript(SCHEMA)

    # ── Read ────────────────────────────────────────────────────

    def _row(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT k, payload, created_at, expires_at FROM cache WHERE k=?", (key,)
            ).fetchone()
        if row is None:
            return None
        try:
            payload = json.loads(row[1])
        except ValueError:
            logger.warning("Corrupt cache payload for %s – ignoring", key)
            return None
        return CacheEntry(key=row[0], payload=payload, created_at=row[2], expires_at=row[3])

    def get(self, key: str, now: float | None = None) -> CacheEntry | None:
        """Entry for *key*, or ``None`` on miss or expiry."""
        entry = self._row(key)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    def peek(self, key: str) -> CacheEntry | None:
        """Entry for *key* even if expired (for explicit stale fallback)."""
        return self._row(key)

    # ── Write ───────────────────────────────────────────────────

    def set(self, key: str, payload: Any, ttl_s: float, now: float | None = None) -> CacheEntry:
        created = time.time() if now is None else now
        entry = CacheEntry(key=key, payload=payload, created_at=created, expires_at=created + ttl_s)
        text = json.dumps(payload, ensure_ascii=False, default=str, allow_nan=False)
        with self._lock:
            self.conn.execute(
                "INSERT INTO cache(k, payload, created_at, expires_at) VALUES(?,?,?,?) "
                "ON CONFLICT(k) DO UPDATE SET payload=excluded.payload, "
                "created_at=excluded.created_at, expires_at=excluded.expires_at",
                (key, text, entry.created_at, entry.expires_at),
            )
        return entry

    def delete(self, key: str) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM cache WHERE k=?", (key,))

    # ── Maintenance ─────────────────────────────────────────────

    def delete_expired(self, now: float | None = None) -> int:
        cutoff = time.time() if now is None else now
        with self._lock:
            cur = self.conn.execute("DELETE FROM cache WHERE expires_at < ?", (cutoff,))
        return cur.rowcount

    def clear(self) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM cache")

    def close(self) -> None:
        with self._lock:
            self.conn.close()
