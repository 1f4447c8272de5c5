"""In-memory cache of LLM classifications.

Keyed by article URL, or the md5 of the title when no URL is present.
Thread-safe; instances are injected into the classifier rather than
living at module level so tests and callers control their lifetime.
"""

from __future__ import annotations

import hashlib
import threading

from .common_types import Classification


def classification_key(title: str, url: str | None = None) -> str:
    if url and url.strip() and url.strip() != "#":
        return url.strip()
    return hashlib.md5((title or "").encode("utf-8")).hexdigest()


class ClassificationCache:
    def __init__(self, max_entries: int = 5000) -> None:
        self._data: dict[str, Classification] = {}
        self._lock = threading.Lock()
        self.max_entries = max_entries
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Classification | None:
        with self._lock:
            value = self._data.get(key)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def set(self, key: str, value: Classification) -> None:
        with self._lock:
            if key not in self._data and len(self._data) >= self.max_entries:
                # Evict oldest insertion.
                self._data.pop(next(iter(self._data)))
            self._data[key] = value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"size": len(self._data), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
