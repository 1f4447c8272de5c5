"""Atomic JSON export for the presentation layer.

Writes the served feed using a tempfile → rename pattern so readers
never see a partially-written file.  The presentation layer renders
these values as-is and never re-derives scores.
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from typing import Any

from .impact import impact_badge
from .topics import topic_label


def build_payload(feed: Any, calendar: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """Combine a ``FeedResult`` and a ``CalendarResult`` into one document."""
    news = feed.to_dict()
    for src, d in zip(feed.items, news["items"]):
        if src.impact is not None:
            d["impact_badge"] = impact_badge(src.impact.level)
        d["topic_labels"] = [topic_label(t) for t in src.topics]
    return {
        "meta": {"generated_at": time.time(), **(meta or {})},
        "news": news,
        "calendar": calendar.to_dict(),
    }


def export_feed(path: str, payload: dict[str, Any]) -> None:
    """Atomically write *payload* to *path*."""
    dest_dir = os.path.dirname(path) or "."
    os.makedirs(dest_dir, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dest_dir, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, default=str, allow_nan=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
