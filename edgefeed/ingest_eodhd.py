"""Synchronous EODHD news adapter (/api/news).

EODHD answers with a bare array, or occasionally wraps it in
``{"news": [...]}`` / ``{"data": [...]}``; both are accepted.
"""

from __future__ import annotations

from typing import Any

import httpx

from ._http import _as_list, _json_body, _request_with_retry
from .common_types import NewsItem
from .errors import ConfigError
from .normalize import normalize_eodhd

EODHD_BASE = "https://eodhd.com/api"


def _symbol_param(symbols: list[str]) -> str:
    return ",".join(s if "." in s else f"{s}.US" for s in symbols)


class EodhdAdapter:
    def __init__(self, api_key: str, *, timeout_s: float = 10.0, client: httpx.Client | None = None) -> None:
        if not api_key:
            raise ConfigError("EODHD_API_KEY missing")
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout_s, headers={"Accept": "application/json"})

    def fetch_news(
        self,
        limit: int = 50,
        offset: int = 0,
        symbols: list[str] | None = None,
    ) -> list[NewsItem]:
        """GET /api/news?limit=…&offset=…[&s=AAPL.US,…]"""
        params: dict[str, Any] = {
            "api_token": self.api_key,
            "limit": limit,
            "offset": offset,
            "fmt": "json",
        }
        if symbols:
            params["s"] = _symbol_param(symbols)
        r = _request_with_retry(self.client, f"{EODHD_BASE}/news", params, source="eodhd_news")
        rows = _as_list(
            _json_body(r, source="eodhd_news"), source="eodhd_news", wrapper_keys=("news", "data"),
        )
        items = [normalize_eodhd(it) for it in rows]
        return [it for it in items if it.is_valid]

    def close(self) -> None:
        self.client.close()
