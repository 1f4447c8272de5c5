"""Shared HTTP helpers for the provider adapters.

Centralises URL/exception sanitisation so that API keys are never logged
in plain text, regardless of which adapter raises the error, and provides
the canonical ``_request_with_retry`` / ``_json_body`` helpers used by
every ``ingest_*`` module.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any

import httpx

from .errors import MalformedPayload, UpstreamUnavailable

logger = logging.getLogger(__name__)

# Regex to strip API keys/tokens from URLs before logging.
_TOKEN_RE = re.compile(r"(apikey|api_key|api_token|token|key)=[^&\s]+", re.IGNORECASE)

# ── Once-per-endpoint error suppression ─────────────────────────
# 401/403/404 responses typically mean the endpoint is not available
# on the user's API plan.  Warn once, then suppress to avoid log spam.
_WARNED_ENDPOINTS: set[str] = set()
_warned_lock = threading.Lock()

_TIER_LIMITED_CODES: frozenset[int] = frozenset({401, 402, 403, 404})

# Status codes eligible for automatic retry with backoff.
_RETRYABLE: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Maximum number of retry attempts (including the first request).
_MAX_ATTEMPTS: int = 3


def _sanitize_url(url: str) -> str:
    """Remove apikey/token query params from a URL for safe logging."""
    return _TOKEN_RE.sub(r"\1=***", url)


def _sanitize_exc(exc: BaseException) -> str:
    """Strip API keys/tokens from exception text for safe logging."""
    return _TOKEN_RE.sub(r"\1=***", str(exc))


def _is_tier_limited_error(exc: BaseException) -> bool:
    cause = exc.__cause__ if isinstance(exc, UpstreamUnavailable) else exc
    return (
        isinstance(cause, httpx.HTTPStatusError)
        and cause.response.status_code in _TIER_LIMITED_CODES
    )


def log_fetch_warning(label: str, exc: BaseException) -> None:
    """Log a fetch failure, suppressing repeated plan-limited errors.

    The first 401/402/403/404 for a given *label* is logged at WARNING
    with a note that further occurrences will be suppressed; later ones
    go to DEBUG.  Other errors (network, 5xx, malformed) always WARN.
    """
    msg = _sanitize_exc(exc)
    if _is_tier_limited_error(exc):
        with _warned_lock:
            already_warned = label in _WARNED_ENDPOINTS
            _WARNED_ENDPOINTS.add(label)
        if not already_warned:
            logger.warning(
                "%s fetch failed – endpoint not available on your API plan; "
                "suppressing further warnings: %s",
                label, msg,
            )
        else:
            logger.debug("%s fetch failed (plan-limited, suppressed): %s", label, msg)
    else:
        logger.warning("%s fetch failed: %s", label, msg)


def _request_with_retry(
    client: httpx.Client,
    url: str,
    params: dict[str, Any],
    *,
    source: str,
) -> httpx.Response:
    """GET *url* with exponential backoff on retryable status codes.

    Retries up to ``_MAX_ATTEMPTS`` times on 429/5xx responses and on
    transient network errors (``ConnectError``, ``ReadTimeout``).  Every
    terminal failure is re-raised as :class:`UpstreamUnavailable` with a
    sanitized message.
    """
    for attempt in range(_MAX_ATTEMPTS):
        try:
            r = client.get(url, params=params)
            if r.status_code in _RETRYABLE and attempt < _MAX_ATTEMPTS - 1:
                logger.warning(
                    "%s HTTP %s (attempt %d/%d) – retrying in %ds",
                    source, r.status_code, attempt + 1, _MAX_ATTEMPTS, 2 ** attempt,
                )
                time.sleep(2 ** attempt)
                continue
            r.raise_for_status()
            return r
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(
                f"HTTP {exc.response.status_code} from {_sanitize_url(str(exc.request.url))}",
                source=source,
            ) from exc
        except (httpx.ConnectError, httpx.ReadTimeout) as exc:
            if attempt < _MAX_ATTEMPTS - 1:
                logger.warning(
                    "%s network error (attempt %d/%d): %s – retrying in %ds",
                    source, attempt + 1, _MAX_ATTEMPTS, _sanitize_exc(exc), 2 ** attempt,
                )
                time.sleep(2 ** attempt)
                continue
            raise UpstreamUnavailable(
                f"{type(exc).__name__}: {_sanitize_exc(exc)}", source=source,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(
                f"{type(exc).__name__}: {_sanitize_exc(exc)}", source=source,
            ) from exc
    raise UpstreamUnavailable(f"no response after {_MAX_ATTEMPTS} attempts", source=source)


def _json_body(r: httpx.Response, *, source: str) -> Any:
    """Parse JSON response; raise MalformedPayload with sanitized URL on failure."""
    try:
        return r.json()
    except ValueError:
        ct = r.headers.get("content-type", "")
        raise MalformedPayload(
            f"non-JSON body (content-type={ct!r}, status={r.status_code}, "
            f"url={_sanitize_url(str(r.url))})",
            source=source,
        ) from None


def _as_list(data: Any, *, source: str, wrapper_keys: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    """Coerce a provider body to a list of dicts.

    Lists pass through (non-dict members dropped); dicts are unwrapped via
    *wrapper_keys*.  Anything else is a :class:`MalformedPayload`.
    """
    if isinstance(data, dict):
        for key in wrapper_keys:
            if isinstance(data.get(key), list):
                data = data[key]
                break
    if not isinstance(data, list):
        raise MalformedPayload(
            f"expected a JSON array, got {type(data).__name__}", source=source,
        )
    return [item for item in data if isinstance(item, dict)]
