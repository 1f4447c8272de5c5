"""Optional LLM-backed classifier with an explicit rule-based fallback.

The LLM is asked for the same JSON contract the rule-based classifier
produces::

    {"isRelevant": bool, "topics": [...], "score": 0-100,
     "reasons": [...], "tradingSignal": "..." | null}

:meth:`LLMClassifier.try_classify` never raises; it returns a
:class:`~edgefeed.errors.Result`.  :class:`FallbackClassifier` checks
that result and drops to the rules when it failed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from ._http import _sanitize_exc
from .classification_cache import ClassificationCache
from .classifier import RuleBasedClassifier
from .common_types import Classification, MarketTopic
from .errors import ClassificationFailure, Result

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a financial news relevance filter for active traders. "
    "Decide whether the text is market-moving and which topics it belongs to. "
    "Allowed topics: " + ", ".join(t.value for t in MarketTopic) + ". "
    "Reject lifestyle, entertainment, celebrity and human-interest stories. "
    "Respond with a single JSON object: "
    '{"isRelevant": boolean, "topics": [string], "score": integer 0-100, '
    '"reasons": [string], "tradingSignal": string or null}.'
)

_JSON_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)

# Upper bound on characters sent per item.
_MAX_INPUT_CHARS = 2000


def _parse_json_response(text: str) -> dict[str, Any]:
    """Parse the model reply as JSON, or the first ``{...}`` block in it."""
    text = (text or "").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        m = _JSON_BLOCK_RE.search(text)
        if not m:
            raise ClassificationFailure("no JSON object in LLM response") from None
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError as exc:
            raise ClassificationFailure(f"invalid JSON in LLM response: {exc}") from None
    if not isinstance(data, dict):
        raise ClassificationFailure(f"expected JSON object, got {type(data).__name__}")
    return data


def _clamp_score(value: Any) -> int:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return 0


def _coerce_flag(value: Any) -> bool:
    """Only ``true`` (JSON boolean or the string ``"true"``) counts as set."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def coerce_classification(data: dict[str, Any]) -> Classification:
    """Validate an LLM JSON object into a :class:`Classification`.

    Unknown topics are dropped, the score is clamped, and an irrelevant
    verdict always carries ``score=0`` and no topics.
    """
    is_relevant = _coerce_flag(data.get("isRelevant"))
    raw_reasons = data.get("reasons") or []
    if isinstance(raw_reasons, str):
        raw_reasons = [raw_reasons]
    reasons = [str(r) for r in raw_reasons if str(r).strip()]
    signal = data.get("tradingSignal")
    signal = str(signal).strip() if signal not in (None, "") else None

    if not is_relevant:
        return Classification(
            is_relevant=False,
            topics=[],
            score=0,
            reasons=reasons or ["LLM: not market-relevant"],
            trading_signal=None,
        )

    topics: list[MarketTopic] = []
    for raw in data.get("topics") or []:
        topic = MarketTopic.parse(raw)
        if topic is not None and topic not in topics:
            topics.append(topic)

    return Classification(
        is_relevant=True,
        topics=topics,
        score=_clamp_score(data.get("score")),
        reasons=reasons,
        trading_signal=signal,
    )


class LLMClassifier:
    """OpenAI-compatible chat-completions classifier over httpx."""

    name = "llm"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_s: float = 8.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout_s)

    def _request(self, text: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": text[:_MAX_INPUT_CHARS]},
            ],
            "temperature": 0,
            "response_format": {"type": "json_object"},
        }
        resp = self.client.post(
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        resp.raise_for_status()
        data = resp.json()
        return data["choices"][0]["message"]["content"]

    def try_classify(self, text: str) -> Result[Classification]:
        if not self.api_key:
            return Result.failure(ClassificationFailure("no LLM API key configured"))
        try:
            content = self._request(text)
            return Result.success(coerce_classification(_parse_json_response(content)))
        except ClassificationFailure as exc:
            logger.warning("LLM classification unusable: %s", exc)
            return Result.failure(exc)
        except httpx.HTTPStatusError as exc:
            logger.warning("LLM API error: HTTP %s", exc.response.status_code)
            return Result.failure(ClassificationFailure(f"HTTP {exc.response.status_code}"))
        except httpx.HTTPError as exc:
            safe = _sanitize_exc(exc)
            logger.warning("LLM request failed: %s: %s", type(exc).__name__, safe)
            return Result.failure(ClassificationFailure(f"{type(exc).__name__}: {safe}"))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning("LLM response had unexpected shape: %s", exc)
            return Result.failure(ClassificationFailure(f"unexpected response shape: {exc}"))

    def close(self) -> None:
        self.client.close()


class FallbackClassifier:
    """Primary classifier with an explicit rule-based fallback.

    Successful primary answers are stored in *cache* (when given) under
    the caller-supplied key; fallback answers are not cached so a later
    call can retry the primary.
    """

    def __init__(
        self,
        primary: LLMClassifier | None = None,
        fallback: RuleBasedClassifier | None = None,
        cache: ClassificationCache | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback or RuleBasedClassifier()
        self.cache = cache

    def classify(self, text: str, *, cache_key: str | None = None) -> Classification:
        if self.primary is None:
            return self.fallback.classify(text)

        if self.cache is not None and cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        result = self.primary.try_classify(text)
        if result.ok and result.value is not None:
            if self.cache is not None and cache_key:
                self.cache.set(cache_key, result.value)
            return result.value

        logger.debug("Falling back to rule-based classifier: %s", result.error)
        return self.fallback.classify(text)

    def close(self) -> None:
        if self.primary is not None:
            self.primary.close()
