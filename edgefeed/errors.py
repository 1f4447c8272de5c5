"""Structured error taxonomy for edgefeed.

Provides a custom exception hierarchy so callers can catch specific
failure modes (a provider being down, a provider returning garbage, the
LLM misbehaving) without resorting to bare ``Exception``, plus a tiny
``Result`` value for call chains that must never raise.

Only provider/LLM boundaries raise these; the pipeline catches them per
source and degrades to fewer results.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class EdgeFeedError(Exception):
    """Base error for all edgefeed subsystems."""
    pass


class UpstreamUnavailable(EdgeFeedError):
    """A provider failed, timed out or rejected the request."""

    def __init__(self, message: str, *, source: str = ""):
        self.source = source
        super().__init__(message)


class MalformedPayload(EdgeFeedError):
    """A provider answered, but not with the JSON shape we expect."""

    def __init__(self, message: str, *, source: str = ""):
        self.source = source
        super().__init__(message)


class ClassificationFailure(EdgeFeedError):
    """The LLM classifier errored or produced unparseable output."""
    pass


class ConfigError(EdgeFeedError):
    """Invalid configuration value."""
    pass


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or the error that prevented it."""

    value: T | None = None
    error: EdgeFeedError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: EdgeFeedError) -> Result[T]:
        return cls(error=error)
