"""Retry, throttling and caching settings for outbound HTTP calls.

The ledger only ever reads from remote services, so retries are limited to
safe methods and to the answers that mean "try again later".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Literal

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

UNAVAILABLE_STATUSES: Final[frozenset[int]] = frozenset(
    {
        httpx.codes.TOO_MANY_REQUESTS,
        httpx.codes.BAD_GATEWAY,
        httpx.codes.SERVICE_UNAVAILABLE,
        httpx.codes.GATEWAY_TIMEOUT,
    }
)
USER_AGENT: Final[str] = "servingledger"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries, applied before the ledger's own retry loop."""

    total: int = 2
    backoff_factor: float = 0.25
    max_backoff_wait: float = 5.0
    backoff_jitter: float = 0.5
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = frozenset({"GET", "HEAD"})
    status_forcelist: frozenset[int] = UNAVAILABLE_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
    )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Response cache; ``path`` only applies to the sqlite backend."""

    backend: Literal["sqlite", "memory"] = "memory"
    path: Path | None = None
    ttl_seconds: float | None = 300.0


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 10.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = field(default_factory=CacheConfig)
    default_headers: Mapping[str, str] | None = None

    def headers(self) -> dict[str, str]:
        merged = {"User-Agent": f"{USER_AGENT} ({self.name})"}
        if self.default_headers:
            merged.update(self.default_headers)
        return merged
