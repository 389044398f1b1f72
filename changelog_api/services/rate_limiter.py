"""Per-identity request limits.

Two backends share one interface: the hosted Unkey ratelimit API (shared across
processes) and an in-process token bucket for local runs and tests. Both make the
check and the decrement a single atomic step.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable, Literal, Optional, Protocol

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from changelog_api.config.settings import Settings
from changelog_api.errors import ValidationError
from changelog_api.log_sanitizer import sanitize_log_extra

logger = logging.getLogger(__name__)

KEY_PREFIX = "changelog"


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    success: bool
    reset: datetime
    limit: int
    remaining: int


class RateLimiter(Protocol):
    limit_per_window: int

    async def limit(self, key: str) -> RateLimitResult:
        ...

    async def aclose(self) -> None:
        ...


def rate_limit_key(identifier: Any, kind: Literal["anonymous", "authenticated"] = "anonymous") -> str:
    """Namespace a caller identity (fingerprint or user id) into a limiter key."""
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError("Identifier cannot be empty")
    if ":" in identifier:
        raise ValidationError("Identifier cannot contain colons")
    return f"{KEY_PREFIX}:{kind}:{identifier}"


class InMemoryRateLimiter:
    """Token bucket per key: `limit` tokens, refilled evenly over `window_seconds`."""

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limit_per_window = limit
        self._window_seconds = window_seconds
        self._refill_per_second = limit / window_seconds
        self._clock = clock
        self._buckets: dict[str, tuple[float, float]] = {}
        self._last_pruned = clock()
        self._lock = asyncio.Lock()

    async def limit(self, key: str) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            tokens, updated_at = self._buckets.get(key, (float(self.limit_per_window), now))
            tokens = min(float(self.limit_per_window), tokens + (now - updated_at) * self._refill_per_second)

            success = tokens >= 1.0
            if success:
                tokens -= 1.0
            self._buckets[key] = (tokens, now)
            self._prune_idle(now)

        seconds_to_next = 0.0 if tokens >= 1.0 else (1.0 - tokens) / self._refill_per_second
        return RateLimitResult(
            success=success,
            reset=datetime.fromtimestamp(now + seconds_to_next, tz=UTC),
            limit=self.limit_per_window,
            remaining=int(tokens),
        )

    def _prune_idle(self, now: float) -> None:
        # A bucket idle for a whole window has refilled to the limit, same as a missing one.
        if now - self._last_pruned < self._window_seconds:
            return
        self._last_pruned = now
        idle = [key for key, (_, updated_at) in self._buckets.items() if now - updated_at >= self._window_seconds]
        for key in idle:
            del self._buckets[key]

    async def aclose(self) -> None:
        self._buckets.clear()


class UnkeyRateLimiter:
    """Client for Unkey's `ratelimits.limit` endpoint."""

    LIMIT_PATH = "/v1/ratelimits.limit"

    def __init__(
        self,
        *,
        root_key: str,
        namespace: str,
        limit: int,
        window_seconds: float,
        base_url: str = "https://api.unkey.dev",
        timeout_seconds: float = 5.0,
        max_attempts: int = 3,
        transport: Optional[Any] = None,
    ) -> None:
        self.limit_per_window = limit
        self.namespace = namespace
        self._window_ms = int(window_seconds * 1000)
        self._max_attempts = max_attempts
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {root_key}", "Content-Type": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
        )

    async def limit(self, key: str) -> RateLimitResult:
        payload = {
            "namespace": self.namespace,
            "identifier": key,
            "limit": self.limit_per_window,
            "duration": self._window_ms,
        }

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.2, max=2.0),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                response = await self._client.post(self.LIMIT_PATH, json=payload)
                response.raise_for_status()

        data = response.json()
        result = RateLimitResult(
            success=bool(data.get("success")),
            reset=datetime.fromtimestamp(int(data.get("reset", 0)) / 1000, tz=UTC),
            limit=int(data.get("limit", self.limit_per_window)),
            remaining=int(data.get("remaining", 0)),
        )
        if not result.success:
            logger.warning(
                "Rate limit denied request",
                extra=sanitize_log_extra(namespace=self.namespace, identifier=key, reset=result.reset.isoformat()),
            )
        return result

    async def aclose(self) -> None:
        await self._client.aclose()


def create_rate_limiter(config: Settings, *, namespace: str, limit: int) -> RateLimiter:
    if config.RATE_LIMIT_BACKEND == "memory":
        return InMemoryRateLimiter(limit=limit, window_seconds=config.RATE_LIMIT_WINDOW_SECONDS)
    if not config.UNKEY_ROOT_KEY:
        raise ValueError("UNKEY_ROOT_KEY is required when RATE_LIMIT_BACKEND is 'unkey'")
    return UnkeyRateLimiter(
        root_key=config.UNKEY_ROOT_KEY,
        namespace=namespace,
        limit=limit,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        base_url=config.UNKEY_API_URL,
    )
