from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from changelog_api.errors import ValidationError
from changelog_api.services.rate_limiter import InMemoryRateLimiter, UnkeyRateLimiter, rate_limit_key


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_rate_limit_key_namespaces_identity() -> None:
    assert rate_limit_key("fp-123") == "changelog:anonymous:fp-123"
    assert rate_limit_key("42", "authenticated") == "changelog:authenticated:42"


@pytest.mark.parametrize("identifier", ["", "   ", None, "a:b"])
def test_rate_limit_key_rejects_bad_identifiers(identifier: object) -> None:
    with pytest.raises(ValidationError):
        rate_limit_key(identifier)


@pytest.mark.asyncio
async def test_memory_limiter_denies_after_budget_and_refills_over_window() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(limit=5, window_seconds=60, clock=clock)

    results = [await limiter.limit("changelog:anonymous:fp") for _ in range(6)]

    assert [result.success for result in results] == [True] * 5 + [False]
    assert results[0].remaining == 4
    assert results[-1].limit == 5
    assert results[-1].reset > datetime.fromtimestamp(clock.now, tz=UTC)

    clock.now += 13
    assert (await limiter.limit("changelog:anonymous:fp")).success is True


@pytest.mark.asyncio
async def test_memory_limiter_keys_are_independent() -> None:
    limiter = InMemoryRateLimiter(limit=1, window_seconds=60, clock=FakeClock())

    assert (await limiter.limit("changelog:anonymous:a")).success is True
    assert (await limiter.limit("changelog:anonymous:a")).success is False
    assert (await limiter.limit("changelog:anonymous:b")).success is True


@pytest.mark.asyncio
async def test_unkey_limiter_posts_namespace_and_parses_reset() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": False, "limit": 5, "remaining": 0, "reset": 1700000060000})

    limiter = UnkeyRateLimiter(
        root_key="unkey_root",
        namespace="generator",
        limit=5,
        window_seconds=60,
        transport=httpx.MockTransport(handler),
    )
    try:
        result = await limiter.limit("changelog:anonymous:fp")
    finally:
        await limiter.aclose()

    assert result.success is False
    assert result.reset == datetime.fromtimestamp(1700000060, tz=UTC)
    assert seen[0].url.path == "/v1/ratelimits.limit"
    assert seen[0].headers["authorization"] == "Bearer unkey_root"
    assert json.loads(seen[0].content) == {
        "namespace": "generator",
        "identifier": "changelog:anonymous:fp",
        "limit": 5,
        "duration": 60000,
    }


@pytest.mark.asyncio
async def test_unkey_limiter_retries_transport_errors() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, json={"success": True, "limit": 5, "remaining": 4, "reset": 1700000060000})

    limiter = UnkeyRateLimiter(
        root_key="unkey_root",
        namespace="generator",
        limit=5,
        window_seconds=60,
        transport=httpx.MockTransport(handler),
    )
    try:
        result = await limiter.limit("changelog:anonymous:fp")
    finally:
        await limiter.aclose()

    assert result.success is True
    assert attempts["count"] == 2


@pytest.mark.asyncio
async def test_memory_limiter_forgets_buckets_idle_for_a_window() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(limit=2, window_seconds=60, clock=clock)
    await limiter.limit("changelog:anonymous:a")
    await limiter.limit("changelog:anonymous:b")

    clock.now += 61
    result = await limiter.limit("changelog:anonymous:c")

    assert result.success is True
    assert set(limiter._buckets) == {"changelog:anonymous:c"}
    assert (await limiter.limit("changelog:anonymous:a")).remaining == 1
