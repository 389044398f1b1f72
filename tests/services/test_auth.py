from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest
from fastapi import Request

from changelog_api.github.client import GitHubClient
from changelog_api.services.auth import CredentialStore, GitHubBearerAuth, bearer_token


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _request(authorization: Optional[str] = None) -> Request:
    headers = [(b"authorization", authorization.encode())] if authorization else []
    return Request({"type": "http", "method": "POST", "path": "/", "headers": headers})


def _auth(handler: Any, store: CredentialStore) -> GitHubBearerAuth:
    def factory(token: str) -> GitHubClient:
        return GitHubClient(token=token, transport=httpx.MockTransport(handler))

    return GitHubBearerAuth(factory, store)


def test_bearer_token_requires_bearer_scheme() -> None:
    assert bearer_token(_request("Bearer gho_abc")) == "gho_abc"
    assert bearer_token(_request("Basic dXNlcjpwYXNz")) is None
    assert bearer_token(_request("Bearer ")) is None
    assert bearer_token(_request()) is None


def test_credential_store_expires_tokens() -> None:
    clock = FakeClock()
    store = CredentialStore(ttl_seconds=60, clock=clock)
    store.put("42", "gho_abc")

    assert store.get("42") == "gho_abc"
    clock.now += 61
    assert store.get("42") is None
    assert store.get("unknown") is None


@pytest.mark.asyncio
async def test_session_resolves_user_and_stores_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": 42, "login": "octocat", "name": "Mona", "avatar_url": "https://a/x.png"})

    auth = _auth(handler, CredentialStore(ttl_seconds=60))

    session = await auth.get_session(_request("Bearer gho_abc"))

    assert session is not None
    assert session.user_id == "42"
    assert session.to_dict()["login"] == "octocat"
    assert seen[0].url.path == "/user"
    assert await auth.get_access_token("42") == "gho_abc"


@pytest.mark.asyncio
async def test_rejected_token_yields_no_session() -> None:
    auth = _auth(lambda request: httpx.Response(401, json={"message": "Bad credentials"}), CredentialStore(ttl_seconds=60))

    assert await auth.get_session(_request("Bearer gho_bad")) is None
    assert await auth.get_access_token("42") is None


@pytest.mark.asyncio
async def test_missing_header_skips_github_call() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    auth = _auth(handler, CredentialStore(ttl_seconds=60))

    assert await auth.get_session(_request()) is None
    assert calls == []


def test_credential_store_drops_expired_tokens_on_write() -> None:
    clock = FakeClock()
    store = CredentialStore(ttl_seconds=60, clock=clock)
    store.put("1", "gho_one")
    store.put("2", "gho_two")

    clock.now += 61
    store.put("3", "gho_three")

    assert set(store._tokens) == {"3"}
    assert store.get("3") == "gho_three"
