"""Identity collaborators: who is calling, and which GitHub token acts for them.

The default implementation treats the request's `Authorization: Bearer <token>`
header as a GitHub OAuth access token, resolves the user through `GET /user`, and
keeps the token in a credential store keyed by user id until it expires.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from fastapi import Request

from changelog_api.github.client import GitHubClient
from changelog_api.github.errors import GitHubError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Session:
    user_id: str
    login: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.user_id, "login": self.login, "name": self.name, "avatarUrl": self.avatar_url}


class SessionProvider(Protocol):
    async def get_session(self, request: Request) -> Optional[Session]:
        ...


class TokenProvider(Protocol):
    async def get_access_token(self, user_id: str) -> Optional[str]:
        """Return the user's GitHub token, or None when absent or expired."""
        ...


class CredentialStore:
    """In-process token store with per-entry expiry."""

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._tokens: dict[str, tuple[str, float]] = {}

    def put(self, user_id: str, token: str) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._tokens.items() if now > expires_at]
        for key in expired:
            del self._tokens[key]
        self._tokens[user_id] = (token, now + self._ttl_seconds)

    def get(self, user_id: str) -> Optional[str]:
        entry = self._tokens.get(user_id)
        if entry is None:
            logger.warning("No GitHub token found for user")
            return None
        token, expires_at = entry
        if self._clock() > expires_at:
            logger.warning("GitHub token expired")
            self._tokens.pop(user_id, None)
            return None
        return token

    def clear(self) -> None:
        self._tokens.clear()


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class GitHubBearerAuth:
    """SessionProvider and TokenProvider backed by GitHub OAuth bearer tokens."""

    def __init__(
        self,
        client_factory: Callable[[str], GitHubClient],
        store: CredentialStore,
    ) -> None:
        self._client_factory = client_factory
        self._store = store

    async def get_session(self, request: Request) -> Optional[Session]:
        token = bearer_token(request)
        if token is None:
            return None

        try:
            async with self._client_factory(token) as client:
                user = await client.get_authenticated_user()
        except GitHubError as error:
            logger.warning(f"Failed to resolve session from bearer token: {error.kind.value}")
            return None

        if "id" not in user or not user.get("login"):
            return None

        session = Session(
            user_id=str(user["id"]),
            login=str(user["login"]),
            name=user.get("name"),
            avatar_url=user.get("avatar_url"),
        )
        self._store.put(session.user_id, token)
        return session

    async def get_access_token(self, user_id: str) -> Optional[str]:
        return self._store.get(user_id)

    async def aclose(self) -> None:
        self._store.clear()
