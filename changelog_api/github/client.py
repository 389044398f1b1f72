"""Async GitHub REST client for changelog ingestion."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from changelog_api.config.settings import Settings
from changelog_api.github.errors import GitHubError, classify_response, classify_transport_error
from changelog_api.log_sanitizer import sanitize_log_extra

logger = logging.getLogger(__name__)

_NEXT_LINK = re.compile(r'<[^>]+>\s*;\s*rel="next"')


def has_next_page(link_header: Optional[str]) -> bool:
    """True when a `Link` response header advertises a `rel="next"` page."""
    return bool(link_header) and bool(_NEXT_LINK.search(link_header))


class GitHubClient:
    """Thin async GitHub API client that raises classified GitHubError on failure."""

    BASE_URL = "https://api.github.com"
    API_VERSION = "2022-11-28"
    ACCEPT_JSON = "application/vnd.github+json"
    DEFAULT_TIMEOUT_SECONDS = 10.0
    DEFAULT_USER_AGENT = "Changelog-Generator"

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        transport: Optional[Any] = None,
    ) -> None:
        self._token = token
        self._timeout_seconds = timeout_seconds or self.DEFAULT_TIMEOUT_SECONDS
        self._base_url = base_url or self.BASE_URL
        self._user_agent = user_agent or self.DEFAULT_USER_AGENT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        *,
        token: Optional[str] = None,
        transport: Optional[Any] = None,
    ) -> "GitHubClient":
        return cls(
            token=token,
            timeout_seconds=config.GITHUB_PAGE_TIMEOUT_SECONDS,
            base_url=config.GITHUB_API_BASE_URL,
            user_agent=config.USER_AGENT,
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    async def __aenter__(self) -> "GitHubClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def search_issues(
        self,
        query: str,
        *,
        page: int = 1,
        per_page: int = 100,
        sort: str = "updated",
    ) -> dict[str, Any]:
        """Run one page of `/search/issues`. Returns the decoded JSON payload."""

        response = await self._request(
            "/search/issues",
            params={"q": query, "per_page": per_page, "sort": sort, "page": page},
        )
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    async def get_authenticated_user(self) -> dict[str, Any]:
        response = await self._request("/user")
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    async def list_user_repositories(
        self,
        *,
        type: str = "all",
        sort: str = "updated",
        direction: str = "desc",
        per_page: int = 30,
        page: int = 1,
        timeout: Optional[float] = None,
    ) -> tuple[list[dict[str, Any]], bool]:
        """Fetch one page of `/user/repos`.

        Returns the page items and whether the `Link` header advertises another page.
        """

        response = await self._request(
            "/user/repos",
            params={
                "type": type,
                "sort": sort,
                "direction": direction,
                "per_page": per_page,
                "page": page,
            },
            timeout=timeout,
        )
        payload = response.json()
        items = payload if isinstance(payload, list) else []
        return items, has_next_page(response.headers.get("link"))

    async def _request(
        self,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        request_kwargs: dict[str, Any] = {"params": params}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        try:
            response = await client.get(path, **request_kwargs)
        except httpx.HTTPError as exc:
            error = classify_transport_error(exc)
            logger.warning(
                "GitHub request failed before a response was received",
                extra=sanitize_log_extra(path=path, params=params, kind=error.kind.value, error=str(exc)),
            )
            raise error from exc

        if response.is_success:
            return response

        error = classify_response(response.status_code, self._decode_body(response), response.headers)
        logger.warning(
            "GitHub API returned an error",
            extra=sanitize_log_extra(
                path=path,
                params=params,
                status_code=response.status_code,
                kind=error.kind.value,
                error=error.message,
            ),
        )
        raise error

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        headers = {
            "Accept": self.ACCEPT_JSON,
            "User-Agent": self._user_agent,
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        return self._client

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text


__all__ = ["GitHubClient", "GitHubError", "has_next_page"]
