"""Classification of GitHub failures into a closed set of error kinds.

The kind is the only thing callers (and the UI) switch on: HTTP status codes and
headers are interpreted here and nowhere else.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Mapping, Optional

import httpx

DEFAULT_RATE_LIMIT = 60
SERVER_ERROR_STATUSES = (500, 502, 503, 504)


class GitHubErrorKind(str, Enum):
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER = "server"
    TOKEN_EXPIRED = "token_expired"
    INVALID_QUERY = "invalid_query"
    UNKNOWN = "unknown"


# Status returned to our own clients for each kind.
_HTTP_STATUS = {
    GitHubErrorKind.RATE_LIMIT: 429,
    GitHubErrorKind.AUTH: 401,
    GitHubErrorKind.TOKEN_EXPIRED: 401,
    GitHubErrorKind.NOT_FOUND: 404,
    GitHubErrorKind.FORBIDDEN: 403,
    GitHubErrorKind.INVALID_QUERY: 422,
    GitHubErrorKind.SERVER: 502,
    GitHubErrorKind.NETWORK: 503,
    GitHubErrorKind.TIMEOUT: 504,
    GitHubErrorKind.UNKNOWN: 500,
}

_NOT_RETRYABLE = {
    GitHubErrorKind.AUTH,
    GitHubErrorKind.TOKEN_EXPIRED,
    GitHubErrorKind.INVALID_QUERY,
}

_REAUTH_KINDS = {GitHubErrorKind.AUTH, GitHubErrorKind.TOKEN_EXPIRED}


class GitHubError(Exception):
    """Classified GitHub failure. Construct through the classify_* functions."""

    def __init__(
        self,
        kind: GitHubErrorKind,
        message: str,
        *,
        status: Optional[int] = None,
        reset_time: Optional[datetime] = None,
        remaining: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.reset_time = reset_time
        self.remaining = remaining
        self.limit = limit

    def __repr__(self) -> str:
        return f"<GitHubError {self.kind.value}: {self.message}>"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind not in _NOT_RETRYABLE

    @property
    def requires_reauth(self) -> bool:
        return self.kind in _REAUTH_KINDS

    def with_message(self, message: str) -> "GitHubError":
        """Copy with a caller-specific message; kind and payload are preserved."""
        return GitHubError(
            self.kind,
            message,
            status=self.status,
            reset_time=self.reset_time,
            remaining=self.remaining,
            limit=self.limit,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.message,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "requiresReauth": self.requires_reauth,
        }
        if self.kind == GitHubErrorKind.RATE_LIMIT:
            payload["resetTime"] = self.reset_time.isoformat() if self.reset_time else None
            payload["remaining"] = self.remaining
            payload["limit"] = self.limit
        return payload


def classify_response(
    status: int,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> GitHubError:
    """
    Map a non-2xx GitHub response to a GitHubError

    Args:
        status: HTTP status code
        body: decoded JSON body (dict), raw text, or None
        headers: response headers; looked up case-insensitively

    Returns:
        GitHubError with the matching kind
    """
    lowered = {str(key).lower(): str(value) for key, value in (headers or {}).items()}
    upstream_message = _body_message(body)

    if status == 401:
        return GitHubError(
            GitHubErrorKind.AUTH,
            "Authentication required to access this repository",
            status=status,
        )

    # 429 is GitHub's secondary-limit status; treat it like an exhausted primary limit.
    if (status == 403 and lowered.get("x-ratelimit-remaining") == "0") or status == 429:
        limit = _parse_int(lowered.get("x-ratelimit-limit"))
        return GitHubError(
            GitHubErrorKind.RATE_LIMIT,
            "API rate limit exceeded",
            status=status,
            reset_time=_parse_reset(lowered.get("x-ratelimit-reset")),
            remaining=0,
            limit=limit if limit is not None else DEFAULT_RATE_LIMIT,
        )

    if status == 403:
        return GitHubError(GitHubErrorKind.FORBIDDEN, upstream_message or "Access forbidden", status=status)

    if status == 404:
        return GitHubError(GitHubErrorKind.NOT_FOUND, "Repository not found", status=status)

    if status == 422:
        if upstream_message and "expired" in upstream_message.lower():
            return GitHubError(GitHubErrorKind.TOKEN_EXPIRED, "Your GitHub token has expired", status=status)
        return GitHubError(
            GitHubErrorKind.INVALID_QUERY,
            upstream_message or "Validation failed",
            status=status,
        )

    if status in SERVER_ERROR_STATUSES:
        return GitHubError(
            GitHubErrorKind.SERVER,
            "GitHub server error. Please try again later.",
            status=status,
        )

    return GitHubError(
        GitHubErrorKind.UNKNOWN,
        upstream_message or f"GitHub API error: {status}",
        status=status,
    )


def classify_transport_error(exc: BaseException) -> GitHubError:
    """Map a locally-detected failure (no HTTP response) to a GitHubError."""
    if isinstance(exc, GitHubError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return GitHubError(
            GitHubErrorKind.TIMEOUT,
            "Request timeout while talking to GitHub",
        )
    if isinstance(exc, httpx.TransportError):
        return GitHubError(GitHubErrorKind.NETWORK, "Network connection failed")
    return GitHubError(GitHubErrorKind.UNKNOWN, str(exc) or "An unexpected error occurred")


def _body_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("message")
        return message if isinstance(message, str) and message else None
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _parse_reset(raw: Optional[str]) -> Optional[datetime]:
    epoch = _parse_int(raw)
    if epoch is None:
        return None
    try:
        return datetime.fromtimestamp(epoch, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None
