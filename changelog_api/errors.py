"""Request-level error taxonomy.

Failures raised here terminate a request before any streaming starts and are
rendered as ``{"error": ...}`` JSON bodies by the exception handlers in
``changelog_api.main``. Upstream GitHub failures use ``GitHubError`` instead.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


class ChangelogError(Exception):
    """Base class for errors answered with a structured JSON body."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(ChangelogError):
    """Malformed request input. Raised before any network call."""

    status_code = 400


class InvalidRange(ValidationError):
    """Explicit date range whose start is after its end."""


class InvalidConfiguration(ValidationError):
    """Date mode and its inputs do not form a usable combination."""


class AuthRequired(ChangelogError):
    status_code = 401


class RateLimited(ChangelogError):
    """The caller exhausted its own request budget."""

    status_code = 429

    def __init__(self, message: str, *, reset: Optional[datetime] = None, limit: Optional[int] = None) -> None:
        super().__init__(message)
        self.reset = reset
        self.limit = limit

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["resetTime"] = self.reset.isoformat() if self.reset else None
        if self.limit is not None:
            payload["limit"] = self.limit
        return payload


class ConfigurationError(RuntimeError):
    """Startup configuration is incomplete."""
