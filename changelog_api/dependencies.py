"""Process-wide collaborators, built once at startup and disposed on shutdown."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request

from changelog_api.config.settings import Settings
from changelog_api.github.client import GitHubClient
from changelog_api.orchestrator import ChangelogOrchestrator, GitHubClientFactory
from changelog_api.services.auth import CredentialStore, GitHubBearerAuth, SessionProvider, TokenProvider
from changelog_api.services.generator import create_text_generator
from changelog_api.services.rate_limiter import RateLimiter, create_rate_limiter

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    orchestrator: ChangelogOrchestrator
    github_client_factory: GitHubClientFactory
    anonymous_limiter: RateLimiter
    authenticated_limiter: RateLimiter
    email_limiter: RateLimiter
    sessions: SessionProvider
    tokens: TokenProvider

    async def aclose(self) -> None:
        closeables: list[Any] = [
            self.orchestrator,
            self.anonymous_limiter,
            self.authenticated_limiter,
            self.email_limiter,
            self.sessions,
        ]
        for closeable in closeables:
            close = getattr(closeable, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning(f"Failed to close {type(closeable).__name__}: {e}")


def build_services(config: Settings, *, transport: Optional[Any] = None) -> AppServices:
    """
    Validate configuration and construct every collaborator

    Raises:
        ConfigurationError: a selected backend has no credential
    """
    config.validate_required()

    def github_client_factory(token: Optional[str]) -> GitHubClient:
        return GitHubClient.from_settings(config, token=token, transport=transport)

    auth = GitHubBearerAuth(
        github_client_factory,
        CredentialStore(ttl_seconds=config.GITHUB_SESSION_TTL_SECONDS),
    )
    orchestrator = ChangelogOrchestrator(
        config=config,
        github_client_factory=github_client_factory,
        generator=create_text_generator(config),
    )

    logger.info(
        f"Services ready (llm={config.LLM_PROVIDER}, rate_limit_backend={config.RATE_LIMIT_BACKEND})"
    )
    return AppServices(
        settings=config,
        orchestrator=orchestrator,
        github_client_factory=github_client_factory,
        anonymous_limiter=create_rate_limiter(
            config, namespace=config.RATE_LIMIT_NAMESPACE, limit=config.ANONYMOUS_RATE_LIMIT
        ),
        authenticated_limiter=create_rate_limiter(
            config, namespace=config.RATE_LIMIT_NAMESPACE, limit=config.AUTHENTICATED_RATE_LIMIT
        ),
        email_limiter=create_rate_limiter(
            config, namespace=config.EMAIL_RATE_LIMIT_NAMESPACE, limit=config.EMAIL_RATE_LIMIT
        ),
        sessions=auth,
        tokens=auth,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
