"""Orchestrator to coordinate changelog request validation, PR ingestion and generation"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, AsyncIterator, Callable, Optional

from changelog_api.config.settings import Settings
from changelog_api.errors import ValidationError
from changelog_api.github.client import GitHubClient
from changelog_api.github.fetcher import AuthenticatedPullRequestFetcher, PullRequestFetcher
from changelog_api.models import DateRange, FetchResult, RepositoryRef
from changelog_api.services.date_range import resolve_date_range
from changelog_api.services.generator import TextGenerator
from changelog_api.services.normalizer import summarize_pull_requests
from changelog_api.services.prompt_builder import ChangelogPrompt, build_changelog_prompt, build_email_prompt
from changelog_api.services.relay import relay_stream
from changelog_api.services.repository import parse_repository

logger = logging.getLogger(__name__)

NO_PULL_REQUESTS_MESSAGE = (
    "# No Pull Requests Found\n\nNo merged pull requests found in the specified time range."
)

GitHubClientFactory = Callable[[Optional[str]], GitHubClient]


@dataclass(frozen=True, slots=True)
class ChangelogRequest:
    """Validated inputs for one changelog generation."""

    repository: RepositoryRef
    date_range: DateRange


@dataclass(slots=True)
class ChangelogPlan:
    """Everything decided before generation starts."""

    request: ChangelogRequest
    fetch: FetchResult
    prompt: Optional[ChangelogPrompt] = None

    @property
    def has_pull_requests(self) -> bool:
        return self.prompt is not None


class ChangelogOrchestrator:
    """Runs validation, PR fetch, normalization and prompt assembly, then streams generation"""

    def __init__(
        self,
        *,
        config: Settings,
        github_client_factory: GitHubClientFactory,
        generator: TextGenerator,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._github_client_factory = github_client_factory
        self._generator = generator
        self._now = now or (lambda: datetime.now(UTC))

    def validate(
        self,
        *,
        repository: Any,
        date_mode: Any,
        days: Any = None,
        start_date: Any = None,
        end_date: Any = None,
    ) -> ChangelogRequest:
        """
        Validate repository and date configuration without touching the network

        Raises:
            ValidationError: bad repository format or date configuration
        """
        if not repository:
            raise ValidationError("Repository is required")

        repository_ref = parse_repository(repository)
        if repository_ref is None:
            raise ValidationError("Invalid repository format. Use 'owner/repository'")

        date_range = resolve_date_range(
            date_mode,
            days=days,
            start_date=start_date,
            end_date=end_date,
            now=self._now,
        )
        return ChangelogRequest(repository=repository_ref, date_range=date_range)

    async def prepare(self, request: ChangelogRequest, *, access_token: Optional[str] = None) -> ChangelogPlan:
        """
        Fetch merged PRs and assemble the prompt

        Args:
            request: validated request
            access_token: signed-in user's GitHub token; None uses the anonymous path

        Returns:
            ChangelogPlan; `prompt` is None when no PRs matched

        Raises:
            GitHubError: classified upstream failure
        """
        authenticated = access_token is not None
        token = access_token if authenticated else self._config.GITHUB_TOKEN
        fetcher_class = AuthenticatedPullRequestFetcher if authenticated else PullRequestFetcher

        async with self._github_client_factory(token) as client:
            fetcher = fetcher_class.from_settings(client, self._config)
            fetch_result = await fetcher.fetch(request.repository, request.date_range)

        plan = ChangelogPlan(request=request, fetch=fetch_result)
        if not fetch_result.prs:
            logger.info(f"No merged PRs found for {request.repository}")
            return plan

        summaries = summarize_pull_requests(fetch_result.prs, body_max_chars=self._config.PR_BODY_MAX_CHARS)
        plan.prompt = build_changelog_prompt(
            request.repository,
            request.date_range,
            summaries,
            fetch_result.total_count,
            max_prs=self._config.PROMPT_MAX_PRS,
        )
        logger.info(
            f"Starting AI generation with {plan.prompt.included_count} PRs "
            f"({fetch_result.total_count} in range{', authenticated' if authenticated else ''})"
        )
        return plan

    def stream_changelog(self, plan: ChangelogPlan) -> AsyncIterator[bytes]:
        if plan.prompt is None:
            raise ValueError("Cannot stream a changelog for a plan without pull requests")
        return relay_stream(self._generator.stream(plan.prompt.text), label="changelog")

    def stream_email(
        self,
        changelog_content: str,
        *,
        repository: Optional[str] = None,
        date_range: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        prompt = build_email_prompt(changelog_content, repository=repository, date_range=date_range)
        logger.info(f"Starting email generation for {repository or 'repository'}")
        return relay_stream(self._generator.stream(prompt), label="email")

    async def aclose(self) -> None:
        await self._generator.aclose()
