"""Paginated merged-PR fetcher over GitHub issue search.

Paging rules:
- pages are requested strictly in order, 100 items each, at most 10 pages;
- paging stops on a short page, an empty page, or once GitHub's reported total
  has been collected;
- the first page's `total_count` is authoritative and never overwritten;
- a 30 s wall-clock budget, checked before each page, ends the walk gracefully
  with the pages collected so far;
- a single page exceeding its own 10 s timeout aborts the whole fetch with a
  `timeout` GitHubError. Partial pages are never applied.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from changelog_api.config.settings import Settings
from changelog_api.github.client import GitHubClient
from changelog_api.github.errors import GitHubError, GitHubErrorKind, classify_transport_error
from changelog_api.log_sanitizer import sanitize_log_extra
from changelog_api.models import DateRange, FetchResult, PullRequest, RepositoryRef

logger = logging.getLogger(__name__)

MAX_PAGES = 10
PAGE_SIZE = 100
FETCH_BUDGET_SECONDS = 30.0
PAGE_TIMEOUT_SECONDS = 10.0
SEARCH_SORT = "updated"


def build_search_query(repository: RepositoryRef, date_range: DateRange) -> str:
    return f"repo:{repository.full_name} is:pr is:merged merged:{date_range.to_search_qualifier()}"


class PullRequestFetcher:
    """Fetches merged pull requests anonymously (optionally with a shared service token)."""

    authenticated = False

    def __init__(
        self,
        client: GitHubClient,
        *,
        max_pages: int = MAX_PAGES,
        page_size: int = PAGE_SIZE,
        budget_seconds: float = FETCH_BUDGET_SECONDS,
        page_timeout_seconds: float = PAGE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._max_pages = max_pages
        self._page_size = page_size
        self._budget_seconds = budget_seconds
        self._page_timeout_seconds = page_timeout_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, client: GitHubClient, config: Settings, **overrides: Any) -> "PullRequestFetcher":
        options: dict[str, Any] = {
            "max_pages": config.GITHUB_MAX_PAGES,
            "page_size": config.GITHUB_PAGE_SIZE,
            "budget_seconds": config.GITHUB_FETCH_BUDGET_SECONDS,
            "page_timeout_seconds": config.GITHUB_PAGE_TIMEOUT_SECONDS,
        }
        options.update(overrides)
        return cls(client, **options)

    async def fetch(self, repository: RepositoryRef, date_range: DateRange) -> FetchResult:
        """
        Collect merged PRs for the repository within the date range

        Args:
            repository: validated owner/repo
            date_range: resolved window; day precision is used in the query

        Returns:
            FetchResult in upstream order

        Raises:
            GitHubError: on any upstream failure or page timeout (no partial return)
        """
        query = build_search_query(repository, date_range)
        result = FetchResult()
        started = self._clock()
        page = 1

        logger.info(
            f"Fetching merged PRs for {repository} ({date_range.start_date}..{date_range.end_date})",
            extra=sanitize_log_extra(query=query, authenticated=self.authenticated),
        )

        while page <= self._max_pages:
            elapsed = self._clock() - started
            if elapsed > self._budget_seconds:
                result.timed_out = True
                logger.warning(
                    f"Fetch budget exhausted after {result.fetched_count} PRs, returning partial results",
                    extra=sanitize_log_extra(repository=repository.full_name, page=page, elapsed_seconds=elapsed),
                )
                break

            payload = await self._fetch_page(repository, query, page)
            if page == 1:
                result.total_count = self._total_count(payload)

            items = payload.get("items") if isinstance(payload.get("items"), list) else []
            if not items:
                break

            page_prs = [PullRequest.from_api(item) for item in items]
            result.prs.extend(page_prs)
            result.pages_fetched += 1

            if len(items) < self._page_size:
                break
            if result.total_count and result.fetched_count >= result.total_count:
                break
            page += 1

        if result.pages_fetched >= self._max_pages and result.is_partial:
            logger.warning(
                f"Page cap reached: fetched {result.fetched_count} of {result.total_count} PRs for {repository}"
            )

        logger.info(f"Fetched {result.fetched_count} of {result.total_count} PRs for {repository}")
        return result

    async def _fetch_page(self, repository: RepositoryRef, query: str, page: int) -> dict[str, Any]:
        try:
            return await asyncio.wait_for(
                self._client.search_issues(query, page=page, per_page=self._page_size, sort=SEARCH_SORT),
                timeout=self._page_timeout_seconds,
            )
        except GitHubError as error:
            raise self._describe(error, repository) from error
        except TimeoutError as exc:
            raise self._describe(classify_transport_error(exc), repository) from exc

    @staticmethod
    def _total_count(payload: dict[str, Any]) -> int:
        raw = payload.get("total_count")
        try:
            return max(int(raw), 0)
        except (TypeError, ValueError):
            return 0

    def _describe(self, error: GitHubError, repository: RepositoryRef) -> GitHubError:
        """Attach user-facing guidance for this variant to a classified error."""
        if error.kind == GitHubErrorKind.RATE_LIMIT:
            return error.with_message(self._rate_limit_message(error))
        if error.kind == GitHubErrorKind.NOT_FOUND:
            return error.with_message(self._not_found_message(repository))
        if error.kind == GitHubErrorKind.INVALID_QUERY:
            return error.with_message("Invalid query parameters. Please check your date range.")
        if error.kind == GitHubErrorKind.TIMEOUT:
            return error.with_message(
                "Request timeout while fetching PRs from GitHub. "
                "The repository may be too large or GitHub API is slow."
            )
        if error.kind == GitHubErrorKind.AUTH:
            return error.with_message(self._auth_message())
        if error.kind == GitHubErrorKind.TOKEN_EXPIRED:
            return error.with_message("Your GitHub token has expired. Please sign in again.")
        if error.kind == GitHubErrorKind.FORBIDDEN:
            return error.with_message(f"Access to '{repository}' is forbidden: {error.message}")
        return error

    @staticmethod
    def _format_reset(error: GitHubError) -> str:
        if error.reset_time is None:
            return "unknown"
        return error.reset_time.strftime("%H:%M:%S UTC")

    def _rate_limit_message(self, error: GitHubError) -> str:
        return (
            f"GitHub API rate limit exceeded ({error.limit} requests/hour). "
            f"Rate limit resets at {self._format_reset(error)}. "
            "Sign in with GitHub for higher limits."
        )

    def _not_found_message(self, repository: RepositoryRef) -> str:
        return f"Repository '{repository}' not found. Please check the repository name."

    def _auth_message(self) -> str:
        return "This repository requires authentication. Please sign in with GitHub."


class AuthenticatedPullRequestFetcher(PullRequestFetcher):
    """Fetches merged pull requests with the signed-in user's OAuth token."""

    authenticated = True

    def _rate_limit_message(self, error: GitHubError) -> str:
        return (
            f"GitHub API rate limit exceeded ({error.limit} requests/hour). "
            f"Rate limit resets at {self._format_reset(error)}."
        )

    def _not_found_message(self, repository: RepositoryRef) -> str:
        return f"Repository '{repository}' not found or you don't have access to it."

    def _auth_message(self) -> str:
        return "GitHub access token is invalid or expired. Please login again."
