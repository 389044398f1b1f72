"""Repository listing for signed-in users (`/user/repos`)."""

from __future__ import annotations

import logging
import time
from typing import Callable, Literal

from changelog_api.config.settings import Settings
from changelog_api.github.client import GitHubClient
from changelog_api.github.errors import GitHubError, GitHubErrorKind
from changelog_api.models import Repository

logger = logging.getLogger(__name__)

RepoType = Literal["all", "public", "private"]
RepoSort = Literal["created", "updated", "pushed", "full_name"]
SortDirection = Literal["asc", "desc"]

MAX_PAGES = 10
PAGE_SIZE = 30
DEFAULT_MAX_REPOS = 100
MAX_REPOS_CAP = 200


class RepositoryLister:
    """Walks the user's repositories page by page under a repo cap and a time budget."""

    def __init__(
        self,
        client: GitHubClient,
        *,
        budget_seconds: float = 60.0,
        page_timeout_seconds: float = 15.0,
        max_repos_cap: int = MAX_REPOS_CAP,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._budget_seconds = budget_seconds
        self._page_timeout_seconds = page_timeout_seconds
        self._max_repos_cap = max_repos_cap
        self._clock = clock

    @classmethod
    def from_settings(cls, client: GitHubClient, config: Settings) -> "RepositoryLister":
        return cls(
            client,
            budget_seconds=config.GITHUB_REPOS_BUDGET_SECONDS,
            page_timeout_seconds=config.GITHUB_REPOS_TIMEOUT_SECONDS,
            max_repos_cap=config.GITHUB_REPOS_MAX,
        )

    async def list_all(
        self,
        *,
        type: RepoType = "all",
        sort: RepoSort = "updated",
        direction: SortDirection = "desc",
        max_repos: int = DEFAULT_MAX_REPOS,
    ) -> list[Repository]:
        limit = max(1, min(max_repos, self._max_repos_cap))
        repositories: list[Repository] = []
        started = self._clock()
        page = 1
        has_next = True
        # Page size stays fixed across pages so page offsets line up.
        per_page = min(PAGE_SIZE, limit)

        while has_next and len(repositories) < limit and page <= MAX_PAGES:
            if self._clock() - started > self._budget_seconds:
                logger.warning(f"Timeout reached after fetching {len(repositories)} repositories")
                break

            try:
                items, has_next = await self._client.list_user_repositories(
                    type=type,
                    sort=sort,
                    direction=direction,
                    per_page=per_page,
                    page=page,
                    timeout=self._page_timeout_seconds,
                )
            except GitHubError as error:
                raise self._describe(error) from error

            repositories.extend(Repository.from_api(item) for item in items)
            if not items:
                break
            page += 1

        return repositories[:limit]

    @staticmethod
    def _describe(error: GitHubError) -> GitHubError:
        if error.kind == GitHubErrorKind.AUTH:
            return error.with_message("GitHub access token is invalid or expired. Please login again.")
        if error.kind == GitHubErrorKind.TIMEOUT:
            return error.with_message("Request timeout while fetching repositories from GitHub.")
        if error.kind == GitHubErrorKind.RATE_LIMIT:
            return error.with_message("GitHub API rate limit exceeded. Please try again later.")
        return error
