"""GitHub REST access: client, error classification, paginated fetchers."""

from changelog_api.github.client import GitHubClient
from changelog_api.github.errors import GitHubError, GitHubErrorKind, classify_response, classify_transport_error
from changelog_api.github.fetcher import AuthenticatedPullRequestFetcher, PullRequestFetcher
from changelog_api.github.repositories import RepositoryLister

__all__ = [
    "GitHubClient",
    "GitHubError",
    "GitHubErrorKind",
    "classify_response",
    "classify_transport_error",
    "PullRequestFetcher",
    "AuthenticatedPullRequestFetcher",
    "RepositoryLister",
]
