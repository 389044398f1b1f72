"""Data models"""

from changelog_api.models.date_range import DateRange
from changelog_api.models.pull_request import FetchResult, PRSummary, PullRequest
from changelog_api.models.repository import Repository, RepositoryRef

__all__ = [
    "DateRange",
    "FetchResult",
    "PRSummary",
    "PullRequest",
    "Repository",
    "RepositoryRef",
]
