"""Map fetched pull requests to the compact shape embedded in prompts."""

from __future__ import annotations

from typing import Iterable

from changelog_api.models import PRSummary, PullRequest

BODY_MAX_CHARS = 500
NO_DESCRIPTION = "No description provided"
UNKNOWN_AUTHOR = "unknown"


def summarize_pull_request(pr: PullRequest, *, body_max_chars: int = BODY_MAX_CHARS) -> PRSummary:
    # Hard cut: no ellipsis, no word-boundary adjustment.
    body = pr.body[:body_max_chars] if pr.body else NO_DESCRIPTION
    return PRSummary(
        number=pr.number,
        title=pr.title,
        author=pr.author or UNKNOWN_AUTHOR,
        url=pr.url,
        merged_at=pr.merged_at,
        labels=tuple(pr.labels),
        body=body,
    )


def summarize_pull_requests(prs: Iterable[PullRequest], *, body_max_chars: int = BODY_MAX_CHARS) -> list[PRSummary]:
    return [summarize_pull_request(pr, body_max_chars=body_max_chars) for pr in prs]
