"""Pull request records as fetched from GitHub search and as fed to the model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Merged pull request from `/search/issues`. Immutable once fetched."""

    number: int
    title: str
    url: str
    body: Optional[str] = None
    merged_at: Optional[str] = None
    author: Optional[str] = None
    labels: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "PullRequest":
        user = item.get("user") if isinstance(item.get("user"), dict) else {}
        pull_request = item.get("pull_request") if isinstance(item.get("pull_request"), dict) else {}
        raw_labels = item.get("labels") if isinstance(item.get("labels"), list) else []

        labels: list[str] = []
        for label in raw_labels:
            name = label.get("name") if isinstance(label, dict) else label
            if isinstance(name, str) and name not in labels:
                labels.append(name)

        # Search results carry the merge time under `pull_request`; PR payloads carry it top-level.
        merged_at = item.get("merged_at") or pull_request.get("merged_at")

        return cls(
            number=int(item["number"]),
            title=str(item.get("title") or ""),
            url=str(item.get("html_url") or ""),
            body=item.get("body") if isinstance(item.get("body"), str) else None,
            merged_at=merged_at if isinstance(merged_at, str) else None,
            author=user.get("login") if isinstance(user.get("login"), str) else None,
            labels=tuple(labels),
        )


@dataclass(slots=True)
class FetchResult:
    """Aggregate of one paginated search.

    `total_count` is GitHub's reported number of matches from the first page and may
    exceed `fetched_count` when paging stops at the page cap or the time budget.
    """

    prs: list[PullRequest] = field(default_factory=list)
    total_count: int = 0
    timed_out: bool = False
    pages_fetched: int = 0

    @property
    def fetched_count(self) -> int:
        return len(self.prs)

    @property
    def is_partial(self) -> bool:
        return self.total_count > self.fetched_count


@dataclass(frozen=True, slots=True)
class PRSummary:
    """Prompt-facing projection of a PullRequest."""

    number: int
    title: str
    author: str
    url: str
    merged_at: Optional[str]
    labels: tuple[str, ...]
    body: str

    def to_prompt_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "author": self.author,
            "url": self.url,
            "mergedAt": self.merged_at,
            "labels": list(self.labels),
            "body": self.body,
        }
