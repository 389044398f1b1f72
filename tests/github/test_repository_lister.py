from __future__ import annotations

from typing import Any

import httpx
import pytest

from changelog_api.github.client import GitHubClient, has_next_page
from changelog_api.github.errors import GitHubError, GitHubErrorKind
from changelog_api.github.repositories import RepositoryLister


def _repos(start: int, count: int) -> list[dict[str, Any]]:
    return [
        {
            "id": number,
            "name": f"repo-{number}",
            "full_name": f"octocat/repo-{number}",
            "private": number % 2 == 0,
            "html_url": f"https://github.com/octocat/repo-{number}",
            "owner": {"login": "octocat"},
            "stargazers_count": number,
        }
        for number in range(start, start + count)
    ]


class FakeRepos:
    def __init__(self, pages: dict[int, list[dict[str, Any]]]) -> None:
        self.pages = pages
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params["page"])
        headers = {}
        if page + 1 in self.pages:
            headers["Link"] = f'<https://api.github.com/user/repos?page={page + 1}>; rel="next"'
        return httpx.Response(200, json=self.pages.get(page, []), headers=headers)


async def _list(handler: Any, **kwargs: Any):
    async with GitHubClient(token="gho_token", transport=httpx.MockTransport(handler)) as client:
        return await RepositoryLister(client).list_all(**kwargs)


def test_has_next_page_reads_link_header() -> None:
    assert has_next_page('<https://api.github.com/user/repos?page=2>; rel="next", <x>; rel="last"') is True
    assert has_next_page('<https://api.github.com/user/repos?page=1>; rel="prev"') is False
    assert has_next_page(None) is False


@pytest.mark.asyncio
async def test_lister_follows_link_header_until_exhausted() -> None:
    handler = FakeRepos({1: _repos(1, 30), 2: _repos(31, 5)})

    repositories = await _list(handler)

    assert [repo.id for repo in repositories] == list(range(1, 36))
    assert [request.url.params["page"] for request in handler.requests] == ["1", "2"]
    assert {request.url.params["per_page"] for request in handler.requests} == {"30"}
    assert repositories[0].to_dict()["owner"] == {"login": "octocat"}


@pytest.mark.asyncio
async def test_lister_truncates_to_requested_maximum() -> None:
    handler = FakeRepos({page: _repos((page - 1) * 30 + 1, 30) for page in range(1, 5)})

    repositories = await _list(handler, max_repos=45)

    assert len(repositories) == 45
    assert len(handler.requests) == 2


@pytest.mark.asyncio
async def test_lister_passes_filters_through() -> None:
    handler = FakeRepos({1: _repos(1, 2)})

    await _list(handler, type="private", sort="pushed", direction="asc")

    params = handler.requests[0].url.params
    assert params["type"] == "private"
    assert params["sort"] == "pushed"
    assert params["direction"] == "asc"


@pytest.mark.asyncio
async def test_lister_maps_bad_token_to_reauth_message() -> None:
    with pytest.raises(GitHubError) as excinfo:
        await _list(lambda request: httpx.Response(401, json={"message": "Bad credentials"}))

    assert excinfo.value.kind == GitHubErrorKind.AUTH
    assert excinfo.value.message == "GitHub access token is invalid or expired. Please login again."
