from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Validated `owner/repo` identifier."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(slots=True)
class Repository:
    """Repository entry from `/user/repos`, trimmed to what the selector needs."""

    id: int
    name: str
    full_name: str
    private: bool
    html_url: str
    owner_login: str
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    updated_at: Optional[str] = None
    created_at: Optional[str] = None
    permissions: dict[str, bool] | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Repository":
        owner = item.get("owner") if isinstance(item.get("owner"), dict) else {}
        permissions = item.get("permissions") if isinstance(item.get("permissions"), dict) else None
        return cls(
            id=int(item["id"]),
            name=str(item.get("name") or ""),
            full_name=str(item.get("full_name") or ""),
            private=bool(item.get("private", False)),
            html_url=str(item.get("html_url") or ""),
            owner_login=str(owner.get("login") or ""),
            description=item.get("description"),
            language=item.get("language"),
            stargazers_count=int(item.get("stargazers_count") or 0),
            forks_count=int(item.get("forks_count") or 0),
            updated_at=item.get("updated_at"),
            created_at=item.get("created_at"),
            permissions=permissions,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "private": self.private,
            "html_url": self.html_url,
            "language": self.language,
            "stargazers_count": self.stargazers_count,
            "forks_count": self.forks_count,
            "updated_at": self.updated_at,
            "created_at": self.created_at,
            "owner": {"login": self.owner_login},
            "permissions": self.permissions,
        }
