"""Syntactic validation of `owner/repo` identifiers. Never touches the network."""

from __future__ import annotations

import re
from typing import Optional

from changelog_api.models import RepositoryRef

MAX_SEGMENT_LENGTH = 100
_VALID_SEGMENT = re.compile(r"^[A-Za-z0-9._-]+$")
_RESERVED_SEGMENTS = {".", ".."}


def parse_repository(value: object) -> Optional[RepositoryRef]:
    """
    Parse an `owner/repo` string

    Args:
        value: candidate identifier, typically straight from a request body

    Returns:
        RepositoryRef when valid, None otherwise (never raises for bad input)
    """
    if not isinstance(value, str):
        return None

    parts = value.split("/")
    if len(parts) != 2:
        return None

    owner, repo = parts
    if not owner or not repo:
        return None
    if owner in _RESERVED_SEGMENTS or repo in _RESERVED_SEGMENTS:
        return None
    if repo.endswith(".git"):
        return None
    if not _VALID_SEGMENT.match(owner) or not _VALID_SEGMENT.match(repo):
        return None
    if len(owner) > MAX_SEGMENT_LENGTH or len(repo) > MAX_SEGMENT_LENGTH:
        return None

    return RepositoryRef(owner=owner, repo=repo)


def is_valid_repository(value: object) -> bool:
    return parse_repository(value) is not None
