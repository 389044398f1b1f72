from typing import AsyncIterator

import pytest

from changelog_api.services.relay import ERROR_MARKER, ended_with_error, relay_stream


async def _chunks(*pieces: str, fail_with: Exception | None = None) -> AsyncIterator[str]:
    for piece in pieces:
        yield piece
    if fail_with is not None:
        raise fail_with


async def _collect(stream: AsyncIterator[bytes]) -> list[bytes]:
    return [chunk async for chunk in stream]


@pytest.mark.asyncio
async def test_relay_forwards_chunks_in_order_and_skips_empty() -> None:
    relayed = await _collect(relay_stream(_chunks("# Title", "", "\n\nBody", "✨")))

    assert relayed == [b"# Title", b"\n\nBody", "✨".encode("utf-8")]


@pytest.mark.asyncio
async def test_relay_appends_error_marker_after_partial_output() -> None:
    relayed = await _collect(relay_stream(_chunks("A", "B", fail_with=RuntimeError("upstream closed"))))

    body = b"".join(relayed).decode("utf-8")
    assert body == f"AB{ERROR_MARKER}upstream closed"
    assert ended_with_error(body) is True


@pytest.mark.asyncio
async def test_relay_uses_default_message_for_blank_errors() -> None:
    relayed = await _collect(relay_stream(_chunks(fail_with=RuntimeError())))

    assert relayed == [f"{ERROR_MARKER}Stream error occurred".encode("utf-8")]


def test_clean_body_is_not_flagged_as_error() -> None:
    assert ended_with_error("# Changelog\n\n---\n\nAll done") is False
