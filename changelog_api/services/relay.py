"""Forward generated text chunks to the client as they arrive."""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)

ERROR_MARKER = "\n\n---\n\n**Error:** "
DEFAULT_STREAM_ERROR = "Stream error occurred"


def format_stream_error(message: str) -> str:
    return f"{ERROR_MARKER}{message or DEFAULT_STREAM_ERROR}"


def ended_with_error(body: str) -> bool:
    """True when a relayed body carries the trailing failure marker."""
    return ERROR_MARKER in body


async def relay_stream(chunks: AsyncIterable[str], *, label: str = "generation") -> AsyncIterator[bytes]:
    """
    Relay chunks in order, encoded as UTF-8

    Headers are already committed once the first chunk is sent, so a failure part-way
    through is reported as one final error-marker chunk and the stream is closed.
    """
    relayed = 0
    try:
        async for chunk in chunks:
            if not chunk:
                continue
            relayed += 1
            yield chunk.encode("utf-8")
    except Exception as exc:
        logger.error(f"Error in {label} stream after {relayed} chunks: {exc}", exc_info=True)
        yield format_stream_error(str(exc)).encode("utf-8")
        return

    logger.info(f"Finished {label} stream: {relayed} chunks")
