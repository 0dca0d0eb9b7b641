# reqtools/services/body_limits.py
from typing import AsyncIterator, Callable, Mapping

from reqtools.core.logging_config import get_logger

logger = get_logger(__name__)


def check_content_length(
    headers: Mapping[str, str],
    limit: int,
    too_large: Callable[[int], Exception],
) -> None:
    """Reject up front when the client already announces a body above the limit."""
    raw = headers.get("content-length")
    if not raw:
        return
    try:
        declared = int(raw)
    except ValueError:
        # chunked/garbage header: the stream counter still applies
        return
    if declared > limit:
        logger.info("body_rejected", declared=declared, limit=limit)
        raise too_large(limit)


async def limited_stream(
    stream: AsyncIterator[bytes],
    limit: int,
    too_large: Callable[[int], Exception],
) -> AsyncIterator[bytes]:
    """
    Byte-counting wrapper around an ASGI body stream.

    Raises ``too_large(limit)`` as soon as more than ``limit`` bytes have been
    received, so an oversized body is never read to the end.
    """
    received = 0
    async for chunk in stream:
        received += len(chunk)
        if received > limit:
            logger.info("body_rejected", received=received, limit=limit)
            raise too_large(limit)
        yield chunk


async def read_limited(
    stream: AsyncIterator[bytes],
    limit: int,
    too_large: Callable[[int], Exception],
) -> bytes:
    chunks = [chunk async for chunk in limited_stream(stream, limit, too_large)]
    return b"".join(chunks)
