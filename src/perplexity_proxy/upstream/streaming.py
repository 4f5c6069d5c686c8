"""Server-sent event decoding for streamed chat completions.

Every ``data:`` event sent by the upstream API is a full snapshot of the
completion so far, not a delta, so the decoder only needs to remember the
most recent payload that parsed. Reading stops at end of stream or when the
wall-clock deadline passes; in both cases the latest snapshot is the result.
"""

import asyncio
import codecs
import json
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx

from ..errors import EmptyStreamError
from .models import CompletionResult, validate_completion

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


def _parse_data_line(line: str) -> Optional[dict[str, Any]]:
    """Parse one SSE line, returning its JSON object or None."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    data = line[len(DATA_PREFIX):].strip()
    if not data:
        return None
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        logger.debug(f"Skipping unparseable stream event ({e}): {data[:80]!r}")
        return None
    if not isinstance(payload, dict):
        logger.debug(f"Skipping non-object stream event: {data[:80]!r}")
        return None
    return payload


def _parse_trailing_buffer(buffer: str) -> Optional[dict[str, Any]]:
    """Parse the held-back tail, but only if it is a closed JSON object."""
    candidate = buffer.strip()
    if not candidate.startswith(DATA_PREFIX):
        return None
    body = candidate[len(DATA_PREFIX):].strip()
    if not (body.startswith("{") and body.endswith("}")):
        return None
    return _parse_data_line(candidate)


async def decode_event_stream(
    chunks: AsyncIterator[bytes],
    deadline_seconds: float,
    started_at: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
    on_timeout: Optional[Callable[[], Awaitable[None]]] = None,
) -> dict[str, Any]:
    """Read an SSE byte stream and return the last complete JSON payload.

    Args:
        chunks: Raw bytes of the event stream
        deadline_seconds: Time budget measured from ``started_at``
        started_at: Start of the budget on ``clock``'s scale; defaults to now
        clock: Monotonic time source
        on_timeout: Called once to release the underlying stream when the
            deadline passes

    Returns:
        The most recent payload that parsed as a JSON object

    Raises:
        EmptyStreamError: If no payload could be parsed at all
    """
    if started_at is None:
        started_at = clock()

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    iterator = chunks.__aiter__()
    buffer = ""
    last_payload: Optional[dict[str, Any]] = None
    timed_out = False

    while True:
        remaining = deadline_seconds - (clock() - started_at)
        if remaining <= 0:
            timed_out = True
            break
        try:
            chunk = await asyncio.wait_for(iterator.__anext__(), timeout=remaining)
        except StopAsyncIteration:
            break
        except asyncio.TimeoutError:
            timed_out = True
            break

        buffer += decoder.decode(chunk)
        lines = buffer.split("\n")
        buffer = lines.pop()
        for line in lines:
            payload = _parse_data_line(line)
            if payload is not None:
                last_payload = payload

    if timed_out:
        logger.warning(
            f"Stream deadline of {deadline_seconds}s reached, using last complete payload"
        )
        if on_timeout is not None:
            try:
                await on_timeout()
            except Exception as e:
                logger.warning(f"Failed to close timed-out stream: {e}")
    else:
        buffer += decoder.decode(b"", final=True)

    trailing = _parse_trailing_buffer(buffer)
    if trailing is not None:
        last_payload = trailing

    if last_payload is None:
        raise EmptyStreamError("No valid JSON payload received from stream")

    return last_payload


async def read_completion_stream(
    response: httpx.Response,
    deadline_seconds: float,
    started_at: Optional[float] = None,
) -> CompletionResult:
    """Decode a streamed chat completion from an open httpx response."""
    payload = await decode_event_stream(
        response.aiter_bytes(),
        deadline_seconds=deadline_seconds,
        started_at=started_at,
        on_timeout=response.aclose,
    )
    return validate_completion(payload)
