"""Tests for the server-sent event decoder."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from perplexity_proxy.errors import EmptyStreamError, UpstreamSchemaError
from perplexity_proxy.upstream.models import ChatCompletionsResponse
from perplexity_proxy.upstream.streaming import decode_event_stream, read_completion_stream


async def _stream(*chunks: bytes):
    for chunk in chunks:
        yield chunk


def _event(payload: dict) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


class _SteppingClock:
    """Clock that advances a fixed step every time it is read."""

    def __init__(self, step: float):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class TestDecodeEventStream:
    """Test incremental SSE decoding."""

    @pytest.mark.asyncio
    async def test_last_snapshot_wins(self, completion_payload):
        first = completion_payload(content="Par", completion_tokens=1)
        second = completion_payload(content="Paris", completion_tokens=2)

        payload = await decode_event_stream(_stream(_event(first), _event(second)), 55)

        assert payload == second

    @pytest.mark.asyncio
    async def test_same_stream_decodes_identically(self, completion_payload):
        data = _event(completion_payload())

        first = await decode_event_stream(_stream(data), 55)
        second = await decode_event_stream(_stream(data), 55)

        assert first == second

    @pytest.mark.asyncio
    async def test_lines_split_across_chunks(self, completion_payload):
        data = _event(completion_payload(content="split"))
        chunks = [data[i:i + 7] for i in range(0, len(data), 7)]

        payload = await decode_event_stream(_stream(*chunks), 55)

        assert payload["choices"][0]["message"]["content"] == "split"

    @pytest.mark.asyncio
    async def test_multibyte_characters_split_across_chunks(self, completion_payload):
        data = _event(completion_payload(content="café ☕"))
        cut = data.index("é".encode("utf-8")) + 1

        payload = await decode_event_stream(_stream(data[:cut], data[cut:]), 55)

        assert payload["choices"][0]["message"]["content"] == "café ☕"

    @pytest.mark.asyncio
    async def test_malformed_lines_are_skipped(self, completion_payload):
        good = completion_payload(content="good")
        chunks = [
            b": keep-alive comment\n",
            b"data: {not json}\n",
            _event(good),
            b"data: [DONE]\n",
            b"event: done\n",
        ]

        payload = await decode_event_stream(_stream(*chunks), 55)

        assert payload == good

    @pytest.mark.asyncio
    async def test_crlf_line_endings(self, completion_payload):
        good = completion_payload(content="crlf")
        data = f"data: {json.dumps(good)}\r\n\r\n".encode("utf-8")

        payload = await decode_event_stream(_stream(data), 55)

        assert payload == good

    @pytest.mark.asyncio
    async def test_truncated_trailing_event_is_ignored(self, completion_payload):
        """A last event cut off mid-transmission falls back to the previous one."""
        complete = completion_payload(content="complete")
        truncated = f"data: {json.dumps(completion_payload(content='cut'))}"[:-20]

        payload = await decode_event_stream(
            _stream(_event(complete), truncated.encode("utf-8")), 55
        )

        assert payload == complete

    @pytest.mark.asyncio
    async def test_trailing_event_without_newline_is_used(self, completion_payload):
        earlier = completion_payload(content="earlier")
        final = completion_payload(content="final")
        tail = f"data: {json.dumps(final)}".encode("utf-8")

        payload = await decode_event_stream(_stream(_event(earlier), tail), 55)

        assert payload == final

    @pytest.mark.asyncio
    async def test_trailing_json_without_data_prefix_is_ignored(self, completion_payload):
        earlier = completion_payload(content="earlier")
        tail = json.dumps(completion_payload(content="bare")).encode("utf-8")

        payload = await decode_event_stream(_stream(_event(earlier), tail), 55)

        assert payload == earlier

    @pytest.mark.asyncio
    async def test_empty_stream_raises(self):
        with pytest.raises(EmptyStreamError):
            await decode_event_stream(_stream(), 55)

    @pytest.mark.asyncio
    async def test_stream_with_only_garbage_raises(self):
        with pytest.raises(EmptyStreamError):
            await decode_event_stream(_stream(b"data: {oops\n", b"data: [DONE]\n"), 55)

    @pytest.mark.asyncio
    async def test_deadline_stops_reading(self, completion_payload):
        """Chunks after the deadline are never read."""
        first = completion_payload(content="in time")
        late = completion_payload(content="too late")
        on_timeout = AsyncMock()

        payload = await decode_event_stream(
            _stream(_event(first), _event(late)),
            deadline_seconds=1.5,
            started_at=0.0,
            clock=_SteppingClock(step=1.0),
            on_timeout=on_timeout,
        )

        assert payload == first
        on_timeout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_deadline_before_first_read_raises_empty(self):
        with pytest.raises(EmptyStreamError):
            await decode_event_stream(
                _stream(b"data: {}\n"),
                deadline_seconds=0,
                started_at=0.0,
                clock=_SteppingClock(step=1.0),
            )

    @pytest.mark.asyncio
    async def test_hanging_read_is_cancelled(self, completion_payload):
        """A read that blocks past the deadline is cancelled and the snapshot kept."""
        snapshot = completion_payload(content="partial")

        async def slow_stream():
            yield _event(snapshot)
            await asyncio.sleep(10)
            yield _event(completion_payload(content="never"))

        on_timeout = AsyncMock()
        payload = await decode_event_stream(
            slow_stream(), deadline_seconds=0.2, on_timeout=on_timeout
        )

        assert payload == snapshot
        on_timeout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_close_does_not_lose_payload(self, completion_payload):
        snapshot = completion_payload(content="kept")
        on_timeout = AsyncMock(side_effect=RuntimeError("already closed"))

        payload = await decode_event_stream(
            _stream(_event(snapshot), _event(snapshot)),
            deadline_seconds=1.5,
            started_at=0.0,
            clock=_SteppingClock(step=1.0),
            on_timeout=on_timeout,
        )

        assert payload == snapshot


class _FakeResponse:
    """Minimal stand-in for a streaming httpx response."""

    def __init__(self, *chunks: bytes):
        self._chunks = chunks
        self.aclose = AsyncMock()

    def aiter_bytes(self):
        return _stream(*self._chunks)


class TestReadCompletionStream:
    """Test decoding plus validation of streamed completions."""

    @pytest.mark.asyncio
    async def test_valid_snapshot_is_validated(self, completion_payload):
        response = _FakeResponse(_event(completion_payload(content="ok")))

        result = await read_completion_stream(response, deadline_seconds=55)

        assert isinstance(result, ChatCompletionsResponse)
        assert result.choices[0].message.content == "ok"

    @pytest.mark.asyncio
    async def test_invalid_snapshot_with_choices_is_returned_raw(self):
        partial = {"id": "cmpl-1", "choices": [{"delta": {"content": "Hel"}}]}
        response = _FakeResponse(_event(partial))

        result = await read_completion_stream(response, deadline_seconds=55)

        assert result == partial

    @pytest.mark.asyncio
    async def test_invalid_snapshot_without_choices_fails(self):
        response = _FakeResponse(_event({"id": "cmpl-1", "error": "overloaded"}))

        with pytest.raises(UpstreamSchemaError):
            await read_completion_stream(response, deadline_seconds=55)
