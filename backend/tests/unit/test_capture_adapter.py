"""
Unit tests for BrowserCaptureAdapter
"""
import asyncio
import pytest

from vibecoding.domain.errors import CaptureError
from vibecoding.domain.models.conversation import TranscriptChunk
from vibecoding.infrastructure.capture.browser import BrowserCaptureAdapter


async def collect(stream):
    return [chunk async for chunk in stream]


class TestBrowserCaptureAdapter:
    """Queue-fed capture stream"""

    def test_push_without_stream_is_dropped(self):
        adapter = BrowserCaptureAdapter()
        assert adapter.push(TranscriptChunk(text="x")) is False
        assert adapter.chunks_dropped == 1
        assert adapter.is_active is False

    @pytest.mark.asyncio
    async def test_events_pushed_before_first_read_are_kept(self):
        adapter = BrowserCaptureAdapter()
        stream = adapter.stream("de-DE")

        adapter.push(TranscriptChunk(text="hallo"))
        adapter.push(TranscriptChunk(text="hallo welt", is_final=True))
        adapter.end()

        chunks = await asyncio.wait_for(collect(stream), timeout=1.0)
        assert [c.text for c in chunks] == ["hallo", "hallo welt"]
        assert chunks[1].is_final is True
        assert adapter.chunks_received == 2

    @pytest.mark.asyncio
    async def test_language_tracked_while_active(self):
        adapter = BrowserCaptureAdapter()
        adapter.stream("fr-FR")
        assert adapter.is_active is True
        assert adapter.language == "fr-FR"

        await adapter.stop()

        assert adapter.is_active is False
        assert adapter.language is None

    @pytest.mark.asyncio
    async def test_fail_raises_capture_error(self):
        adapter = BrowserCaptureAdapter()
        stream = adapter.stream()
        adapter.push(TranscriptChunk(text="a"))
        adapter.fail("network")

        received = []
        with pytest.raises(CaptureError) as exc_info:
            async for chunk in stream:
                received.append(chunk)

        assert exc_info.value.error_code == "network"
        assert [c.text for c in received] == ["a"]

    @pytest.mark.asyncio
    async def test_events_after_end_are_dropped(self):
        adapter = BrowserCaptureAdapter()
        stream = adapter.stream()
        adapter.end()

        assert adapter.push(TranscriptChunk(text="late")) is False
        assert await asyncio.wait_for(collect(stream), timeout=1.0) == []

    @pytest.mark.asyncio
    async def test_new_stream_does_not_see_old_events(self):
        adapter = BrowserCaptureAdapter()
        first = adapter.stream()
        adapter.push(TranscriptChunk(text="old"))
        await adapter.stop()

        second = adapter.stream()
        adapter.push(TranscriptChunk(text="new"))
        adapter.end()

        assert [c.text for c in await collect(first)] == ["old"]
        assert [c.text for c in await collect(second)] == ["new"]

    @pytest.mark.asyncio
    async def test_full_queue_drops_oldest(self):
        adapter = BrowserCaptureAdapter(max_queue_size=2)
        stream = adapter.stream()
        for text in ("a", "b", "c"):
            adapter.push(TranscriptChunk(text=text))
        adapter.end()

        chunks = await collect(stream)
        assert [c.text for c in chunks] == ["c"]
        assert adapter.chunks_dropped == 2
