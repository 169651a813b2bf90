"""
Tests for the HTTP byte streamer.
"""

import asyncio
import os

import pytest

from modsyncer.sync.transport import ByteStreamer, get_certifi_path, is_retryable_status


class TestStatusMapping:

    def test_retryable(self):
        assert is_retryable_status(429)
        assert is_retryable_status(500)
        assert is_retryable_status(503)

    def test_permanent(self):
        assert not is_retryable_status(404)
        assert not is_retryable_status(403)


def test_certifi_bundle_exists():
    assert os.path.exists(get_certifi_path())


def test_requires_context_manager():
    streamer = ByteStreamer()

    async def consume():
        async for _ in streamer.iter_chunks("https://example.com/a.jar"):
            pass

    with pytest.raises(RuntimeError):
        asyncio.run(consume())


def test_session_opened_and_closed():
    async def scenario():
        async with ByteStreamer(max_connections=2) as streamer:
            assert streamer._session is not None
        return streamer

    streamer = asyncio.run(scenario())
    assert streamer._session is None
