"""
HTTP byte streaming for mod downloads.

Wraps one aiohttp session per transfer run. Errors are mapped onto the
transfer taxonomy so workers can decide between retry and give up.
"""

import asyncio
import os
import ssl
import sys
from typing import AsyncIterator, Tuple

import aiohttp
import certifi

from ..core.constants import CHUNK_SIZE, CONNECT_TIMEOUT, MAX_WORKERS, READ_TIMEOUT
from ..core.errors import TransferError, TransientTransferError


def get_certifi_path() -> str:
    """Get path to certifi CA bundle, handling PyInstaller bundles."""
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        bundled_cert = os.path.join(sys._MEIPASS, "certifi", "cacert.pem")
        if os.path.exists(bundled_cert):
            return bundled_cert
    return certifi.where()


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status < 600


class ByteStreamer:
    """
    Async context manager yielding response bodies chunk by chunk.

    Usage:
        async with ByteStreamer() as streamer:
            async for chunk in streamer.iter_chunks(url):
                ...
    """

    def __init__(
        self,
        max_connections: int = MAX_WORKERS,
        timeout: Tuple[int, int] = (CONNECT_TIMEOUT, READ_TIMEOUT),
        chunk_size: int = CHUNK_SIZE,
    ):
        self.max_connections = max_connections
        self.timeout = aiohttp.ClientTimeout(connect=timeout[0], sock_read=timeout[1])
        self.chunk_size = chunk_size
        self._session = None

    async def __aenter__(self):
        ssl_context = ssl.create_default_context(cafile=get_certifi_path())
        connector = aiohttp.TCPConnector(
            limit=self.max_connections * 2,
            limit_per_host=self.max_connections,
            ttl_dns_cache=300,
            keepalive_timeout=30,
            ssl=ssl_context,
        )
        self._session = aiohttp.ClientSession(timeout=self.timeout, connector=connector)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def iter_chunks(self, url: str) -> AsyncIterator[bytes]:
        if self._session is None:
            raise RuntimeError("ByteStreamer used outside 'async with'")
        try:
            async with self._session.get(url, allow_redirects=True) as response:
                if response.status >= 400:
                    message = f"HTTP {response.status}"
                    if is_retryable_status(response.status):
                        raise TransientTransferError(message)
                    raise TransferError(message)
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    if chunk:
                        yield chunk
        except asyncio.TimeoutError as e:
            raise TransientTransferError("timeout") from e
        except aiohttp.ClientError as e:
            raise TransientTransferError(f"connection error: {e}") from e
