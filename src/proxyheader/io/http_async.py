"""Asynchronous HTTP byte stream using httpx."""

import httpx
from typing import AsyncIterator, Optional
from contextlib import asynccontextmanager

from ..core.model import ReadError
from .base import AsyncBufferedByteStream


# Global async client
_client: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def _get_client():
    """Get or create the global httpx AsyncClient."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=60.0)

    try:
        yield _client
    finally:
        # Don't close the client here - it's shared
        pass


class HTTPAsyncByteStream(AsyncBufferedByteStream):
    """Asynchronous stream over an HTTP response body."""

    def __init__(self, url: str):
        super().__init__()
        self.url = url
        self._response: Optional[httpx.Response] = None
        self._chunks: Optional[AsyncIterator[bytes]] = None
        self._initialized = False

    async def _ensure_initialized(self):
        """Send the GET and keep the body unread, if not already done."""
        if self._initialized:
            return

        async with _get_client() as client:
            try:
                request = client.build_request("GET", self.url)
                response = await client.send(request, stream=True)
            except httpx.HTTPError as e:
                raise ReadError(f"GET request failed: {e}") from e

        if response.status_code >= 400:
            await response.aclose()
            raise ReadError(f"GET request failed with status {response.status_code}")

        self._response = response
        self._chunks = response.aiter_bytes()
        self._initialized = True

    async def _read_chunk(self) -> bytes:
        await self._ensure_initialized()
        if self._chunks is None:
            return b''
        try:
            return await anext(self._chunks, b'')
        except httpx.HTTPError as e:
            raise ReadError(f"Reading response body failed: {e}") from e

    async def __aenter__(self):
        await self._ensure_initialized()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        # Client is shared, only release this response
        if self._response is not None:
            await self._response.aclose()
            self._response = None
            self._chunks = None


async def open_http_stream_async(url: str) -> HTTPAsyncByteStream:
    """Create an asynchronous HTTP byte stream."""
    stream = HTTPAsyncByteStream(url)
    await stream._ensure_initialized()
    return stream


async def close_global_client():
    """Close the global httpx client. Call this at application shutdown."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
