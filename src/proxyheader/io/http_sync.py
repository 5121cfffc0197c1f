"""Synchronous HTTP byte stream using requests.

Captured connection prefixes (e.g. dumped by a tap in front of a load
balancer) are often kept on an object store.  The body is streamed, so only
the bytes the header parsers ask for are pulled off the wire.
"""

import requests
from typing import Iterator, Optional

from ..core.model import ReadError
from .base import BufferedByteStream, CHUNK_SIZE


# Module-level session for connection pooling
_session = None


def _get_session():
    """Get or create the global requests session."""
    global _session
    if _session is None:
        _session = requests.Session()
    return _session


class HTTPByteStream(BufferedByteStream):
    """Synchronous stream over an HTTP response body."""

    def __init__(self, url: str, timeout: float = 30, chunk_size: int = CHUNK_SIZE):
        super().__init__()
        self.url = url
        self._session = _get_session()
        self._response: Optional[requests.Response] = None
        self._chunks: Optional[Iterator[bytes]] = None

        self._open(timeout, chunk_size)

    def _open(self, timeout: float, chunk_size: int):
        """Issue the GET and keep the body unread."""
        try:
            response = self._session.get(self.url, stream=True, timeout=timeout)
        except requests.RequestException as e:
            raise ReadError(f"GET request failed: {e}") from e

        if response.status_code >= 400:
            response.close()
            raise ReadError(f"GET request failed with status {response.status_code}")

        self._response = response
        self._chunks = response.iter_content(chunk_size=chunk_size)

    def _read_chunk(self) -> bytes:
        if self._chunks is None:
            return b''
        try:
            return next(self._chunks, b'')
        except requests.RequestException as e:
            raise ReadError(f"Reading response body failed: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        # Session is shared, only release this response
        if self._response is not None:
            self._response.close()
            self._response = None
            self._chunks = None


def open_http_stream(url: str) -> HTTPByteStream:
    """Create a synchronous HTTP byte stream."""
    return HTTPByteStream(url)
