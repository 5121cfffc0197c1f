"""Byte stream over an accepted asyncio connection."""

import asyncio
from typing import Optional

from ..core.model import ReadError
from .base import AsyncBufferedByteStream, CHUNK_SIZE


class SocketByteStream(AsyncBufferedByteStream):
    """Wraps an ``asyncio.StreamReader`` with an overall read deadline.

    ``timeout`` covers every read made through this stream from construction
    on.  Expiry, connection resets and EOF all surface as ReadError.
    """

    def __init__(self, reader: asyncio.StreamReader, *, timeout: Optional[float] = None,
                 chunk_size: int = CHUNK_SIZE):
        super().__init__()
        self._reader = reader
        self.chunk_size = chunk_size
        self._deadline = None
        if timeout is not None:
            self._deadline = asyncio.get_running_loop().time() + timeout

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        remaining = self._deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise ReadError("Read deadline exceeded")
        return remaining

    async def _read_chunk(self) -> bytes:
        try:
            return await asyncio.wait_for(self._reader.read(self.chunk_size), self._remaining())
        except asyncio.TimeoutError as e:
            raise ReadError("Read deadline exceeded") from e
        except ConnectionError as e:
            raise ReadError(f"Connection failed: {e}") from e
