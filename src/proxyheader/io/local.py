"""Local byte streams: files, file objects and in-memory captures."""

import asyncio
import io
from pathlib import Path
from typing import BinaryIO, Union

from ..core.model import ReadError
from .base import BufferedByteStream, CHUNK_SIZE

LocalSource = Union[Path, str, bytes, bytearray, BinaryIO]


class LocalByteStream(BufferedByteStream):
    """Synchronous stream over a local file or in-memory capture."""

    def __init__(self, source: LocalSource, chunk_size: int = CHUNK_SIZE):
        super().__init__()
        self.chunk_size = chunk_size
        self._should_close_file = False

        if isinstance(source, (bytes, bytearray)):
            self._file = io.BytesIO(bytes(source))
        elif hasattr(source, 'read'):
            # BinaryIO object, read from its current position
            self._file = source
        else:
            # Path or str
            try:
                self._file = open(source, 'rb')
            except OSError as e:
                raise ReadError(f"Cannot open {source!s}: {e}") from e
            self._should_close_file = True

    def _read_chunk(self) -> bytes:
        if self._file is None:
            return b''
        try:
            return self._file.read(self.chunk_size)
        except OSError as e:
            raise ReadError(f"Read failed: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the file if we opened it."""
        if self._should_close_file and self._file is not None:
            self._file.close()
        self._file = None


class LocalAsyncByteStream:
    """Asynchronous local stream - thin wrapper around the sync stream."""

    def __init__(self, source: LocalSource, chunk_size: int = CHUNK_SIZE):
        self._sync_stream = LocalByteStream(source, chunk_size)

    @property
    def bytes_consumed(self) -> int:
        return self._sync_stream.bytes_consumed

    async def peek(self, n: int) -> bytes:
        return await asyncio.to_thread(self._sync_stream.peek, n)

    async def readexactly(self, n: int) -> bytes:
        return await asyncio.to_thread(self._sync_stream.readexactly, n)

    async def readline(self, limit: int) -> bytes:
        return await asyncio.to_thread(self._sync_stream.readline, limit)

    async def read(self, n: int = -1) -> bytes:
        return await asyncio.to_thread(self._sync_stream.read, n)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying sync stream."""
        await asyncio.to_thread(self._sync_stream.close)


def open_local_stream(source: LocalSource) -> LocalByteStream:
    """Create a synchronous local byte stream."""
    return LocalByteStream(source)


async def open_local_stream_async(source: LocalSource) -> LocalAsyncByteStream:
    """Create an asynchronous local byte stream."""
    return LocalAsyncByteStream(source)
