"""Base protocols and shared buffering for the stream layer.

Every stream keeps the bytes it has pulled from its source in a
:class:`StreamBuffer`.  ``peek`` only looks at that buffer, so whatever the
header parsers decline to consume is still there for the next reader.
"""

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from ..core.model import LineTooLongError, ReadError

CHUNK_SIZE = 64 * 1024


@runtime_checkable
class ByteStream(Protocol):
    """Protocol for synchronous, non-seekable byte streams."""

    bytes_consumed: int  # running total

    def peek(self, n: int) -> bytes:
        """Return exactly `n` upcoming bytes without consuming them.
        If the source ends first → raise ReadError.
        """
        ...

    def readexactly(self, n: int) -> bytes:
        ...

    def readline(self, limit: int) -> bytes:
        ...

    def read(self, n: int = -1) -> bytes:
        ...


@runtime_checkable
class AsyncByteStream(Protocol):
    """Protocol for asynchronous, non-seekable byte streams."""

    bytes_consumed: int  # running total

    async def peek(self, n: int) -> bytes:
        """Return exactly `n` upcoming bytes without consuming them.
        If the source ends first → raise ReadError.
        """
        ...

    async def readexactly(self, n: int) -> bytes:
        ...

    async def readline(self, limit: int) -> bytes:
        ...

    async def read(self, n: int = -1) -> bytes:
        ...


class StreamBuffer:
    """Bytes pulled from a source but not yet handed to a consumer."""

    def __init__(self) -> None:
        self._buf = bytearray()
        self.bytes_consumed = 0
        self.eof = False

    def __len__(self) -> int:
        return len(self._buf)

    def feed(self, chunk: bytes) -> None:
        if chunk:
            self._buf.extend(chunk)
        else:
            self.eof = True

    def peek(self, n: int) -> bytes:
        return bytes(self._buf[:n])

    def take(self, n: int) -> bytes:
        data = bytes(self._buf[:n])
        del self._buf[:n]
        self.bytes_consumed += len(data)
        return data

    def line_end(self, limit: int) -> int | None:
        """Return the length of the first line (terminator included), or None.

        Raises LineTooLongError once `limit` bytes are buffered without a newline.
        """
        idx = self._buf.find(b"\n", 0, limit)
        if idx >= 0:
            return idx + 1
        if len(self._buf) >= limit:
            raise LineTooLongError(f"No line terminator within {limit} bytes")
        return None

    def short_read(self, wanted: int) -> ReadError:
        return ReadError(f"Not enough data: requested {wanted} bytes, "
                         f"stream ended with {len(self._buf)} buffered")


class BufferedByteStream(ABC):
    """Synchronous stream on top of a chunk source."""

    def __init__(self) -> None:
        self._buffer = StreamBuffer()

    @property
    def bytes_consumed(self) -> int:
        return self._buffer.bytes_consumed

    @abstractmethod
    def _read_chunk(self) -> bytes:
        """Return the next chunk from the source, b'' at end of stream."""
        ...

    def _fill(self) -> bool:
        if self._buffer.eof:
            return False
        self._buffer.feed(self._read_chunk())
        return not self._buffer.eof

    def peek(self, n: int) -> bytes:
        while len(self._buffer) < n:
            if not self._fill():
                raise self._buffer.short_read(n)
        return self._buffer.peek(n)

    def readexactly(self, n: int) -> bytes:
        self.peek(n)
        return self._buffer.take(n)

    def readline(self, limit: int) -> bytes:
        while (end := self._buffer.line_end(limit)) is None:
            if not self._fill():
                raise ReadError("Stream ended before a line terminator")
        return self._buffer.take(end)

    def read(self, n: int = -1) -> bytes:
        """Return buffered bytes first, then one chunk from the source."""
        if not len(self._buffer):
            self._fill()
        return self._buffer.take(len(self._buffer) if n < 0 else n)


class AsyncBufferedByteStream(ABC):
    """Asynchronous stream on top of a chunk source."""

    def __init__(self) -> None:
        self._buffer = StreamBuffer()

    @property
    def bytes_consumed(self) -> int:
        return self._buffer.bytes_consumed

    @abstractmethod
    async def _read_chunk(self) -> bytes:
        """Return the next chunk from the source, b'' at end of stream."""
        ...

    async def _fill(self) -> bool:
        if self._buffer.eof:
            return False
        self._buffer.feed(await self._read_chunk())
        return not self._buffer.eof

    async def peek(self, n: int) -> bytes:
        while len(self._buffer) < n:
            if not await self._fill():
                raise self._buffer.short_read(n)
        return self._buffer.peek(n)

    async def readexactly(self, n: int) -> bytes:
        await self.peek(n)
        return self._buffer.take(n)

    async def readline(self, limit: int) -> bytes:
        while (end := self._buffer.line_end(limit)) is None:
            if not await self._fill():
                raise ReadError("Stream ended before a line terminator")
        return self._buffer.take(end)

    async def read(self, n: int = -1) -> bytes:
        """Return buffered bytes first, then one chunk from the source."""
        if not len(self._buffer):
            await self._fill()
        return self._buffer.take(len(self._buffer) if n < 0 else n)
