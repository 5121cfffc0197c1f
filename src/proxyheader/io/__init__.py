"""I/O layer for proxyheader - peekable, non-seekable byte streams."""

# Re-export these for import convenience
from .base import ByteStream, AsyncByteStream, StreamBuffer
from .local import open_local_stream, open_local_stream_async
from .http_sync import open_http_stream
from .http_async import open_http_stream_async
from .network import SocketByteStream


def _is_url(source) -> bool:
    return isinstance(source, str) and source.startswith(('http://', 'https://'))


def open_stream(source):
    """Factory function to create the appropriate ByteStream for a source."""
    if hasattr(source, 'read') or isinstance(source, (bytes, bytearray)):
        return open_local_stream(source)

    if _is_url(str(source)):
        return open_http_stream(str(source))
    return open_local_stream(source)


async def open_stream_async(source):
    """Factory function to create the appropriate AsyncByteStream for a source."""
    if hasattr(source, 'read') or isinstance(source, (bytes, bytearray)):
        return await open_local_stream_async(source)

    if _is_url(str(source)):
        return await open_http_stream_async(str(source))
    return await open_local_stream_async(source)
