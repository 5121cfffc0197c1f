"""proxyheader - detect and decode chained PROXY protocol headers."""

from .core.model import (                                             # re-export
    HeaderChain, HeaderRecord, Result, SignatureKind, Command, AddressFamily,
    TransportProtocol, UNSPEC, ProxyHeaderError, ReadError, ChainLimitError,
    FormatError, LineTooLongError, UnsupportedError, UnsupportedVersionError,
    UnsupportedCommandError, UnsupportedAddressFamilyError, UnsupportedTransportError,
)
from .core.registry import classify                                   # singleton-backed
from .core.chain import ChainLimits, parse_chain, parse_chain_sync
from .io import open_stream, open_stream_async

# Import parsers to trigger registration
from .parsers import V1Parser, V2Parser  # noqa: F401


async def read_chain(source, *, limits: ChainLimits | None = None) -> HeaderChain:
    """Read the header chain at the start of a source (path, URL, bytes or file-like object)."""
    stream = await open_stream_async(source)
    try:
        return await parse_chain(stream, limits=limits)
    finally:
        await stream.close()


def read_chain_sync(source, *, limits: ChainLimits | None = None) -> HeaderChain:
    """Synchronous twin of :func:`read_chain`."""
    stream = open_stream(source)
    try:
        return parse_chain_sync(stream, limits=limits)
    finally:
        stream.close()


__all__ = [
    "read_chain", "read_chain_sync", "parse_chain", "parse_chain_sync", "classify",
    "ChainLimits", "HeaderChain", "HeaderRecord", "Result", "SignatureKind",
    "Command", "AddressFamily", "TransportProtocol", "UNSPEC",
    "ProxyHeaderError", "ReadError", "ChainLimitError", "FormatError", "LineTooLongError",
    "UnsupportedError", "UnsupportedVersionError", "UnsupportedCommandError",
    "UnsupportedAddressFamilyError", "UnsupportedTransportError",
]
