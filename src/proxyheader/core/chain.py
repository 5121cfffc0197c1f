"""Header chain parsing: peek, classify, consume, repeat.

Each intermediary in a proxy chain may prepend its own header, so the
parser loops until the look-ahead window no longer opens with a PROXY
signature.  That window is never consumed; it stays in the stream for the
reader that comes next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Type

from .model import LOOKAHEAD_SIZE, ChainLimitError, HeaderChain, HeaderRecord
from .parser_base import HeaderParser
from .registry import _REGISTRY

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChainLimits:
    """Per-connection bounds. ``None`` disables a bound."""
    max_headers: int | None = 32
    max_header_bytes: int | None = 64 * 1024
    max_v1_line: int = 107

    @classmethod
    def unbounded(cls) -> "ChainLimits":
        return cls(max_headers=None, max_header_bytes=None)


class _ChainBuilder:
    """Accumulates records and enforces the limits between parser calls."""

    def __init__(self, limits: ChainLimits) -> None:
        self.limits = limits
        self.records: List[HeaderRecord] = []
        self.consumed = 0

    def next_parser(self, lookahead: bytes) -> Type[HeaderParser] | None:
        parser = _REGISTRY.choose(lookahead)
        logger.debug("header %d classified as %s", len(self.records),
                     parser.kind.name if parser else "NONE")
        if parser is None:
            return None
        max_headers = self.limits.max_headers
        if max_headers is not None and len(self.records) >= max_headers:
            raise ChainLimitError(f"more than {max_headers} chained PROXY headers")
        return parser

    def options(self) -> dict:
        opts = {"max_line": self.limits.max_v1_line}
        if self.limits.max_header_bytes is not None:
            opts["max_length"] = self.limits.max_header_bytes - self.consumed
        return opts

    def append(self, record: HeaderRecord) -> None:
        self.consumed += record.length
        max_bytes = self.limits.max_header_bytes
        if max_bytes is not None and self.consumed > max_bytes:
            raise ChainLimitError(f"chained PROXY headers exceed {max_bytes} bytes")
        self.records.append(record)

    def build(self) -> HeaderChain:
        return HeaderChain(tuple(self.records), self.consumed)


async def parse_chain(stream, *, limits: ChainLimits | None = None) -> HeaderChain:
    """Consume every leading PROXY header from an AsyncByteStream.

    Raises ReadError if 16 bytes cannot be peeked, or the first parser error
    encountered; no partial chain is ever returned.
    """
    builder = _ChainBuilder(limits or ChainLimits())
    while True:
        lookahead = await stream.peek(LOOKAHEAD_SIZE)
        parser = builder.next_parser(lookahead)
        if parser is None:
            break
        builder.append(await parser.read(stream, lookahead=lookahead, **builder.options()))
    return builder.build()


def parse_chain_sync(stream, *, limits: ChainLimits | None = None) -> HeaderChain:
    """Synchronous twin of :func:`parse_chain` for ByteStreams."""
    builder = _ChainBuilder(limits or ChainLimits())
    while True:
        lookahead = stream.peek(LOOKAHEAD_SIZE)
        parser = builder.next_parser(lookahead)
        if parser is None:
            break
        builder.append(parser.read_sync(stream, lookahead=lookahead, **builder.options()))
    return builder.build()
