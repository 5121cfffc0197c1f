"""Client side: send PROXY headers plus a GET to a listener and collect the reply."""

from __future__ import annotations

import asyncio
import ipaddress
from typing import Sequence

from .core.model import (
    UNSPEC, AddressFamily, Command, FormatError, HeaderRecord, TransportProtocol,
)
from .parsers import V1Parser, V2Parser


def build_header(spec: str) -> bytes:
    """Encode a header described as ``v1:<family> <src> <dst> <sport> <dport>``,
    ``v2:<src> <dst> <sport> <dport>`` or ``v2:local``."""
    version, _, rest = spec.partition(":")
    version = version.strip().lower()

    if version == "v1":
        fields = rest.split()
        if len(fields) != 5:
            raise FormatError(f"v1 header needs 5 fields after 'v1:', got {len(fields)}")
        family, src, dst, sport, dport = fields
        return V1Parser.encode(HeaderRecord(1, family, src, dst, sport, dport))

    if version == "v2":
        if rest.strip().lower() == "local":
            return V2Parser.encode(HeaderRecord(
                2, AddressFamily.UNSPEC, UNSPEC, UNSPEC, UNSPEC, UNSPEC,
                command=Command.LOCAL, transport_protocol=TransportProtocol.UNSPEC,
            ))
        fields = rest.split()
        if len(fields) != 4:
            raise FormatError(f"v2 header needs 4 fields after 'v2:', got {len(fields)}")
        src, dst, sport, dport = fields
        try:
            ip_version = ipaddress.ip_address(src).version
        except ValueError as e:
            raise FormatError(str(e)) from e
        family = AddressFamily.INET if ip_version == 4 else AddressFamily.INET6
        return V2Parser.encode(HeaderRecord(
            2, family, src, dst, sport, dport,
            command=Command.PROXY, transport_protocol=TransportProtocol.STREAM,
        ))

    raise FormatError(f"header spec must start with 'v1:' or 'v2:', got {spec!r}")


async def send_probe(host: str, port: int, headers: Sequence[bytes], *,
                     path: str = "/", timeout: float = 10.0) -> bytes:
    """Write the headers and a GET request, return everything the peer answers."""
    reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    try:
        request = f"GET {path} HTTP/1.0\r\nHost: {host}\r\n\r\n".encode("ascii")
        writer.write(b"".join(headers) + request)
        await writer.drain()
        return await asyncio.wait_for(reader.read(), timeout)
    finally:
        writer.close()
        await writer.wait_closed()
