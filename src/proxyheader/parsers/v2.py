from __future__ import annotations

import ipaddress
import struct
from typing import ClassVar

from ..core.model import (
    UNSPEC, AddressFamily, ChainLimitError, Command, FormatError, HeaderRecord,
    SignatureKind, TransportProtocol, UnsupportedAddressFamilyError,
    UnsupportedCommandError, UnsupportedTransportError, UnsupportedVersionError,
)
from ..core.parser_base import HeaderParser

V2_SIG = b"\x0D\x0A\x0D\x0A\x00\x0D\x0A\x51\x55\x49\x54\x0A"
V2_HEADER_LEN = 16
V2_VERSION = 0x2

_COMMANDS = {0x0: Command.LOCAL, 0x1: Command.PROXY}
_FAMILIES = {
    0x0: AddressFamily.UNSPEC,
    0x1: AddressFamily.INET,
    0x2: AddressFamily.INET6,
    0x3: AddressFamily.UNIX,
}
# Only the low bit is read, so DGRAM never decodes; see _ADDRESS_BLOCKS.
_TRANSPORTS = {
    0x0: TransportProtocol.UNSPEC,
    0x1: TransportProtocol.STREAM,
    0x2: TransportProtocol.DGRAM,
}

# full byte 13 -> (struct layout of the address block, block size)
_ADDRESS_BLOCKS = {
    0x11: ("!4s4sHH", 12),     # INET + STREAM
    0x21: ("!16s16sHH", 36),   # INET6 + STREAM
}


def _nibble(table: dict, value, what: str, error: type) -> int:
    for code, member in table.items():
        if member is value:
            return code
    raise error(f"cannot encode {what} {value!r}")


class V2Parser(HeaderParser):
    """PROXY protocol v2: 16 fixed bytes followed by a self-described payload.

    The address block layout is chosen by the whole family/transport byte,
    so only ``0x00`` (no addresses), ``0x11`` (TCP over IPv4) and ``0x21``
    (TCP over IPv6) decode.  Anything after the address block inside the
    declared length (TLVs) is consumed and dropped.
    """

    kind: ClassVar = SignatureKind.V2
    signatures: ClassVar = ((0, V2_SIG),)
    priority: ClassVar = 10

    # ------------------------------------------------------------------ #
    @classmethod
    def declared_length(cls, lookahead: bytes) -> int:
        """Total header length announced by the fixed part, signature included."""
        if lookahead[12] >> 4 != V2_VERSION:
            raise UnsupportedVersionError(f"unknown version of protocol ({lookahead[12] >> 4:#x})")
        return V2_HEADER_LEN + int.from_bytes(lookahead[14:16], "big")

    @classmethod
    def decode(cls, header: bytes) -> HeaderRecord:
        """Decode a complete v2 header (fixed part, address block and TLVs)."""
        try:
            command = _COMMANDS[header[12] & 0x01]
        except KeyError:
            raise UnsupportedCommandError("unknown version 2 command")

        try:
            family = _FAMILIES[header[13] >> 4]
        except KeyError:
            raise UnsupportedAddressFamilyError(
                f"unknown version 2 address family ({header[13] >> 4:#x})")

        try:
            transport = _TRANSPORTS[header[13] & 0x01]
        except KeyError:
            raise UnsupportedTransportError("unknown version 2 transport protocol")

        fam_proto = header[13]
        if fam_proto == 0x00:
            src = dst = sport = dport = UNSPEC
        elif fam_proto in _ADDRESS_BLOCKS:
            fmt, size = _ADDRESS_BLOCKS[fam_proto]
            block = header[V2_HEADER_LEN:V2_HEADER_LEN + size]
            if len(block) < size:
                raise FormatError(
                    f"version 2 address block truncated (got: {len(block)}, want: {size})")
            src_ip, dst_ip, src_port, dst_port = struct.unpack(fmt, block)
            src = str(ipaddress.ip_address(src_ip))
            dst = str(ipaddress.ip_address(dst_ip))
            sport, dport = str(src_port), str(dst_port)
        else:
            raise UnsupportedTransportError(
                f"unknown version 2 transport protocol ({fam_proto:#04x})")

        return HeaderRecord(
            version=2,
            command=command,
            address_family=family,
            transport_protocol=transport,
            source_address=src,
            destination_address=dst,
            source_port=sport,
            destination_port=dport,
            length=len(header),
        )

    # --------------------------- sync ---------------------------------- #
    @classmethod
    def read_sync(cls, stream, *, lookahead: bytes, max_length: int | None = None, **kwargs) -> HeaderRecord:
        total = cls._checked_length(lookahead, max_length)
        return cls.decode(stream.readexactly(total))

    # -------------------------- async ---------------------------------- #
    @classmethod
    async def read(cls, stream, *, lookahead: bytes, max_length: int | None = None, **kwargs) -> HeaderRecord:
        total = cls._checked_length(lookahead, max_length)
        return cls.decode(await stream.readexactly(total))

    @classmethod
    def _checked_length(cls, lookahead: bytes, max_length: int | None) -> int:
        total = cls.declared_length(lookahead)
        if max_length is not None and total > max_length:
            raise ChainLimitError(
                f"version 2 header of {total} bytes exceeds the remaining budget of {max_length}")
        return total

    # ------------------------------------------------------------------ #
    @classmethod
    def encode(cls, record: HeaderRecord, *, tlv: bytes = b"", **kwargs) -> bytes:
        if record.version != 2:
            raise FormatError(f"cannot encode a version {record.version} record as version 2")

        command = _nibble(_COMMANDS, record.command or Command.PROXY, "command",
                          UnsupportedCommandError)
        family = _nibble(_FAMILIES, record.address_family, "address family",
                         UnsupportedAddressFamilyError)
        transport = _nibble(_TRANSPORTS, record.transport_protocol or TransportProtocol.UNSPEC,
                            "transport", UnsupportedTransportError)
        ver_cmd = (V2_VERSION << 4) | command
        fam_proto = (family << 4) | transport

        if fam_proto == 0x00:
            addresses = (record.source_address, record.destination_address,
                         record.source_port, record.destination_port)
            if any(field != UNSPEC for field in addresses):
                raise FormatError("an unspecified family carries no addresses or ports")
            block = b""
        elif fam_proto in _ADDRESS_BLOCKS:
            fmt, size = _ADDRESS_BLOCKS[fam_proto]
            try:
                src_ip = ipaddress.ip_address(record.source_address).packed
                dst_ip = ipaddress.ip_address(record.destination_address).packed
                ports = int(record.source_port), int(record.destination_port)
                if len(src_ip) != len(dst_ip) or len(src_ip) * 2 + 4 != size:
                    raise ValueError(f"addresses do not match {record.address_family.value}")
                block = struct.pack(fmt, src_ip, dst_ip, *ports)
            except (ValueError, struct.error) as e:
                raise FormatError(f"cannot encode version 2 address block: {e}") from e
        else:
            raise UnsupportedTransportError(f"cannot encode family/transport byte {fam_proto:#04x}")

        payload = block + tlv
        return V2_SIG + bytes((ver_cmd, fam_proto)) + len(payload).to_bytes(2, "big") + payload
