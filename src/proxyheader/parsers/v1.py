from __future__ import annotations

from typing import ClassVar

from ..core.model import FormatError, HeaderRecord, SignatureKind
from ..core.parser_base import HeaderParser


V1_SIG = b"PROXY"
V1_FIELDS = 6
# Longest legal v1 line, "PROXY UNKNOWN ffff:...:ffff ffff:...:ffff 65535 65535\r\n"
V1_MAX_LINE = 107


class V1Parser(HeaderParser):
    """PROXY protocol v1: one space-separated ASCII line ending in CRLF."""

    kind: ClassVar = SignatureKind.V1
    signatures: ClassVar = ((0, V1_SIG),)
    priority: ClassVar = 20

    # ------------------------------------------------------------------ #
    @classmethod
    def _parse_line(cls, line: bytes) -> HeaderRecord:
        if not line.endswith(b"\r\n"):
            raise FormatError("proxy-protocol v1 line must end with CRLF")

        sections = line[:-2].split(b"\x20")
        if len(sections) != V1_FIELDS:
            raise FormatError(
                "proxy-protocol v1 header corrupted, wrong number of sections "
                f"(got: {len(sections)}, want: {V1_FIELDS})"
            )

        try:
            proto, family, src, dst, sport, dport = (s.decode("ascii") for s in sections)
        except UnicodeDecodeError as e:
            raise FormatError(f"proxy-protocol v1 header is not ASCII: {e}") from e

        if proto != "PROXY":
            raise FormatError(f"proxy-protocol v1 header must start with 'PROXY', got {proto!r}")

        return HeaderRecord(
            version=1,
            address_family=family,
            source_address=src,
            destination_address=dst,
            source_port=sport,
            destination_port=dport,
            length=len(line),
        )

    # --------------------------- sync ---------------------------------- #
    @classmethod
    def read_sync(cls, stream, *, lookahead: bytes, max_line: int = V1_MAX_LINE, **kwargs) -> HeaderRecord:
        return cls._parse_line(stream.readline(max_line))

    # -------------------------- async ---------------------------------- #
    @classmethod
    async def read(cls, stream, *, lookahead: bytes, max_line: int = V1_MAX_LINE, **kwargs) -> HeaderRecord:
        return cls._parse_line(await stream.readline(max_line))

    # ------------------------------------------------------------------ #
    @classmethod
    def encode(cls, record: HeaderRecord, **kwargs) -> bytes:
        family = record.address_family
        if not isinstance(family, str):
            family = family.value
        fields = ("PROXY", family, record.source_address, record.destination_address,
                  record.source_port, record.destination_port)
        try:
            return (" ".join(fields) + "\r\n").encode("ascii")
        except UnicodeEncodeError as e:
            raise FormatError(f"proxy-protocol v1 header must be ASCII: {e}") from e
