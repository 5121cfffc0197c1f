from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Tuple

UNSPEC = "UNSPEC"
LOOKAHEAD_SIZE = 16          # v2 fixed header; also covers the v1 "PROXY" prefix


class SignatureKind(Enum):
    V1 = "v1"
    V2 = "v2"
    NONE = "none"


class Command(Enum):
    LOCAL = "LOCAL"
    PROXY = "PROXY"


class AddressFamily(Enum):
    UNSPEC = "AF_UNSPEC"
    INET = "AF_INET"
    INET6 = "AF_INET6"
    UNIX = "AF_UNIX"


class TransportProtocol(Enum):
    UNSPEC = "UNSPEC"
    STREAM = "STREAM"
    DGRAM = "DGRAM"


@dataclass(slots=True, frozen=True)
class HeaderRecord:
    """One decoded PROXY protocol header.

    v1 headers carry their family token verbatim (``TCP4``, ``UNKNOWN``...)
    and leave ``command``/``transport_protocol`` as ``None``.
    """
    version: int
    address_family: AddressFamily | str
    source_address: str
    destination_address: str
    source_port: str
    destination_port: str
    command: Command | None = None
    transport_protocol: TransportProtocol | None = None
    length: int = 0              # bytes consumed from the stream

    def __post_init__(self) -> None:
        if self.version not in (1, 2):
            raise ValueError(f"PROXY protocol version must be 1 or 2, got {self.version!r}")


@dataclass(slots=True, frozen=True)
class HeaderChain:
    """Headers in wire order, outermost proxy first."""
    records: Tuple[HeaderRecord, ...] = ()
    bytes_consumed: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[HeaderRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> HeaderRecord:
        return self.records[index]


@dataclass(slots=True)
class Result:
    success: bool
    data: Dict[str, Any] | None
    error: str | None
    bytes_consumed: int


class ProxyHeaderError(RuntimeError):
    """Base class for every failure raised while reading a header chain."""
    pass


class ReadError(ProxyHeaderError):
    """Raised when the underlying stream cannot deliver the requested bytes."""
    pass


class ChainLimitError(ReadError):
    """Raised when a connection sends more headers than the configured limits allow."""
    pass


class FormatError(ProxyHeaderError):
    """Raised when header bytes violate the wire grammar."""
    pass


class LineTooLongError(FormatError):
    """Raised when no line terminator shows up within the line limit."""
    pass


class UnsupportedError(ProxyHeaderError):
    """Raised when a v2 header declares a value this library does not decode."""
    pass


class UnsupportedVersionError(UnsupportedError):
    pass


class UnsupportedCommandError(UnsupportedError):
    pass


class UnsupportedAddressFamilyError(UnsupportedError):
    pass


class UnsupportedTransportError(UnsupportedError):
    pass
