from abc import ABC, abstractmethod
from typing import ClassVar, Sequence, Tuple
from .model import HeaderRecord, SignatureKind

Signature = Tuple[int, bytes]          # (offset, byte-pattern)


class HeaderParser(ABC):
    # --- required by subclasses ---
    kind: ClassVar[SignatureKind]              # what the detector reports for a match
    signatures: ClassVar[Sequence[Signature]]  # magic bytes patterns
    priority: ClassVar[int] = 100              # lower = examined earlier

    # --- sync ---
    @classmethod
    @abstractmethod
    def read_sync(cls, stream, *, lookahead: bytes, **kwargs) -> HeaderRecord:
        """Consume and decode one header from a ByteStream."""
        ...

    # --- async ---
    @classmethod
    @abstractmethod
    async def read(cls, stream, *, lookahead: bytes, **kwargs) -> HeaderRecord:
        """Consume and decode one header from an AsyncByteStream."""
        ...

    # --- wire encoding ---
    @classmethod
    @abstractmethod
    def encode(cls, record: HeaderRecord, **kwargs) -> bytes:
        """Return the wire bytes for ``record``."""
        ...

    # --- registry hook ---
    def __init_subclass__(cls, register: bool = True, **kw):
        super().__init_subclass__(**kw)
        if register:
            from .registry import _REGISTRY
            _REGISTRY.register(cls)           # noqa: E402
