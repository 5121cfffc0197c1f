from __future__ import annotations
import bisect
from typing import List, Type

from .parser_base import HeaderParser
from .model import LOOKAHEAD_SIZE, ReadError, SignatureKind


class ParserRegistry:
    def __init__(self) -> None:
        self._parsers: List[tuple[int, str, Type[HeaderParser]]] = []   # sorted by priority

    # called from HeaderParser.__init_subclass__
    def register(self, parser_cls: Type[HeaderParser]) -> None:
        # Use (priority, class_name, parser_cls) to ensure stable sorting
        entry = (parser_cls.priority, parser_cls.__name__, parser_cls)
        if entry not in self._parsers:
            bisect.insort(self._parsers, entry)

    # --- detection helpers ---
    def _sniff(self, lookahead: bytes) -> Type[HeaderParser] | None:
        for _, _, p in self._parsers:
            for offset, pat in p.signatures:
                if len(lookahead) >= offset + len(pat):
                    if lookahead[offset : offset + len(pat)] == pat:
                        return p
        return None

    def choose(self, lookahead: bytes) -> Type[HeaderParser] | None:
        """Return the parser whose signature opens ``lookahead``, or None."""
        if len(lookahead) < LOOKAHEAD_SIZE:
            raise ReadError(f"Not enough data to classify: need {LOOKAHEAD_SIZE} bytes, "
                            f"got {len(lookahead)}")
        return self._sniff(lookahead[:LOOKAHEAD_SIZE])

    def classify(self, lookahead: bytes) -> SignatureKind:
        parser = self.choose(lookahead)
        return parser.kind if parser else SignatureKind.NONE

    def parser_for(self, kind: SignatureKind) -> Type[HeaderParser]:
        for _, _, p in self._parsers:
            if p.kind is kind:
                return p
        raise KeyError(kind)


# singleton used project-wide
_REGISTRY = ParserRegistry()


def classify(lookahead: bytes) -> SignatureKind:
    """Classify a 16-byte look-ahead window as V1, V2 or NONE without consuming it."""
    return _REGISTRY.classify(lookahead)
