from __future__ import annotations
from enum import Enum
from typing import Dict, Any, Iterable
from .model import HeaderChain, HeaderRecord, Result

_RECORD_FIELDS = (
    "version", "command", "address_family", "transport_protocol",
    "source_address", "source_port", "destination_address", "destination_port", "length",
)


def record_asdict(record: HeaderRecord, *, fields: Iterable[str] | None = None) -> Dict[str, Any]:
    """Return a JSON-serialisable dict (enums as text, skip None) optionally filtered."""
    payload = {}
    for name in _RECORD_FIELDS:
        value = getattr(record, name)
        if value is None:
            continue
        payload[name] = value.value if isinstance(value, Enum) else value
    if fields:
        wanted = set(fields)
        payload = {k: v for k, v in payload.items() if k in wanted}
    return payload


def chain_asdict(chain: HeaderChain, *, fields: Iterable[str] | None = None) -> Dict[str, Any]:
    return {
        "headers": [record_asdict(r, fields=fields) for r in chain],
        "bytes_consumed": chain.bytes_consumed,
    }


def result_asdict(res: Result, *, fields: Iterable[str] | None = None) -> Dict[str, Any]:
    """Flatten a batch Result for the CLI; `fields` filters each header."""
    if not res.success or res.data is None:
        return {"success": False, "error": res.error, "bytes_consumed": res.bytes_consumed}
    payload = dict(res.data)
    if fields:
        wanted = set(fields)
        payload["headers"] = [{k: v for k, v in h.items() if k in wanted} for h in payload["headers"]]
    payload.update({"success": True, "bytes_consumed": res.bytes_consumed})
    return payload
