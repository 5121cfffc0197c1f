"""Reading the HTTP request that follows the header chain, using h11."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import h11

from .core.model import ReadError

MAX_REQUEST_HEAD = 16 * 1024


@dataclass(slots=True)
class HTTPRequest:
    method: str
    target: str
    http_version: str
    headers: List[Tuple[str, str]] = field(default_factory=list)


class RequestError(RuntimeError):
    """Raised when the bytes after the header chain are not an HTTP request."""
    pass


async def read_request(stream, conn: h11.Connection | None = None) -> HTTPRequest:
    """Read one request head from an AsyncByteStream.

    Bytes left in the stream by the header chain parser are the first thing
    h11 sees.
    """
    conn = conn or h11.Connection(h11.SERVER, max_incomplete_event_size=MAX_REQUEST_HEAD)
    while True:
        try:
            event = conn.next_event()
        except h11.RemoteProtocolError as e:
            raise RequestError(f"malformed HTTP request: {e}") from e

        if event is h11.NEED_DATA:
            data = await stream.read()
            try:
                conn.receive_data(data)
            except RuntimeError as e:
                raise ReadError(f"cannot read HTTP request: {e}") from e
            continue
        if isinstance(event, h11.Request):
            return HTTPRequest(
                method=event.method.decode("ascii"),
                target=event.target.decode("ascii", "replace"),
                http_version=event.http_version.decode("ascii"),
                headers=[(k.decode("ascii"), v.decode("latin-1")) for k, v in event.headers],
            )
        if isinstance(event, h11.ConnectionClosed):
            raise ReadError("connection closed before an HTTP request arrived")
        raise RequestError(f"unexpected HTTP event {type(event).__name__}")


def build_response(conn: h11.Connection, body: str, *, content_type: str = "text/html; charset=utf-8") -> bytes:
    """Serialise a complete 200 response that closes the connection."""
    payload = body.encode("utf-8")
    headers = [
        ("Content-Type", content_type),
        ("Content-Length", str(len(payload))),
        ("Connection", "close"),
    ]
    data = conn.send(h11.Response(status_code=200, reason=b"OK", headers=headers))
    data += conn.send(h11.Data(data=payload))
    data += conn.send(h11.EndOfMessage())
    return data
