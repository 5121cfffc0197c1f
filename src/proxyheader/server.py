"""Diagnostic HTTP server that reports the PROXY headers it received."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial

import h11

from .core.chain import ChainLimits, parse_chain
from .core.model import ProxyHeaderError
from .http import MAX_REQUEST_HEAD, RequestError, build_response, read_request
from .io.network import SocketByteStream
from .report import render_html

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    read_timeout: float | None = 5.0     # covers the header chain and the request head
    limits: ChainLimits = field(default_factory=ChainLimits)


async def handle_connection(reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                            config: ServerConfig) -> None:
    peer = writer.get_extra_info("peername")
    logger.info("Handling new connection from %s", peer)
    try:
        stream = SocketByteStream(reader, timeout=config.read_timeout)

        try:
            chain = await parse_chain(stream, limits=config.limits)
        except ProxyHeaderError as e:
            logger.warning("error parsing PROXY protocol from %s: %s", peer, e)
            return

        conn = h11.Connection(h11.SERVER, max_incomplete_event_size=MAX_REQUEST_HEAD)
        try:
            request = await read_request(stream, conn)
        except (ProxyHeaderError, RequestError) as e:
            logger.warning("error reading HTTP request from %s: %s", peer, e)
            return

        logger.info("%s %s from %s carried %d PROXY header(s)",
                    request.method, request.target, peer, len(chain))
        writer.write(build_response(conn, render_html(chain)))
        try:
            await writer.drain()
        except ConnectionError as e:
            logger.warning("error writing HTTP response to %s: %s", peer, e)
    finally:
        logger.info("Closing connection from %s", peer)
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError as e:
            logger.debug("connection from %s closed uncleanly: %s", peer, e)


async def start(config: ServerConfig) -> asyncio.Server:
    """Bind the listener; every accepted connection gets its own task and stream."""
    server = await asyncio.start_server(partial(handle_connection, config=config), config.host, config.port)
    for sock in server.sockets:
        logger.info("Listening on %s", sock.getsockname())
    return server


async def serve(config: ServerConfig) -> None:
    server = await start(config)
    async with server:
        await server.serve_forever()
