"""End-to-end tests against a running diagnostic server."""

import asyncio
import struct

import pytest

from proxyheader.core.chain import ChainLimits
from proxyheader.parsers.v2 import V2_SIG
from proxyheader.probe import build_header, send_probe
from proxyheader.server import ServerConfig, start

REQUEST = b"GET /debug HTTP/1.1\r\nHost: example\r\n\r\n"
V1 = b"PROXY TCP4 192.0.2.1 198.51.100.7 1234 80\r\n"
V2 = V2_SIG + b"\x21\x11\x00\x0c" + bytes((10, 0, 0, 1, 10, 0, 0, 2)) + struct.pack("!HH", 5000, 443)


async def _exchange(port: int, data: bytes) -> bytes:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    try:
        writer.write(data)
        await writer.drain()
        return await asyncio.wait_for(reader.read(), 5)
    except ConnectionResetError:
        # server dropped the connection with our bytes still unread
        return b""
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionResetError:
            pass


async def _start(**kwargs):
    server = await start(ServerConfig(host="127.0.0.1", port=0, **kwargs))
    return server, server.sockets[0].getsockname()[1]


@pytest.mark.asyncio
async def test_report_for_chained_headers():
    server, port = await _start()
    try:
        reply = await _exchange(port, V2 + V1 + REQUEST)
    finally:
        server.close()
        await server.wait_closed()

    head, _, body = reply.partition(b"\r\n\r\n")
    assert head.startswith(b"HTTP/1.1 200 OK")
    assert b"content-type: text/html; charset=utf-8" in head.lower()
    assert b"10.0.0.1:5000" in body
    assert b"192.0.2.1:1234" in body
    assert body.index(b"10.0.0.1:5000") < body.index(b"192.0.2.1:1234")


@pytest.mark.asyncio
async def test_report_without_header():
    server, port = await _start()
    try:
        reply = await _exchange(port, REQUEST)
    finally:
        server.close()
        await server.wait_closed()

    assert reply.startswith(b"HTTP/1.1 200 OK")
    assert b"No PROXY protocol header" in reply


@pytest.mark.asyncio
async def test_malformed_header_closes_without_response():
    server, port = await _start()
    try:
        reply = await _exchange(port, b"PROXY TCP4 broken\r\n" + REQUEST)
    finally:
        server.close()
        await server.wait_closed()

    assert reply == b""


@pytest.mark.asyncio
async def test_chain_limit_closes_without_response():
    server, port = await _start(limits=ChainLimits(max_headers=1))
    try:
        reply = await _exchange(port, V1 + V1 + REQUEST)
    finally:
        server.close()
        await server.wait_closed()

    assert reply == b""


@pytest.mark.asyncio
async def test_garbage_after_headers_closes_without_response():
    server, port = await _start()
    try:
        reply = await _exchange(port, V1 + b"\x00\x01 this is not http at all\r\n\r\n")
    finally:
        server.close()
        await server.wait_closed()

    assert reply == b""


@pytest.mark.asyncio
async def test_read_deadline():
    server, port = await _start(read_timeout=0.2)
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"PROX")
        await writer.drain()
        # server gives up and closes; nothing is sent back
        assert await asyncio.wait_for(reader.read(), 5) == b""
        writer.close()
        await writer.wait_closed()
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_slow_connection_does_not_block_others():
    server, port = await _start(read_timeout=1.0)
    try:
        slow_reader, slow_writer = await asyncio.open_connection("127.0.0.1", port)
        slow_writer.write(b"PROXY TCP4")
        await slow_writer.drain()

        reply = await _exchange(port, V1 + REQUEST)
        assert b"192.0.2.1:1234" in reply

        slow_writer.close()
        await slow_writer.wait_closed()
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_probe_against_server():
    server, port = await _start()
    try:
        headers = [build_header("v2:2001:db8::1 2001:db8::2 4000 443"), build_header("v1:TCP4 1.2.3.4 5.6.7.8 1 2")]
        reply = await send_probe("127.0.0.1", port, headers)
    finally:
        server.close()
        await server.wait_closed()

    assert b"2001:db8::1:4000" in reply
    assert b"1.2.3.4:1" in reply
