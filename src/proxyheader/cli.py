
"""CLI implementation for proxyheader."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import typer

from . import read_chain, read_chain_sync
from .core.chain import ChainLimits
from .core.model import ProxyHeaderError, Result
from .core.util import chain_asdict, result_asdict
from .io.http_async import close_global_client
from .probe import build_header, send_probe
from .server import ServerConfig, serve as run_server

app = typer.Typer(add_completion=False, help="Detect and decode PROXY protocol headers.")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def iter_sources(files: list[str]) -> list[str]:
    """Get list of sources from files argument or stdin."""
    if "-" in files:
        # stdin mode
        stdin_lines = [ln.strip() for ln in sys.stdin if ln.strip()]
        if not stdin_lines:
            return []
        return stdin_lines
    elif files:
        return list(files)
    return []


def _normalise(src: str) -> str:
    parsed_url = urlparse(src)
    if parsed_url.scheme and parsed_url.netloc:  # It's a URL
        return src
    return str(Path(src).resolve())


async def _batch_read(sources: list[str], limits: ChainLimits) -> list[Result]:
    """Asynchronously decode the header chains of a list of sources."""
    tasks = [read_chain(src, limits=limits) for src in sources]
    try:
        chains = await asyncio.gather(*tasks, return_exceptions=True)
    finally:
        # the shared httpx client is bound to this event loop
        await close_global_client()
    processed_results = []
    for chain in chains:
        if isinstance(chain, Exception):
            processed_results.append(Result(success=False, data=None, error=str(chain), bytes_consumed=0))
        else:
            processed_results.append(Result(True, chain_asdict(chain), None, chain.bytes_consumed))
    return processed_results


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", envvar="PROXYHEADER_HOST", help="Listen address"),
    port: int = typer.Option(8080, "--port", envvar="PROXYHEADER_PORT", min=0, max=65535, help="Listen port"),
    timeout: float = typer.Option(5.0, "--timeout", envvar="PROXYHEADER_TIMEOUT", min=0.0,
                                  help="Read deadline per connection, in seconds"),
    max_headers: int = typer.Option(32, "--max-headers", envvar="PROXYHEADER_MAX_HEADERS", min=1,
                                    help="Most chained headers accepted per connection"),
    max_header_bytes: int = typer.Option(64 * 1024, "--max-header-bytes", envvar="PROXYHEADER_MAX_HEADER_BYTES",
                                         min=16, help="Most header bytes accepted per connection"),
    log_level: str = typer.Option("info", "--log-level", envvar="PROXYHEADER_LOG_LEVEL", help="Logging level"),
):
    """Serve an HTML page describing the PROXY headers each connection carried."""
    configure_logging(log_level)
    config = ServerConfig(
        host=host,
        port=port,
        read_timeout=timeout or None,
        limits=ChainLimits(max_headers=max_headers, max_header_bytes=max_header_bytes),
    )
    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        typer.echo("Shutting down.", err=True)


@app.command()
def decode(
    files: list[str] = typer.Argument(None, help="Captured dumps (paths or URLs), or '-' for stdin"),
    fields: Optional[str] = typer.Option(None, "--fields", help="Comma-separated subset of header keys to emit"),
    jsonl: bool = typer.Option(False, "--jsonl", help="Force JSON-lines output"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to PATH instead of stdout"),
    sync: bool = typer.Option(False, "--sync", help="Force synchronous I/O"),
    unbounded: bool = typer.Option(False, "--unbounded", help="Do not cap the number or size of headers"),
    log_level: str = typer.Option("warning", "--log-level", envvar="PROXYHEADER_LOG_LEVEL", help="Logging level"),
):
    """Decode the PROXY header chain at the start of one or many captured streams."""
    configure_logging(log_level)
    sel_fields = set(fields.split(",")) if fields else None
    sources = iter_sources(files or [])
    limits = ChainLimits.unbounded() if unbounded else ChainLimits()

    if not sources:
        typer.echo("No input files given.", err=True)
        raise typer.Exit(code=1)

    results: list[Result] = []
    if sync:
        for src in sources:
            try:
                chain = read_chain_sync(_normalise(src), limits=limits)
                res = Result(True, chain_asdict(chain), None, chain.bytes_consumed)
            except ProxyHeaderError as e:
                res = Result(success=False, data=None, error=str(e), bytes_consumed=0)
            results.append(res)
    else:
        results = asyncio.run(_batch_read([_normalise(src) for src in sources], limits))

    # open output sink
    sink = open(output, "w", encoding="utf-8") if output else sys.stdout
    try:
        # choose output style
        if len(sources) == 1 and not jsonl:
            obj = result_asdict(results[0], fields=sel_fields)
            json.dump(obj, sink, indent=2)
            sink.write("\n")
        else:
            for res in results:
                obj = result_asdict(res, fields=sel_fields)
                sink.write(json.dumps(obj))
                sink.write("\n")
    finally:
        if output:
            sink.close()

    # exit code
    if any(not r.success for r in results):
        raise typer.Exit(code=1)


@app.command()
def probe(
    host: str = typer.Argument(..., help="Host to connect to"),
    port: int = typer.Argument(..., min=1, max=65535, help="Port to connect to"),
    header: list[str] = typer.Option(
        [], "--header", "-H",
        help="Header to send, in order: 'v1:TCP4 SRC DST SPORT DPORT', 'v2:SRC DST SPORT DPORT' or 'v2:local'",
    ),
    path: str = typer.Option("/", "--path", help="Request target of the GET"),
    timeout: float = typer.Option(10.0, "--timeout", min=0.1, help="Connect and read timeout, in seconds"),
):
    """Send PROXY headers and a GET request to HOST:PORT and print the reply."""
    try:
        headers = [build_header(spec) for spec in header]
    except ProxyHeaderError as e:
        typer.echo(f"Invalid header: {e}", err=True)
        raise typer.Exit(code=2)

    try:
        reply = asyncio.run(send_probe(host, port, headers, path=path, timeout=timeout))
    except (OSError, asyncio.TimeoutError) as e:
        typer.echo(f"Probe failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(reply.decode("utf-8", "replace"))


if __name__ == "__main__":
    app()
