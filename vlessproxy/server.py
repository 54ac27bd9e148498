"""Listening server that accepts clients and relays their streams."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import sys
from collections.abc import Sequence
from typing import Any

from .stream import Stream, StreamError

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 80


def _format_addr(addr: tuple[Any, ...]) -> str:
    host, port = addr[0], addr[1]
    if ":" in str(host):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _describe(exc: BaseException) -> str:
    messages = []
    current: BaseException | None = exc
    while current is not None:
        messages.append(str(current) or type(current).__name__)
        current = current.__cause__
    return ": ".join(messages)


async def handle_client(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    """Serve one client connection from header to close."""
    peer = writer.get_extra_info("peername") or ("unknown", 0)
    client = _format_addr(peer)
    print(f"handled new stream: {client}")

    try:
        stream = await Stream.from_incoming(reader, writer, peer)
    except StreamError as exc:
        print(f"failed to prepare stream with {client}: {_describe(exc)}")
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return

    try:
        await stream.event_loop()
    except StreamError as exc:
        print(f"stream error with {client}: {_describe(exc)}")

    print(f"stream closed: {client}")


async def serve(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Listen on ``host``:``port`` and serve clients until cancelled."""
    server = await asyncio.start_server(handle_client, host, port)
    async with server:
        await server.serve_forever()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the proxy server from the command line."""
    parser = argparse.ArgumentParser(prog="vlessproxy", description="Run the proxy server.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    args = parser.parse_args(argv)

    try:
        asyncio.run(serve(args.host, args.port))
    except OSError as exc:
        print(f"failed to bind listener: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())