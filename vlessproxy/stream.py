"""A proxied stream: the client connection paired with its target."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .header import Header, HeaderError
from .inbound import open_inbound
from .outbound import OutBoundError, open_outbound

BUFFER_SIZE = 0xFFFF


class StreamError(Exception):
    """Raised when a stream cannot be set up or fails while relaying."""


class _Channel(Protocol):
    async def read(self, n: int) -> bytes: ...

    async def write(self, data: bytes) -> int: ...

    async def close(self) -> None: ...


def _format_addr(addr: tuple[Any, ...]) -> str:
    host, port = addr[0], addr[1]
    if ":" in str(host):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


async def _pump(
    source: _Channel,
    sink: _Channel,
    report: Callable[[int], None],
    *,
    report_after_write: bool,
    read_context: str,
    write_context: str,
) -> None:
    while True:
        try:
            chunk = await source.read(BUFFER_SIZE)
        except Exception as exc:
            raise StreamError(read_context) from exc
        if not chunk:
            return
        if not report_after_write:
            report(len(chunk))
        try:
            written = await sink.write(chunk)
        except Exception as exc:
            raise StreamError(write_context) from exc
        if report_after_write:
            report(len(chunk))
        if written != len(chunk):
            raise StreamError(f"short write: wrote {written} of {len(chunk)} bytes")


@dataclass
class Stream:
    """The client side, the target side and the header that joined them."""

    header: Header
    client_addr: tuple[Any, ...]
    inbound: _Channel
    outbound: _Channel

    @classmethod
    async def from_incoming(
        cls,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        client_addr: tuple[Any, ...],
    ) -> "Stream":
        """Read the request header from a new client and connect to its target."""
        try:
            header = await Header.from_reader(reader)
        except HeaderError as exc:
            raise StreamError("failed to parse header") from exc

        inbound = open_inbound(reader, writer, header.cmd)
        try:
            outbound = await open_outbound(header.addr, header.cmd)
        except OutBoundError as exc:
            raise StreamError("failed to create outbound") from exc

        return cls(header=header, client_addr=client_addr, inbound=inbound, outbound=outbound)

    async def event_loop(self) -> None:
        """Relay data both ways until each direction ends, then close both sides."""
        cmd = self.header.cmd
        client = _format_addr(self.client_addr)
        target = _format_addr(self.header.addr)

        def report_up(size: int) -> None:
            print(f"{cmd} | {client} -> {target}: {size} bytes")

        def report_down(size: int) -> None:
            print(f"{cmd} | {client} <- {target}: {size} bytes")

        in_out = _pump(
            self.inbound,
            self.outbound,
            report_up,
            report_after_write=True,
            read_context="failed to read from inbound",
            write_context="failed to write to outbound",
        )
        out_in = _pump(
            self.outbound,
            self.inbound,
            report_down,
            report_after_write=False,
            read_context="failed to read from outbound",
            write_context="failed to write to inbound",
        )

        try:
            up_result, down_result = await asyncio.gather(
                in_out, out_in, return_exceptions=True
            )
        finally:
            for side in (self.inbound, self.outbound):
                with contextlib.suppress(Exception):
                    await side.close()

        for name, result in (("in_out", up_result), ("out_in", down_result)):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                raise StreamError(f"{name} failed") from result