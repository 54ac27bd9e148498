"""Target-facing side of a proxied stream."""

from __future__ import annotations

import asyncio
import contextlib

from .header import Cmd

MAX_READ = 0xFFFF


class OutBoundError(Exception):
    """Raised when the connection to the target cannot be set up."""


def _format_addr(addr: tuple[str, int]) -> str:
    host, port = addr[0], addr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class TcpOutBound:
    """TCP connection to the target."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer

    @classmethod
    async def connect(cls, addr: tuple[str, int]) -> "TcpOutBound":
        try:
            reader, writer = await asyncio.open_connection(addr[0], addr[1])
        except OSError as exc:
            raise OutBoundError("failed to stream connect") from exc
        return cls(reader, writer)

    async def read(self, n: int = MAX_READ) -> bytes:
        """Read up to ``n`` bytes; an empty result means end of stream."""
        return await self._reader.read(n)

    async def write(self, data: bytes) -> int:
        self._writer.write(data)
        await self._writer.drain()
        return len(data)

    async def close(self) -> None:
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()


class _DatagramQueue(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.queue: asyncio.Queue[bytes | Exception | None] = asyncio.Queue()

    def datagram_received(self, data: bytes, addr) -> None:
        self.queue.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        self.queue.put_nowait(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        self.queue.put_nowait(None)


class UdpOutBound:
    """UDP socket connected to the target."""

    def __init__(self, transport: asyncio.DatagramTransport, protocol: _DatagramQueue) -> None:
        self._transport = transport
        self._protocol = protocol

    @classmethod
    async def connect(cls, addr: tuple[str, int]) -> "UdpOutBound":
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                _DatagramQueue, remote_addr=(addr[0], addr[1])
            )
        except OSError as exc:
            raise OutBoundError(f"failed to connect to: {_format_addr(addr)}") from exc
        return cls(transport, protocol)

    async def read(self, n: int = MAX_READ) -> bytes:
        """Return the next datagram, cut to ``n`` bytes; empty once closed."""
        item = await self._protocol.queue.get()
        if item is None:
            self._protocol.queue.put_nowait(None)
            return b""
        if isinstance(item, Exception):
            raise item
        return item[:n]

    async def write(self, data: bytes) -> int:
        self._transport.sendto(data)
        return len(data)

    async def close(self) -> None:
        self._transport.close()


async def open_outbound(addr: tuple[str, int], cmd: Cmd) -> TcpOutBound | UdpOutBound:
    """Connect to ``addr`` with the transport the command asks for."""
    if cmd is Cmd.TCP:
        return await TcpOutBound.connect(addr)
    return await UdpOutBound.connect(addr)