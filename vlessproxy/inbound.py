"""Client-facing side of a proxied stream."""

from __future__ import annotations

import asyncio
import contextlib
import struct

from .header import Cmd

MAX_READ = 0xFFFF
_RESPONSE_HEADER = b"\x00\x00"
_LENGTH = struct.Struct(">H")


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()


class TcpInBound:
    """Raw TCP traffic from the client; the first reply carries the response header."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._is_first = True

    async def read(self, n: int = MAX_READ) -> bytes:
        """Read up to ``n`` bytes; an empty result means end of stream."""
        return await self._reader.read(n)

    async def write(self, data: bytes) -> int:
        """Send ``data`` to the client and return its length."""
        if self._is_first:
            self._writer.write(_RESPONSE_HEADER + data)
            self._is_first = False
        else:
            self._writer.write(data)
        await self._writer.drain()
        return len(data)

    async def close(self) -> None:
        await _close_writer(self._writer)


class UdpInBound:
    """UDP datagrams carried over the client's TCP stream as length-prefixed frames."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._is_first = True

    async def read(self, n: int = MAX_READ) -> bytes:
        """Return the payload of the next frame; an empty result means end of stream."""
        try:
            prefix = await self._reader.readexactly(_LENGTH.size)
        except asyncio.IncompleteReadError as exc:
            if not exc.partial:
                return b""
            raise ConnectionError("stream ended inside a frame length") from exc
        (length,) = _LENGTH.unpack(prefix)
        if length > n:
            raise ValueError(f"frame of {length} bytes exceeds read size {n}")
        try:
            return await self._reader.readexactly(length)
        except asyncio.IncompleteReadError as exc:
            raise ConnectionError("stream ended inside a frame") from exc

    async def write(self, data: bytes) -> int:
        """Send ``data`` to the client as one frame and return its length."""
        if len(data) > MAX_READ:
            raise ValueError(f"datagram of {len(data)} bytes is too large for a frame")
        frame = _LENGTH.pack(len(data)) + data
        if self._is_first:
            frame = _RESPONSE_HEADER + frame
            self._is_first = False
        self._writer.write(frame)
        await self._writer.drain()
        return len(data)

    async def close(self) -> None:
        await _close_writer(self._writer)


def open_inbound(
    reader: asyncio.StreamReader, writer: asyncio.StreamWriter, cmd: Cmd
) -> TcpInBound | UdpInBound:
    """Wrap the client connection according to the requested command."""
    if cmd is Cmd.TCP:
        return TcpInBound(reader, writer)
    return UdpInBound(reader, writer)