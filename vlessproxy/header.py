"""Parsing of the request header a client sends when opening a stream."""

from __future__ import annotations

import asyncio
import enum
import ipaddress
import socket
from dataclasses import dataclass

SUPPORTED_VERSION = 0

_ADDR_IPV4 = 1
_ADDR_DOMAIN = 2


class HeaderError(Exception):
    """Raised when a request header is malformed or cannot be resolved."""


class Cmd(enum.IntEnum):
    """Transport requested by the client."""

    TCP = 1
    UDP = 2

    @classmethod
    def from_byte(cls, value: int) -> "Cmd":
        """Return the command encoded by ``value``."""
        try:
            return cls(value)
        except ValueError:
            raise HeaderError(f"unknown value: {value}") from None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Header:
    """A parsed request header."""

    version: int
    uuid: bytes
    cmd: Cmd
    addr: tuple[str, int]

    @classmethod
    async def from_reader(cls, reader: asyncio.StreamReader) -> "Header":
        """Read and parse a header from ``reader``.

        Domain names are resolved; the first lookup result becomes ``addr``.
        """
        client_part = await _read(reader, 18, "failed to read client part")

        version = client_part[0]
        if version != SUPPORTED_VERSION:
            raise HeaderError(f"unsupported protocol version: {version}")

        uuid = bytes(client_part[1:17])
        opt_len = client_part[17]
        if opt_len:
            await _read(reader, opt_len, "failed to read options")

        addr_part = await _read(reader, 4, "failed to read addr part")
        try:
            cmd = Cmd.from_byte(addr_part[0])
        except HeaderError as exc:
            raise HeaderError("failed to parse cmd") from exc
        port = int.from_bytes(addr_part[1:3], "big")
        addr_type = addr_part[3]

        if addr_type == _ADDR_IPV4:
            ip_bytes = await _read(reader, 4, "failed to read ip addr")
            addr = (str(ipaddress.IPv4Address(ip_bytes)), port)
        elif addr_type == _ADDR_DOMAIN:
            (domain_len,) = await _read(reader, 1, "failed to read domain len")
            domain_bytes = await _read(reader, domain_len, "failed to read domain")
            domain = domain_bytes.decode("utf-8", errors="replace")
            addr = await _lookup(domain, port)
        else:
            raise HeaderError(f"unknown addr type: {addr_type}")

        return cls(version=version, uuid=uuid, cmd=cmd, addr=addr)


async def _read(reader: asyncio.StreamReader, size: int, context: str) -> bytes:
    try:
        return await reader.readexactly(size)
    except (asyncio.IncompleteReadError, OSError) as exc:
        raise HeaderError(context) from exc


async def _lookup(domain: str, port: int) -> tuple[str, int]:
    host = f"{domain}:{port}"
    loop = asyncio.get_running_loop()
    try:
        results = await loop.getaddrinfo(domain, port, type=socket.SOCK_STREAM)
    except (OSError, UnicodeError) as exc:
        raise HeaderError(f"failed to lookup host: {host}") from exc
    if not results:
        raise HeaderError(f"missing any lookup result for host: {host}")
    sockaddr = results[0][4]
    return (sockaddr[0], sockaddr[1])