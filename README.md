# vlessproxy

A small VLESS proxy server built on `asyncio`. It accepts client
connections, reads the VLESS request header and relays traffic to the
requested destination over TCP or UDP.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running

```
vlessproxy
vlessproxy --host 127.0.0.1 --port 8080
```

| Option   | Default   | Meaning              |
|----------|-----------|----------------------|
| `--host` | `0.0.0.0` | address to listen on |
| `--port` | `80`      | port to listen on    |

With the defaults the server usually needs the privileges to bind a low
port. If the listener cannot be bound, `failed to bind listener: ...` is
printed to standard error and the command exits with status 1. Ctrl-C
stops the server.

Each connection is logged to standard output: when it is accepted
(`handled new stream: ...`), every relayed chunk with its transport,
direction and size (for example `TCP | 10.0.0.2:51000 -> 93.184.216.34:80: 512 bytes`),
any error that ended it, and when it closes (`stream closed: ...`).

## How a connection is handled

1. The client sends a VLESS request header: protocol version (must be
   `0`), a 16-byte user id, an options block (read and discarded), the
   command (`1` for TCP, `2` for UDP), the destination port (big-endian)
   and the address type with the address: `1` for an IPv4 address, `2`
   for a length-prefixed domain name. A domain name is resolved on the
   server and the first lookup result is used.
2. The server opens the outbound side: a TCP connection, or a UDP socket
   connected to the destination.
3. Data is copied in both directions, in chunks of up to 65535 bytes,
   until each direction has reached its end; then both sides are closed.
   - For TCP, the first reply to the client is preceded by the two-byte
     VLESS response header `00 00`.
   - For UDP, every datagram is framed on the client connection with a
     two-byte big-endian length, and the first reply also carries the
     response header.

## Using it from Python

```python
import asyncio

from vlessproxy.server import serve

asyncio.run(serve("127.0.0.1", 8080))
```

The building blocks are available on their own as well:

- `vlessproxy.header.Header.from_reader(reader)` parses a request header
  from an `asyncio.StreamReader` into a frozen `Header` with `version`,
  `uuid`, `cmd` and `addr` (a `(host, port)` tuple). `Cmd` is an
  `IntEnum` with `TCP` and `UDP`; `Cmd.from_byte` decodes a command byte.
- `vlessproxy.inbound.open_inbound(reader, writer, cmd)` wraps the client
  connection as a `TcpInBound` or `UdpInBound`.
- `vlessproxy.outbound.open_outbound(addr, cmd)` connects to the
  destination and returns a `TcpOutBound` or `UdpOutBound`.
- All four sides offer `read(n)`, `write(data)` and `close()` coroutines;
  `read` returns `b""` at end of stream.
- `vlessproxy.stream.Stream.from_incoming(reader, writer, client_addr)`
  prepares a connection and `Stream.event_loop()` relays it until both
  directions are done.
- `vlessproxy.server.handle_client(reader, writer)` serves one connection
  and is what `serve` passes to `asyncio.start_server`.

Errors raise `HeaderError` (malformed header, failed lookup),
`OutBoundError` (destination unreachable) or `StreamError` (setup or
relay failure). A UDP frame longer than the read size, or a datagram
over 65535 bytes, raises `ValueError`.

## What it does not do

- The user id is read but not checked against any list of accounts:
  every client is served.
- There is no TLS or other transport layer; the listener is plain TCP.
- Only IPv4 addresses and domain names are accepted as destinations; the
  IPv6 address type is rejected as unknown.
- Header options are skipped, and there is no multiplexing or
  configuration file.