import asyncio
import socket

import pytest

from vlessproxy.header import Cmd
from vlessproxy.inbound import TcpInBound, UdpInBound, open_inbound


async def _stream_pair():
    left, right = socket.socketpair()
    near = await asyncio.open_connection(sock=left)
    far = await asyncio.open_connection(sock=right)
    return near, far


async def _close(*writers):
    for writer in writers:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass


@pytest.mark.asyncio
async def test_tcp_first_write_has_response_header():
    (nr, nw), (fr, fw) = await _stream_pair()
    inbound = TcpInBound(nr, nw)
    assert await inbound.write(b"abc") == 3
    assert await inbound.write(b"de") == 2
    assert await fr.readexactly(7) == b"\x00\x00abcde"
    await _close(nw, fw)


@pytest.mark.asyncio
async def test_tcp_read_passes_through():
    (nr, nw), (fr, fw) = await _stream_pair()
    inbound = TcpInBound(nr, nw)
    fw.write(b"hello")
    await fw.drain()
    assert await inbound.read(100) == b"hello"
    await _close(fw)
    assert await inbound.read(100) == b""
    await _close(nw)


@pytest.mark.asyncio
async def test_tcp_close_gives_peer_eof():
    (nr, nw), (fr, fw) = await _stream_pair()
    inbound = TcpInBound(nr, nw)
    assert await inbound.write(b"x") == 1
    await inbound.close()
    assert await fr.read() == b"\x00\x00x"
    await _close(fw)


@pytest.mark.asyncio
async def test_udp_write_frames():
    (nr, nw), (fr, fw) = await _stream_pair()
    inbound = UdpInBound(nr, nw)
    assert await inbound.write(b"abc") == 3
    assert await inbound.write(b"de") == 2
    assert await fr.readexactly(11) == b"\x00\x00\x00\x03abc\x00\x02de"
    await _close(nw, fw)


@pytest.mark.asyncio
async def test_udp_read_frames_across_chunks():
    reader = asyncio.StreamReader()
    inbound = UdpInBound(reader, None)
    reader.feed_data(b"\x00")
    reader.feed_data(b"\x03ab")
    reader.feed_data(b"c\x00\x02de")
    reader.feed_eof()
    assert await inbound.read() == b"abc"
    assert await inbound.read() == b"de"
    assert await inbound.read() == b""


@pytest.mark.asyncio
async def test_udp_read_round_trip():
    (nr, nw), (fr, fw) = await _stream_pair()
    sender = UdpInBound(nr, nw)
    receiver = UdpInBound(fr, fw)
    await sender.write(b"one")
    await sender.write(b"two!")
    # The receiving side first sees the response header bytes.
    assert await fr.readexactly(2) == b"\x00\x00"
    assert await receiver.read() == b"one"
    assert await receiver.read() == b"two!"
    await _close(nw, fw)


@pytest.mark.asyncio
async def test_udp_truncated_frame():
    reader = asyncio.StreamReader()
    reader.feed_data(b"\x00\x05ab")
    reader.feed_eof()
    with pytest.raises(ConnectionError):
        await UdpInBound(reader, None).read()


@pytest.mark.asyncio
async def test_udp_truncated_length():
    reader = asyncio.StreamReader()
    reader.feed_data(b"\x00")
    reader.feed_eof()
    with pytest.raises(ConnectionError):
        await UdpInBound(reader, None).read()


@pytest.mark.asyncio
async def test_udp_frame_larger_than_read_size():
    reader = asyncio.StreamReader()
    reader.feed_data(b"\x00\x04abcd")
    reader.feed_eof()
    with pytest.raises(ValueError):
        await UdpInBound(reader, None).read(3)


@pytest.mark.asyncio
async def test_udp_write_too_large():
    (nr, nw), (fr, fw) = await _stream_pair()
    with pytest.raises(ValueError):
        await UdpInBound(nr, nw).write(bytes(0x10000))
    await _close(nw, fw)


@pytest.mark.asyncio
async def test_open_inbound_dispatches_on_cmd():
    (nr, nw), (fr, fw) = await _stream_pair()
    udp = open_inbound(nr, nw, Cmd.UDP)
    assert isinstance(udp, UdpInBound)
    assert await udp.write(b"z") == 1
    assert await fr.readexactly(5) == b"\x00\x00\x00\x01z"
    tcp = open_inbound(nr, nw, Cmd.TCP)
    assert isinstance(tcp, TcpInBound)
    assert await tcp.write(b"y") == 1
    assert await fr.readexactly(3) == b"\x00\x00y"
    await _close(nw, fw)