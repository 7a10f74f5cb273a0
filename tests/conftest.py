"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import json
import struct

import pytest

from kaspa_exporter.config import Settings
from kaspa_exporter.frames import apply_mask

SWITCHING_PROTOCOLS = (
    b"HTTP/1.1 101 Switching Protocols\r\n"
    b"Upgrade: websocket\r\n"
    b"Connection: Upgrade\r\n"
    b"Sec-WebSocket-Accept: s3pPLMBiTxaQ9kYGzzhZRbK+xOo=\r\n"
    b"\r\n"
)

# Handler return value that makes the fake node hang up.
HANG_UP = object()


def server_frame(payload: bytes, opcode: int = 0x1) -> bytes:
    """Build an unmasked server-to-client frame."""
    length = len(payload)
    if length < 126:
        header = bytes([0x80 | opcode, length])
    else:
        header = bytes([0x80 | opcode, 126]) + struct.pack("!H", length)
    return header + payload


class FakeNode:
    """
    Minimal wRPC JSON node over WebSocket.

    ``handlers`` maps a method name to a reply: a dict (sent as JSON),
    bytes (sent as the raw frame payload), a list of those (one frame
    each), None (no reply), HANG_UP, or a callable taking the request and
    returning one of those.
    """

    def __init__(self, handlers: dict | None = None, handshake_reply: bytes = SWITCHING_PROTOCOLS):
        self.handlers = handlers or {}
        self.handshake_reply = handshake_reply
        self.requests: list[dict] = []
        self.raw_handshakes: list[bytes] = []
        self.server: asyncio.AbstractServer | None = None
        self.port = 0
        self._writers: list[asyncio.StreamWriter] = []

    async def start(self) -> FakeNode:
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        self.server.close()
        await self.server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._writers.append(writer)
        try:
            self.raw_handshakes.append(await reader.readuntil(b"\r\n\r\n"))
            writer.write(self.handshake_reply)
            await writer.drain()
            while True:
                header = await reader.readexactly(2)
                mask = await reader.readexactly(4)
                payload = apply_mask(await reader.readexactly(header[1] & 0x7F), mask)
                request = json.loads(payload)
                self.requests.append(request)
                reply = self.handlers.get(request.get("method"))
                if callable(reply):
                    reply = reply(request)
                if reply is HANG_UP:
                    break
                if reply is None:
                    continue
                for item in reply if isinstance(reply, list) else [reply]:
                    if isinstance(item, dict):
                        item = json.dumps(item).encode("utf-8")
                    writer.write(server_frame(item))
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()


@pytest.fixture
async def fake_node():
    """Factory fixture starting FakeNode instances on 127.0.0.1."""
    nodes: list[FakeNode] = []

    async def factory(**kwargs) -> FakeNode:
        node = await FakeNode(**kwargs).start()
        nodes.append(node)
        return node

    yield factory
    for node in nodes:
        await node.stop()


@pytest.fixture
def mock_open_conn(mocker):
    """Patch asyncio.open_connection for tests that fake the node streams."""
    return mocker.patch("asyncio.open_connection", new_callable=mocker.AsyncMock)


@pytest.fixture
async def closed_port():
    """A localhost port with nothing listening on it."""
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port


@pytest.fixture
def settings():
    return Settings(
        kaspa_host="127.0.0.1",
        kaspa_grpc_port=16110,
        kaspa_json_rpc_port=18110,
        cache_seconds=30.0,
        call_timeout=0.2,
        connect_timeout=1.0,
        probe_timeout=0.5,
    )
