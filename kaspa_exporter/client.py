from __future__ import annotations

import asyncio
import enum
import itertools
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass

from .errors import DecodeError, ExporterError, HandshakeError, TimeoutError, TransportError
from .frames import encode_frame, parse_frame
from .handshake import build_handshake_request, validate_handshake_response

logger = logging.getLogger(__name__)

READ_CHUNK = 4096


class ClientState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class CallResult:
    """Outcome of a single request: either a reply value or an error."""

    method: str
    value: object = None
    error: ExporterError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RpcClient:
    """
    JSON-over-WebSocket client for a single node connection.

    Requests are correlated with replies through an ordered table of
    pending calls: a reply carrying a pending ``id`` resolves that call,
    a reply without an ``id`` resolves the oldest pending call, and a
    reply whose ``id`` is no longer pending (its call already timed out)
    is dropped.

    Args:
        host: Node hostname
        port: wRPC JSON port
        path: Resource path used in the upgrade request
        call_timeout: Seconds to wait for each reply
        connect_timeout: Seconds allowed for TCP connect and for the upgrade reply
    """

    def __init__(
        self,
        host: str,
        port: int,
        path: str = "/",
        call_timeout: float = 3.0,
        connect_timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = port
        self.path = path
        self.call_timeout = call_timeout
        self.connect_timeout = connect_timeout
        self.state = ClientState.IDLE
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._buffer = bytearray()
        self._pending: OrderedDict[object, asyncio.Future] = OrderedDict()
        self._anonymous_ids = itertools.count()
        self._reader_task: asyncio.Task | None = None

    @property
    def is_open(self) -> bool:
        return self.state is ClientState.OPEN

    async def connect(self) -> None:
        """Open the TCP stream and perform the WebSocket upgrade."""
        if self.state is not ClientState.IDLE:
            raise TransportError(f"Cannot connect from state {self.state.value}")

        self.state = ClientState.CONNECTING
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(host=self.host, port=self.port),
                timeout=self.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            self.state = ClientState.CLOSED
            raise TransportError(f"Failed to connect to {self.host}:{self.port}: {exc!r}") from exc

        self.state = ClientState.HANDSHAKING
        try:
            self.writer.write(build_handshake_request(self.host, self.port, self.path))
            await self.writer.drain()
            # The first delivery is taken as the complete upgrade reply.
            response = await asyncio.wait_for(
                self.reader.read(READ_CHUNK), timeout=self.connect_timeout
            )
        except (OSError, asyncio.TimeoutError) as exc:
            await self.close()
            raise TransportError(f"WebSocket handshake I/O failed: {exc!r}") from exc

        if not validate_handshake_response(response):
            await self.close()
            raise HandshakeError(f"WebSocket handshake failed: {response[:120]!r}")

        _, sep, rest = response.partition(b"\r\n\r\n")
        if sep:
            self._buffer.extend(rest)
        self.state = ClientState.OPEN
        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info("WebSocket connected to %s:%s", self.host, self.port)

    async def call(self, request: dict) -> CallResult:
        """
        Send ``request`` as a JSON text frame and wait for its reply.

        Never raises for transport, timeout or decoding trouble; those are
        reported through ``CallResult.error``.
        """
        method = str(request.get("method", ""))
        if self.state is not ClientState.OPEN:
            return CallResult(method, error=TransportError("WebSocket not connected"))

        try:
            frame = encode_frame(json.dumps(request, separators=(",", ":")).encode("utf-8"))
        except ExporterError as exc:
            return CallResult(method, error=exc)

        key = request.get("id")
        if key is None or key in self._pending:
            key = ("anonymous", next(self._anonymous_ids))
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[key] = future

        try:
            try:
                self.writer.write(frame)
                await self.writer.drain()
            except OSError as exc:
                return CallResult(method, error=TransportError(f"Write failed: {exc!r}"))
            logger.debug("Sent %s frame (%d bytes)", method, len(frame))

            try:
                value = await asyncio.wait_for(future, timeout=self.call_timeout)
            except asyncio.TimeoutError:
                return CallResult(
                    method, error=TimeoutError(f"No reply to {method} within {self.call_timeout}s")
                )
            except ExporterError as exc:
                return CallResult(method, error=exc)
            return CallResult(method, value=value)
        finally:
            self._pending.pop(key, None)

    async def close(self) -> None:
        """Release the connection. Safe to call any number of times, from any state."""
        self.state = ClientState.CLOSED
        task, self._reader_task = self._reader_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._fail_pending(TransportError("Connection closed"))

        writer, self.writer = self.writer, None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except Exception:
            pass

    async def _read_loop(self) -> None:
        try:
            while True:
                self._drain_buffer()
                chunk = await self.reader.read(READ_CHUNK)
                if not chunk:
                    raise TransportError("Connection closed by node")
                self._buffer.extend(chunk)
        except ExporterError as exc:
            self._on_failure(exc)
        except OSError as exc:
            self._on_failure(TransportError(f"Read failed: {exc!r}"))
        except Exception as exc:
            logger.exception("Unexpected error while reading frames")
            self._on_failure(DecodeError(f"Failed to process inbound frame: {exc!r}"))

    def _on_failure(self, exc: ExporterError) -> None:
        logger.debug("Reader stopped: %s", exc)
        self.state = ClientState.CLOSED
        self._fail_pending(exc)

    def _drain_buffer(self) -> None:
        while True:
            parsed = parse_frame(self._buffer)
            if parsed is None:
                return
            text, consumed = parsed
            del self._buffer[:consumed]
            logger.debug("Received frame (%d bytes)", consumed)
            self._dispatch(text)

    def _dispatch(self, text: str) -> None:
        try:
            reply = json.loads(text)
        except ValueError:
            self._resolve_oldest(error=DecodeError(f"Invalid JSON: {text[:120]}"))
            return

        key = reply.get("id") if isinstance(reply, dict) else None
        if key is None:
            self._resolve_oldest(value=reply)
            return
        if isinstance(key, bool) or not isinstance(key, (int, str)):
            self._resolve_oldest(error=DecodeError(f"Reply has unusable id {key!r}"))
            return
        future = self._pending.pop(key, None)
        if future is None:
            logger.debug("Dropping reply with unmatched id %r", key)
            return
        if not future.done():
            future.set_result(reply)

    def _resolve_oldest(self, value: object = None, error: ExporterError | None = None) -> None:
        while self._pending:
            _, future = self._pending.popitem(last=False)
            if future.done():
                continue
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(value)
            return
        logger.debug("Dropping unsolicited frame")

    def _fail_pending(self, exc: ExporterError) -> None:
        pending = list(self._pending.values())
        self._pending.clear()
        for future in pending:
            if not future.done():
                future.set_exception(exc)

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
