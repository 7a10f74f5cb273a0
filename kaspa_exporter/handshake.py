from __future__ import annotations

import base64
import os

SUCCESS_MARKER = "101 Switching Protocols"


def build_handshake_request(host: str, port: int, path: str = "/", key: str | None = None) -> bytes:
    """
    Serialize the HTTP/1.1 upgrade request that opens a WebSocket session.

    The key is random per request; the server's Sec-WebSocket-Accept
    echo is not verified against it.
    """
    if key is None:
        key = base64.b64encode(os.urandom(16)).decode()
    req_lines = [
        f"GET {path or '/'} HTTP/1.1\r\n",
        f"Host: {host}:{port}\r\n",
        "Upgrade: websocket\r\n",
        "Connection: Upgrade\r\n",
        f"Sec-WebSocket-Key: {key}\r\n",
        "Sec-WebSocket-Version: 13\r\n",
        "\r\n",
    ]
    return "".join(req_lines).encode("ascii")


def validate_handshake_response(data: bytes) -> bool:
    """True iff the first delivery from the server contains the protocol-switch status."""
    if not data:
        return False
    return SUCCESS_MARKER in data.decode("utf-8", errors="ignore")
