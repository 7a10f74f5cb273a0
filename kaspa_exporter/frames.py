"""
Minimal RFC6455 frame codec.

Only single, final text frames are produced and consumed. Client frames
always carry a random 4-byte mask and use the 7-bit length form; server
frames are expected unmasked with either the 7-bit or the 16-bit
extended length form.
"""

from __future__ import annotations

import os
import struct

from .errors import DecodeError, FrameSizeError

OP_TEXT = 0x1
FIN = 0x80
MASK_BIT = 0x80
MAX_SHORT_PAYLOAD = 125
EXTENDED_16 = 126
EXTENDED_64 = 127


def apply_mask(data: bytes, mask: bytes) -> bytes:
    return bytes(b ^ mask[i % 4] for i, b in enumerate(data))


def encode_frame(payload: bytes, mask: bytes | None = None) -> bytes:
    """
    Build a masked final text frame around ``payload``.

    Args:
        payload: Raw payload bytes (already UTF-8 encoded).
        mask: 4-byte masking key; a fresh random key is drawn when omitted.

    Raises:
        FrameSizeError: If the payload does not fit the 7-bit length form.
    """
    length = len(payload)
    if length > MAX_SHORT_PAYLOAD:
        raise FrameSizeError(
            f"Payload of {length} bytes exceeds {MAX_SHORT_PAYLOAD} byte frame limit"
        )
    if mask is None:
        mask = os.urandom(4)
    elif len(mask) != 4:
        raise ValueError("Mask key must be exactly 4 bytes")
    header = bytes([FIN | OP_TEXT, MASK_BIT | length])
    return header + mask + apply_mask(payload, mask)


def parse_frame(buffer: bytes | bytearray) -> tuple[str, int] | None:
    """
    Parse one server frame from the start of ``buffer``.

    Returns ``(text, consumed)`` where ``consumed`` is the number of bytes
    the frame occupied, or ``None`` when the buffer does not yet hold a
    whole frame.
    """
    if len(buffer) < 2:
        return None
    b1, b2 = buffer[0], buffer[1]
    opcode = b1 & 0x0F
    if b2 & MASK_BIT:
        raise DecodeError("Server frame has the mask bit set")
    length = b2 & 0x7F
    offset = 2
    if length == EXTENDED_16:
        if len(buffer) < 4:
            return None
        length = struct.unpack("!H", bytes(buffer[2:4]))[0]
        offset = 4
    elif length == EXTENDED_64:
        raise FrameSizeError("64-bit extended payload lengths are not supported")
    if len(buffer) < offset + length:
        return None
    if opcode != OP_TEXT:
        raise DecodeError(f"Unexpected frame opcode 0x{opcode:x}")
    payload = bytes(buffer[offset:offset + length])
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Frame payload is not valid UTF-8: {exc}") from exc
    return text, offset + length


def decode_frame(buffer: bytes | bytearray) -> str | None:
    """Return the text payload of the frame in ``buffer``, or ``None`` if incomplete."""
    parsed = parse_frame(buffer)
    if parsed is None:
        return None
    return parsed[0]
