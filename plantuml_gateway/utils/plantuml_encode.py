"""PlantUML text encoding for picoweb `/svg/<token>` requests."""
from __future__ import annotations

import zlib


PLANTUML_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
_INVALID_SYMBOL = "?"


def _encode_6bit(b: int) -> str:
    if b < 0 or b > 63:
        return _INVALID_SYMBOL
    return PLANTUML_ALPHABET[b]


def _append_3bytes(b1: int, b2: int, b3: int) -> str:
    c1 = b1 >> 2
    c2 = ((b1 & 0x3) << 4) | (b2 >> 4)
    c3 = ((b2 & 0xF) << 2) | (b3 >> 6)
    c4 = b3 & 0x3F
    return (
        _encode_6bit(c1)
        + _encode_6bit(c2)
        + _encode_6bit(c3)
        + _encode_6bit(c4)
    )


def deflate_raw(data: bytes) -> bytes:
    """Compress with raw DEFLATE at level 9 (no zlib header or adler32 trailer)."""
    if not data:
        return b""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


def encode_bytes(data: bytes) -> str:
    """Map bytes onto the PlantUML alphabet, zero-padding the last group."""
    res = []
    for i in range(0, len(data), 3):
        b1 = data[i]
        b2 = data[i + 1] if i + 1 < len(data) else 0
        b3 = data[i + 2] if i + 2 < len(data) else 0
        res.append(_append_3bytes(b1, b2, b3))
    return "".join(res)


def plantuml_encode(text: str) -> str:
    """Encode PlantUML text for the server URL."""
    return encode_bytes(deflate_raw(text.encode("utf-8")))
