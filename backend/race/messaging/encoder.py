"""
MessagePack codec for WebSocket frames.

Every frame is a single map. Decoding enforces size limits so a client cannot
make the server allocate unbounded memory for one message.
"""

from typing import Any

import msgpack

MAX_FRAME_LEN = 64 * 1024
MAX_STR_LEN = 32 * 1024  # a full typed paragraph fits comfortably
MAX_BIN_LEN = 1024
MAX_ARRAY_LEN = 256
MAX_MAP_LEN = 32
MAX_EXT_LEN = 0


class DecodeError(Exception):
    """Raised for frames that are oversized, malformed, or not a map."""


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    if len(data) > MAX_FRAME_LEN:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_FRAME_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError, TypeError) as e:
        raise DecodeError(f"failed to decode MessagePack frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected a map, got {type(result).__name__}")
    return result
