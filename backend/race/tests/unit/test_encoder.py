"""
Tests for the MessagePack frame codec.
"""

import msgpack
import pytest

from race.messaging.encoder import MAX_FRAME_LEN, MAX_MAP_LEN, DecodeError, decode, encode


class TestEncodeDecode:
    def test_round_trip_nested_message(self):
        data = {
            "type": "players",
            "players": [{"id": "abc", "name": "Ann", "score": 3, "wpm": 41.5}],
        }
        assert decode(encode(data)) == data

    def test_unicode_text_survives(self):
        data = {"type": "player-typed", "text": "naïve café 日本語", "wpm": 12.0}
        assert decode(encode(data)) == data


class TestDecodeErrors:
    def test_garbage_bytes(self):
        with pytest.raises(DecodeError, match="failed to decode"):
            decode(b"\xc1")

    def test_truncated_frame(self):
        frame = encode({"type": "ping"})
        with pytest.raises(DecodeError):
            decode(frame[:-1])

    def test_non_map_top_level(self):
        with pytest.raises(DecodeError, match="expected a map, got list"):
            decode(msgpack.packb([1, 2, 3]))

    def test_scalar_top_level(self):
        with pytest.raises(DecodeError, match="expected a map, got str"):
            decode(msgpack.packb("join-room"))

    def test_frame_too_large(self):
        with pytest.raises(DecodeError, match="frame too large"):
            decode(b"\x00" * (MAX_FRAME_LEN + 1))

    def test_map_over_limit(self):
        data = {f"k{i}": i for i in range(MAX_MAP_LEN + 1)}
        with pytest.raises(DecodeError):
            decode(msgpack.packb(data))

    def test_extension_types_rejected(self):
        with pytest.raises(DecodeError):
            decode(msgpack.packb({"x": msgpack.ExtType(1, b"abc")}))
