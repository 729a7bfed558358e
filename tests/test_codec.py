"""
Tests for the recording frame codec.

Tests message serialization, the fixed-width zigzag length prefix,
frame reading and end-of-stream handling of damaged input.
"""

import io

import msgpack
import pytest

from mqttreplay.common.codec import (
    RecordedMessage,
    encode_length,
    decode_length,
    encode_message,
    decode_message,
    encode_frame,
    read_frame,
    LENGTH_PREFIX_SIZE,
)
from mqttreplay.common.errors import CorruptFrame, EncodeError

_INT64_MAX_LENGTH = (1 << 63) - 1


class TestLengthPrefix:
    """Test the fixed-width zigzag varint length prefix."""

    def test_prefix_is_always_ten_bytes(self):
        """Test that every prefix uses the full field width."""
        for value in (0, 1, 127, 128, 300, 1 << 40):
            assert len(encode_length(value)) == LENGTH_PREFIX_SIZE

    def test_known_encodings(self):
        """Test zigzag varint bytes against hand-computed values."""
        assert encode_length(0) == b'\x00' * 10
        assert encode_length(1)[:1] == b'\x02'
        assert encode_length(-1)[:1] == b'\x01'
        assert encode_length(64)[:2] == b'\x80\x01'
        assert encode_length(64)[2:] == b'\x00' * 8

    def test_decode_inverts_encode(self):
        """Test decoding of positive, negative and large values."""
        for value in (0, 1, -1, 63, 64, -65, 300, 123456789, -(1 << 62), (1 << 63) - 1):
            assert decode_length(encode_length(value)) == value

    def test_out_of_range_raises(self):
        """Test that values beyond 64 bits cannot be encoded."""
        with pytest.raises(EncodeError):
            encode_length(1 << 63)

    def test_unterminated_varint(self):
        """Test that a prefix without a terminating byte is rejected."""
        assert decode_length(b'\xff' * 10) is None

    def test_overflowing_varint(self):
        """Test that a tenth byte above 1 overflows 64 bits."""
        assert decode_length(b'\xff' * 9 + b'\x02') is None


class TestMessageCodec:
    """Test message body serialization."""

    @pytest.mark.parametrize("message", [
        RecordedMessage(1000, "a", b'\x01'),
        RecordedMessage(1500, "b", b''),
        RecordedMessage(3000, "a", b'\xab\xcd'),
        RecordedMessage(1700000000123, "sensors/room 1/temp", b'{"value": 21.5}'),
        RecordedMessage(-5, "négatif/ünïcode/主题", bytes(range(256))),
        RecordedMessage(0, "", b'\x00' * 70000),
    ])
    def test_round_trip(self, message):
        """Test that decode(encode(m)) == m byte for byte."""
        assert decode_message(encode_message(message)) == message

    def test_empty_payload_round_trip(self):
        """Test that an empty payload stays bytes and empty."""
        decoded = decode_message(encode_message(RecordedMessage(1, "t", b'')))

        assert decoded.payload == b''
        assert isinstance(decoded.payload, bytes)

    def test_decodes_hand_built_body(self):
        """Test decoding of a body written by another msgpack encoder."""
        body = (b'\x83'
                b'\xa6Millis\xcd\x03\xe8'
                b'\xa5Topic\xa1a'
                b'\xa7Payload\xc4\x01\x01')

        assert decode_message(body) == RecordedMessage(1000, "a", b'\x01')

    def test_nil_payload_is_empty(self):
        """Test that a nil payload decodes as empty bytes."""
        body = msgpack.packb({'Millis': 5, 'Topic': 'x', 'Payload': None})

        assert decode_message(body).payload == b''

    def test_body_key_names(self):
        """Test that the body is a map with Millis/Topic/Payload keys."""
        body = msgpack.unpackb(encode_message(RecordedMessage(7, "t", b'p')), raw=False)

        assert body == {'Millis': 7, 'Topic': 't', 'Payload': b'p'}

    def test_non_bytes_payload_raises(self):
        """Test that a payload msgpack cannot represent raises EncodeError."""
        with pytest.raises(EncodeError):
            encode_message(RecordedMessage(1, "t", object()))

    @pytest.mark.parametrize("data", [
        b'',
        b'\xc1',
        msgpack.packb([1, "a", b'']),
        msgpack.packb({'Topic': 'a', 'Payload': b''}),
        msgpack.packb({'Millis': 1, 'Payload': b''}),
        msgpack.packb({'Millis': 'soon', 'Topic': 'a', 'Payload': b''}),
        msgpack.packb({'Millis': 1, 'Topic': 'a', 'Payload': 42}),
        msgpack.packb({'Millis': 1, 'Topic': 'a', 'Payload': b''}) + b'\x00',
    ])
    def test_corrupt_bodies_raise(self, data):
        """Test that malformed bodies raise CorruptFrame."""
        with pytest.raises(CorruptFrame):
            decode_message(data)


class TestFrames:
    """Test framing and read_frame end-of-stream handling."""

    def test_frame_layout(self):
        """Test that a frame is prefix + body with the body length in the prefix."""
        message = RecordedMessage(1000, "a", b'\x01')
        frame = encode_frame(message)
        body = encode_message(message)

        assert frame[LENGTH_PREFIX_SIZE:] == body
        assert decode_length(frame[:LENGTH_PREFIX_SIZE]) == len(body)

    def test_read_frames_in_order(self):
        """Test reading consecutive frames and the end-of-stream signal."""
        messages = [RecordedMessage(i, f"t/{i}", bytes([i])) for i in range(5)]
        stream = io.BytesIO(b''.join(encode_frame(m) for m in messages))

        read = []
        while True:
            result = read_frame(stream)
            if result is None:
                break
            read.append(result[0])

        assert read == messages

    def test_read_returns_body_length(self):
        """Test that read_frame reports the serialized body length."""
        message = RecordedMessage(1, "topic", b'payload')
        stream = io.BytesIO(encode_frame(message))

        _, length = read_frame(stream)

        assert length == len(encode_message(message))

    def test_empty_stream(self):
        """Test that an empty stream is end-of-stream on the first read."""
        assert read_frame(io.BytesIO(b'')) is None

    def test_short_prefix(self):
        """Test that fewer than ten prefix bytes is end-of-stream."""
        frame = encode_frame(RecordedMessage(1, "a", b''))
        assert read_frame(io.BytesIO(frame[:5])) is None

    def test_truncated_body(self):
        """Test that a body cut short is end-of-stream."""
        frame = encode_frame(RecordedMessage(1, "a", b'0123456789'))
        assert read_frame(io.BytesIO(frame[:-3])) is None

    def test_negative_length(self):
        """Test that a negative length prefix is end-of-stream."""
        assert read_frame(io.BytesIO(encode_length(-4) + b'abcd')) is None

    def test_garbage_body(self):
        """Test that an undecodable body is end-of-stream, not an exception."""
        assert read_frame(io.BytesIO(encode_length(3) + b'\xc1\xc1\xc1')) is None

    def test_huge_length_is_end_of_stream(self):
        """Test that a length far beyond the stream size ends the stream without allocating it."""
        stream = io.BytesIO(encode_length(_INT64_MAX_LENGTH) + b'junk')

        assert read_frame(stream) is None

    def test_body_longer_than_one_chunk(self):
        """Test that bodies spanning several read chunks decode intact."""
        message = RecordedMessage(9, "big", bytes(range(256)) * 1024)

        assert read_frame(io.BytesIO(encode_frame(message))) == (
            message, len(encode_frame(message)) - 10)
