"""
Frame codec for MQTT recordings.

A recording is a headerless sequence of frames:

    [length prefix: 10 bytes][message body: length bytes]

The length prefix is a zigzag-encoded (sign-aware) varint written into a fixed
10-byte field and zero padded. The body is a msgpack map with the keys
``Millis``, ``Topic`` and ``Payload``.

There is no checksum or magic number. Corruption is only noticed when a body
fails to decode.
"""

from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple

import msgpack

from .errors import CorruptFrame, EncodeError

# Maximum varint length of a 64-bit integer; every prefix uses the full width
LENGTH_PREFIX_SIZE = 10

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MASK = (1 << 64) - 1

_KEY_MILLIS = 'Millis'
_KEY_TOPIC = 'Topic'
_KEY_PAYLOAD = 'Payload'

# Largest single read while collecting a frame body
_READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class RecordedMessage:
    """One captured MQTT publish."""

    captured_at_millis: int
    topic: str
    payload: bytes = b''


def encode_length(length: int) -> bytes:
    """
    Encode a signed integer as a fixed-width zigzag varint.

    Args:
        length: Value to encode (must fit in a signed 64-bit integer)

    Returns:
        Exactly LENGTH_PREFIX_SIZE bytes
    """
    if not _INT64_MIN <= length <= _INT64_MAX:
        raise EncodeError(f"Length out of range for 64-bit prefix: {length}")

    ux = (length << 1) & _UINT64_MASK
    if length < 0:
        ux ^= _UINT64_MASK

    out = bytearray()
    while ux >= 0x80:
        out.append((ux & 0x7F) | 0x80)
        ux >>= 7
    out.append(ux)

    return bytes(out).ljust(LENGTH_PREFIX_SIZE, b'\x00')


def decode_length(prefix: bytes) -> Optional[int]:
    """
    Decode a zigzag varint from the start of a length prefix.

    Args:
        prefix: Prefix bytes (normally LENGTH_PREFIX_SIZE long)

    Returns:
        Decoded signed integer, or None if the varint is unterminated
        or overflows 64 bits
    """
    ux = 0
    shift = 0
    for i, byte in enumerate(prefix[:LENGTH_PREFIX_SIZE]):
        if byte < 0x80:
            if i == LENGTH_PREFIX_SIZE - 1 and byte > 1:
                return None
            ux |= byte << shift
            value = ux >> 1
            if ux & 1:
                value = ~value
            return value
        ux |= (byte & 0x7F) << shift
        shift += 7
    return None


def encode_message(message: RecordedMessage) -> bytes:
    """
    Serialize a message body.

    Raises:
        EncodeError: If the message fields cannot be represented
    """
    try:
        return msgpack.packb(
            {
                _KEY_MILLIS: message.captured_at_millis,
                _KEY_TOPIC: message.topic,
                _KEY_PAYLOAD: bytes(message.payload),
            },
            use_bin_type=True,
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise EncodeError(f"Cannot encode message on topic {message.topic!r}: {e}") from e


def decode_message(data: bytes) -> RecordedMessage:
    """
    Parse a message body produced by encode_message.

    Raises:
        CorruptFrame: If the bytes are not a valid message structure
    """
    try:
        obj = msgpack.unpackb(data, raw=False)
    except Exception as e:
        # msgpack raises a mix of ValueError subclasses and its own types
        raise CorruptFrame(f"Invalid message body: {e}") from e

    if not isinstance(obj, dict):
        raise CorruptFrame(f"Message body is not a map: {type(obj).__name__}")

    millis = obj.get(_KEY_MILLIS)
    topic = obj.get(_KEY_TOPIC)
    payload = obj.get(_KEY_PAYLOAD, b'')

    # An absent payload may be stored as msgpack nil
    if payload is None:
        payload = b''

    if isinstance(millis, bool) or not isinstance(millis, int):
        raise CorruptFrame(f"Missing or invalid {_KEY_MILLIS}: {millis!r}")
    if not isinstance(topic, str):
        raise CorruptFrame(f"Missing or invalid {_KEY_TOPIC}: {topic!r}")
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    if not isinstance(payload, (bytes, bytearray)):
        raise CorruptFrame(f"Invalid {_KEY_PAYLOAD} type: {type(payload).__name__}")

    return RecordedMessage(captured_at_millis=millis, topic=topic, payload=bytes(payload))


def encode_frame(message: RecordedMessage) -> bytes:
    """Length prefix followed by the serialized body, ready for a single write."""
    body = encode_message(message)
    return encode_length(len(body)) + body


def _read_body(stream: BinaryIO, length: int) -> Optional[bytes]:
    """Read exactly length bytes in bounded chunks; None if the stream ends first."""
    chunks = []
    remaining = length
    while remaining > 0:
        chunk = stream.read(min(remaining, _READ_CHUNK_SIZE))
        if not chunk:
            return None
        chunks.append(chunk)
        remaining -= len(chunk)
    return b''.join(chunks)


def read_frame(stream: BinaryIO) -> Optional[Tuple[RecordedMessage, int]]:
    """
    Read the next frame from a binary stream.

    End of file, a short prefix, an invalid or negative length, a short body
    and an undecodable body all end the stream. A length larger than the
    rest of the stream is a short body, never a large allocation.

    Args:
        stream: Binary file-like object positioned at a frame boundary

    Returns:
        (message, body length) tuple, or None at end-of-stream
    """
    prefix = stream.read(LENGTH_PREFIX_SIZE)
    if len(prefix) < LENGTH_PREFIX_SIZE:
        return None

    length = decode_length(prefix)
    if length is None or length < 0:
        return None

    body = _read_body(stream, length)
    if body is None:
        return None

    try:
        return decode_message(body), length
    except CorruptFrame:
        return None
