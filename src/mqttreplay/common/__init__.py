"""
mqtt-record-replay Common Utilities

Frame codec, broker client, error taxonomy and helpers shared by the
recorder and the player.
"""

from .codec import (
    RecordedMessage,
    encode_message,
    decode_message,
    encode_frame,
    read_frame,
    LENGTH_PREFIX_SIZE,
)
from .broker import BrokerClient, BrokerAddress, DEFAULT_BROKER_URL
from .errors import (
    MqttReplayError,
    ConnectionFailure,
    SubscriptionFailure,
    PublishFailure,
    FileCreateFailure,
    FileOpenFailure,
    CorruptFrame,
    EncodeError,
    RecordingError,
)
from .utils import setup_logging, now_millis, monotonic_millis, expand_output_filename

__all__ = [
    'RecordedMessage',
    'encode_message',
    'decode_message',
    'encode_frame',
    'read_frame',
    'LENGTH_PREFIX_SIZE',
    'BrokerClient',
    'BrokerAddress',
    'DEFAULT_BROKER_URL',
    'MqttReplayError',
    'ConnectionFailure',
    'SubscriptionFailure',
    'PublishFailure',
    'FileCreateFailure',
    'FileOpenFailure',
    'CorruptFrame',
    'EncodeError',
    'RecordingError',
    'setup_logging',
    'now_millis',
    'monotonic_millis',
    'expand_output_filename',
]
