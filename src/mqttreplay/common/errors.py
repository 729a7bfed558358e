"""
Error taxonomy for mqtt-record-replay.

Startup failures (connection, subscription, file create/open) are fatal and
surface to the operator with a non-zero exit. During playback a corrupt frame
is absorbed as end-of-stream and a failed publish is logged and skipped.
"""


class MqttReplayError(Exception):
    """Base class for all errors raised by this package."""


class ConnectionFailure(MqttReplayError):
    """Broker unreachable, refused the connection, or authentication failed."""


class SubscriptionFailure(MqttReplayError):
    """Broker rejected or never acknowledged a subscription."""


class PublishFailure(MqttReplayError):
    """A single publish could not be dispatched to the broker."""


class FileCreateFailure(MqttReplayError):
    """Recording output file could not be created."""


class FileOpenFailure(MqttReplayError):
    """Recording input file could not be opened for reading."""


class CorruptFrame(MqttReplayError):
    """Bytes could not be parsed as a recorded message."""


class EncodeError(MqttReplayError):
    """A message could not be serialized."""


class RecordingError(MqttReplayError):
    """Writing to the recording file failed; the session cannot continue."""
