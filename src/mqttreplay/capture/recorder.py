"""
MQTT Recorder

Subscribes to a topic filter and appends every received message to a
recording file as one length-prefixed frame.

Messages are timestamped at local receipt time because MQTT does not carry a
publish timestamp, so recorded inter-message gaps include local jitter.
"""

import logging
import threading
from typing import BinaryIO, Callable, Optional

from ..common.broker import BrokerClient
from ..common.codec import RecordedMessage, encode_frame, LENGTH_PREFIX_SIZE
from ..common.errors import EncodeError, FileCreateFailure, RecordingError
from ..common.utils import now_millis, VERBOSITY_INFO
from .record_config import RecorderConfig
from .stats import TopicStatistics

logger = logging.getLogger('mqttreplay.capture')


def create_recording_file(path: str) -> BinaryIO:
    """
    Create (or truncate) a recording file for writing.

    Raises:
        FileCreateFailure: If the file cannot be created
    """
    try:
        return open(path, 'wb')
    except OSError as e:
        raise FileCreateFailure(f"Error opening file for writing: {e}") from e


class Recorder:
    """
    Serial writer of recorded messages.

    Writes are serialized with a lock, so the paho network thread (or any
    other caller) can deliver messages concurrently without interleaving
    frames. Each frame goes out in a single write call.

    Example:
        with open('out.mqtt', 'wb') as f:
            recorder = Recorder(f, statistics=TopicStatistics())
            recorder.record('sensors/temp', b'21.5')
    """

    def __init__(
        self,
        output: BinaryIO,
        statistics: Optional[TopicStatistics] = None,
        clock: Callable[[], int] = now_millis
    ):
        """
        Initialize Recorder.

        Args:
            output: Binary file opened for writing
            statistics: Optional per-topic statistics aggregate to update
            clock: Source of epoch milliseconds for capture timestamps
        """
        self.output = output
        self.statistics = statistics
        self.clock = clock

        self.total_count = 0
        self.failure: Optional[Exception] = None
        self.on_failure: Optional[Callable[[Exception], None]] = None

        self._interval_count = 0
        self._last_millis: Optional[int] = None
        self._lock = threading.Lock()

    def record(self, topic: str, payload: bytes) -> RecordedMessage:
        """
        Timestamp, encode and append one message.

        Args:
            topic: Topic the message arrived on
            payload: Message payload (may be empty)

        Returns:
            The RecordedMessage that was written

        Raises:
            EncodeError: If the message cannot be serialized
            RecordingError: If writing to the output file fails
        """
        if not isinstance(payload, bytes):
            try:
                payload = bytes(payload)
            except TypeError as e:
                raise EncodeError(f"Cannot encode payload on topic {topic!r}: {e}") from e

        with self._lock:
            millis = self.clock()
            # Stamps never go backwards, even across a wall-clock step
            if self._last_millis is not None and millis < self._last_millis:
                millis = self._last_millis
            self._last_millis = millis
            message = RecordedMessage(captured_at_millis=millis, topic=topic, payload=payload)

            frame = encode_frame(message)
            size = len(frame) - LENGTH_PREFIX_SIZE
            logger.debug(f"t={millis}, {size:6d} bytes, topic={topic}")

            try:
                self.output.write(frame)
            except (OSError, ValueError) as e:
                raise RecordingError(f"Error writing to recording file: {e}") from e

            self.total_count += 1
            self._interval_count += 1

            if self.statistics is not None:
                self.statistics.update(topic, millis, size)

            return message

    def on_message(self, client, userdata, message) -> None:
        """
        paho-mqtt on_message callback.

        A failure is stored on the recorder and reported through on_failure
        so the owning session can stop; later messages are dropped.
        """
        if self.failure is not None:
            return

        try:
            self.record(message.topic, message.payload)
        except (EncodeError, RecordingError) as e:
            self.failure = e
            logger.error(f"Recording failed: {e}")
            if self.on_failure is not None:
                self.on_failure(e)

    def take_interval_count(self) -> int:
        """Return the number of messages recorded since the last call and reset it."""
        with self._lock:
            count = self._interval_count
            self._interval_count = 0
            return count


class RecordingSession:
    """
    One capture run: subscription, periodic reporting and shutdown.

    run() blocks until stop() is called (normally from a signal handler) or
    the recorder fails.
    """

    def __init__(self, config: RecorderConfig, broker: BrokerClient, recorder: Recorder):
        self.config = config
        self.broker = broker
        self.recorder = recorder
        self.recorder.on_failure = lambda error: self.stop()

        self._stop = threading.Event()

    def stop(self) -> None:
        """Request the capture loop to end. Safe to call from a signal handler."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self) -> None:
        """
        Subscribe and record until stopped.

        Raises:
            SubscriptionFailure: If the subscription is rejected
            EncodeError, RecordingError: If recording failed mid-session
        """
        self.broker.subscribe(self.config.topic, self.recorder.on_message, qos=self.config.qos)
        logger.debug("Success subscribing to topic")

        while not self._stop.wait(self.config.report_interval):
            self._report()

        if self.recorder.failure is not None:
            raise self.recorder.failure

    def _report(self) -> None:
        count = self.recorder.take_interval_count()

        # At debug verbosity the per-message lines replace the periodic report
        if self.config.verbosity != VERBOSITY_INFO:
            return

        logger.info(f"Recorded {count:4d} messages in last {self.config.report_interval} sec.")

        if self.config.stats and self.recorder.statistics is not None:
            for line in self.recorder.statistics.format_table():
                logger.info(line)
