"""
Pacing Scheduler

Publishes recorded messages with their original relative timing and handles
the interactive transport controls (halt, resume, skip, restart, quit).

State machine:

    SEEKING -> PLAYING <-> HALTED
                  |           |
                  v           v
              FINISHED     ABORTED

Deadlines are computed from an anchor taken when playback leaves SEEKING:

    target = anchor_wallclock + (message_millis - anchor_message_millis) + halt_offset

The wait is a cooperative poll loop with a short sleep; the halt and abort
flags are checked on every iteration.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..common.errors import PublishFailure
from ..common.utils import monotonic_millis, MILLISECONDS_PER_SECOND
from .controls import ControlEvent, KEY_HELP
from .cursor import Frame, PlaybackCursor

logger = logging.getLogger('mqttreplay.replay')

POLL_INTERVAL_SEC = 0.0002  # 200 microseconds
DEFAULT_SKIP_SECONDS = 5


class PlaybackState(Enum):
    """Playback lifecycle."""

    SEEKING = "seeking"
    PLAYING = "playing"
    HALTED = "halted"
    FINISHED = "finished"
    ABORTED = "aborted"


TERMINAL_STATES = (PlaybackState.FINISHED, PlaybackState.ABORTED)


@dataclass
class PlaybackStats:
    """Counters for the end-of-replay summary."""

    published: int = 0
    failed: int = 0


class PacingScheduler:
    """
    Time-accurate replay of a recording onto a publisher.

    The publisher is anything with publish(topic, payload, qos=..., retain=...),
    normally a connected BrokerClient. The control source is anything with a
    blocking next_event() returning a ControlEvent or None; it is only
    consulted while halted.

    Example:
        scheduler = PacingScheduler(cursor, broker, start_offset_millis=2000)
        final_state = scheduler.run(TerminalControls())
    """

    def __init__(
        self,
        cursor: PlaybackCursor,
        publisher,
        start_offset_millis: int = 0,
        end_offset_millis: int = 0,
        skip_seconds: int = DEFAULT_SKIP_SECONDS,
        qos: int = 0,
        retain: bool = False,
        clock: Callable[[], float] = monotonic_millis,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = POLL_INTERVAL_SEC
    ):
        """
        Initialize the scheduler in the SEEKING state.

        Args:
            cursor: Cursor over the recording
            publisher: Object with publish(topic, payload, qos, retain)
            start_offset_millis: Relative time to start playing from
            end_offset_millis: Relative time after which playback ends (0 = end of file)
            skip_seconds: Step of the skip forward/backward controls
            qos: QoS used for every publish
            retain: Retain flag used for every publish
            clock: Monotonic clock in milliseconds
            sleep: Sleep function taking seconds
            poll_interval: Sleep between deadline checks, in seconds
        """
        self.cursor = cursor
        self.publisher = publisher
        self.start_offset_millis = start_offset_millis
        self.end_offset_millis = end_offset_millis
        self.skip_seconds = skip_seconds
        self.qos = qos
        self.retain = retain
        self.clock = clock
        self.sleep = sleep
        self.poll_interval = poll_interval

        self.state = PlaybackState.SEEKING
        self.stats = PlaybackStats()

        self.anchor_message_millis = 0
        self.anchor_wallclock = 0.0
        self.halt_offset_millis = 0.0

        self._halt_started: Optional[float] = None
        self._pending: Optional[Frame] = None
        self._halt_requested = threading.Event()
        self._abort_requested = threading.Event()

    # ------------------------------------------------------------------
    # External requests (safe from signal handlers and other threads)
    # ------------------------------------------------------------------

    def request_halt(self) -> None:
        self._halt_requested.set()

    def request_abort(self) -> None:
        self._abort_requested.set()

    def interrupt(self) -> bool:
        """
        Handle an interrupt signal.

        The first interrupt halts playback; one arriving while halted (or
        while a halt is still pending) aborts it.

        Returns:
            True if this interrupt requested an abort
        """
        if self.state == PlaybackState.HALTED or self._halt_requested.is_set():
            self.request_abort()
            return True

        self.request_halt()
        return False

    # ------------------------------------------------------------------
    # Transport operations
    # ------------------------------------------------------------------

    def play_from(self, target_millis: int) -> bool:
        """
        Seek to target_millis, publish the message found there immediately and
        re-anchor playback on it.

        Returns:
            True if playback continues, False if the recording (or the
            configured end time) was reached
        """
        self.state = PlaybackState.SEEKING
        self.halt_offset_millis = 0.0
        self._pending = None

        frame = self.cursor.seek_to_relative_time(target_millis)
        if frame is None:
            logger.info("End of recording reached")
            self.state = PlaybackState.FINISHED
            return False

        if self._past_end(frame):
            logger.info("Requested end time reached")
            self.state = PlaybackState.FINISHED
            return False

        self.anchor_message_millis = frame.message.captured_at_millis
        self.anchor_wallclock = self.clock()
        self._publish(frame)

        self.state = PlaybackState.PLAYING
        return True

    def skip(self, seconds: int) -> bool:
        """Jump seconds forward (or backward if negative) from the current position."""
        target = self.cursor.current_relative_millis + seconds * MILLISECONDS_PER_SECOND
        return self.play_from(max(0, target))

    def restart(self) -> bool:
        return self.play_from(0)

    def halt(self) -> None:
        """Freeze playback; the paused time is excluded from future deadlines."""
        self._halt_requested.clear()
        self._halt_started = self.clock()
        self.state = PlaybackState.HALTED
        logger.info("Playback halted, press <space> to continue")

    def resume(self) -> None:
        """Continue after a halt, shifting all deadlines by the paused duration."""
        if self._halt_started is not None:
            self.halt_offset_millis += self.clock() - self._halt_started
            self._halt_started = None
        self.state = PlaybackState.PLAYING

    def target_wallclock(self, frame: Frame) -> float:
        """Wall-clock time (milliseconds) at which frame is due."""
        return (self.anchor_wallclock
                + (frame.message.captured_at_millis - self.anchor_message_millis)
                + self.halt_offset_millis)

    def play_next_message(self) -> bool:
        """
        Wait for the next message's deadline and publish it.

        If a halt or abort is requested during the wait, the message stays
        pending and is published after resuming.

        Returns:
            False once the recording or the end time is reached
        """
        if self._pending is None:
            frame = self.cursor.read_next()
            if frame is None:
                logger.info("End of recording reached")
                self.state = PlaybackState.FINISHED
                return False

            if self._past_end(frame):
                logger.info("Requested end time reached")
                self.state = PlaybackState.FINISHED
                return False

            self._pending = frame

        frame = self._pending
        if not self._wait_until(self.target_wallclock(frame)):
            return True

        self._pending = None
        self._publish(frame)
        return True

    def handle_event(self, event: Optional[ControlEvent]) -> None:
        """Apply a control event received while halted."""
        if event is ControlEvent.RESUME:
            self.resume()
        elif event is ControlEvent.SKIP_FORWARD:
            self.skip(self.skip_seconds)
        elif event is ControlEvent.SKIP_BACKWARD:
            self.skip(-self.skip_seconds)
        elif event is ControlEvent.RESTART:
            self.restart()
        elif event is ControlEvent.QUIT:
            logger.info("Exit requested")
            self.state = PlaybackState.ABORTED
        else:
            print(KEY_HELP)

    def run(self, controls=None) -> PlaybackState:
        """
        Play the recording until it finishes or is aborted.

        Args:
            controls: Source of ControlEvents used while halted. Without one,
                a halt request ends playback as ABORTED.

        Returns:
            The terminal state (FINISHED or ABORTED)
        """
        if self.state == PlaybackState.SEEKING:
            self.play_from(self.start_offset_millis)

        while self.state not in TERMINAL_STATES:
            if self._abort_requested.is_set():
                logger.info("Exit requested")
                self.state = PlaybackState.ABORTED
                break

            if self._halt_requested.is_set() and self.state == PlaybackState.PLAYING:
                # No control source: a halt request ends playback instead of pausing it
                if controls is None:
                    logger.info("Playback interrupted, no terminal for controls")
                    self.state = PlaybackState.ABORTED
                    break
                self.halt()

            if self.state == PlaybackState.HALTED:
                self.handle_event(controls.next_event())
                continue

            self.play_next_message()

        logger.info("Replay finished")
        return self.state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _past_end(self, frame: Frame) -> bool:
        return (self.end_offset_millis > 0
                and self.cursor.relative_millis(frame.message) > self.end_offset_millis)

    def _wait_until(self, target: float) -> bool:
        """Poll until target; False if interrupted by a halt or abort request."""
        while True:
            if self._halt_requested.is_set() or self._abort_requested.is_set():
                return False
            if self.clock() >= target:
                return True
            self.sleep(self.poll_interval)

    def _publish(self, frame: Frame) -> None:
        message = frame.message
        relative_sec = self.cursor.relative_millis(message) / MILLISECONDS_PER_SECOND
        logger.info(f"t={relative_sec:6.2f} s, {frame.length:6d} bytes, topic={message.topic}")

        try:
            self.publisher.publish(message.topic, message.payload, qos=self.qos, retain=self.retain)
            self.stats.published += 1
        except PublishFailure as e:
            self.stats.failed += 1
            logger.warning(f"Publish failed, skipping message: {e}")
