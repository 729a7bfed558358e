"""
Playback Cursor

Sequential reader over a recording file that tracks the logical playback
position. Recordings have no index, so seeking backwards re-scans from the
start of the file.
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from ..common.codec import RecordedMessage, read_frame
from ..common.errors import FileOpenFailure

logger = logging.getLogger('mqttreplay.replay')


@dataclass(frozen=True)
class Frame:
    """A message read from a recording and the size of its serialized body."""

    message: RecordedMessage
    length: int


def open_recording(path: str) -> BinaryIO:
    """
    Open a recording file for reading.

    Raises:
        FileOpenFailure: If the file cannot be opened
    """
    try:
        return open(path, 'rb')
    except OSError as e:
        raise FileOpenFailure(f"Error opening file for reading: {e}") from e


class PlaybackCursor:
    """
    Forward-only cursor with rewind-and-scan seeking.

    Attributes:
        recording_start_millis: Timestamp of the first frame ever read,
            None until the first successful read; never changes afterwards
        current_relative_millis: Relative timestamp of the most recently
            read frame; reset to 0 when the cursor rewinds

    Example:
        with open_recording('session.mqtt') as f:
            cursor = PlaybackCursor(f)
            frame = cursor.seek_to_relative_time(10_000)
            while frame is not None:
                print(frame.message.topic)
                frame = cursor.read_next()
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.recording_start_millis: Optional[int] = None
        self.current_relative_millis = 0

    def relative_millis(self, message: RecordedMessage) -> int:
        """Message timestamp relative to the recording start."""
        if self.recording_start_millis is None:
            return 0
        return message.captured_at_millis - self.recording_start_millis

    def read_next(self) -> Optional[Frame]:
        """
        Read the next frame.

        Returns:
            Frame, or None at end-of-stream (end of file or malformed frame)
        """
        result = read_frame(self.stream)
        if result is None:
            return None

        message, length = result
        if self.recording_start_millis is None:
            self.recording_start_millis = message.captured_at_millis

        self.current_relative_millis = self.relative_millis(message)
        return Frame(message=message, length=length)

    def rewind(self) -> None:
        """Go back to the first frame of the file."""
        self.stream.seek(0)
        self.current_relative_millis = 0

    def seek_to_relative_time(self, target_millis: int) -> Optional[Frame]:
        """
        Position the cursor on the first frame at or after target_millis.

        Targets at or behind the current position rewind to the file start
        first. Frames before the target are read and discarded; the frame
        that reaches the target is returned, not discarded.

        Args:
            target_millis: Relative time in milliseconds (negative means 0)

        Returns:
            The frame at the target, or None if the recording ends before it
        """
        target_millis = max(0, target_millis)

        if target_millis <= self.current_relative_millis:
            self.rewind()

        frame = self.read_next()
        while frame is not None and self.current_relative_millis < target_millis:
            frame = self.read_next()

        if frame is None:
            logger.debug(f"Seek to {target_millis} ms ran past the end of the recording")
        return frame

    def restart_from_beginning(self) -> Optional[Frame]:
        """Seek to the first frame of the recording."""
        return self.seek_to_relative_time(0)

    def __iter__(self) -> Iterator[Frame]:
        frame = self.read_next()
        while frame is not None:
            yield frame
            frame = self.read_next()
