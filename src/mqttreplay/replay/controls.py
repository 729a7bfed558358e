"""
Interactive playback controls.

Turns raw terminal key presses into abstract control events for the pacing
scheduler, so the scheduler never deals with terminal modes or escape
sequences.
"""

import os
import sys
import termios
import tty
from enum import Enum
from typing import Optional

ETX = b'\x03'  # Ctrl+C in raw mode
ESC_SEQUENCE_PREFIX = b'\x1b['

KEY_HELP = """Unknown key, use:
  <space>       to play again
  <right arrow> to skip forwards
  <left arrow>  to skip backwards
  <up arrow>    to start from beginning
  q / Ctrl+C    to quit"""


class ControlEvent(Enum):
    """Transport control requested by the operator."""

    RESUME = "resume"
    SKIP_FORWARD = "skip_forward"
    SKIP_BACKWARD = "skip_backward"
    RESTART = "restart"
    QUIT = "quit"


_ARROW_KEYS = {
    b'A': ControlEvent.RESTART,        # up
    b'C': ControlEvent.SKIP_FORWARD,   # right
    b'D': ControlEvent.SKIP_BACKWARD,  # left
}


def parse_key_sequence(data: bytes) -> Optional[ControlEvent]:
    """
    Map the bytes of one key press to a control event.

    Args:
        data: Bytes read from a raw-mode terminal (1 to 3 bytes)

    Returns:
        ControlEvent, or None for keys without a binding
    """
    if not data:
        return None

    if data[:1] == ETX:
        return ControlEvent.QUIT

    # Three-byte control sequence "ESC [ x"
    if len(data) == 3 and data[:2] == ESC_SEQUENCE_PREFIX:
        return _ARROW_KEYS.get(data[2:3])

    if len(data) == 1:
        if data == b' ':
            return ControlEvent.RESUME
        if data in (b'q', b'Q'):
            return ControlEvent.QUIT

    return None


class TerminalControls:
    """
    Blocking key reader on a POSIX terminal.

    Each call switches stdin to raw mode for a single read and restores the
    previous settings afterwards, so log output between reads renders
    normally.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stdin

    def read_key(self) -> bytes:
        """Block until a key is pressed and return its raw bytes."""
        fd = self.stream.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setraw(fd)
            return os.read(fd, 3)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    def next_event(self) -> Optional[ControlEvent]:
        """
        Wait for the next key press.

        Returns:
            The mapped ControlEvent, or None for an unbound key
        """
        return parse_key_sequence(self.read_key())
