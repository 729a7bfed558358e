"""
mqtt-record-replay Replay Module

Time-accurate playback of MQTT recordings.

This module provides:
- Sequential playback cursor with seek and restart
- Pacing scheduler with halt, resume and skip controls
- Raw terminal key controls
"""

from .cursor import PlaybackCursor, Frame, open_recording
from .scheduler import PacingScheduler, PlaybackState, PlaybackStats
from .controls import ControlEvent, TerminalControls, parse_key_sequence
from .replay_config import PlayerConfig

__all__ = [
    'PlaybackCursor',
    'Frame',
    'open_recording',
    'PacingScheduler',
    'PlaybackState',
    'PlaybackStats',
    'ControlEvent',
    'TerminalControls',
    'parse_key_sequence',
    'PlayerConfig',
]
