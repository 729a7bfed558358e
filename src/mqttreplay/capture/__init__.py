"""
mqtt-record-replay Capture Module

Records MQTT traffic into length-prefixed recording files.

This module provides:
- Serialized, timestamped frame writing
- Per-topic delta time and size statistics
- Recording session with periodic reports
"""

from .recorder import Recorder, RecordingSession, create_recording_file
from .record_config import RecorderConfig
from .stats import TopicStatistics, TopicStats, StatValues

__all__ = [
    'Recorder',
    'RecordingSession',
    'create_recording_file',
    'RecorderConfig',
    'TopicStatistics',
    'TopicStats',
    'StatValues',
]
