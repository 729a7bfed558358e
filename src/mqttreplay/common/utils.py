"""
Utility functions for mqtt-record-replay.

Provides helper functions for:
- Logging setup from a CLI verbosity level
- Wall-clock and monotonic time in milliseconds
- Output filename token substitution
"""

import logging
import time
from datetime import datetime
from typing import Optional

# Verbosity levels accepted by both CLIs
VERBOSITY_OFF = 0
VERBOSITY_INFO = 1
VERBOSITY_DEBUG = 2

# Time conversion
MILLISECONDS_PER_SECOND = 1000

# Output filename tokens
TOPIC_TOKEN = '$topic'
TIME_TOKEN = '$time'
FILENAME_TIME_FORMAT = '%Y-%m-%dT%H%M%S'

LOG_FORMAT = '%(asctime)s %(message)s'
LOG_DATE_FORMAT = '%Y/%m/%d %H:%M:%S'


def verbosity_to_level(verbosity: int) -> int:
    """
    Map a CLI verbosity level to a logging level.

    - 0: off (nothing below CRITICAL is emitted)
    - 1: info
    - 2 or more: debug
    """
    if verbosity <= VERBOSITY_OFF:
        return logging.CRITICAL + 1
    if verbosity == VERBOSITY_INFO:
        return logging.INFO
    return logging.DEBUG


def setup_logging(verbosity: int) -> logging.Logger:
    """
    Configure the package logger for console output.

    Args:
        verbosity: 0 (off), 1 (info) or 2 (debug)

    Returns:
        The configured 'mqttreplay' logger
    """
    logger = logging.getLogger('mqttreplay')
    logger.setLevel(verbosity_to_level(verbosity))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)

    return logger


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def monotonic_millis() -> float:
    """Monotonic clock in milliseconds, used for playback deadlines."""
    return time.monotonic_ns() / 1_000_000


def expand_output_filename(pattern: str, topic: str, now: Optional[datetime] = None) -> str:
    """
    Substitute the $topic and $time tokens of an output filename.

    Only the first occurrence of each token is replaced. Slashes in the
    topic filter become underscores so the result stays a single path
    component.

    Args:
        pattern: Filename pattern, e.g. "recording-$topic-$time.mqtt"
        topic: Subscribed topic filter
        now: Timestamp for $time (defaults to the current local time)

    Returns:
        Expanded filename

    Example:
        >>> expand_output_filename("rec-$topic.mqtt", "sensors/#")
        'rec-sensors_#.mqtt'
    """
    now = now or datetime.now()
    safe_topic = topic.replace('/', '_')

    filename = pattern.replace(TOPIC_TOKEN, safe_topic, 1)
    filename = filename.replace(TIME_TOKEN, now.strftime(FILENAME_TIME_FORMAT), 1)
    return filename
