"""
Per-topic message statistics for the recorder.

Tracks inter-message delta time and message size per topic with a streaming
mean, so each update is O(1) and no history is kept.
"""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class StatValues:
    """Running min/avg/max of one metric."""

    initialized: bool = False
    min: int = 0
    avg: float = 0.0
    max: int = 0

    def update(self, value: int, count: int) -> None:
        """
        Fold one sample into the statistics.

        Args:
            value: New sample
            count: Number of samples including this one (must be >= 1)
        """
        if not self.initialized:
            self.min = value
            self.max = value
            self.initialized = True

        self.avg = self.avg * (count - 1) / count + value / count

        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value


@dataclass
class TopicStats:
    """Statistics of a single topic."""

    last_msg_millis: int
    num_msgs: int = 0
    time_diff_millis: StatValues = field(default_factory=StatValues)
    msg_size_bytes: StatValues = field(default_factory=StatValues)


class TopicStatistics:
    """
    Statistics aggregate keyed by topic.

    The first message seen on a topic only starts tracking (its timestamp
    becomes the reference for the next delta); it is not counted and does
    not contribute to either average.
    """

    def __init__(self):
        self.topics: Dict[str, TopicStats] = {}

    def update(self, topic: str, millis: int, size: int) -> None:
        stats = self.topics.get(topic)
        if stats is None:
            self.topics[topic] = TopicStats(last_msg_millis=millis)
            return

        stats.num_msgs += 1
        stats.time_diff_millis.update(millis - stats.last_msg_millis, stats.num_msgs)
        stats.msg_size_bytes.update(size, stats.num_msgs)
        stats.last_msg_millis = millis

    def format_table(self) -> List[str]:
        """One line per topic, sorted alphabetically."""
        lines = []
        for topic in sorted(self.topics):
            stat = self.topics[topic]
            size = stat.msg_size_bytes
            delta = stat.time_diff_millis
            lines.append(
                f"{topic:<25}: {stat.num_msgs:5d} msg, "
                f"{size.min:6d}/{size.avg:6.0f}/{size.max:6d} byte, "
                f"{delta.min:4d}/{delta.avg:4.0f}/{delta.max:4d} ms delta (min/avg/max)"
            )
        return lines

    def __len__(self) -> int:
        return len(self.topics)
