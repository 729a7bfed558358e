"""
Recorder configuration.

Defaults match the mqtt-record CLI flags. A YAML file can provide the same
keys; flags given on the command line override it.

Example YAML:

    broker: tcp://broker.local:1883
    topic: sensors/#
    output: recording-$topic-$time.mqtt
    verbosity: 1
    stats: true
"""

from dataclasses import dataclass, fields
from typing import Dict, Any

import yaml

from ..common.broker import DEFAULT_BROKER_URL

DEFAULT_TOPIC = '#'
DEFAULT_OUTPUT = 'recording-$topic-$time.mqtt'
DEFAULT_REPORT_INTERVAL_SEC = 5


@dataclass
class RecorderConfig:
    """Configuration for a recording session."""

    broker: str = DEFAULT_BROKER_URL
    topic: str = DEFAULT_TOPIC
    output: str = DEFAULT_OUTPUT
    verbosity: int = 1
    stats: bool = False
    qos: int = 0
    client_id: str = ''
    report_interval: int = DEFAULT_REPORT_INTERVAL_SEC

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecorderConfig':
        """Create config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'RecorderConfig':
        """Load config from a YAML file."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Config file {yaml_path} must contain a mapping")
        return cls.from_dict(data or {})

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            ValueError: Describing the first invalid setting
        """
        if not self.broker:
            raise ValueError("Broker URL must not be empty")
        if not self.topic:
            raise ValueError("Topic filter must not be empty")
        if not self.output:
            raise ValueError("Output filename must not be empty")
        if not 0 <= self.verbosity <= 2:
            raise ValueError(f"Verbosity must be 0, 1 or 2, got {self.verbosity}")
        if self.qos not in (0, 1, 2):
            raise ValueError(f"QoS must be 0, 1 or 2, got {self.qos}")
        if self.report_interval <= 0:
            raise ValueError(f"Report interval must be positive, got {self.report_interval}")
