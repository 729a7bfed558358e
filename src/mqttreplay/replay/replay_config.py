"""
Player configuration.

Defaults match the mqtt-replay CLI flags. A YAML file can provide the same
keys; flags given on the command line override it.

Example YAML:

    broker: tcp://broker.local:1883
    input: recording.mqtt
    start: 30        # seconds
    end: 90          # seconds, 0 plays to the end
    verbosity: 1
"""

from dataclasses import dataclass, fields
from typing import Dict, Any

import yaml

from ..common.broker import DEFAULT_BROKER_URL
from ..common.utils import MILLISECONDS_PER_SECOND
from .scheduler import DEFAULT_SKIP_SECONDS


@dataclass
class PlayerConfig:
    """Configuration for a playback session."""

    input: str = ''
    broker: str = DEFAULT_BROKER_URL
    start: int = 0
    end: int = 0
    verbosity: int = 1
    qos: int = 0
    retain: bool = False
    skip_seconds: int = DEFAULT_SKIP_SECONDS
    client_id: str = ''

    @property
    def start_millis(self) -> int:
        return self.start * MILLISECONDS_PER_SECOND

    @property
    def end_millis(self) -> int:
        return self.end * MILLISECONDS_PER_SECOND

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlayerConfig':
        """Create config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'PlayerConfig':
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
        if not self.input:
            raise ValueError("Input file name not set")
        if not self.broker:
            raise ValueError("Broker URL must not be empty")
        if self.start < 0:
            raise ValueError(f"Start time must not be negative, got {self.start}")
        if self.end < 0:
            raise ValueError(f"End time must not be negative, got {self.end}")
        if self.end > 0 and self.end <= self.start:
            raise ValueError(f"End time ({self.end}s) must be after start time ({self.start}s)")
        if not 0 <= self.verbosity <= 2:
            raise ValueError(f"Verbosity must be 0, 1 or 2, got {self.verbosity}")
        if self.qos not in (0, 1, 2):
            raise ValueError(f"QoS must be 0, 1 or 2, got {self.qos}")
        if self.skip_seconds <= 0:
            raise ValueError(f"Skip step must be positive, got {self.skip_seconds}")
