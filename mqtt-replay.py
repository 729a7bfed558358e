#!/usr/bin/env python3
"""
mqtt-replay - play an MQTT recording back onto a broker

This is a convenience wrapper that calls the packaged implementation.
The actual implementation is in src/mqttreplay/replay/replay_main.py

Usage:
    python mqtt-replay.py -i sensors.mqtt -b tcp://localhost:1883
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from mqttreplay.replay.replay_main import main

if __name__ == '__main__':
    main()
