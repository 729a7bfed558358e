#!/usr/bin/env python3
"""
mqtt-record - record MQTT traffic to a file

This is a convenience wrapper that calls the packaged implementation.
The actual implementation is in src/mqttreplay/capture/record_main.py

Usage:
    python mqtt-record.py -b tcp://localhost:1883 -t "sensors/#" -o sensors.mqtt
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from mqttreplay.capture.record_main import main

if __name__ == '__main__':
    main()
