"""
mqtt-record-replay

Record MQTT traffic to a file and play it back with the original timing.
"""

__version__ = '2.0.0'
