#!/usr/bin/env python3
"""
mqtt-record - record MQTT traffic to a file

Subscribes to a topic filter and writes every received message, timestamped
at receipt, to a recording file that mqtt-replay can play back.

Usage:
    mqtt-record -b tcp://localhost:1883 -t "sensors/#" -o recording-$topic-$time.mqtt

Requirements:
    pip install paho-mqtt msgpack pyyaml
"""

import argparse
import signal
import sys
from typing import List, Optional

from .. import __version__
from ..common.broker import BrokerClient
from ..common.errors import (
    ConnectionFailure,
    EncodeError,
    FileCreateFailure,
    RecordingError,
    SubscriptionFailure,
)
from ..common.utils import setup_logging, expand_output_filename
from .record_config import RecorderConfig
from .recorder import Recorder, RecordingSession, create_recording_file
from .stats import TopicStatistics


# ============================================================================
# COMMAND-LINE INTERFACE
# ============================================================================

def parse_args(argv: Optional[List[str]] = None):
    """
    Parse command-line arguments.

    Flags default to None so that only explicitly given ones override a
    --config file.

    Returns:
        Namespace object with parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog='mqtt-record',
        description="Record MQTT messages to a file for later replay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s -b tcp://broker.local:1883 -t "sensors/#"
  %(prog)s -t "test/topic" -o test.mqtt -s
  %(prog)s -c recorder.yaml -v 2

Output filename tokens:
  $topic  subscribed topic filter, "/" replaced by "_"
  $time   start time as YYYY-MM-DDTHHMMSS

Press Ctrl+C to stop recording.
        """
    )

    parser.add_argument('-b', '--broker', metavar='URL',
                        help='MQTT broker URL (default: tcp://localhost:1883)')
    parser.add_argument('-t', '--topic', metavar='FILTER',
                        help='MQTT topic filter to subscribe (default: #)')
    parser.add_argument('-o', '--output', metavar='PATH',
                        help='Output file name (default: recording-$topic-$time.mqtt)')
    parser.add_argument('-v', '--verbosity', type=int, choices=[0, 1, 2],
                        help='Verbosity level: off (0), info (1), debug (2) (default: 1)')
    parser.add_argument('-s', '--stats', action='store_true', default=None,
                        help='Print regular message statistics per topic')
    parser.add_argument('-c', '--config', metavar='PATH',
                        help='YAML configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser.parse_args(argv)


def build_config(args) -> RecorderConfig:
    """Merge the optional YAML config with explicitly given flags."""
    config = RecorderConfig.from_yaml(args.config) if args.config else RecorderConfig()

    for name in ('broker', 'topic', 'output', 'verbosity', 'stats'):
        value = getattr(args, name)
        if value is not None:
            setattr(config, name, value)

    return config


def print_banner(config: RecorderConfig, filename: str) -> None:
    print(f"MQTT Recorder v{__version__}")
    print(f"- MQTT broker:      {config.broker}")
    print(f"- Subscribe topic:  {config.topic}")
    print(f"- Output filename:  {filename}")
    print()


def print_statistics(statistics: TopicStatistics) -> None:
    print("Message Statistics by Topic:")
    for line in statistics.format_table():
        print(line)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def run(argv: Optional[List[str]] = None) -> int:
    """
    Run a recording session.

    Flow:
    1. Load configuration and resolve the output filename
    2. Create the output file and connect to the broker
    3. Subscribe and record until SIGINT/SIGTERM
    4. Print statistics and close the file

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    try:
        config = build_config(args)
        config.validate()
    except (OSError, ValueError) as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(config.verbosity)
    filename = expand_output_filename(config.output, config.topic)
    print_banner(config, filename)

    try:
        output = create_recording_file(filename)
    except FileCreateFailure as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    statistics = TopicStatistics()

    with output:
        try:
            broker = BrokerClient(config.broker, client_id=config.client_id)
            broker.connect()
        except ConnectionFailure as e:
            print(f"❌ Error connecting to MQTT broker: {e}", file=sys.stderr)
            return 1
        logger.debug("Success connecting to MQTT broker")

        recorder = Recorder(output, statistics=statistics)
        session = RecordingSession(config, broker, recorder)

        def handle_signal(signum, frame):
            session.stop()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

        try:
            session.run()
        except SubscriptionFailure as e:
            print(f"❌ Error subscribing to MQTT topic: {e}", file=sys.stderr)
            return 1
        except (EncodeError, RecordingError) as e:
            print(f"❌ Recording aborted: {e}", file=sys.stderr)
            return 1
        finally:
            broker.disconnect()

    print()
    print_statistics(statistics)
    print(f"\n📊 Recorded {recorder.total_count} messages to {filename}")
    return 0


def main():
    """Console script entry point."""
    sys.exit(run())


if __name__ == '__main__':
    main()
