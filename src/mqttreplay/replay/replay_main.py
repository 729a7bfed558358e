#!/usr/bin/env python3
"""
mqtt-replay - play an MQTT recording back onto a broker

Publishes the messages of a recording made by mqtt-record with their
original relative timing.

Interactive controls:
    Ctrl+C          halt playback (a second Ctrl+C exits)
    <space>         continue after a halt
    <right arrow>   skip forward 5 seconds
    <left arrow>    skip backward 5 seconds
    <up arrow>      restart from the beginning
    q               quit

Usage:
    mqtt-replay -i recording.mqtt -b tcp://localhost:1883 -s 30 -e 90
"""

import argparse
import signal
import sys
from typing import List, Optional

from .. import __version__
from ..common.broker import BrokerClient
from ..common.errors import ConnectionFailure, FileOpenFailure
from ..common.utils import setup_logging
from .controls import TerminalControls
from .cursor import PlaybackCursor, open_recording
from .replay_config import PlayerConfig
from .scheduler import PacingScheduler, PlaybackState


def parse_args(argv: Optional[List[str]] = None):
    """
    Parse command-line arguments.

    Flags default to None so that only explicitly given ones override a
    --config file.
    """
    parser = argparse.ArgumentParser(
        prog='mqtt-replay',
        description="Replay an MQTT recording with its original timing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i recording.mqtt
  %(prog)s -i recording.mqtt -b tcp://broker.local:1883
  %(prog)s -i recording.mqtt -s 30 -e 90
  %(prog)s -c player.yaml

Press Ctrl+C to halt playback, then use the arrow keys to seek.
        """
    )

    parser.add_argument('-b', '--broker', metavar='URL',
                        help='MQTT broker URL (default: tcp://localhost:1883)')
    parser.add_argument('-i', '--input', metavar='PATH',
                        help='Input recording file (REQUIRED)')
    parser.add_argument('-s', '--start', type=int, metavar='SEC',
                        help='Starting time offset in seconds (default: 0)')
    parser.add_argument('-e', '--end', type=int, metavar='SEC',
                        help='End time in seconds, 0 plays the full file (default: 0)')
    parser.add_argument('-v', '--verbosity', type=int, choices=[0, 1, 2],
                        help='Verbosity level: off (0), info (1), debug (2) (default: 1)')
    parser.add_argument('-c', '--config', metavar='PATH',
                        help='YAML configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser.parse_args(argv)


def build_config(args) -> PlayerConfig:
    """Merge the optional YAML config with explicitly given flags."""
    config = PlayerConfig.from_yaml(args.config) if args.config else PlayerConfig()

    for name in ('broker', 'input', 'start', 'end', 'verbosity'):
        value = getattr(args, name)
        if value is not None:
            setattr(config, name, value)

    return config


def print_banner(config: PlayerConfig) -> None:
    print(f"MQTT Recording Replay v{__version__}")
    print(f"- MQTT broker:      {config.broker}")
    print(f"- Input filename:   {config.input}")
    if config.end > 0:
        print(f"- Interval:         {config.start} - {config.end} sec.")
    elif config.start > 0:
        print(f"- Start time:       {config.start} sec.")
    print()


def run(argv: Optional[List[str]] = None) -> int:
    """
    Run a playback session.

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    try:
        config = build_config(args)
        config.validate()
    except (OSError, ValueError) as e:
        print(f"❌ ERROR: {e}", file=sys.stderr)
        print("Run with --help for usage.", file=sys.stderr)
        return 1

    logger = setup_logging(config.verbosity)
    print_banner(config)

    try:
        recording = open_recording(config.input)
    except FileOpenFailure as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    with recording:
        try:
            broker = BrokerClient(config.broker, client_id=config.client_id)
            broker.connect()
        except ConnectionFailure as e:
            print(f"❌ Error connecting to MQTT broker: {e}", file=sys.stderr)
            return 1
        logger.debug("Success connecting to MQTT broker")

        scheduler = PacingScheduler(
            PlaybackCursor(recording),
            broker,
            start_offset_millis=config.start_millis,
            end_offset_millis=config.end_millis,
            skip_seconds=config.skip_seconds,
            qos=config.qos,
            retain=config.retain,
        )

        def handle_sigint(signum, frame):
            if scheduler.interrupt():
                # Unblock a pending key read or publish wait
                raise KeyboardInterrupt

        signal.signal(signal.SIGINT, handle_sigint)

        controls = TerminalControls() if sys.stdin.isatty() else None

        try:
            final_state = scheduler.run(controls)
        except KeyboardInterrupt:
            logger.info("Exit requested")
            final_state = PlaybackState.ABORTED
        finally:
            broker.disconnect()

    stats = scheduler.stats
    print(f"\n📊 Replay {final_state.value}: {stats.published} published, {stats.failed} failed")
    return 0


def main():
    """Console script entry point."""
    sys.exit(run())


if __name__ == '__main__':
    main()
