"""
mpris-notifier: XDG desktop notifications for MPRIS track changes.

Usage:
    mpris-notifier [--config PATH] [--log-file PATH]
    python -m mpris_notifier
"""

import argparse
import signal
import sys
from pathlib import Path

from . import __version__
from .art import ArtFetcher
from .configuration import ConfigurationError, configuration_path, load_configuration
from .dbus_connection import DBusConnection, DBusError
from .log import DEFAULT_LOG_FILE, log, set_log_file
from .mpris import subscribe_mpris
from .notifier import Notifier
from .signal_handler import SignalHandler, SignalHandlerError


class App:
    """Main loop: receive a signal (or time out), handle it, send what's due"""

    def __init__(self, configuration, connection):
        self.connection = connection
        self.signal_handler = SignalHandler(
            configuration,
            Notifier(configuration),
            art_fetcher=ArtFetcher(configuration),
        )

    def run_once(self):
        try:
            message = self.connection.next_signal()
            if message is not None:
                self.signal_handler.handle_signal(message)
        except (DBusError, SignalHandlerError) as e:
            log(f"[Error] {e}")

        try:
            self.signal_handler.handle_pending(self.connection)
        except DBusError as e:
            log(f"[Error] Sending notification failed: {e}")

    def event_loop(self):
        """Blocks, acting as the main loop"""
        log("[Init] Listening for MPRIS signals...")
        try:
            while True:
                self.run_once()
        except KeyboardInterrupt:
            log("[Init] Shutting down...")


def _terminate(signum, frame):
    raise KeyboardInterrupt


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='mpris-notifier',
        description='Desktop notifications for MPRIS media player track changes',
    )
    parser.add_argument('--config', type=Path, default=None,
                        help=f'Configuration file (default: {configuration_path()})')
    parser.add_argument('--log-file', default=DEFAULT_LOG_FILE,
                        help='Also append log messages to this file; empty to disable')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    set_log_file(args.log_file)
    log(f"[Init] mpris-notifier {__version__} starting")

    try:
        configuration = load_configuration(args.config)
    except ConfigurationError as e:
        log(f"[Error] {e}")
        return 1

    try:
        connection = DBusConnection.connect()
        subscribe_mpris(connection)
    except DBusError as e:
        log(f"[Error] {e}")
        return 1

    signal.signal(signal.SIGTERM, _terminate)
    App(configuration, connection).event_loop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
