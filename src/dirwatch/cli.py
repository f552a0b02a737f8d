"""
CLI printing the changes under a directory.

Usage:
    dirwatch /path/to/folder --filter 'py$' --ignore build
    python -m dirwatch.cli /path/to/folder --polling --latency 2
"""

import argparse
import logging
import signal
import sys
import time

from .config import WatcherConfig
from .exceptions import WatcherError
from .listener import Listener


logger = logging.getLogger("dirwatch.cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def print_changes(modified, added, removed):
    """Print one line per changed path."""
    for label, paths in (("modified", modified), ("added", added), ("removed", removed)):
        for path in paths:
            print(f"{label}: {path}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirwatch",
        description="Print files modified, added or removed under a directory",
    )
    parser.add_argument("directory", help="Directory to watch")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--ignore", nargs="+", default=[], help="Path suffixes to ignore")
    parser.add_argument("--filter", nargs="+", default=[], help="Regular expressions files must match")
    parser.add_argument("--latency", type=float, help="Seconds between checks")

    polling = parser.add_mutually_exclusive_group()
    polling.add_argument("--polling", dest="polling", action="store_true", default=None, help="Force the polling adapter")
    polling.add_argument("--no-polling", dest="polling", action="store_false", help="Require a native adapter")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = WatcherConfig(
            ignore_patterns=list(args.ignore),
            filter_patterns=list(args.filter),
            latency=args.latency,
            polling=args.polling,
        )
        listener = Listener(args.directory, callback=print_changes, config=config)
    except WatcherError as e:
        logger.error(str(e))
        return 1

    shutdown = GracefulShutdown()

    with listener:
        logger.info(f"Watching {listener.directory}")
        logger.info("Press Ctrl+C to stop")
        while not shutdown.should_exit:
            time.sleep(0.2)

    logger.info("Listener stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
