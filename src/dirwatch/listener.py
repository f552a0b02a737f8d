"""Listener tying the diff engine to an adapter and a change callback."""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Union

from .adapters import Adapter, select_adapter
from .checksums import ChecksumStore
from .config import DEFAULT_IGNORED_PATHS, WatcherConfig
from .engine import DiffEngine
from .exceptions import RootNotFoundError, WatcherAlreadyRunningError
from .models import ChangeSet
from .rules import RuleSet
from .snapshot import SnapshotRegistry

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[List[str], List[str], List[str]], Any]


class Listener:
    """
    Watches a directory and reports modified, added and removed files.

    Example:
        listener = Listener("/srv/app", callback=print)
        listener.ignore("cache").filter(r"\\.py$").latency(0.5)
        listener.start()
    """

    def __init__(
        self,
        directory: Union[str, Path],
        callback: Optional[ChangeCallback] = None,
        config: Optional[WatcherConfig] = None,
    ):
        """
        Initialize the listener.

        Args:
            directory: Directory to watch
            callback: Called with (modified, added, removed) lists of
                root-relative paths whenever at least one is non-empty
            config: Listener configuration

        Raises:
            RootNotFoundError: If the directory does not exist
            InvalidPatternError: If a configured pattern is invalid
            AdapterUnavailableError: If a native adapter is required but missing
        """
        self.config = config or WatcherConfig()

        root = Path(directory).resolve()
        if not root.is_dir():
            raise RootNotFoundError(f"Directory does not exist: {root}")
        self._directory = str(root)

        self.rules = RuleSet(ignore=DEFAULT_IGNORED_PATHS)
        self.rules.ignore(*self.config.ignore_patterns)
        self.rules.filter(*self.config.filter_patterns)
        self.checksums = ChecksumStore(self.config.hash_algorithm)
        self.registry = SnapshotRegistry()
        self.engine = DiffEngine(self._directory, self.rules, self.checksums, self.registry)

        self._callback = callback
        self._adapter = select_adapter(
            self._directory,
            self.on_change,
            polling=self.config.polling,
            latency=self.config.latency,
        )
        self._running = False
        self._lock = threading.Lock()
        self._diff_lock = threading.Lock()

    @property
    def directory(self) -> str:
        return self._directory

    @property
    def adapter(self) -> Adapter:
        return self._adapter

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def ignore(self, *patterns: Any) -> "Listener":
        """
        Add ignored paths.

        Strings match the end of a path; compiled regular expressions and
        callables are accepted too.
        """
        self.rules.ignore(*patterns)
        self.config.ignore_patterns.extend(patterns)
        return self

    def filter(self, *patterns: Any) -> "Listener":
        """Add file filters; strings are regular expressions searched in the path."""
        self.rules.filter(*patterns)
        self.config.filter_patterns.extend(patterns)
        return self

    def latency(self, seconds: float) -> "Listener":
        """Set the delay between two adapter deliveries."""
        self._adapter.configure(seconds)
        self.config.latency = seconds
        return self

    def polling(self, force_or_disable: Optional[bool]) -> "Listener":
        """
        Force (True) or disable (False) the polling adapter.

        The adapter is rebound immediately, and restarted if the listener
        is running.
        """
        adapter = select_adapter(
            self._directory,
            self.on_change,
            polling=force_or_disable,
            latency=self.config.latency,
        )
        self.config.polling = force_or_disable

        with self._lock:
            previous, self._adapter = self._adapter, adapter
            running = self._running

        if running:
            previous.stop()
            adapter.start()
        return self

    def change(self, callback: ChangeCallback) -> "Listener":
        """Set the callback receiving (modified, added, removed)."""
        self._callback = callback
        return self

    def start(self) -> None:
        """
        Scan the directory, then start the adapter.

        Raises:
            RootNotFoundError: If the directory was removed or cannot be listed
            WatcherAlreadyRunningError: If already running
        """
        with self._lock:
            if self._running:
                raise WatcherAlreadyRunningError(f"Already listening to {self._directory}")
            self._running = True

        try:
            with self._diff_lock:
                self.engine.rebuild()
            self._adapter.start()
        except Exception:
            with self._lock:
                self._running = False
            raise
        logger.info(f"Listening to {self._directory} with {self._adapter.kind.value} adapter")

    def stop(self) -> None:
        """Stop the adapter. Does nothing if not running."""
        with self._lock:
            if not self._running:
                return
            self._running = False
        self._adapter.stop()
        logger.info(f"Stopped listening to {self._directory}")

    def on_change(self, directories: Iterable[str], recursive: bool = False) -> ChangeSet:
        """
        Diff the given directories and notify the callback of any change.

        The callback is skipped once stop() has been called, even for a
        diff that was already running.

        Args:
            directories: Directories to diff
            recursive: Diff every subdirectory as well

        Returns:
            The changes found, empty or not
        """
        with self._diff_lock:
            changes = self.engine.diff(directories, recursive=recursive)

        if changes.is_empty() or self._callback is None:
            return changes
        if not self.is_running:
            logger.debug(f"Dropping {len(changes)} changes after stop")
            return changes
        self._callback(*changes.as_tuple())
        return changes

    def __enter__(self) -> "Listener":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
