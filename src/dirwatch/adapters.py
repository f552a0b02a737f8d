"""Adapters deciding when, and for which directories, a diff runs."""

import importlib
import logging
import os
import sys
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Set, Tuple, Type

from watchdog.events import FileSystemEventHandler

from .config import DEFAULT_LATENCY, DEFAULT_POLLING_LATENCY
from .exceptions import (
    AdapterUnavailableError,
    ConfigurationError,
    WatcherAlreadyRunningError,
)

logger = logging.getLogger(__name__)

OnChange = Callable[[Set[str], bool], object]


class AdapterKind(Enum):
    """Available adapter variants."""
    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"
    POLLING = "polling"


class Adapter(ABC):
    """
    Base adapter.

    A single worker thread delivers every ``on_change`` call, so calls
    into the diff engine never overlap.
    """

    kind: AdapterKind
    default_latency: float = DEFAULT_LATENCY

    def __init__(self, directory: str, on_change: OnChange, latency: Optional[float] = None):
        """
        Initialize the adapter.

        Args:
            directory: Watched root directory
            on_change: Called with (directories, recursive) when something changed
            latency: Seconds between deliveries (default: the adapter's default)
        """
        self.directory = os.path.abspath(directory)
        self.on_change = on_change
        self.latency = self.default_latency
        if latency is not None:
            self.configure(latency)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def usable(cls) -> bool:
        """Check if the adapter can run on this platform."""
        return True

    def configure(self, latency: float) -> None:
        """Set the delay between two deliveries."""
        if latency <= 0:
            raise ConfigurationError(f"latency must be positive: {latency}")
        self.latency = latency

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        """
        Start producing change notifications.

        Raises:
            WatcherAlreadyRunningError: If already started
        """
        with self._lock:
            if self._thread is not None:
                raise WatcherAlreadyRunningError(f"{self.kind.value} adapter is already running")

            self._stop_event.clear()
            self._start_source()
            self._thread = threading.Thread(
                target=self._delivery_loop,
                name=f"dirwatch-{self.kind.value}",
                daemon=True,
            )
            self._thread.start()

        logger.info(f"Started {self.kind.value} adapter on {self.directory} (latency={self.latency}s)")

    def stop(self) -> None:
        """Stop producing notifications; no callback runs after this returns."""
        with self._lock:
            thread, self._thread = self._thread, None
        if thread is None:
            return

        self._stop_event.set()
        self._stop_source()
        if thread is not threading.current_thread():
            thread.join(timeout=5.0)
        logger.info(f"Stopped {self.kind.value} adapter on {self.directory}")

    def _delivery_loop(self) -> None:
        """Worker loop that periodically hands dirty directories to the listener."""
        logger.debug(f"Delivery loop started, interval={self.latency}s")

        while not self._stop_event.wait(timeout=self.latency):
            directories, recursive = self._collect()
            if not directories or self._stop_event.is_set():
                continue
            logger.debug(f"Delivering {len(directories)} dirty directories (recursive={recursive})")
            try:
                self.on_change(directories, recursive)
            except Exception:
                logger.exception(f"Diff failed for {sorted(directories)}")

    def _start_source(self) -> None:
        pass

    def _stop_source(self) -> None:
        pass

    @abstractmethod
    def _collect(self) -> Tuple[Set[str], bool]:
        """Return the directories to diff and whether to diff them recursively."""


class PollingAdapter(Adapter):
    """Diffs the whole tree recursively at a fixed interval."""

    kind = AdapterKind.POLLING
    default_latency = DEFAULT_POLLING_LATENCY

    def _collect(self) -> Tuple[Set[str], bool]:
        return {self.directory}, True


class DirtyDirectoryHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to dirty directory paths."""

    def __init__(self, callback: Callable[[Set[str]], None]):
        super().__init__()
        self.callback = callback

    def _emit(self, paths: Iterable, is_directory: bool) -> None:
        """Mark the parents of the paths dirty, and the paths themselves for directories."""
        directories = set()
        for raw_path in paths:
            path = os.path.abspath(os.fsdecode(raw_path))
            directories.add(os.path.dirname(path))
            if is_directory:
                directories.add(path)
        self.callback(directories)

    def on_created(self, event):
        self._emit([event.src_path], event.is_directory)

    def on_deleted(self, event):
        self._emit([event.src_path], event.is_directory)

    def on_modified(self, event):
        self._emit([event.src_path], event.is_directory)

    def on_moved(self, event):
        self._emit([event.src_path, event.dest_path], event.is_directory)


class NativeAdapter(Adapter):
    """
    Adapter backed by a platform-specific watchdog observer.

    Events are folded into a set of dirty directories which the worker
    thread delivers non-recursively once per latency period.
    """

    platforms: Tuple[str, ...] = ()
    observer_path: str = ""

    def __init__(self, directory: str, on_change: OnChange, latency: Optional[float] = None):
        super().__init__(directory, on_change, latency)
        self._dirty: Set[str] = set()
        self._dirty_lock = threading.Lock()
        self._observer = None

    @classmethod
    def observer_class(cls):
        """Import the watchdog observer class for this platform."""
        module_name, _, class_name = cls.observer_path.rpartition(".")
        return getattr(importlib.import_module(module_name), class_name)

    @classmethod
    def usable(cls) -> bool:
        if not sys.platform.startswith(cls.platforms):
            return False
        try:
            cls.observer_class()
        except (ImportError, AttributeError, OSError):
            return False
        return True

    def _mark_dirty(self, directories: Set[str]) -> None:
        with self._dirty_lock:
            self._dirty.update(directories)

    def _collect(self) -> Tuple[Set[str], bool]:
        with self._dirty_lock:
            directories, self._dirty = self._dirty, set()
        return directories, False

    def _start_source(self) -> None:
        observer = self.observer_class()()
        observer.schedule(DirtyDirectoryHandler(self._mark_dirty), self.directory, recursive=True)
        observer.start()
        self._observer = observer

    def _stop_source(self) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
        with self._dirty_lock:
            self._dirty.clear()


class LinuxAdapter(NativeAdapter):
    """inotify-based adapter."""

    kind = AdapterKind.LINUX
    platforms = ("linux",)
    observer_path = "watchdog.observers.inotify.InotifyObserver"


class DarwinAdapter(NativeAdapter):
    """FSEvents-based adapter."""

    kind = AdapterKind.DARWIN
    platforms = ("darwin",)
    observer_path = "watchdog.observers.fsevents.FSEventsObserver"


class WindowsAdapter(NativeAdapter):
    """ReadDirectoryChangesW-based adapter."""

    kind = AdapterKind.WINDOWS
    platforms = ("win32", "cygwin")
    observer_path = "watchdog.observers.read_directory_changes.WindowsApiObserver"


NATIVE_ADAPTERS: Tuple[Type[NativeAdapter], ...] = (LinuxAdapter, DarwinAdapter, WindowsAdapter)

ADAPTERS: Dict[AdapterKind, Type[Adapter]] = {
    cls.kind: cls for cls in NATIVE_ADAPTERS + (PollingAdapter,)
}


def native_adapter_class() -> Optional[Type[NativeAdapter]]:
    """Return the native adapter usable on this platform, if any."""
    for cls in NATIVE_ADAPTERS:
        if cls.usable():
            return cls
    return None


def select_adapter(
    directory: str,
    on_change: OnChange,
    polling: Optional[bool] = None,
    latency: Optional[float] = None,
) -> Adapter:
    """
    Pick and build the adapter for a listener.

    Args:
        directory: Watched root directory
        on_change: Listener entry point
        polling: True forces polling, False requires a native adapter,
            None prefers native and falls back to polling
        latency: Seconds between deliveries

    Raises:
        AdapterUnavailableError: If polling is False and no native adapter is usable
    """
    if polling:
        return PollingAdapter(directory, on_change, latency)

    cls = native_adapter_class()
    if cls is None:
        if polling is False:
            raise AdapterUnavailableError(f"No native adapter available on {sys.platform}")
        logger.warning(f"No native adapter available on {sys.platform}, falling back to polling")
        return PollingAdapter(directory, on_change, latency)
    return cls(directory, on_change, latency)


def create_adapter(
    kind: AdapterKind,
    directory: str,
    on_change: OnChange,
    latency: Optional[float] = None,
) -> Adapter:
    """
    Build a specific adapter variant.

    Raises:
        AdapterUnavailableError: If the variant cannot run on this platform
    """
    cls = ADAPTERS[kind]
    if not cls.usable():
        raise AdapterUnavailableError(f"{kind.value} adapter is not available on {sys.platform}")
    return cls(directory, on_change, latency)
