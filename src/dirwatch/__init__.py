"""
dirwatch

Reports which files under a directory were modified, added or removed.

Features:
- Full scan once, then incremental diffs of the directories reported dirty
- Native change sources (inotify, FSEvents, ReadDirectoryChangesW) via watchdog
- Polling fallback for platforms without a native source
- Ignore and filter rules as suffixes, globs, regular expressions or callables
- Content hashing to catch changes made within the same second as a diff
"""

from .models import (
    EntryKind,
    ChangeSet,
    compute_file_hash,
)

from .config import (
    WatcherConfig,
    DEFAULT_IGNORED_PATHS,
    DEFAULT_LATENCY,
    DEFAULT_POLLING_LATENCY,
)

from .exceptions import (
    WatcherError,
    ConfigurationError,
    InvalidPatternError,
    AdapterUnavailableError,
    RootNotFoundError,
    ChecksumError,
    WatcherAlreadyRunningError,
    WatcherNotRunningError,
)

from .rules import RuleSet, Suffix, Glob, Regex
from .checksums import ChecksumStore
from .snapshot import SnapshotRegistry
from .engine import DiffEngine
from .adapters import (
    Adapter,
    AdapterKind,
    PollingAdapter,
    LinuxAdapter,
    DarwinAdapter,
    WindowsAdapter,
    select_adapter,
    create_adapter,
)
from .listener import Listener


__all__ = [
    # Models
    "EntryKind",
    "ChangeSet",
    "compute_file_hash",
    # Config
    "WatcherConfig",
    "DEFAULT_IGNORED_PATHS",
    "DEFAULT_LATENCY",
    "DEFAULT_POLLING_LATENCY",
    # Exceptions
    "WatcherError",
    "ConfigurationError",
    "InvalidPatternError",
    "AdapterUnavailableError",
    "RootNotFoundError",
    "ChecksumError",
    "WatcherAlreadyRunningError",
    "WatcherNotRunningError",
    # Components
    "RuleSet",
    "Suffix",
    "Glob",
    "Regex",
    "ChecksumStore",
    "SnapshotRegistry",
    "DiffEngine",
    # Adapters
    "Adapter",
    "AdapterKind",
    "PollingAdapter",
    "LinuxAdapter",
    "DarwinAdapter",
    "WindowsAdapter",
    "select_adapter",
    "create_adapter",
    # Listener
    "Listener",
]

__version__ = "0.1.0"
