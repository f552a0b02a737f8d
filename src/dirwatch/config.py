"""Configuration for the dirwatch package."""

import hashlib
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .exceptions import ConfigurationError


# Paths ignored by every listener unless the rule set is built without them
DEFAULT_IGNORED_PATHS = (
    ".bundle",
    ".git",
    ".svn",
    ".hg",
    ".DS_Store",
    "log",
    "tmp",
    "vendor",
)

# Seconds between deliveries of collected native events
DEFAULT_LATENCY = 0.1

# Seconds between two polls of the whole tree
DEFAULT_POLLING_LATENCY = 1.0


@dataclass
class WatcherConfig:
    """
    Configuration options for a listener.

    Attributes:
        ignore_patterns: Extra ignore patterns, appended to DEFAULT_IGNORED_PATHS
        filter_patterns: File filter patterns; empty means every file is accepted
        latency: Seconds between adapter deliveries (None uses the adapter default)
        polling: True forces the polling adapter, False requires a native one,
            None picks a native adapter when the platform has one
        hash_algorithm: hashlib algorithm used for same-second tie-breaks
    """
    ignore_patterns: List[Any] = field(default_factory=list)
    filter_patterns: List[Any] = field(default_factory=list)
    latency: Optional[float] = None
    polling: Optional[bool] = None
    hash_algorithm: str = "sha1"

    def __post_init__(self):
        if self.latency is not None and self.latency <= 0:
            raise ConfigurationError(f"latency must be positive: {self.latency}")
        try:
            # Variable-length digests (shake_*) cannot produce a plain hexdigest
            hashlib.new(self.hash_algorithm).hexdigest()
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"unusable hash algorithm: {self.hash_algorithm}") from e
