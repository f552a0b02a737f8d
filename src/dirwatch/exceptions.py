"""Custom exceptions for the dirwatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class ConfigurationError(WatcherError):
    """Invalid listener configuration."""
    pass


class InvalidPatternError(ConfigurationError):
    """An ignore or filter pattern could not be compiled."""
    pass


class AdapterUnavailableError(ConfigurationError):
    """No adapter can be used with the requested options on this platform."""
    pass


class RootNotFoundError(WatcherError):
    """Watched directory does not exist or is not a directory."""
    pass


class ChecksumError(WatcherError):
    """A file could not be read while computing its content hash."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Listener is already running."""
    pass


class WatcherNotRunningError(WatcherError):
    """Listener has not been started or its initial scan has not run."""
    pass
