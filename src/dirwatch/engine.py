"""Diff engine reconciling the snapshot registry with the live tree."""

import logging
import os
import stat
import time
from typing import Callable, Iterable, Optional

from .checksums import ChecksumStore
from .exceptions import RootNotFoundError, WatcherNotRunningError
from .models import ChangeSet, EntryKind
from .rules import RuleSet
from .snapshot import SnapshotRegistry

logger = logging.getLogger(__name__)

# Errors meaning a listed path vanished or changed type before it was read
_GONE = (FileNotFoundError, NotADirectoryError)


class DiffEngine:
    """
    Computes modified, added and removed files under a root.

    A full scan builds the registry once; later diffs only walk the
    directories they are given and update the registry in place. The
    engine is not safe for concurrent use: callers must serialize scans
    and diffs.
    """

    def __init__(
        self,
        root: str,
        rules: Optional[RuleSet] = None,
        checksums: Optional[ChecksumStore] = None,
        registry: Optional[SnapshotRegistry] = None,
    ):
        """
        Initialize the engine.

        Args:
            root: Directory being watched
            rules: Ignore and filter rules (default: no rules)
            checksums: Store used for same-second tie-breaks
            registry: Registry to update
        """
        self._root = os.path.abspath(os.fspath(root))
        self._root_prefix = os.path.join(self._root, "")
        self.rules = rules if rules is not None else RuleSet()
        self.checksums = checksums if checksums is not None else ChecksumStore()
        self.registry = registry if registry is not None else SnapshotRegistry()
        self.diffed_at: Optional[int] = None

    @property
    def root(self) -> str:
        return self._root

    def rebuild(self) -> None:
        """
        Record every directory and accepted file below the root.

        Raises:
            RootNotFoundError: If the root is missing or cannot be listed
        """
        try:
            with os.scandir(self._root):
                pass
        except OSError as e:
            raise RootNotFoundError(f"Cannot list watched directory {self._root}: {e}") from e

        self.registry.clear()
        self.checksums.clear()

        def visit(path: str, is_dir: bool) -> bool:
            if self.rules.is_ignored(path):
                return False
            if is_dir:
                self.registry.record(path)
                return True
            if self.rules.is_accepted(path):
                self.registry.record(path)
            return False

        self._walk(self._root, visit)
        self._mark_diffed()
        logger.info(f"Scanned {self._root}: {len(self.registry)} entries")

    def diff(self, directories: Iterable[str], recursive: bool = False) -> ChangeSet:
        """
        Detect changes in the given directories.

        Deeper directories are processed first so that subtrees are
        reconciled before their ancestors.

        Args:
            directories: Directories reported as dirty
            recursive: Walk every subdirectory, including known ones

        Returns:
            The changes found

        Raises:
            ChecksumError: If a file could not be read for a tie-break
            WatcherNotRunningError: If rebuild() has not run yet
        """
        if self.diffed_at is None:
            raise WatcherNotRunningError("diff requested before the initial scan")

        changes = ChangeSet()
        normalized = {os.path.abspath(os.fspath(d)) for d in directories}
        for directory in sorted(normalized, key=lambda d: (-len(d), d)):
            if not self._is_watched(directory):
                logger.debug(f"Skipping unwatched directory: {directory}")
                continue
            self._detect_modifications_and_removals(directory, changes, recursive)
            self._detect_additions(directory, changes, recursive)

        self._mark_diffed()
        logger.debug(
            f"Diffed {len(normalized)} directories: {len(changes.modified)} modified, "
            f"{len(changes.added)} added, {len(changes.removed)} removed"
        )
        return changes

    def _detect_modifications_and_removals(
        self, directory: str, changes: ChangeSet, recursive: bool
    ) -> None:
        for name, kind in self.registry.entries_of(directory):
            path = os.path.join(directory, name)

            if kind is EntryKind.DIRECTORY:
                if os.path.isdir(path):
                    if recursive:
                        self._detect_modifications_and_removals(path, changes, True)
                else:
                    # Report every file the directory used to hold
                    self._detect_modifications_and_removals(path, changes, True)
                    self.registry.forget(path)
                continue

            try:
                st = os.stat(path)
            except _GONE:
                st = None

            # A file replaced by a directory is a removal; the additions pass
            # then reports the directory's files as added
            if st is None or stat.S_ISDIR(st.st_mode):
                self._remove_file(path, changes)
                continue

            try:
                modified = self._is_modified(path, st)
            except _GONE:
                self._remove_file(path, changes)
                continue
            if modified:
                changes.modified.append(self._relative(path))

    def _is_modified(self, path: str, st: os.stat_result) -> bool:
        mtime = int(st.st_mtime)
        if mtime > self.diffed_at:
            return True
        if mtime == self.diffed_at:
            # Could have changed within the second of the last diff
            return self.checksums.has_changed(path)
        return False

    def _remove_file(self, path: str, changes: ChangeSet) -> None:
        self.registry.forget(path)
        self.checksums.forget(path)
        changes.removed.append(self._relative(path))

    def _detect_additions(self, directory: str, changes: ChangeSet, recursive: bool) -> None:
        if directory != self._root and os.path.isdir(directory):
            self.registry.record(directory)

        def visit(path: str, is_dir: bool) -> bool:
            if is_dir:
                if self.rules.is_ignored(path):
                    return False
                if not recursive and self.registry.kind_of(path) is EntryKind.DIRECTORY:
                    return False
                self.registry.record(path)
                return True

            if (
                not self.registry.contains(path)
                and not self.rules.is_ignored(path)
                and self.rules.is_accepted(path)
            ):
                if os.path.isfile(path):
                    changes.added.append(self._relative(path))
                self.registry.record(path)
            return False

        self._walk(directory, visit)

    def _walk(self, top: str, visit: Callable[[str, bool], bool]) -> None:
        """
        Depth-first walk in name order, not following symlinks.

        ``visit(path, is_dir)`` returns True to descend into a directory.
        Directories that vanish or cannot be listed are skipped.
        """
        try:
            with os.scandir(top) as it:
                entries = sorted(it, key=lambda e: e.name)
        except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
            logger.debug(f"Cannot list {top}: {e}")
            return

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if visit(entry.path, is_dir) and is_dir:
                self._walk(entry.path, visit)

    def _is_watched(self, directory: str) -> bool:
        """Check that a directory is the root or below it, outside ignored subtrees."""
        if directory == self._root:
            return True
        if not directory.startswith(self._root_prefix):
            return False
        path = directory
        while path != self._root:
            if self.rules.is_ignored(path):
                return False
            path = os.path.dirname(path)
        return True

    def _relative(self, path: str) -> str:
        if path.startswith(self._root_prefix):
            return path[len(self._root_prefix):]
        return path

    def _mark_diffed(self) -> None:
        now = int(time.time())
        self.diffed_at = now if self.diffed_at is None else max(now, self.diffed_at)
