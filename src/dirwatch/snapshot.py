"""Registry of the directories and files a listener currently knows about."""

import os
from typing import Dict, Iterator, List, Optional, Tuple

from .models import EntryKind


class SnapshotRegistry:
    """
    Two-level mapping: directory path -> {base name -> EntryKind}.

    Storage is keyed by absolute path rather than linked nodes, so dropping
    a directory's children is a single removal of its sub-mapping.
    """

    def __init__(self):
        self._entries: Dict[str, Dict[str, EntryKind]] = {}

    def record(self, path: str) -> EntryKind:
        """
        Insert or overwrite the entry for a path.

        The kind is taken from the filesystem at call time.

        Returns:
            The recorded kind
        """
        kind = EntryKind.DIRECTORY if os.path.isdir(path) else EntryKind.FILE
        parent, name = os.path.split(path)
        self._entries.setdefault(parent, {})[name] = kind
        return kind

    def contains(self, path: str) -> bool:
        """Check if the path is recorded under its parent."""
        return self.kind_of(path) is not None

    def kind_of(self, path: str) -> Optional[EntryKind]:
        parent, name = os.path.split(path)
        children = self._entries.get(parent)
        if children is None:
            return None
        return children.get(name)

    def forget(self, path: str) -> None:
        """
        Remove the entry for a path and the sub-mapping keyed by it.

        Records of descendants below that sub-mapping are dropped with it,
        so they must be reconciled before this call.
        """
        parent, name = os.path.split(path)
        children = self._entries.get(parent)
        if children is not None:
            children.pop(name, None)
        self._entries.pop(path, None)

    def entries_of(self, directory: str) -> List[Tuple[str, EntryKind]]:
        """Return the known children of a directory as (name, kind) pairs."""
        return list(self._entries.get(directory, {}).items())

    def paths(self) -> Iterator[str]:
        """Iterate over every tracked absolute path."""
        for directory, children in self._entries.items():
            for name in children:
                yield os.path.join(directory, name)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(len(children) for children in self._entries.values())
