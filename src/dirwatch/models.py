"""Data models for the dirwatch package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Union
import hashlib


class EntryKind(Enum):
    """Kind of entry tracked by the snapshot registry."""
    DIRECTORY = "directory"
    FILE = "file"


@dataclass
class ChangeSet:
    """
    Result of a single diff.

    Attributes:
        modified: Root-relative paths of files whose content changed
        added: Root-relative paths of files that appeared
        removed: Root-relative paths of files that disappeared
    """
    modified: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Return True if no list holds a path."""
        return not (self.modified or self.added or self.removed)

    def __len__(self) -> int:
        return len(self.modified) + len(self.added) + len(self.removed)

    def as_tuple(self):
        """Return ``(modified, added, removed)`` as passed to change callbacks."""
        return self.modified, self.added, self.removed

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "modified": list(self.modified),
            "added": list(self.added),
            "removed": list(self.removed),
        }


def compute_file_hash(path: Union[str, Path], algorithm: str = "sha1") -> str:
    """
    Compute hash of file contents.

    Args:
        path: Path to the file
        algorithm: Hash algorithm to use (default: sha1)

    Returns:
        Hex digest of the hash

    Raises:
        OSError: If the file cannot be opened or read
    """
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
