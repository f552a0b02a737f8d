"""Content hashes used to disambiguate same-second modifications."""

from typing import Dict, Optional

from .exceptions import ChecksumError
from .models import compute_file_hash


class ChecksumStore:
    """
    Maps file paths to the last observed content hash.

    A path only has an entry once its modification had to be decided by
    content; a missing entry means "never hashed", not "unchanged".
    """

    def __init__(self, algorithm: str = "sha1"):
        self.algorithm = algorithm
        self._hashes: Dict[str, str] = {}

    def has_changed(self, path: str) -> bool:
        """
        Hash the file and compare with the stored hash.

        Stores the new hash when it differs.

        Args:
            path: Absolute file path

        Returns:
            True if the hash differs from the stored one or none was stored

        Raises:
            FileNotFoundError: If the file vanished before it could be read
            ChecksumError: If the file could not be read for another reason
        """
        try:
            digest = compute_file_hash(path, self.algorithm)
        except (FileNotFoundError, NotADirectoryError):
            raise
        except OSError as e:
            raise ChecksumError(f"Cannot hash {path}: {e}") from e

        if self._hashes.get(path) == digest:
            return False
        self._hashes[path] = digest
        return True

    def forget(self, path: str) -> None:
        """Drop any stored hash for the path."""
        self._hashes.pop(path, None)

    def get(self, path: str) -> Optional[str]:
        return self._hashes.get(path)

    def clear(self) -> None:
        self._hashes.clear()

    def __contains__(self, path: str) -> bool:
        return path in self._hashes

    def __len__(self) -> int:
        return len(self._hashes)
