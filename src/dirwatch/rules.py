"""Ignore and filter rules evaluated against absolute paths."""

import fnmatch
import os
import re
from typing import Any, Callable, Iterable, List, Union

from .exceptions import InvalidPatternError


class Suffix:
    """Matches paths ending with a literal string."""

    def __init__(self, suffix: str):
        self.suffix = suffix

    def __call__(self, path: str) -> bool:
        return path.endswith(self.suffix)

    def __repr__(self) -> str:
        return f"Suffix({self.suffix!r})"


class Glob:
    """
    Matches a shell-style pattern against the base name or any tail of the path.

    ``Glob("*.swp")`` matches ``/w/.a.swp``; ``Glob("build/*.o")`` matches
    ``/w/src/build/x.o``.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern

    def __call__(self, path: str) -> bool:
        if fnmatch.fnmatch(os.path.basename(path), self.pattern):
            return True
        if fnmatch.fnmatch(path, f"*/{self.pattern}"):
            return True
        return fnmatch.fnmatch(path, self.pattern)

    def __repr__(self) -> str:
        return f"Glob({self.pattern!r})"


class Regex:
    """
    Matches a regular expression against the path.

    Args:
        pattern: Expression source or compiled pattern
        anchored: If True the match must end at the end of the path

    Raises:
        InvalidPatternError: If the expression does not compile
    """

    def __init__(self, pattern: Union[str, re.Pattern], anchored: bool = False):
        source = pattern.pattern if isinstance(pattern, re.Pattern) else pattern
        flags = pattern.flags if isinstance(pattern, re.Pattern) else 0
        if anchored:
            source = f"(?:{source})$"
        try:
            self.regex = re.compile(source, flags)
        except re.error as e:
            raise InvalidPatternError(f"Invalid pattern {source!r}: {e}") from e
        self.anchored = anchored

    def __call__(self, path: str) -> bool:
        return self.regex.search(path) is not None

    def __repr__(self) -> str:
        return f"Regex({self.regex.pattern!r})"


PathPredicate = Callable[[str], bool]


def as_ignore_rule(pattern: Any) -> PathPredicate:
    """Coerce a pattern into a tail-matching predicate."""
    if isinstance(pattern, str):
        return Suffix(pattern)
    if isinstance(pattern, re.Pattern):
        return Regex(pattern, anchored=True)
    if callable(pattern):
        return pattern
    raise InvalidPatternError(f"Unsupported ignore pattern: {pattern!r}")


def as_filter_rule(pattern: Any) -> PathPredicate:
    """Coerce a pattern into a predicate matching anywhere within the path."""
    if isinstance(pattern, (str, re.Pattern)):
        return Regex(pattern)
    if callable(pattern):
        return pattern
    raise InvalidPatternError(f"Unsupported filter pattern: {pattern!r}")


class RuleSet:
    """
    Ordered ignore and filter predicates.

    Ignore rules apply to files and directories alike; an ignored directory
    is pruned together with everything below it. Filter rules apply to files
    only, and an empty filter list accepts every file.
    """

    def __init__(self, ignore: Iterable[Any] = (), filter: Iterable[Any] = ()):
        self._ignore: List[PathPredicate] = []
        self._filter: List[PathPredicate] = []
        self.ignore(*ignore)
        self.filter(*filter)

    def ignore(self, *patterns: Any) -> "RuleSet":
        """Append ignore patterns."""
        self._ignore.extend([as_ignore_rule(p) for p in patterns])
        return self

    def filter(self, *patterns: Any) -> "RuleSet":
        """Append file filter patterns."""
        self._filter.extend([as_filter_rule(p) for p in patterns])
        return self

    @property
    def ignore_rules(self) -> List[PathPredicate]:
        return list(self._ignore)

    @property
    def filter_rules(self) -> List[PathPredicate]:
        return list(self._filter)

    def is_ignored(self, path: str) -> bool:
        """Check if any ignore rule matches the end of the path."""
        return any(rule(path) for rule in self._ignore)

    def is_accepted(self, path: str) -> bool:
        """Check if the file path passes the filter rules."""
        if not self._filter:
            return True
        return any(rule(path) for rule in self._filter)
