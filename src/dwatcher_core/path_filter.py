"""Ignore-pattern and extension matching for watched paths.

Patterns follow a small grammar with three cases:

- ``**`` (recursive glob): ``**`` matches any run of characters, including
  ``/``. Any other ``*`` in the same pattern stays within one path segment.
- ``*`` (single-segment glob): ``*`` matches any run of characters except ``/``.
- no wildcard: the pattern matches by substring containment.

Every other character is literal. Matching is an unanchored search over a path
relative to the watch root, using forward slashes.
"""

import re
from collections.abc import Iterable
from enum import Enum
from functools import lru_cache


class PatternKind(Enum):
    """Which case of the pattern grammar applies."""

    RECURSIVE = "recursive"
    SEGMENT = "segment"
    LITERAL = "literal"


def classify_pattern(pattern: str) -> PatternKind:
    """Classify a pattern into one of the grammar's cases."""
    if "**" in pattern:
        return PatternKind.RECURSIVE
    if "*" in pattern:
        return PatternKind.SEGMENT
    return PatternKind.LITERAL


@lru_cache(maxsize=256)
def translate_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a pattern into a compiled regular expression.

    Args:
        pattern: Ignore pattern, e.g. "node_modules/**" or "*.log"

    Returns:
        Compiled regex to be used with ``search``
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts))


def matches_pattern(path: str, pattern: str) -> bool:
    """Check a single pattern against a root-relative path."""
    if classify_pattern(pattern) is PatternKind.LITERAL:
        return pattern in path
    return translate_pattern(pattern).search(path) is not None


def should_ignore(path: str, patterns: Iterable[str]) -> bool:
    """Check if a path should be ignored.

    Args:
        path: Path relative to the watch root, with forward slashes
        patterns: Ignore patterns

    Returns:
        True if any pattern matches
    """
    return any(matches_pattern(path, pattern) for pattern in patterns)


def should_watch(path: str, extensions: Iterable[str]) -> bool:
    """Check if a path has a watched extension.

    Args:
        path: File path
        extensions: Watched suffixes such as ".py"; empty watches everything

    Returns:
        True if extensions is empty or the path ends with one of them
    """
    extensions = tuple(extensions)
    if not extensions:
        return True
    return path.endswith(extensions)
