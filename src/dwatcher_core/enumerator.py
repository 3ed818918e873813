"""Directory discovery for the watch set."""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dwatcher_core.path_filter import should_ignore

logger = logging.getLogger(__name__)


def enumerate_directories(root: str | Path, ignore_patterns: Iterable[str]) -> list[Path]:
    """Collect every directory under root that should be watched.

    The root itself is always included. A directory whose root-relative path
    matches an ignore pattern is pruned along with its whole subtree. The path
    is tested with a trailing slash so that "node_modules/**" prunes
    "node_modules" itself. Symlinked directories are not followed.

    Unreadable or vanished directories are skipped; the walk never raises.

    Args:
        root: Root directory of the watch
        ignore_patterns: Ignore patterns applied to root-relative paths

    Returns:
        Directories in pre-order, siblings sorted by name
    """
    root = Path(root)
    patterns = tuple(ignore_patterns)
    directories: list[Path] = [root]

    def traverse(directory: Path) -> None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue

            path = Path(entry.path)
            relative = path.relative_to(root).as_posix()
            if should_ignore(relative + "/", patterns):
                logger.debug(f"Pruning ignored directory {relative}")
                continue

            directories.append(path)
            traverse(path)

    traverse(root)
    return directories
