"""Watch configuration and the protocol for change sources."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

DEFAULT_DEBOUNCE_MS = 300

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "node_modules/**",
    ".git/**",
    "*.log",
    "dist/**",
    "build/**",
    "coverage/**",
    ".nyc_output/**",
    "*.tmp",
    "*.temp",
)

DEFAULT_WATCH_EXTENSIONS: tuple[str, ...] = (".js", ".mjs", ".json", ".ts", ".jsx", ".tsx")


@dataclass(frozen=True)
class WatchConfig:
    """Configuration for a supervised watch session."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    """Quiet period in milliseconds before a restart fires."""

    ignore_patterns: tuple[str, ...] = DEFAULT_IGNORE_PATTERNS
    """Glob-like patterns; a path matching any of them is ignored."""

    watch_extensions: tuple[str, ...] = DEFAULT_WATCH_EXTENSIONS
    """File suffixes that trigger a restart. Empty means every file."""

    clear: bool = True
    """Clear the terminal before each (re)start."""

    verbose: bool = False
    """Report watch and process activity to the user."""

    watch_path: Path = field(default_factory=Path.cwd)
    """Root of the watched tree."""


EventCallback = Callable[[str, str], None]
"""Called with (path, event_type) for every file change seen by a watch."""


class ChangeSource(Protocol):
    """Protocol for filesystem watch implementations."""

    def rebuild(self, directories: Iterable[Path], on_event: EventCallback) -> None:
        """Replace every watch with one per directory."""
        ...

    def teardown(self) -> None:
        """Close all watches."""
        ...

    def __len__(self) -> int:
        """Number of open watches."""
        ...
