"""Configuration file parsing for dwatcher."""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from dwatcher_core.watchers import DEFAULT_IGNORE_PATTERNS, WatchConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "dwatcher.toml"

KNOWN_KEYS = frozenset({"command", "debounce_ms", "ignore", "extensions", "verbose", "clear", "watch_path"})


@dataclass
class FileConfig:
    """Settings read from a config file. None means "not set in the file"."""

    command: list[str] = field(default_factory=list)
    debounce_ms: int | None = None
    ignore: list[str] = field(default_factory=list)
    extensions: list[str] | None = None
    verbose: bool | None = None
    clear: bool | None = None
    watch_path: Path | None = None

    def to_watch_config(self) -> WatchConfig:
        """Build a WatchConfig, filling unset values with defaults."""
        overrides: dict[str, Any] = {}
        if self.debounce_ms is not None:
            overrides["debounce_ms"] = self.debounce_ms
        if self.ignore:
            overrides["ignore_patterns"] = DEFAULT_IGNORE_PATTERNS + tuple(self.ignore)
        if self.extensions is not None:
            overrides["watch_extensions"] = tuple(normalize_extension(e) for e in self.extensions)
        if self.verbose is not None:
            overrides["verbose"] = self.verbose
        if self.clear is not None:
            overrides["clear"] = self.clear
        if self.watch_path is not None:
            overrides["watch_path"] = self.watch_path
        return WatchConfig(**overrides)


def normalize_extension(ext: str) -> str:
    """Prefix an extension with "." if it lacks one."""
    ext = ext.strip()
    return ext if ext.startswith(".") else f".{ext}"


def _expect(raw: dict[str, Any], key: str, kind: type | tuple[type, ...], path: Path) -> Any:
    value = raw.get(key)
    # bool is an int subclass; keep "debounce_ms = true" out
    if value is None or (isinstance(value, kind) and not (kind is int and isinstance(value, bool))):
        return value
    raise ValueError(f"Invalid value for '{key}' in {path}: {value!r}")


def _expect_str_list(raw: dict[str, Any], key: str, path: Path) -> list[str] | None:
    value = _expect(raw, key, list, path)
    if value is not None and not all(isinstance(v, str) for v in value):
        raise ValueError(f"Invalid value for '{key}' in {path}: expected a list of strings")
    return value


def load_config_file(path: str | Path) -> FileConfig:
    """Load a dwatcher TOML config file.

    Args:
        path: Path to TOML config file

    Returns:
        Parsed settings; relative watch_path values resolve against the file's directory

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid TOML or a value has the wrong type
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\nRun 'dwatcher --init' to create a default config."
        )

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e

    for key in sorted(set(raw) - KNOWN_KEYS):
        logger.warning(f"Unknown key '{key}' in {path}")

    command = raw.get("command", [])
    if isinstance(command, str):
        command = shlex.split(command)
    elif not isinstance(command, list) or not all(isinstance(c, str) for c in command):
        raise ValueError(f"Invalid value for 'command' in {path}: {command!r}")

    watch_path = _expect(raw, "watch_path", str, path)

    return FileConfig(
        command=command,
        debounce_ms=_expect(raw, "debounce_ms", int, path),
        ignore=_expect_str_list(raw, "ignore", path) or [],
        extensions=_expect_str_list(raw, "extensions", path),
        verbose=_expect(raw, "verbose", bool, path),
        clear=_expect(raw, "clear", bool, path),
        watch_path=path.parent / watch_path if watch_path is not None else None,
    )


DEFAULT_CONFIG_TEMPLATE = """\
# Auto-generated dwatcher.toml
# Values given on the command line take precedence.

# Command to supervise (string or list).
# command = "python app.py"

# Quiet period in milliseconds before restarting.
debounce_ms = 300

# Extra ignore patterns, added to the built-in ones
# (node_modules/**, .git/**, *.log, dist/**, build/**, ...).
ignore = ["__pycache__/**", ".venv/**", "*.pyc"]

# Extensions that trigger a restart. An empty list watches every file.
extensions = [".py", ".toml", ".json"]

verbose = false
clear = true

# Directory to watch, relative to this file.
watch_path = "."
"""


def create_default_config(config_path: Path) -> bool:
    """
    Create a default dwatcher.toml if it doesn't exist.

    Args:
        config_path: Path where config should be created

    Returns:
        True if config was created, False if it already exists

    Raises:
        PermissionError: If unable to write to the directory
        OSError: If other file system errors occur
    """
    if config_path.exists():
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    return True
