"""Watch set implementation using watchdog."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from dwatcher_core.notifier import NoOpNotifier, Notifier
from dwatcher_core.watchers import EventCallback

logger = logging.getLogger(__name__)

FORWARDED_EVENT_TYPES = frozenset({"created", "modified", "deleted", "moved"})


class _ChangeForwarder(FileSystemEventHandler):
    """Forwards file change events for one watched directory.

    Runs on watchdog's observer thread; the callback must be thread-safe.
    """

    def __init__(self, directory: Path, on_event: EventCallback):
        """Initialize handler.

        Args:
            directory: Directory this handler is scheduled on
            on_event: Callable(path, event_type)
        """
        super().__init__()
        self.directory = directory
        self.on_event = on_event

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Forward file events, skipping directory and access events."""
        if event.is_directory or event.event_type not in FORWARDED_EVENT_TYPES:
            return

        path = getattr(event, "dest_path", "") if event.event_type == "moved" else ""
        path = path or event.src_path
        if isinstance(path, bytes):
            path = path.decode(errors="replace")

        try:
            self.on_event(path, event.event_type)
        except Exception as e:
            logger.error(f"Error handling {event.event_type} on {path}: {e}")


class WatchSet:
    """Owns one watchdog watch handle per directory.

    Handles are non-recursive: every directory to observe is listed
    explicitly, so newly created directories are only covered after the
    next rebuild.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        verbose: bool = False,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """Initialize watch set.

        Args:
            notifier: Sink for user-facing messages
            verbose: Report directories that fail to open
            observer_factory: Creates the watchdog observer
        """
        self.notifier = notifier or NoOpNotifier()
        self.verbose = verbose
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._handles: dict[Path, ObservedWatch] = {}

    def __len__(self) -> int:
        return len(self._handles)

    @property
    def directories(self) -> list[Path]:
        """Directories currently watched."""
        return list(self._handles)

    def _ensure_observer(self) -> Observer:
        if self._observer is None:
            self._observer = self._observer_factory()
            self._observer.daemon = True
            self._observer.start()
            logger.debug("Started watchdog observer")
        return self._observer

    def _close_handles(self) -> None:
        if self._observer is not None:
            for directory, watch in self._handles.items():
                try:
                    self._observer.unschedule(watch)
                except KeyError:
                    logger.debug(f"Watch on {directory} was already gone")
        self._handles.clear()

    def rebuild(self, directories: Iterable[Path], on_event: EventCallback) -> None:
        """Close every watch and open one per directory.

        A directory that cannot be watched is skipped.

        Args:
            directories: Directories to watch
            on_event: Callable(path, event_type), invoked on the observer thread
        """
        self._close_handles()
        observer = self._ensure_observer()

        for directory in directories:
            directory = Path(directory)
            if directory in self._handles:
                continue
            handler = _ChangeForwarder(directory, on_event)
            try:
                self._handles[directory] = observer.schedule(handler, str(directory), recursive=False)
            except OSError as e:
                logger.debug(f"Failed to watch {directory}: {e}")
                if self.verbose:
                    self.notifier.error(f"Failed to watch directory {directory}: {e}")

        if self.verbose:
            self.notifier.info(f"Watching {len(self._handles)} directories")

    def teardown(self) -> None:
        """Close all watches and stop the observer. Safe to call repeatedly."""
        self._close_handles()
        if self._observer is not None:
            observer, self._observer = self._observer, None
            if observer.is_alive():
                observer.stop()
                observer.join(timeout=2.0)
            logger.debug("Stopped watchdog observer")
