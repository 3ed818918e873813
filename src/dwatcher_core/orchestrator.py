"""
Top-level watch-and-restart loop.

Wires the pieces together:
- DirectoryEnumerator finds directories, WatchSet observes them
- PathFilter drops ignored and unwatched paths on the observer thread
- DebounceController coalesces bursts on the event loop
- ProcessSupervisor restarts the child
- A refresh loop picks up new directories
- SIGINT, SIGTERM and SIGHUP trigger a graceful shutdown

Usage (Embedded):
    config = WatchConfig(watch_path=Path("src"), verbose=True)
    exit_code = await run("python", ["app.py"], config)
"""

import asyncio
import logging
import signal
from collections.abc import Sequence
from pathlib import Path

from dwatcher_core.debounce import DebounceController
from dwatcher_core.enumerator import enumerate_directories
from dwatcher_core.file_watcher import WatchSet
from dwatcher_core.models import ChangeEvent
from dwatcher_core.notifier import NoOpNotifier, Notifier
from dwatcher_core.path_filter import should_ignore, should_watch
from dwatcher_core.supervisor import ProcessSupervisor
from dwatcher_core.watchers import ChangeSource, WatchConfig

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_S = 30.0
"""How often the directory tree is re-walked for new directories."""

SHUTDOWN_GRACE_S = 1.0
"""How long shutdown waits for the child before killing it."""

SHUTDOWN_SIGNALS = tuple(
    sig for sig in (getattr(signal, name, None) for name in ("SIGINT", "SIGTERM", "SIGHUP")) if sig is not None
)


class WatchOrchestrator:
    """Runs one command under supervision, restarting it on file changes.

    All mutable state lives on this object and its components, so several
    orchestrators can run side by side (only one should own the process
    signal handlers).
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        config: WatchConfig | None = None,
        notifier: Notifier | None = None,
        install_signal_handlers: bool = True,
        watch_set: ChangeSource | None = None,
    ):
        """Initialize orchestrator.

        Args:
            command: Command to run
            args: Arguments for the command
            config: Watch configuration (defaults apply when omitted)
            notifier: Sink for user-facing messages (defaults to silent)
            install_signal_handlers: Install SIGINT/SIGTERM/SIGHUP handlers in run()
            watch_set: Watch implementation (defaults to a watchdog WatchSet)
        """
        self.command = command
        self.args = list(args)
        self.config = config or WatchConfig()
        self.notifier = notifier or NoOpNotifier()
        self.install_signal_handlers = install_signal_handlers

        self.root = Path(self.config.watch_path).resolve()
        self.supervisor = ProcessSupervisor(command, self.args, self.config, self.notifier)
        self.watch_set: ChangeSource = watch_set or WatchSet(self.notifier, verbose=self.config.verbose)

        self._loop: asyncio.AbstractEventLoop | None = None
        self._debounce: DebounceController | None = None
        self._shutdown: asyncio.Event | None = None
        self._refresh_task: asyncio.Task | None = None
        self._restart_task: asyncio.Task | None = None
        self._installed_signals: list[int] = []

    @property
    def debounce(self) -> DebounceController | None:
        return self._debounce

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def run(self) -> int:
        """Start watching and supervising until a shutdown is requested.

        Returns:
            Exit status (0 after a graceful shutdown)

        Raises:
            ValueError: If no command was given
            RuntimeError: If initialization fails
        """
        if not self.command:
            raise ValueError("No command specified to run")

        self._loop = asyncio.get_running_loop()
        self._shutdown = asyncio.Event()
        self._debounce = DebounceController(
            self._loop,
            self.config.debounce_ms,
            self._restart,
            is_suppressed=lambda: self.supervisor.is_restarting,
        )

        self.notifier.info(f"Starting watcher for: {self.supervisor.command_line}")

        try:
            directories = await asyncio.to_thread(enumerate_directories, self.root, self.config.ignore_patterns)
            self.watch_set.rebuild(directories, self._on_fs_event)
            await self.supervisor.start()
        except Exception as e:
            self.watch_set.teardown()
            await self.supervisor.stop()
            raise RuntimeError(f"Failed to initialize: {e}") from e

        if self.install_signal_handlers:
            self._install_signal_handlers()
        self._refresh_task = asyncio.create_task(self._refresh_loop())

        try:
            await self._shutdown.wait()
        finally:
            await self._stop()
        return 0

    def request_shutdown(self) -> None:
        """Ask run() to shut down. Idempotent; call from the event loop thread."""
        if self._shutdown is not None and not self._shutdown.is_set():
            logger.debug("Shutdown requested")
            self._shutdown.set()

    async def _stop(self) -> None:
        self.notifier.info("Shutting down...")
        self._remove_signal_handlers()

        if self._debounce is not None:
            self._debounce.cancel()
        self.watch_set.teardown()

        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None

        # A restart may be mid-spawn; its child must be reaped here too
        pending = {asyncio.create_task(self.supervisor.shutdown())}
        if self._restart_task is not None and not self._restart_task.done():
            pending.add(self._restart_task)

        _, pending = await asyncio.wait(pending, timeout=SHUTDOWN_GRACE_S)
        while pending:
            logger.debug(f"Child still alive after {SHUTDOWN_GRACE_S}s grace, killing")
            self.supervisor.force_kill()
            _, pending = await asyncio.wait(pending, timeout=SHUTDOWN_GRACE_S)

    # ========================================================================
    # Signals
    # ========================================================================

    def _install_signal_handlers(self) -> None:
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError, ValueError):
                signal.signal(sig, lambda *_: self._loop.call_soon_threadsafe(self.request_shutdown))
            self._installed_signals.append(sig)

    def _remove_signal_handlers(self) -> None:
        for sig in self._installed_signals:
            try:
                self._loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                signal.signal(sig, signal.SIG_DFL)
        self._installed_signals.clear()

    # ========================================================================
    # Change events
    # ========================================================================

    def _relativize(self, path: str) -> str:
        try:
            return Path(path).relative_to(self.root).as_posix()
        except ValueError:
            return Path(path).as_posix()

    def _on_fs_event(self, path: str, event_type: str) -> None:
        """Filter a raw watchdog event and hand it to the event loop.

        Runs on the observer thread.
        """
        relative = self._relativize(path)
        if should_ignore(relative, self.config.ignore_patterns):
            return
        if not should_watch(relative, self.config.watch_extensions):
            return

        event = ChangeEvent(path=relative, event_type=event_type)
        try:
            self._loop.call_soon_threadsafe(self.handle_change, event)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {event_type} on {relative}")

    def handle_change(self, event: ChangeEvent) -> None:
        """Feed a qualifying change into the debounce timer."""
        if self._debounce is None:
            return
        if self._debounce.on_qualifying_event(event) and self.config.verbose:
            self.notifier.info(f"Detected {event.event_type} on: {event.path}")

    def _restart(self) -> None:
        if self._shutdown is not None and self._shutdown.is_set():
            return
        if self.config.verbose:
            self.notifier.info("Restarting due to changes...")
        self._restart_task = asyncio.create_task(self.supervisor.start())
        self._restart_task.add_done_callback(self._on_restart_done)

    def _on_restart_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Restart failed: {error!r}")
            self.notifier.error(f"Failed to start process: {error}")

    # ========================================================================
    # Watch refresh
    # ========================================================================

    async def refresh_watch_set(self) -> bool:
        """Re-walk the tree and rebuild the watch set if the directory count changed.

        Returns:
            True if the watch set was rebuilt
        """
        directories = await asyncio.to_thread(enumerate_directories, self.root, self.config.ignore_patterns)
        if len(directories) == len(self.watch_set):
            return False
        if self.config.verbose:
            self.notifier.info(f"Refreshing watchers, found {len(directories)} directories")
        self.watch_set.rebuild(directories, self._on_fs_event)
        return True

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(REFRESH_INTERVAL_S)
            try:
                await self.refresh_watch_set()
            except Exception as e:
                logger.debug(f"Watch refresh failed: {e}")
                if self.config.verbose:
                    self.notifier.warning(f"Failed to refresh watchers: {e}")


async def run(
    command: str,
    args: Sequence[str] = (),
    config: WatchConfig | None = None,
    notifier: Notifier | None = None,
) -> int:
    """Supervise a command until a termination signal arrives.

    Args:
        command: Command to run
        args: Arguments for the command
        config: Watch configuration
        notifier: Sink for user-facing messages

    Returns:
        Exit status (0 after a graceful shutdown)
    """
    orchestrator = WatchOrchestrator(command, args, config, notifier)
    return await orchestrator.run()
