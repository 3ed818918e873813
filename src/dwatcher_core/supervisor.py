"""Lifecycle management for the supervised child process."""

import asyncio
import logging
import os
import sys
from collections.abc import Sequence

from dwatcher_core.models import ChildExit, SupervisorState
from dwatcher_core.notifier import NoOpNotifier, Notifier
from dwatcher_core.watchers import WatchConfig

logger = logging.getLogger(__name__)

SUPERVISION_ENV_VAR = "DWATCHER_RUNNING"
"""Set to "1" in the environment of every supervised child."""

COMMAND_NOT_FOUND = 127
"""Exit status the shell uses when it cannot find the command."""

CLEAR_SCREEN = "\x1bc"


class ProcessSupervisor:
    """Owns exactly one child process at a time.

    States: IDLE -> RUNNING -> STOPPING -> IDLE. A restart is a full stop
    followed by a spawn; two children never run at once.

    While a stop is in progress ``is_restarting`` is True. The flag clears
    when the child exits or when the force-kill fallback fires, whichever
    comes first.

    Must be used from the event loop thread.
    """

    KILL_TIMEOUT_S = 5.0
    """Grace period between SIGTERM and SIGKILL."""

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        config: WatchConfig | None = None,
        notifier: Notifier | None = None,
    ):
        """Initialize supervisor.

        Args:
            command: Command to run, interpreted by the shell
            args: Extra arguments appended to the command line
            config: Watch configuration (clear and verbose flags are used)
            notifier: Sink for user-facing messages
        """
        self.command = command
        self.args = list(args)
        self.config = config or WatchConfig()
        self.notifier = notifier or NoOpNotifier()

        self._process: asyncio.subprocess.Process | None = None
        self._exit_task: asyncio.Task | None = None
        self._kill_handle: asyncio.TimerHandle | None = None
        self._restarting = False
        self._stopping = False
        self._closed = False
        self._start_lock = asyncio.Lock()
        self.last_exit: ChildExit | None = None

    @property
    def command_line(self) -> str:
        """The shell command line for the child."""
        return " ".join([self.command, *self.args])

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        """The live child process, if any."""
        return self._process

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_restarting(self) -> bool:
        """True while a supervisor-initiated termination is in progress."""
        return self._restarting

    @property
    def state(self) -> SupervisorState:
        if self._process is None:
            return SupervisorState.IDLE
        if self._stopping:
            return SupervisorState.STOPPING
        return SupervisorState.RUNNING

    # ========================================================================
    # Start
    # ========================================================================

    async def start(self) -> None:
        """Start the child, stopping the current one first.

        Spawn failures are reported and leave the supervisor idle.
        """
        async with self._start_lock:
            if self._process is not None:
                await self.stop()
            if self._closed:
                logger.debug("Supervisor closed, not spawning")
                return

            self._clear_console()
            if self.config.verbose:
                self.notifier.info(f"Starting: {self.command_line}")

            env = {**os.environ, SUPERVISION_ENV_VAR: "1"}
            try:
                process = await asyncio.create_subprocess_shell(self.command_line, env=env)
            except OSError as e:
                logger.debug(f"Spawn of {self.command_line!r} failed: {e}")
                self.notifier.error(f"Failed to start process: {e}")
                self._process = None
                return

            logger.debug(f"Spawned pid {process.pid}: {self.command_line}")
            self._process = process
            self._exit_task = asyncio.create_task(self._watch_exit(process))
            if self._closed:
                # shutdown() ran while the spawn was in flight
                await self.stop()

    def _clear_console(self) -> None:
        if self.config.clear and sys.stdout.isatty():
            sys.stdout.write(CLEAR_SCREEN)
            sys.stdout.flush()

    # ========================================================================
    # Stop
    # ========================================================================

    async def stop(self) -> None:
        """Terminate the child gracefully, killing it after KILL_TIMEOUT_S.

        Returns once the child has exited. No-op when idle.
        """
        process = self._process
        if process is None:
            return
        exit_task = self._exit_task

        if process.returncode is None and not self._stopping:
            self._stopping = True
            self._restarting = True
            logger.debug(f"Sending SIGTERM to pid {process.pid}")
            try:
                process.terminate()
            except ProcessLookupError:
                logger.debug(f"pid {process.pid} already gone")
            self._kill_handle = asyncio.get_running_loop().call_later(
                self.KILL_TIMEOUT_S, self._force_kill_after_timeout, process
            )

        if exit_task is not None:
            await asyncio.shield(exit_task)

    async def shutdown(self) -> None:
        """Stop the child and refuse any further starts."""
        self._closed = True
        await self.stop()

    def force_kill(self) -> None:
        """Kill the live child immediately."""
        if self._process is not None:
            self._kill(self._process)

    def _force_kill_after_timeout(self, process: asyncio.subprocess.Process) -> None:
        self._kill_handle = None
        if process.returncode is None:
            if self.config.verbose:
                self.notifier.warning(
                    f"Process {process.pid} did not exit within {self.KILL_TIMEOUT_S:g}s, killing it"
                )
            self._kill(process)
        self._restarting = False

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        logger.debug(f"Sending SIGKILL to pid {process.pid}")
        try:
            process.kill()
        except ProcessLookupError:
            logger.debug(f"pid {process.pid} already gone")
        _release_streams(process)

    # ========================================================================
    # Exit handling
    # ========================================================================

    async def _watch_exit(self, process: asyncio.subprocess.Process) -> ChildExit:
        returncode = await process.wait()
        result = ChildExit(pid=process.pid, returncode=returncode)
        self._on_exit(process, result)
        return result

    def _on_exit(self, process: asyncio.subprocess.Process, result: ChildExit) -> None:
        if self._kill_handle is not None:
            self._kill_handle.cancel()
            self._kill_handle = None

        initiated_by_us = self._restarting or self._stopping
        logger.debug(f"pid {result.pid} exited with {result.describe()}")

        if not initiated_by_us:
            if result.returncode == COMMAND_NOT_FOUND:
                self.notifier.error(f"Failed to start process: command not found: {self.command}")
            elif result.returncode != 0 and not result.terminated and self.config.verbose:
                self.notifier.error(f"Process exited with {result.describe()}")

        self.last_exit = result
        self._restarting = False
        self._stopping = False
        if self._process is process:
            self._process = None
            self._exit_task = None

    async def wait(self) -> ChildExit | None:
        """Wait for the current child to exit.

        Returns:
            How the child ended, or None if no child is running
        """
        if self._exit_task is None:
            return None
        return await asyncio.shield(self._exit_task)


def _release_streams(process: asyncio.subprocess.Process) -> None:
    """Close pipe streams left open on a killed child."""
    if process.stdin is not None:
        process.stdin.close()
    for reader in (process.stdout, process.stderr):
        if reader is not None:
            reader.feed_eof()
