"""Shared data models for dwatcher_core."""

import signal
from dataclasses import dataclass
from enum import Enum


class SupervisorState(Enum):
    """Lifecycle of the supervised child process."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class ChangeEvent:
    """A qualifying file change, posted from the observer thread to the event loop."""

    path: str
    """Path relative to the watch root, with forward slashes."""

    event_type: str
    """watchdog event type: created, modified, deleted or moved."""


@dataclass(frozen=True)
class ChildExit:
    """How a supervised child process ended."""

    pid: int
    returncode: int

    @property
    def signalled(self) -> bool:
        """True if the child was ended by a signal."""
        return self.returncode < 0

    @property
    def terminated(self) -> bool:
        """True if the child ended because of SIGTERM."""
        return self.returncode == -signal.SIGTERM

    @property
    def killed(self) -> bool:
        """True if the child ended because of SIGKILL."""
        return self.returncode == -getattr(signal, "SIGKILL", 9)

    def describe(self) -> str:
        """Human-readable exit summary.

        Returns:
            "code N" for normal exits, "signal NAME" for signalled ones
        """
        if not self.signalled:
            return f"code {self.returncode}"
        try:
            name = signal.Signals(-self.returncode).name
        except ValueError:
            name = str(-self.returncode)
        return f"signal {name}"
